"""
Monthly Timesheet Module (``timesheet_modules.timesheet``).

Monthly summaries and their daily records: itemized reconciliation, the
document reporting path, the approval workflow, and completion queries.
"""

from timesheet_modules.timesheet.models import (
    DailyRecord,
    MonthlySummary,
    MonthOverview,
    RecordStatus,
    SubmitEntriesRequest,
    SummaryStatus,
    UploadDocumentRequest,
)
from timesheet_modules.timesheet.service import TimesheetService
from timesheet_modules.timesheet.workflows import SUMMARY_POLICY, SUMMARY_WORKFLOW

__all__ = [
    "DailyRecord",
    "MonthlySummary",
    "MonthOverview",
    "RecordStatus",
    "SubmitEntriesRequest",
    "SummaryStatus",
    "UploadDocumentRequest",
    "TimesheetService",
    "SUMMARY_POLICY",
    "SUMMARY_WORKFLOW",
]
