"""
Timesheet Modules.

Thin orchestration layers over the kernel, engines and services.
Each module contains:
- Domain models (the nouns)
- ORM models (persistence)
- Workflows (state machines and transition policies)
- A service owning the transaction boundary

Modules:
- Timesheet: monthly summaries, daily records, document reports
- Invoice: subcontractor monthly invoices
- Holidays: holiday category reference data
"""
