"""
Timesheet Kernel

Shared foundation for the monthly timesheet reconciliation and approval
engine:
- Typed exception hierarchy with machine-readable codes
- Structured JSON logging with request-scoped context
- Injectable clock
- Workflow value objects shared by every approval state machine
- Declarative ORM base, engine and session management
"""

__version__ = "0.1.0"
