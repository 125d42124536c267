"""
Timesheet Kernel

The approval workflow core for weekly HR timesheets:
- Quarter-hour activity ledger gated by DRAFT status
- Capability-table authorization
- Optimistically versioned state machine
- Hash-chained, append-only audit log
"""

__version__ = "0.1.0"
