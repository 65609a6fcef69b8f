"""
Checkbook authorization core.

Permission hierarchy, account sharing, the permission request workflow and
the audit trail for a shared checkbook application.
"""

__version__ = "0.1.0"
