"""
Append-only audit logging for workflow mutations.
"""

from symposium.kernel.audit.audit_store import AuditStore

__all__ = [
    "AuditStore",
]
