from .audit_entry import AuditEntry, AuditRepository

__all__ = ["AuditEntry", "AuditRepository"]
