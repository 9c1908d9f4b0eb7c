"""Repository layer for document store and audit log access."""
from lexcord.repositories.audit_log_repo import AuditLogRepository
from lexcord.repositories.document_repo import DocumentRepository, Repositories, Repository

__all__ = [
    "AuditLogRepository",
    "DocumentRepository",
    "Repositories",
    "Repository",
]
