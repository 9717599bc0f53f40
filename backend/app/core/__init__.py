"""Core application configuration and utilities."""

from app.core.audit import AuditAction, AuditEvent, log_audit, log_data_access, log_review
from app.core.config import settings
from app.core.database import Base, get_sync_db
from app.core.exceptions import (
    AlreadyReviewedError,
    DuplicateSuggestionError,
    EngineError,
    InvalidSelectionError,
    InvalidStateTransitionError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)
from app.core.security import verify_api_key

__all__ = [
    # Config
    "settings",
    # Database
    "Base",
    "get_sync_db",
    # Errors
    "EngineError",
    "NotFoundError",
    "ValidationError",
    "InvalidSelectionError",
    "InvalidStateTransitionError",
    "AlreadyReviewedError",
    "DuplicateSuggestionError",
    "TransientStoreError",
    # Security
    "verify_api_key",
    # Audit
    "AuditAction",
    "AuditEvent",
    "log_audit",
    "log_data_access",
    "log_review",
]
