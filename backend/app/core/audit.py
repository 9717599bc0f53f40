"""Audit logging for suggestion review and data access.

Approval and rejection of billing suggestions are compliance-relevant:
every transition attempt (successful or not) is written to the audit
logger with the reviewer and the outcome.

This audit log should be persisted to a secure, append-only store
in production for compliance and security purposes.
"""

import logging
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field

# Separate audit logger for security-critical events
audit_logger = logging.getLogger("audit")


class AuditAction(str, Enum):
    """Types of auditable actions."""

    # Data access
    READ = "read"
    CREATE = "create"

    # Suggestion review
    APPROVE = "approve"
    REJECT = "reject"

    # Side effects
    ENROLL = "enroll"


class AuditEvent(BaseModel):
    """Audit event record.

    Contains all relevant context for an auditable action.
    """

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    action: AuditAction = Field(..., description="Type of action performed")
    resource_type: str = Field(..., description="Type of resource accessed")
    resource_id: str | None = Field(None, description="ID of specific resource")
    patient_id: str | None = Field(None, description="Patient ID if applicable")
    user_id: str | None = Field(None, description="User who performed action")
    details: dict | None = Field(None, description="Additional context")
    success: bool = Field(True, description="Whether action succeeded")


def log_audit(
    action: AuditAction,
    resource_type: str,
    resource_id: str | None = None,
    patient_id: str | None = None,
    user_id: str | None = None,
    details: dict | None = None,
    success: bool = True,
) -> AuditEvent:
    """Log an audit event.

    Args:
        action: Type of action being audited
        resource_type: The type of resource being accessed
        resource_id: Specific resource identifier
        patient_id: Patient ID if this is patient data
        user_id: User performing the action
        details: Additional context
        success: Whether the action succeeded

    Returns:
        The created AuditEvent
    """
    event = AuditEvent(
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        patient_id=patient_id,
        user_id=user_id,
        details=details,
        success=success,
    )

    log_level = logging.INFO if success else logging.WARNING
    audit_logger.log(
        log_level,
        f"AUDIT: {action.value} {resource_type}"
        f"{f'/{resource_id}' if resource_id else ''}"
        f"{f' patient={patient_id}' if patient_id else ''}"
        f"{f' user={user_id}' if user_id else ''}"
        f" success={success}",
        extra={"audit_event": event.model_dump()},
    )

    return event


def log_review(
    action: AuditAction,
    suggestion_id: str,
    reviewer_id: str,
    patient_id: str | None = None,
    success: bool = True,
    reason: str | None = None,
    details: dict | None = None,
) -> AuditEvent:
    """Log an approve/reject attempt on a suggestion.

    Args:
        action: APPROVE or REJECT
        suggestion_id: Suggestion being reviewed
        reviewer_id: Clinician performing the review
        patient_id: Patient the suggestion belongs to
        success: Whether the transition was applied
        reason: Failure reason or rejection reason
        details: Additional context (selected program, enrollment ids)

    Returns:
        The created AuditEvent
    """
    payload = dict(details or {})
    if reason:
        payload["reason"] = reason

    return log_audit(
        action=action,
        resource_type="suggestion",
        resource_id=suggestion_id,
        patient_id=patient_id,
        user_id=reviewer_id,
        details=payload or None,
        success=success,
    )


def log_data_access(
    resource_type: str,
    resource_id: str | None = None,
    patient_id: str | None = None,
    user_id: str | None = None,
    action: AuditAction = AuditAction.READ,
) -> AuditEvent:
    """Log a data access event.

    Convenience function for common data access auditing.
    """
    return log_audit(
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        patient_id=patient_id,
        user_id=user_id,
    )
