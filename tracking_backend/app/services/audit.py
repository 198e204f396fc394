"""
Audit logging service.

Audit entries are handed to the "tracking.audit" logger as structured
records; whatever handler is attached there (log shipper, SIEM, audit table)
owns their storage.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any

audit_logger = logging.getLogger("tracking.audit")


class AuditAction:
    """Standardized audit action constants."""
    ORDER_CREATED = "ORDER_CREATED"
    ORDER_DELETED = "ORDER_DELETED"
    STATUS_UPDATE = "STATUS_UPDATE"
    METADATA_UPDATE = "METADATA_UPDATE"
    PACKAGE_MATERIALIZED = "PACKAGE_MATERIALIZED"
    ISSUE_REPORTED = "ISSUE_REPORTED"
    ISSUE_CLEARED = "ISSUE_CLEARED"
    ORDER_UPDATED = "ORDER_UPDATED"
    PACKAGES_RECONCILED = "PACKAGES_RECONCILED"
    PARTIAL_UPDATE = "PARTIAL_UPDATE"


class AuditSeverity:
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


_LEVELS = {
    AuditSeverity.INFO: logging.INFO,
    AuditSeverity.WARNING: logging.WARNING,
    AuditSeverity.CRITICAL: logging.CRITICAL,
}


def log_event(
    action: str,
    actor_id: Optional[str] = None,
    target_id: Optional[str] = None,
    details: str = "",
    metadata: Optional[Dict[str, Any]] = None,
    severity: str = AuditSeverity.INFO,
) -> Dict[str, Any]:
    """
    Emit an audit entry.

    Args:
        action: Action being performed (use AuditAction constants)
        actor_id: ID of the actor performing the action
        target_id: ID of the package or order acted upon
        details: Human readable summary
        metadata: Additional context
        severity: AuditSeverity constant

    Returns:
        The emitted entry
    """
    entry = {
        "action": action,
        "actor_id": actor_id,
        "target_id": target_id,
        "details": details,
        "meta_data": metadata or {},
        "severity": severity,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    audit_logger.log(_LEVELS.get(severity, logging.INFO), "%s: %s", action, details, extra={"audit": entry})
    return entry
