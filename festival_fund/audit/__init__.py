"""Audit logging package."""

from festival_fund.audit.logger import AuditLogger, ConsistencyWarning, create_correlation_id

__all__ = ["AuditLogger", "ConsistencyWarning", "create_correlation_id"]
