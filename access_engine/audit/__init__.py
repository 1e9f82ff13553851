# (c) Copyright Datacraft, 2026
"""Audit trail."""
from .log import AuditLog
from .models import AuditAction, AuditLogEntry, AuditResult

__all__ = [
	'AuditLog',
	'AuditAction',
	'AuditLogEntry',
	'AuditResult',
]
