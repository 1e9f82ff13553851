# (c) Copyright Datacraft, 2026
"""Audit trail models."""
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ConfigDict
from uuid_extensions import uuid7str

from access_engine.utils import utc_now


class AuditAction(str, Enum):
	"""Kinds of audited events."""
	PERMISSION_CHECK = 'PERMISSION_CHECK'
	USER_CREATED = 'USER_CREATED'
	USER_UPDATED = 'USER_UPDATED'
	ROLE_CREATED = 'ROLE_CREATED'
	ROLE_UPDATED = 'ROLE_UPDATED'
	ROLE_ASSIGNED = 'ROLE_ASSIGNED'
	ROLE_REVOKED = 'ROLE_REVOKED'
	PERMISSION_CREATED = 'PERMISSION_CREATED'
	PERMISSION_UPDATED = 'PERMISSION_UPDATED'
	PERMISSION_DELETED = 'PERMISSION_DELETED'
	PERMISSION_GRANTED = 'PERMISSION_GRANTED'
	PERMISSION_REVOKED = 'PERMISSION_REVOKED'
	POLICY_ADDED = 'POLICY_ADDED'
	POLICY_REMOVED = 'POLICY_REMOVED'
	ERROR = 'ERROR'


class AuditResult:
	"""Result strings for non-check events."""
	SUCCESS = 'SUCCESS'
	FAILURE = 'FAILURE'
	ERROR = 'ERROR'


class AuditLogEntry(BaseModel):
	"""One immutable audit record."""
	model_config = ConfigDict(frozen=True)

	id: str = Field(default_factory=uuid7str)
	user_id: str | None = None
	action: AuditAction
	resource: str | None = None
	result: str
	timestamp: datetime = Field(default_factory=utc_now)
	client_ip: str | None = None
	user_agent: str | None = None
	details: dict[str, Any] = Field(default_factory=dict)
