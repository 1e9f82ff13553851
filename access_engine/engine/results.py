# (c) Copyright Datacraft, 2026
"""Requests and results exchanged with the access control engine."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from access_engine.errors import ErrorKind


class EngineState(str, Enum):
	"""Lifecycle of the engine."""
	INITIALIZING = 'initializing'
	READY = 'ready'
	ERROR = 'error'
	STOPPED = 'stopped'


class DecisionOutcome(str, Enum):
	"""Outcome of a permission check."""
	GRANTED = 'granted'
	DENIED = 'denied'
	ERROR = 'error'


class DenyReason:
	"""Reasons attached to denied decisions."""
	USER_INACTIVE = 'UserInactive'
	SESSION_INVALID = 'SessionInvalid'
	INSUFFICIENT_PERMISSION = 'InsufficientPermission'


class ErrorReason:
	"""Reasons attached to error decisions."""
	USER_NOT_FOUND = 'UserNotFound'


class PermissionRequest(BaseModel):
	"""One entry of a batch permission check."""
	resource: str
	action: str
	context: dict[str, Any] = Field(default_factory=dict)


@dataclass(frozen=True)
class PermissionDecision:
	"""
	Result of a permission check.

	DENIED means evaluation completed and found no grant. ERROR means the
	request could not be evaluated; `error` carries the kind.
	"""
	outcome: DecisionOutcome
	reason: str | None = None
	error: ErrorKind | None = None
	cached: bool = False

	@property
	def granted(self) -> bool:
		return self.outcome == DecisionOutcome.GRANTED

	@property
	def denied(self) -> bool:
		return self.outcome == DecisionOutcome.DENIED

	@property
	def is_error(self) -> bool:
		return self.outcome == DecisionOutcome.ERROR

	@classmethod
	def grant(cls, cached: bool = False) -> "PermissionDecision":
		return cls(outcome=DecisionOutcome.GRANTED, cached=cached)

	@classmethod
	def deny(cls, reason: str, cached: bool = False) -> "PermissionDecision":
		return cls(outcome=DecisionOutcome.DENIED, reason=reason, cached=cached)

	@classmethod
	def fail(cls, error: ErrorKind, reason: str) -> "PermissionDecision":
		return cls(outcome=DecisionOutcome.ERROR, reason=reason, error=error)


@dataclass(frozen=True)
class BatchCheckItem:
	"""Outcome of one request of a batch."""
	resource: str
	action: str
	decision: PermissionDecision

	@property
	def granted(self) -> bool:
		return self.decision.granted


@dataclass
class BatchCheckResult:
	"""Per-request outcomes of a batch check, in request order."""
	user_id: str
	items: list[BatchCheckItem] = field(default_factory=list)

	@property
	def granted_count(self) -> int:
		return sum(1 for item in self.items if item.decision.granted)

	@property
	def denied_count(self) -> int:
		return sum(1 for item in self.items if item.decision.denied)

	@property
	def error_count(self) -> int:
		return sum(1 for item in self.items if item.decision.is_error)


@dataclass
class PolicyEvaluation:
	"""Explanation of a decision: what contributed and how long it took."""
	user_id: str
	resource: str
	action: str
	outcome: DecisionOutcome
	reason: str | None = None
	error: ErrorKind | None = None
	permission_ids: list[str] = field(default_factory=list)
	role_ids: list[str] = field(default_factory=list)
	policy_ids: list[str] = field(default_factory=list)
	evaluation_time_ms: float = 0

	@property
	def granted(self) -> bool:
		return self.outcome == DecisionOutcome.GRANTED


@dataclass
class OperationResult:
	"""Result of a directory or policy mutation."""
	success: bool
	entity: Any = None
	error: ErrorKind | None = None
	message: str | None = None

	@classmethod
	def ok(cls, entity: Any = None, message: str | None = None) -> "OperationResult":
		return cls(success=True, entity=entity, message=message)

	@classmethod
	def failed(cls, error: ErrorKind, message: str) -> "OperationResult":
		return cls(success=False, error=error, message=message)


@dataclass
class CleanupReport:
	"""What one maintenance run removed, and which steps failed."""
	sessions_removed: int = 0
	cache_entries_removed: int = 0
	audit_entries_removed: int = 0
	errors: dict[str, str] = field(default_factory=dict)

	@property
	def success(self) -> bool:
		return not self.errors
