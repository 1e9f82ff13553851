# (c) Copyright Datacraft, 2026
"""In-memory role based access control with conditional permissions."""
from .engine import (
	AccessControlEngine, EngineState, DecisionOutcome, PermissionDecision,
	PermissionRequest, BatchCheckResult, PolicyEvaluation, OperationResult,
	CleanupReport,
)
from .errors import ErrorKind, AccessControlError

__version__ = "0.1.0"

__all__ = [
	'AccessControlEngine',
	'EngineState',
	'DecisionOutcome',
	'PermissionDecision',
	'PermissionRequest',
	'BatchCheckResult',
	'PolicyEvaluation',
	'OperationResult',
	'CleanupReport',
	'ErrorKind',
	'AccessControlError',
]
