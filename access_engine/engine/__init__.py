# (c) Copyright Datacraft, 2026
"""Access control engine orchestration."""
from .maintenance import MaintenanceTask
from .results import (
	EngineState, DecisionOutcome, DenyReason, ErrorReason, PermissionRequest,
	PermissionDecision, BatchCheckItem, BatchCheckResult, PolicyEvaluation,
	OperationResult, CleanupReport,
)
from .service import AccessControlEngine

__all__ = [
	'AccessControlEngine',
	'MaintenanceTask',
	'EngineState',
	'DecisionOutcome',
	'DenyReason',
	'ErrorReason',
	'PermissionRequest',
	'PermissionDecision',
	'BatchCheckItem',
	'BatchCheckResult',
	'PolicyEvaluation',
	'OperationResult',
	'CleanupReport',
]
