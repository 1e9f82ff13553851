# (c) Copyright Datacraft, 2026
"""Policy evaluation: permission conditions and dynamic policies."""
from .conditions import ConditionEvaluator, CustomHandler, CLIENT_IP
from .evaluator import PolicyEvaluator, GrantEvaluation
from .models import DynamicPolicy

__all__ = [
	'ConditionEvaluator',
	'CustomHandler',
	'CLIENT_IP',
	'PolicyEvaluator',
	'GrantEvaluation',
	'DynamicPolicy',
]
