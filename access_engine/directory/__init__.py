# (c) Copyright Datacraft, 2026
"""Entity directory: users, roles and permissions."""
from .models import (
	User, Role, Permission, Condition, ConditionType,
	TimeRangeCondition, IPRangeCondition, AttributeMatchCondition,
	UserAttributeCondition, CustomCondition, DirectoryCounts,
)
from .store import EntityDirectory

__all__ = [
	'User',
	'Role',
	'Permission',
	'Condition',
	'ConditionType',
	'TimeRangeCondition',
	'IPRangeCondition',
	'AttributeMatchCondition',
	'UserAttributeCondition',
	'CustomCondition',
	'DirectoryCounts',
	'EntityDirectory',
]
