# (c) Copyright Datacraft, 2026
"""Entity directory data models."""
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, ConfigDict, field_validator

from access_engine.utils import as_utc, utc_now


class ConditionType(str, Enum):
	"""Kinds of conditions that can narrow a permission."""
	TIME_RANGE = 'time_range'
	IP_RANGE = 'ip_range'
	ATTRIBUTE_MATCH = 'attribute_match'
	USER_ATTRIBUTE = 'user_attribute'
	CUSTOM = 'custom'


# Conditions

class TimeRangeCondition(BaseModel):
	"""Permission applies only between start and end (both inclusive)."""
	model_config = ConfigDict(frozen=True)

	kind: Literal['time_range'] = ConditionType.TIME_RANGE.value
	start: datetime | None = None  # open when missing
	end: datetime | None = None

	@field_validator('start', 'end')
	@classmethod
	def _assume_utc(cls, value: datetime | None) -> datetime | None:
		return as_utc(value)


class IPRangeCondition(BaseModel):
	"""Permission applies only to requests from the listed addresses or networks."""
	model_config = ConfigDict(frozen=True)

	kind: Literal['ip_range'] = ConditionType.IP_RANGE.value
	allowed: tuple[str, ...] = ()


class AttributeMatchCondition(BaseModel):
	"""Request context attribute must equal the expected value exactly."""
	model_config = ConfigDict(frozen=True)

	kind: Literal['attribute_match'] = ConditionType.ATTRIBUTE_MATCH.value
	key: str
	expected: Any


class UserAttributeCondition(BaseModel):
	"""Principal metadata attribute must equal the expected value exactly."""
	model_config = ConfigDict(frozen=True)

	kind: Literal['user_attribute'] = ConditionType.USER_ATTRIBUTE.value
	key: str
	expected: Any


class CustomCondition(BaseModel):
	"""Delegates to a handler registered on the condition evaluator."""
	model_config = ConfigDict(frozen=True)

	kind: Literal['custom'] = ConditionType.CUSTOM.value
	handler: str
	parameters: dict[str, Any] = Field(default_factory=dict)


Condition = Annotated[
	Union[
		TimeRangeCondition,
		IPRangeCondition,
		AttributeMatchCondition,
		UserAttributeCondition,
		CustomCondition,
	],
	Field(discriminator='kind'),
]


# Entities
#
# Entities are frozen. The directory replaces an entity instead of
# mutating it, so a reference obtained by a reader never changes.

class Permission(BaseModel):
	"""Grants a set of actions on one resource, subject to conditions."""
	model_config = ConfigDict(frozen=True)

	id: str
	name: str | None = None
	description: str | None = None
	resource: str
	actions: frozenset[str] = frozenset()
	conditions: tuple[Condition, ...] = ()
	is_active: bool = True
	created_at: datetime = Field(default_factory=utc_now)

	def __repr__(self):
		return f"Permission({self.id}: {self.resource} {sorted(self.actions)})"


class Role(BaseModel):
	"""Named bundle of permissions."""
	model_config = ConfigDict(frozen=True)

	id: str
	name: str | None = None
	description: str | None = None
	permission_ids: frozenset[str] = frozenset()
	is_active: bool = True
	created_at: datetime = Field(default_factory=utc_now)
	metadata: dict[str, Any] = Field(default_factory=dict)

	def __repr__(self):
		return f"Role({self.id})"


class User(BaseModel):
	"""Principal with role memberships and direct grants."""
	model_config = ConfigDict(frozen=True)

	id: str
	username: str | None = None
	email: str | None = None
	role_ids: frozenset[str] = frozenset()
	permission_ids: frozenset[str] = frozenset()
	is_active: bool = True
	created_at: datetime = Field(default_factory=utc_now)
	last_login_at: datetime | None = None
	metadata: dict[str, Any] = Field(default_factory=dict)

	def __repr__(self):
		return f"User({self.id})"


class DirectoryCounts(BaseModel):
	"""Entity counts taken at one point in time."""
	total_users: int = 0
	active_users: int = 0
	total_roles: int = 0
	active_roles: int = 0
	total_permissions: int = 0
	active_permissions: int = 0
