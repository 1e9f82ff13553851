# (c) Copyright Datacraft, 2026
"""Permission and dynamic policy evaluation."""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from access_engine.directory import Condition, EntityDirectory, Permission, User
from access_engine.errors import AlreadyExistsError, NotFoundError
from access_engine.utils import Clock, SystemClock
from .conditions import ConditionEvaluator
from .models import DynamicPolicy

logger = logging.getLogger(__name__)


@dataclass
class GrantEvaluation:
	"""Everything that contributed to a grant decision."""
	granted: bool
	permission_ids: list[str] = field(default_factory=list)
	role_ids: list[str] = field(default_factory=list)
	policy_ids: list[str] = field(default_factory=list)


class PolicyEvaluator:
	"""
	Decides whether a principal holds a grant for a resource and action.

	Permissions combine as follows: conditions on one permission are
	AND-ed, while direct permissions, role permissions and dynamic
	policies are OR-ed. Inactive roles and permissions are treated as
	if they did not exist.
	"""

	def __init__(
		self,
		directory: EntityDirectory,
		clock: Clock | None = None,
		conditions: ConditionEvaluator | None = None,
	):
		self.directory = directory
		self.clock = clock or SystemClock()
		self.conditions = conditions or ConditionEvaluator()
		self._policies: dict[str, DynamicPolicy] = {}
		self._lock = threading.Lock()

	def matches(
		self,
		permission: Permission,
		resource: str,
		action: str,
		context: dict[str, Any],
		user: User | None = None,
	) -> bool:
		"""Check if a single permission grants `action` on `resource`."""
		if not permission.is_active:
			return False
		if permission.resource != resource:
			return False
		if action not in permission.actions:
			return False
		return self.conditions.evaluate_all(
			permission.conditions, context, self.clock.now(), user
		)

	def policy_matches(
		self,
		policy: DynamicPolicy,
		user: User,
		resource: str,
		action: str,
		context: dict[str, Any],
	) -> bool:
		"""Check if a dynamic policy grants `action` on `resource`."""
		if not policy.is_active:
			return False
		if action not in policy.actions:
			return False
		if not policy.matches_resource(resource):
			return False
		return self.conditions.evaluate_all(
			policy.conditions, context, self.clock.now(), user
		)

	def has_grant(
		self,
		user: User,
		resource: str,
		action: str,
		context: dict[str, Any],
	) -> bool:
		"""True as soon as any direct, role or dynamic grant matches."""
		for _, permission in self.directory.resolve_grants(user):
			if self.matches(permission, resource, action, context, user):
				return True

		for policy in self.list_dynamic_policies():
			if self.policy_matches(policy, user, resource, action, context):
				return True

		return False

	def evaluate(
		self,
		user: User,
		resource: str,
		action: str,
		context: dict[str, Any],
	) -> GrantEvaluation:
		"""Like has_grant, but collects every contributing grant."""
		permission_ids: list[str] = []
		role_ids: list[str] = []
		policy_ids: list[str] = []

		for role_id, permission in self.directory.resolve_grants(user):
			if not self.matches(permission, resource, action, context, user):
				continue
			if permission.id not in permission_ids:
				permission_ids.append(permission.id)
			if role_id is not None and role_id not in role_ids:
				role_ids.append(role_id)

		for policy in self.list_dynamic_policies():
			if self.policy_matches(policy, user, resource, action, context):
				policy_ids.append(policy.id)

		return GrantEvaluation(
			granted=bool(permission_ids or policy_ids),
			permission_ids=permission_ids,
			role_ids=role_ids,
			policy_ids=policy_ids,
		)

	def decision_valid_until(
		self,
		user: User,
		resource: str,
		action: str,
		now: datetime,
	) -> datetime | None:
		"""
		Earliest time window boundary after `now` among the grants that
		apply to `resource` and `action`.

		A decision taken at `now` may change at that instant, so it must
		not be reused past it. None if no time window is involved.
		"""
		conditions: list[Condition] = []
		for _, permission in self.directory.resolve_grants(user):
			if (
				permission.is_active
				and permission.resource == resource
				and action in permission.actions
			):
				conditions.extend(permission.conditions)

		for policy in self.list_dynamic_policies():
			if (
				policy.is_active
				and action in policy.actions
				and policy.matches_resource(resource)
			):
				conditions.extend(policy.conditions)

		return self.conditions.next_transition(conditions, now)

	# Dynamic policy management

	def add_dynamic_policy(self, policy: DynamicPolicy) -> DynamicPolicy:
		with self._lock:
			if policy.id in self._policies:
				raise AlreadyExistsError(f"Dynamic policy already exists: {policy.id}")
			self._policies[policy.id] = policy
		logger.info(f"Added dynamic policy {policy.id} ({policy.resource_pattern})")
		return policy

	def remove_dynamic_policy(self, policy_id: str) -> DynamicPolicy:
		with self._lock:
			policy = self._policies.pop(policy_id, None)
		if policy is None:
			raise NotFoundError(f"Dynamic policy not found: {policy_id}")
		logger.info(f"Removed dynamic policy {policy_id}")
		return policy

	def list_dynamic_policies(self) -> list[DynamicPolicy]:
		"""Policies ordered by priority."""
		with self._lock:
			policies = list(self._policies.values())
		return sorted(policies, key=lambda p: p.priority)
