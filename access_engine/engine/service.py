# (c) Copyright Datacraft, 2026
"""
Access control engine.

Orchestrates the entity directory, policy evaluator, decision cache,
audit log and statistics. Every public operation is a coroutine and
returns a result object; directory errors never propagate to callers.
"""
import logging
import time
from datetime import datetime
from typing import Any, Callable, Iterable

from access_engine.audit import AuditAction, AuditLog, AuditLogEntry, AuditResult
from access_engine.cache import CacheEntry, DecisionCache
from access_engine.config import Settings, get_settings
from access_engine.directory import (
	Condition, EntityDirectory, Permission, Role, User,
)
from access_engine.errors import (
	AccessControlError, ErrorKind, NotFoundError, SystemNotReadyError,
)
from access_engine.policy import (
	ConditionEvaluator, CustomHandler, DynamicPolicy, PolicyEvaluator,
)
from access_engine.sessions import SessionValidator
from access_engine.stats import (
	PermissionStatistics, StatisticsCollector, cache_hit_rate,
)
from access_engine.utils import Clock, SystemClock, elapsed_ms
from .defaults import DEFAULT_PERMISSIONS, DEFAULT_ROLES, SYSTEM_ACTOR
from .maintenance import MaintenanceTask
from .results import (
	BatchCheckItem, BatchCheckResult, CleanupReport, DecisionOutcome,
	DenyReason, EngineState, ErrorReason, OperationResult, PermissionDecision,
	PermissionRequest, PolicyEvaluation,
)

logger = logging.getLogger(__name__)


class AccessControlEngine:
	"""
	Role based access control with conditional permissions.

	Usage:

		async with AccessControlEngine() as engine:
			await engine.create_user('u1', role_ids=['editor'])
			decision = await engine.check_permission('u1', 'data', 'write')
	"""

	def __init__(
		self,
		settings: Settings | None = None,
		clock: Clock | None = None,
		session_validator: SessionValidator | None = None,
		condition_evaluator: ConditionEvaluator | None = None,
		default_permissions: list[dict[str, Any]] | None = None,
		default_roles: list[dict[str, Any]] | None = None,
	):
		self.settings = settings or get_settings()
		self.clock = clock or SystemClock()
		self.session_validator = session_validator
		self.state = EngineState.INITIALIZING

		self._default_permissions = (
			DEFAULT_PERMISSIONS if default_permissions is None else default_permissions
		)
		self._default_roles = DEFAULT_ROLES if default_roles is None else default_roles

		self._directory = EntityDirectory()
		self._evaluator = PolicyEvaluator(
			self._directory,
			clock=self.clock,
			conditions=condition_evaluator,
		)
		self._cache = DecisionCache(
			max_size=self.settings.max_cache_size,
			clock=self.clock,
		)
		self._audit = AuditLog(
			max_entries=self.settings.max_audit_entries,
			clock=self.clock,
			enabled=self.settings.audit_enabled,
		)
		self._stats = StatisticsCollector()
		self._maintenance = MaintenanceTask(
			self.cleanup_expired_data,
			self.settings.maintenance_interval,
		)

	async def __aenter__(self) -> "AccessControlEngine":
		await self.initialize()
		return self

	async def __aexit__(self, exc_type, exc, tb) -> None:
		await self.shutdown()

	@property
	def is_ready(self) -> bool:
		return self.state == EngineState.READY

	@property
	def maintenance(self) -> MaintenanceTask:
		return self._maintenance

	# Lifecycle

	async def initialize(self) -> EngineState:
		"""
		Seed default data and start maintenance.

		A seeding failure leaves the engine in the ERROR state for good.
		Calling initialize on an engine that already left INITIALIZING
		does nothing.
		"""
		if self.state != EngineState.INITIALIZING:
			return self.state

		if self.settings.seed_defaults:
			try:
				self._seed_defaults()
			except Exception as e:
				logger.exception("Failed to initialize access control engine")
				self._audit.log_error(
					"Failed to seed default data", SYSTEM_ACTOR, None, e,
				)
				self.state = EngineState.ERROR
				return self.state

		if self.settings.start_maintenance:
			self._maintenance.start()

		self.state = EngineState.READY
		logger.info("Access control engine initialized")
		return self.state

	async def shutdown(self) -> None:
		await self._maintenance.stop()
		if self.state != EngineState.ERROR:
			self.state = EngineState.STOPPED
		logger.info("Access control engine stopped")

	def _seed_defaults(self) -> None:
		for spec in self._default_permissions:
			self._directory.create_permission(**spec)
		for spec in self._default_roles:
			self._directory.create_role(**spec)
		logger.info(
			f"Seeded {len(self._default_permissions)} permissions"
			f" and {len(self._default_roles)} roles"
		)

	# Creation

	async def create_user(
		self,
		user_id: str,
		role_ids: Iterable[str] = (),
		permission_ids: Iterable[str] = (),
		username: str | None = None,
		email: str | None = None,
		is_active: bool = True,
		metadata: dict[str, Any] | None = None,
		created_by: str = SYSTEM_ACTOR,
	) -> OperationResult:
		role_ids = list(role_ids)
		return self._mutate(
			lambda: self._directory.create_user(
				user_id,
				role_ids=role_ids,
				permission_ids=permission_ids,
				username=username,
				email=email,
				is_active=is_active,
				metadata=metadata,
				created_at=self.clock.now(),
			),
			AuditAction.USER_CREATED,
			actor=created_by,
			resource=f"user:{user_id}",
			message=f"User {user_id} created",
			user_id=user_id,
			role_ids=role_ids,
		)

	async def create_role(
		self,
		role_id: str,
		permission_ids: Iterable[str] = (),
		name: str | None = None,
		description: str | None = None,
		metadata: dict[str, Any] | None = None,
		created_by: str = SYSTEM_ACTOR,
	) -> OperationResult:
		permission_ids = list(permission_ids)
		return self._mutate(
			lambda: self._directory.create_role(
				role_id,
				permission_ids=permission_ids,
				name=name,
				description=description,
				metadata=metadata,
				created_at=self.clock.now(),
			),
			AuditAction.ROLE_CREATED,
			actor=created_by,
			resource=f"role:{role_id}",
			message=f"Role {role_id} created",
			role_id=role_id,
			permission_ids=permission_ids,
		)

	async def create_permission(
		self,
		permission_id: str,
		resource: str,
		actions: Iterable[str],
		conditions: Iterable[Condition] = (),
		name: str | None = None,
		description: str | None = None,
		created_by: str = SYSTEM_ACTOR,
	) -> OperationResult:
		if isinstance(actions, str):
			actions = [actions]
		actions = sorted(actions)
		return self._mutate(
			lambda: self._directory.create_permission(
				permission_id,
				resource=resource,
				actions=actions,
				conditions=conditions,
				name=name,
				description=description,
				created_at=self.clock.now(),
			),
			AuditAction.PERMISSION_CREATED,
			actor=created_by,
			resource=f"permission:{permission_id}",
			message=f"Permission {permission_id} created",
			permission_id=permission_id,
			target_resource=resource,
			actions=actions,
		)

	# Assignments

	async def assign_role(
		self,
		user_id: str,
		role_id: str,
		assigned_by: str = SYSTEM_ACTOR,
	) -> OperationResult:
		"""Give a role to a user; cached decisions of the user are dropped."""
		result = self._mutate(
			lambda: self._directory.assign_role(user_id, role_id),
			AuditAction.ROLE_ASSIGNED,
			actor=assigned_by,
			resource=f"user:{user_id}",
			message=f"Role {role_id} assigned to user {user_id}",
			invalidate=lambda: [user_id],
			user_id=user_id,
			role_id=role_id,
		)
		if result.success:
			self._stats.record_role_assignment()
		return result

	async def revoke_role(
		self,
		user_id: str,
		role_id: str,
		revoked_by: str = SYSTEM_ACTOR,
	) -> OperationResult:
		"""Take a role from a user; later checks no longer see it."""
		result = self._mutate(
			lambda: self._directory.revoke_role(user_id, role_id),
			AuditAction.ROLE_REVOKED,
			actor=revoked_by,
			resource=f"user:{user_id}",
			message=f"Role {role_id} revoked from user {user_id}",
			invalidate=lambda: [user_id],
			user_id=user_id,
			role_id=role_id,
		)
		if result.success:
			self._stats.record_role_revocation()
		return result

	async def grant_permission(
		self,
		user_id: str,
		permission_id: str,
		granted_by: str = SYSTEM_ACTOR,
	) -> OperationResult:
		return self._mutate(
			lambda: self._directory.grant_permission(user_id, permission_id),
			AuditAction.PERMISSION_GRANTED,
			actor=granted_by,
			resource=f"user:{user_id}",
			message=f"Permission {permission_id} granted to user {user_id}",
			invalidate=lambda: [user_id],
			user_id=user_id,
			permission_id=permission_id,
		)

	async def revoke_permission(
		self,
		user_id: str,
		permission_id: str,
		revoked_by: str = SYSTEM_ACTOR,
	) -> OperationResult:
		return self._mutate(
			lambda: self._directory.revoke_permission(user_id, permission_id),
			AuditAction.PERMISSION_REVOKED,
			actor=revoked_by,
			resource=f"user:{user_id}",
			message=f"Permission {permission_id} revoked from user {user_id}",
			invalidate=lambda: [user_id],
			user_id=user_id,
			permission_id=permission_id,
		)

	# Activation and removal

	async def set_user_active(
		self,
		user_id: str,
		is_active: bool,
		updated_by: str = SYSTEM_ACTOR,
	) -> OperationResult:
		return self._mutate(
			lambda: self._directory.set_user_active(user_id, is_active),
			AuditAction.USER_UPDATED,
			actor=updated_by,
			resource=f"user:{user_id}",
			message=f"User {user_id} is_active set to {is_active}",
			invalidate=lambda: [user_id],
			user_id=user_id,
			is_active=is_active,
		)

	async def set_role_active(
		self,
		role_id: str,
		is_active: bool,
		updated_by: str = SYSTEM_ACTOR,
	) -> OperationResult:
		return self._mutate(
			lambda: self._directory.set_role_active(role_id, is_active),
			AuditAction.ROLE_UPDATED,
			actor=updated_by,
			resource=f"role:{role_id}",
			message=f"Role {role_id} is_active set to {is_active}",
			invalidate=lambda: self._directory.users_with_role(role_id),
			role_id=role_id,
			is_active=is_active,
		)

	async def set_permission_active(
		self,
		permission_id: str,
		is_active: bool,
		updated_by: str = SYSTEM_ACTOR,
	) -> OperationResult:
		return self._mutate(
			lambda: self._directory.set_permission_active(permission_id, is_active),
			AuditAction.PERMISSION_UPDATED,
			actor=updated_by,
			resource=f"permission:{permission_id}",
			message=f"Permission {permission_id} is_active set to {is_active}",
			invalidate=lambda: self._directory.users_affected_by_permission(permission_id),
			permission_id=permission_id,
			is_active=is_active,
		)

	async def delete_permission(
		self,
		permission_id: str,
		deleted_by: str = SYSTEM_ACTOR,
	) -> OperationResult:
		"""Delete a permission; roles and users referencing it lose it."""
		# Holders must be computed before the references are stripped
		affected = self._directory.users_affected_by_permission(permission_id)
		return self._mutate(
			lambda: self._directory.delete_permission(permission_id),
			AuditAction.PERMISSION_DELETED,
			actor=deleted_by,
			resource=f"permission:{permission_id}",
			message=f"Permission {permission_id} deleted",
			invalidate=lambda: affected,
			permission_id=permission_id,
			affected_users=len(affected),
		)

	async def record_login(self, user_id: str) -> OperationResult:
		return self._mutate(
			lambda: self._directory.record_login(user_id, self.clock.now()),
			AuditAction.USER_UPDATED,
			actor=user_id,
			resource=f"user:{user_id}",
			message=f"Login recorded for user {user_id}",
			user_id=user_id,
			event='login',
		)

	# Dynamic policies and custom conditions

	async def add_dynamic_policy(
		self,
		policy: DynamicPolicy,
		added_by: str = SYSTEM_ACTOR,
	) -> OperationResult:
		"""Add a policy; it may affect any user, so the cache is cleared."""
		return self._mutate(
			lambda: self._evaluator.add_dynamic_policy(policy),
			AuditAction.POLICY_ADDED,
			actor=added_by,
			resource=f"policy:{policy.id}",
			message=f"Dynamic policy {policy.id} added",
			clear_cache=True,
			policy_id=policy.id,
			resource_pattern=policy.resource_pattern,
		)

	async def remove_dynamic_policy(
		self,
		policy_id: str,
		removed_by: str = SYSTEM_ACTOR,
	) -> OperationResult:
		return self._mutate(
			lambda: self._evaluator.remove_dynamic_policy(policy_id),
			AuditAction.POLICY_REMOVED,
			actor=removed_by,
			resource=f"policy:{policy_id}",
			message=f"Dynamic policy {policy_id} removed",
			clear_cache=True,
			policy_id=policy_id,
		)

	async def list_dynamic_policies(self) -> list[DynamicPolicy]:
		return self._evaluator.list_dynamic_policies()

	def register_custom_condition(self, name: str, handler: CustomHandler) -> None:
		"""Register a handler for custom conditions named `name`."""
		self._evaluator.conditions.register_custom_handler(name, handler)
		self._cache.clear()

	def unregister_custom_condition(self, name: str) -> bool:
		removed = self._evaluator.conditions.unregister_custom_handler(name)
		if removed:
			self._cache.clear()
		return removed

	# Lookups

	async def get_user(self, user_id: str) -> User | None:
		user = self._directory.get_user(user_id)
		return user.model_copy(deep=True) if user else None

	async def get_role(self, role_id: str) -> Role | None:
		role = self._directory.get_role(role_id)
		return role.model_copy(deep=True) if role else None

	async def get_permission(self, permission_id: str) -> Permission | None:
		permission = self._directory.get_permission(permission_id)
		return permission.model_copy(deep=True) if permission else None

	async def list_users(self, active_only: bool = False) -> list[User]:
		return self._directory.list_users(active_only)

	async def list_roles(self, active_only: bool = False) -> list[Role]:
		return self._directory.list_roles(active_only)

	async def list_permissions(self, active_only: bool = False) -> list[Permission]:
		return self._directory.list_permissions(active_only)

	async def get_user_permissions(self, user_id: str) -> OperationResult:
		"""Active permissions a user holds directly or through active roles."""
		user = self._directory.get_user(user_id)
		if user is None:
			return OperationResult.failed(
				ErrorKind.NOT_FOUND, f"User not found: {user_id}"
			)
		permissions: dict[str, Permission] = {}
		for _, permission in self._directory.resolve_grants(user):
			if permission.is_active:
				permissions.setdefault(permission.id, permission)
		return OperationResult.ok(list(permissions.values()))

	# Checks

	async def check_permission(
		self,
		user_id: str,
		resource: str,
		action: str,
		context: dict[str, Any] | None = None,
	) -> PermissionDecision:
		"""
		Decide whether a user may perform `action` on `resource`.

		Every call produces exactly one audit entry and one statistics
		update carrying the final outcome. Failures are reported as ERROR
		decisions and never turned into denials.
		"""
		context = dict(context or {})
		started = time.perf_counter()
		try:
			decision = await self._decide(user_id, resource, action, context)
		except Exception as e:
			logger.exception(f"Permission check failed for user {user_id}")
			self._audit.log_error(
				"Permission check failed", user_id, resource, e, requested_action=action,
			)
			decision = PermissionDecision.fail(ErrorKind.UNEXPECTED, str(e))
		self._record_check(
			user_id, resource, action, context, decision,
			elapsed_ms(started, time.perf_counter()),
		)
		return decision

	async def batch_check_permissions(
		self,
		user_id: str,
		requests: Iterable[PermissionRequest | dict[str, Any]],
	) -> BatchCheckResult:
		"""
		Check several requests for one user, in order.

		A malformed request yields an INVALID_ARGUMENT item and the rest of
		the batch is still checked.
		"""
		result = BatchCheckResult(user_id=user_id)
		for request in requests:
			if not isinstance(request, PermissionRequest):
				try:
					request = PermissionRequest.model_validate(request)
				except ValueError as e:
					logger.warning(f"Invalid batch request for user {user_id}: {e}")
					result.items.append(
						BatchCheckItem(
							resource=_request_field(request, 'resource'),
							action=_request_field(request, 'action'),
							decision=PermissionDecision.fail(
								ErrorKind.INVALID_ARGUMENT, str(e)
							),
						)
					)
					continue
			decision = await self.check_permission(
				user_id, request.resource, request.action, request.context,
			)
			result.items.append(
				BatchCheckItem(
					resource=request.resource,
					action=request.action,
					decision=decision,
				)
			)
		return result

	async def evaluate_policy(
		self,
		user_id: str,
		resource: str,
		action: str,
		context: dict[str, Any] | None = None,
	) -> PolicyEvaluation:
		"""
		Explain a decision without touching the cache, audit or statistics.
		"""
		context = dict(context or {})
		started = time.perf_counter()
		evaluation = PolicyEvaluation(
			user_id=user_id,
			resource=resource,
			action=action,
			outcome=DecisionOutcome.DENIED,
		)
		try:
			self._require_ready()
			user = self._directory.get_user(user_id)
			if user is None:
				raise NotFoundError(f"User not found: {user_id}")
			if not user.is_active:
				evaluation.reason = DenyReason.USER_INACTIVE
			elif not await self._session_valid(user_id):
				evaluation.reason = DenyReason.SESSION_INVALID
			else:
				grants = self._evaluator.evaluate(user, resource, action, context)
				evaluation.permission_ids = grants.permission_ids
				evaluation.role_ids = grants.role_ids
				evaluation.policy_ids = grants.policy_ids
				if grants.granted:
					evaluation.outcome = DecisionOutcome.GRANTED
				else:
					evaluation.reason = DenyReason.INSUFFICIENT_PERMISSION
		except AccessControlError as e:
			evaluation.outcome = DecisionOutcome.ERROR
			evaluation.error = e.kind
			evaluation.reason = str(e)
		except Exception as e:
			logger.exception(f"Policy evaluation failed for user {user_id}")
			evaluation.outcome = DecisionOutcome.ERROR
			evaluation.error = ErrorKind.UNEXPECTED
			evaluation.reason = str(e)
		evaluation.evaluation_time_ms = elapsed_ms(started, time.perf_counter())
		return evaluation

	# Audit, statistics, maintenance

	async def get_audit_logs(
		self,
		user_id: str | None = None,
		resource: str | None = None,
		start_time: datetime | None = None,
		end_time: datetime | None = None,
		limit: int = 100,
		action: AuditAction | None = None,
	) -> list[AuditLogEntry]:
		return self._audit.query(
			user_id=user_id,
			resource=resource,
			start_time=start_time,
			end_time=end_time,
			limit=limit,
			action=action,
		)

	async def get_permission_statistics(self) -> PermissionStatistics:
		counters = self._stats.snapshot()
		counts = self._directory.counts()
		cache = self._cache.stats()
		return PermissionStatistics(
			state=self.state.value,
			total_users=counts.total_users,
			active_users=counts.active_users,
			total_roles=counts.total_roles,
			active_roles=counts.active_roles,
			total_permissions=counts.total_permissions,
			active_permissions=counts.active_permissions,
			total_checks=counters.total_checks,
			granted_checks=counters.granted_checks,
			denied_checks=counters.denied_checks,
			errored_checks=counters.errored_checks,
			cache_hits=counters.cache_hits,
			cache_hit_rate=cache_hit_rate(counters),
			cache_entries=cache.total_entries,
			cache_active_entries=cache.active_entries,
			cache_expired_entries=cache.expired_entries,
			max_cache_size=cache.max_size,
			role_assignments=counters.role_assignments,
			role_revocations=counters.role_revocations,
			cleanup_operations=counters.cleanup_operations,
			average_check_time_ms=counters.average_check_time_ms,
			audit_entries=len(self._audit),
		)

	async def cleanup_expired_data(self) -> CleanupReport:
		"""
		Remove expired sessions, cache entries and audit entries.

		The three steps are independent: a failing step is logged and
		reported while the others still run.
		"""
		report = CleanupReport()

		if self.session_validator is not None:
			try:
				report.sessions_removed = await self.session_validator.cleanup_expired_sessions()
			except Exception as e:
				logger.exception("Session cleanup failed")
				report.errors['sessions'] = str(e)

		try:
			report.cache_entries_removed = self._cache.sweep_expired()
		except Exception as e:
			logger.exception("Cache sweep failed")
			report.errors['cache'] = str(e)

		try:
			report.audit_entries_removed = self._audit.prune_older_than(
				self.settings.audit_retention
			)
		except Exception as e:
			logger.exception("Audit pruning failed")
			report.errors['audit'] = str(e)

		self._stats.record_cleanup()
		logger.info(
			f"Cleanup removed {report.sessions_removed} sessions,"
			f" {report.cache_entries_removed} cache entries,"
			f" {report.audit_entries_removed} audit entries"
		)
		return report

	# Internals

	def _require_ready(self) -> None:
		if self.state != EngineState.READY:
			raise SystemNotReadyError(
				f"Access control engine is {self.state.value}"
			)

	async def _session_valid(self, user_id: str) -> bool:
		if self.session_validator is None:
			return True
		return await self.session_validator.is_session_valid(user_id)

	async def _decide(
		self,
		user_id: str,
		resource: str,
		action: str,
		context: dict[str, Any],
	) -> PermissionDecision:
		if self.state != EngineState.READY:
			return PermissionDecision.fail(
				ErrorKind.SYSTEM_NOT_READY, f"Engine is {self.state.value}"
			)

		use_cache = self.settings.cache_enabled
		if use_cache:
			entry = self._cache.get(user_id, resource, action)
			if entry is not None:
				if entry.granted:
					return PermissionDecision.grant(cached=True)
				return PermissionDecision.deny(
					DenyReason.INSUFFICIENT_PERMISSION, cached=True
				)
		token = self._cache.generation_token(user_id)

		user = self._directory.get_user(user_id)
		if user is None:
			return PermissionDecision.fail(
				ErrorKind.NOT_FOUND, ErrorReason.USER_NOT_FOUND
			)
		if not user.is_active:
			return PermissionDecision.deny(DenyReason.USER_INACTIVE)
		if not await self._session_valid(user_id):
			return PermissionDecision.deny(DenyReason.SESSION_INVALID)

		# Taken before evaluation so no window boundary can slip in between
		now = self.clock.now()
		granted = self._evaluator.has_grant(user, resource, action, context)

		if use_cache:
			ttl = self.settings.cache_ttl
			valid_until = self._evaluator.decision_valid_until(user, resource, action, now)
			if valid_until is not None:
				ttl = min(ttl, valid_until - now)
			self._cache.put(
				CacheEntry(
					user_id=user_id,
					resource=resource,
					action=action,
					granted=granted,
					timestamp=now,
					ttl=ttl,
				),
				token,
			)

		if granted:
			return PermissionDecision.grant()
		return PermissionDecision.deny(DenyReason.INSUFFICIENT_PERMISSION)

	def _record_check(
		self,
		user_id: str,
		resource: str,
		action: str,
		context: dict[str, Any],
		decision: PermissionDecision,
		took_ms: float,
	) -> None:
		self._stats.record_check(
			granted=decision.granted,
			denied=decision.denied,
			cached=decision.cached,
			elapsed_ms=took_ms,
		)
		details: dict[str, Any] = {'cached': decision.cached}
		if decision.reason:
			details['reason'] = decision.reason
		if decision.error is not None:
			details['error'] = decision.error.value
		self._audit.log_permission_check(
			user_id, resource, action, context,
			result=decision.outcome.name,
			**details,
		)

	def _mutate(
		self,
		operation: Callable[[], Any],
		audit_action: AuditAction,
		actor: str,
		resource: str,
		message: str,
		invalidate: Callable[[], list[str]] | None = None,
		clear_cache: bool = False,
		**details,
	) -> OperationResult:
		"""
		Run a directory or policy change and convert its outcome.

		Success and failure are both audited; on success the cached
		decisions of the users returned by `invalidate` are dropped.
		"""
		try:
			entity = operation()
		except AccessControlError as e:
			logger.info(f"{audit_action.value} rejected: {e}")
			self._audit.log_event(
				audit_action, actor, resource,
				result=AuditResult.FAILURE, error=e.kind.value, message=str(e),
				**details,
			)
			return OperationResult.failed(e.kind, str(e))
		except ValueError as e:
			logger.warning(f"{audit_action.value} invalid argument: {e}")
			self._audit.log_event(
				audit_action, actor, resource,
				result=AuditResult.FAILURE,
				error=ErrorKind.INVALID_ARGUMENT.value, message=str(e),
				**details,
			)
			return OperationResult.failed(ErrorKind.INVALID_ARGUMENT, str(e))
		except Exception as e:
			logger.exception(f"{audit_action.value} failed")
			self._audit.log_error(
				f"{audit_action.value} failed", actor, resource, e,
				operation=audit_action.value, arguments=details,
			)
			return OperationResult.failed(ErrorKind.UNEXPECTED, str(e))

		if clear_cache:
			self._cache.clear()
		elif invalidate is not None:
			self._cache.invalidate_users(invalidate())

		self._audit.log_event(audit_action, actor, resource, **details)
		logger.info(message)
		return OperationResult.ok(entity, message)


def _request_field(request: Any, name: str) -> str:
	"""Read a field of a request that failed validation."""
	if isinstance(request, dict):
		value = request.get(name)
	else:
		value = getattr(request, name, None)
	return value if isinstance(value, str) else ''
