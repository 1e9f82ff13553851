# (c) Copyright Datacraft, 2026
"""Tests for the access control engine."""
import asyncio
from datetime import timedelta

import pytest

from access_engine.audit import AuditAction, AuditResult
from access_engine.config import Settings
from access_engine.directory import CustomCondition, TimeRangeCondition
from access_engine.engine import (
	AccessControlEngine, DecisionOutcome, DenyReason, EngineState,
	PermissionRequest,
)
from access_engine.errors import ErrorKind
from access_engine.policy import DynamicPolicy

from .conftest import T0, StubSessions


@pytest.fixture
async def bare_engine(clock):
	"""Initialized engine without default data or session validation."""
	engine = AccessControlEngine(
		settings=Settings(start_maintenance=False, seed_defaults=False),
		clock=clock,
	)
	await engine.initialize()
	yield engine
	await engine.shutdown()


class TestLifecycle:

	@pytest.mark.asyncio
	async def test_defaults_seeded(self, engine):
		assert engine.state == EngineState.READY
		assert (await engine.get_role("admin")).permission_ids == {
			"read_data", "write_data", "delete_data",
		}
		assert (await engine.get_role("user")).permission_ids == {"read_data"}
		assert (await engine.get_role("editor")).permission_ids == {"read_data", "write_data"}
		assert (await engine.get_permission("read_data")).actions == {"read", "view"}
		assert (await engine.get_permission("write_data")).actions == {"write", "create", "update"}

	@pytest.mark.asyncio
	async def test_not_ready_before_initialize(self, settings, clock):
		engine = AccessControlEngine(settings=settings, clock=clock)
		decision = await engine.check_permission("u1", "data", "read")
		assert decision.outcome == DecisionOutcome.ERROR
		assert decision.error == ErrorKind.SYSTEM_NOT_READY

	@pytest.mark.asyncio
	async def test_seeding_failure_is_terminal(self, settings, clock):
		engine = AccessControlEngine(
			settings=settings,
			clock=clock,
			default_roles=[{"role_id": "broken", "permission_ids": {"missing"}}],
		)
		assert await engine.initialize() == EngineState.ERROR
		assert await engine.initialize() == EngineState.ERROR
		decision = await engine.check_permission("u1", "data", "read")
		assert decision.error == ErrorKind.SYSTEM_NOT_READY
		await engine.shutdown()
		assert engine.state == EngineState.ERROR

	@pytest.mark.asyncio
	async def test_shutdown_stops_checks(self, engine):
		await engine.create_user("u1", role_ids=["user"])
		await engine.shutdown()
		assert engine.state == EngineState.STOPPED
		decision = await engine.check_permission("u1", "data", "read")
		assert decision.error == ErrorKind.SYSTEM_NOT_READY

	@pytest.mark.asyncio
	async def test_context_manager_runs_maintenance(self, clock):
		settings = Settings(seed_defaults=False, maintenance_interval_ms=60000)
		async with AccessControlEngine(settings=settings, clock=clock) as engine:
			assert engine.is_ready
			assert engine.maintenance.is_running
		assert not engine.maintenance.is_running
		assert engine.state == EngineState.STOPPED


class TestCheckPermission:

	@pytest.mark.asyncio
	async def test_end_to_end(self, bare_engine):
		"""Grant through a role, deny other actions, deny after revocation."""
		engine = bare_engine
		assert (await engine.create_permission("write_data", resource="data", actions={"write"})).success
		assert (await engine.create_role("editor", permission_ids={"write_data"})).success
		assert (await engine.create_user("U1")).success
		assert (await engine.assign_role("U1", "editor")).success

		assert (await engine.check_permission("U1", "data", "write")).granted
		decision = await engine.check_permission("U1", "data", "delete")
		assert decision.denied
		assert decision.reason == DenyReason.INSUFFICIENT_PERMISSION

		assert (await engine.revoke_role("U1", "editor")).success
		assert (await engine.check_permission("U1", "data", "write")).denied

	@pytest.mark.asyncio
	async def test_no_grant_is_denied(self, engine):
		await engine.create_user("u1")
		decision = await engine.check_permission("u1", "data", "read")
		assert decision.denied
		assert not decision.is_error

	@pytest.mark.asyncio
	async def test_unknown_user_is_error(self, engine):
		decision = await engine.check_permission("ghost", "data", "read")
		assert decision.is_error
		assert decision.error == ErrorKind.NOT_FOUND
		assert decision.reason == "UserNotFound"

	@pytest.mark.asyncio
	async def test_inactive_user_denied(self, engine):
		await engine.create_user("u1", role_ids=["admin"], is_active=False)
		decision = await engine.check_permission("u1", "data", "read")
		assert decision.denied
		assert decision.reason == DenyReason.USER_INACTIVE

	@pytest.mark.asyncio
	async def test_invalid_session_denied(self, engine, sessions):
		await engine.create_user("u1", role_ids=["admin"])
		sessions.invalid_users.add("u1")
		decision = await engine.check_permission("u1", "data", "read")
		assert decision.denied
		assert decision.reason == DenyReason.SESSION_INVALID

	@pytest.mark.asyncio
	async def test_cache_hit_counted_once(self, engine):
		await engine.create_user("u1", role_ids=["user"])
		first = await engine.check_permission("u1", "data", "read")
		second = await engine.check_permission("u1", "data", "read")
		assert first.granted and second.granted
		assert not first.cached
		assert second.cached

		stats = await engine.get_permission_statistics()
		assert stats.total_checks == 2
		assert stats.cache_hits == 1
		assert stats.cache_hit_rate == 0.5
		assert stats.cache_entries == 1
		assert stats.cache_active_entries == 1
		assert stats.cache_expired_entries == 0
		assert stats.max_cache_size == engine.settings.max_cache_size

	@pytest.mark.asyncio
	async def test_reevaluated_after_ttl(self, engine, clock, sessions):
		await engine.create_user("u1", role_ids=["user"])
		await engine.check_permission("u1", "data", "read")
		calls = sessions.calls

		clock.advance(milliseconds=engine.settings.cache_ttl_ms)
		decision = await engine.check_permission("u1", "data", "read")
		assert not decision.cached
		assert sessions.calls == calls + 1

	@pytest.mark.asyncio
	async def test_time_range(self, bare_engine, clock):
		engine = bare_engine
		await engine.create_permission(
			"window",
			resource="report",
			actions={"read"},
			conditions=[TimeRangeCondition(start=T0, end=T0 + timedelta(hours=1))],
		)
		await engine.create_user("u1", permission_ids=["window"])

		clock.set(T0 - timedelta(seconds=1))
		assert (await engine.check_permission("u1", "report", "read")).denied
		clock.set(T0)
		assert (await engine.check_permission("u1", "report", "read")).granted
		clock.set(T0 + timedelta(hours=1))
		assert (await engine.check_permission("u1", "report", "read")).granted
		clock.set(T0 + timedelta(hours=1, seconds=1))
		assert (await engine.check_permission("u1", "report", "read")).denied

	@pytest.mark.asyncio
	async def test_cached_grant_ends_with_window(self, bare_engine, clock):
		"""A grant cached inside a window is not served after it closes."""
		engine = bare_engine
		await engine.create_permission(
			"window",
			resource="report",
			actions={"read"},
			conditions=[TimeRangeCondition(start=T0, end=T0 + timedelta(hours=1))],
		)
		await engine.create_user("u1", permission_ids=["window"])

		clock.set(T0 + timedelta(minutes=58))
		assert (await engine.check_permission("u1", "report", "read")).granted
		clock.set(T0 + timedelta(minutes=59))
		assert (await engine.check_permission("u1", "report", "read")).cached

		clock.set(T0 + timedelta(hours=1, minutes=1))
		decision = await engine.check_permission("u1", "report", "read")
		assert decision.denied
		assert not decision.cached

	@pytest.mark.asyncio
	async def test_cached_denial_ends_when_window_opens(self, bare_engine, clock):
		engine = bare_engine
		await engine.create_permission(
			"window",
			resource="report",
			actions={"read"},
			conditions=[TimeRangeCondition(start=T0)],
		)
		await engine.create_user("u1", permission_ids=["window"])

		clock.set(T0 - timedelta(seconds=10))
		assert (await engine.check_permission("u1", "report", "read")).denied
		clock.set(T0)
		decision = await engine.check_permission("u1", "report", "read")
		assert decision.granted
		assert not decision.cached

		clock.advance(minutes=1)
		assert (await engine.check_permission("u1", "report", "read")).cached

	@pytest.mark.asyncio
	async def test_unexpected_error_not_downgraded(self, bare_engine):
		engine = bare_engine

		class BrokenSessions(StubSessions):
			async def is_session_valid(self, user_id):
				raise RuntimeError("session store down")

		engine.session_validator = BrokenSessions()
		await engine.create_user("u1")
		decision = await engine.check_permission("u1", "data", "read")
		assert decision.is_error
		assert decision.error == ErrorKind.UNEXPECTED
		assert "session store down" in decision.reason

		stats = await engine.get_permission_statistics()
		assert stats.errored_checks == 1
		assert stats.denied_checks == 0

	@pytest.mark.asyncio
	async def test_one_audit_entry_per_check(self, engine):
		await engine.create_user("u1", role_ids=["user"])
		await engine.check_permission("u1", "data", "read", {"client_ip": "10.1.1.1"})
		await engine.check_permission("u1", "data", "read", {"client_ip": "10.1.1.1"})
		await engine.check_permission("u1", "data", "delete")

		entries = await engine.get_audit_logs(user_id="u1", action=AuditAction.PERMISSION_CHECK)
		assert [e.result for e in entries] == ["DENIED", "GRANTED", "GRANTED"]
		assert entries[1].details["cached"] is True
		assert entries[2].client_ip == "10.1.1.1"

	@pytest.mark.asyncio
	async def test_concurrent_checks(self, engine):
		await engine.create_user("u1", role_ids=["editor"])
		decisions = await asyncio.gather(*[
			engine.check_permission("u1", "data", action)
			for action in ["read", "write", "delete"] * 20
		])
		assert sum(1 for d in decisions if d.granted) == 40
		assert sum(1 for d in decisions if d.denied) == 20
		stats = await engine.get_permission_statistics()
		assert stats.total_checks == 60


class TestBatchAndEvaluate:

	@pytest.mark.asyncio
	async def test_batch_matches_single_checks(self, engine):
		await engine.create_user("u1", role_ids=["editor"])
		requests = [
			PermissionRequest(resource="data", action="read"),
			{"resource": "data", "action": "delete"},
			PermissionRequest(resource="other", action="write"),
		]
		result = await engine.batch_check_permissions("u1", requests)
		assert len(result.items) == 3
		assert [item.granted for item in result.items] == [True, False, False]
		assert result.granted_count == 1
		assert result.denied_count == 2

		for item in result.items:
			single = await engine.check_permission("u1", item.resource, item.action)
			assert single.outcome == item.decision.outcome

	@pytest.mark.asyncio
	async def test_batch_for_unknown_user(self, engine):
		result = await engine.batch_check_permissions(
			"ghost", [{"resource": "data", "action": "read"}] * 2
		)
		assert result.error_count == 2

	@pytest.mark.asyncio
	async def test_malformed_request_does_not_abort_batch(self, engine):
		await engine.create_user("u1", role_ids=["user"])
		result = await engine.batch_check_permissions("u1", [
			{"resource": "data", "action": "read"},
			{"resource": "data"},
			{"resource": "data", "action": "view"},
		])
		assert len(result.items) == 3
		assert result.error_count == 1
		assert result.granted_count == 2

		bad = result.items[1]
		assert bad.resource == "data"
		assert bad.action == ""
		assert bad.decision.error == ErrorKind.INVALID_ARGUMENT

	@pytest.mark.asyncio
	async def test_evaluate_policy_explains(self, engine):
		await engine.create_user("u1", role_ids=["editor", "user"])
		evaluation = await engine.evaluate_policy("u1", "data", "read")
		assert evaluation.granted
		assert evaluation.permission_ids == ["read_data"]
		assert evaluation.role_ids == ["editor", "user"]
		assert evaluation.evaluation_time_ms >= 0

		stats = await engine.get_permission_statistics()
		assert stats.total_checks == 0
		assert stats.cache_entries == 0

	@pytest.mark.asyncio
	async def test_evaluate_policy_unknown_user(self, engine):
		evaluation = await engine.evaluate_policy("ghost", "data", "read")
		assert evaluation.outcome == DecisionOutcome.ERROR
		assert evaluation.error == ErrorKind.NOT_FOUND


class TestMutations:

	@pytest.mark.asyncio
	async def test_failures_are_results(self, engine):
		result = await engine.create_role("admin")
		assert not result.success
		assert result.error == ErrorKind.ALREADY_EXISTS

		result = await engine.assign_role("ghost", "admin")
		assert result.error == ErrorKind.NOT_FOUND

		await engine.create_user("u1", role_ids=["user"])
		result = await engine.assign_role("u1", "user")
		assert result.error == ErrorKind.NO_OP

		result = await engine.create_user("")
		assert result.error == ErrorKind.INVALID_ARGUMENT

	@pytest.mark.asyncio
	async def test_mutations_audited(self, engine):
		await engine.create_user("u1", created_by="alice")
		await engine.assign_role("u1", "ghost-role", assigned_by="alice")

		entries = await engine.get_audit_logs(user_id="alice")
		assert [(e.action, e.result) for e in entries] == [
			(AuditAction.ROLE_ASSIGNED, AuditResult.FAILURE),
			(AuditAction.USER_CREATED, AuditResult.SUCCESS),
		]

	@pytest.mark.asyncio
	async def test_assignment_statistics(self, engine):
		await engine.create_user("u1")
		await engine.assign_role("u1", "user")
		await engine.assign_role("u1", "user")
		await engine.revoke_role("u1", "user")

		stats = await engine.get_permission_statistics()
		assert stats.role_assignments == 1
		assert stats.role_revocations == 1
		assert stats.total_users == 1
		assert stats.total_roles == 3

	@pytest.mark.asyncio
	async def test_direct_grants(self, engine):
		await engine.create_user("u1")
		assert (await engine.grant_permission("u1", "delete_data")).success
		assert (await engine.check_permission("u1", "data", "delete")).granted
		assert (await engine.revoke_permission("u1", "delete_data")).success
		assert (await engine.check_permission("u1", "data", "delete")).denied

	@pytest.mark.asyncio
	async def test_deactivations_invalidate_cache(self, engine):
		await engine.create_user("u1", role_ids=["user"])
		assert (await engine.check_permission("u1", "data", "read")).granted

		await engine.set_role_active("user", False)
		assert (await engine.check_permission("u1", "data", "read")).denied
		await engine.set_role_active("user", True)
		assert (await engine.check_permission("u1", "data", "read")).granted

		await engine.set_permission_active("read_data", False)
		assert (await engine.check_permission("u1", "data", "read")).denied
		await engine.set_permission_active("read_data", True)

		await engine.set_user_active("u1", False)
		decision = await engine.check_permission("u1", "data", "read")
		assert decision.reason == DenyReason.USER_INACTIVE

	@pytest.mark.asyncio
	async def test_delete_permission(self, engine):
		await engine.create_user("u1", role_ids=["admin"])
		assert (await engine.check_permission("u1", "data", "delete")).granted
		assert (await engine.delete_permission("delete_data")).success
		assert (await engine.check_permission("u1", "data", "delete")).denied
		assert (await engine.get_role("admin")).permission_ids == {"read_data", "write_data"}

	@pytest.mark.asyncio
	async def test_get_user_permissions(self, engine):
		await engine.create_user("u1", role_ids=["editor"], permission_ids=["read_data"])
		result = await engine.get_user_permissions("u1")
		assert result.success
		assert sorted(p.id for p in result.entity) == ["read_data", "write_data"]

		result = await engine.get_user_permissions("ghost")
		assert result.error == ErrorKind.NOT_FOUND

	@pytest.mark.asyncio
	async def test_record_login(self, engine, clock):
		await engine.create_user("u1")
		await engine.record_login("u1")
		assert (await engine.get_user("u1")).last_login_at == clock.now()

	@pytest.mark.asyncio
	async def test_dynamic_policy_clears_cache(self, engine):
		await engine.create_user("u1")
		assert (await engine.check_permission("u1", "public/a", "read")).denied

		policy = DynamicPolicy(id="public", resource_pattern=r"public/.*", actions={"read"})
		assert (await engine.add_dynamic_policy(policy)).success
		assert (await engine.check_permission("u1", "public/a", "read")).granted

		assert (await engine.remove_dynamic_policy("public")).success
		assert (await engine.check_permission("u1", "public/a", "read")).denied
		assert not (await engine.remove_dynamic_policy("public")).success

	@pytest.mark.asyncio
	async def test_custom_condition(self, bare_engine):
		engine = bare_engine
		await engine.create_permission(
			"vip",
			resource="lounge",
			actions={"enter"},
			conditions=[CustomCondition(handler="is_vip")],
		)
		await engine.create_user("u1", permission_ids=["vip"], metadata={"tier": "gold"})
		assert (await engine.check_permission("u1", "lounge", "enter")).denied

		engine.register_custom_condition(
			"is_vip", lambda params, context, user: user.metadata.get("tier") == "gold"
		)
		assert (await engine.check_permission("u1", "lounge", "enter")).granted


class TestCleanup:

	@pytest.mark.asyncio
	async def test_cleanup_removes_expired_data(self, engine, clock, sessions):
		sessions.cleanup_result = 3
		await engine.create_user("u1", role_ids=["user"])
		await engine.check_permission("u1", "data", "read")
		clock.advance(days=31)

		report = await engine.cleanup_expired_data()
		assert report.success
		assert report.sessions_removed == 3
		assert report.cache_entries_removed == 1
		assert report.audit_entries_removed >= 2

		stats = await engine.get_permission_statistics()
		assert stats.cleanup_operations == 1
		assert stats.cache_entries == 0

	@pytest.mark.asyncio
	async def test_failing_step_does_not_stop_others(self, engine, clock, sessions):
		sessions.cleanup_error = RuntimeError("session store down")
		await engine.create_user("u1", role_ids=["user"])
		await engine.check_permission("u1", "data", "read")
		clock.advance(days=31)

		report = await engine.cleanup_expired_data()
		assert not report.success
		assert "sessions" in report.errors
		assert report.cache_entries_removed == 1
		assert report.audit_entries_removed >= 1
		assert (await engine.get_permission_statistics()).cleanup_operations == 1


@pytest.mark.asyncio
async def test_expired_cache_entries_reported(engine, clock):
	await engine.create_user("u1", role_ids=["user"])
	await engine.check_permission("u1", "data", "read")
	clock.advance(milliseconds=engine.settings.cache_ttl_ms)

	stats = await engine.get_permission_statistics()
	assert stats.cache_entries == 1
	assert stats.cache_expired_entries == 1
	assert stats.cache_active_entries == 0


@pytest.mark.asyncio
async def test_create_permission_with_single_action(bare_engine):
	result = await bare_engine.create_permission("publish", resource="post", actions="publish")
	assert result.success
	assert result.entity.actions == {"publish"}
