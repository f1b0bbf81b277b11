"""
Tests for the route catalog and schedule version lifecycle.

Tests:
- Route catalog writes
- Version creation and date validation
- Approval, rejection and activation gating
- Single active version across activations
"""

import asyncio

import pytest

from transit_registry.schedules.errors import (
	InvalidArgumentError,
	InvalidRangeError,
	InvalidStateError,
	NotAuthorizedError,
	NotFoundError,
)
from transit_registry.schedules.models import VersionStatus

from tests.helpers import ADMIN, OUTSIDER, PLANNER, TODAY, approved_version, open_registry


@pytest.fixture
async def store(tmp_path):
	store = await open_registry(tmp_path)
	yield store
	await store.close()


class TestRouteCatalog:
	"""Tests for route details."""

	@pytest.mark.asyncio
	async def test_set_route_details(self, store):
		route = await store.get_route(1)
		assert route.name == "Downtown Express"
		assert route.route_type == "bus"
		assert route.active is True

	@pytest.mark.asyncio
	async def test_planner_can_update_route(self, store):
		"""Authorized planners may also maintain the catalog."""
		await store.set_route_details(PLANNER, 1, "Downtown Local", "bus", False)

		route = await store.get_route(1)
		assert route.name == "Downtown Local"
		assert route.active is False

		history = await store.get_history("route", "1")
		assert [e.action for e in history] == ["created", "updated"]

	@pytest.mark.asyncio
	async def test_outsider_cannot_set_route(self, store):
		with pytest.raises(NotAuthorizedError):
			await store.set_route_details(OUTSIDER, 2, "Crosstown", "bus", True)

		with pytest.raises(NotFoundError):
			await store.get_route(2)

	@pytest.mark.asyncio
	async def test_route_id_must_be_positive(self, store):
		with pytest.raises(InvalidArgumentError):
			await store.set_route_details(ADMIN, 0, "Crosstown", "bus", True)

	@pytest.mark.asyncio
	async def test_add_route_assigns_next_id(self, store):
		route = await store.add_route(PLANNER, "Crosstown", "rail")
		assert route.id == 2
		assert (await store.get_route(2)).route_type == "rail"


class TestVersionCreation:
	"""Tests for draft version creation."""

	@pytest.mark.asyncio
	async def test_create_version_example(self, store):
		"""Summer 2023 becomes version 1 in draft."""
		version_id = await store.create_schedule_version(PLANNER, "Summer 2023", 20230601, 20230901)
		assert version_id == 1

		version = await store.get_schedule_version(1)
		assert version.name == "Summer 2023"
		assert version.effective_date == 20230601
		assert version.expiry_date == 20230901
		assert version.status == VersionStatus.DRAFT
		assert version.created_by == PLANNER
		assert version.creation_date == TODAY
		assert version.approved_by is None
		assert version.approval_date is None

	@pytest.mark.asyncio
	async def test_version_ids_strictly_increase(self, store):
		ids = [
			await store.create_schedule_version(PLANNER, f"Edition {i}", 20230601, 20230901)
			for i in range(5)
		]
		assert ids == [1, 2, 3, 4, 5]

	@pytest.mark.asyncio
	async def test_effective_must_precede_expiry(self, store):
		with pytest.raises(InvalidRangeError):
			await store.create_schedule_version(PLANNER, "Backwards", 20230901, 20230601)

		with pytest.raises(InvalidRangeError):
			await store.create_schedule_version(PLANNER, "Same day", 20230601, 20230601)

		assert await store.list_schedule_versions() == []

	@pytest.mark.asyncio
	async def test_failed_create_does_not_consume_id(self, store):
		with pytest.raises(InvalidRangeError):
			await store.create_schedule_version(PLANNER, "Backwards", 20230901, 20230601)

		assert await store.create_schedule_version(PLANNER, "Summer 2023", 20230601, 20230901) == 1

	@pytest.mark.asyncio
	async def test_malformed_date_rejected(self, store):
		with pytest.raises(InvalidArgumentError):
			await store.create_schedule_version(PLANNER, "Bad date", 20231301, 20231401)

	@pytest.mark.asyncio
	async def test_admin_alone_cannot_create(self, store):
		"""Version creation requires an authorized planner record."""
		with pytest.raises(NotAuthorizedError):
			await store.create_schedule_version(ADMIN, "Summer 2023", 20230601, 20230901)

	@pytest.mark.asyncio
	async def test_authorization_checked_before_dates(self, store):
		with pytest.raises(NotAuthorizedError):
			await store.create_schedule_version(OUTSIDER, "Backwards", 20230901, 20230601)

	@pytest.mark.asyncio
	async def test_unknown_version_not_found(self, store):
		with pytest.raises(NotFoundError):
			await store.get_schedule_version(99)


class TestVersionApproval:
	"""Tests for approve and reject."""

	@pytest.mark.asyncio
	async def test_admin_approves_draft(self, store):
		version_id = await store.create_schedule_version(PLANNER, "Summer 2023", 20230601, 20230901)

		version = await store.approve_schedule_version(ADMIN, version_id)

		assert version.status == VersionStatus.APPROVED
		assert version.approved_by == ADMIN
		assert version.approval_date == TODAY

	@pytest.mark.asyncio
	async def test_planner_cannot_approve(self, store):
		version_id = await store.create_schedule_version(PLANNER, "Summer 2023", 20230601, 20230901)

		with pytest.raises(NotAuthorizedError):
			await store.approve_schedule_version(PLANNER, version_id)

		assert (await store.get_schedule_version(version_id)).status == VersionStatus.DRAFT

	@pytest.mark.asyncio
	async def test_approve_twice_fails(self, store):
		version_id = await approved_version(store)

		with pytest.raises(InvalidStateError):
			await store.approve_schedule_version(ADMIN, version_id)

	@pytest.mark.asyncio
	async def test_approve_unknown_version(self, store):
		with pytest.raises(NotFoundError):
			await store.approve_schedule_version(ADMIN, 42)

	@pytest.mark.asyncio
	async def test_reject_draft(self, store):
		version_id = await store.create_schedule_version(PLANNER, "Summer 2023", 20230601, 20230901)

		version = await store.reject_schedule_version(ADMIN, version_id)

		assert version.status == VersionStatus.REJECTED
		with pytest.raises(InvalidStateError):
			await store.approve_schedule_version(ADMIN, version_id)

	@pytest.mark.asyncio
	async def test_cannot_reject_active(self, store):
		version_id = await approved_version(store)
		await store.activate_schedule_version(ADMIN, version_id)

		with pytest.raises(InvalidStateError):
			await store.reject_schedule_version(ADMIN, version_id)


class TestVersionActivation:
	"""Tests for activation and supersession."""

	@pytest.mark.asyncio
	async def test_no_active_version_initially(self, store):
		assert await store.get_active_schedule_version() is None

	@pytest.mark.asyncio
	async def test_activate_example(self, store):
		"""Create, approve, activate: version 1 becomes active."""
		version_id = await store.create_schedule_version(PLANNER, "Summer 2023", 20230601, 20230901)
		await store.approve_schedule_version(ADMIN, version_id)
		await store.activate_schedule_version(ADMIN, version_id)

		assert await store.get_active_schedule_version() == 1
		assert (await store.get_schedule_version(1)).status == VersionStatus.ACTIVE

	@pytest.mark.asyncio
	async def test_activate_draft_fails(self, store):
		"""Only approved versions can be activated; the active version is unchanged."""
		active_id = await approved_version(store)
		await store.activate_schedule_version(ADMIN, active_id)
		draft_id = await store.create_schedule_version(PLANNER, "Autumn 2023", 20230901, 20231201)

		with pytest.raises(InvalidStateError):
			await store.activate_schedule_version(ADMIN, draft_id)

		assert await store.get_active_schedule_version() == active_id
		assert (await store.get_schedule_version(draft_id)).status == VersionStatus.DRAFT

	@pytest.mark.asyncio
	async def test_activate_active_version_fails(self, store):
		version_id = await approved_version(store)
		await store.activate_schedule_version(ADMIN, version_id)

		with pytest.raises(InvalidStateError):
			await store.activate_schedule_version(ADMIN, version_id)

	@pytest.mark.asyncio
	async def test_planner_cannot_activate(self, store):
		version_id = await approved_version(store)

		with pytest.raises(NotAuthorizedError):
			await store.activate_schedule_version(PLANNER, version_id)

		assert await store.get_active_schedule_version() is None

	@pytest.mark.asyncio
	async def test_activation_supersedes_previous(self, store):
		"""Activating V2 supersedes V1 and leaves exactly one active version."""
		v1 = await approved_version(store, "Summer 2023")
		await store.activate_schedule_version(ADMIN, v1)
		v2 = await approved_version(store, "Autumn 2023")

		await store.activate_schedule_version(ADMIN, v2)

		assert (await store.get_schedule_version(v1)).status == VersionStatus.SUPERSEDED
		assert await store.get_active_schedule_version() == v2
		active = await store.list_schedule_versions(status=VersionStatus.ACTIVE)
		assert [v.id for v in active] == [v2]

	@pytest.mark.asyncio
	async def test_superseded_version_cannot_return(self, store):
		v1 = await approved_version(store, "Summer 2023")
		await store.activate_schedule_version(ADMIN, v1)
		v2 = await approved_version(store, "Autumn 2023")
		await store.activate_schedule_version(ADMIN, v2)

		with pytest.raises(InvalidStateError):
			await store.activate_schedule_version(ADMIN, v1)

	@pytest.mark.asyncio
	async def test_concurrent_activations_leave_one_active(self, store):
		"""Racing activations serialize; exactly one version ends up active."""
		ids = [await approved_version(store, f"Edition {i}") for i in range(4)]

		await asyncio.gather(*(store.activate_schedule_version(ADMIN, v) for v in ids))

		statuses = [v.status for v in await store.list_schedule_versions()]
		assert statuses.count(VersionStatus.ACTIVE) == 1
		assert statuses.count(VersionStatus.SUPERSEDED) == 3

	@pytest.mark.asyncio
	async def test_activation_history(self, store):
		v1 = await approved_version(store, "Summer 2023")
		await store.activate_schedule_version(ADMIN, v1)
		v2 = await approved_version(store, "Autumn 2023")
		await store.activate_schedule_version(ADMIN, v2)

		history = await store.get_history("schedule_version", str(v1))

		assert [e.action for e in history] == ["created", "approved", "activated", "superseded"]
		assert history[-1].payload["superseded_by"] == v2
