"""Shared test fixtures and helpers for transit-registry tests."""

from pathlib import Path

from transit_registry.schedules.store import ScheduleStore

ADMIN = "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM"
PLANNER = "ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG"
OUTSIDER = "ST3NBRSFKX28FQ2ZJ1MAKX58HKHSDGNV5N7R21XCP"

TODAY = 20230601

# 6:00 to 22:00, peaks 7-9 and 16-18
SUMMER_TIMING = {
	"first_departure": 360,
	"last_departure": 1320,
	"peak_frequency": 10,
	"off_peak_frequency": 20,
	"weekend_frequency": 30,
	"peak_start_morning": 420,
	"peak_end_morning": 540,
	"peak_start_evening": 960,
	"peak_end_evening": 1080,
}


async def open_registry(tmp_path: Path, with_planner: bool = True) -> ScheduleStore:
	"""
	Open a fresh registry administered by ADMIN.

	With with_planner, PLANNER is registered and authorized and route 1
	("Downtown Express") exists.
	"""
	store = ScheduleStore(str(tmp_path / "registry.db"), clock=lambda: TODAY)
	await store.init(admin=ADMIN)

	if with_planner:
		await store.register_planner(PLANNER, "Jane Doe", "Schedule Planning")
		await store.authorize_planner(ADMIN, PLANNER)
		await store.set_route_details(ADMIN, 1, "Downtown Express", "bus", True)

	return store


async def approved_version(store: ScheduleStore, name: str = "Summer 2023") -> int:
	"""Create a version and have the admin approve it."""
	version_id = await store.create_schedule_version(PLANNER, name, 20230601, 20230901)
	await store.approve_schedule_version(ADMIN, version_id)
	return version_id
