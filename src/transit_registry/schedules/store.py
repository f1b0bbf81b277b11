"""
Schedule Store - SQLite-backed schedule registry.

Features:
- Planner registry with admin-gated authorization
- Route catalog
- Versioned schedule editions (draft -> approved -> active -> superseded)
- Per-version route timing and append-only departures
- Schedule adjustments with free status transitions
- Append-only audit log of every committed change

Each mutation runs as a single transaction: it either commits every
change it makes, audit entry included, or rolls back and raises.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Optional

import aiosqlite

from .authority import Authority
from .errors import InvalidArgumentError, InvalidStateError, NotFoundError
from .models import (
	AdjustmentStatus,
	AdjustmentType,
	AdminControl,
	DayType,
	LedgerEvent,
	Planner,
	Route,
	RouteSchedule,
	ScheduleAdjustment,
	ScheduledDeparture,
	ScheduleVersion,
	VersionStatus,
)
from .validation import (
	check_date,
	check_frequency,
	check_identifier,
	check_minute,
	check_order,
	check_text,
	parse_enum,
	today,
)

logger = logging.getLogger(__name__)

SCHEMA = """
	CREATE TABLE IF NOT EXISTS admin_control (
		id INTEGER PRIMARY KEY CHECK (id = 1),
		admin TEXT NOT NULL,
		data TEXT NOT NULL
	);

	CREATE TABLE IF NOT EXISTS planners (
		principal TEXT PRIMARY KEY,
		data TEXT NOT NULL
	);

	CREATE TABLE IF NOT EXISTS routes (
		id INTEGER PRIMARY KEY,
		data TEXT NOT NULL
	);

	CREATE TABLE IF NOT EXISTS schedule_versions (
		id INTEGER PRIMARY KEY,
		status TEXT NOT NULL,
		data TEXT NOT NULL
	);

	CREATE TABLE IF NOT EXISTS route_schedules (
		version_id INTEGER NOT NULL REFERENCES schedule_versions(id),
		route_id INTEGER NOT NULL,
		data TEXT NOT NULL,
		PRIMARY KEY (version_id, route_id)
	);

	CREATE TABLE IF NOT EXISTS departure_sequences (
		version_id INTEGER NOT NULL,
		route_id INTEGER NOT NULL,
		last_sequence INTEGER NOT NULL,
		PRIMARY KEY (version_id, route_id)
	);

	CREATE TABLE IF NOT EXISTS scheduled_departures (
		version_id INTEGER NOT NULL REFERENCES schedule_versions(id),
		route_id INTEGER NOT NULL,
		sequence_id INTEGER NOT NULL,
		data TEXT NOT NULL,
		PRIMARY KEY (version_id, route_id, sequence_id)
	);

	CREATE TABLE IF NOT EXISTS schedule_adjustments (
		id INTEGER PRIMARY KEY,
		route_id INTEGER NOT NULL,
		status TEXT NOT NULL,
		data TEXT NOT NULL
	);

	CREATE TABLE IF NOT EXISTS ledger_events (
		id INTEGER PRIMARY KEY AUTOINCREMENT,
		entity TEXT NOT NULL,
		entity_key TEXT NOT NULL,
		action TEXT NOT NULL,
		actor TEXT NOT NULL,
		payload TEXT NOT NULL,
		recorded_at TEXT NOT NULL
	);

	-- At most one active version system-wide
	CREATE UNIQUE INDEX IF NOT EXISTS idx_versions_single_active
		ON schedule_versions(status) WHERE status = 'active';

	CREATE INDEX IF NOT EXISTS idx_versions_status ON schedule_versions(status);
	CREATE INDEX IF NOT EXISTS idx_adjustments_route ON schedule_adjustments(route_id);
	CREATE INDEX IF NOT EXISTS idx_events_entity ON ledger_events(entity, entity_key);
"""

COUNTED_TABLES = (
	"planners",
	"routes",
	"schedule_versions",
	"route_schedules",
	"scheduled_departures",
	"schedule_adjustments",
	"ledger_events",
)


class ScheduleStore:
	"""
	SQLite-backed schedule registry.

	Usage:
		store = ScheduleStore("data/registry.db")
		await store.init(admin="ADMIN-PRINCIPAL")

		version_id = await store.create_schedule_version(planner, "Summer 2023", 20230601, 20230901)
		await store.approve_schedule_version(admin, version_id)
		await store.activate_schedule_version(admin, version_id)

		assert await store.get_active_schedule_version() == version_id
	"""

	def __init__(self, db_path: str, clock: Callable[[], int] = today):
		"""
		Initialize the schedule store.

		Args:
			db_path: SQLite database file
			clock: Returns the current date as YYYYMMDD, used for record stamps
		"""
		self.db_path = Path(db_path)
		self.db_path.parent.mkdir(parents=True, exist_ok=True)
		self._clock = clock
		self._db: Optional[aiosqlite.Connection] = None
		self._authority: Optional[Authority] = None
		self._lock = asyncio.Lock()

	async def init(self, admin: Optional[str] = None):
		"""
		Open the database and create the schema.

		Args:
			admin: Principal to seed as admin when the ledger has none yet
		"""
		if self._db is not None:
			return

		# Transactions are opened explicitly with BEGIN IMMEDIATE
		self._db = await aiosqlite.connect(str(self.db_path), isolation_level=None)
		self._db.row_factory = aiosqlite.Row
		self._authority = Authority(self._db)

		await self._db.executescript(SCHEMA)

		if admin:
			async with self._transaction():
				if await self._authority.current_admin() is None:
					await self._write_admin(admin)
					await self._record("admin", "1", "initialized", admin, {"admin": admin})
					logger.info(f"Seeded registry admin {admin}")

		logger.info(f"Schedule store initialized: {self.db_path}")

	async def close(self):
		"""Close the database connection."""
		if self._db:
			await self._db.close()
			self._db = None
			self._authority = None

	# =========================================================================
	# Transactions and audit log
	# =========================================================================

	@asynccontextmanager
	async def _transaction(self) -> AsyncIterator[aiosqlite.Connection]:
		"""Serialize a write and commit it atomically, or roll it back."""
		if not self._db:
			await self.init()

		async with self._lock:
			await self._db.execute("BEGIN IMMEDIATE")
			try:
				yield self._db
			except BaseException:
				await self._db.rollback()
				raise
			else:
				await self._db.commit()

	@asynccontextmanager
	async def _snapshot(self) -> AsyncIterator[aiosqlite.Connection]:
		"""Read access that never observes a half-applied write."""
		if not self._db:
			await self.init()

		async with self._lock:
			yield self._db

	async def _record(
		self,
		entity: str,
		entity_key: str,
		action: str,
		actor: str,
		payload: dict[str, Any],
	) -> None:
		await self._db.execute(
			"""
			INSERT INTO ledger_events (entity, entity_key, action, actor, payload, recorded_at)
			VALUES (?, ?, ?, ?, ?, ?)
			""",
			(entity, entity_key, action, actor, json.dumps(payload), datetime.now().isoformat())
		)

	async def _fetch_data(self, query: str, params: tuple) -> Optional[str]:
		async with self._db.execute(query, params) as cursor:
			row = await cursor.fetchone()
		return row["data"] if row else None

	async def _next_id(self, table: str) -> int:
		async with self._db.execute(f"SELECT COALESCE(MAX(id), 0) + 1 AS next_id FROM {table}") as cursor:
			row = await cursor.fetchone()
		return row["next_id"]

	# =========================================================================
	# Role registry and admin control
	# =========================================================================

	async def _write_admin(self, admin: str) -> None:
		control = AdminControl(admin=admin)
		await self._db.execute(
			"INSERT OR REPLACE INTO admin_control (id, admin, data) VALUES (1, ?, ?)",
			(admin, control.model_dump_json())
		)

	async def _save_planner(self, planner: Planner) -> None:
		await self._db.execute(
			"INSERT OR REPLACE INTO planners (principal, data) VALUES (?, ?)",
			(planner.principal, planner.model_dump_json())
		)

	async def register_planner(self, caller: str, name: str, department: str) -> str:
		"""
		Register the caller as a schedule planner.

		New planners start unauthorized; an admin must authorize them
		before they can write.

		Returns:
			The caller's principal, which keys the planner record
		"""
		async with self._transaction():
			if await self._authority.lookup_planner(caller) is not None:
				raise InvalidStateError(f"Planner already registered: {caller}")
			check_text(name, "name")
			check_text(department, "department")

			planner = Planner(principal=caller, name=name, department=department)
			await self._save_planner(planner)
			await self._record("planner", caller, "registered", caller, planner.model_dump(mode="json"))

		logger.info(f"Registered planner {caller} ({department})")
		return caller

	async def _set_planner_authorization(self, caller: str, principal: str, authorized: bool) -> Planner:
		action = "authorize planner" if authorized else "revoke planner"
		async with self._transaction():
			await self._authority.require_admin(caller, action)
			planner = await self._authority.lookup_planner(principal)
			if planner is None:
				raise NotFoundError(f"Planner not found: {principal}")

			planner.authorized = authorized
			if authorized:
				planner.authorization_date = self._clock()
			await self._save_planner(planner)
			await self._record(
				"planner",
				principal,
				"authorized" if authorized else "revoked",
				caller,
				{"authorized": authorized, "authorization_date": planner.authorization_date},
			)

		logger.info(f"{'Authorized' if authorized else 'Revoked'} planner {principal}")
		return planner

	async def authorize_planner(self, caller: str, principal: str) -> Planner:
		"""Grant write access to a registered planner. Admin only."""
		return await self._set_planner_authorization(caller, principal, True)

	async def revoke_planner(self, caller: str, principal: str) -> Planner:
		"""Withdraw a planner's write access. Admin only."""
		return await self._set_planner_authorization(caller, principal, False)

	async def transfer_admin(self, caller: str, new_admin: str) -> str:
		"""Hand admin control to another principal. Admin only."""
		async with self._transaction():
			await self._authority.require_admin(caller, "transfer admin")
			check_text(new_admin, "new_admin")
			await self._write_admin(new_admin)
			await self._record("admin", "1", "transferred", caller, {"from": caller, "to": new_admin})

		logger.info(f"Admin transferred from {caller} to {new_admin}")
		return new_admin

	async def get_admin(self) -> Optional[str]:
		"""Get the current admin principal, if one has been seeded."""
		async with self._snapshot():
			return await self._authority.current_admin()

	async def get_planner(self, principal: str) -> Planner:
		async with self._snapshot():
			planner = await self._authority.lookup_planner(principal)
		if planner is None:
			raise NotFoundError(f"Planner not found: {principal}")
		return planner

	# =========================================================================
	# Route catalog
	# =========================================================================

	async def _save_route(self, caller: str, route: Route, action: str) -> None:
		await self._db.execute(
			"INSERT OR REPLACE INTO routes (id, data) VALUES (?, ?)",
			(route.id, route.model_dump_json())
		)
		await self._record("route", str(route.id), action, caller, route.model_dump(mode="json"))

	async def set_route_details(
		self,
		caller: str,
		route_id: int,
		name: str,
		route_type: str,
		active: bool = True,
	) -> Route:
		"""
		Create or replace a route in the catalog.

		Args:
			caller: Admin or authorized planner
			route_id: Route id (1 or greater)
			name: Route name (e.g., "Downtown Express")
			route_type: Route type (e.g., "bus")
			active: Whether the route is in service
		"""
		async with self._transaction():
			await self._authority.require_planner_or_admin(caller, "set route details")
			if check_identifier(route_id, "route_id") < 1:
				raise InvalidArgumentError(f"route_id must be 1 or greater, got {route_id}")
			check_text(name, "name")
			check_text(route_type, "route_type")

			existing = await self._authority.lookup_route(route_id)
			route = Route(id=route_id, name=name, route_type=route_type, active=bool(active))
			await self._save_route(caller, route, "updated" if existing else "created")

		logger.info(f"Route {route_id} set to {name!r} ({route_type}, active={route.active})")
		return route

	async def add_route(self, caller: str, name: str, route_type: str, active: bool = True) -> Route:
		"""Add a route under the next sequential id."""
		async with self._transaction():
			await self._authority.require_planner_or_admin(caller, "add route")
			check_text(name, "name")
			check_text(route_type, "route_type")

			route = Route(
				id=await self._next_id("routes"),
				name=name,
				route_type=route_type,
				active=bool(active),
			)
			await self._save_route(caller, route, "created")

		logger.info(f"Added route {route.id} {name!r}")
		return route

	async def get_route(self, route_id: int) -> Route:
		async with self._snapshot():
			route = await self._authority.lookup_route(route_id)
		if route is None:
			raise NotFoundError(f"Route not found: {route_id}")
		return route

	# =========================================================================
	# Schedule versions
	# =========================================================================

	async def _load_version(self, version_id: int) -> ScheduleVersion:
		data = await self._fetch_data("SELECT data FROM schedule_versions WHERE id = ?", (version_id,))
		if data is None:
			raise NotFoundError(f"Schedule version not found: {version_id}")
		return ScheduleVersion.model_validate_json(data)

	async def _save_version(self, version: ScheduleVersion) -> None:
		await self._db.execute(
			"INSERT OR REPLACE INTO schedule_versions (id, status, data) VALUES (?, ?, ?)",
			(version.id, version.status.value, version.model_dump_json())
		)

	async def create_schedule_version(
		self,
		caller: str,
		name: str,
		effective_date: int,
		expiry_date: int,
	) -> int:
		"""
		Create a draft schedule version.

		Args:
			caller: Authorized planner
			name: Version name (e.g., "Summer 2023")
			effective_date: First day in force, YYYYMMDD
			expiry_date: Day it lapses, YYYYMMDD, after effective_date

		Returns:
			New version id
		"""
		async with self._transaction():
			await self._authority.require_planner(caller, "create schedule version")
			check_text(name, "name")
			check_date(effective_date, "effective_date")
			check_date(expiry_date, "expiry_date")
			check_order(effective_date, expiry_date, "schedule version dates")

			version = ScheduleVersion(
				id=await self._next_id("schedule_versions"),
				name=name,
				effective_date=effective_date,
				expiry_date=expiry_date,
				created_by=caller,
				creation_date=self._clock(),
			)
			await self._save_version(version)
			await self._record("schedule_version", str(version.id), "created", caller, version.model_dump(mode="json"))

		logger.info(f"Created schedule version {version.id} {name!r}")
		return version.id

	async def _decide_version(
		self,
		caller: str,
		version_id: int,
		allowed_from: frozenset[VersionStatus],
		outcome: VersionStatus,
	) -> ScheduleVersion:
		async with self._transaction():
			await self._authority.require_admin(caller, f"mark schedule version {outcome.value}")
			version = await self._load_version(version_id)
			if version.status not in allowed_from:
				raise InvalidStateError(
					f"Schedule version {version_id} is {version.status.value}, cannot become {outcome.value}"
				)

			previous = version.status
			version.status = outcome
			version.approved_by = caller
			version.approval_date = self._clock()
			await self._save_version(version)
			await self._record(
				"schedule_version",
				str(version_id),
				outcome.value,
				caller,
				{"from": previous.value, "to": outcome.value, "approval_date": version.approval_date},
			)

		logger.info(f"Schedule version {version_id} {outcome.value} by {caller}")
		return version

	async def approve_schedule_version(self, caller: str, version_id: int) -> ScheduleVersion:
		"""Approve a draft version. Admin only."""
		return await self._decide_version(
			caller, version_id, frozenset({VersionStatus.DRAFT}), VersionStatus.APPROVED,
		)

	async def reject_schedule_version(self, caller: str, version_id: int) -> ScheduleVersion:
		"""Reject a draft or approved version. Admin only."""
		return await self._decide_version(
			caller,
			version_id,
			frozenset({VersionStatus.DRAFT, VersionStatus.APPROVED}),
			VersionStatus.REJECTED,
		)

	async def activate_schedule_version(self, caller: str, version_id: int) -> ScheduleVersion:
		"""
		Make an approved version the active one.

		The previously active version, if any, is superseded in the same
		transaction, so exactly one version is active afterwards.

		Raises:
			NotAuthorizedError: Caller is not the admin
			NotFoundError: Unknown version
			InvalidStateError: Version is not approved
		"""
		async with self._transaction():
			await self._authority.require_admin(caller, "activate schedule version")
			version = await self._load_version(version_id)
			if version.status != VersionStatus.APPROVED:
				raise InvalidStateError(
					f"Schedule version {version_id} is {version.status.value}, only approved versions can be activated"
				)

			superseded_id = await self._active_version_id()
			if superseded_id is not None:
				previous = await self._load_version(superseded_id)
				previous.status = VersionStatus.SUPERSEDED
				await self._save_version(previous)
				await self._record(
					"schedule_version",
					str(superseded_id),
					"superseded",
					caller,
					{"from": "active", "to": "superseded", "superseded_by": version_id},
				)

			version.status = VersionStatus.ACTIVE
			await self._save_version(version)
			await self._record(
				"schedule_version",
				str(version_id),
				"activated",
				caller,
				{"from": "approved", "to": "active", "supersedes": superseded_id},
			)

		if superseded_id is not None:
			logger.info(f"Activated schedule version {version_id}, superseding {superseded_id}")
		else:
			logger.info(f"Activated schedule version {version_id}")
		return version

	async def _active_version_id(self) -> Optional[int]:
		async with self._db.execute(
			"SELECT id FROM schedule_versions WHERE status = ?",
			(VersionStatus.ACTIVE.value,)
		) as cursor:
			row = await cursor.fetchone()
		return row["id"] if row else None

	async def get_schedule_version(self, version_id: int) -> ScheduleVersion:
		async with self._snapshot():
			return await self._load_version(version_id)

	async def get_active_schedule_version(self) -> Optional[int]:
		"""Id of the active version, or None before any activation."""
		async with self._snapshot():
			return await self._active_version_id()

	async def list_schedule_versions(self, status: Optional[VersionStatus] = None) -> list[ScheduleVersion]:
		"""List versions in id order, optionally filtered by status."""
		if status is not None:
			status = parse_enum(VersionStatus, status, "status")
			query = "SELECT data FROM schedule_versions WHERE status = ? ORDER BY id"
			params: tuple = (status.value,)
		else:
			query = "SELECT data FROM schedule_versions ORDER BY id"
			params = ()

		async with self._snapshot():
			async with self._db.execute(query, params) as cursor:
				rows = await cursor.fetchall()

		return [ScheduleVersion.model_validate_json(row["data"]) for row in rows]

	# =========================================================================
	# Route schedules and departures
	# =========================================================================

	async def _require_editable(self, version_id: int, route_id: int) -> ScheduleVersion:
		version = await self._load_version(version_id)
		if await self._authority.lookup_route(route_id) is None:
			raise NotFoundError(f"Route not found: {route_id}")
		if not version.is_editable:
			raise InvalidStateError(
				f"Schedule version {version_id} is {version.status.value}; its schedules can no longer change"
			)
		return version

	async def set_route_schedule(
		self,
		caller: str,
		version_id: int,
		route_id: int,
		first_departure: int,
		last_departure: int,
		peak_frequency: int,
		off_peak_frequency: int,
		weekend_frequency: int,
		peak_start_morning: int,
		peak_end_morning: int,
		peak_start_evening: int,
		peak_end_evening: int,
	) -> RouteSchedule:
		"""
		Set the timing parameters for a route within a version.

		Replaces any timing already set for the same version and route.
		Times are minutes of the day, frequencies are minutes between
		departures.
		"""
		async with self._transaction():
			await self._authority.require_planner(caller, "set route schedule")
			await self._require_editable(version_id, route_id)

			for field, value in (
				("first_departure", first_departure),
				("last_departure", last_departure),
				("peak_start_morning", peak_start_morning),
				("peak_end_morning", peak_end_morning),
				("peak_start_evening", peak_start_evening),
				("peak_end_evening", peak_end_evening),
			):
				check_minute(value, field)
			for field, value in (
				("peak_frequency", peak_frequency),
				("off_peak_frequency", off_peak_frequency),
				("weekend_frequency", weekend_frequency),
			):
				check_frequency(value, field)
			check_order(first_departure, last_departure, "service span")
			check_order(peak_start_morning, peak_end_morning, "morning peak")
			check_order(peak_start_evening, peak_end_evening, "evening peak")

			schedule = RouteSchedule(
				version_id=version_id,
				route_id=route_id,
				first_departure=first_departure,
				last_departure=last_departure,
				peak_frequency=peak_frequency,
				off_peak_frequency=off_peak_frequency,
				weekend_frequency=weekend_frequency,
				peak_start_morning=peak_start_morning,
				peak_end_morning=peak_end_morning,
				peak_start_evening=peak_start_evening,
				peak_end_evening=peak_end_evening,
			)
			await self._db.execute(
				"INSERT OR REPLACE INTO route_schedules (version_id, route_id, data) VALUES (?, ?, ?)",
				(version_id, route_id, schedule.model_dump_json())
			)
			await self._record(
				"route_schedule",
				f"{version_id}:{route_id}",
				"set",
				caller,
				schedule.model_dump(mode="json"),
			)

		logger.info(f"Set schedule for route {route_id} in version {version_id}")
		return schedule

	async def get_route_schedule(self, version_id: int, route_id: int) -> RouteSchedule:
		async with self._snapshot():
			data = await self._fetch_data(
				"SELECT data FROM route_schedules WHERE version_id = ? AND route_id = ?",
				(version_id, route_id)
			)
		if data is None:
			raise NotFoundError(f"No schedule for route {route_id} in version {version_id}")
		return RouteSchedule.model_validate_json(data)

	async def add_scheduled_departure(
		self,
		caller: str,
		version_id: int,
		route_id: int,
		departure_time: int,
		day_type: DayType | str,
		vehicle_id: int,
		driver_id: int,
		is_express: bool = False,
		notes: str = "",
	) -> int:
		"""
		Append a departure to a route's schedule within a version.

		Sequence ids are numbered per version and route, starting at 1,
		and are never reused.

		Returns:
			The departure's sequence id
		"""
		async with self._transaction():
			await self._authority.require_planner(caller, "add scheduled departure")
			await self._require_editable(version_id, route_id)

			check_minute(departure_time, "departure_time")
			day_type = parse_enum(DayType, day_type, "day_type")
			check_identifier(vehicle_id, "vehicle_id")
			check_identifier(driver_id, "driver_id")
			if not isinstance(is_express, bool):
				raise InvalidArgumentError(f"is_express must be a boolean, got {is_express!r}")
			if not isinstance(notes, str):
				raise InvalidArgumentError("notes must be a string")

			async with self._db.execute(
				"SELECT last_sequence FROM departure_sequences WHERE version_id = ? AND route_id = ?",
				(version_id, route_id)
			) as cursor:
				row = await cursor.fetchone()
			sequence_id = (row["last_sequence"] if row else 0) + 1

			departure = ScheduledDeparture(
				version_id=version_id,
				route_id=route_id,
				sequence_id=sequence_id,
				departure_time=departure_time,
				day_type=day_type,
				vehicle_id=vehicle_id,
				driver_id=driver_id,
				is_express=is_express,
				notes=notes,
			)
			await self._db.execute(
				"INSERT OR REPLACE INTO departure_sequences (version_id, route_id, last_sequence) VALUES (?, ?, ?)",
				(version_id, route_id, sequence_id)
			)
			await self._db.execute(
				"""
				INSERT INTO scheduled_departures (version_id, route_id, sequence_id, data)
				VALUES (?, ?, ?, ?)
				""",
				(version_id, route_id, sequence_id, departure.model_dump_json())
			)
			await self._record(
				"scheduled_departure",
				f"{version_id}:{route_id}:{sequence_id}",
				"added",
				caller,
				departure.model_dump(mode="json"),
			)

		logger.info(f"Added departure {sequence_id} for route {route_id} in version {version_id}")
		return sequence_id

	async def get_scheduled_departure(self, version_id: int, route_id: int, sequence_id: int) -> ScheduledDeparture:
		async with self._snapshot():
			data = await self._fetch_data(
				"""
				SELECT data FROM scheduled_departures
				WHERE version_id = ? AND route_id = ? AND sequence_id = ?
				""",
				(version_id, route_id, sequence_id)
			)
		if data is None:
			raise NotFoundError(f"Departure {sequence_id} not found for route {route_id} in version {version_id}")
		return ScheduledDeparture.model_validate_json(data)

	async def list_departures(self, version_id: int, route_id: int) -> list[ScheduledDeparture]:
		"""Departures for a route within a version, in sequence order."""
		async with self._snapshot():
			async with self._db.execute(
				"""
				SELECT data FROM scheduled_departures
				WHERE version_id = ? AND route_id = ?
				ORDER BY sequence_id
				""",
				(version_id, route_id)
			) as cursor:
				rows = await cursor.fetchall()

		return [ScheduledDeparture.model_validate_json(row["data"]) for row in rows]

	# =========================================================================
	# Adjustments
	# =========================================================================

	async def _load_adjustment(self, adjustment_id: int) -> ScheduleAdjustment:
		data = await self._fetch_data("SELECT data FROM schedule_adjustments WHERE id = ?", (adjustment_id,))
		if data is None:
			raise NotFoundError(f"Schedule adjustment not found: {adjustment_id}")
		return ScheduleAdjustment.model_validate_json(data)

	async def _save_adjustment(self, adjustment: ScheduleAdjustment) -> None:
		await self._db.execute(
			"INSERT OR REPLACE INTO schedule_adjustments (id, route_id, status, data) VALUES (?, ?, ?, ?)",
			(adjustment.id, adjustment.route_id, adjustment.status.value, adjustment.model_dump_json())
		)

	async def create_schedule_adjustment(
		self,
		caller: str,
		route_id: int,
		adjustment_type: AdjustmentType | str,
		start_date: int,
		end_date: int,
		reason: str,
		status: AdjustmentStatus | str = AdjustmentStatus.ACTIVE,
	) -> int:
		"""
		Record a time-bounded override to a route's schedule.

		Adjustments take effect immediately unless another status is given.

		Args:
			caller: Authorized planner
			route_id: Active route in the catalog
			adjustment_type: e.g. "frequency-change", "detour"
			start_date: YYYYMMDD
			end_date: YYYYMMDD, after start_date
			reason: Free-text explanation
			status: Initial status

		Returns:
			New adjustment id
		"""
		async with self._transaction():
			await self._authority.require_planner(caller, "create schedule adjustment")
			if not await self._authority.route_is_active(route_id):
				raise NotFoundError(f"No active route with id {route_id}")

			adjustment_type = parse_enum(AdjustmentType, adjustment_type, "adjustment_type")
			status = parse_enum(AdjustmentStatus, status, "status")
			check_date(start_date, "start_date")
			check_date(end_date, "end_date")
			if not isinstance(reason, str):
				raise InvalidArgumentError("reason must be a string")
			check_order(start_date, end_date, "adjustment dates")

			adjustment = ScheduleAdjustment(
				id=await self._next_id("schedule_adjustments"),
				route_id=route_id,
				adjustment_type=adjustment_type,
				start_date=start_date,
				end_date=end_date,
				reason=reason,
				status=status,
				created_by=caller,
				creation_date=self._clock(),
			)
			await self._save_adjustment(adjustment)
			await self._record(
				"schedule_adjustment",
				str(adjustment.id),
				"created",
				caller,
				adjustment.model_dump(mode="json"),
			)

		logger.info(f"Created {adjustment_type.value} adjustment {adjustment.id} on route {route_id}")
		return adjustment.id

	async def update_adjustment_status(
		self,
		caller: str,
		adjustment_id: int,
		status: AdjustmentStatus | str,
	) -> ScheduleAdjustment:
		"""Move an adjustment to any status. Admin or authorized planner."""
		async with self._transaction():
			await self._authority.require_planner_or_admin(caller, "update adjustment status")
			adjustment = await self._load_adjustment(adjustment_id)
			status = parse_enum(AdjustmentStatus, status, "status")

			previous = adjustment.status
			adjustment.status = status
			await self._save_adjustment(adjustment)
			await self._record(
				"schedule_adjustment",
				str(adjustment_id),
				"status_changed",
				caller,
				{"from": previous.value, "to": status.value},
			)

		logger.info(f"Adjustment {adjustment_id} {previous.value} -> {status.value}")
		return adjustment

	async def get_schedule_adjustment(self, adjustment_id: int) -> ScheduleAdjustment:
		async with self._snapshot():
			return await self._load_adjustment(adjustment_id)

	async def list_adjustments(
		self,
		route_id: Optional[int] = None,
		status: Optional[AdjustmentStatus] = None,
	) -> list[ScheduleAdjustment]:
		"""List adjustments in id order, filtered by route and/or status."""
		conditions = []
		params = []

		if route_id is not None:
			conditions.append("route_id = ?")
			params.append(route_id)

		if status is not None:
			conditions.append("status = ?")
			params.append(parse_enum(AdjustmentStatus, status, "status").value)

		where_clause = " AND ".join(conditions) if conditions else "1=1"

		async with self._snapshot():
			async with self._db.execute(
				f"SELECT data FROM schedule_adjustments WHERE {where_clause} ORDER BY id",
				params
			) as cursor:
				rows = await cursor.fetchall()

		return [ScheduleAdjustment.model_validate_json(row["data"]) for row in rows]

	# =========================================================================
	# Audit history
	# =========================================================================

	async def get_history(self, entity: str, entity_key: str) -> list[LedgerEvent]:
		"""
		Get the audit trail for an entity, oldest first.

		Args:
			entity: e.g. "schedule_version", "planner", "route_schedule"
			entity_key: Entity key; composite keys are joined with ':' (e.g. "1:2")
		"""
		async with self._snapshot():
			async with self._db.execute(
				"SELECT * FROM ledger_events WHERE entity = ? AND entity_key = ? ORDER BY id",
				(entity, str(entity_key))
			) as cursor:
				rows = await cursor.fetchall()

		return [
			LedgerEvent(
				id=row["id"],
				entity=row["entity"],
				entity_key=row["entity_key"],
				action=row["action"],
				actor=row["actor"],
				payload=json.loads(row["payload"]),
				recorded_at=row["recorded_at"],
			)
			for row in rows
		]

	async def get_counts(self) -> dict[str, int]:
		"""Row counts per registry table."""
		counts = {}
		async with self._snapshot():
			for table in COUNTED_TABLES:
				async with self._db.execute(f"SELECT COUNT(*) AS n FROM {table}") as cursor:
					row = await cursor.fetchone()
				counts[table] = row["n"]
		return counts


# Global store instance
_store: Optional[ScheduleStore] = None


async def get_schedule_store(db_path: str = "") -> ScheduleStore:
	"""Get or create the global schedule store."""
	global _store
	if _store is None:
		from ..config import get_config
		config = get_config()
		_store = ScheduleStore(db_path or str(config.db_path))
		await _store.init(admin=config.admin_principal)
	return _store
