"""
Authority checks for the schedule registry.

Provides the lookups the registry gates every write on:
- Identity check: is the caller the current admin
- Planner lookup: registered planner record and its authorized flag
- Route existence: route is in the catalog and active

Each check reads the connection it is given, so when called inside a
store transaction it sees the state at the start of that operation.
"""

import logging
from typing import Optional

import aiosqlite

from ..logging_config import get_security_logger
from .errors import NotAuthorizedError
from .models import Planner, Route

logger = logging.getLogger(__name__)
security_logger = get_security_logger()


class Authority:
	"""Role and existence checks over the registry tables."""

	def __init__(self, db: aiosqlite.Connection):
		self._db = db

	async def current_admin(self) -> Optional[str]:
		async with self._db.execute("SELECT admin FROM admin_control WHERE id = 1") as cursor:
			row = await cursor.fetchone()
		return row["admin"] if row else None

	async def is_admin(self, caller: str) -> bool:
		"""Identity check: does caller equal the current admin."""
		admin = await self.current_admin()
		return admin is not None and caller == admin

	async def lookup_planner(self, principal: str) -> Optional[Planner]:
		"""Planner lookup: the planner record or None if not registered."""
		async with self._db.execute(
			"SELECT data FROM planners WHERE principal = ?",
			(principal,)
		) as cursor:
			row = await cursor.fetchone()
		return Planner.model_validate_json(row["data"]) if row else None

	async def is_authorized_planner(self, caller: str) -> bool:
		planner = await self.lookup_planner(caller)
		return planner is not None and planner.authorized

	async def lookup_route(self, route_id: int) -> Optional[Route]:
		async with self._db.execute(
			"SELECT data FROM routes WHERE id = ?",
			(route_id,)
		) as cursor:
			row = await cursor.fetchone()
		return Route.model_validate_json(row["data"]) if row else None

	async def route_is_active(self, route_id: int) -> bool:
		"""Route existence check: route exists and is active."""
		route = await self.lookup_route(route_id)
		return route is not None and route.active

	async def require_admin(self, caller: str, action: str) -> None:
		if not await self.is_admin(caller):
			self._deny(caller, action, "admin required")

	async def require_planner(self, caller: str, action: str) -> None:
		if not await self.is_authorized_planner(caller):
			self._deny(caller, action, "authorized planner required")

	async def require_planner_or_admin(self, caller: str, action: str) -> None:
		if await self.is_admin(caller):
			return
		if not await self.is_authorized_planner(caller):
			self._deny(caller, action, "admin or authorized planner required")

	def _deny(self, caller: str, action: str, reason: str) -> None:
		security_logger.warning(f"Denied {action} for {caller}: {reason}")
		raise NotAuthorizedError(f"{caller} may not {action}: {reason}")
