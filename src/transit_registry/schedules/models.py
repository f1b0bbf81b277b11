"""
Schedule Models - Pydantic schemas for the schedule registry.

Defines planners, routes, versioned schedule editions with their
per-route timing and departures, and schedule adjustments.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class VersionStatus(str, Enum):
	"""Lifecycle of a schedule version."""
	DRAFT = "draft"
	APPROVED = "approved"
	ACTIVE = "active"
	REJECTED = "rejected"
	SUPERSEDED = "superseded"


# Route timing and departures may only change while the version is in one of these
EDITABLE_VERSION_STATUSES = frozenset({VersionStatus.DRAFT, VersionStatus.APPROVED})


class AdjustmentStatus(str, Enum):
	"""Status of a schedule adjustment. Any status may follow any other."""
	PROPOSED = "proposed"
	ACTIVE = "active"
	CANCELLED = "cancelled"
	EXPIRED = "expired"


class AdjustmentType(str, Enum):
	FREQUENCY_CHANGE = "frequency-change"
	DETOUR = "detour"
	SUSPENSION = "suspension"
	EXTRA_SERVICE = "extra-service"
	OTHER = "other"


class DayType(str, Enum):
	WEEKDAY = "weekday"
	SATURDAY = "saturday"
	SUNDAY = "sunday"
	HOLIDAY = "holiday"


class Planner(BaseModel):
	"""A registered schedule planner."""
	principal: str = Field(description="Opaque caller identity")
	name: str
	department: str
	authorized: bool = Field(default=False)
	authorization_date: Optional[int] = Field(default=None, description="YYYYMMDD of last authorization")


class Route(BaseModel):
	"""Route metadata from the catalog."""
	id: int
	name: str
	route_type: str = Field(description="e.g. 'bus', 'rail'")
	active: bool = Field(default=True)


class ScheduleVersion(BaseModel):
	"""
	A named, dated edition of route timing data.

	Versions start as drafts and only move forward; at most one version
	is active at any time.
	"""
	id: int
	name: str
	effective_date: int = Field(description="YYYYMMDD")
	expiry_date: int = Field(description="YYYYMMDD")
	status: VersionStatus = Field(default=VersionStatus.DRAFT)
	created_by: str
	creation_date: int
	approved_by: Optional[str] = Field(default=None)
	approval_date: Optional[int] = Field(default=None)

	@property
	def is_editable(self) -> bool:
		return self.status in EDITABLE_VERSION_STATUSES


class RouteSchedule(BaseModel):
	"""Timing parameters for one route within one schedule version."""
	version_id: int
	route_id: int
	first_departure: int = Field(description="Minute of day")
	last_departure: int = Field(description="Minute of day")
	peak_frequency: int = Field(description="Minutes between departures")
	off_peak_frequency: int
	weekend_frequency: int
	peak_start_morning: int
	peak_end_morning: int
	peak_start_evening: int
	peak_end_evening: int


class ScheduledDeparture(BaseModel):
	"""A single scheduled departure within a route's schedule for a version."""
	version_id: int
	route_id: int
	sequence_id: int
	departure_time: int = Field(description="Minute of day")
	day_type: DayType
	vehicle_id: int
	driver_id: int
	is_express: bool = Field(default=False)
	notes: str = Field(default="")


class ScheduleAdjustment(BaseModel):
	"""A time-bounded operational override to a route's schedule."""
	id: int
	route_id: int
	adjustment_type: AdjustmentType
	start_date: int
	end_date: int
	reason: str
	status: AdjustmentStatus = Field(default=AdjustmentStatus.ACTIVE)
	created_by: str
	creation_date: int


class AdminControl(BaseModel):
	"""The single current admin identity."""
	admin: str
	updated_at: str = Field(default_factory=lambda: datetime.now().isoformat())


class LedgerEvent(BaseModel):
	"""One entry in the append-only audit log."""
	id: int
	entity: str = Field(description="Entity table, e.g. 'schedule_version'")
	entity_key: str = Field(description="Entity key, composite keys joined with ':'")
	action: str
	actor: str
	payload: dict[str, Any] = Field(default_factory=dict)
	recorded_at: str = Field(default_factory=lambda: datetime.now().isoformat())
