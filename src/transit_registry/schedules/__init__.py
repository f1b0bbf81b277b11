"""Schedules module - Versioned route schedules, departures and adjustments."""

from .errors import (
	InvalidArgumentError,
	InvalidRangeError,
	InvalidStateError,
	NotAuthorizedError,
	NotFoundError,
	RegistryError,
)
from .models import (
	AdjustmentStatus,
	AdjustmentType,
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
from .store import ScheduleStore, get_schedule_store

__all__ = [
	"ScheduleStore",
	"get_schedule_store",
	"Planner",
	"Route",
	"ScheduleVersion",
	"RouteSchedule",
	"ScheduledDeparture",
	"ScheduleAdjustment",
	"LedgerEvent",
	"VersionStatus",
	"AdjustmentStatus",
	"AdjustmentType",
	"DayType",
	"RegistryError",
	"NotAuthorizedError",
	"NotFoundError",
	"InvalidRangeError",
	"InvalidStateError",
	"InvalidArgumentError",
]
