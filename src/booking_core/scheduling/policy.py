"""Booking policy resolution.

Merges a salon's stored booking settings and operating hours with the system
defaults. Defaulting is field-by-field: a salon that customised only its slot
interval still inherits every other setting.

Operating hours default to *open* whenever a day is not configured, including when
the salon has no operating hours at all. Only an explicit ``closed: true`` closes a
day. Salons created before operating hours existed rely on this.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from booking_core.config import BookingDefaultsSettings
from booking_core.scheduling.slot_grid import is_clock

logger = logging.getLogger(__name__)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class EffectiveBookingSettings:
    """A salon's booking settings with every unset field filled from defaults."""

    min_advance_booking_hours: int
    max_advance_booking_days: int
    slot_interval: int
    allow_same_day_booking: bool
    cancellation_hours: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DayHours:
    """Resolved opening window for one weekday."""

    weekday: str
    opening: str
    closing: str
    closed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"open": self.opening, "close": self.closing, "closed": self.closed}


def weekday_name(day: date) -> str:
    """Lowercase English weekday name for ``day``."""
    return WEEKDAYS[day.weekday()]


class PolicyResolver:
    """Resolves effective booking settings, hours and timezone for a salon."""

    def __init__(self, defaults: BookingDefaultsSettings) -> None:
        self._defaults = defaults

    @property
    def defaults(self) -> EffectiveBookingSettings:
        d = self._defaults
        return EffectiveBookingSettings(
            min_advance_booking_hours=d.min_advance_booking_hours,
            max_advance_booking_days=d.max_advance_booking_days,
            slot_interval=d.slot_interval,
            allow_same_day_booking=d.allow_same_day_booking,
            cancellation_hours=d.cancellation_hours,
        )

    def resolve(self, salon: Any) -> EffectiveBookingSettings:
        """Return the salon's booking settings merged with system defaults."""
        configured: Mapping[str, Any] = getattr(salon, "booking_settings", None) or {}
        defaults = self.defaults

        def pick(field: str, minimum: int) -> int:
            value = configured.get(field)
            # bool is an int subclass; never accept it for numeric settings
            if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
                return getattr(defaults, field)
            return value

        same_day = configured.get("allow_same_day_booking")

        return EffectiveBookingSettings(
            min_advance_booking_hours=pick("min_advance_booking_hours", 0),
            max_advance_booking_days=pick("max_advance_booking_days", 0),
            slot_interval=pick("slot_interval", 1),
            allow_same_day_booking=same_day if isinstance(same_day, bool) else defaults.allow_same_day_booking,
            cancellation_hours=pick("cancellation_hours", 0),
        )

    def day_hours(self, salon: Any, day: date) -> DayHours:
        """Return the opening window for the weekday of ``day``."""
        return self.hours_for_weekday(salon, weekday_name(day))

    def hours_for_weekday(self, salon: Any, weekday: str) -> DayHours:
        opening = self._defaults.default_opening
        closing = self._defaults.default_closing

        operating_hours = getattr(salon, "operating_hours", None) or {}
        day_config = operating_hours.get(weekday) if isinstance(operating_hours, Mapping) else None

        if isinstance(day_config, Mapping):
            if day_config.get("closed") is True:
                return DayHours(weekday=weekday, opening=opening, closing=closing, closed=True)
            if is_clock(day_config.get("open")):
                opening = day_config["open"]
            if is_clock(day_config.get("close")):
                closing = day_config["close"]

        return DayHours(weekday=weekday, opening=opening, closing=closing)

    def weekly_hours(self, salon: Any) -> Dict[str, DayHours]:
        return {weekday: self.hours_for_weekday(salon, weekday) for weekday in WEEKDAYS}

    def timezone(self, salon: Any) -> ZoneInfo:
        """Salon timezone, falling back to the configured default."""
        name: Optional[str] = getattr(salon, "timezone", None) or self._defaults.timezone
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone {name!r} for salon {getattr(salon, 'id', None)}; using default")
            return ZoneInfo(self._defaults.timezone)
