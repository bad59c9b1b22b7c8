"""
Turn restriction types

Restriction entries extracted from type=restriction relations, plus the
recurring weekly time windows some of them carry.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple


class TraverseMode(Enum):
    WALK = "walk"
    BICYCLE = "bicycle"
    CAR = "car"
    CUSTOM_MOTOR_VEHICLE = "custom_motor_vehicle"


DRIVING_MODES = frozenset({TraverseMode.CAR, TraverseMode.CUSTOM_MOTOR_VEHICLE})
DEFAULT_RESTRICTED_MODES = frozenset({TraverseMode.BICYCLE}) | DRIVING_MODES


class TurnRestrictionType(Enum):
    NO_TURN = "no_turn"  # prohibitive
    ONLY_TURN = "only_turn"  # mandatory


class Direction(Enum):
    LEFT = "left"
    RIGHT = "right"
    STRAIGHT = "straight"
    U = "u"


# restriction=* value -> (type, direction)
RESTRICTION_TABLE: Dict[str, Tuple[TurnRestrictionType, Direction]] = {
    "no_right_turn": (TurnRestrictionType.NO_TURN, Direction.RIGHT),
    "no_left_turn": (TurnRestrictionType.NO_TURN, Direction.LEFT),
    "no_straight_on": (TurnRestrictionType.NO_TURN, Direction.STRAIGHT),
    "no_u_turn": (TurnRestrictionType.NO_TURN, Direction.U),
    "only_straight_on": (TurnRestrictionType.ONLY_TURN, Direction.STRAIGHT),
    "only_right_turn": (TurnRestrictionType.ONLY_TURN, Direction.RIGHT),
    "only_left_turn": (TurnRestrictionType.ONLY_TURN, Direction.LEFT),
    "only_u_turn": (TurnRestrictionType.ONLY_TURN, Direction.U),
}

DAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
SECONDS_PER_DAY = 24 * 3600


def _parse_day(day: str) -> int:
    """Weekday index (Monday = 0) from a full or two-letter day name"""
    value = day.strip().lower()
    for index, name in enumerate(DAY_NAMES):
        if value == name or value == name[:2] or value == name[:3]:
            return index
    raise ValueError(f"Unknown day '{day}'")


def _parse_hour(hour: str) -> int:
    """Seconds since midnight from ``HH`` or ``HH:MM``"""
    parts = hour.strip().split(":")
    if len(parts) > 2:
        raise ValueError(f"Bad time '{hour}'")
    hours = int(parts[0])
    minutes = int(parts[1]) if len(parts) == 2 else 0
    if not 0 <= hours <= 24 or not 0 <= minutes < 60:
        raise ValueError(f"Time out of range '{hour}'")
    seconds = hours * 3600 + minutes * 60
    if seconds > SECONDS_PER_DAY:
        raise ValueError(f"Time out of range '{hour}'")
    return seconds


@dataclass(frozen=True)
class RepeatingTimePeriod:
    """
    Weekly recurring time windows

    ``windows[d]`` holds the (start, end) second-of-day pairs active on
    weekday ``d`` (Monday = 0). A window with end < start runs past midnight.
    """
    windows: Tuple[Tuple[Tuple[int, int], ...], ...]

    @classmethod
    def parse_from_osm_turn_restriction(
        cls,
        day_on: str,
        day_off: str,
        hour_on: str,
        hour_off: str
    ) -> "RepeatingTimePeriod":
        """
        Build from the day_on/day_off/hour_on/hour_off restriction tags

        Hours may hold several ``;``-separated values that pair up
        positionally. Days wrap around the week (``day_on=sa``,
        ``day_off=mo`` covers Saturday to Monday).

        Raises:
            ValueError: if any value cannot be parsed
        """
        opening = hour_on.split(";")
        closing = hour_off.split(";")
        if len(opening) != len(closing):
            raise ValueError(f"Mismatched hour_on '{hour_on}' and hour_off '{hour_off}'")
        times = tuple((_parse_hour(o), _parse_hour(c)) for o, c in zip(opening, closing))

        first = _parse_day(day_on)
        last = _parse_day(day_off)
        active_days = {first}
        day = first
        while day != last:
            day = (day + 1) % 7
            active_days.add(day)

        return cls(windows=tuple(times if d in active_days else () for d in range(7)))

    def active(self, when: datetime) -> bool:
        """Whether the restriction applies at the given local time"""
        seconds = when.hour * 3600 + when.minute * 60 + when.second
        for start, end in self.windows[when.weekday()]:
            if start <= end:
                if start <= seconds < end:
                    return True
            elif seconds >= start or seconds < end:
                return True
        return False


@dataclass(frozen=True)
class TurnRestrictionTag:
    """One restriction entry, indexed under both its from-way and to-way"""
    via: int
    type: TurnRestrictionType
    direction: Direction
    modes: FrozenSet[TraverseMode] = DEFAULT_RESTRICTED_MODES
    time: Optional[RepeatingTimePeriod] = None
