"""
Vertical level parsing

Turns level/layer tag values and level_map value lists into
OSMLevel objects used for elevators, stairways and the like.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional
from loguru import logger


class LevelSource(Enum):
    """Where a level was taken from"""
    LEVEL_TAG = "level_tag"
    LAYER_TAG = "layer_tag"
    LEVEL_MAP = "level_map"
    NONE = "none"


RANGE_PATTERN = re.compile(r"^[0-9]+-[0-9]+$")
METERS_PER_FLOOR = 3.0


def _parse_int(value: str) -> Optional[int]:
    try:
        return int(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class OSMLevel:
    """A resolved vertical level"""
    floor_number: int  # 0-based
    altitude_m: Optional[float]
    short_name: str  # localized, possibly 1-based
    long_name: str
    source: LevelSource
    reliable: bool

    @staticmethod
    def from_string(spec: str, source: LevelSource, increment_non_negative: bool) -> "OSMLevel":
        """
        Parse a level specification such as ``"1"``, ``"-1"``, ``"G=Ground"``
        or ``"2@6.5"``

        Args:
            spec: Tag value
            source: Which tag or relation the value came from
            increment_non_negative: US floor numbering. Level and layer
                values >= 0 are shown one higher; level map values >= 1
                are shifted down to 0-based floor numbers.

        Returns:
            OSMLevel, with ``reliable=False`` when the floor had to be guessed
        """
        altitude = None
        reliable = True

        # Altitude follows the last @
        at = spec.rfind("@")
        if at != -1:
            try:
                altitude = float(spec[at + 1:])
            except ValueError:
                pass
            spec = spec[:at]

        equals = spec.find("=")
        if equals >= 1:
            short_name = spec[:equals]
            long_name = spec[equals + 1:]
        else:
            short_name = long_name = spec
        if long_name.startswith("+"):
            long_name = long_name[1:]
        if short_name.startswith("+"):
            short_name = short_name[1:]

        floor_number = None

        # Short name takes precedence over long name for floor numbering
        number = _parse_int(long_name)
        if number is not None:
            floor_number = number
            if increment_non_negative:
                if source is LevelSource.LEVEL_MAP:
                    if floor_number >= 1:
                        floor_number -= 1
                elif floor_number >= 0:
                    long_name = str(floor_number + 1)

        number = _parse_int(short_name)
        if number is not None:
            floor_number = number
            if increment_non_negative:
                if source is LevelSource.LEVEL_MAP:
                    if floor_number >= 1:
                        floor_number -= 1
                elif floor_number >= 0:
                    short_name = str(floor_number + 1)

        if floor_number is None and altitude is not None:
            floor_number = int(altitude / METERS_PER_FLOOR)
            logger.warning(f"Could not determine floor number for level '{spec}'. "
                           f"Guessed {floor_number} (0-based) from altitude.")
            reliable = False

        if altitude is None and floor_number is not None:
            altitude = floor_number * METERS_PER_FLOOR

        if floor_number is None:
            floor_number = 0
            logger.warning(f"Could not parse level out of OSM tag '{spec}'")
            reliable = False

        return OSMLevel(
            floor_number=floor_number,
            altitude_m=altitude,
            short_name=short_name,
            long_name=long_name,
            source=source,
            reliable=reliable,
        )

    @staticmethod
    def from_spec_list(spec_list: str, source: LevelSource, increment_non_negative: bool) -> List["OSMLevel"]:
        """Parse a ``;``-separated list, expanding ``a-b`` ranges"""
        specs = []
        for level in spec_list.split(";"):
            level = level.strip()
            if not level:
                continue
            if RANGE_PATTERN.match(level):
                start, end = level.split("-")
                specs.extend(str(i) for i in range(int(start), int(end) + 1))
            else:
                specs.append(level)
        return [OSMLevel.from_string(s, source, increment_non_negative) for s in specs]

    @staticmethod
    def map_from_spec_list(spec_list: str, source: LevelSource, increment_non_negative: bool) -> Dict[str, "OSMLevel"]:
        """Levels keyed by short name, as referenced from level_map member roles"""
        return {
            level.short_name: level
            for level in OSMLevel.from_spec_list(spec_list, source, increment_non_negative)
        }


OSMLevel.DEFAULT = OSMLevel(
    floor_number=0,
    altitude_m=0.0,
    short_name="default level",
    long_name="default level",
    source=LevelSource.NONE,
    reliable=True,
)
