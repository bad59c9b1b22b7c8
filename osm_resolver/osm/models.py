"""
OSM data models

Data classes for representing OSM nodes, ways and relations.
Entities compare by identity; side tables key them by ``entity.key``.
"""

from typing import List, Dict, Optional, Tuple
from dataclasses import dataclass, field


# Values that count as "yes" / "no" in access-style tags
TRUE_VALUES = {"yes", "1", "true"}
FALSE_VALUES = {"no", "0", "false"}
ACCESS_ALLOWED_VALUES = TRUE_VALUES | {"designated", "official", "permissive", "unknown"}
ACCESS_DENIED_VALUES = {"no", "license"}


@dataclass(eq=False)
class OSMWithTags:
    """Base for every OSM entity: an id and a bag of string tags"""
    id: int
    tags: Dict[str, str] = field(default_factory=dict)

    type_name = "entity"

    @property
    def key(self) -> Tuple[str, int]:
        """Stable identity across duplicate copies of the same entity"""
        return (self.type_name, self.id)

    def has_tag(self, key: str) -> bool:
        return key in self.tags

    def get_tag(self, key: str) -> Optional[str]:
        return self.tags.get(key)

    def is_tag(self, key: str, value: str) -> bool:
        return self.tags.get(key) == value

    def add_tag(self, key: str, value: str):
        self.tags[key] = value

    def is_tag_true(self, key: str) -> bool:
        return (self.tags.get(key) or "").lower() in TRUE_VALUES

    def is_tag_false(self, key: str) -> bool:
        return (self.tags.get(key) or "").lower() in FALSE_VALUES

    def is_tag_access_allowed(self, key: str) -> bool:
        return (self.tags.get(key) or "").lower() in ACCESS_ALLOWED_VALUES

    def is_tag_denied_access(self, key: str) -> bool:
        return (self.tags.get(key) or "").lower() in ACCESS_DENIED_VALUES

    def is_general_access_denied(self) -> bool:
        return self.is_tag_denied_access("access")

    def is_motorcar_explicitly_allowed(self) -> bool:
        return self.is_tag_access_allowed("motorcar")

    def is_motor_vehicle_explicitly_allowed(self) -> bool:
        return self.is_tag_access_allowed("motor_vehicle")

    def is_bicycle_explicitly_allowed(self) -> bool:
        return self.is_tag_access_allowed("bicycle")

    def is_pedestrian_explicitly_allowed(self) -> bool:
        return self.is_tag_access_allowed("foot")

    def is_motorcar_explicitly_denied(self) -> bool:
        return self.is_tag_denied_access("motorcar")

    def is_bicycle_explicitly_denied(self) -> bool:
        return self.is_tag_denied_access("bicycle") or self.is_tag("bicycle", "use_sidepath")

    def is_pedestrian_explicitly_denied(self) -> bool:
        return self.is_tag_denied_access("foot")

    def is_under_construction(self) -> bool:
        return self.is_tag("highway", "construction") or self.is_tag("cycleway", "construction")

    @property
    def is_park_and_ride(self) -> bool:
        """Parking amenity explicitly marked as park-and-ride"""
        if not self.is_tag("amenity", "parking"):
            return False
        parking_type = self.get_tag("parking")
        park_ride = self.get_tag("park_ride")
        return bool(
            (parking_type and "park_and_ride" in parking_type)
            or (park_ride and park_ride.lower() != "no")
        )


@dataclass(eq=False)
class OSMNode(OSMWithTags):
    """Represents an OSM node (point)"""
    lat: float = 0.0
    lon: float = 0.0

    type_name = "node"

    @property
    def is_stop(self) -> bool:
        """Transit stop that must be kept even when no way references it"""
        return (
            self.is_tag("highway", "bus_stop")
            or self.is_tag("railway", "tram_stop")
            or self.is_tag("railway", "station")
            or self.is_tag("railway", "halt")
            or self.is_tag("amenity", "bus_station")
            or self.is_tag("public_transport", "platform")
            or self.is_tag("public_transport", "stop_position")
        )

    @property
    def is_bike_rental(self) -> bool:
        return self.is_tag("amenity", "bicycle_rental")


@dataclass(eq=False)
class OSMWay(OSMWithTags):
    """Represents an OSM way (line or polygon boundary)"""
    node_refs: List[int] = field(default_factory=list)

    type_name = "way"


@dataclass(frozen=True)
class OSMRelationMember:
    """One member of a relation: what it points at and in which role"""
    type: str  # "node", "way" or "relation"
    ref: int
    role: str = ""


@dataclass(eq=False)
class OSMRelation(OSMWithTags):
    """Represents an OSM relation (grouping of members with roles)"""
    members: List[OSMRelationMember] = field(default_factory=list)

    type_name = "relation"

    def members_of_type(self, member_type: str) -> List[OSMRelationMember]:
        return [m for m in self.members if m.type == member_type]
