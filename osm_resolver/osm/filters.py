"""
Tag classifier

Decides whether an OSM entity is relevant for routing and which
travel modes may traverse it.
"""

from enum import Flag

from .models import OSMWithTags


class StreetTraversalPermission(Flag):
    """Travel modes allowed on a street or area"""
    NONE = 0
    PEDESTRIAN = 1
    BICYCLE = 2
    CAR = 4
    PEDESTRIAN_AND_BICYCLE = PEDESTRIAN | BICYCLE
    ALL = PEDESTRIAN | BICYCLE | CAR


# highway values that never carry traffic
NON_ROUTABLE_HIGHWAYS = {"conveyer", "proposed", "construction", "raceway", "unbuilt"}


class OSMFilter:
    """
    Default routability classifier

    Only a few access tags are examined. Values other than the denying
    ones are presumed permissive, which is closer to how people actually
    use the network.
    """

    def is_osm_entity_routable(self, entity: OSMWithTags) -> bool:
        """Entity carries a tag that makes it part of the street network"""
        if entity.has_tag("highway"):
            return True
        if entity.is_tag("public_transport", "platform") or entity.is_tag("railway", "platform"):
            return entity.get_tag("usability") != "no"
        return False

    def is_way_routable(self, way: OSMWithTags) -> bool:
        """Routable entity that is not blocked by construction or access tags"""
        if not self.is_osm_entity_routable(way):
            return False

        if way.get_tag("highway") in NON_ROUTABLE_HIGHWAYS:
            return False

        if way.is_general_access_denied():
            # Explicit mode permissions override access=no
            return (
                way.is_motorcar_explicitly_allowed()
                or way.is_bicycle_explicitly_allowed()
                or way.is_pedestrian_explicitly_allowed()
                or way.is_motor_vehicle_explicitly_allowed()
            )
        return True

    def get_permissions_for_entity(
        self,
        entity: OSMWithTags,
        default: StreetTraversalPermission
    ) -> StreetTraversalPermission:
        """
        Compute traversal permissions from access tags

        Args:
            entity: Way, area parent or relation to inspect
            default: Permission used when access is not generally denied

        Returns:
            Combined StreetTraversalPermission
        """
        if entity.is_general_access_denied():
            permission = StreetTraversalPermission.NONE
            if entity.is_motorcar_explicitly_allowed():
                permission |= StreetTraversalPermission.CAR
            if entity.is_bicycle_explicitly_allowed():
                permission |= StreetTraversalPermission.BICYCLE
            if entity.is_pedestrian_explicitly_allowed():
                permission |= StreetTraversalPermission.PEDESTRIAN
        else:
            permission = default

        if entity.is_motorcar_explicitly_denied():
            permission &= ~StreetTraversalPermission.CAR
        elif entity.has_tag("motorcar"):
            permission |= StreetTraversalPermission.CAR

        if entity.is_bicycle_explicitly_denied():
            permission &= ~StreetTraversalPermission.BICYCLE
        elif entity.has_tag("bicycle"):
            permission |= StreetTraversalPermission.BICYCLE

        if entity.is_pedestrian_explicitly_denied():
            permission &= ~StreetTraversalPermission.PEDESTRIAN
        elif entity.has_tag("foot"):
            permission |= StreetTraversalPermission.PEDESTRIAN

        if entity.is_under_construction():
            permission = StreetTraversalPermission.NONE

        return permission
