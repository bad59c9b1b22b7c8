"""
Area construction

Builds polygonal areas from a single closed way or from the outer/inner
way members of a multipolygon relation.
"""

from collections import Counter
from typing import Any, Dict, List, Optional, Tuple

from shapely.geometry import MultiPolygon, Polygon, mapping
from shapely.validation import explain_validity

from .models import OSMNode, OSMWay, OSMWithTags


class AreaConstructionError(Exception):
    """Rings could not be assembled into a valid polygon"""


def construct_rings(ways: List[OSMWay]) -> Optional[List[List[int]]]:
    """
    Join ways end to end into closed node-id rings

    Closed ways are rings on their own. Open ways are chained through
    shared endpoints, reversing them where needed.

    Returns:
        List of closed rings (first id == last id), or None if the ways
        cannot be closed
    """
    closed_rings = []
    open_ways = []
    for way in ways:
        refs = list(way.node_refs)
        if len(refs) < 2:
            return None
        if refs[0] == refs[-1]:
            closed_rings.append(refs)
        else:
            open_ways.append(refs)

    # Every endpoint must be shared by an even number of ways
    endpoints = Counter()
    for refs in open_ways:
        endpoints[refs[0]] += 1
        endpoints[refs[-1]] += 1
    if any(count % 2 for count in endpoints.values()):
        return None

    while open_ways:
        ring = open_ways.pop(0)
        while ring[0] != ring[-1]:
            tail = ring[-1]
            for i, refs in enumerate(open_ways):
                if refs[0] == tail:
                    ring.extend(refs[1:])
                    break
                if refs[-1] == tail:
                    ring.extend(reversed(refs[:-1]))
                    break
            else:
                return None
            open_ways.pop(i)
        closed_rings.append(ring)

    return closed_rings


class Ring:
    """A closed ring of resolved nodes"""

    def __init__(self, node_ids: List[int], nodes_by_id: Dict[int, OSMNode]):
        missing = [n for n in node_ids if n not in nodes_by_id]
        if missing:
            raise AreaConstructionError(f"Ring references unknown nodes {missing[:5]}")
        if len(set(node_ids)) < 3:
            raise AreaConstructionError(f"Ring has fewer than 3 distinct nodes: {node_ids}")

        self.node_ids = list(node_ids)
        self.nodes = [nodes_by_id[n] for n in node_ids]
        self.holes: List["Ring"] = []
        self._polygon = None

        polygon = self.to_polygon()
        if not polygon.is_valid:
            raise AreaConstructionError(f"Invalid ring: {explain_validity(polygon)}")
        if polygon.area == 0:
            raise AreaConstructionError("Degenerate ring with zero area")

    @property
    def coordinates(self) -> List[Tuple[float, float]]:
        """Ring coordinates as (lon, lat)"""
        return [(n.lon, n.lat) for n in self.nodes]

    def to_polygon(self) -> Polygon:
        if self._polygon is None:
            self._polygon = Polygon(self.coordinates)
        return self._polygon


class Area:
    """
    Polygonal area derived from a way or a multipolygon relation

    Raises AreaConstructionError from the constructor when the rings do
    not make up a valid (multi)polygon.
    """

    def __init__(
        self,
        parent: OSMWithTags,
        outer_ring_ways: List[OSMWay],
        inner_ring_ways: List[OSMWay],
        nodes_by_id: Dict[int, OSMNode]
    ):
        self.parent = parent

        outer_ids = construct_rings(outer_ring_ways)
        inner_ids = construct_rings(inner_ring_ways)
        if outer_ids is None or inner_ids is None:
            raise AreaConstructionError(f"Could not close rings of {parent.type_name} {parent.id}")
        if not outer_ids:
            raise AreaConstructionError(f"{parent.type_name} {parent.id} has no outer ring")

        self.outer_rings = [Ring(ids, nodes_by_id) for ids in outer_ids]
        self.inner_rings = [Ring(ids, nodes_by_id) for ids in inner_ids]

        # Each hole goes to the smallest outer ring containing it
        for inner in self.inner_rings:
            containers = [
                outer for outer in self.outer_rings
                if inner.to_polygon().within(outer.to_polygon())
            ]
            if not containers:
                raise AreaConstructionError(
                    f"Inner ring of {parent.type_name} {parent.id} lies in no outer ring"
                )
            smallest = min(containers, key=lambda r: r.to_polygon().area)
            smallest.holes.append(inner)

        self._multipolygon = self._build_multipolygon()

    def _build_multipolygon(self) -> MultiPolygon:
        polygons = [
            Polygon(outer.coordinates, [hole.coordinates for hole in outer.holes])
            for outer in self.outer_rings
        ]
        multipolygon = MultiPolygon(polygons)
        if not multipolygon.is_valid:
            raise AreaConstructionError(
                f"Invalid area for {self.parent.type_name} {self.parent.id}: "
                f"{explain_validity(multipolygon)}"
            )
        return multipolygon

    def to_multipolygon(self) -> MultiPolygon:
        return self._multipolygon

    def to_geojson(self) -> Dict[str, Any]:
        return mapping(self._multipolygon)
