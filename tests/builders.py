"""
Entity builders shared by the tests
"""

from typing import Dict, Iterable, List, Optional, Tuple

from osm_resolver.osm.models import OSMNode, OSMRelation, OSMRelationMember, OSMWay

# Corners of a ~100m square, counter-clockwise, as (lat, lon)
SQUARE = [(0.0, 0.0), (0.0, 0.001), (0.001, 0.001), (0.001, 0.0)]


def node(node_id: int, lat: float = 0.0, lon: float = 0.0, tags: Optional[Dict[str, str]] = None) -> OSMNode:
    return OSMNode(id=node_id, lat=lat, lon=lon, tags=dict(tags or {}))


def way(way_id: int, refs: List[int], tags: Optional[Dict[str, str]] = None) -> OSMWay:
    return OSMWay(id=way_id, node_refs=list(refs), tags=dict(tags or {}))


def relation(relation_id: int, members: Iterable[Tuple[str, int, str]],
             tags: Optional[Dict[str, str]] = None) -> OSMRelation:
    return OSMRelation(
        id=relation_id,
        members=[OSMRelationMember(type=t, ref=r, role=role) for t, r, role in members],
        tags=dict(tags or {}),
    )


def square_nodes(first_id: int = 1, origin: Tuple[float, float] = (0.0, 0.0), size: float = 1.0) -> List[OSMNode]:
    """Four nodes of a square, ids first_id .. first_id + 3"""
    lat0, lon0 = origin
    return [
        node(first_id + i, lat=lat0 + lat * size, lon=lon0 + lon * size)
        for i, (lat, lon) in enumerate(SQUARE)
    ]


def closed_refs(first_id: int = 1) -> List[int]:
    return [first_id, first_id + 1, first_id + 2, first_id + 3, first_id]


def load(db, relations=(), ways=(), nodes=()):
    """Feed one source through ingestion, marking and area resolution"""
    for r in relations:
        db.add_relation(r)
    for w in ways:
        db.add_way(w)
    db.on_lines_complete()
    for n in nodes:
        db.add_node(n)
    db.on_points_complete()
