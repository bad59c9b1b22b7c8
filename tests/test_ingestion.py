"""
Tests for phased ingestion: filtering, node retention and phase ordering
"""

import pytest

from osm_resolver.osm.database import LoaderPhase, PhaseOrderError, RelationKind
from builders import closed_refs, load, node, relation, square_nodes, way


def test_unreferenced_nodes_are_dropped(db):
    load(db, ways=[way(10, [1, 2], {"highway": "residential"})],
         nodes=[node(1), node(2), node(3)])

    assert db.get_node(1) is not None
    assert db.get_node(2) is not None
    assert db.get_node(3) is None


def test_stop_nodes_are_kept_without_ways(db):
    load(db, nodes=[node(7, tags={"highway": "bus_stop"})])

    assert db.get_node(7) is not None


def test_bike_rental_nodes_go_to_their_own_bucket(db):
    load(db, ways=[way(10, [1, 2], {"highway": "residential"})],
         nodes=[node(1, tags={"amenity": "bicycle_rental"}), node(2)])

    assert db.get_node(1) is None
    assert [n.id for n in db.get_bike_rental_nodes()] == [1]


def test_nodes_of_discarded_ways_are_not_kept(db):
    load(db, ways=[way(10, [1, 2], {"building": "yes"})], nodes=[node(1), node(2)])

    assert db.get_ways() == ()
    assert db.get_node(1) is None


def test_marking_keeps_every_node_of_retained_ways(db):
    db.add_way(way(10, [1, 2, 3], {"highway": "footway"}))
    db.add_way(way(11, closed_refs(20), {"highway": "pedestrian", "area": "yes"}))
    db.on_lines_complete()

    for node_id in (1, 2, 3):
        assert db.is_node_belongs_to_way(node_id)
    for node_id in closed_refs(20):
        assert node_id in db._area_node_ids
        assert not db.is_node_belongs_to_way(node_id)


def test_single_node_way_does_not_mark_nodes(db):
    db.add_way(way(10, [1], {"highway": "footway"}))
    db.on_lines_complete()

    assert not db.is_node_belongs_to_way(1)


def test_area_tagged_way_goes_to_area_bucket_only(db):
    db.add_way(way(11, closed_refs(), {"highway": "pedestrian", "area": "yes"}))
    db.add_way(way(12, [1, 2], {"highway": "pedestrian", "area": "yes"}))

    assert [w.id for w in db.get_area_ways()] == [11]
    # Too few nodes for an area: treated as a plain way
    assert [w.id for w in db.get_ways()] == [12]


def test_multipolygon_members_are_kept_before_they_are_seen(db):
    db.add_relation(relation(200, [("way", 20, "outer")],
                             {"type": "multipolygon", "highway": "pedestrian"}))
    # Ring members usually carry no tags of their own
    db.add_way(way(20, closed_refs()))

    assert [w.id for w in db.get_area_ways()] == [20]
    assert db.get_ways() == ()


def test_buckets_stay_disjoint_for_routable_members(db):
    db.add_relation(relation(200, [("way", 20, "outer")],
                             {"type": "multipolygon", "highway": "pedestrian"}))
    db.add_way(way(20, closed_refs(), {"highway": "footway"}))

    area_ids = {w.id for w in db.get_area_ways()}
    way_ids = {w.id for w in db.get_ways()}
    assert area_ids == {20}
    assert not area_ids & way_ids


@pytest.mark.parametrize("tags, expected", [
    ({"type": "restriction", "restriction": "no_left_turn"}, RelationKind.RESTRICTION),
    ({"type": "route", "route": "road"}, RelationKind.ROAD_ROUTE),
    ({"type": "level_map", "levels": "1;2"}, RelationKind.LEVEL_MAP),
    ({"type": "public_transport", "public_transport": "stop_area"}, RelationKind.STOP_AREA),
    ({"type": "multipolygon", "highway": "pedestrian"}, RelationKind.MULTIPOLYGON),
    ({"type": "multipolygon", "amenity": "parking", "park_ride": "yes"}, RelationKind.MULTIPOLYGON),
    ({"type": "route", "route": "bus"}, None),
    ({"type": "public_transport", "public_transport": "stop_position"}, None),
    ({"type": "multipolygon", "building": "yes"}, None),
    ({"type": "boundary", "boundary": "administrative"}, None),
])
def test_relation_allow_list(db, tags, expected):
    db.add_relation(relation(300, [], tags))

    assert db.classify_relation(relation(300, [], tags)) is expected
    assert db.get_relation_kind(300) is expected
    assert (db.get_relation(300) is not None) == (expected is not None)


def test_non_routable_multipolygon_does_not_mark_members(db):
    db.add_relation(relation(200, [("way", 20, "outer")],
                             {"type": "multipolygon", "highway": "construction"}))
    db.add_way(way(20, closed_refs()))

    assert db.get_relation(200) is None
    assert db.get_area_ways() == ()


def test_reingesting_is_a_no_op(db):
    entities = dict(
        relations=[
            relation(200, [("way", 20, "outer")], {"type": "multipolygon", "highway": "pedestrian"}),
            relation(300, [("way", 10, "from"), ("node", 2, "via")],
                     {"type": "restriction", "restriction": "no_left_turn"}),
        ],
        ways=[
            way(10, [1, 2], {"highway": "residential", "level": "roof"}),
            way(20, closed_refs(11)),
        ],
        nodes=[node(1), node(2)] + square_nodes(11),
    )
    once = type(db)(db.config)
    load(once, **entities)
    once.finish()

    for _ in range(2):
        for r in entities["relations"]:
            db.add_relation(r)
        for w in entities["ways"]:
            db.add_way(w)
    db.on_lines_complete()
    for _ in range(2):
        for n in entities["nodes"]:
            db.add_node(n)
    db.on_points_complete()
    db.finish()

    assert [w.id for w in db.get_ways()] == [w.id for w in once.get_ways()]
    assert [w.id for w in db.get_area_ways()] == [w.id for w in once.get_area_ways()]
    assert [n.id for n in db.get_nodes()] == [n.id for n in once.get_nodes()]
    assert len(db.get_walkable_areas()) == len(once.get_walkable_areas()) == 1
    assert [a.kind for a in db.get_annotations()] == [a.kind for a in once.get_annotations()]


def test_phase_transitions(db):
    assert db.phase is LoaderPhase.INGESTING
    db.on_lines_complete()
    assert db.phase is LoaderPhase.LINES_MARKED
    db.on_points_complete()
    assert db.phase is LoaderPhase.AREAS_RESOLVED
    db.finish()
    assert db.phase is LoaderPhase.RELATIONS_PROCESSED


def test_second_source_restarts_ingestion(db):
    load(db, ways=[way(10, [1, 2], {"highway": "residential"})], nodes=[node(1), node(2)])
    load(db, ways=[way(11, [2, 3], {"highway": "residential"})], nodes=[node(3)])
    db.finish()

    assert {w.id for w in db.get_ways()} == {10, 11}
    assert db.get_node(3) is not None


def test_finish_requires_resolved_areas(db):
    with pytest.raises(PhaseOrderError):
        db.finish()


def test_points_complete_requires_marking(db):
    with pytest.raises(PhaseOrderError):
        db.on_points_complete()


def test_no_ingestion_after_finish(db):
    load(db)
    db.finish()

    with pytest.raises(PhaseOrderError):
        db.add_way(way(10, [1, 2], {"highway": "residential"}))
    with pytest.raises(PhaseOrderError):
        db.add_node(node(1))
    with pytest.raises(PhaseOrderError):
        db.finish()


def test_source_with_only_nodes(db):
    load(db, ways=[way(10, [1, 2, 3], {"highway": "residential"})], nodes=[node(1), node(2)])
    load(db, nodes=[node(3), node(4)])
    db.finish()

    assert db.get_node(3) is not None
    assert db.get_node(4) is None
    assert db.phase is LoaderPhase.RELATIONS_PROCESSED


def test_empty_source_after_resolved_areas(db):
    load(db, ways=[way(10, [1, 2], {"highway": "residential"})], nodes=[node(1), node(2)])
    load(db)
    db.finish()

    assert [w.id for w in db.get_ways()] == [10]


def test_no_marking_after_finish(db):
    load(db)
    db.finish()

    with pytest.raises(PhaseOrderError):
        db.on_lines_complete()
