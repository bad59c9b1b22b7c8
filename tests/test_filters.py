"""
Tests for the default tag classifier and configuration validation
"""

import pytest

from osm_resolver.config import LoaderConfig, validate_config
from osm_resolver.osm.filters import OSMFilter, StreetTraversalPermission
from builders import node, way

P = StreetTraversalPermission


@pytest.fixture
def classifier():
    return OSMFilter()


@pytest.mark.parametrize("tags, routable", [
    ({"highway": "residential"}, True),
    ({"highway": "construction"}, False),
    ({"highway": "proposed"}, False),
    ({"railway": "platform"}, True),
    ({"public_transport": "platform", "usability": "no"}, False),
    ({"building": "yes"}, False),
    ({"highway": "service", "access": "private"}, True),
    ({"highway": "service", "access": "no"}, False),
    ({"highway": "service", "access": "no", "foot": "yes"}, True),
    ({"highway": "service", "access": "no", "bicycle": "designated"}, True),
])
def test_is_way_routable(classifier, tags, routable):
    assert classifier.is_way_routable(way(1, [1, 2], tags)) is routable


@pytest.mark.parametrize("tags, expected", [
    ({"highway": "footway"}, P.PEDESTRIAN_AND_BICYCLE),
    ({"highway": "footway", "bicycle": "no"}, P.PEDESTRIAN),
    ({"highway": "footway", "motorcar": "yes"}, P.ALL),
    ({"highway": "footway", "access": "no"}, P.NONE),
    ({"highway": "footway", "access": "no", "foot": "yes"}, P.PEDESTRIAN),
    ({"highway": "footway", "foot": "no", "bicycle": "no"}, P.NONE),
    ({"highway": "construction"}, P.NONE),
])
def test_permissions(classifier, tags, expected):
    permission = classifier.get_permissions_for_entity(way(1, [1, 2], tags), P.PEDESTRIAN_AND_BICYCLE)
    assert permission == expected


@pytest.mark.parametrize("tags, park_and_ride", [
    ({"amenity": "parking", "park_ride": "yes"}, True),
    ({"amenity": "parking", "park_ride": "bus"}, True),
    ({"amenity": "parking", "park_ride": "no"}, False),
    ({"amenity": "parking", "parking": "park_and_ride"}, True),
    ({"amenity": "parking"}, False),
    ({"park_ride": "yes"}, False),
])
def test_park_and_ride(tags, park_and_ride):
    assert way(1, [1, 2], tags).is_park_and_ride is park_and_ride


@pytest.mark.parametrize("tags, is_stop", [
    ({"highway": "bus_stop"}, True),
    ({"railway": "tram_stop"}, True),
    ({"railway": "halt"}, True),
    ({"amenity": "bus_station"}, True),
    ({"highway": "crossing"}, False),
])
def test_node_is_stop(tags, is_stop):
    assert node(1, tags=tags).is_stop is is_stop


def test_default_config_is_valid():
    validate_config(LoaderConfig())


def test_invalid_config_lists_every_problem():
    config = LoaderConfig(node_log_interval=0, route_ref_tag="route:names")
    config.classifier = None

    with pytest.raises(ValueError) as excinfo:
        validate_config(config)

    message = str(excinfo.value)
    assert "node_log_interval" in message
    assert "classifier" in message
    assert "must differ" in message


def test_custom_classifier_is_used():
    class EverythingRoutable(OSMFilter):
        def is_way_routable(self, way):
            return True

        def is_osm_entity_routable(self, entity):
            return True

    from osm_resolver.osm.database import OSMDatabase

    db = OSMDatabase(LoaderConfig(classifier=EverythingRoutable()))
    db.add_way(way(10, [1, 2], {"building": "yes"}))

    assert [w.id for w in db.get_ways()] == [10]
