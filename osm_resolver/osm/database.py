"""
OSM database

Phased ingestion of nodes, ways and relations, area resolution and
relation post-processing. The result is the filtered, cross-referenced
model a street graph builder consumes.

Call order for each source:

    add_relation / add_way ... -> on_lines_complete()
    add_node ...               -> on_points_complete()

and ``finish()`` once after every source has been loaded.
"""

from collections import defaultdict
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Set, Tuple
from loguru import logger

from ..config import LoaderConfig, get_config
from .annotations import AnnotationSink, Anomaly, AnomalyKind
from .area import Area, AreaConstructionError
from .filters import StreetTraversalPermission
from .levels import LevelSource, OSMLevel
from .models import OSMNode, OSMRelation, OSMWay, OSMWithTags
from .restrictions import (
    DEFAULT_RESTRICTED_MODES,
    DRIVING_MODES,
    RESTRICTION_TABLE,
    RepeatingTimePeriod,
    TraverseMode,
    TurnRestrictionTag,
)


class LoaderPhase(Enum):
    INGESTING = "ingesting"
    LINES_MARKED = "lines_marked"
    AREAS_RESOLVED = "areas_resolved"
    RELATIONS_PROCESSED = "relations_processed"


class PhaseOrderError(RuntimeError):
    """A loading phase was invoked out of order"""


class RelationKind(Enum):
    """The relation kinds worth keeping; everything else is dropped on ingestion"""
    MULTIPOLYGON = "multipolygon"
    RESTRICTION = "restriction"
    ROAD_ROUTE = "road_route"
    LEVEL_MAP = "level_map"
    STOP_AREA = "stop_area"


# Tags copied from a multipolygon relation onto its member ways
RELATION_COPY_TAGS = ("highway", "name", "ref")
RELATION_COPY_PLATFORM_TAGS = (("railway", "platform"), ("public_transport", "platform"))


class OSMDatabase:
    """
    Filtered, cross-referenced store of OSM entities

    Nodes are only kept when a retained way or area references them (or
    when they are transit stops), so ways and relations must be loaded
    before nodes.
    """

    def __init__(self, config: Optional[LoaderConfig] = None):
        self.config = config or get_config()
        self.classifier = self.config.classifier
        self.phase = LoaderPhase.INGESTING
        self.annotations = AnnotationSink()

        # Entities
        self._nodes_by_id: Dict[int, OSMNode] = {}
        self._bike_rental_nodes: Dict[int, OSMNode] = {}
        self._ways_by_id: Dict[int, OSMWay] = {}
        self._area_ways_by_id: Dict[int, OSMWay] = {}
        self._relations_by_id: Dict[int, OSMRelation] = {}
        self._relation_kinds: Dict[int, RelationKind] = {}

        # Areas
        self._walkable_areas: List[Area] = []
        self._park_and_ride_areas: List[Area] = []
        self._single_way_areas: List[OSMWay] = []
        self._processed_areas: Set[Tuple[str, int]] = set()
        self._areas_for_node: Dict[int, Set[int]] = defaultdict(set)

        # Way ids known to bound an area, possibly before the way is seen
        self._area_way_ids: Set[int] = set()

        # Node ids of kept ways and areas, filled by on_lines_complete
        self._ways_node_ids: Set[int] = set()
        self._area_node_ids: Set[int] = set()

        # Relation-derived side tables
        self._way_levels: Dict[Tuple[str, int], OSMLevel] = {}
        self._turn_restrictions_by_from_way: Dict[int, List[TurnRestrictionTag]] = defaultdict(list)
        self._turn_restrictions_by_to_way: Dict[int, List[TurnRestrictionTag]] = defaultdict(list)
        self._stops_in_areas: Dict[Tuple[str, int], FrozenSet[OSMNode]] = {}

        self._relation_handlers = {
            RelationKind.MULTIPOLYGON: None,  # consumed when areas are resolved
            RelationKind.RESTRICTION: self._process_restriction,
            RelationKind.LEVEL_MAP: self._process_level_map,
            RelationKind.ROAD_ROUTE: self._process_road,
            RelationKind.STOP_AREA: self._process_public_transport_stop_area,
        }

    # ------------------------------------------------------------------
    # Query façade
    # ------------------------------------------------------------------

    def get_node(self, node_id: int) -> Optional[OSMNode]:
        return self._nodes_by_id.get(node_id)

    def get_nodes(self) -> Tuple[OSMNode, ...]:
        return tuple(self._nodes_by_id.values())

    def get_ways(self) -> Tuple[OSMWay, ...]:
        return tuple(self._ways_by_id.values())

    def get_area_ways(self) -> Tuple[OSMWay, ...]:
        return tuple(self._area_ways_by_id.values())

    def get_relation(self, relation_id: int) -> Optional[OSMRelation]:
        return self._relations_by_id.get(relation_id)

    def get_relation_kind(self, relation_id: int) -> Optional[RelationKind]:
        return self._relation_kinds.get(relation_id)

    def get_bike_rental_nodes(self) -> Tuple[OSMNode, ...]:
        return tuple(self._bike_rental_nodes.values())

    def get_walkable_areas(self) -> Tuple[Area, ...]:
        return tuple(self._walkable_areas)

    def get_park_and_ride_areas(self) -> Tuple[Area, ...]:
        return tuple(self._park_and_ride_areas)

    def get_turn_restriction_way_ids(self) -> Tuple[int, ...]:
        return tuple(self._turn_restrictions_by_from_way)

    def get_from_way_turn_restrictions(self, from_way_id: int) -> Tuple[TurnRestrictionTag, ...]:
        return tuple(self._turn_restrictions_by_from_way.get(from_way_id, ()))

    def get_to_way_turn_restrictions(self, to_way_id: int) -> Tuple[TurnRestrictionTag, ...]:
        return tuple(self._turn_restrictions_by_to_way.get(to_way_id, ()))

    def get_stops_in_area(self, area_parent: OSMWithTags) -> Optional[FrozenSet[OSMNode]]:
        return self._stops_in_areas.get(area_parent.key)

    def get_level_for_way(self, way: OSMWithTags) -> Optional[OSMLevel]:
        return self._way_levels.get(way.key)

    def is_node_shared_by_multiple_areas(self, node_id: int) -> bool:
        return len(self._areas_for_node.get(node_id, ())) > 1

    def is_node_belongs_to_way(self, node_id: int) -> bool:
        return node_id in self._ways_node_ids

    def get_annotations(self) -> Tuple[Anomaly, ...]:
        return self.annotations.all()

    def is_area_processed(self, entity: OSMWithTags) -> bool:
        return entity.key in self._processed_areas

    # ------------------------------------------------------------------
    # Phase 1: ingestion
    # ------------------------------------------------------------------

    def _check_ingesting(self, what: str):
        if self.phase is LoaderPhase.RELATIONS_PROCESSED:
            raise PhaseOrderError(f"Cannot add {what} after relations were processed")

    def add_node(self, node: OSMNode):
        self._check_ingesting("nodes")

        if node.is_bike_rental:
            self._bike_rental_nodes[node.id] = node
            return

        if not (node.id in self._ways_node_ids or node.id in self._area_node_ids or node.is_stop):
            return

        if node.id in self._nodes_by_id:
            return

        self._nodes_by_id[node.id] = node

        if len(self._nodes_by_id) % self.config.node_log_interval == 0:
            logger.debug(f"nodes={len(self._nodes_by_id)}")

    def add_way(self, way: OSMWay):
        self._check_ingesting("ways")
        self.phase = LoaderPhase.INGESTING

        # Only add ways once
        way_id = way.id
        if way_id in self._ways_by_id or way_id in self._area_ways_by_id:
            return

        self._resolve_level(way)

        # Multipolygon members are kept whatever their own tags say
        if way_id in self._area_way_ids:
            self._area_ways_by_id[way_id] = way
            return

        if not (self.classifier.is_way_routable(way) or way.is_park_and_ride):
            return

        # An area can be tagged as such, or be one by default as a parking amenity
        if (way.is_tag("area", "yes") or way.is_tag("amenity", "parking")) and len(way.node_refs) > 2:
            self._single_way_areas.append(way)
            self._area_ways_by_id[way_id] = way
            self._area_way_ids.add(way_id)
            for node_id in way.node_refs:
                self._areas_for_node[node_id].add(way_id)
            return

        self._ways_by_id[way_id] = way

        if len(self._ways_by_id) % self.config.way_log_interval == 0:
            logger.debug(f"ways={len(self._ways_by_id)}")

    def classify_relation(self, relation: OSMRelation) -> Optional[RelationKind]:
        """Semantic kind of a relation, or None if it is not worth keeping"""
        relation_type = relation.get_tag("type")
        if relation_type == "multipolygon":
            if self.classifier.is_osm_entity_routable(relation) or relation.is_park_and_ride:
                return RelationKind.MULTIPOLYGON
        elif relation_type == "restriction":
            return RelationKind.RESTRICTION
        elif relation_type == "route":
            if relation.is_tag("route", "road"):
                return RelationKind.ROAD_ROUTE
        elif relation_type == "level_map":
            return RelationKind.LEVEL_MAP
        elif relation_type == "public_transport":
            if relation.is_tag("public_transport", "stop_area"):
                return RelationKind.STOP_AREA
        return None

    def add_relation(self, relation: OSMRelation):
        self._check_ingesting("relations")
        self.phase = LoaderPhase.INGESTING

        if relation.id in self._relations_by_id:
            return

        kind = self.classify_relation(relation)
        if kind is None:
            return

        if kind is RelationKind.MULTIPOLYGON:
            if not (self.classifier.is_way_routable(relation) or relation.is_park_and_ride):
                return
            # Member ways are usually not loaded yet: mark them so they are
            # kept when they arrive, and build the area once nodes are in.
            for member in relation.members_of_type("way"):
                self._area_way_ids.add(member.ref)
            self._resolve_level(relation)

        self._relations_by_id[relation.id] = relation
        self._relation_kinds[relation.id] = kind

        if len(self._relations_by_id) % self.config.relation_log_interval == 0:
            logger.debug(f"relations={len(self._relations_by_id)}")

    # ------------------------------------------------------------------
    # Phase 2: mark nodes of kept ways
    # ------------------------------------------------------------------

    def on_lines_complete(self):
        """
        All ways and relations of a source are in; decide which nodes to keep

        Also starts a new source after areas were resolved, since a source
        may carry no ways or relations at all.
        """
        if self.phase is LoaderPhase.RELATIONS_PROCESSED:
            raise PhaseOrderError(f"on_lines_complete called in phase {self.phase.value}")

        self._mark_nodes_for_keeping(self._ways_by_id.values(), self._ways_node_ids)
        self._mark_nodes_for_keeping(self._area_ways_by_id.values(), self._area_node_ids)
        self.phase = LoaderPhase.LINES_MARKED

        logger.info(f"Kept {len(self._ways_by_id)} ways, {len(self._area_ways_by_id)} area ways, "
                    f"{len(self._relations_by_id)} relations")

    @staticmethod
    def _mark_nodes_for_keeping(ways, node_ids: Set[int]):
        for way in ways:
            if len(way.node_refs) > 1:
                node_ids.update(way.node_refs)

    # ------------------------------------------------------------------
    # Phase 3: areas
    # ------------------------------------------------------------------

    def on_points_complete(self):
        """All nodes of a source are in; build the areas that can now be built"""
        if self.phase not in (LoaderPhase.LINES_MARKED, LoaderPhase.AREAS_RESOLVED):
            raise PhaseOrderError(f"on_points_complete called in phase {self.phase.value}")

        self._process_multipolygon_relations()
        self._process_single_way_areas()
        self.phase = LoaderPhase.AREAS_RESOLVED

        logger.info(f"Kept {len(self._nodes_by_id)} nodes; "
                    f"{len(self._walkable_areas)} walkable areas, "
                    f"{len(self._park_and_ride_areas)} park and ride areas")

    def _process_multipolygon_relations(self):
        for relation_id, relation in self._relations_by_id.items():
            if self._relation_kinds[relation_id] is not RelationKind.MULTIPOLYGON:
                continue
            if relation.key in self._processed_areas:
                continue
            self._process_multipolygon(relation)

    def _resolve_member_way(self, way_id: int) -> Optional[OSMWay]:
        way = self._area_ways_by_id.get(way_id)
        if way is None:
            way = self._ways_by_id.get(way_id)
        return way

    def _process_multipolygon(self, relation: OSMRelation):
        # Abandoning a relation (missing way or node) is silent: this is
        # normal at the edge of an extract.
        self._processed_areas.add(relation.key)

        outer_ways = []
        inner_ways = []
        for member in relation.members_of_type("way"):
            if member.role not in ("outer", "inner"):
                self.annotations.add(
                    AnomalyKind.MULTIPOLYGON_ROLE_UNEXPECTED, relation.id,
                    f"Unexpected role '{member.role}' for way {member.ref} in multipolygon {relation.id}"
                )
                continue
            way = self._resolve_member_way(member.ref)
            if way is None:
                return
            if any(node_id not in self._nodes_by_id for node_id in way.node_refs):
                return
            if member.role == "outer":
                outer_ways.append(way)
            else:
                inner_ways.append(way)

        try:
            area = Area(relation, outer_ways, inner_ways, self._nodes_by_id)
        except AreaConstructionError as e:
            logger.debug(f"Skipping multipolygon {relation.id}: {e}")
            return

        for way in outer_ways + inner_ways:
            for node_id in way.node_refs:
                self._areas_for_node[node_id].add(way.id)
        self._new_area(area)

        # Copy descriptive tags to member ways that are routed on in their own right
        for member in relation.members_of_type("way"):
            way = self._ways_by_id.get(member.ref)
            if way is None:
                continue
            for tag in RELATION_COPY_TAGS:
                if relation.has_tag(tag) and not way.has_tag(tag):
                    way.add_tag(tag, relation.get_tag(tag))
            for tag, value in RELATION_COPY_PLATFORM_TAGS:
                if relation.is_tag(tag, value) and not way.has_tag(tag):
                    way.add_tag(tag, value)

    def _process_single_way_areas(self):
        for way in self._single_way_areas:
            if way.key in self._processed_areas:
                continue
            if any(node_id not in self._nodes_by_id for node_id in way.node_refs):
                continue
            try:
                self._new_area(Area(way, [way], [], self._nodes_by_id))
            except AreaConstructionError as e:
                # All nodes are present, so the way itself is broken; don't retry
                logger.debug(f"Skipping area way {way.id}: {e}")
            self._processed_areas.add(way.key)

    def _new_area(self, area: Area):
        permissions = self.classifier.get_permissions_for_entity(
            area.parent, StreetTraversalPermission.PEDESTRIAN_AND_BICYCLE
        )
        if (self.classifier.is_osm_entity_routable(area.parent)
                and permissions != StreetTraversalPermission.NONE):
            self._walkable_areas.append(area)
        if area.parent.is_park_and_ride:
            self._park_and_ride_areas.append(area)

    # ------------------------------------------------------------------
    # Levels
    # ------------------------------------------------------------------

    def _resolve_level(self, entity: OSMWithTags):
        """Assign a level from the level or layer tag, unless one is set already"""
        if entity.key in self._way_levels:
            return

        level_name = None
        level = OSMLevel.DEFAULT
        increment = self.config.increment_non_negative_levels
        if entity.has_tag("level"):
            level_name = entity.get_tag("level")
            level = OSMLevel.from_string(level_name, LevelSource.LEVEL_TAG, increment)
        elif entity.has_tag("layer"):
            level_name = entity.get_tag("layer")
            level = OSMLevel.from_string(level_name, LevelSource.LAYER_TAG, increment)

        if not level.reliable:
            self.annotations.add(
                AnomalyKind.LEVEL_AMBIGUOUS, entity.id,
                f"Could not infer floor number for level '{level_name}' of {entity.type_name} "
                f"{entity.id}; vertical movement will still be possible but elevator cost "
                f"might be incorrect"
            )
            level = OSMLevel.DEFAULT

        self._way_levels[entity.key] = level

    # ------------------------------------------------------------------
    # Final pass: relations
    # ------------------------------------------------------------------

    def finish(self):
        """After all sources are loaded, apply relations to ways and nodes"""
        if self.phase is not LoaderPhase.AREAS_RESOLVED:
            raise PhaseOrderError(f"finish called in phase {self.phase.value}")

        logger.debug("Processing relations...")
        for relation_id, relation in self._relations_by_id.items():
            handler = self._relation_handlers[self._relation_kinds[relation_id]]
            if handler is not None:
                handler(relation)
        self.phase = LoaderPhase.RELATIONS_PROCESSED

        logger.info(f"Relations processed: {len(self._turn_restrictions_by_from_way)} ways with "
                    f"turn restrictions, {len(self._stops_in_areas)} stop areas, "
                    f"{len(self.annotations)} anomalies")

    def _process_restriction(self, relation: OSMRelation):
        from_id = to_id = via_id = None
        for member in relation.members:
            if member.role == "from":
                from_id = member.ref
            elif member.role == "to":
                to_id = member.ref
            elif member.role == "via":
                via_id = member.ref
        if from_id is None or to_id is None or via_id is None:
            self.annotations.add(
                AnomalyKind.TURN_RESTRICTION_BAD, relation.id,
                f"Bad turn restriction at relation {relation.id}: missing from, to or via"
            )
            return

        modes = set(DEFAULT_RESTRICTED_MODES)
        except_modes = relation.get_tag("except")
        if except_modes:
            for mode in except_modes.split(";"):
                mode = mode.strip()
                if mode == "motorcar":
                    modes -= DRIVING_MODES
                elif mode == "bicycle":
                    modes.discard(TraverseMode.BICYCLE)
                    self.annotations.add(
                        AnomalyKind.TURN_RESTRICTION_EXCEPTION, relation.id,
                        f"Turn restriction with bicycle exception at node {via_id} from way {from_id}"
                    )

        restriction = relation.get_tag("restriction")
        if restriction not in RESTRICTION_TABLE:
            self.annotations.add(
                AnomalyKind.TURN_RESTRICTION_UNKNOWN, relation.id,
                f"Invalid turn restriction '{restriction}' at relation {relation.id}"
            )
            return
        restriction_type, direction = RESTRICTION_TABLE[restriction]

        time = None
        if all(relation.has_tag(t) for t in ("day_on", "day_off", "hour_on", "hour_off")):
            try:
                time = RepeatingTimePeriod.parse_from_osm_turn_restriction(
                    relation.get_tag("day_on"), relation.get_tag("day_off"),
                    relation.get_tag("hour_on"), relation.get_tag("hour_off"),
                )
            except ValueError as e:
                logger.info(f"Unparseable turn restriction time at relation {relation.id}: {e}")

        tag = TurnRestrictionTag(
            via=via_id,
            type=restriction_type,
            direction=direction,
            modes=frozenset(modes),
            time=time,
        )
        self._turn_restrictions_by_from_way[from_id].append(tag)
        self._turn_restrictions_by_to_way[to_id].append(tag)

    def _process_level_map(self, relation: OSMRelation):
        # Level map names are localized already, so they always use US numbering
        levels = OSMLevel.map_from_spec_list(
            relation.get_tag("levels") or "", LevelSource.LEVEL_MAP, True
        )
        for member in relation.members_of_type("way"):
            way = self._ways_by_id.get(member.ref)
            if way is None:
                continue
            role = member.role
            # A role:xyz tag means something more complicated than a single
            # level, e.g. a ramp or stairway
            if relation.has_tag(f"role:{role}"):
                continue
            if role in levels:
                self._way_levels[way.key] = levels[role]
            else:
                self.annotations.add(
                    AnomalyKind.LEVEL_UNDEFINED, member.ref,
                    f"Way {member.ref} has undefined level '{role}' in level map {relation.id}"
                )

    def _process_road(self, relation: OSMRelation):
        for member in relation.members_of_type("way"):
            way = self._ways_by_id.get(member.ref)
            if way is None:
                continue
            if relation.has_tag("name"):
                self._add_unique_tag_value(way, self.config.route_name_tag, relation.get_tag("name"))
            if relation.has_tag("ref"):
                self._add_unique_tag_value(way, self.config.route_ref_tag, relation.get_tag("ref"))

    def _add_unique_tag_value(self, way: OSMWay, tag: str, value: str):
        separator = self.config.route_separator
        existing = way.get_tag(tag)
        if existing is None:
            way.add_tag(tag, value)
        elif value not in existing.split(separator):
            way.add_tag(tag, existing + separator + value)

    def _process_public_transport_stop_area(self, relation: OSMRelation):
        """
        Associate transit stops with the platform area they stand in

        The platform is either an area way or a multipolygon relation. Stop
        nodes need not be connected to the platform geometry.
        """
        platform_areas = []
        platform_nodes = set()
        for member in relation.members:
            if member.role != "platform":
                continue
            if member.type == "way" and member.ref in self._area_ways_by_id:
                platform_areas.append(self._area_ways_by_id[member.ref])
            elif member.type == "relation" and member.ref in self._relations_by_id:
                platform_areas.append(self._relations_by_id[member.ref])
            elif member.type == "node" and member.ref in self._nodes_by_id:
                platform_nodes.add(self._nodes_by_id[member.ref])

        if len(platform_areas) == 1 and platform_nodes:
            self._stops_in_areas[platform_areas[0].key] = frozenset(platform_nodes)
        elif len(platform_areas) > 1:
            self.annotations.add(
                AnomalyKind.STOP_AREA_UNRESOLVED, relation.id,
                f"Too many platform areas in relation {relation.id}"
            )
        else:
            self.annotations.add(
                AnomalyKind.STOP_AREA_UNRESOLVED, relation.id,
                f"Unable to process public transportation relation {relation.id}"
            )
