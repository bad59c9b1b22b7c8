"""
OpenStreetMap entity loading module

Components:
- Models: OSMNode, OSMWay, OSMRelation
- Filters: routability and traversal permissions
- Levels: level/layer tag and level_map parsing
- Restrictions: turn restriction entries and time windows
- Area: polygon construction from ways and multipolygons
- Annotations: anomalies collected while loading
- Parser: Overpass JSON reader
- Database: phased ingestion and relation resolution (osm_resolver.osm.database)
"""

from .models import OSMNode, OSMWay, OSMRelation, OSMRelationMember, OSMWithTags
from .filters import OSMFilter, StreetTraversalPermission
from .levels import OSMLevel, LevelSource
from .area import Area, AreaConstructionError
from .annotations import Anomaly, AnomalyKind
from .parser import OSMResponseParser

__all__ = [
    "OSMNode",
    "OSMWay",
    "OSMRelation",
    "OSMRelationMember",
    "OSMWithTags",
    "OSMFilter",
    "StreetTraversalPermission",
    "OSMLevel",
    "LevelSource",
    "Area",
    "AreaConstructionError",
    "Anomaly",
    "AnomalyKind",
    "OSMResponseParser",
]
