"""
OSM relation resolver

Filters raw OpenStreetMap entities and resolves multipolygon areas,
turn restrictions, levels, road routes and transit stop areas into the
model a street graph builder consumes.
"""

from .config import LoaderConfig, FloorNumbering, get_config
from .osm.database import OSMDatabase, LoaderPhase, PhaseOrderError, RelationKind
from .pipeline import OSMLoadPipeline

__all__ = [
    "LoaderConfig",
    "FloorNumbering",
    "get_config",
    "OSMDatabase",
    "LoaderPhase",
    "PhaseOrderError",
    "RelationKind",
    "OSMLoadPipeline",
]
