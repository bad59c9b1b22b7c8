"""
Pydantic models for the load report
Serialized by the CLI as the JSON summary of a load
"""

from datetime import datetime
from typing import List, Optional, Literal
from pydantic import BaseModel, Field
import uuid

from .osm.annotations import Anomaly


# ============================================================
# GeoJSON Types
# ============================================================

class GeoJSONMultiPolygon(BaseModel):
    type: Literal["MultiPolygon"] = "MultiPolygon"
    coordinates: List[List[List[List[float]]]]  # [[[[lon, lat], ...], hole...], polygon...]


# ============================================================
# Resolved entities
# ============================================================

class AreaFeature(BaseModel):
    parent_type: str  # "way" or "relation"
    parent_id: int
    name: Optional[str] = None
    walkable: bool
    park_and_ride: bool
    geometry: GeoJSONMultiPolygon
    stop_node_ids: List[int] = Field(default_factory=list)


class RestrictionEntry(BaseModel):
    from_way_id: int
    via: int
    type: str
    direction: str
    modes: List[str]
    timed: bool = False


class LoadCounts(BaseModel):
    nodes: int = 0
    ways: int = 0
    area_ways: int = 0
    bike_rental_nodes: int = 0
    walkable_areas: int = 0
    park_and_ride_areas: int = 0
    turn_restrictions: int = 0
    stop_areas: int = 0
    anomalies: int = 0


# ============================================================
# Root Model
# ============================================================

class LoadReport(BaseModel):
    report_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    generated_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    source_files: List[str] = Field(default_factory=list)
    floor_numbering: str
    counts: LoadCounts = Field(default_factory=LoadCounts)
    areas: List[AreaFeature] = Field(default_factory=list)
    turn_restrictions: List[RestrictionEntry] = Field(default_factory=list)
    anomalies: List[Anomaly] = Field(default_factory=list)
