"""
Load pipeline

Reads one or more Overpass JSON extracts into a single OSMDatabase,
runs relation post-processing and summarizes the result:

  1. Validate configuration
  2. For each source file: relations + ways, mark nodes, nodes, areas
  3. Process relations (restrictions, level maps, routes, stop areas)
  4. Assemble the load report
"""

import json
import os
from typing import List, Optional
from loguru import logger

from .config import LoaderConfig, get_config, validate_config
from .models import AreaFeature, GeoJSONMultiPolygon, LoadCounts, LoadReport, RestrictionEntry
from .osm.database import OSMDatabase
from .osm.parser import OSMResponseParser


class OSMLoadPipeline:
    """
    Load OSM extracts and resolve their relations

    Usage:
        pipeline = OSMLoadPipeline()
        report = pipeline.run(["north.json", "south.json"])
        pipeline.save(report, "output/report.json")
        pipeline.database.get_walkable_areas()
    """

    def __init__(self, config: Optional[LoaderConfig] = None):
        self.config = config or get_config()
        validate_config(self.config)
        self.parser = OSMResponseParser()
        self.database: Optional[OSMDatabase] = None

    def load_file(self, path: str) -> dict:
        """Read one Overpass JSON document"""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise RuntimeError(f"Failed to read OSM extract {path}: {e}") from e
        if not isinstance(data, dict):
            raise RuntimeError(f"OSM extract {path} is not a JSON object")
        return data

    def run(self, paths: List[str]) -> LoadReport:
        """
        Load every extract, then post-process relations

        Args:
            paths: Overpass JSON files; overlapping coverage is fine

        Returns:
            LoadReport summarizing the resolved model
        """
        if not paths:
            raise ValueError("At least one OSM extract is required")

        self.database = OSMDatabase(self.config)

        for path in paths:
            logger.info(f"Loading {path}")
            self.parser.load_into(self.database, self.load_file(path))

        self.database.finish()

        report = self.build_report(self.database, paths)
        logger.info(f"Load complete: {report.counts.walkable_areas} walkable areas, "
                    f"{report.counts.turn_restrictions} turn restrictions, "
                    f"{report.counts.anomalies} anomalies")
        return report

    def build_report(self, database: OSMDatabase, paths: List[str]) -> LoadReport:
        walkable = database.get_walkable_areas()
        park_and_ride = database.get_park_and_ride_areas()

        # An area can be both walkable and park and ride
        areas = []
        for area in walkable + park_and_ride:
            if not any(area is seen for seen in areas):
                areas.append(area)

        features = []
        stop_areas = 0
        for area in areas:
            stops = database.get_stops_in_area(area.parent) or frozenset()
            if stops:
                stop_areas += 1
            features.append(AreaFeature(
                parent_type=area.parent.type_name,
                parent_id=area.parent.id,
                name=area.parent.get_tag("name"),
                walkable=any(area is a for a in walkable),
                park_and_ride=any(area is a for a in park_and_ride),
                geometry=GeoJSONMultiPolygon(coordinates=area.to_geojson()["coordinates"]),
                stop_node_ids=sorted(node.id for node in stops),
            ))

        restrictions = []
        for way_id in database.get_turn_restriction_way_ids():
            for tag in database.get_from_way_turn_restrictions(way_id):
                restrictions.append(RestrictionEntry(
                    from_way_id=way_id,
                    via=tag.via,
                    type=tag.type.value,
                    direction=tag.direction.value,
                    modes=sorted(mode.value for mode in tag.modes),
                    timed=tag.time is not None,
                ))

        anomalies = list(database.get_annotations())

        return LoadReport(
            source_files=[os.path.basename(p) for p in paths],
            floor_numbering=self.config.floor_numbering.value,
            counts=LoadCounts(
                nodes=len(database.get_nodes()),
                ways=len(database.get_ways()),
                area_ways=len(database.get_area_ways()),
                bike_rental_nodes=len(database.get_bike_rental_nodes()),
                walkable_areas=len(walkable),
                park_and_ride_areas=len(park_and_ride),
                turn_restrictions=len(restrictions),
                stop_areas=stop_areas,
                anomalies=len(anomalies),
            ),
            areas=features,
            turn_restrictions=restrictions,
            anomalies=anomalies,
        )

    def save(self, report: LoadReport, output_path: str):
        """Write the report as JSON"""
        output_dir = os.path.dirname(output_path)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(report.model_dump(mode="json"), f, indent=2, ensure_ascii=False)
        logger.info(f"Saved report to {output_path}")
