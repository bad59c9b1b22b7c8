"""
OSM response parser

Parses Overpass API JSON documents into OSMNode, OSMWay and OSMRelation
objects and feeds them to an OSMDatabase in loading-phase order.
"""

from typing import Dict, Any, Tuple, List
from loguru import logger

from .models import OSMNode, OSMWay, OSMRelation, OSMRelationMember


class OSMResponseParser:
    """Parses Overpass API responses"""

    @staticmethod
    def _element_id(element: Dict[str, Any]) -> int:
        if "id" not in element:
            raise ValueError(f"OSM element without id: {element}")
        return int(element["id"])

    @staticmethod
    def parse_elements(data: Dict[str, Any]) -> Tuple[List[OSMNode], List[OSMWay], List[OSMRelation]]:
        """
        Parse Overpass response into nodes, ways and relations

        Elements are returned in document order. Unknown element types
        (e.g. Overpass 'area' or 'count') are skipped.

        Args:
            data: JSON response from Overpass API

        Returns:
            Tuple of (nodes, ways, relations)

        Raises:
            ValueError: if an element has no id
        """
        nodes = []
        ways = []
        relations = []

        for element in data.get("elements", []):
            element_type = element.get("type")
            if element_type == "node":
                node_id = OSMResponseParser._element_id(element)
                if "lat" not in element or "lon" not in element:
                    logger.debug(f"Skipping node {node_id} without coordinates")
                    continue
                nodes.append(OSMNode(
                    id=node_id,
                    lat=float(element["lat"]),
                    lon=float(element["lon"]),
                    tags=dict(element.get("tags", {}))
                ))
            elif element_type == "way":
                ways.append(OSMWay(
                    id=OSMResponseParser._element_id(element),
                    node_refs=[int(n) for n in element.get("nodes", [])],
                    tags=dict(element.get("tags", {}))
                ))
            elif element_type == "relation":
                members = [
                    OSMRelationMember(
                        type=member.get("type", ""),
                        ref=int(member["ref"]),
                        role=member.get("role") or ""
                    )
                    for member in element.get("members", [])
                    if "ref" in member
                ]
                relations.append(OSMRelation(
                    id=OSMResponseParser._element_id(element),
                    members=members,
                    tags=dict(element.get("tags", {}))
                ))
            else:
                logger.debug(f"Skipping element of type '{element_type}'")

        return nodes, ways, relations

    @staticmethod
    def load_into(database, data: Dict[str, Any]):
        """
        Feed one document to the database

        Relations and ways go first so that the database knows which
        nodes to keep by the time the nodes arrive.
        """
        nodes, ways, relations = OSMResponseParser.parse_elements(data)

        for relation in relations:
            database.add_relation(relation)
        for way in ways:
            database.add_way(way)
        database.on_lines_complete()

        for node in nodes:
            database.add_node(node)
        database.on_points_complete()

        logger.info(f"Loaded {len(nodes)} nodes, {len(ways)} ways, {len(relations)} relations")
