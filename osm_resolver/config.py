"""
Configuration settings for the OSM relation resolver
"""

from dataclasses import dataclass, field
from enum import Enum

from .osm.filters import OSMFilter


class FloorNumbering(Enum):
    """How numeric level/layer tag values are displayed"""
    # Skip floor zero and show non-negative floors one higher, as is done in the US
    US = "us"
    # Use the tag value as-is
    LITERAL = "literal"


@dataclass
class LoaderConfig:
    """Loader configuration"""
    # Floor numbering convention for level and layer tags.
    # Level maps are localized already and are not affected.
    floor_numbering: FloorNumbering = FloorNumbering.US

    # Tag classifier deciding routability and traversal permissions
    classifier: OSMFilter = field(default_factory=OSMFilter)

    # Progress logging intervals (entity counts)
    node_log_interval: int = 100000
    way_log_interval: int = 10000
    relation_log_interval: int = 100

    # Tags that road route relations accumulate their names and refs into
    route_name_tag: str = "route:names"
    route_ref_tag: str = "route:refs"
    route_separator: str = ", "

    @property
    def increment_non_negative_levels(self) -> bool:
        return self.floor_numbering is FloorNumbering.US


# Global config instance
config = LoaderConfig()


def get_config() -> LoaderConfig:
    """Get global configuration"""
    return config


def validate_config(config: LoaderConfig) -> None:
    """
    Validate that all required configuration values are set.
    Raises ValueError if any required value is missing or invalid.
    """
    errors = []

    if not isinstance(config.floor_numbering, FloorNumbering):
        errors.append(f"floor_numbering must be a FloorNumbering, got {config.floor_numbering!r}")

    # The classifier only has to quack like OSMFilter
    if config.classifier is None:
        errors.append("classifier is required but not set")
    else:
        for method in ("is_osm_entity_routable", "is_way_routable", "get_permissions_for_entity"):
            if not callable(getattr(config.classifier, method, None)):
                errors.append(f"classifier must provide {method}()")

    for name in ("node_log_interval", "way_log_interval", "relation_log_interval"):
        value = getattr(config, name)
        if not isinstance(value, int) or value <= 0:
            errors.append(f"{name} must be a positive integer, got {value!r}")

    if not config.route_name_tag or not config.route_ref_tag:
        errors.append("route_name_tag and route_ref_tag must be non-empty")
    elif config.route_name_tag == config.route_ref_tag:
        errors.append("route_name_tag and route_ref_tag must differ")

    if not config.route_separator:
        errors.append("route_separator must be non-empty")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(error_msg)
