"""
Load anomalies

Structured, non-fatal diagnostics collected while resolving relations.
Every anomaly is also written to the log at its own severity.
"""

from enum import Enum
from typing import List, Tuple
from loguru import logger
from pydantic import BaseModel


class AnomalyKind(str, Enum):
    LEVEL_AMBIGUOUS = "level_ambiguous"
    LEVEL_UNDEFINED = "level_undefined"
    TURN_RESTRICTION_BAD = "turn_restriction_bad"
    TURN_RESTRICTION_UNKNOWN = "turn_restriction_unknown"
    TURN_RESTRICTION_EXCEPTION = "turn_restriction_exception"
    MULTIPOLYGON_ROLE_UNEXPECTED = "multipolygon_role_unexpected"
    STOP_AREA_UNRESOLVED = "stop_area_unresolved"


# Informational kinds are logged at DEBUG, everything else at WARNING
_DEBUG_KINDS = {AnomalyKind.TURN_RESTRICTION_EXCEPTION}


class Anomaly(BaseModel):
    kind: AnomalyKind
    entity_id: int
    message: str


class AnnotationSink:
    """Ordered, append-only anomaly list"""

    def __init__(self):
        self._anomalies: List[Anomaly] = []

    def add(self, kind: AnomalyKind, entity_id: int, message: str) -> Anomaly:
        anomaly = Anomaly(kind=kind, entity_id=entity_id, message=message)
        self._anomalies.append(anomaly)
        if kind in _DEBUG_KINDS:
            logger.debug(message)
        else:
            logger.warning(message)
        return anomaly

    def all(self) -> Tuple[Anomaly, ...]:
        return tuple(self._anomalies)

    def __len__(self) -> int:
        return len(self._anomalies)
