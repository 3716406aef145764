from datetime import datetime, timedelta

from domain.models.rates import RateEdge, RateGraph
from domain.utils.time import as_utc, utc_now

# (maximum age, confidence) pairs, checked in order
CONFIDENCE_STEPS: tuple[tuple[timedelta, float], ...] = (
    (timedelta(hours=1), 1.0),
    (timedelta(hours=6), 0.9),
    (timedelta(hours=24), 0.7),
    (timedelta(hours=72), 0.5),
)
STALE_CONFIDENCE = 0.3


def calculate_confidence(fetched_at: datetime, now: datetime | None = None) -> float:
    """Confidence of a rate based purely on how long ago it was fetched."""
    age = as_utc(now or utc_now()) - as_utc(fetched_at)

    for max_age, confidence in CONFIDENCE_STEPS:
        if age < max_age:
            return confidence
    return STALE_CONFIDENCE


def add_edge(graph: RateGraph, edge: RateEdge) -> bool:
    """
    Merge a candidate edge into the graph.

    Both endpoints always become nodes, even when the candidate is discarded.
    An existing edge is only replaced by a candidate with strictly higher
    confidence. Returns True when the candidate was stored.
    """
    graph.nodes.add(edge.from_currency)
    graph.nodes.add(edge.to_currency)

    targets = graph.edges.setdefault(edge.from_currency, {})
    existing = targets.get(edge.to_currency)

    if existing is None or edge.confidence > existing.confidence:
        targets[edge.to_currency] = edge
        return True
    return False
