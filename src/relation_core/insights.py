"""Network analytics derived from a relationship set."""

from collections import Counter
from datetime import date, timedelta
from typing import Callable, Sequence

from .types import Insights, NetworkAnalysis, Relationship

FADING_THRESHOLD_DAYS = 90
CENTRAL_NODE_COUNT = 3

# (minimum relationships, tier), highest first
DEPTH_TIERS = ((5, 3), (2, 2), (0, 1))


def network_depth(total_connections: int) -> int:
    for minimum, tier in DEPTH_TIERS:
        if total_connections >= minimum:
            return tier
    return 1


def connections_to_next_tier(total_connections: int) -> int:
    """How many more relationships unlock the next tier (0 at the top)."""
    for minimum, tier in reversed(DEPTH_TIERS):
        if total_connections < minimum:
            return minimum - total_connections
    return 0


class InsightsEngine:
    """Pure analytics over relationships.

    Args:
        fading_threshold_days: Age after which a tie counts as fading
        today: Callable returning the reference date
    """

    def __init__(
        self,
        fading_threshold_days: int = FADING_THRESHOLD_DAYS,
        today: Callable[[], date] = date.today,
    ):
        self.fading_threshold_days = fading_threshold_days
        self._today = today

    def central_node_ids(self, relationships: Sequence[Relationship]) -> list[str]:
        """Top identities by degree; ties keep first-appearance order."""
        degrees: Counter[str] = Counter()
        for rel in relationships:
            degrees[rel.user_a] += 1
            degrees[rel.user_b] += 1
        # Counter preserves insertion order and sorted() is stable.
        ranked = sorted(degrees, key=lambda identity_id: -degrees[identity_id])
        return ranked[:CENTRAL_NODE_COUNT]

    def fading_relationships(self, relationships: Sequence[Relationship]) -> list[Relationship]:
        cutoff = self._today() - timedelta(days=self.fading_threshold_days)
        return [
            rel
            for rel in relationships
            if rel.last_interaction is None or rel.last_interaction < cutoff
        ]

    def analyze(self, relationships: Sequence[Relationship]) -> NetworkAnalysis:
        total = len(relationships)
        return NetworkAnalysis(
            central_node_ids=self.central_node_ids(relationships),
            fading_relationships=self.fading_relationships(relationships),
            network_depth=network_depth(total),
            total_connections=total,
        )

    def insights(self, relationships: Sequence[Relationship]) -> Insights:
        """Analytics with fields gated by network depth."""
        analysis = self.analyze(relationships)
        depth = analysis.network_depth
        insights = Insights(
            network_depth=depth,
            connections_to_next_tier=connections_to_next_tier(analysis.total_connections),
        )
        if depth >= 2:
            insights.total_connections = analysis.total_connections
            insights.fading_relationships = analysis.fading_relationships
        if depth >= 3:
            insights.central_node_ids = analysis.central_node_ids
        return insights
