"""Verified relationship edges.

At most one Relationship exists per unordered pair of identities. The pair
is stored as ``(min(a, b), max(a, b))`` so acceptance from either side maps to
the same key, and creating an existing pair returns the stored edge (insert on
conflict do nothing).
"""

import logging
import uuid
from datetime import date, datetime
from typing import Callable, Iterable

from .exceptions import NotFoundError, ValidationError
from .types import Relationship, utcnow

logger = logging.getLogger(__name__)


def canonical_pair(id_a: str, id_b: str) -> tuple[str, str]:
    return (id_a, id_b) if id_a <= id_b else (id_b, id_a)


class RelationshipStore:
    """Set of verified relationships keyed by canonical pair."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._by_id: dict[str, Relationship] = {}
        self._by_pair: dict[tuple[str, str], str] = {}

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self):
        return iter(list(self._by_id.values()))

    def get(self, relationship_id: str) -> Relationship:
        relationship = self._by_id.get(relationship_id)
        if relationship is None:
            raise NotFoundError(
                f"Relationship not found: {relationship_id}",
                details={"relationship_id": relationship_id},
            )
        return relationship

    def find_pair(self, id_a: str, id_b: str) -> Relationship | None:
        relationship_id = self._by_pair.get(canonical_pair(id_a, id_b))
        return self._by_id.get(relationship_id) if relationship_id else None

    def create_from_acceptance(
        self,
        id_a: str,
        id_b: str,
        relation_type: str | None = None,
        hidden: bool = False,
    ) -> Relationship:
        """Create the edge for an accepted request, or return the existing one.

        Args:
            id_a: One endpoint (either party of the request)
            id_b: The other endpoint
            relation_type: Label for typed deployments, None otherwise
            hidden: Whether the edge is hidden from the default view

        Returns:
            The stored Relationship for the pair

        Raises:
            ValidationError: Both endpoints are the same identity
        """
        if id_a == id_b:
            raise ValidationError(
                "A relationship needs two distinct identities",
                details={"identity_id": id_a},
            )

        existing = self.find_pair(id_a, id_b)
        if existing is not None:
            logger.debug("Relationship %s already exists for pair", existing.id)
            return existing

        user_a, user_b = canonical_pair(id_a, id_b)
        now = self._clock()
        relationship = Relationship(
            id=str(uuid.uuid4()),
            user_a=user_a,
            user_b=user_b,
            relation_type=relation_type,
            hidden=hidden,
            last_interaction=now.date(),
            verified_at=now,
            created_at=now,
        )
        self._insert(relationship)
        logger.debug("Created relationship %s between %s and %s", relationship.id, user_a, user_b)
        return relationship

    def remove(self, relationship_id: str) -> Relationship:
        """Delete a relationship. Requests that led to it keep their status."""
        relationship = self.get(relationship_id)
        del self._by_id[relationship_id]
        del self._by_pair[(relationship.user_a, relationship.user_b)]
        logger.debug("Removed relationship %s", relationship_id)
        return relationship

    def query(self, viewer_id: str) -> list[Relationship]:
        """All relationships where the viewer is either endpoint."""
        return [rel for rel in self._by_id.values() if rel.involves(viewer_id)]

    def update(
        self,
        relationship_id: str,
        strength: int | None = None,
        last_interaction: date | None = None,
    ) -> Relationship:
        """Edit the user-editable fields of a relationship in memory.

        ``RelationSession.update_relationship`` writes the change through.
        """
        relationship = self.get(relationship_id)
        if strength is not None:
            if not 1 <= strength <= 10:
                raise ValidationError(
                    "Strength must be between 1 and 10",
                    details={"strength": strength},
                )
            relationship.strength = strength
        if last_interaction is not None:
            relationship.last_interaction = last_interaction
        return relationship

    def load(self, relationships: Iterable[Relationship]) -> None:
        """Replace the store contents, keeping the first edge seen per pair."""
        self._by_id.clear()
        self._by_pair.clear()
        for relationship in relationships:
            user_a, user_b = canonical_pair(relationship.user_a, relationship.user_b)
            if (user_a, user_b) in self._by_pair:
                logger.warning("Dropping duplicate relationship %s for pair", relationship.id)
                continue
            relationship.user_a, relationship.user_b = user_a, user_b
            self._insert(relationship)

    def snapshot(self) -> list[Relationship]:
        return [rel.model_copy(deep=True) for rel in self._by_id.values()]

    def _insert(self, relationship: Relationship) -> None:
        self._by_id[relationship.id] = relationship
        self._by_pair[(relationship.user_a, relationship.user_b)] = relationship.id
