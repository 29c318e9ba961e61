"""Id-indexed identity lookup shared by the ledger, store and projector."""

import logging
from typing import Iterable, Iterator

from .exceptions import NotFoundError
from .types import Identity

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"


class IdentityDirectory:
    """Arena of known identities.

    Relationships and requests only carry ids; names and scores are resolved
    here at projection time so there is a single copy of each identity.
    """

    def __init__(self, identities: Iterable[Identity] = ()):
        self._identities: dict[str, Identity] = {}
        for identity in identities:
            self.put(identity)

    def __contains__(self, identity_id: object) -> bool:
        return identity_id in self._identities

    def __iter__(self) -> Iterator[Identity]:
        return iter(self._identities.values())

    def __len__(self) -> int:
        return len(self._identities)

    def put(self, identity: Identity) -> Identity:
        """Insert or replace an identity."""
        self._identities[identity.id] = identity
        return identity

    def get(self, identity_id: str) -> Identity | None:
        return self._identities.get(identity_id)

    def require(self, identity_id: str) -> Identity:
        identity = self._identities.get(identity_id)
        if identity is None:
            raise NotFoundError(
                f"Unknown identity: {identity_id}",
                details={"identity_id": identity_id},
            )
        return identity

    def find_by_hash(self, identifier_hash: str) -> Identity | None:
        for identity in self._identities.values():
            if identifier_hash and identity.identifier_hash == identifier_hash:
                return identity
        return None

    def display_name(self, identity_id: str) -> str:
        identity = self._identities.get(identity_id)
        return identity.display_name if identity else UNKNOWN_NAME

    def increment_score(self, identity_id: str) -> None:
        identity = self._identities.get(identity_id)
        if identity is None:
            logger.debug("Score not incremented for unknown identity %s", identity_id)
            return
        identity.score += 1

    def snapshot(self) -> list[Identity]:
        return [identity.model_copy(deep=True) for identity in self._identities.values()]

    def load(self, identities: Iterable[Identity]) -> None:
        self._identities = {identity.id: identity for identity in identities}
