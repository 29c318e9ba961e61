"""Persistence collaborator contract."""

from typing import Protocol

from .types import ConnectionRequest, Identity, Relationship


class PersistenceBackend(Protocol):
    """CRUD operations the core needs from a store.

    Implementations raise ``PersistenceError`` (or a subclass) on failure.
    """

    def get_identity(self, identity_id: str) -> Identity | None: ...

    def save_identity(self, identity: Identity) -> Identity: ...

    def increment_score(self, identity_id: str) -> None:
        """Add one to the stored score without rewriting the rest of the row."""

    def list_relationships(self, identity_id: str) -> list[Relationship]: ...

    def create_relationship(self, relationship: Relationship) -> Relationship: ...

    def update_relationship(self, relationship: Relationship) -> Relationship: ...

    def delete_relationship(self, relationship_id: str) -> None: ...

    def list_requests(self, identity: Identity) -> list[ConnectionRequest]: ...

    def create_request(self, request: ConnectionRequest) -> ConnectionRequest: ...

    def update_request(self, request: ConnectionRequest) -> ConnectionRequest: ...

    def delete_request(self, request_id: str) -> None: ...

    def close(self) -> None: ...
