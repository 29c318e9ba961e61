"""Offline-first keyed JSON storage.

The document holds one JSON value per key:

- ``relation-user``: the current identity
- ``relation-relationships``: the relationship set
- ``relation-requests``: the request set
- ``relation-identities``: other known identities, by id

With no path the document lives in memory only.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from .exceptions import PersistenceError
from .types import ConnectionRequest, Identity, Relationship

logger = logging.getLogger(__name__)

USER_KEY = "relation-user"
RELATIONSHIPS_KEY = "relation-relationships"
REQUESTS_KEY = "relation-requests"
IDENTITIES_KEY = "relation-identities"


class LocalStore:
    """PersistenceBackend over a single JSON file."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path is not None else None
        self._document: dict[str, Any] = self._read()

    def _read(self) -> dict[str, Any]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Cannot read {self.path}: {e}")
        if not isinstance(document, dict):
            raise PersistenceError(f"Invalid storage document in {self.path}")
        return document

    def _write(self) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._document, f, indent=2)
            os.replace(tmp_name, self.path)
        except OSError as e:
            raise PersistenceError(f"Cannot write {self.path}: {e}")

    def _rows(self, key: str) -> list[dict[str, Any]]:
        return self._document.setdefault(key, [])

    def current_identity(self) -> Identity | None:
        row = self._document.get(USER_KEY)
        return Identity(**row) if row else None

    def close(self) -> None:
        """Nothing to release; writes are flushed per operation."""

    # -------------------------------------------------------------------------
    # Identities
    # -------------------------------------------------------------------------

    def get_identity(self, identity_id: str) -> Identity | None:
        user = self._document.get(USER_KEY)
        if user and user.get("id") == identity_id:
            return Identity(**user)
        row = self._document.get(IDENTITIES_KEY, {}).get(identity_id)
        return Identity(**row) if row else None

    def save_identity(self, identity: Identity) -> Identity:
        """Store the identity; the first one saved becomes the current user."""
        row = identity.model_dump(mode="json")
        user = self._document.get(USER_KEY)
        if not user or user.get("id") == identity.id:
            self._document[USER_KEY] = row
        else:
            self._document.setdefault(IDENTITIES_KEY, {})[identity.id] = row
        self._write()
        return identity

    def increment_score(self, identity_id: str) -> None:
        user = self._document.get(USER_KEY)
        if user and user.get("id") == identity_id:
            row = user
        else:
            row = self._document.get(IDENTITIES_KEY, {}).get(identity_id)
        if row is None:
            logger.debug("No stored identity %s to credit", identity_id)
            return
        row["score"] = row.get("score", 0) + 1
        self._write()

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------

    def list_relationships(self, identity_id: str) -> list[Relationship]:
        return [
            Relationship(**row)
            for row in self._rows(RELATIONSHIPS_KEY)
            if identity_id in (row.get("user_a"), row.get("user_b"))
        ]

    def create_relationship(self, relationship: Relationship) -> Relationship:
        rows = self._rows(RELATIONSHIPS_KEY)
        for row in rows:
            if (row.get("user_a"), row.get("user_b")) == (relationship.user_a, relationship.user_b):
                logger.debug("Relationship for pair already stored as %s", row.get("id"))
                return Relationship(**row)
        rows.append(relationship.model_dump(mode="json"))
        self._write()
        return relationship

    def update_relationship(self, relationship: Relationship) -> Relationship:
        self._replace(RELATIONSHIPS_KEY, relationship.id, relationship.model_dump(mode="json"))
        return relationship

    def delete_relationship(self, relationship_id: str) -> None:
        self._delete(RELATIONSHIPS_KEY, relationship_id)

    # -------------------------------------------------------------------------
    # Connection requests
    # -------------------------------------------------------------------------

    def list_requests(self, identity: Identity) -> list[ConnectionRequest]:
        requests = []
        for row in self._rows(REQUESTS_KEY):
            if (
                row.get("from_id") == identity.id
                or row.get("to_id") == identity.id
                or (identity.identifier_hash and row.get("to_identifier_hash") == identity.identifier_hash)
            ):
                requests.append(ConnectionRequest(**row))
        return requests

    def create_request(self, request: ConnectionRequest) -> ConnectionRequest:
        self._rows(REQUESTS_KEY).append(request.model_dump(mode="json"))
        self._write()
        return request

    def update_request(self, request: ConnectionRequest) -> ConnectionRequest:
        self._replace(REQUESTS_KEY, request.id, request.model_dump(mode="json"))
        return request

    def delete_request(self, request_id: str) -> None:
        self._delete(REQUESTS_KEY, request_id)

    def _replace(self, key: str, record_id: str, new_row: dict[str, Any]) -> None:
        rows = self._rows(key)
        for index, row in enumerate(rows):
            if row.get("id") == record_id:
                rows[index] = new_row
                self._write()
                return
        raise PersistenceError(
            f"Record not stored under {key}: {record_id}",
            details={"key": key, "id": record_id},
        )

    def _delete(self, key: str, record_id: str) -> None:
        rows = self._rows(key)
        remaining = [row for row in rows if row.get("id") != record_id]
        if len(remaining) != len(rows):
            self._document[key] = remaining
            self._write()
