"""RelationClient: REST persistence backend for relation-core."""

import logging
from typing import Any

import httpx

from .exceptions import BackendConnectionError, PersistenceError, RecordNotFoundError
from .types import ConnectionRequest, Identity, Relationship

logger = logging.getLogger(__name__)


class RelationClient:
    """Client for a PostgREST-style CRUD store over HTTP.

    Tables are exposed as ``/profiles``, ``/connections`` and
    ``/connection_requests``; rows are filtered with ``column=eq.value``
    query parameters. Row-level authorization is the server's concern.

    Example:
        >>> client = RelationClient("http://localhost:54321/rest/v1", api_key="anon")
        >>> client.list_relationships("4f0c...")
        []
    """

    def __init__(
        self,
        base_url: str = "http://localhost:54321/rest/v1",
        api_key: str | None = None,
        timeout: float = 30.0,
    ):
        """Initialize the client.

        Args:
            base_url: Base URL of the REST endpoint
            api_key: Key sent as ``apikey`` header and bearer token
            timeout: Request timeout in seconds
        """
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.Client(base_url=base_url, headers=headers, timeout=timeout)

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - close HTTP client."""
        self.close()

    def close(self):
        """Close the HTTP client."""
        self._client.close()

    def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        prefer: str | None = None,
    ) -> Any:
        """Make an HTTP request and handle errors.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE)
            path: Table path
            json: JSON body for writes
            params: Row filters
            prefer: Value for the ``Prefer`` header

        Returns:
            Response JSON, or None for empty responses

        Raises:
            BackendConnectionError: Cannot reach the store
            RecordNotFoundError: 404 from the store
            PersistenceError: Any other error status
        """
        headers = {"Prefer": prefer} if prefer else None
        logger.debug("%s %s params=%s", method, path, params)
        try:
            response = self._client.request(
                method=method,
                url=path,
                json=json,
                params=params,
                headers=headers,
            )
        except httpx.ConnectError as e:
            raise BackendConnectionError(f"Cannot connect to store: {e}")
        except httpx.TimeoutException as e:
            raise BackendConnectionError(f"Request timeout: {e}")
        except httpx.HTTPError as e:
            raise BackendConnectionError(f"HTTP error: {e}")

        if response.status_code == 404:
            raise RecordNotFoundError(
                _error_message(response, "Not found"), status_code=404
            )
        elif not response.is_success:
            raise PersistenceError(
                _error_message(response, f"HTTP {response.status_code}"),
                details={"method": method, "path": path},
                status_code=response.status_code,
            )

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # -------------------------------------------------------------------------
    # Identities
    # -------------------------------------------------------------------------

    def get_identity(self, identity_id: str) -> Identity | None:
        """Look up one identity, or None if the store has no such row."""
        try:
            rows = self._request("GET", "/profiles", params={"id": f"eq.{identity_id}"})
        except RecordNotFoundError:
            return None
        if not rows:
            return None
        return Identity(**rows[0])

    def save_identity(self, identity: Identity) -> Identity:
        """Insert or update an identity row."""
        rows = self._request(
            "POST",
            "/profiles",
            json=identity.model_dump(mode="json"),
            prefer="resolution=merge-duplicates,return=representation",
        )
        return Identity(**rows[0]) if rows else identity

    def increment_score(self, identity_id: str) -> None:
        """Atomically add one to an identity's score on the server.

        Calls the ``increment_score(identity_id)`` database function, so a
        counterpart's profile row is never overwritten from a local copy.
        """
        self._request("POST", "/rpc/increment_score", json={"identity_id": identity_id})

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------

    def list_relationships(self, identity_id: str) -> list[Relationship]:
        rows = self._request(
            "GET",
            "/connections",
            params={"or": f"(user_a.eq.{identity_id},user_b.eq.{identity_id})"},
        )
        return [Relationship(**row) for row in rows or []]

    def create_relationship(self, relationship: Relationship) -> Relationship:
        """Insert a relationship; an existing row for the pair is left alone."""
        rows = self._request(
            "POST",
            "/connections",
            json=relationship.model_dump(mode="json"),
            prefer="resolution=ignore-duplicates,return=representation",
        )
        return Relationship(**rows[0]) if rows else relationship

    def update_relationship(self, relationship: Relationship) -> Relationship:
        """Write the editable fields (strength, last interaction)."""
        payload = relationship.model_dump(mode="json", include={"strength", "last_interaction"})
        rows = self._request(
            "PATCH",
            "/connections",
            json=payload,
            params={"id": f"eq.{relationship.id}"},
            prefer="return=representation",
        )
        return Relationship(**rows[0]) if rows else relationship

    def delete_relationship(self, relationship_id: str) -> None:
        self._request("DELETE", "/connections", params={"id": f"eq.{relationship_id}"})

    # -------------------------------------------------------------------------
    # Connection requests
    # -------------------------------------------------------------------------

    def list_requests(self, identity: Identity) -> list[ConnectionRequest]:
        """Requests sent by, resolved to, or addressed to the identity's hash."""
        clauses = [f"from_id.eq.{identity.id}", f"to_id.eq.{identity.id}"]
        if identity.identifier_hash:
            clauses.append(f"to_identifier_hash.eq.{identity.identifier_hash}")
        rows = self._request(
            "GET",
            "/connection_requests",
            params={"or": f"({','.join(clauses)})"},
        )
        return [ConnectionRequest(**row) for row in rows or []]

    def create_request(self, request: ConnectionRequest) -> ConnectionRequest:
        rows = self._request(
            "POST",
            "/connection_requests",
            json=request.model_dump(mode="json"),
            prefer="return=representation",
        )
        return ConnectionRequest(**rows[0]) if rows else request

    def update_request(self, request: ConnectionRequest) -> ConnectionRequest:
        payload = request.model_dump(mode="json", include={"status", "to_id", "updated_at"})
        rows = self._request(
            "PATCH",
            "/connection_requests",
            json=payload,
            params={"id": f"eq.{request.id}"},
            prefer="return=representation",
        )
        return ConnectionRequest(**rows[0]) if rows else request

    def delete_request(self, request_id: str) -> None:
        self._request("DELETE", "/connection_requests", params={"id": f"eq.{request_id}"})


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or default
    return default
