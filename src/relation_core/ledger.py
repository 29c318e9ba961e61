"""Connection request lifecycle.

State machine::

    pending -> accepted   (recipient; creates the Relationship)
    pending -> declined   (recipient; record kept for history)
    pending -> (removed)  (sender withdraws)

Accepted and declined requests never change again.
"""

import logging
import uuid
from datetime import datetime
from typing import Callable, Iterable

from .directory import IdentityDirectory
from .exceptions import InvalidStateError, NotFoundError, ValidationError
from .hashing import IdentityHasher
from .relationships import RelationshipStore
from .types import (
    ConnectionRequest,
    Direction,
    Identity,
    Relationship,
    RelationTyping,
    RequestStatus,
    TypedKind,
    UntypedKind,
    utcnow,
)

logger = logging.getLogger(__name__)

MAX_RELATION_TYPE_LENGTH = 30
MAX_RELATION_TYPE_WORDS = 2


class RequestLedger:
    """Owns connection requests and drives them through their lifecycle.

    Args:
        relationships: Store receiving the edge created on acceptance
        directory: Identity arena used for recipient matching and scores
        relation_typing: Whether this deployment labels relationships
        hasher: Identifier hasher
        clock: Source of timestamps
    """

    def __init__(
        self,
        relationships: RelationshipStore,
        directory: IdentityDirectory,
        relation_typing: RelationTyping = RelationTyping.TYPED,
        hasher: IdentityHasher | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.relationships = relationships
        self.directory = directory
        self.relation_typing = relation_typing
        self.hasher = hasher or IdentityHasher()
        self._clock = clock
        self._requests: dict[str, ConnectionRequest] = {}

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate_relation_type(self, relation_type: str | None) -> str | None:
        """Apply the relationship label policy for this deployment.

        Returns:
            The stripped label, or None for untyped deployments

        Raises:
            ValidationError: Label missing, too long, or more than two words
                (typed), or present at all (untyped)
        """
        if self.relation_typing == RelationTyping.UNTYPED:
            if relation_type:
                raise ValidationError(
                    "This deployment does not use relationship types",
                    details={"relation_type": relation_type},
                )
            return None

        label = (relation_type or "").strip()
        if not label:
            raise ValidationError("Relationship type is required")
        if len(label) > MAX_RELATION_TYPE_LENGTH:
            raise ValidationError(
                f"Relationship type must be at most {MAX_RELATION_TYPE_LENGTH} characters",
                details={"relation_type": label},
            )
        if len(label.split()) > MAX_RELATION_TYPE_WORDS:
            raise ValidationError(
                f"Relationship type must be at most {MAX_RELATION_TYPE_WORDS} words",
                details={"relation_type": label},
            )
        return label

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def create(
        self,
        from_id: str,
        to_identifier: str,
        relation_type: str | None = None,
        hidden: bool = False,
        to_name: str | None = None,
    ) -> ConnectionRequest:
        """Create a pending request from ``from_id`` to a phone number.

        Raises:
            ValidationError: Identifier has fewer than 10 digits, points back at
                the sender, or the relationship type breaks the label policy
        """
        if not self.hasher.is_valid(to_identifier):
            raise ValidationError(
                f"Identifier must contain at least {self.hasher.min_digits} digits",
                details={"to_identifier": to_identifier},
            )
        label = self.validate_relation_type(relation_type)
        to_hash = self.hasher.hash(to_identifier)

        sender = self.directory.get(from_id)
        if sender is not None and sender.identifier_hash == to_hash:
            raise ValidationError("Cannot send a request to yourself")

        now = self._clock()
        request = ConnectionRequest(
            id=str(uuid.uuid4()),
            from_id=from_id,
            to_identifier_hash=to_hash,
            to_name=(to_name or "").strip() or None,
            from_name=sender.display_name if sender else None,
            kind=TypedKind(relation_type=label) if label else UntypedKind(),
            hidden=hidden,
            created_at=now,
            updated_at=now,
        )
        recipient = self.directory.find_by_hash(to_hash)
        if recipient is not None:
            request.to_id = recipient.id

        self._requests[request.id] = request
        logger.debug("Created request %s from %s", request.id, from_id)
        return request

    def accept(
        self,
        request_id: str,
        viewer_id: str,
        chosen_relation_type: str | None = None,
    ) -> Relationship:
        """Accept an incoming request and create the verified relationship.

        The recipient's label wins; the sender's label is the fallback.

        Raises:
            NotFoundError: No such request
            InvalidStateError: Request is not pending or not incoming for viewer
            ValidationError: The chosen label breaks the label policy
        """
        request = self._require_actionable_incoming(request_id, viewer_id, "accept")
        if chosen_relation_type:
            relation_type = self.validate_relation_type(chosen_relation_type)
        else:
            relation_type = request.relation_type

        is_new = self.relationships.find_pair(request.from_id, viewer_id) is None
        relationship = self.relationships.create_from_acceptance(
            request.from_id,
            viewer_id,
            relation_type=relation_type,
            hidden=request.hidden,
        )

        request.status = RequestStatus.ACCEPTED
        request.to_id = viewer_id
        request.updated_at = self._clock()

        if is_new:
            self.directory.increment_score(request.from_id)
            self.directory.increment_score(viewer_id)

        logger.debug("Request %s accepted by %s", request_id, viewer_id)
        return relationship

    def decline(self, request_id: str, viewer_id: str) -> ConnectionRequest:
        """Decline an incoming request. The record stays as history."""
        request = self._require_actionable_incoming(request_id, viewer_id, "decline")
        request.status = RequestStatus.DECLINED
        request.to_id = viewer_id
        request.updated_at = self._clock()
        logger.debug("Request %s declined by %s", request_id, viewer_id)
        return request

    def withdraw(self, request_id: str, viewer_id: str) -> ConnectionRequest:
        """Remove a pending outgoing request entirely."""
        request = self.get(request_id)
        if not request.is_pending or request.direction_for(viewer_id) != Direction.OUTGOING:
            raise InvalidStateError(
                "Only the sender can withdraw a pending request",
                details={"request_id": request_id, "status": request.status.value},
            )
        del self._requests[request_id]
        logger.debug("Request %s withdrawn by %s", request_id, viewer_id)
        return request

    def _require_actionable_incoming(
        self, request_id: str, viewer_id: str, action: str
    ) -> ConnectionRequest:
        request = self.get(request_id)
        if not request.is_pending:
            raise InvalidStateError(
                f"Cannot {action} a request that is {request.status.value}",
                details={"request_id": request_id, "status": request.status.value},
            )
        if request.direction_for(viewer_id) != Direction.INCOMING:
            raise InvalidStateError(
                f"Cannot {action} your own request",
                details={"request_id": request_id},
            )
        if request.to_id is None:
            viewer = self.directory.get(viewer_id)
            if viewer is None or viewer.identifier_hash != request.to_identifier_hash:
                raise InvalidStateError(
                    f"Request is not addressed to {viewer_id} and cannot {action}",
                    details={"request_id": request_id},
                )
        elif request.to_id != viewer_id:
            raise InvalidStateError(
                f"Request is addressed to another identity and cannot {action}",
                details={"request_id": request_id},
            )
        return request

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, request_id: str) -> ConnectionRequest:
        request = self._requests.get(request_id)
        if request is None:
            raise NotFoundError(
                f"Request not found: {request_id}",
                details={"request_id": request_id},
            )
        return request

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._requests

    def __len__(self) -> int:
        return len(self._requests)

    def list_for(self, viewer_id: str) -> list[ConnectionRequest]:
        """Requests the viewer sent or received, in creation order."""
        viewer = self.directory.get(viewer_id)
        viewer_hash = viewer.identifier_hash if viewer else None
        return [
            request
            for request in self._requests.values()
            if request.from_id == viewer_id
            or request.to_id == viewer_id
            or (
                request.to_id is None
                and viewer_hash
                and request.to_identifier_hash == viewer_hash
            )
        ]

    def pending_outgoing(self, viewer_id: str) -> list[ConnectionRequest]:
        return [
            request
            for request in self._requests.values()
            if request.is_pending and request.direction_for(viewer_id) == Direction.OUTGOING
        ]

    def pending_incoming(self, viewer_id: str) -> list[ConnectionRequest]:
        return [
            request
            for request in self.list_for(viewer_id)
            if request.is_pending and request.direction_for(viewer_id) == Direction.INCOMING
        ]

    def resolve_recipient(self, identity: Identity) -> list[ConnectionRequest]:
        """Attach ``identity`` to pending requests addressed to its hash.

        Returns:
            The requests whose ``to_id`` was filled in
        """
        resolved = []
        if not identity.identifier_hash:
            return resolved
        for request in self._requests.values():
            if (
                request.is_pending
                and request.to_id is None
                and request.to_identifier_hash == identity.identifier_hash
                and request.from_id != identity.id
            ):
                request.to_id = identity.id
                resolved.append(request)
        if resolved:
            logger.debug("Resolved %d request(s) to identity %s", len(resolved), identity.id)
        return resolved

    def load(self, requests: Iterable[ConnectionRequest]) -> None:
        self._requests = {request.id: request for request in requests}

    def snapshot(self) -> list[ConnectionRequest]:
        return [request.model_copy(deep=True) for request in self._requests.values()]
