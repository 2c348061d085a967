"""
PawMatch — Error taxonomy.

Every failure the matching & coordination core reports is an ``AppException``
subclass carrying a machine-readable ``ErrorCode``, the HTTP status the API
layer renders it with, and optionally the offending ``field``.

Families:
  NotFoundError         404  match / profile / conversation / playdate request
  InvalidStateError     409  wrong match or request status, negotiation state
  PermissionDeniedError 403  caller is not the right participant
  ValidationFailure     422  bad swipe, proposed time or location
  DependencyFailure     503  a store or notification call failed
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes returned to API clients."""

    # Resource errors (404)
    MATCH_NOT_FOUND = "MATCH_NOT_FOUND"
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"
    CONVERSATION_NOT_FOUND = "CONVERSATION_NOT_FOUND"
    PLAYDATE_REQUEST_NOT_FOUND = "PLAYDATE_REQUEST_NOT_FOUND"

    # State errors (409)
    INVALID_MATCH_STATUS = "INVALID_MATCH_STATUS"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    NEGOTIATION_NOT_OPEN = "NEGOTIATION_NOT_OPEN"
    NEGOTIATION_INCOMPLETE = "NEGOTIATION_INCOMPLETE"
    INVALID_REQUEST_STATUS = "INVALID_REQUEST_STATUS"
    DUPLICATE_CONVERSATION = "DUPLICATE_CONVERSATION"

    # Permission errors (403)
    NOT_PARTICIPANT = "NOT_PARTICIPANT"
    NOT_RECEIVER = "NOT_RECEIVER"

    # Validation errors (422)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_SWIPE = "INVALID_SWIPE"
    INVALID_PROPOSED_TIME = "INVALID_PROPOSED_TIME"
    INVALID_LOCATION = "INVALID_LOCATION"

    # Server errors (5xx)
    SERVER_ERROR = "SERVER_ERROR"
    DEPENDENCY_FAILURE = "DEPENDENCY_FAILURE"
    SWIPE_RECORDING_FAILED = "SWIPE_RECORDING_FAILED"
    CONVERSATION_CREATION_FAILED = "CONVERSATION_CREATION_FAILED"
    PLAYDATE_REQUEST_FAILED = "PLAYDATE_REQUEST_FAILED"


class AppException(Exception):
    """
    Base exception class for application errors.
    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.DEPENDENCY_FAILURE,
        status_code: int = 500,
        field: str | None = None,
        metadata: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.field = field
        self.metadata = metadata or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to response dictionary"""
        response: dict[str, Any] = {
            "detail": self.message,
            "code": self.code.value,
        }
        if self.field:
            response["field"] = self.field
        if self.metadata:
            response["metadata"] = self.metadata
        return response


# Not found (404)


class NotFoundError(AppException):
    def __init__(
        self,
        message: str,
        code: ErrorCode,
        metadata: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, code=code, status_code=404, metadata=metadata)


class MatchNotFoundError(NotFoundError):
    def __init__(self, match_id: Any):
        self.match_id = str(match_id)
        super().__init__(
            message=f"Match {match_id} not found",
            code=ErrorCode.MATCH_NOT_FOUND,
            metadata={"match_id": self.match_id},
        )


class ProfileNotFoundError(NotFoundError):
    """A dog profile could not be resolved; names the owning user when known."""

    def __init__(self, owner_id: Any | None, dog_id: Any | None = None):
        self.owner_id = str(owner_id) if owner_id is not None else None
        self.dog_id = str(dog_id) if dog_id is not None else None
        metadata = {}
        if self.owner_id:
            metadata["owner_id"] = self.owner_id
            message = f"Dog profile for owner {owner_id} not found"
        else:
            message = f"Dog profile {dog_id} not found"
        if self.dog_id:
            metadata["dog_id"] = self.dog_id
        super().__init__(
            message=message,
            code=ErrorCode.PROFILE_NOT_FOUND,
            metadata=metadata,
        )


class ConversationNotFoundError(NotFoundError):
    def __init__(self, conversation_id: Any):
        super().__init__(
            message=f"Conversation {conversation_id} not found",
            code=ErrorCode.CONVERSATION_NOT_FOUND,
            metadata={"conversation_id": str(conversation_id)},
        )


class PlaydateRequestNotFoundError(NotFoundError):
    def __init__(self, request_id: Any):
        super().__init__(
            message=f"Playdate request {request_id} not found",
            code=ErrorCode.PLAYDATE_REQUEST_NOT_FOUND,
            metadata={"request_id": str(request_id)},
        )


# Invalid state (409)


class InvalidStateError(AppException):
    def __init__(
        self,
        message: str,
        code: ErrorCode,
        field: str | None = None,
        metadata: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=409,
            field=field,
            metadata=metadata,
        )


class InvalidMatchStatusError(InvalidStateError):
    """The match exists but is not in the status the operation needs."""

    def __init__(self, match_id: Any, status: Any, required: Any = "ACTIVE"):
        self.status = getattr(status, "value", status)
        super().__init__(
            message=f"Match {match_id} is {self.status}, expected {getattr(required, 'value', required)}",
            code=ErrorCode.INVALID_MATCH_STATUS,
            metadata={"match_id": str(match_id), "status": self.status},
        )


class InvalidTransitionError(InvalidStateError):
    def __init__(self, current: Any, event: str):
        current_value = getattr(current, "value", current)
        super().__init__(
            message=f"Cannot {event} a {current_value} match",
            code=ErrorCode.INVALID_TRANSITION,
            metadata={"status": current_value, "event": event},
        )


class NegotiationNotOpenError(InvalidStateError):
    def __init__(self, message: str = "No playdate negotiation is in progress"):
        super().__init__(message=message, code=ErrorCode.NEGOTIATION_NOT_OPEN)


class NegotiationIncompleteError(InvalidStateError):
    def __init__(self, missing_fields: list[str]):
        self.missing_fields = missing_fields
        super().__init__(
            message=f"Playdate negotiation is missing: {', '.join(missing_fields)}",
            code=ErrorCode.NEGOTIATION_INCOMPLETE,
            field=missing_fields[0] if missing_fields else None,
            metadata={"missing_fields": missing_fields},
        )


class RequestNotPendingError(InvalidStateError):
    def __init__(self, request_id: Any, status: Any):
        self.status = getattr(status, "value", status)
        super().__init__(
            message=f"Playdate request {request_id} is {self.status}, expected PENDING",
            code=ErrorCode.INVALID_REQUEST_STATUS,
            metadata={"request_id": str(request_id), "status": self.status},
        )


class DuplicateConversationError(InvalidStateError):
    """Raised by conversation stores when a match already has a conversation."""

    def __init__(self, match_id: Any):
        super().__init__(
            message=f"Match {match_id} already has a conversation",
            code=ErrorCode.DUPLICATE_CONVERSATION,
            metadata={"match_id": str(match_id)},
        )


# Permission (403)


class PermissionDeniedError(AppException):
    def __init__(
        self,
        message: str,
        code: ErrorCode,
        metadata: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, code=code, status_code=403, metadata=metadata)


class NotParticipantError(PermissionDeniedError):
    def __init__(self, user_id: Any, match_id: Any):
        super().__init__(
            message=f"User {user_id} is not a participant of match {match_id}",
            code=ErrorCode.NOT_PARTICIPANT,
            metadata={"user_id": str(user_id), "match_id": str(match_id)},
        )


class NotReceiverError(PermissionDeniedError):
    """Only the receiving side may answer a pending match or playdate request."""

    def __init__(self, user_id: Any, target_id: Any):
        super().__init__(
            message=f"User {user_id} is not the receiver of {target_id}",
            code=ErrorCode.NOT_RECEIVER,
            metadata={"user_id": str(user_id), "target_id": str(target_id)},
        )


# Validation (422)


class ValidationFailure(AppException):
    def __init__(
        self,
        message: str,
        field: str | None = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        metadata: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            code=code,
            status_code=422,
            field=field,
            metadata=metadata,
        )


class InvalidSwipeError(ValidationFailure):
    def __init__(self, message: str, field: str = "swiped_dog_id"):
        super().__init__(message=message, field=field, code=ErrorCode.INVALID_SWIPE)


class InvalidProposedTimeError(ValidationFailure):
    def __init__(self, message: str = "Proposed time must be in the future"):
        super().__init__(
            message=message,
            field="proposed_time",
            code=ErrorCode.INVALID_PROPOSED_TIME,
        )


class InvalidLocationError(ValidationFailure):
    def __init__(self, message: str = "Location failed validation"):
        super().__init__(
            message=message,
            field="location",
            code=ErrorCode.INVALID_LOCATION,
        )


# Dependency failures (503)


class DependencyFailure(AppException):
    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.DEPENDENCY_FAILURE,
        metadata: dict[str, Any] | None = None,
    ):
        super().__init__(message=message, code=code, status_code=503, metadata=metadata)


class SwipeRecordingFailedError(DependencyFailure):
    def __init__(self, reason: str):
        super().__init__(
            message=f"Swipe recording failed: {reason}",
            code=ErrorCode.SWIPE_RECORDING_FAILED,
        )


class ConversationCreationFailedError(DependencyFailure):
    def __init__(self, match_id: Any, reason: str):
        super().__init__(
            message=f"Conversation for match {match_id} could not be created: {reason}",
            code=ErrorCode.CONVERSATION_CREATION_FAILED,
            metadata={"match_id": str(match_id)},
        )


class PlaydateRequestFailedError(DependencyFailure):
    def __init__(self, match_id: Any, reason: str):
        super().__init__(
            message=f"Playdate request for match {match_id} could not be created: {reason}",
            code=ErrorCode.PLAYDATE_REQUEST_FAILED,
            metadata={"match_id": str(match_id)},
        )
