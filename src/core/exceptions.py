"""Custom exceptions and error codes."""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the API."""

    # Authentication errors (401)
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"

    # Authorization errors (403)
    FORBIDDEN = "FORBIDDEN"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # Not found errors (404)
    NOT_FOUND = "NOT_FOUND"
    GROUP_NOT_FOUND = "GROUP_NOT_FOUND"
    MEMBER_NOT_FOUND = "MEMBER_NOT_FOUND"
    MEMBERSHIP_NOT_FOUND = "MEMBERSHIP_NOT_FOUND"
    MESSAGE_NOT_FOUND = "MESSAGE_NOT_FOUND"
    REACTION_NOT_FOUND = "REACTION_NOT_FOUND"

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MESSAGE_DELETED = "MESSAGE_DELETED"

    # Conflict errors (409)
    ALREADY_A_GROUP_MEMBER = "ALREADY_A_GROUP_MEMBER"
    DUPLICATE_REACTION = "DUPLICATE_REACTION"
    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"
    OWNER_PROTECTED = "OWNER_PROTECTED"

    # Rate limiting (429)
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Any | None = None,
    ) -> None:
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: ErrorCode = ErrorCode.UNAUTHORIZED,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=401,
        )


class AuthorizationError(AppException):
    """Authorization failed."""

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            error_code=ErrorCode.FORBIDDEN,
            message=message,
            status_code=403,
        )


# --- Taxonomy bases ---


class NotFoundError(AppException):
    """A referenced group, member, message or membership does not exist."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.NOT_FOUND,
        details: Any | None = None,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=404,
            details=details,
        )


class PermissionDeniedError(AppException):
    """A permission check failed. The reason is shown to the user as-is."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            error_code=ErrorCode.PERMISSION_DENIED,
            message=reason,
            status_code=403,
        )
        self.reason = reason


class ValidationError(AppException):
    """Structurally valid request rejected by a business rule."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        status_code: int = 400,
        details: Any | None = None,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=status_code,
            details=details,
        )


class InvariantViolationError(AppException):
    """The request would break a data invariant."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INVARIANT_VIOLATION,
        details: Any | None = None,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=409,
            details=details,
        )


# --- Not found ---


class GroupNotFoundError(NotFoundError):
    """Group not found."""

    def __init__(self, group_id: str) -> None:
        super().__init__(
            message=f"Group not found: {group_id}",
            error_code=ErrorCode.GROUP_NOT_FOUND,
            details={"group_id": group_id},
        )


class MemberNotFoundError(NotFoundError):
    """Club member not found."""

    def __init__(self, member_id: str) -> None:
        super().__init__(
            message=f"Member not found: {member_id}",
            error_code=ErrorCode.MEMBER_NOT_FOUND,
            details={"member_id": member_id},
        )


class MembershipNotFoundError(NotFoundError):
    """Member does not belong to the group."""

    def __init__(self, member_id: str, message: str = "Member is not in this group") -> None:
        super().__init__(
            message=message,
            error_code=ErrorCode.MEMBERSHIP_NOT_FOUND,
            details={"member_id": member_id},
        )


class MessageNotFoundError(NotFoundError):
    """Message not found."""

    def __init__(self, message_id: str) -> None:
        super().__init__(
            message=f"Message not found: {message_id}",
            error_code=ErrorCode.MESSAGE_NOT_FOUND,
            details={"message_id": message_id},
        )


class ReactionNotFoundError(NotFoundError):
    """No matching reaction on the message."""

    def __init__(self, emoji: str) -> None:
        super().__init__(
            message="Reaction not found",
            error_code=ErrorCode.REACTION_NOT_FOUND,
            details={"emoji": emoji},
        )


# --- Validation ---


class AlreadyAGroupMemberError(ValidationError):
    """Member is already in the group."""

    def __init__(self, member_id: str) -> None:
        super().__init__(
            message="Member is already in this group",
            error_code=ErrorCode.ALREADY_A_GROUP_MEMBER,
            status_code=409,
            details={"member_id": member_id},
        )


class DuplicateReactionError(ValidationError):
    """Member already reacted with this emoji."""

    def __init__(self, emoji: str) -> None:
        super().__init__(
            message="You have already reacted with this emoji",
            error_code=ErrorCode.DUPLICATE_REACTION,
            status_code=409,
            details={"emoji": emoji},
        )


class MessageDeletedError(ValidationError):
    """Operation not allowed on a deleted message."""

    def __init__(self, message: str = "Cannot edit a deleted message") -> None:
        super().__init__(
            message=message,
            error_code=ErrorCode.MESSAGE_DELETED,
        )


# --- Invariants ---


class OwnerProtectedError(InvariantViolationError):
    """The group owner cannot be removed, demoted or leave."""

    def __init__(self, message: str) -> None:
        super().__init__(
            message=message,
            error_code=ErrorCode.OWNER_PROTECTED,
        )
