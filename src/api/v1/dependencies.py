"""Dependency injection factories for API v1."""

from functools import lru_cache

from api.dependencies.database import get_uow_factory
from domain.services.group_service import GroupService
from domain.services.message_service import MessageService


@lru_cache
def get_group_service() -> GroupService:
    """Get Group service instance."""
    return GroupService(get_uow_factory())


@lru_cache
def get_message_service() -> MessageService:
    """Get Message service instance."""
    return MessageService(get_uow_factory())
