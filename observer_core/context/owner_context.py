"""
Owner context management.

Tracks which account the current thread is acting for so log records can be
stamped with ``owner_id`` without threading it through every call.
"""

import threading
from contextlib import contextmanager
from typing import Generator, Optional

from ..exceptions import ErrorCode, ValidationError
from ..utils.logger import get_logger


class OwnerContext:
    """Thread-local holder for the current owner id."""

    _thread_local = threading.local()

    @classmethod
    def set_current_owner(cls, owner_id: str) -> None:
        """
        Set the current owner ID for the execution context.

        Raises:
            ValidationError: If owner_id is empty or not a string
        """
        if not owner_id or not isinstance(owner_id, str) or not owner_id.strip():
            raise ValidationError(
                "owner_id must be a non-empty string",
                error_code=ErrorCode.MISSING_REQUIRED,
                field="owner_id",
                value=owner_id,
            )

        cls._thread_local.owner_id = owner_id.strip()
        get_logger().debug(f"Current owner set to: {owner_id}")

    @classmethod
    def get_current_owner_id(cls) -> Optional[str]:
        """Get the current owner ID, or None outside an owner context."""
        return getattr(cls._thread_local, "owner_id", None)

    @classmethod
    def clear_current_owner(cls) -> None:
        if hasattr(cls._thread_local, "owner_id"):
            delattr(cls._thread_local, "owner_id")


@contextmanager
def owner_context(owner_id: str) -> Generator[None, None, None]:
    """
    Act on behalf of ``owner_id`` for the duration of the block.

    The previous owner, if any, is restored afterwards so nested calls for
    different owners behave.
    """
    previous_owner = OwnerContext.get_current_owner_id()
    OwnerContext.set_current_owner(owner_id)
    try:
        yield
    finally:
        if previous_owner:
            OwnerContext.set_current_owner(previous_owner)
        else:
            OwnerContext.clear_current_owner()
