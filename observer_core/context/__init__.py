"""Execution context helpers (owner scoping and operation logging)."""

from .operation_context import OperationContext, OperationHandler, operation
from .owner_context import OwnerContext, owner_context

__all__ = [
    "OperationContext",
    "OperationHandler",
    "operation",
    "OwnerContext",
    "owner_context",
]
