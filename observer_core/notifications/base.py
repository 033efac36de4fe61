"""
Base channel interface and the delivery result shared by all channels.
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from pydantic import BaseModel, Field

from ..constants import DeliveryState, DestinationKind
from ..utils.logger import get_logger


class DeliveryResult(BaseModel):
    """
    Outcome of one delivery attempt.

    Provider and transport failures are raised, not returned. A result with
    ``success=False`` means the attempt completed but the far end (usually
    the relay) reported that it did not deliver.
    """

    success: bool = Field(description="Whether the notification was delivered")
    state: DeliveryState = Field(description="Terminal state of the attempt")
    channel: DestinationKind = Field(description="Destination variant used")
    destination: str = Field(description="Redacted target (webhook origin or email address)")
    status: Optional[int] = Field(default=None, description="HTTP status reported for the delivery")
    via_relay: bool = Field(default=False, description="Sent through the private-network relay")

    execution_duration_ms: float = Field(default=0.0, description="Time spent sending")
    completed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    error_message: Optional[str] = Field(default=None)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def create_success(
        cls,
        channel: DestinationKind,
        destination: str,
        execution_duration_ms: float,
        status: Optional[int] = None,
        via_relay: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "DeliveryResult":
        """Create a delivered result."""
        return cls(
            success=True,
            state=DeliveryState.DELIVERED,
            channel=channel,
            destination=destination,
            status=status,
            via_relay=via_relay,
            execution_duration_ms=execution_duration_ms,
            metadata=metadata or {},
        )

    @classmethod
    def create_failure(
        cls,
        channel: DestinationKind,
        destination: str,
        execution_duration_ms: float,
        error_message: str,
        status: Optional[int] = None,
        via_relay: bool = False,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "DeliveryResult":
        """Create a failed result."""
        return cls(
            success=False,
            state=DeliveryState.FAILED,
            channel=channel,
            destination=destination,
            status=status,
            via_relay=via_relay,
            execution_duration_ms=execution_duration_ms,
            error_message=error_message,
            metadata=metadata or {},
        )


class NotificationChannel(ABC):
    """
    Abstract base class for outbound channels.

    Channels are stateless apart from their injected HTTP session or client
    and can be reused across calls.
    """

    def __init__(self):
        self.logger = get_logger()
        self._channel_name = self.__class__.__name__

    @property
    @abstractmethod
    def kind(self) -> DestinationKind:
        """Default destination variant handled by this channel."""

    def _execute_with_timing(self, operation: Callable[[], Any]) -> Tuple[Any, float]:
        """
        Execute an operation and measure execution time.

        Returns:
            Tuple of (operation_result, duration_in_milliseconds)
        """
        start_time = time.time()
        result = operation()
        return result, (time.time() - start_time) * 1000

    def __repr__(self) -> str:
        return f"{self._channel_name}(kind='{self.kind.value}')"
