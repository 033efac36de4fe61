"""
Credit tracking for the key pool.

Reads each key's remaining credit from the provider and writes it back to the
KeyStore, flipping keys to exhausted when nothing is left. Lookups are
independent: one failing key never aborts a refresh.
"""

from typing import Any, Optional

import requests

from ..config import CreditProviderConfig, get_config
from ..context.operation_context import operation
from ..exceptions import ErrorCode, ProviderError, TransportError
from ..schemas.credential_schemas import CreditRefreshResult
from ..utils.logger import get_logger
from .key_store import KeyStore

NO_KEYS_ERROR = "No API keys found"
ALL_FAILED_ERROR = "Failed to fetch token usage for any key"


def parse_remaining_credits(body: Any) -> int:
    """
    Extract ``data.remaining_credits`` from a credit-usage response.

    Missing or non-numeric values count as 0 and negative balances clamp to 0.
    """
    data = body.get("data") if isinstance(body, dict) else None
    remaining = data.get("remaining_credits") if isinstance(data, dict) else None

    if isinstance(remaining, bool) or not isinstance(remaining, (int, float)):
        return 0
    return max(0, int(remaining))


class CreditTracker:
    """Refreshes cached credit balances and records exhaustion."""

    SERVICE_NAME = "credit_usage_api"

    def __init__(
        self,
        key_store: KeyStore,
        http_session: Optional[requests.Session] = None,
        config: Optional[CreditProviderConfig] = None,
    ):
        self.key_store = key_store
        self.http = http_session or requests.Session()
        self.config = config or get_config().credit_provider
        self.logger = get_logger()

    def check_key(self, secret: str) -> int:
        """
        Look up the remaining credit for one key.

        Raises:
            TransportError: If the provider could not be reached
            ProviderError: If the provider answered non-2xx or with invalid JSON
        """
        try:
            response = self.http.get(
                self.config.credit_usage_url,
                headers={
                    "Authorization": f"Bearer {secret}",
                    "Content-Type": "application/json",
                },
                timeout=self.config.timeout_seconds,
            )
        except requests.Timeout as e:
            raise TransportError(
                "Credit usage request timed out",
                service_name=self.SERVICE_NAME,
                error_code=ErrorCode.TIMEOUT_ERROR,
                cause=e,
            ) from e
        except requests.RequestException as e:
            raise TransportError(
                f"Credit usage request failed: {type(e).__name__}",
                service_name=self.SERVICE_NAME,
                cause=e,
            ) from e

        if not 200 <= response.status_code < 300:
            raise ProviderError(
                f"Credit usage request failed with status {response.status_code}",
                service_name=self.SERVICE_NAME,
                provider_status=response.status_code,
                response_body=response.text,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderError(
                "Credit usage response is not valid JSON",
                service_name=self.SERVICE_NAME,
                provider_status=response.status_code,
                response_body=response.text,
                error_code=ErrorCode.INVALID_FORMAT,
                cause=e,
            ) from e

        return parse_remaining_credits(body)

    @operation()
    def refresh(self, owner_id: str, key_id: Optional[str] = None) -> CreditRefreshResult:
        """
        Refresh remaining credit for one key or every key of an owner.

        Args:
            owner_id: Owner of the pool
            key_id: Restrict the refresh to this key

        Returns:
            Aggregate result; ``succeeded`` is False only when no key could be read
        """
        targets = self.key_store.get_decrypted_keys(owner_id, key_id)
        if not targets:
            return CreditRefreshResult(succeeded=False, error=NO_KEYS_ERROR)

        total_remaining = 0
        checked = 0
        failed = 0

        for key in targets:
            try:
                remaining = self.check_key(key.secret)
            except (ProviderError, TransportError) as e:
                failed += 1
                self.logger.warning(
                    "Skipping key after failed credit lookup",
                    extra={
                        "owner_id": owner_id,
                        "key_id": key.id,
                        "error_code": e.error_code.value,
                        "error_id": e.error_id,
                    },
                )
                continue

            self.key_store.set_credit_cache(key.id, remaining, remaining <= 0)
            total_remaining += remaining
            checked += 1

            self.logger.debug(
                "Credit balance updated",
                extra={"key_id": key.id, "remaining_credits": remaining},
            )

        if checked == 0:
            return CreditRefreshResult(succeeded=False, error=ALL_FAILED_ERROR, failed=failed)

        return CreditRefreshResult(
            succeeded=True, total_remaining=total_remaining, checked=checked, failed=failed
        )

    @operation()
    def report_exhaustion(self, key_id: str) -> None:
        """Mark a key exhausted right away, e.g. after the provider refused a scrape."""
        self.key_store.set_exhausted(key_id, True)
        self.logger.warning("API key reported exhausted", extra={"key_id": key_id})
