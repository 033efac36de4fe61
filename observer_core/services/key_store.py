"""
Persistence for each owner's pool of scraping API keys.

Every mutation leaves the owner's priorities at exactly ``0..n-1``. Mutations
that renumber re-read the owner's rows with ``SELECT ... FOR UPDATE`` inside a
single transaction so no reader sees duplicate priorities.
"""

from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import KeyPoolConfig, get_config
from ..constants import KeyPoolLimits
from ..context.operation_context import operation
from ..db.db_base import epoch_millis
from ..db.db_credential_models import ApiKeyCredential
from ..exceptions import ErrorCode, ValidationError, not_found, validation_failed
from ..schemas.credential_schemas import (
    ActiveKey,
    ApiKeyCreate,
    ApiKeyRead,
    ApiKeyUpdate,
    LegacyKeyInfo,
)
from ..utils.encryption_utils import decrypt_secret, encrypt_secret
from . import key_selector
from .base_service import SessionManagedService


class KeyStore(SessionManagedService):
    """
    Service for managing an owner's scraping API keys.

    Read paths return ApiKeyRead with a masked key. Only get_active_key and
    get_decrypted_keys hand out the decrypted secret.
    """

    def __init__(self, session: Optional[Session] = None, config: Optional[KeyPoolConfig] = None):
        super().__init__(session=session)
        self.config = config or get_config().key_pool

    # ==================== HELPERS ====================

    @staticmethod
    def masked_secret(secret: Optional[str]) -> str:
        """
        Mask a key for display: first 8 characters, ``...``, last 4.

        Keys shorter than 12 characters are replaced by a fixed placeholder.
        """
        head, tail = KeyPoolLimits.MASK_HEAD, KeyPoolLimits.MASK_TAIL
        if not secret or len(secret) < head + tail:
            return KeyPoolLimits.MASK_PLACEHOLDER
        return f"{secret[:head]}...{secret[-tail:]}"

    def _require_owner(self, owner_id: str) -> None:
        if not owner_id or not isinstance(owner_id, str):
            raise ValidationError(
                "owner_id must be a non-empty string",
                field="owner_id",
                error_code=ErrorCode.MISSING_REQUIRED,
            )

    def _validate_secret(self, secret: Any) -> str:
        if not isinstance(secret, str):
            raise ValidationError(
                "API key must be a string",
                field="secret",
                error_code=ErrorCode.INVALID_FORMAT,
            )

        cleaned = ApiKeyCreate(secret=secret).secret
        if not cleaned:
            raise ValidationError(
                "API key is required", field="secret", error_code=ErrorCode.MISSING_REQUIRED
            )
        if len(cleaned) < self.config.min_secret_length:
            raise ValidationError(
                f"API key must be at least {self.config.min_secret_length} characters",
                field="secret",
                length=len(cleaned),
            )
        if not cleaned.startswith(self.config.secret_prefix):
            raise ValidationError(
                f"API key must start with '{self.config.secret_prefix}'",
                field="secret",
                error_code=ErrorCode.INVALID_FORMAT,
                masked_key=self.masked_secret(cleaned),
            )
        return cleaned

    @staticmethod
    def _schema_error(error: PydanticValidationError) -> ValidationError:
        first = error.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "input"
        value = first.get("input")
        if isinstance(value, str) and len(value) > 40:
            value = value[:40] + "..."
        return validation_failed(field, value, first.get("msg", "invalid value"), cause=error)

    def _owner_rows(self, owner_id: str, for_update: bool = False) -> List[ApiKeyCredential]:
        stmt = (
            select(ApiKeyCredential)
            .where(ApiKeyCredential.owner_id == owner_id)
            .order_by(ApiKeyCredential.priority, ApiKeyCredential.created_at)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return list(self.session.execute(stmt).scalars().all())

    def _get_record(self, key_id: str) -> ApiKeyCredential:
        record = self.session.get(ApiKeyCredential, key_id)
        if record is None:
            raise not_found("API key", key_id=key_id)
        return record

    def _get_owned_record(self, rows: List[ApiKeyCredential], owner_id: str, key_id: str):
        record = next((r for r in rows if r.id == key_id), None)
        if record is None:
            # Foreign keys look exactly like missing ones
            raise not_found("API key", key_id=key_id, owner_id=owner_id)
        return record

    def _apply_order(self, ordered: List[ApiKeyCredential], now: int) -> None:
        for record, priority in key_selector.renumber(ordered):
            if record.priority != priority:
                record.priority = priority
                record.updated_at = now

    def _display_label(self, record: ApiKeyCredential) -> str:
        if record.label:
            return record.label
        return self.config.default_label_template.format(n=record.priority + 1)

    def _to_read(self, record: ApiKeyCredential) -> ApiKeyRead:
        return ApiKeyRead(
            id=record.id,
            label=self._display_label(record),
            masked_key=self.masked_secret(decrypt_secret(record.encrypted_secret)),
            priority=record.priority,
            is_exhausted=record.is_exhausted,
            remaining_credits=record.remaining_credits,
            last_credit_check_at=record.last_credit_check_at,
            last_used_at=record.last_used_at,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    def _to_active(self, record: ApiKeyCredential) -> ActiveKey:
        return ActiveKey(
            id=record.id,
            secret=decrypt_secret(record.encrypted_secret),
            priority=record.priority,
            label=record.label,
        )

    # ==================== READS ====================

    @operation()
    def list_keys(self, owner_id: str) -> List[ApiKeyRead]:
        """List the owner's keys in priority order, exhausted ones included."""
        self._require_owner(owner_id)
        return [self._to_read(r) for r in self._owner_rows(owner_id)]

    @operation()
    def get_active_key(self, owner_id: str, touch: bool = False) -> Optional[ActiveKey]:
        """
        Return the key the scraping engine should use next.

        Args:
            owner_id: Owner of the pool
            touch: Also stamp ``last_used_at`` on the chosen key

        Returns:
            The decrypted key, or None when no usable key is left
        """
        self._require_owner(owner_id)
        record = key_selector.select_active(self._owner_rows(owner_id))
        if record is None:
            self.logger.warning("No usable API key", extra={"owner_id": owner_id})
            return None

        if touch:
            self.touch_used(record.id)
        return self._to_active(record)

    @operation()
    def get_decrypted_keys(self, owner_id: str, key_id: Optional[str] = None) -> List[ActiveKey]:
        """Decrypted keys for credit checks. An unknown or foreign key_id yields []."""
        self._require_owner(owner_id)
        rows = self._owner_rows(owner_id)
        if key_id is not None:
            rows = [r for r in rows if r.id == key_id]
        return [self._to_active(r) for r in rows]

    @operation()
    def get_primary_key(self, owner_id: str) -> Optional[LegacyKeyInfo]:
        """Summary of the first key, for callers that only know a single key."""
        self._require_owner(owner_id)
        rows = self._owner_rows(owner_id)
        if not rows:
            return None

        record = rows[0]
        return LegacyKeyInfo(
            has_key=True,
            masked_key=self.masked_secret(decrypt_secret(record.encrypted_secret)),
            created_at=record.created_at,
            updated_at=record.updated_at,
            last_used_at=record.last_used_at,
        )

    # ==================== POOL MUTATIONS ====================

    @operation()
    def add_key(self, owner_id: str, secret: str, label: Optional[str] = None) -> ApiKeyRead:
        """
        Add a key at the end of the owner's pool.

        Raises:
            ValidationError: If the key is malformed or the label is too long
        """
        self._require_owner(owner_id)
        cleaned = self._validate_secret(secret)
        try:
            label = ApiKeyCreate(secret=cleaned, label=label).label or None
        except PydanticValidationError as e:
            raise self._schema_error(e) from e

        with self.transaction():
            rows = self._owner_rows(owner_id, for_update=True)
            priority = max((r.priority for r in rows), default=-1) + 1

            now = epoch_millis()
            record = ApiKeyCredential(
                owner_id=owner_id,
                encrypted_secret=encrypt_secret(cleaned),
                label=label,
                priority=priority,
                is_exhausted=False,
                created_at=now,
                updated_at=now,
            )
            self.session.add(record)
            self.session.flush()

        self.logger.info(
            "API key added",
            extra={
                "owner_id": owner_id,
                "key_id": record.id,
                "priority": priority,
                "masked_key": self.masked_secret(cleaned),
            },
        )
        return self._to_read(record)

    @operation()
    def remove_key(self, owner_id: str, key_id: Optional[str] = None) -> Optional[str]:
        """
        Delete a key and close the gap in priorities.

        Without ``key_id`` the key at priority 0 is deleted, which is what
        single-key callers expect. That mode is a no-op on an empty pool.

        Returns:
            ID of the deleted key, or None if nothing was deleted

        Raises:
            NotFoundError: If key_id is unknown or belongs to another owner
        """
        self._require_owner(owner_id)

        with self.transaction():
            rows = self._owner_rows(owner_id, for_update=True)
            if key_id is not None:
                target = self._get_owned_record(rows, owner_id, key_id)
            elif rows:
                target = rows[0]
            else:
                self.logger.info("No API key to delete", extra={"owner_id": owner_id})
                return None

            deleted_id = target.id
            self.session.delete(target)
            remaining = [r for r in rows if r is not target]
            self._apply_order(key_selector.sort_by_priority(remaining), epoch_millis())

        self.logger.info(
            "API key deleted",
            extra={"owner_id": owner_id, "key_id": deleted_id, "remaining": len(remaining)},
        )
        return deleted_id

    @operation()
    def reorder(self, owner_id: str, key_id: str, new_priority: int) -> List[ApiKeyRead]:
        """
        Move a key to ``new_priority`` (clamped to ``[0, n-1]``) and renumber.

        Returns:
            The owner's keys in their new order

        Raises:
            ValidationError: If new_priority is not an integer
            NotFoundError: If key_id is unknown or belongs to another owner
        """
        self._require_owner(owner_id)
        if isinstance(new_priority, bool) or not isinstance(new_priority, int):
            raise validation_failed("new_priority", new_priority, "must be an integer")

        with self.transaction():
            rows = self._owner_rows(owner_id, for_update=True)
            ordered = key_selector.move(rows, key_id, new_priority)
            if ordered is None:
                raise not_found("API key", key_id=key_id, owner_id=owner_id)
            self._apply_order(ordered, epoch_millis())

        self.logger.info(
            "API key priority updated",
            extra={"owner_id": owner_id, "key_id": key_id, "requested_priority": new_priority},
        )
        return [self._to_read(r) for r in ordered]

    @operation()
    def update_key(
        self,
        owner_id: str,
        key_id: str,
        label: Optional[str] = None,
        is_exhausted: Optional[bool] = None,
    ) -> ApiKeyRead:
        """
        Edit a key's label and/or exhaustion flag.

        An empty label clears it so the generated ``Key N`` label is shown.

        Raises:
            ValidationError: If the label is too long
            NotFoundError: If key_id is unknown or belongs to another owner
        """
        self._require_owner(owner_id)
        try:
            update = ApiKeyUpdate(label=label, is_exhausted=is_exhausted)
        except PydanticValidationError as e:
            raise self._schema_error(e) from e

        with self.transaction():
            record = self._get_owned_record(self._owner_rows(owner_id), owner_id, key_id)
            if update.label is not None:
                record.label = update.label or None
            if update.is_exhausted is not None:
                record.is_exhausted = update.is_exhausted
            record.updated_at = epoch_millis()

        return self._to_read(record)

    @operation()
    def set_legacy_key(self, owner_id: str, secret: str) -> ApiKeyRead:
        """
        Single-key upsert: replace the secret of the first key, or create one.
        """
        self._require_owner(owner_id)
        cleaned = self._validate_secret(secret)

        with self.transaction():
            rows = self._owner_rows(owner_id, for_update=True)
            now = epoch_millis()
            if rows:
                record = rows[0]
                record.encrypted_secret = encrypt_secret(cleaned)
                record.updated_at = now
            else:
                record = ApiKeyCredential(
                    owner_id=owner_id,
                    encrypted_secret=encrypt_secret(cleaned),
                    label=self.config.legacy_label,
                    priority=0,
                    is_exhausted=False,
                    created_at=now,
                    updated_at=now,
                )
                self.session.add(record)
                self.session.flush()

        return self._to_read(record)

    # ==================== SINGLE-RECORD PATCHES ====================

    @operation()
    def set_exhausted(self, key_id: str, value: bool) -> None:
        with self.transaction():
            record = self._get_record(key_id)
            record.is_exhausted = bool(value)
            record.updated_at = epoch_millis()

    @operation()
    def set_credit_cache(self, key_id: str, remaining: int, exhausted: bool) -> None:
        """Store the result of a credit check."""
        with self.transaction():
            record = self._get_record(key_id)
            now = epoch_millis()
            record.remaining_credits = remaining
            record.is_exhausted = bool(exhausted)
            record.last_credit_check_at = now
            record.updated_at = now

    @operation()
    def touch_used(self, key_id: str) -> None:
        with self.transaction():
            record = self._get_record(key_id)
            now = epoch_millis()
            record.last_used_at = now
            record.updated_at = now
