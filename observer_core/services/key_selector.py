"""
Ordering and selection rules for an owner's key pool.

Pure functions over records exposing ``id``, ``priority``, ``is_exhausted``
and ``created_at``. Nothing here touches the database; KeyStore applies the
results.

Selection is an advisory read: two callers may get the same key at the same
time. Exhaustion is detected afterwards by the credit tracker.
"""

from typing import Any, List, Optional, Sequence, Tuple


def _sort_key(record: Any) -> Tuple[int, int]:
    # created_at breaks ties left behind by a concurrent writer
    return (record.priority, record.created_at or 0)


def sort_by_priority(records: Sequence[Any]) -> List[Any]:
    """Return records ordered by priority, oldest first on ties."""
    return sorted(records, key=_sort_key)


def select_active(records: Sequence[Any]) -> Optional[Any]:
    """
    Pick the key to use next.

    Returns:
        The non-exhausted record with the lowest priority, or None when every
        record is exhausted or there are none.
    """
    candidates = [r for r in records if not r.is_exhausted]
    if not candidates:
        return None
    return min(candidates, key=_sort_key)


def move(records: Sequence[Any], key_id: str, new_position: int) -> Optional[List[Any]]:
    """
    Reinsert one record at ``new_position`` in priority order.

    The position is clamped to ``[0, n-1]``. Relative order of the other
    records is preserved.

    Returns:
        The new ordering, or None if ``key_id`` is not among the records.
    """
    ordered = sort_by_priority(records)
    index = next((i for i, r in enumerate(ordered) if r.id == key_id), None)
    if index is None:
        return None

    record = ordered.pop(index)
    position = max(0, min(new_position, len(ordered)))
    ordered.insert(position, record)
    return ordered


def renumber(ordered: Sequence[Any]) -> List[Tuple[Any, int]]:
    """Pair each record with its contiguous priority ``0..n-1`` in the given order."""
    return [(record, position) for position, record in enumerate(ordered)]


def has_contiguous_priorities(records: Sequence[Any]) -> bool:
    """True when priorities are exactly ``{0, ..., n-1}``."""
    return sorted(r.priority for r in records) == list(range(len(records)))
