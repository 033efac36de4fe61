"""
Provider-neutral payloads for generic webhooks.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..constants import NotificationEventType, PayloadLimits
from ..schemas.notification_schemas import ChangeDetectedEvent, CrawlCompletedEvent

DEFAULT_CHANGE_SUMMARY = "Website content has changed"
CRAWL_NOTE = "Individual page changes trigger separate notifications with detailed diffs"


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters, appending an ellipsis when cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + PayloadLimits.ELLIPSIS


def iso_from_millis(millis: int) -> str:
    """Epoch milliseconds to ``2024-05-01T12:00:00.000Z``."""
    moment = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def display_time(millis: int) -> str:
    """Epoch milliseconds to a human-readable UTC time."""
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _now_iso(now: Optional[datetime]) -> str:
    moment = now or datetime.now(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def split_diff(text: str) -> Dict[str, List[str]]:
    """
    Split unified diff text into added and removed lines.

    File headers (``+++``/``---``) are skipped and the leading marker is
    dropped from each line.
    """
    lines = text.split("\n")
    return {
        "added": [
            line[1:] for line in lines if line.startswith("+") and not line.startswith("+++")
        ],
        "removed": [
            line[1:] for line in lines if line.startswith("-") and not line.startswith("---")
        ],
    }


def _ai_analysis_block(event: ChangeDetectedEvent) -> Optional[Dict[str, Any]]:
    analysis = event.ai_analysis
    if analysis is None:
        return None
    return {
        "meaningfulChangeScore": analysis.meaningful_change_score,
        "isMeaningfulChange": analysis.is_meaningful_change,
        "reasoning": analysis.reasoning,
        "analyzedAt": iso_from_millis(analysis.analyzed_at),
        "model": analysis.model,
    }


def build_change_payload(
    event: ChangeDetectedEvent, now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Build the ``website_changed`` payload sent to generic webhooks."""
    diff_text = event.diff.text if event.diff else ""

    change: Dict[str, Any] = {
        "detectedAt": iso_from_millis(event.scraped_at),
        "changeType": event.change_type,
        "changeStatus": event.change_status,
        "summary": (
            truncate(diff_text, PayloadLimits.SUMMARY_CHARS)
            if diff_text
            else DEFAULT_CHANGE_SUMMARY
        ),
    }
    if event.diff is not None:
        change["diff"] = split_diff(diff_text)

    scrape_result: Dict[str, Any] = {
        "id": event.scrape_result_id,
        "markdown": truncate(event.markdown, PayloadLimits.MARKDOWN_CHARS),
    }
    if event.title is not None:
        scrape_result["title"] = event.title
    if event.description is not None:
        scrape_result["description"] = event.description

    payload: Dict[str, Any] = {
        "event": NotificationEventType.WEBSITE_CHANGED.value,
        "timestamp": _now_iso(now),
        "website": {
            "id": event.website.id,
            "name": event.website.name,
            "url": event.website.url,
        },
        "change": change,
        "scrapeResult": scrape_result,
    }

    ai_block = _ai_analysis_block(event)
    if ai_block is not None:
        payload["aiAnalysis"] = ai_block

    return payload


def build_crawl_payload(
    event: CrawlCompletedEvent, now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Build the ``crawl_completed`` payload sent to generic webhooks."""
    duration = event.duration_seconds

    return {
        "event": NotificationEventType.CRAWL_COMPLETED.value,
        "timestamp": _now_iso(now),
        "website": {
            "id": event.website.id,
            "name": event.website.name,
            "url": event.website.url,
            "type": "full_site",
        },
        "crawlSummary": {
            "sessionId": event.session_id,
            "startedAt": iso_from_millis(event.started_at),
            "completedAt": (
                iso_from_millis(event.completed_at) if event.completed_at is not None else None
            ),
            "pagesFound": event.pages_found,
            "duration": f"{duration}s" if duration is not None else None,
        },
        "note": CRAWL_NOTE,
    }
