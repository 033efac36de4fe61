"""
Discord embed payloads.

Discord rejects field values over 1024 characters, so every value built here
stays within ``PayloadLimits.DISCORD_FIELD_CHARS``.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from ..constants import DiscordColor, PayloadLimits
from ..schemas.notification_schemas import ChangeDetectedEvent, CrawlCompletedEvent, WebsiteRef
from .payloads import DEFAULT_CHANGE_SUMMARY, _now_iso, display_time, truncate

FOOTER = {"text": "Firecrawl Observer", "icon_url": "https://firecrawl.dev/favicon.ico"}
EMPTY_DIFF_TEXT = "No diff content available"


def _field(name: str, value: str, inline: bool) -> Dict[str, Any]:
    return {"name": name, "value": value, "inline": inline}


def website_link(website: WebsiteRef) -> str:
    name = website.name[: PayloadLimits.DISCORD_WEBSITE_NAME_CHARS]
    return f"[{name}]({website.url})"


def format_score(score: Union[int, float]) -> str:
    """85.0 -> '85', 72.5 -> '72.5'."""
    if float(score).is_integer():
        return str(int(score))
    return str(score)


def change_summary_value(diff_text: Optional[str]) -> str:
    """Diff excerpt wrapped in a ``diff`` code block, at most 1000 characters."""
    limit = PayloadLimits.DISCORD_FIELD_CHARS - PayloadLimits.DISCORD_FIELD_HEADROOM
    summary = truncate(diff_text, limit) if diff_text else DEFAULT_CHANGE_SUMMARY
    content = summary.strip() or EMPTY_DIFF_TEXT
    return f"```diff\n{content}\n```"


def embed_color(event: ChangeDetectedEvent) -> int:
    if event.ai_analysis is None:
        return DiscordColor.DEFAULT
    if event.ai_analysis.is_meaningful_change:
        return DiscordColor.MEANINGFUL
    return DiscordColor.NOT_MEANINGFUL


def _embed(title: str, url: str, color: int, fields: List[Dict[str, Any]], now) -> Dict[str, Any]:
    return {
        "embeds": [
            {
                "title": title,
                "url": url,
                "color": color,
                "fields": fields,
                "footer": dict(FOOTER),
                "timestamp": _now_iso(now),
            }
        ]
    }


def build_discord_change_payload(
    event: ChangeDetectedEvent, now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Build the embed sent to Discord webhooks for a detected change."""
    fields = [
        _field("Website", website_link(event.website), True),
        _field("Change Type", event.change_status or "changed", True),
        _field("Detected At", display_time(event.scraped_at), True),
    ]

    if event.title:
        fields.append(_field("Page Title", event.title[: PayloadLimits.DISCORD_TITLE_CHARS], False))

    analysis = event.ai_analysis
    if analysis is not None:
        reasoning = truncate(analysis.reasoning, PayloadLimits.DISCORD_REASONING_CHARS)
        meaningful = "Yes" if analysis.is_meaningful_change else "No"
        fields.append(
            _field(
                "AI Analysis",
                f"Score: **{format_score(analysis.meaningful_change_score)}%** | "
                f"Meaningful: **{meaningful}**\n{reasoning}",
                False,
            )
        )

    fields.append(
        _field("Change Summary", change_summary_value(event.diff.text if event.diff else None), False)
    )

    title = f"Change Detected: {event.website.name[: PayloadLimits.DISCORD_TITLE_CHARS]}"
    return _embed(title, event.website.url, embed_color(event), fields, now)


def build_discord_crawl_payload(
    event: CrawlCompletedEvent, now: Optional[datetime] = None
) -> Dict[str, Any]:
    """Build the embed sent to Discord webhooks when a crawl finishes."""
    fields = [
        _field("Website", website_link(event.website), True),
        _field("Pages Found", str(event.pages_found), True),
        _field("Started At", display_time(event.started_at), True),
    ]

    duration = event.duration_seconds
    if duration is not None:
        fields.append(_field("Duration", f"{duration}s", True))

    stats = []
    if event.pages_changed:
        stats.append(f"Changed: {event.pages_changed}")
    if event.pages_added:
        stats.append(f"Added: {event.pages_added}")
    if event.pages_removed:
        stats.append(f"Removed: {event.pages_removed}")
    if stats:
        fields.append(_field("Changes", "\n".join(stats), False))

    title = f"Crawl Completed: {event.website.name[: PayloadLimits.DISCORD_TITLE_CHARS]}"
    return _embed(title, event.website.url, DiscordColor.CRAWL_COMPLETED, fields, now)
