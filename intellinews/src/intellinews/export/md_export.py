from datetime import datetime
from typing import List, Optional

from ..models.knowledge import KnowledgeEntry
from ..models.news import from_millis, utcnow

SNIPPET_LENGTH = 150


def format_relative(published: datetime, now: Optional[datetime] = None) -> str:
    """'5 minutes ago', '3 hours ago', '2 days ago', else the plain date."""
    now = now or utcnow()
    minutes = int((now - published).total_seconds() // 60)
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    days = hours // 24
    if days < 7:
        return f"{days} day{'s' if days != 1 else ''} ago"
    return published.date().isoformat()


def _snippet(entry: KnowledgeEntry) -> str:
    text = entry.text or ""
    # Stored text is "title\n\ncontent"
    title, sep, body = text.partition("\n\n")
    content = body if sep else title
    if len(content) > SNIPPET_LENGTH:
        return content[:SNIPPET_LENGTH] + "..."
    return content


def format_entries_md(entries: List[KnowledgeEntry], now: Optional[datetime] = None, *, heading: str = "# News") -> str:
    """Render stored news entries as Markdown, in the given order."""
    lines = [heading, ""]
    if not entries:
        lines.append("No matching news in memory.")
        return "\n".join(lines)

    for entry in entries:
        md = entry.metadata or {}
        published = md.get("publishedAt")
        when = format_relative(from_millis(published), now) if isinstance(published, (int, float)) else "unknown"
        lines.append(f"## {md.get('title') or 'Untitled'}")
        lines.append(f"**Source**: {md.get('source') or 'Unknown source'} | **Published**: {when}")
        if md.get("url"):
            lines.append(f"[Read Article]({md['url']})")
        lines.append("")
        lines.append(_snippet(entry))
        lines.append("")

    return "\n".join(lines)
