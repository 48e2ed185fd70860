import re
from datetime import UTC, datetime, timedelta

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def now_text(offset_seconds: int = 0) -> str:
    """Current UTC time in the ``CURRENT_TIMESTAMP`` column format."""
    moment = datetime.now(UTC) + timedelta(seconds=offset_seconds)
    return moment.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=UTC)
    except ValueError:
        return None


def slugify(text: str) -> str:
    slug = _SLUG_STRIP.sub("-", text.lower()).strip("-")
    return slug or "item"


def like_pattern(term: str) -> str:
    """Wrap a search term for ``LIKE ... ESCAPE '\\'``."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
