"""Helper utilities for teaching Jinja2 how to format our data.

Templates are the presentation layer. This module explains *what* formatting
helpers exist, *when* they are used (whenever an HTML page renders), *why* we
need them (to keep the UI tidy and consistent), and *how* to hook them into the
Jinja environment.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from fastapi.templating import Jinja2Templates

from .config import settings

_LOCAL_TZ = ZoneInfo(settings.TZ) if settings.TZ else None


def _to_dt(value: Any) -> datetime | None:
    """Convert backend timestamps (ISO strings) into timezone-aware datetimes."""

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        try:
            # Postgres emits "+00:00" offsets but older Pythons reject a bare "Z".
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None and _LOCAL_TZ:
        dt = dt.replace(tzinfo=_LOCAL_TZ)
    if _LOCAL_TZ:
        dt = dt.astimezone(_LOCAL_TZ)
    return dt


def _fmt_dt(value: Any, fmt: str = "%Y-%m-%d %I:%M %p") -> str:
    """Format a timestamp with both date and time for post headers."""

    dt = _to_dt(value)
    return dt.strftime(fmt) if dt else ""


def _fmt_date(value: Any, fmt: str = "%B %Y") -> str:
    """Return only the month and year, used for "Joined ..." on profiles."""

    dt = _to_dt(value)
    return dt.strftime(fmt) if dt else ""


def _fmt_count(value: Any) -> str:
    """Render follower and like counters, tolerating missing values."""

    try:
        number = int(value or 0)
    except (TypeError, ValueError):
        return "0"
    return f"{number:,}"


def _initials(value: Any) -> str:
    """Two-letter avatar fallback built from a display name."""

    words = [word for word in str(value or "").split() if word]
    if not words:
        return "?"
    return "".join(word[0] for word in words[:2]).upper()


def get_templates() -> Jinja2Templates:
    """Create a ``Jinja2Templates`` instance with our standard filters registered."""

    templates = Jinja2Templates(directory=str(settings.templates_dir))
    env = templates.env
    # These assignments teach Jinja new "verbs" it can use from HTML using the
    # ``{{ value|filter_name }}`` syntax.
    env.filters["fmt_dt"] = _fmt_dt
    env.filters["fmt_date"] = _fmt_date
    env.filters["fmt_count"] = _fmt_count
    env.filters["initials"] = _initials
    return templates
