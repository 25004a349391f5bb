# portfolio_ledger/core/timestamps.py

from datetime import datetime, timezone
from typing import Any, Optional

# Sort key for entries whose timestamp does not parse; they are rejected by validation anyway.
EPOCH_MIN = datetime.min.replace(tzinfo=timezone.utc)


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parses an ISO-8601 date or datetime string into an aware UTC datetime.
    Naive values are taken as UTC. Returns None when the value does not parse.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)

