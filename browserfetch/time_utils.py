from __future__ import annotations

import re
from datetime import datetime

# Moment-style tokens, longest alternatives first.
_MOMENT_TOKEN = re.compile(
    r"\[([^\]]*)\]|YYYY|YY|MMMM|MMM|MM|M|DD|D|dddd|ddd|HH|H|hh|h|mm|m|ss|s|SSS|A|a|ZZ|Z|X|x"
)


def now_local() -> datetime:
    return datetime.now().astimezone()


def unix_ts(now: datetime) -> int:
    return int(now.timestamp())


def epoch_ms(now: datetime) -> int:
    return int(now.timestamp() * 1000)


def date_str(now: datetime) -> str:
    return now.strftime("%Y-%m-%d")


def _utc_offset(now: datetime, sep: str) -> str:
    offset = now.utcoffset()
    minutes = int(offset.total_seconds() // 60) if offset is not None else 0
    sign = "+" if minutes >= 0 else "-"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{sign}{hours:02d}{sep}{minutes:02d}"


def format_moment(now: datetime, fmt: str) -> str:
    """Format ``now`` with moment.js tokens, e.g. ``YYYY-MM-DD HH:mm:ss``."""

    def token(match: re.Match[str]) -> str:
        literal = match.group(1)
        if literal is not None:
            return literal

        tok = match.group(0)
        hour12 = now.hour % 12 or 12
        values = {
            "YYYY": f"{now.year:04d}",
            "YY": f"{now.year % 100:02d}",
            "MMMM": now.strftime("%B"),
            "MMM": now.strftime("%b"),
            "MM": f"{now.month:02d}",
            "M": str(now.month),
            "DD": f"{now.day:02d}",
            "D": str(now.day),
            "dddd": now.strftime("%A"),
            "ddd": now.strftime("%a"),
            "HH": f"{now.hour:02d}",
            "H": str(now.hour),
            "hh": f"{hour12:02d}",
            "h": str(hour12),
            "mm": f"{now.minute:02d}",
            "m": str(now.minute),
            "ss": f"{now.second:02d}",
            "s": str(now.second),
            "SSS": f"{now.microsecond // 1000:03d}",
            "A": "AM" if now.hour < 12 else "PM",
            "a": "am" if now.hour < 12 else "pm",
            "ZZ": _utc_offset(now, ""),
            "Z": _utc_offset(now, ":"),
            "X": str(unix_ts(now)),
            "x": str(epoch_ms(now)),
        }
        return values[tok]

    return _MOMENT_TOKEN.sub(token, fmt)
