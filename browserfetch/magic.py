from __future__ import annotations

import random
import re
from datetime import datetime

from browserfetch.time_utils import date_str, epoch_ms, format_moment, now_local, unix_ts

_MAGIC_VAR = re.compile(r"\{(ts|ms|date|rand)(?::([^{}]*))?\}")


def resolve_magic_vars(text: str, now: datetime | None = None) -> str:
    """Replace ``{ts}``, ``{ms}``, ``{date}``, ``{date:<fmt>}`` and ``{rand}``.

    Every call reads the clock again, so retried requests see fresh values.
    """
    if "{" not in text:
        return text

    current = now or now_local()

    def replace(match: re.Match[str]) -> str:
        name, fmt = match.group(1), match.group(2)
        if name == "date":
            return format_moment(current, fmt) if fmt else date_str(current)
        if fmt is not None:
            return match.group(0)
        if name == "ts":
            return str(unix_ts(current))
        if name == "ms":
            return str(epoch_ms(current))
        return repr(random.random())

    return _MAGIC_VAR.sub(replace, text)
