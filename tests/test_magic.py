from __future__ import annotations

from datetime import datetime, timedelta, timezone

from browserfetch.magic import resolve_magic_vars
from browserfetch.time_utils import format_moment

NOW = datetime(2024, 3, 5, 14, 7, 9, 123000, tzinfo=timezone(timedelta(hours=8)))


def test_timestamps() -> None:
    assert resolve_magic_vars("/a?ts={ts}&ms={ms}", NOW) == (
        f"/a?ts={int(NOW.timestamp())}&ms={int(NOW.timestamp() * 1000)}"
    )


def test_dates() -> None:
    assert resolve_magic_vars("{date}", NOW) == "2024-03-05"
    assert resolve_magic_vars("{date:YYYY-MM-DD HH:mm:ss}", NOW) == "2024-03-05 14:07:09"
    assert resolve_magic_vars("{date:YYYYMMDD}", NOW) == "20240305"


def test_rand_is_fresh_fraction() -> None:
    first = float(resolve_magic_vars("{rand}"))
    assert 0 <= first < 1
    values = {resolve_magic_vars("{rand}") for _ in range(5)}
    assert len(values) > 1


def test_unknown_placeholders_are_kept() -> None:
    assert resolve_magic_vars("/x?q={query}&t={ts:bad}", NOW) == "/x?q={query}&t={ts:bad}"


def test_each_call_reads_the_clock() -> None:
    later = NOW + timedelta(seconds=3)
    assert resolve_magic_vars("{ts}", NOW) != resolve_magic_vars("{ts}", later)


def test_format_moment_tokens() -> None:
    assert format_moment(NOW, "D/M/YY h:mm A") == "5/3/24 2:07 PM"
    assert format_moment(NOW, "HH:mm:ss.SSS Z") == "14:07:09.123 +08:00"
    assert format_moment(NOW, "ZZ [at] X") == f"+0800 at {int(NOW.timestamp())}"
    assert format_moment(NOW, "MMM ddd") == "Mar Tue"
