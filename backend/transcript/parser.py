"""
Timestamped-lyrics (LRC) parsing.

Line format:
    [mm:ss.cc]free text

- mm: minutes, two digits or more (a long mix may run past 99)
- ss: two-digit seconds
- cc: 2-3 digit fraction, always divided by 100 (a 3-digit fraction
  therefore reads as hundredths, e.g. ".500" -> 5.0 s)

Lines that do not start with a timestamp (metadata tags, blank lines,
malformed stamps) are dropped silently. Output order is input order.
"""

from __future__ import annotations

import re

from transcript.models import LyricLine, Transcript

_LRC_LINE_RE = re.compile(
    r"""
    ^\s*
    \[
    (?P<min>\d{2,})
    :
    (?P<sec>\d{2})
    \.
    (?P<frac>\d{2,3})
    \]
    (?P<text>.*)$
    """,
    re.VERBOSE,
)


def parse_lrc_line(line: str) -> LyricLine | None:
    """Parse one line; returns None when the line carries no timestamp."""
    match = _LRC_LINE_RE.match(line)
    if match is None:
        return None

    minutes = int(match.group("min"))
    seconds = int(match.group("sec"))
    fraction = int(match.group("frac"))

    return LyricLine(
        time_s=round(minutes * 60 + seconds + fraction / 100, 3),
        text=match.group("text").strip(),
    )


def parse_lrc(source: str) -> Transcript:
    """
    Parse an LRC document into a Transcript.

    No re-sorting is performed; an unordered source yields an unordered
    transcript.
    """
    lines: list[LyricLine] = []
    for raw in source.splitlines():
        parsed = parse_lrc_line(raw)
        if parsed is not None:
            lines.append(parsed)
    return Transcript(lines=tuple(lines))


def format_timestamp(time_s: float) -> str:
    centis = int(round(time_s * 100))
    minutes, centis = divmod(centis, 6000)
    seconds, centis = divmod(centis, 100)
    return f"[{minutes:02d}:{seconds:02d}.{centis:02d}]"


def format_lrc(transcript: Transcript) -> str:
    """Serialize back to LRC so that parse(format(t)) == t."""
    return "\n".join(
        f"{format_timestamp(line.time_s)}{line.text}" for line in transcript.lines
    )
