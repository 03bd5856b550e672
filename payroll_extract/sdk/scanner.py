"""Line-window scanning for values that sit near a keyword.

Standard mode walks the lines in reverse document order: stub totals and
summaries sit near the end of a page, while column headers that repeat the
same keywords sit near the top. Aggressive mode walks forward and looks
three lines either side of every keyword hit, preferring values inside a
plausible range.
"""

import logging
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .amounts import first_amount, find_amounts, split_lines

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK = 4
AGGRESSIVE_RADIUS = 3

__all__ = [
    "DEFAULT_LOOKBACK",
    "AGGRESSIVE_RADIUS",
    "split_lines",
    "line_matches",
    "find_near",
    "find_near_aggressive",
    "find_pair_near",
]


def _positive(value: float) -> bool:
    return value > 0


def line_matches(line: str, keywords: Iterable[str], exclude: Iterable[str] = ()) -> bool:
    """True if the lower-cased line holds a keyword and no excluded phrase."""
    lower = line.lower()
    if any(phrase in lower for phrase in exclude):
        return False
    return any(keyword in lower for keyword in keywords)


def find_near(
    lines: Sequence[str],
    keywords: Iterable[str],
    lookback: int = DEFAULT_LOOKBACK,
    value_parser: Callable[[str], Optional[float]] = first_amount,
    accept: Callable[[float], bool] = _positive,
    exclude: Iterable[str] = (),
) -> Optional[float]:
    """Find the nearest acceptable value next to a keyword line.

    Lines are scanned in reverse order with a sliding window of `lookback`
    lines. Inside a window, a keyword line is checked for an inline value,
    then the line that follows it in the window.

    Returns:
        The value, or None if no window yields one
    """
    keywords = tuple(keywords)
    exclude = tuple(exclude)
    ordered = list(reversed(lines))

    for i in range(len(ordered)):
        chunk = ordered[i:i + lookback]
        for j, line in enumerate(chunk):
            if not line_matches(line, keywords, exclude):
                continue

            value = value_parser(line)
            if value is not None and accept(value):
                return value

            if j + 1 < len(chunk):
                value = value_parser(chunk[j + 1])
                if value is not None and accept(value):
                    return value

    return None


def find_near_aggressive(
    lines: Sequence[str],
    keywords: Iterable[str],
    value_range: Tuple[float, float],
    exclude: Iterable[str] = (),
    radius: int = AGGRESSIVE_RADIUS,
) -> Optional[float]:
    """Forward scan collecting candidates around every keyword hit.

    On the first keyword line with an inline positive value, that value wins.
    Otherwise positive values within `radius` lines either side are
    collected; the first inside `value_range` wins, else the first collected.
    """
    keywords = tuple(keywords)
    exclude = tuple(exclude)
    low, high = value_range

    for i, line in enumerate(lines):
        if not line_matches(line, keywords, exclude):
            continue
        logger.debug(f"aggressive scan: keyword at line {i}: {line!r}")

        inline = first_amount(line)
        if inline is not None and inline > 0:
            return inline

        candidates: List[float] = []
        for offset in range(-radius, radius + 1):
            target = i + offset
            if offset == 0 or target < 0 or target >= len(lines):
                continue
            value = first_amount(lines[target])
            if value is not None and value > 0:
                candidates.append(value)

        if candidates:
            typical = next((v for v in candidates if low <= v <= high), None)
            selected = typical if typical is not None else candidates[0]
            logger.debug(
                f"aggressive scan: selected {selected} from {len(candidates)} candidate(s)"
            )
            return selected

    return None


def find_pair_near(
    lines: Sequence[str],
    keywords: Iterable[str],
    exclude: Iterable[str] = (),
) -> Optional[Tuple[float, float]]:
    """Find a (this period, year to date) pair around a keyword line.

    Joins the keyword line with the three after it and takes the first two
    amounts; if that pair is invalid, the line before the hit is prepended
    and tried again. A pair is valid only if this_period > 0 and
    year_to_date >= this_period.
    """
    keywords = tuple(keywords)
    exclude = tuple(exclude)

    for i, line in enumerate(lines):
        if not line_matches(line, keywords, exclude):
            continue
        for start in (i, max(0, i - 1)):
            amounts = find_amounts(" ".join(lines[start:i + 4]))
            if len(amounts) < 2:
                continue
            this_period, year_to_date = amounts[0], amounts[1]
            if this_period > 0 and year_to_date >= this_period:
                return this_period, year_to_date

    return None
