"""Ordered extraction strategies.

A field extractor is a list of strategies evaluated in order; the first one
that returns a value wins. Which strategy won (and which were skipped) is
recorded in a debug map with the same shape the YAML stub parser used:

    debug["pattern_usage"][field] = {
        "matched": True,
        "strategy_index": 1,
        "strategy": "medicare:relaxed",
        "kind": "relaxed",
        "strategies_skipped": ["medicare:strict"],
    }
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .amounts import MONEY, parse_currency
from .scanner import find_near, find_near_aggressive, find_pair_near
from .schemas import AmountPair, DeductionDefinition

logger = logging.getLogger(__name__)

STRICT = "strict"
RELAXED = "relaxed"
WINDOW = "window"
AGGRESSIVE = "aggressive"
PATTERN = "pattern"
HEURISTIC = "heuristic"

StrategyFunc = Callable[[str, List[str]], Any]


@dataclass(frozen=True)
class Strategy:
    """A named, independently testable extraction step."""

    name: str
    kind: str
    func: StrategyFunc

    def __call__(self, text: str, lines: List[str]) -> Any:
        return self.func(text, lines)


def new_debug_info() -> Dict[str, Any]:
    return {"pattern_usage": {}}


def first_match(
    strategies: Sequence[Strategy],
    text: str,
    lines: List[str],
    field: str,
    debug: Optional[Dict[str, Any]] = None,
) -> Any:
    """Evaluate strategies in order and return the first non-None value."""
    usage = {
        "matched": False,
        "strategy_index": None,
        "strategy": None,
        "kind": None,
        "strategies_skipped": [],
    }
    if debug is not None:
        debug["pattern_usage"][field] = usage

    for i, strategy in enumerate(strategies):
        value = strategy(text, lines)
        if value is not None:
            usage.update({
                "matched": True,
                "strategy_index": i,
                "strategy": strategy.name,
                "kind": strategy.kind,
            })
            return value
        usage["strategies_skipped"].append(strategy.name)

    return None


# =============================================================================
# Strategy builders
# =============================================================================


def regex_strategy(
    name: str,
    pattern: str,
    convert: Callable[[re.Match], Any] = lambda m: m.group(1),
    flags: int = re.IGNORECASE,
    kind: str = PATTERN,
) -> Strategy:
    """Search the whole text; convert the first match (None skips)."""
    compiled = re.compile(pattern, flags)

    def run(text: str, lines: List[str]) -> Any:
        match = compiled.search(text)
        if not match:
            return None
        return convert(match)

    return Strategy(name, kind, run)


def _label_group(labels: Sequence[str]) -> str:
    return r"\b(?:" + "|".join(labels) + r")(?!\w)"


def _line_at(text: str, pos: int) -> str:
    start = text.rfind("\n", 0, pos) + 1
    end = text.find("\n", pos)
    return text[start:] if end == -1 else text[start:end]


def _pair_from_match(match: re.Match) -> Optional[AmountPair]:
    this_period = parse_currency(match.group(1))
    if this_period is None:
        return None
    year_to_date = parse_currency(match.group(2)) if match.group(2) else None
    return AmountPair(this_period=this_period, year_to_date=year_to_date)


def label_pair_strategy(
    name: str,
    labels: Sequence[str],
    relaxed: bool = False,
    exclude: Sequence[str] = (),
) -> Strategy:
    """Label followed by one or two amounts on the same line.

    Strict: amounts immediately after the label (optional colon).
    Relaxed: free text may sit between label and amounts, and both columns
    are required. Matches on a line containing an excluded phrase are skipped.
    """
    if relaxed:
        pattern = _label_group(labels) + r"[^\n]*?[ \t]+(" + MONEY + r")[ \t]+(" + MONEY + r")"
        kind = RELAXED
    else:
        pattern = _label_group(labels) + r"[ \t]*:?[ \t]*(" + MONEY + r")(?:[ \t]+(" + MONEY + r"))?"
        kind = STRICT
    compiled = re.compile(pattern, re.IGNORECASE)
    exclude = tuple(exclude)

    def run(text: str, lines: List[str]) -> Optional[AmountPair]:
        for match in compiled.finditer(text):
            line = _line_at(text, match.start()).lower()
            if any(phrase in line for phrase in exclude):
                continue
            pair = _pair_from_match(match)
            if pair is not None:
                return pair
        return None

    return Strategy(name, kind, run)


def window_pair_strategy(name: str, keywords: Sequence[str], exclude: Sequence[str] = ()) -> Strategy:
    """Keyword line plus the following lines, first valid amount pair."""

    def run(text: str, lines: List[str]) -> Optional[AmountPair]:
        pair = find_pair_near(lines, keywords, exclude=exclude)
        if pair is None:
            return None
        return AmountPair(this_period=pair[0], year_to_date=pair[1])

    return Strategy(name, WINDOW, run)


def window_single_strategy(
    name: str,
    keywords: Sequence[str],
    lookback: int,
    exclude: Sequence[str] = (),
) -> Strategy:
    """Reverse line-window scan for a current-period amount."""

    def run(text: str, lines: List[str]) -> Optional[AmountPair]:
        value = find_near(lines, keywords, lookback=lookback, exclude=exclude)
        if value is None:
            return None
        return AmountPair(this_period=value)

    return Strategy(name, WINDOW, run)


def aggressive_strategy(
    name: str,
    keywords: Sequence[str],
    value_range: Tuple[float, float],
    exclude: Sequence[str] = (),
) -> Strategy:
    """Forward +/-3 line scan preferring values inside value_range."""

    def run(text: str, lines: List[str]) -> Optional[AmountPair]:
        value = find_near_aggressive(lines, keywords, value_range, exclude=exclude)
        if value is None:
            return None
        return AmountPair(this_period=value)

    return Strategy(name, AGGRESSIVE, run)


def deduction_strategies(
    definition: DeductionDefinition,
    lookback: int,
    aggressive_ranges: Dict[str, Tuple[float, float]],
) -> List[Strategy]:
    """Strategy list for one deduction definition.

    strict -> relaxed -> window pair -> window single -> aggressive (if the
    definition enables it and a range is configured).
    """
    key = definition.key
    strategies: List[Strategy] = []

    if definition.labels:
        strategies.append(label_pair_strategy(f"{key}:strict", definition.labels, exclude=definition.exclude))
        strategies.append(
            label_pair_strategy(f"{key}:relaxed", definition.labels, relaxed=True, exclude=definition.exclude)
        )

    if definition.keywords:
        strategies.append(window_pair_strategy(f"{key}:window-pair", definition.keywords, definition.exclude))
        strategies.append(
            window_single_strategy(f"{key}:window", definition.keywords, lookback, definition.exclude)
        )

        value_range = aggressive_ranges.get(key)
        if definition.aggressive and value_range is not None:
            strategies.append(
                aggressive_strategy(f"{key}:aggressive", definition.keywords, value_range, definition.exclude)
            )

    return strategies
