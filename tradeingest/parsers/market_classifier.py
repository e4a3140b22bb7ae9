"""
Market classifier: guess which market an export came from.

Three independent signals, each backed by the knowledge base:
1. Headers  - identifier keywords (+5) and typical column names (+2)
2. Symbol   - first matching symbol pattern in registry order
3. Sample   - plurality vote of symbol classification over the first rows

All three return None when the evidence is empty; the importer decides how
to combine them.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable, Mapping, Optional, Sequence

from .market_knowledge import MarketType, get_definition, iter_definitions

logger = logging.getLogger(__name__)

IDENTIFIER_WEIGHT = 5
TYPICAL_COLUMN_WEIGHT = 2
DEFAULT_SAMPLE_SIZE = 10


def score_headers(headers: Iterable[str]) -> dict[MarketType, int]:
    """Per-market header scores, in registry order."""
    lower_headers = [h.strip().lower() for h in headers if h and h.strip()]
    scores: dict[MarketType, int] = {}

    for definition in iter_definitions():
        score = 0
        for keyword in sorted(definition.identifier_keywords):
            if any(keyword in h for h in lower_headers):
                score += IDENTIFIER_WEIGHT
        for column in definition.typical_columns:
            if any(column in h for h in lower_headers):
                score += TYPICAL_COLUMN_WEIGHT
        scores[definition.market] = score

    return scores


def identifier_hits(headers: Iterable[str], market: MarketType) -> list[str]:
    """Identifier keywords of ``market`` found in the headers.

    Empty means a header score came only from generic column names
    (size, volume, base...), which several markets share.
    """
    definition = get_definition(market)
    if definition is None:
        return []
    lower_headers = [h.strip().lower() for h in headers if h and h.strip()]
    return [
        keyword for keyword in sorted(definition.identifier_keywords)
        if any(keyword in h for h in lower_headers)
    ]


def classify_from_headers(headers: Iterable[str]) -> Optional[MarketType]:
    """Highest-scoring market, or None if nothing scored.

    Ties keep the market that comes first in the registry.
    """
    scores = score_headers(headers)
    best: Optional[MarketType] = None
    best_score = 0
    for market, score in scores.items():
        if score > best_score:
            best, best_score = market, score

    if best is not None:
        logger.debug("[MarketClassifier] Header scores %s -> %s", _fmt_scores(scores), best.value)
    return best


def classify_from_symbol(symbol: Optional[str]) -> Optional[MarketType]:
    """First market whose symbol patterns match. None for blank symbols."""
    if not symbol:
        return None
    sym = symbol.strip().upper()
    if not sym:
        return None
    for definition in iter_definitions():
        if definition.matches_symbol(sym):
            return definition.market
    return None


def classify_from_sample(
    rows: Sequence[Mapping[str, str]],
    symbol_header: Optional[str],
    max_sample_size: int = DEFAULT_SAMPLE_SIZE,
) -> Optional[MarketType]:
    """Plurality vote of ``classify_from_symbol`` over the first rows.

    Ties go to the market that collected its first vote earliest.
    """
    if not symbol_header:
        return None

    votes: dict[MarketType, int] = defaultdict(int)
    for row in rows[:max_sample_size]:
        market = classify_from_symbol(row.get(symbol_header, ""))
        if market is not None:
            votes[market] += 1

    best: Optional[MarketType] = None
    best_votes = 0
    for market, count in votes.items():
        if count > best_votes:
            best, best_votes = market, count

    if best is not None:
        logger.debug(
            "[MarketClassifier] Sample votes %s -> %s",
            {m.value: c for m, c in votes.items()}, best.value,
        )
    return best


def _fmt_scores(scores: Mapping[MarketType, int]) -> str:
    return ", ".join(f"{m.value}={s}" for m, s in scores.items() if s)
