from __future__ import annotations

from collections import Counter, defaultdict
from itertools import zip_longest
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from .cards import Card

STRAIGHT_FLUSH = 8
FOUR_OF_A_KIND = 7
FULL_HOUSE = 6
FLUSH = 5
STRAIGHT = 4
THREE_OF_A_KIND = 3
TWO_PAIR = 2
PAIR = 1
HIGH_CARD = 0

CATEGORY_NAMES = {
    STRAIGHT_FLUSH: "Straight flush",
    FOUR_OF_A_KIND: "Four of a kind",
    FULL_HOUSE: "Full house",
    FLUSH: "Flush",
    STRAIGHT: "Straight",
    THREE_OF_A_KIND: "Three of a kind",
    TWO_PAIR: "Two pair",
    PAIR: "Pair",
    HIGH_CARD: "High card",
}


class HandValue(NamedTuple):
    """Best five-card ranking found in a set of cards.

    ``score`` starts with the category (0-8) followed by the tie-breakers,
    so two hands compare with :func:`compare_scores`.
    """

    score: Tuple[int, ...]
    name: str

    @property
    def category(self) -> int:
        return self.score[0]

    @property
    def tiebreakers(self) -> Tuple[int, ...]:
        return self.score[1:]

    def to_payload(self) -> Dict[str, object]:
        return {"score": list(self.score), "name": self.name}


def evaluate(cards: Sequence[Card]) -> HandValue:
    """Rank the best hand available in five or more cards. Higher is better."""
    ranks_desc = sorted((card.value for card in cards), reverse=True)
    counts = Counter(ranks_desc)
    by_suit: Dict[str, List[int]] = defaultdict(list)
    for card in cards:
        by_suit[card.suit].append(card.value)

    flush_ranks: Optional[List[int]] = None
    for suited in by_suit.values():
        if len(suited) >= 5:
            candidate = sorted(suited, reverse=True)
            if flush_ranks is None or candidate[:5] > flush_ranks[:5]:
                flush_ranks = candidate

    if flush_ranks is not None:
        straight_flush_high = _straight_high(flush_ranks)
        if straight_flush_high:
            return _hand(STRAIGHT_FLUSH, straight_flush_high)

    # Most frequent first, higher rank breaking ties.
    groups = sorted(counts.items(), key=lambda item: (item[1], item[0]), reverse=True)
    top_rank, top_count = groups[0]

    if top_count == 4:
        return _hand(FOUR_OF_A_KIND, top_rank, *_kickers(ranks_desc, [top_rank], 1))

    if top_count == 3:
        paired = [rank for rank, count in groups[1:] if count >= 2]
        if paired:
            return _hand(FULL_HOUSE, top_rank, max(paired))

    if flush_ranks is not None:
        return _hand(FLUSH, *flush_ranks[:5])

    straight_high = _straight_high(ranks_desc)
    if straight_high:
        return _hand(STRAIGHT, straight_high)

    if top_count == 3:
        return _hand(THREE_OF_A_KIND, top_rank, *_kickers(ranks_desc, [top_rank], 2))

    if top_count == 2 and groups[1][1] == 2:
        high_pair, low_pair = groups[0][0], groups[1][0]
        return _hand(TWO_PAIR, high_pair, low_pair, *_kickers(ranks_desc, [high_pair, low_pair], 1))

    if top_count == 2:
        return _hand(PAIR, top_rank, *_kickers(ranks_desc, [top_rank], 3))

    return _hand(HIGH_CARD, *ranks_desc[:5])


def compare_scores(left: Sequence[int], right: Sequence[int]) -> int:
    """Return a positive number when ``left`` wins, negative when ``right`` does, 0 on a tie."""
    for a, b in zip_longest(left, right, fillvalue=0):
        if a != b:
            return a - b
    return 0


def best_of(values: Iterable[HandValue]) -> Optional[HandValue]:
    best: Optional[HandValue] = None
    for value in values:
        if best is None or compare_scores(value.score, best.score) > 0:
            best = value
    return best


def _hand(category: int, *tiebreakers: int) -> HandValue:
    return HandValue(score=(category, *tiebreakers), name=CATEGORY_NAMES[category])


def _kickers(ranks_desc: Sequence[int], exclude: Sequence[int], limit: int) -> List[int]:
    return [rank for rank in ranks_desc if rank not in exclude][:limit]


def _straight_high(values: Iterable[int]) -> Optional[int]:
    ranks = set(values)
    if 14 in ranks:  # Ace low
        ranks.add(1)
    for high in range(14, 4, -1):
        if all(rank in ranks for rank in range(high - 4, high + 1)):
            return high
    return None
