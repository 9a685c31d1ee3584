"""
Expected values for dice groups.

Every dice group shows the theoretical mean of its contribution next to the
rolled value. Sums and success counts have simple closed forms, keeping the
single greatest or least die has a closed-form order-statistic expression,
and keeping several dice is computed exactly by enumerating every equally
likely outcome tuple.

Enumeration costs sides ** count steps, so it is memoized and bounded by
MAX_ENUMERATION_OUTCOMES. Above the bound the same expectation is computed
from binomial tail probabilities, which is exact as well and polynomial.
"""

import itertools
import logging
from functools import lru_cache
from math import comb
from typing import Optional

from .dice_grammar import Comparator, DiceTerm, SelectionMode, Threshold

logger = logging.getLogger(__name__)

MAX_ENUMERATION_OUTCOMES = 1_000_000


def sum_average(count: int, sides: int) -> float:
    return count * (sides + 1) / 2


def success_probability(sides: int, threshold: Threshold) -> float:
    """Chance that one die meets the threshold."""
    if threshold.comparator is Comparator.EQUAL:
        return 1 / sides
    if threshold.comparator is Comparator.AT_LEAST:
        return (sides - threshold.value + 1) / sides
    return (sides - threshold.value) / sides


def threshold_average(count: int, sides: int, threshold: Threshold) -> float:
    return count * success_probability(sides, threshold)


def greatest_single_average(count: int, sides: int) -> float:
    """Closed-form mean of the greatest of `count` dice."""
    term = 1 - 1.0 / (2 * sides)
    return sides * (1 - (1.0 / (count + 1)) * term ** (count + 1))


def least_single_average(count: int, sides: int) -> float:
    """A uniform die is symmetric, so the least mirrors the greatest."""
    return sides + 1 - greatest_single_average(count, sides)


@lru_cache(maxsize=256)
def enumerated_take_average(count: int, sides: int, take_count: int,
                            mode: SelectionMode) -> float:
    """
    Exact mean of the sum of the kept dice, averaged over every roll tuple.

    Runs in O(sides ** count); callers check the size first.
    """
    descending = mode is SelectionMode.TAKE_GREATEST
    faces = range(1, sides + 1)
    total = 0
    outcomes = 0
    for rolls in itertools.product(faces, repeat=count):
        kept = sorted(rolls, reverse=descending)[:take_count]
        total += sum(kept)
        outcomes += 1
    return total / outcomes


@lru_cache(maxsize=256)
def order_statistic_take_average(count: int, sides: int, take_count: int,
                                 mode: SelectionMode) -> float:
    """
    Exact mean of the sum of the kept dice using order statistics.

    The j-th greatest die is at least x exactly when at least j of the dice
    are at least x, so E[j-th greatest] = sum over x of that binomial tail.
    Each face needs one pass over the hit counts, so the cost is sides * count.
    """
    total_outcomes = sides ** count
    tail_ways = 0
    for face in range(1, sides + 1):
        high_faces = sides - face + 1
        low_faces = face - 1
        # ways[h]: roll tuples in which exactly h dice show `face` or more.
        ways = [comb(count, hits) * high_faces ** hits * low_faces ** (count - hits)
                for hits in range(count + 1)]
        at_least = sum(ways[take_count:])
        for rank in range(take_count, 0, -1):
            tail_ways += at_least
            at_least += ways[rank - 1]
    greatest_sum = tail_ways / total_outcomes

    if mode is SelectionMode.TAKE_GREATEST:
        return greatest_sum
    # Mirror every kept die: the least K of X are sides + 1 minus the greatest K of sides + 1 - X.
    return take_count * (sides + 1) - greatest_sum


def take_average(count: int, sides: int, take_count: int, mode: SelectionMode,
                 max_outcomes: Optional[int] = None) -> float:
    """
    Mean of the sum of the kept dice.

    Enumerates every roll tuple while there are at most `max_outcomes` of
    them (MAX_ENUMERATION_OUTCOMES by default), else uses order statistics.
    """
    if take_count == 1:
        if mode is SelectionMode.TAKE_GREATEST:
            return greatest_single_average(count, sides)
        return least_single_average(count, sides)

    limit = MAX_ENUMERATION_OUTCOMES if max_outcomes is None else max_outcomes
    if sides ** count <= limit:
        return enumerated_take_average(count, sides, take_count, mode)

    logger.debug("%dd%d has more than %d outcomes, using order statistics",
                 count, sides, limit)
    return order_statistic_take_average(count, sides, take_count, mode)


def expected_average(term: DiceTerm, max_outcomes: Optional[int] = None) -> float:
    """Theoretical mean contribution of a dice term, sign included."""
    if term.threshold is not None:
        average = threshold_average(term.count, term.sides, term.threshold)
    elif term.mode is SelectionMode.SUM:
        average = sum_average(term.count, term.sides)
    else:
        average = take_average(term.count, term.sides, term.take_count, term.mode,
                               max_outcomes)
    return term.sign * average
