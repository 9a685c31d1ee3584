"""
Monte-Carlo statistics for dice roll formulas.

This module simulates a formula many times and summarises the outcomes:
a frequency histogram, mean, population standard deviation and
nearest-rank percentiles, or, for success-counting formulas such as
'5d10>=8', the probability of every possible number of successes.

The formula is parsed once through the shared grammar before the loop, so
validation errors abort the run before anything is simulated. Inside the
loop each term is a plain tuple and each iteration only draws integers:
no `DiceGroup` records are built, which keeps 100,000 iterations cheap.

Classes:
    Percentiles: Nearest-rank percentiles of the simulated totals.
    ThresholdStats: Success-count summary for threshold formulas.
    HistogramResult: The full distribution summary.
    DistributionAnalyticsService: Runs the simulation for one formula.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .dice_grammar import DiceTerm, ParsedFormula, SelectionMode, parse_formula
from .dice_roller import DieSource, random_die

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 100000

PERCENTILE_RANKS = (25, 50, 75, 90, 95, 99)

SUM, TAKE, COUNT = 'sum', 'take', 'count'


@dataclass(frozen=True)
class Percentiles:
    p25: int = 0
    p50: int = 0
    p75: int = 0
    p90: int = 0
    p95: int = 0
    p99: int = 0


@dataclass(frozen=True)
class ThresholdStats:
    average_successes: float
    probability_of_at_least_one: float
    success_probabilities: Dict[int, float]


@dataclass(frozen=True)
class HistogramResult:
    min: int
    max: int
    frequencies: Dict[int, int]
    total_rolls: int
    mean: float
    standard_deviation: float
    percentiles: Percentiles
    is_threshold_roll: bool
    threshold_stats: Optional[ThresholdStats] = None


def _compile_term(term: DiceTerm) -> Tuple:
    """Flattens a dice term into the tuple the simulation loop unpacks."""
    if term.threshold is not None:
        return (COUNT, term.sign, term.count, term.sides,
                (term.threshold.comparator, term.threshold.value))
    if term.mode is SelectionMode.SUM:
        return SUM, term.sign, term.count, term.sides, None
    return (TAKE, term.sign, term.count, term.sides,
            (term.take_count, term.mode is SelectionMode.TAKE_GREATEST))


def nearest_rank(frequencies: Dict[int, int], total: int, rank: int) -> int:
    """
    Value at sorted index ceil(rank / 100 * total) - 1 of all outcomes.

    Walks the ascending histogram instead of sorting every outcome.
    """
    index = max(math.ceil(rank / 100 * total) - 1, 0)
    seen = 0
    for value, frequency in frequencies.items():
        seen += frequency
        if seen > index:
            return value
    return next(reversed(frequencies))


class DistributionAnalyticsService:
    """
    Simulates one formula and derives its distribution.

    The formula is validated on construction; `compute_distribution` can then
    be called any number of times.
    """

    def __init__(self, formula: str, die_source: Optional[DieSource] = None):
        self.parsed: ParsedFormula = parse_formula(formula)
        self.die_source = die_source or random_die
        self._plan = [_compile_term(term) for term in self.parsed.dice_terms]
        self._modifier = self.parsed.modifier

    @property
    def formula(self) -> str:
        return self.parsed.formula

    def possible_range(self) -> Tuple[int, int]:
        """Smallest and largest total the formula can produce."""
        low = high = self._modifier
        for term in self.parsed.dice_terms:
            term_low, term_high = term.value_bounds()
            low += term_low
            high += term_high
        return low, high

    def simulate_once(self) -> int:
        """One evaluation of the formula, returning only its signed total."""
        source = self.die_source
        total = self._modifier
        for kind, sign, count, sides, extra in self._plan:
            if kind == SUM:
                value = 0
                for _ in range(count):
                    value += source(sides)
            elif kind == TAKE:
                take_count, descending = extra
                rolls = sorted((source(sides) for _ in range(count)), reverse=descending)
                value = sum(rolls[:take_count])
            else:
                comparator, bound = extra
                value = 0
                for _ in range(count):
                    if comparator.test(source(sides), bound):
                        value += 1
            total += sign * value
        return total

    def _simulate(self, iterations: int) -> Counter:
        frequencies = Counter()
        for _ in range(iterations):
            frequencies[self.simulate_once()] += 1
        return frequencies

    def _threshold_distribution(self, iterations: int) -> HistogramResult:
        observed = self._simulate(iterations)
        low, high = self.possible_range()

        frequencies = {value: observed.get(value, 0) for value in range(low, high + 1)}
        total_successes = sum(value * frequency for value, frequency in observed.items())
        at_least_one = sum(frequency for value, frequency in observed.items() if value > 0)
        average = total_successes / iterations

        return HistogramResult(
            min=low,
            max=high,
            frequencies=frequencies,
            total_rolls=iterations,
            mean=average,
            standard_deviation=0.0,
            percentiles=Percentiles(),
            is_threshold_roll=True,
            threshold_stats=ThresholdStats(
                average_successes=average,
                probability_of_at_least_one=at_least_one / iterations,
                success_probabilities={value: frequency / iterations
                                       for value, frequency in frequencies.items()},
            ),
        )

    def _sum_distribution(self, iterations: int) -> HistogramResult:
        observed = self._simulate(iterations)
        frequencies = dict(sorted(observed.items()))

        mean = sum(value * frequency for value, frequency in frequencies.items()) / iterations
        variance = sum(frequency * (value - mean) ** 2
                       for value, frequency in frequencies.items()) / iterations

        ranks = {f"p{rank}": nearest_rank(frequencies, iterations, rank)
                 for rank in PERCENTILE_RANKS}

        return HistogramResult(
            min=min(frequencies),
            max=max(frequencies),
            frequencies=frequencies,
            total_rolls=iterations,
            mean=mean,
            standard_deviation=math.sqrt(variance),
            percentiles=Percentiles(**ranks),
            is_threshold_roll=False,
        )

    def compute_distribution(self, iterations: int = DEFAULT_ITERATIONS) -> HistogramResult:
        """
        Simulates the formula `iterations` times and summarises the outcomes.

        :param iterations: Number of simulated evaluations; must be positive.
        :raises ValueError: If iterations is not a positive integer.
        :return: A HistogramResult whose shape depends on whether the formula
                 counts successes against a threshold.
        """
        if isinstance(iterations, bool) or not isinstance(iterations, int) or iterations < 1:
            raise ValueError("Iterations must be a positive integer.")

        if self.parsed.is_threshold:
            result = self._threshold_distribution(iterations)
        else:
            result = self._sum_distribution(iterations)

        logger.info("Simulated '%s' %d times (mean %.3f)",
                    self.formula, iterations, result.mean)
        return result


def compute_distribution(formula: str, iterations: int = DEFAULT_ITERATIONS,
                         die_source: Optional[DieSource] = None) -> HistogramResult:
    """Validates `formula` once, then simulates it `iterations` times."""
    return DistributionAnalyticsService(formula, die_source).compute_distribution(iterations)
