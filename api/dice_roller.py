"""
Core utility module for rolling dice roll formulas.

This module provides the main `DiceRoller` class, which rolls every dice
group of a formula (e.g., '3d10+2d8-1', '3>4d6', '5d10>=8') and returns a
detailed breakdown: each die in the order it was rolled, the value of each
group after keep/threshold reduction, the theoretical average of each group
and the grand total.

The dice come from a die source, any callable taking the number of sides and
returning a face. The default draws from the `random` module; tests pass a
scripted sequence instead.

Classes:
    DieOutcome: One rolled die.
    DiceGroup: One evaluated dice term of a formula.
    RollResult: The evaluated formula.
    DiceRoller: A static class that rolls formulas.

Usage:
    from .dice_roller import DiceRoller, InvalidRollFormula

    try:
        result = DiceRoller.evaluate('3>4d6+2')
        print(result.total)
    except InvalidRollFormula as e:
        print(f'Error: {e}')
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from .dice_grammar import (DiceTerm, InvalidRollFormula, SelectionMode, Threshold,
                           parse_formula)
from .dice_math import expected_average

logger = logging.getLogger(__name__)

DieSource = Callable[[int], int]

__all__ = ['DieOutcome', 'DiceGroup', 'RollResult', 'DiceRoller', 'DieSource',
           'InvalidRollFormula', 'evaluate', 'random_die', 'seeded_die_source']


def random_die(sides: int) -> int:
    """Uniform face in 1..sides from the shared `random` stream."""
    return random.randint(1, sides)


def seeded_die_source(seed) -> DieSource:
    """A die source with its own reproducible random stream."""
    rng = random.Random(seed)

    def roll(sides: int) -> int:
        return rng.randint(1, sides)

    return roll


@dataclass(frozen=True)
class DieOutcome:
    value: int
    sides: int


@dataclass(frozen=True)
class DiceGroup:
    """
    One evaluated dice term.

    `dice` keeps every die in roll order even when only some of them count;
    `selected` holds the roll-order indices of the dice that reached `value`.
    For threshold groups those are the successes.
    """
    text: str
    count: int
    sides: int
    mode: SelectionMode
    dice: Tuple[DieOutcome, ...]
    selected: Tuple[int, ...]
    value: int
    expected_average: float
    take_count: Optional[int] = None
    threshold: Optional[Threshold] = None

    @property
    def rolls(self) -> List[int]:
        return [die.value for die in self.dice]


@dataclass(frozen=True)
class RollResult:
    formula: str
    groups: Tuple[DiceGroup, ...]
    modifier: int
    total: int
    expected_total: float = field(default=0.0)


class DiceRoller:
    """
        Handles rolling and reduction of dice roll formulas.

        This class is used as a static utility and is not meant to be instantiated.
        Its main public method is `evaluate()`.
    """

    @staticmethod
    def _select(rolls: List[int], term: DiceTerm) -> Tuple[int, ...]:
        """
        Picks the roll-order indices of the dice that count towards the group value.

        Ties are broken by roll order so the selection is stable.
        """
        indices = range(len(rolls))
        if term.threshold is not None:
            return tuple(i for i in indices
                         if term.threshold.comparator.test(rolls[i], term.threshold.value))
        if term.mode is SelectionMode.SUM:
            return tuple(indices)

        descending = term.mode is SelectionMode.TAKE_GREATEST
        ranked = sorted(indices, key=lambda i: -rolls[i] if descending else rolls[i])
        return tuple(sorted(ranked[:term.take_count]))

    @classmethod
    def roll_group(cls, term: DiceTerm, die_source: Optional[DieSource] = None,
                   max_outcomes: Optional[int] = None) -> DiceGroup:
        """
        Rolls one dice term and reduces it to its signed value.

        Args:
            term (DiceTerm): A classified dice term from `parse_formula`.
            die_source (DieSource): Source of faces; defaults to `random_die`.
            max_outcomes (int): Enumeration limit for the expected average of
                                take groups; see `dice_math.take_average`.

        Returns:
            DiceGroup: The immutable evaluated group.
        """
        source = die_source or random_die
        rolls = [source(term.sides) for _ in range(term.count)]
        selected = cls._select(rolls, term)

        if term.threshold is not None:
            magnitude = len(selected)
        else:
            magnitude = sum(rolls[i] for i in selected)

        return DiceGroup(
            text=term.text,
            count=term.count,
            sides=term.sides,
            mode=term.mode,
            take_count=term.take_count,
            threshold=term.threshold,
            dice=tuple(DieOutcome(value, term.sides) for value in rolls),
            selected=selected,
            value=term.sign * magnitude,
            expected_average=expected_average(term, max_outcomes),
        )

    @classmethod
    def evaluate(cls, formula: str, die_source: Optional[DieSource] = None,
                 max_outcomes: Optional[int] = None) -> RollResult:
        """
        Parses a full dice formula, rolls every dice group and totals the result.

        This is the main public method of the class.

        Args:
            formula (str): The complete dice formula string.
            die_source (DieSource): Source of faces; defaults to `random_die`.
            max_outcomes (int): Enumeration limit passed on to `roll_group`.

        Raises:
            InvalidRollFormula: If any term is malformed or out of range, or if
                                the formula holds no dice group.

        Returns:
            RollResult: The canonical formula, the evaluated groups in formula
                        order, the flat modifier and the total.
        """
        parsed = parse_formula(formula)

        groups = tuple(cls.roll_group(term, die_source, max_outcomes)
                       for term in parsed.dice_terms)
        modifier = parsed.modifier
        total = sum(group.value for group in groups) + modifier
        expected_total = sum(group.expected_average for group in groups) + modifier

        logger.debug("Rolled '%s' -> %d", parsed.formula, total)

        return RollResult(
            formula=parsed.formula,
            groups=groups,
            modifier=modifier,
            total=total,
            expected_total=expected_total,
        )


def evaluate(formula: str, die_source: Optional[DieSource] = None,
             max_outcomes: Optional[int] = None) -> RollResult:
    return DiceRoller.evaluate(formula, die_source, max_outcomes)
