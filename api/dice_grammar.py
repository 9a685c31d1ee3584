"""
Grammar for dice roll formulas.

This module turns a formula string such as '3d10 + 2d8 - 1', '>2d20',
'3>4d6' or '5d10>=8' into a list of classified terms. It is the single
place where term shapes are recognised, so the detailed roller and the
fast statistics loop can never disagree on what a valid formula is.

Accepted term shapes (after whitespace is stripped):
    5           flat modifier
    NdM         sum of N dice with M sides
    >NdM, <NdM  greatest / least single die of N
    K>NdM       sum of the greatest K dice of N
    K<NdM       sum of the least K dice of N
    NdM>=V      number of dice rolling V or more
    NdM>V       number of dice rolling more than V
    NdM=V       number of dice rolling exactly V

Classes:
    InvalidRollFormula: Base exception for every rejected formula.
    TooManyDice / TooManySides: Size limits applied by `check_limits`.
    SelectionMode: How a dice group reduces its outcomes to one value.
    Threshold: Comparator and bound for success-counting groups.
    DiceTerm / ModifierTerm: The classified terms.
    ParsedFormula: A fully validated formula.
"""

import enum
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

WHITESPACE_RE = re.compile(r"\s+")
TERM_SPLIT_RE = re.compile(r"(?=[+-])")

MODIFIER_RE = re.compile(r"^(\d+)$", re.ASCII)
THRESHOLD_RE = re.compile(r"^(\d+)[dD](\d+)(>=|>|=)(\d+)$", re.ASCII)
TAKE_RE = re.compile(r"^(?:(\d+)([<>])|([<>]))(\d+)[dD](\d+)$", re.ASCII)
SUM_RE = re.compile(r"^(\d+)[dD](\d+)$", re.ASCII)


class InvalidRollFormula(Exception):
    """Base exception raised when a dice formula cannot be evaluated."""


# Subclasses keep their constructor arguments in `args`; the message comes from __str__.

class MalformedTerm(InvalidRollFormula):
    """A term matches none of the accepted shapes."""

    def __init__(self, term: str):
        super().__init__(term)
        self.term = term

    def __str__(self):
        return f"Invalid formula part: {self.term}"


class NoDiceGroups(InvalidRollFormula):
    """The formula holds only flat modifiers, or nothing at all."""

    def __str__(self):
        return "No valid dice groups found in formula"


class ThresholdOutOfRange(InvalidRollFormula):
    """The threshold lies outside the faces of the die."""

    def __init__(self, value: int, sides: int):
        super().__init__(value, sides)
        self.value = value
        self.sides = sides

    def __str__(self):
        if self.value < 1:
            reason = f"a d{self.sides} cannot roll lower than 1"
        else:
            reason = f"a d{self.sides} cannot roll higher than {self.sides}"
        return f"Threshold {self.value} is invalid for a d{self.sides}: {reason}"


class TakeCountExceedsDiceCount(InvalidRollFormula):
    """More dice were asked to be kept than were rolled."""

    def __init__(self, take_count: int, count: int):
        super().__init__(take_count, count)
        self.take_count = take_count
        self.count = count

    def __str__(self):
        return f"Cannot take {self.take_count} dice from {self.count} dice"


class TooManyDice(InvalidRollFormula):
    """The formula rolls more dice in total than the configured limit."""

    def __init__(self, count: int, limit: int):
        super().__init__(count, limit)
        self.count = count
        self.limit = limit

    def __str__(self):
        return f"Formula rolls {self.count} dice, at most {self.limit} are allowed"


class TooManySides(InvalidRollFormula):
    """A die has more sides than the configured limit."""

    def __init__(self, sides: int, limit: int):
        super().__init__(sides, limit)
        self.sides = sides
        self.limit = limit

    def __str__(self):
        return f"A d{self.sides} has too many sides, at most {self.limit} are allowed"


class SelectionMode(enum.Enum):
    SUM = 'sum'
    TAKE_GREATEST = 'greatest'
    TAKE_LEAST = 'least'


class Comparator(enum.Enum):
    AT_LEAST = '>='
    GREATER = '>'
    EQUAL = '='

    def test(self, outcome: int, value: int) -> bool:
        if self is Comparator.AT_LEAST:
            return outcome >= value
        if self is Comparator.GREATER:
            return outcome > value
        return outcome == value


@dataclass(frozen=True)
class Threshold:
    comparator: Comparator
    value: int

    def __str__(self):
        return f"{self.comparator.value}{self.value}"


@dataclass(frozen=True)
class DiceTerm:
    """One dice group as written in the formula, before anything is rolled."""
    text: str
    sign: int
    count: int
    sides: int
    mode: SelectionMode = SelectionMode.SUM
    take_count: Optional[int] = None
    threshold: Optional[Threshold] = None

    @property
    def is_threshold(self) -> bool:
        return self.threshold is not None

    @property
    def contributing_dice(self) -> int:
        """Number of dice whose face values reach the group value."""
        if self.take_count is not None:
            return self.take_count
        return self.count

    def value_bounds(self) -> Tuple[int, int]:
        """Smallest and largest signed value this term can contribute."""
        if self.threshold is not None:
            low, high = 0, self.count
        else:
            low = self.contributing_dice
            high = self.contributing_dice * self.sides
        if self.sign < 0:
            return -high, -low
        return low, high


@dataclass(frozen=True)
class ModifierTerm:
    text: str
    sign: int
    amount: int

    @property
    def value(self) -> int:
        return self.sign * self.amount


Term = Union[DiceTerm, ModifierTerm]


@dataclass(frozen=True)
class ParsedFormula:
    formula: str
    terms: Tuple[Term, ...]

    @property
    def dice_terms(self) -> List[DiceTerm]:
        return [term for term in self.terms if isinstance(term, DiceTerm)]

    @property
    def modifier(self) -> int:
        return sum(term.value for term in self.terms if isinstance(term, ModifierTerm))

    @property
    def is_threshold(self) -> bool:
        return any(term.is_threshold for term in self.dice_terms)

    @property
    def total_dice(self) -> int:
        return sum(term.count for term in self.dice_terms)


def canonicalize(formula: str) -> str:
    """Strips every whitespace character from the formula."""
    return WHITESPACE_RE.sub('', formula)


def split_terms(formula: str) -> List[Tuple[int, str, str]]:
    """
    Splits a formula into signed terms.

    The split happens in front of every '+' or '-', so each piece after the
    first starts with its sign. Doubled operators such as '1d6+-2' therefore
    leave a bare '+' piece, which later fails classification.

    Returns:
        List of (sign, body, text) where sign is +1 or -1, body is the term
        without its sign and text is the piece as written.
    """
    pieces = []
    for piece in TERM_SPLIT_RE.split(canonicalize(formula)):
        if not piece:
            continue
        sign = -1 if piece[0] == '-' else 1
        body = piece[1:] if piece[0] in '+-' else piece
        pieces.append((sign, body, piece))
    return pieces


def _positive(raw: str, body: str) -> int:
    number = int(raw)
    if number < 1:
        raise MalformedTerm(body)
    return number


def _match_modifier(body: str, sign: int, text: str) -> Optional[ModifierTerm]:
    match = MODIFIER_RE.match(body)
    if not match:
        return None
    return ModifierTerm(text=text, sign=sign, amount=int(match.group(1)))


def _match_threshold(body: str, sign: int, text: str) -> Optional[DiceTerm]:
    match = THRESHOLD_RE.match(body)
    if not match:
        return None
    count = _positive(match.group(1), body)
    sides = _positive(match.group(2), body)
    value = int(match.group(4))
    if value < 1 or value > sides:
        raise ThresholdOutOfRange(value, sides)
    return DiceTerm(
        text=text,
        sign=sign,
        count=count,
        sides=sides,
        threshold=Threshold(Comparator(match.group(3)), value),
    )


def _match_take(body: str, sign: int, text: str) -> Optional[DiceTerm]:
    match = TAKE_RE.match(body)
    if not match:
        return None
    explicit_take, explicit_op, bare_op, raw_count, raw_sides = match.groups()
    count = _positive(raw_count, body)
    sides = _positive(raw_sides, body)

    if explicit_op:
        take_count = _positive(explicit_take, body)
        operator = explicit_op
    else:
        take_count = 1
        operator = bare_op

    if take_count > count:
        raise TakeCountExceedsDiceCount(take_count, count)

    mode = SelectionMode.TAKE_GREATEST if operator == '>' else SelectionMode.TAKE_LEAST
    return DiceTerm(text=text, sign=sign, count=count, sides=sides,
                    mode=mode, take_count=take_count)


def _match_sum(body: str, sign: int, text: str) -> Optional[DiceTerm]:
    match = SUM_RE.match(body)
    if not match:
        return None
    return DiceTerm(
        text=text,
        sign=sign,
        count=_positive(match.group(1), body),
        sides=_positive(match.group(2), body),
    )


# Order matters: the first matcher that recognises a body wins.
TERM_MATCHERS = (_match_modifier, _match_threshold, _match_take, _match_sum)


def classify_term(sign: int, body: str, text: str) -> Term:
    """
    Classifies one signed term.

    Raises:
        MalformedTerm: If no matcher recognises the term.
        ThresholdOutOfRange: If a threshold lies outside 1..sides.
        TakeCountExceedsDiceCount: If more dice are kept than rolled.
    """
    for matcher in TERM_MATCHERS:
        term = matcher(body, sign, text)
        if term is not None:
            return term
    raise MalformedTerm(body)


def parse_formula(formula: str) -> ParsedFormula:
    """
    Validates a formula and classifies all of its terms.

    Raises:
        InvalidRollFormula: For any malformed term, out-of-range threshold or
                            take count, or when no dice group is present.
    """
    canonical = canonicalize(formula)
    terms = tuple(classify_term(sign, body, text) for sign, body, text in split_terms(canonical))

    parsed = ParsedFormula(formula=canonical, terms=terms)
    if not parsed.dice_terms:
        raise NoDiceGroups()

    logger.debug("Parsed formula '%s' into %d terms", canonical, len(terms))
    return parsed



def check_limits(parsed: ParsedFormula, max_dice: int, max_sides: int) -> ParsedFormula:
    """
    Rejects formulas whose work grows past the given limits.

    Raises:
        TooManyDice: If the dice groups roll more than `max_dice` dice in total.
        TooManySides: If any die has more than `max_sides` sides.
    """
    if parsed.total_dice > max_dice:
        raise TooManyDice(parsed.total_dice, max_dice)
    for term in parsed.dice_terms:
        if term.sides > max_sides:
            raise TooManySides(term.sides, max_sides)
    return parsed
