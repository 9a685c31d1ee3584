"""
Utility functions for the API application.

This module provides the formula-editing helper used by dice buttons: it
folds a clicked die or modifier into the formula being typed instead of
always appending a new term.
"""

import re

OPERATOR_SPLIT_RE = re.compile(r"(\s*[+-]\s*)")
OPERATOR_SPACING_RE = re.compile(r"\s*([+-])\s*")
PLAIN_DICE_RE = re.compile(r"^(\d+)d(\d+)$")
NUMBER_RE = re.compile(r"^\d+$")


def _respace(text: str) -> str:
    return OPERATOR_SPACING_RE.sub(r" \1 ", text)


def add_to_formula(current_formula: str, addition: str) -> str:
    """
    Adds a die ('1d6') or a modifier ('+3') to the end of a formula.

    '1d6' + '1d6' -> '2d6', '1d6 + 2' + '+3' -> '1d6 + 5'; anything that
    cannot be merged into the last term is appended as ' + <addition>'.
    """
    formula = current_formula.strip()
    if not formula:
        return addition

    parts = [part for part in OPERATOR_SPLIT_RE.split(formula) if part]
    last_part = parts[-1].strip()
    head = _respace(''.join(parts[:-1]))

    if addition.startswith('+'):
        amount = addition[1:]
        if NUMBER_RE.match(last_part):
            return head + str(int(last_part) + int(amount))
        return f"{formula} + {amount}"

    count, _, sides = addition.partition('d')
    dice_match = PLAIN_DICE_RE.match(last_part)
    if dice_match and dice_match.group(2) == sides:
        return head + f"{int(dice_match.group(1)) + int(count)}d{sides}"

    return f"{_respace(formula)} + {addition}"
