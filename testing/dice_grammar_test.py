import pytest

from api.dice_grammar import (Comparator, DiceTerm, MalformedTerm, ModifierTerm, NoDiceGroups,
                              SelectionMode, TakeCountExceedsDiceCount, ThresholdOutOfRange,
                              TooManyDice, TooManySides, canonicalize, check_limits,
                              classify_term, parse_formula, split_terms)


class TestSplitTerms:
    """Tests the whitespace stripping and signed term splitting."""

    def test_canonicalize_strips_all_whitespace(self):
        assert canonicalize(" 3d10 +\n2d8\t- 1 ") == "3d10+2d8-1"

    def test_canonicalize_is_idempotent(self):
        once = canonicalize("3 > 4d6 + 5")
        assert canonicalize(once) == once

    def test_first_term_is_positive(self):
        assert split_terms("3d10+2d8-1") == [
            (1, "3d10", "3d10"),
            (1, "2d8", "+2d8"),
            (-1, "1", "-1"),
        ]

    def test_leading_minus(self):
        assert split_terms("-1d4+2d6") == [(-1, "1d4", "-1d4"), (1, "2d6", "+2d6")]

    def test_operators_inside_terms_are_kept(self):
        assert split_terms("3>4d6+5d10>=8") == [(1, "3>4d6", "3>4d6"), (1, "5d10>=8", "+5d10>=8")]

    def test_empty_formula(self):
        assert split_terms("   ") == []


class TestClassifyTerm:
    """Tests the ordered classification of single terms."""

    def test_bare_integer(self):
        term = classify_term(-1, "5", "-5")
        assert isinstance(term, ModifierTerm)
        assert term.value == -5

    def test_plain_sum(self):
        term = classify_term(1, "3d6", "3d6")
        assert term == DiceTerm(text="3d6", sign=1, count=3, sides=6)

    def test_upper_case_d(self):
        assert classify_term(1, "2D20", "2D20").sides == 20

    @pytest.mark.parametrize("body, mode, take_count", [
        (">2d20", SelectionMode.TAKE_GREATEST, 1),
        ("<2d20", SelectionMode.TAKE_LEAST, 1),
        ("3>4d6", SelectionMode.TAKE_GREATEST, 3),
        ("2<4d6", SelectionMode.TAKE_LEAST, 2),
        ("4>4d6", SelectionMode.TAKE_GREATEST, 4),
    ])
    def test_take_groups(self, body, mode, take_count):
        term = classify_term(1, body, body)
        assert term.mode is mode
        assert term.take_count == take_count
        assert term.threshold is None

    @pytest.mark.parametrize("body, comparator, value", [
        ("5d10>=8", Comparator.AT_LEAST, 8),
        ("5d10>8", Comparator.GREATER, 8),
        ("4d8=6", Comparator.EQUAL, 6),
        ("3d6>=1", Comparator.AT_LEAST, 1),
        ("3d6=6", Comparator.EQUAL, 6),
    ])
    def test_threshold_groups(self, body, comparator, value):
        term = classify_term(1, body, body)
        assert term.threshold.comparator is comparator
        assert term.threshold.value == value
        assert term.take_count is None
        assert term.mode is SelectionMode.SUM

    def test_threshold_below_one(self):
        with pytest.raises(ThresholdOutOfRange, match="cannot roll lower than 1") as info:
            classify_term(1, "3d6>=0", "3d6>=0")
        assert (info.value.value, info.value.sides) == (0, 6)

    def test_threshold_above_sides(self):
        with pytest.raises(ThresholdOutOfRange, match="cannot roll higher than 6"):
            classify_term(1, "3d6=7", "3d6=7")

    def test_take_count_exceeds_dice(self):
        with pytest.raises(TakeCountExceedsDiceCount, match="Cannot take 5 dice from 4 dice"):
            classify_term(1, "5>4d6", "5>4d6")

    @pytest.mark.parametrize("body", [
        "", "d6", "3d", "abc", "4d6kh3", "3d6<4", "2>3d6>=4", "3d6>=", ">>3d6",
        "0d6", "3d0", "0>3d6", "1.5d6", "3d6!", "\u0663d6", "2d\u0666",
    ])
    def test_malformed(self, body):
        with pytest.raises(MalformedTerm, match="Invalid formula part"):
            classify_term(1, body, body)


class TestParseFormula:
    """Tests whole-formula validation."""

    def test_terms_in_order(self):
        parsed = parse_formula("3d10 + 2 - >2d20 - 1")
        assert parsed.formula == "3d10+2->2d20-1"
        assert [term.text for term in parsed.dice_terms] == ["3d10", "->2d20"]
        assert parsed.modifier == 1
        assert not parsed.is_threshold

    def test_threshold_formula(self):
        assert parse_formula("2d6>=4 + 3d8>=5").is_threshold

    @pytest.mark.parametrize("formula", ["", "   ", "5", "5+3-2"])
    def test_no_dice_groups(self, formula):
        with pytest.raises(NoDiceGroups, match="No valid dice groups found in formula"):
            parse_formula(formula)

    def test_malformed_term_names_the_piece(self):
        with pytest.raises(MalformedTerm, match=r"Invalid formula part: abc$"):
            parse_formula("1d6+abc")

    def test_trailing_operator(self):
        with pytest.raises(MalformedTerm, match=r"Invalid formula part: $"):
            parse_formula("1d6+")

    def test_doubled_operator(self):
        with pytest.raises(MalformedTerm):
            parse_formula("1d6++2")

    def test_malformed_term_wins_over_missing_dice(self):
        with pytest.raises(MalformedTerm):
            parse_formula("5+x")


class TestLimits:
    """Tests the dice and sides limits applied to untrusted formulas."""

    def test_within_limits(self):
        parsed = parse_formula("3>4d6 + 2d8 - 1")
        assert parsed.total_dice == 6
        assert check_limits(parsed, max_dice=6, max_sides=8) is parsed

    def test_total_dice_over_limit(self):
        parsed = parse_formula("3d6 + 5d10>=8 - <4d4")
        with pytest.raises(TooManyDice, match="Formula rolls 12 dice, at most 10 are allowed"):
            check_limits(parsed, max_dice=10, max_sides=100)

    def test_sides_over_limit(self):
        parsed = parse_formula("1d6 + 1d1001")
        with pytest.raises(TooManySides, match="A d1001 has too many sides"):
            check_limits(parsed, max_dice=10, max_sides=1000)


class TestValueBounds:

    def test_bounds(self):
        assert classify_term(1, "3d6", "3d6").value_bounds() == (3, 18)
        assert classify_term(-1, "3d6", "-3d6").value_bounds() == (-18, -3)
        assert classify_term(1, "2>4d6", "2>4d6").value_bounds() == (2, 12)
        assert classify_term(-1, "4d6>=5", "-4d6>=5").value_bounds() == (-4, 0)
