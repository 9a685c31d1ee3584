"""
API Serializers for Odds Keeper.

This module defines the request serializers that validate dice formulas
before any die is rolled, and the read-only serializers that render the
engine's result records (RollResult, DiceGroup, HistogramResult) as JSON.
Formula errors raised by the grammar surface as field-level validation
errors carrying the engine's message unchanged.
"""

from django.conf import settings
from rest_framework import serializers

from .dice_grammar import InvalidRollFormula, check_limits, parse_formula


def _engine_setting(name):
    return settings.DICE_ENGINE[name]


class FormulaField(serializers.CharField):
    """
    A dice formula. Validates the whole formula through the grammar, rejects
    formulas past the DICE_ENGINE dice and sides limits and returns the
    canonical, whitespace-free text.
    """

    def __init__(self, **kwargs):
        kwargs.setdefault('max_length', _engine_setting('MAX_FORMULA_LENGTH'))
        kwargs.setdefault('help_text', "e.g., '3d10 + 2d8 - 1', '3>4d6' or '5d10>=8'")
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        formula = super().to_internal_value(data)
        try:
            parsed = check_limits(parse_formula(formula),
                                  _engine_setting('MAX_DICE_PER_FORMULA'),
                                  _engine_setting('MAX_DIE_SIDES'))
        except InvalidRollFormula as exc:
            raise serializers.ValidationError(str(exc)) from exc
        return parsed.formula


class RollRequestSerializer(serializers.Serializer):
    """Input for a single roll."""
    formula = FormulaField()


class DistributionRequestSerializer(serializers.Serializer):
    """
    Input for a statistics run. `iterations` defaults to the engine default
    and is capped by DICE_ENGINE['MAX_ITERATIONS'].
    """
    formula = FormulaField()
    iterations = serializers.IntegerField(required=False, min_value=1)
    seed = serializers.IntegerField(required=False, allow_null=True, default=None)

    def validate_iterations(self, value):
        maximum = _engine_setting('MAX_ITERATIONS')
        if value > maximum:
            raise serializers.ValidationError(f"Iterations cannot exceed {maximum}.")
        return value

    def validate(self, attrs):
        attrs.setdefault('iterations', _engine_setting('DEFAULT_ITERATIONS'))
        return attrs


class FormulaAppendSerializer(serializers.Serializer):
    """
    Input for the formula-editing helper. The formula may still be incomplete,
    so it is not run through the grammar.
    """
    formula = serializers.CharField(allow_blank=True, trim_whitespace=False,
                                    max_length=_engine_setting('MAX_FORMULA_LENGTH'))
    addition = serializers.RegexField(r'^(\+\d+|\d+d\d+)$', help_text="e.g., '1d6' or '+3'")


class DieOutcomeSerializer(serializers.Serializer):
    value = serializers.IntegerField(read_only=True)
    sides = serializers.IntegerField(read_only=True)


class DiceGroupSerializer(serializers.Serializer):
    """Renders one evaluated dice group."""
    formula = serializers.CharField(source='text', read_only=True)
    count = serializers.IntegerField(read_only=True)
    sides = serializers.IntegerField(read_only=True)
    operator = serializers.CharField(source='mode.value', read_only=True)
    take_count = serializers.IntegerField(read_only=True, allow_null=True)
    threshold = serializers.SerializerMethodField()
    dice = DieOutcomeSerializer(many=True, read_only=True)
    selected = serializers.ListField(child=serializers.IntegerField(), read_only=True)
    value = serializers.IntegerField(read_only=True)
    average = serializers.FloatField(source='expected_average', read_only=True)

    def get_threshold(self, obj):
        if obj.threshold is None:
            return None
        return {'type': obj.threshold.comparator.value, 'value': obj.threshold.value}


class RollResultSerializer(serializers.Serializer):
    """Renders a RollResult."""
    formula = serializers.CharField(read_only=True)
    groups = DiceGroupSerializer(many=True, read_only=True)
    modifier = serializers.IntegerField(read_only=True)
    total = serializers.IntegerField(read_only=True)
    expected_total = serializers.FloatField(read_only=True)


class PercentilesSerializer(serializers.Serializer):
    p25 = serializers.IntegerField(read_only=True)
    p50 = serializers.IntegerField(read_only=True)
    p75 = serializers.IntegerField(read_only=True)
    p90 = serializers.IntegerField(read_only=True)
    p95 = serializers.IntegerField(read_only=True)
    p99 = serializers.IntegerField(read_only=True)


class ThresholdStatsSerializer(serializers.Serializer):
    average_successes = serializers.FloatField(read_only=True)
    probability_of_at_least_one = serializers.FloatField(read_only=True)
    success_probabilities = serializers.SerializerMethodField()

    def get_success_probabilities(self, obj):
        return [{'successes': successes, 'probability': probability}
                for successes, probability in obj.success_probabilities.items()]


class HistogramResultSerializer(serializers.Serializer):
    """
    Renders a HistogramResult. Frequencies are emitted as an ordered list of
    {value, count} pairs because JSON object keys cannot be integers.
    """
    min = serializers.IntegerField(read_only=True)
    max = serializers.IntegerField(read_only=True)
    frequencies = serializers.SerializerMethodField()
    total_rolls = serializers.IntegerField(read_only=True)
    mean = serializers.FloatField(read_only=True)
    standard_deviation = serializers.FloatField(read_only=True)
    percentiles = PercentilesSerializer(read_only=True)
    is_threshold_roll = serializers.BooleanField(read_only=True)
    threshold_stats = ThresholdStatsSerializer(read_only=True, allow_null=True)

    def get_frequencies(self, obj):
        return [{'value': value, 'count': count} for value, count in obj.frequencies.items()]
