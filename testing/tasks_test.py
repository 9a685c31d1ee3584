"""
Tests for the Celery task that runs statistics in the background.

Tasks are executed in-process with `.apply()`, so no broker is needed.
"""

import importlib
import pickle

import pytest

from api.dice_grammar import (MalformedTerm, TakeCountExceedsDiceCount, ThresholdOutOfRange,
                              TooManyDice, TooManySides)
from api.tasks import compute_distribution_task


class TestComputeDistributionTask:

    def test_returns_serialized_histogram(self, eager_celery):
        outcome = compute_distribution_task.apply(args=("3d6 + 1", 200, 11)).get()

        assert outcome['status'] == 'success'
        assert outcome['formula'] == '3d6+1'
        result = outcome['result']
        assert result['total_rolls'] == 200
        assert result['is_threshold_roll'] is False
        assert 4 <= result['min'] <= result['max'] <= 19

    def test_seeded_runs_match(self, eager_celery):
        first = compute_distribution_task.apply(args=("2>4d6", 100, 5)).get()
        second = compute_distribution_task.apply(args=("2>4d6", 100, 5)).get()

        assert first == second

    def test_threshold_formula(self, eager_celery):
        outcome = compute_distribution_task.apply(args=("5d10>=8", 100)).get()

        stats = outcome['result']['threshold_stats']
        assert outcome['result']['is_threshold_roll'] is True
        assert len(stats['success_probabilities']) == 6

    def test_invalid_formula_fails_the_task(self, eager_celery):
        job = compute_distribution_task.apply(args=("3d6>=9", 100))

        assert job.failed()
        with pytest.raises(ThresholdOutOfRange):
            job.get()


@pytest.mark.parametrize('error', [
    MalformedTerm('abc'),
    ThresholdOutOfRange(0, 6),
    TakeCountExceedsDiceCount(5, 4),
    TooManyDice(300, 200),
    TooManySides(5000, 1000),
])
def test_formula_errors_survive_pickling(error):
    restored = pickle.loads(pickle.dumps(error))

    assert type(restored) is type(error)
    assert str(restored) == str(error)


def test_job_results_default_to_redis(monkeypatch):
    monkeypatch.delenv('CELERY_RESULT_BACKEND', raising=False)
    project_settings = importlib.reload(importlib.import_module('odds_keeper.settings'))

    assert project_settings.CELERY_RESULT_BACKEND == 'redis://localhost:6379/1'
