"""
Celery Task Definitions for Odds Keeper.

A statistics run is one atomic computation: it either completes and returns
the whole histogram or fails without a partial result. Long runs are handed
to a Celery worker through this module so the web process stays responsive.
"""

import logging

from celery import shared_task

from .dice_roller import seeded_die_source
from .dice_stats import DistributionAnalyticsService
from .serializers import HistogramResultSerializer

logger = logging.getLogger(__name__)


@shared_task
def compute_distribution_task(formula, iterations, seed=None):
    """
    Simulates `formula` `iterations` times on a worker and returns the
    serialized histogram. A seed makes the run reproducible.
    """
    try:
        logger.info("TASK: Starting compute_distribution_task for '%s' (%d iterations)...",
                    formula, iterations)
        die_source = seeded_die_source(seed) if seed is not None else None

        service = DistributionAnalyticsService(formula, die_source)
        histogram = service.compute_distribution(iterations)

        logger.info("TASK: Distribution for '%s' complete.", service.formula)
        return {
            'status': 'success',
            'formula': service.formula,
            'result': HistogramResultSerializer(histogram).data,
        }

    except Exception:
        logger.error("FATAL ERROR during compute_distribution_task.", exc_info=True)
        raise
