"""
API Views for the Odds Keeper application.

This module contains the APIViews that expose the formula engine to the UI:
single rolls, synchronous and queued statistics runs, and the formula-editing
helper. Formula validation happens in the serializers, so every view here
only runs input the grammar has already accepted.
"""

from celery.result import AsyncResult
from django.conf import settings
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .dice_roller import DiceRoller, seeded_die_source
from .dice_stats import compute_distribution
from .serializers import (DistributionRequestSerializer, FormulaAppendSerializer,
                          HistogramResultSerializer, RollRequestSerializer,
                          RollResultSerializer)
from .tasks import compute_distribution_task
from .utils import add_to_formula


class RollView(APIView):
    """
    API endpoint that rolls a formula once.
    Endpoint: /rolls/
    """
    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = RollRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = DiceRoller.evaluate(
            serializer.validated_data['formula'],
            max_outcomes=settings.DICE_ENGINE['MAX_ENUMERATION_OUTCOMES'],
        )

        return Response(RollResultSerializer(result).data, status=status.HTTP_200_OK)


class DistributionView(APIView):
    """
    API endpoint that simulates a formula and returns its distribution
    in the same request.
    Endpoint: /stats/
    """
    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = DistributionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        die_source = seeded_die_source(data['seed']) if data['seed'] is not None else None
        histogram = compute_distribution(data['formula'], data['iterations'], die_source)

        return Response(HistogramResultSerializer(histogram).data, status=status.HTTP_200_OK)


class DistributionJobView(APIView):
    """
    API endpoint that queues a statistics run on a Celery worker.
    Endpoint: /stats/jobs/
    """
    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = DistributionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        job = compute_distribution_task.delay(data['formula'], data['iterations'], data['seed'])

        return Response({
            "task_id": job.id,
            "status": job.status,
        }, status=status.HTTP_202_ACCEPTED)


class DistributionJobStatusView(APIView):
    """
    API endpoint that reports on a queued statistics run.
    Endpoint: /stats/jobs/<task_id>/
    """
    permission_classes = [AllowAny]

    def get(self, request, task_id, *args, **kwargs):
        job = AsyncResult(task_id, app=compute_distribution_task.app)

        payload = {"task_id": task_id, "status": job.status}
        if job.successful():
            payload["result"] = job.result["result"]
        elif job.failed():
            payload["detail"] = str(job.result)

        return Response(payload, status=status.HTTP_200_OK)


class FormulaAppendView(APIView):
    """
    API endpoint for the dice buttons: folds a die or modifier into a formula.
    Endpoint: /formula/append/
    """
    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = FormulaAppendSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        return Response({
            "formula": add_to_formula(data['formula'], data['addition'])
        }, status=status.HTTP_200_OK)
