"""
URL Configuration for the API application.

This module defines the routes of the Odds Keeper API:
1. Single rolls of a dice formula.
2. Distribution statistics, computed inline or queued on Celery.
3. The formula-editing helper used by the dice buttons.
"""

from django.urls import path

from .views import (RollView, DistributionView, DistributionJobView,
                    DistributionJobStatusView, FormulaAppendView)

urlpatterns = [
    path('rolls/', RollView.as_view(), name='roll'),
    path('stats/', DistributionView.as_view(), name='distribution'),
    path('stats/jobs/', DistributionJobView.as_view(), name='distribution-job'),
    path('stats/jobs/<str:task_id>/', DistributionJobStatusView.as_view(),
         name='distribution-job-status'),
    path('formula/append/', FormulaAppendView.as_view(), name='formula-append'),
]
