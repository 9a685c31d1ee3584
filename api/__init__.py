"""
The API package for the Odds Keeper application.

This package contains the dice formula engine (grammar, expected-value math,
roller and statistics) together with the Django REST Framework components
and Celery tasks that expose it.
"""
