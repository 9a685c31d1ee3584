"""
Application configuration for the Odds Keeper project.

Registers the project with Django and checks the DICE_ENGINE limits from
settings once the app registry is ready.
"""

from django.apps import AppConfig
from django.core.exceptions import ImproperlyConfigured

REQUIRED_ENGINE_SETTINGS = (
    'DEFAULT_ITERATIONS',
    'MAX_ITERATIONS',
    'MAX_FORMULA_LENGTH',
    'MAX_ENUMERATION_OUTCOMES',
    'MAX_DICE_PER_FORMULA',
    'MAX_DIE_SIDES',
)


class OddsKeeperConfig(AppConfig):
    name = 'odds_keeper'
    verbose_name = "Odds Keeper Core"
    default_auto_field = 'django.db.models.BigAutoField'

    def ready(self):
        from django.conf import settings

        engine = getattr(settings, 'DICE_ENGINE', {})
        missing = [key for key in REQUIRED_ENGINE_SETTINGS if key not in engine]
        if missing:
            raise ImproperlyConfigured(f"DICE_ENGINE is missing: {', '.join(missing)}")

        for key in REQUIRED_ENGINE_SETTINGS:
            if not isinstance(engine[key], int) or engine[key] < 1:
                raise ImproperlyConfigured(f"DICE_ENGINE['{key}'] must be a positive integer.")

        if engine['DEFAULT_ITERATIONS'] > engine['MAX_ITERATIONS']:
            raise ImproperlyConfigured(
                "DICE_ENGINE['DEFAULT_ITERATIONS'] cannot exceed DICE_ENGINE['MAX_ITERATIONS'].")
