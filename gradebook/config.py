"""
Configuration settings for the gradebook app.

These values can be overridden in Django settings by prefixing with GRADEBOOK_.
For example, to change the label used when no grade band matches:
    GRADEBOOK_UNSCORED_GRADE_LABEL = '-'

All configuration values are lazily loaded to avoid Django setup issues.
Tenant configuration (grade bands, pass thresholds) is data, not settings,
and is always read from the database.
"""
from decimal import Decimal


def _get_setting(name, default):
    """Get a gradebook setting from Django settings or use default."""
    from django.conf import settings
    return getattr(settings, f'GRADEBOOK_{name}', default)


_DEFAULTS = {
    # Used when a school has no active grading system
    'DEFAULT_PASS_MARK': Decimal('50.00'),

    # Grade label substituted when no band matches a score
    'UNSCORED_GRADE_LABEL': 'N/A',

    # Decimal places averages are rounded to before ranking
    'RANK_PRECISION': 2,

    # Bulk operation settings
    'BULK_UPDATE_BATCH_SIZE': 500,

    # Promotion reasons recorded when the caller gives none
    'DEFAULT_PROMOTION_REASON': 'End of Year Promotion',
    'DEFAULT_RETENTION_REASON': 'Retained in current class',

    # Celery task settings
    'TASK_MAX_RETRIES': 3,
    'TASK_RETRY_DELAY': 60,  # seconds
}


class _ConfigProxy:
    """
    Lazy configuration proxy that loads settings only when accessed.
    This avoids Django setup issues during module import.
    """

    def __getattr__(self, name):
        if name in _DEFAULTS:
            return _get_setting(name, _DEFAULTS[name])
        raise AttributeError(f"Unknown config setting: {name}")


# Module-level proxy object for attribute access
_config = _ConfigProxy()


def __getattr__(name):
    """Enable module-level attribute access via the config proxy."""
    return getattr(_config, name)
