"""
Celery tasks for gradebook app.
Runs class-wide report generation off the request cycle.
"""
import logging

from celery import shared_task
from django.db import DatabaseError

from . import config
from .exceptions import GradingConfigurationError, RecordNotFound


logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=config.TASK_MAX_RETRIES,
    default_retry_delay=config.TASK_RETRY_DELAY,
)
def generate_and_rank_class_reports(self, class_id, term_id):
    """
    Generate every report in a class, then rank the class.

    Ranking runs only after generation has finished for the whole class.
    Database errors are retried; configuration errors and unknown
    records are not.

    Args:
        class_id: ID of the Class
        term_id: ID of the Term

    Returns:
        dict with the generation and ranking outcomes
    """
    from .reports import generate_class_reports
    from .ranking import rank_class

    try:
        generated = generate_class_reports(class_id, term_id)
        ranked = rank_class(class_id, term_id)
    except (GradingConfigurationError, RecordNotFound) as e:
        # Non-retryable
        logger.error(f"Class report run for class {class_id}, term {term_id} failed: {e}")
        return {'status': 'error', 'error': e.to_dict()}
    except DatabaseError as exc:
        logger.warning(
            f"Database error generating reports for class {class_id} "
            f"(attempt {self.request.retries + 1}): {exc}"
        )
        raise self.retry(exc=exc)

    logger.info(
        f"Class report run for class {class_id}, term {term_id}: "
        f"generated {generated.summary}, ranked {ranked.summary}"
    )
    return {
        'status': 'success',
        'generated': generated.to_dict(),
        'ranked': ranked.to_dict(),
    }
