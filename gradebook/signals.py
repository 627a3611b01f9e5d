"""
Signals that keep term reports in step with score edits.

When a Score is saved or deleted, the student's existing report for that
term is regenerated (which also clears the class ranks). Reports are not
created here; that stays an explicit action.
"""
import logging
import threading

from django.db import DatabaseError
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from .exceptions import GradebookError
from .models import Assessment, Score

logger = logging.getLogger(__name__)

# Thread-local storage for signal disabling (thread-safe)
_thread_locals = threading.local()


def _is_signals_disabled():
    """Check if signals are disabled for the current thread."""
    return getattr(_thread_locals, 'signals_disabled', False)


def disable_signals():
    """Disable report refresh signals for the current thread (for bulk score entry)."""
    _thread_locals.signals_disabled = True


def enable_signals():
    """Re-enable report refresh signals for the current thread."""
    _thread_locals.signals_disabled = False


class signals_disabled:
    """Context manager to temporarily disable signals (thread-safe)."""

    def __enter__(self):
        self._previous_state = _is_signals_disabled()
        disable_signals()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self._previous_state:
            enable_signals()
        return False


def refresh_term_report(student_id, term_id):
    """
    Regenerate a student's report for a term if one exists.

    Returns the report, or None when there is nothing to refresh or the
    refresh failed.
    """
    if _is_signals_disabled():
        return None

    from .reports import generate_student_report
    from .store import DjangoResultStore

    store = DjangoResultStore()
    if store.get_term_report(student_id, term_id) is None:
        return None

    try:
        outcome = generate_student_report(student_id, term_id, store=store)
    except (GradebookError, DatabaseError) as e:
        logger.error(f"Error refreshing term report for student {student_id}: {e}")
        return None

    logger.debug(f"Refreshed term report {outcome.report.pk} after score change")
    return outcome.report


def _term_id_for(score):
    return Assessment.objects.filter(
        pk=score.assessment_id
    ).values_list('term_id', flat=True).first()


@receiver(post_save, sender=Score)
def score_saved(sender, instance, created, **kwargs):
    """Refresh the student's report when a score is saved."""
    if _is_signals_disabled():
        return

    term_id = _term_id_for(instance)
    if term_id is not None:
        refresh_term_report(instance.student_id, term_id)


@receiver(post_delete, sender=Score)
def score_deleted(sender, instance, **kwargs):
    """Refresh the student's report when a score is deleted."""
    if _is_signals_disabled():
        return

    term_id = _term_id_for(instance)
    if term_id is not None:
        refresh_term_report(instance.student_id, term_id)
