"""
Class ranking.

Ranks are competition style: equal averages share a position and the
next distinct average skips the size of the tie group (90, 85, 85, 70
rank 1, 2, 2, 4). Averages are rounded to RANK_PRECISION places before
comparison. Every run re-ranks the whole class.
"""
import logging
from decimal import Decimal, ROUND_HALF_UP

from django.db import DatabaseError

from . import config
from .exceptions import NoGradedSubjects, RecordNotFound
from .outcomes import BatchOutcome
from .store import DjangoResultStore

logger = logging.getLogger(__name__)


def assign_ranks(entries, precision=None):
    """
    Rank (key, average) pairs.

    Args:
        entries: Iterable of (key, average) tuples; keys are opaque
        precision: Decimal places compared (defaults to RANK_PRECISION)

    Returns:
        list of (key, rounded_average, position), best first. Entries
        with equal averages keep their input order.
    """
    if precision is None:
        precision = config.RANK_PRECISION
    step = Decimal(1).scaleb(-precision)

    rounded = [
        (key, Decimal(str(average)).quantize(step, rounding=ROUND_HALF_UP))
        for key, average in entries
    ]
    # sorted() is stable, so ties stay in input order
    rounded = sorted(rounded, key=lambda entry: entry[1], reverse=True)

    ranked = []
    position = 0
    previous = None
    for index, (key, average) in enumerate(rounded, start=1):
        if average != previous:
            position = index
            previous = average
        ranked.append((key, average, position))
    return ranked


def rank_class(class_id, term_id, store=None):
    """
    Recompute and persist positions for a class's reports in a term.

    Only reports of students currently in the class take part. Reports
    without a graded subject are left unranked. A report that fails to
    save is recorded as a failure; the rest of the class is still ranked.

    Returns:
        BatchOutcome keyed by student id
    """
    store = store or DjangoResultStore()

    class_obj = store.get_class(class_id)
    term = store.get_term(term_id)
    if term.academic_year.school_id != class_obj.school_id:
        raise RecordNotFound('Term', term_id)

    reports = store.get_term_reports(store.get_class_roster(class_obj.pk), term.pk)
    graded = [report for report in reports if report.has_graded_subjects]
    ungraded = [report for report in reports if not report.has_graded_subjects]

    batch = BatchOutcome('rank_class')

    for report in ungraded:
        try:
            with store.unit_of_work():
                store.clear_rank(report)
        except DatabaseError as e:
            logger.warning(f"Could not clear rank on report {report.pk}: {e}")
            batch.add_failure(report.student_id, e)
            continue
        batch.add_success(
            report.student_id,
            message='Not ranked',
            issues=[NoGradedSubjects(report.student_id, term.pk)],
        )

    out_of = len(graded)
    for report, average, position in assign_ranks((r, r.average) for r in graded):
        try:
            with store.unit_of_work():
                store.save_rank(report, position, out_of)
        except DatabaseError as e:
            logger.warning(f"Could not save rank for student {report.student_id}: {e}")
            batch.add_failure(report.student_id, e)
            continue
        batch.add_success(
            report.student_id,
            message=f'Position {position} of {out_of}',
            data={'position': position, 'out_of': out_of, 'average_score': float(average)},
        )

    logger.info(f"Ranked {class_obj} ({term}): {batch.summary}")
    return batch
