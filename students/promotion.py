"""
Promotion recommendations and end-of-term class movements.

Recommendations are advisory and read-only. Processing decisions writes
one ClassMovement per student and moves the student to the chosen class,
each student in its own transaction.
"""
import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import DatabaseError

from gradebook import config
from gradebook.exceptions import (
    GradebookError, InvalidDecision, MovementConflict, RecordNotFound,
)
from gradebook.outcomes import BatchOutcome
from gradebook.store import DjangoResultStore
from .models import ClassMovement

logger = logging.getLogger(__name__)

PROMOTE = ClassMovement.Action.PROMOTE
RETAIN = ClassMovement.Action.RETAIN


def _format_percent(value):
    """50.00 -> '50', 47.50 -> '47.5'"""
    return format(Decimal(str(value)).normalize(), 'f')


class PromotionCandidate:
    """A recommendation for one student. Never persisted."""

    def __init__(self, student_id, student_name, average_score, recommended_action, reason):
        self.student_id = student_id
        self.student_name = student_name
        self.average_score = average_score
        self.recommended_action = recommended_action
        self.reason = reason

    def __repr__(self):
        return f'PromotionCandidate({self.student_id}, {self.recommended_action}: {self.reason})'

    def to_dict(self):
        return {
            'student_id': self.student_id,
            'student_name': self.student_name,
            'average_score': float(self.average_score) if self.average_score is not None else None,
            'recommended_action': str(self.recommended_action),
            'reason': self.reason,
        }


def recommend(report, threshold):
    """
    Recommend an action for one report against a pass threshold.

    Returns:
        tuple: (action, reason)
    """
    if report is None:
        return RETAIN, 'No term report generated'
    if not report.has_graded_subjects:
        return RETAIN, 'Insufficient grading data'

    average = Decimal(str(report.average))
    pass_mark = _format_percent(threshold)
    if average >= threshold:
        return PROMOTE, f'Average {average:.1f}% meets pass mark of {pass_mark}%'
    return RETAIN, f'Average {average:.1f}% below pass mark of {pass_mark}%'


def list_promotion_candidates(class_id, term_id, store=None):
    """
    Recommend PROMOTE or RETAIN for every active student in a class.

    The pass threshold is the school's configured promotion average.
    Students without graded subjects, or without a report, are always
    recommended RETAIN.

    Returns:
        list of PromotionCandidate in roster order
    """
    store = store or DjangoResultStore()

    class_obj = store.get_class(class_id)
    term = store.get_term(term_id)
    if term.academic_year.school_id != class_obj.school_id:
        raise RecordNotFound('Term', term_id)

    threshold = Decimal(str(store.get_pass_threshold(class_obj.school_id)))
    roster = store.get_class_roster(class_obj.pk)
    reports = {r.student_id: r for r in store.get_term_reports(roster, term.pk)}

    candidates = []
    for student in store.get_students(roster):
        report = reports.get(student.pk)
        action, reason = recommend(report, threshold)
        average = report.average if report is not None and report.has_graded_subjects else None
        candidates.append(PromotionCandidate(
            student_id=student.pk,
            student_name=student.full_name,
            average_score=average,
            recommended_action=action,
            reason=reason,
        ))
    return candidates


def _apply_decision(decision, term, changed_by, force, store):
    student_id = decision.get('student_id')
    if student_id in (None, ''):
        raise InvalidDecision('Decision has no student_id')

    action = str(decision.get('action') or '').upper()
    if action not in ClassMovement.Action.values:
        raise InvalidDecision(f'Unknown action "{decision.get("action")}" for student {student_id}')

    school_id = term.academic_year.school_id
    student = store.get_student(student_id)
    if student.school_id != school_id:
        raise RecordNotFound('Student', student_id)

    target_class_id = decision.get('target_class_id')
    if target_class_id in (None, '') and action == RETAIN:
        target_class_id = student.current_class_id
    if target_class_id in (None, ''):
        raise InvalidDecision(f'No target class for student {student_id}')

    target_class = store.get_class(target_class_id)
    if target_class.school_id != school_id:
        raise RecordNotFound('Class', target_class_id)

    if not force and store.has_class_movement(student.pk, term.pk):
        raise MovementConflict(student.pk, term.pk)

    reason = decision.get('reason') or (
        config.DEFAULT_PROMOTION_REASON if action == PROMOTE else config.DEFAULT_RETENTION_REASON
    )
    movement = store.record_class_movement(
        student=student,
        from_class_id=student.current_class_id,
        to_class=target_class,
        term=term,
        action=action,
        reason=reason,
        changed_by=changed_by,
    )
    store.update_student_class(student.pk, target_class.pk)
    return student, target_class, movement


def process_promotions(decisions, term_id, changed_by=None, force=False, store=None):
    """
    Commit promotion decisions.

    Each decision is a dict with ``student_id``, ``action`` (PROMOTE or
    RETAIN), ``target_class_id`` and an optional ``reason``. A RETAIN
    decision without a target keeps the student's current class.

    Each student is its own unit of work: a failing decision is recorded
    and the rest of the batch carries on. A student who already has a
    movement for the term is rejected with MovementConflict unless
    ``force`` is set.

    Returns:
        BatchOutcome keyed by student id

    Raises:
        RecordNotFound: Unknown term
    """
    store = store or DjangoResultStore()
    term = store.get_term(term_id)

    batch = BatchOutcome('process_promotions')
    for decision in decisions:
        key = decision.get('student_id')
        try:
            with store.unit_of_work():
                student, target_class, movement = _apply_decision(
                    decision, term, changed_by, force, store
                )
        except (GradebookError, DatabaseError, ValidationError) as e:
            logger.warning(f"Promotion decision for student {key} failed: {e}")
            batch.add_failure(key, e)
            continue

        batch.add_success(
            key,
            message=f'{student.full_name}: {movement.get_action_display()} to {target_class}',
            data={
                'movement_id': movement.pk,
                'action': movement.action,
                'from_class_id': movement.from_class_id,
                'to_class_id': target_class.pk,
            },
        )

    logger.info(f"Processed promotions for {term}: {batch.summary}")
    return batch
