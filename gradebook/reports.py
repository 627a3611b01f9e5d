"""
Term report generation.

A report is upserted per student and term. Regeneration rewrites the
computed fields and subject results, clears the class position and never
touches staff remarks. Ranking is a separate, explicit step
(see ranking.rank_class).
"""
import logging
from decimal import Decimal

from django.db import DatabaseError

from . import config
from .aggregation import aggregate_subject, group_by_subject, quantize, HUNDRED
from .exceptions import (
    GradebookError, GradingConfigurationError, InvalidScore,
    NoGradedSubjects, RecordNotFound, UnscoredGrade,
)
from .outcomes import BatchOutcome
from .store import DjangoResultStore

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


class ReportOutcome:
    """A persisted report plus the per-subject issues found while building it."""

    def __init__(self, report, subject_results, issues):
        self.report = report
        self.subject_results = subject_results
        self.issues = issues

    @property
    def has_graded_subjects(self):
        return bool(self.subject_results)

    def to_dict(self):
        return {
            'report': self.report.to_dict(),
            'issues': [issue.to_dict() for issue in self.issues],
        }


def _check_same_school(term, school_id, kind, pk):
    if term.academic_year.school_id != school_id:
        raise RecordNotFound(kind, pk)


def generate_student_report(student_id, term_id, store=None, invalidate_class=True):
    """
    Build and persist a student's term report.

    Subjects with an invalid score are left off the report and reported
    as InvalidScore issues. A student with no graded subject still gets a
    zeroed report, flagged with a NoGradedSubjects issue.

    Args:
        student_id: Student primary key
        term_id: Term primary key
        store: ResultStore (defaults to the ORM store)
        invalidate_class: Clear every rank in the student's class for the
            term; class-wide generation does this once at the end instead

    Returns:
        ReportOutcome

    Raises:
        RecordNotFound: Unknown student or term, or a term of another school
        GradingConfigurationError: The school has no grade bands
    """
    store = store or DjangoResultStore()

    student = store.get_student(student_id)
    term = store.get_term(term_id)
    _check_same_school(term, student.school_id, 'Term', term_id)

    bands = store.get_grade_bands(student.school_id)
    default_label = config.UNSCORED_GRADE_LABEL

    subject_results = []
    issues = []
    grouped = group_by_subject(store.get_assessment_results(student.pk, term.pk))
    for subject_id, results in grouped.items():
        try:
            result = aggregate_subject(results, bands, default_label)
        except InvalidScore as e:
            logger.warning(f"Excluding subject {subject_id} for student {student.pk}: {e}")
            issues.append(e)
            continue

        if result is None:
            continue
        if result.unscored:
            issues.append(UnscoredGrade(result.total_score, subject_id=subject_id))
        subject_results.append(result)

    if subject_results:
        total = quantize(sum(r.total_score for r in subject_results))
        average = quantize(total / len(subject_results))
    else:
        total = average = ZERO
        issues.append(NoGradedSubjects(student.pk, term.pk))

    fields = {
        'class_assigned_id': student.current_class_id,
        'total_marks': total,
        'average': average,
        'subjects_taken': len(subject_results),
        'days_present': None,
        'total_school_days': None,
        'attendance_percentage': None,
    }

    attendance = store.get_attendance_summary(student.pk, term.pk)
    if attendance:
        fields['days_present'] = attendance['present']
        fields['total_school_days'] = attendance['total_days']
        fields['attendance_percentage'] = quantize(
            Decimal(attendance['present']) / Decimal(attendance['total_days']) * HUNDRED
        )

    with store.unit_of_work():
        report = store.persist_term_report(student.pk, term.pk, fields, subject_results)
        if invalidate_class and student.current_class_id:
            store.invalidate_class_ranks(student.current_class_id, term.pk)

    logger.debug(
        f"Generated term report for {student}: avg={average}% "
        f"over {len(subject_results)} subject(s), {len(issues)} issue(s)"
    )
    return ReportOutcome(report, subject_results, issues)


def generate_class_reports(class_id, term_id, store=None):
    """
    Generate reports for every active student in a class.

    Each student is an independent unit of work. Configuration errors
    abort the batch; anything else is recorded against the student.
    Every rank in the class is cleared afterwards, so rank_class must be
    run once generation has finished.

    Returns:
        BatchOutcome keyed by student id
    """
    store = store or DjangoResultStore()

    class_obj = store.get_class(class_id)
    term = store.get_term(term_id)
    _check_same_school(term, class_obj.school_id, 'Term', term_id)

    # Fail fast before touching any student
    store.get_grade_bands(class_obj.school_id)

    batch = BatchOutcome('generate_class_reports')
    for student_id in store.get_class_roster(class_obj.pk):
        try:
            outcome = generate_student_report(
                student_id, term.pk, store=store, invalidate_class=False
            )
        except GradingConfigurationError:
            raise
        except (GradebookError, DatabaseError) as e:
            logger.warning(f"Report generation failed for student {student_id}: {e}")
            batch.add_failure(student_id, e)
            continue

        report = outcome.report
        batch.add_success(
            student_id,
            message=f"Average {report.average}% over {report.subjects_taken} subject(s)",
            data={
                'report_id': str(report.pk),
                'average_score': float(report.average),
                'subjects_taken': report.subjects_taken,
            },
            issues=outcome.issues,
        )

    store.invalidate_class_ranks(class_obj.pk, term.pk)

    logger.info(f"Generated reports for {class_obj} ({term}): {batch.summary}")
    return batch


def update_report_remarks(student_id, term_id, class_teacher_remark=None,
                          principal_remark=None, store=None):
    """
    Update the staff-owned remarks of an existing report.

    Only the remarks passed in are written; computed fields and rank are
    left as they are.
    """
    store = store or DjangoResultStore()

    remarks = {}
    if class_teacher_remark is not None:
        remarks['class_teacher_remark'] = class_teacher_remark
    if principal_remark is not None:
        remarks['head_teacher_remark'] = principal_remark

    report = store.update_report_remarks(student_id, term_id, remarks)
    logger.info(f"Updated remarks ({', '.join(remarks) or 'none'}) on report {report.pk}")
    return report


def get_student_report(student_id, term_id, store=None):
    """Return a student's report for a term, or raise RecordNotFound."""
    store = store or DjangoResultStore()

    report = store.get_term_report(student_id, term_id)
    if report is None:
        raise RecordNotFound('TermReport', f'{student_id}/{term_id}')
    return report


def get_class_reports(class_id, term_id, store=None):
    """
    Return the reports of a class's current students for a term.

    Ranked reports come first, in position order; unranked reports follow
    in roster order.
    """
    store = store or DjangoResultStore()

    class_obj = store.get_class(class_id)
    term = store.get_term(term_id)
    _check_same_school(term, class_obj.school_id, 'Term', term_id)

    reports = store.get_term_reports(store.get_class_roster(class_obj.pk), term.pk)
    ranked = sorted((r for r in reports if r.position is not None), key=lambda r: r.position)
    unranked = [r for r in reports if r.position is None]
    return ranked + unranked
