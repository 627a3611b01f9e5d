"""
Result store: the persistence collaborator behind report generation,
ranking and promotion.

ResultStore defines what the engine needs from storage; DjangoResultStore
implements it over the ORM. Configuration (grade bands, pass threshold)
is read fresh on every call and never cached.
"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, Iterable, List, Optional
import logging

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from . import config
from .aggregation import AssessmentResult
from .exceptions import GradingConfigurationError, RecordNotFound
from .grading import find_band_issues

logger = logging.getLogger(__name__)


class ResultStore(ABC):
    """
    Abstract persistence interface used by the gradebook engine.

    Lookups raise RecordNotFound for missing rows.
    """

    # ---- reference data ----

    @abstractmethod
    def get_student(self, student_id):
        """Return a student."""

    @abstractmethod
    def get_students(self, student_ids: Iterable) -> List:
        """Return students in the order of ``student_ids``, skipping unknown ids."""

    @abstractmethod
    def get_class(self, class_id):
        """Return a class."""

    @abstractmethod
    def get_term(self, term_id):
        """Return a term with its academic year."""

    @abstractmethod
    def get_class_roster(self, class_id) -> List:
        """Return ids of the active students currently in a class."""

    # ---- results and configuration ----

    @abstractmethod
    def get_assessment_results(self, student_id, term_id) -> List[AssessmentResult]:
        """Return every graded assessment result of a student in a term."""

    @abstractmethod
    def get_grade_bands(self, school_id) -> List:
        """Return the school's grade bands; GradingConfigurationError if none."""

    @abstractmethod
    def get_pass_threshold(self, school_id) -> Decimal:
        """Return the minimum average required for promotion."""

    @abstractmethod
    def get_attendance_summary(self, student_id, term_id) -> Optional[Dict]:
        """Return {'present', 'total_days'}, or None when no register was taken."""

    # ---- term reports ----

    @abstractmethod
    def get_term_report(self, student_id, term_id):
        """Return a student's report for a term, or None."""

    @abstractmethod
    def get_term_reports(self, student_ids: Iterable, term_id) -> List:
        """Return the existing reports of the given students for a term."""

    @abstractmethod
    def persist_term_report(self, student_id, term_id, fields: Dict, results: List):
        """
        Upsert a report keyed by student and term.

        Writes computed fields and subject results only; remark fields are
        left untouched. The rank is cleared.
        """

    @abstractmethod
    def invalidate_class_ranks(self, class_id, term_id) -> int:
        """Clear ranks on every report of a class for a term."""

    @abstractmethod
    def save_rank(self, report, position, out_of):
        """Persist a rank onto a report."""

    @abstractmethod
    def clear_rank(self, report):
        """Remove any rank from a report."""

    @abstractmethod
    def update_report_remarks(self, student_id, term_id, remarks: Dict):
        """Write staff-owned remark fields on an existing report."""

    # ---- class movements ----

    @abstractmethod
    def has_class_movement(self, student_id, term_id) -> bool:
        """True if a movement was already recorded for the student and term."""

    @abstractmethod
    def record_class_movement(self, **movement):
        """Append a class movement record."""

    @abstractmethod
    def update_student_class(self, student_id, class_id):
        """Assign a student to a class."""

    def unit_of_work(self):
        """Context manager wrapping one student's writes."""
        return transaction.atomic()


class DjangoResultStore(ResultStore):
    """ResultStore backed by the Django ORM."""

    def get_student(self, student_id):
        from students.models import Student

        try:
            return Student.objects.select_related('current_class').get(pk=student_id)
        except (Student.DoesNotExist, ValueError, TypeError):
            raise RecordNotFound('Student', student_id)

    def get_students(self, student_ids):
        from students.models import Student

        student_ids = list(student_ids)
        students = Student.objects.in_bulk(student_ids)
        return [students[pk] for pk in student_ids if pk in students]

    def get_class(self, class_id):
        from academics.models import Class

        try:
            return Class.objects.get(pk=class_id)
        except (Class.DoesNotExist, ValueError, TypeError):
            raise RecordNotFound('Class', class_id)

    def get_term(self, term_id):
        from core.models import Term

        try:
            return Term.objects.select_related('academic_year').get(pk=term_id)
        except (Term.DoesNotExist, ValueError, TypeError):
            raise RecordNotFound('Term', term_id)

    def get_class_roster(self, class_id):
        from students.models import Student

        return list(Student.objects.filter(
            current_class_id=class_id,
            status=Student.Status.ACTIVE
        ).order_by('last_name', 'first_name', 'pk').values_list('pk', flat=True))

    def get_assessment_results(self, student_id, term_id):
        from .models import Score

        scores = Score.objects.filter(
            student_id=student_id,
            assessment__term_id=term_id
        ).select_related('assessment').order_by('assessment__subject_id', 'assessment__name')

        return [
            AssessmentResult(
                student_id=score.student_id,
                subject_id=score.assessment.subject_id,
                assessment_id=score.assessment_id,
                term_id=score.assessment.term_id,
                score=score.points,
                max_marks=score.assessment.points_possible,
                weight=score.assessment.weight,
            )
            for score in scores
        ]

    def _get_active_grading_system(self, school_id):
        from .models import GradingSystem

        return GradingSystem.objects.filter(
            school_id=school_id,
            is_active=True
        ).order_by('-updated_at').first()

    def get_grade_bands(self, school_id):
        grading_system = self._get_active_grading_system(school_id)
        if grading_system is None:
            raise GradingConfigurationError(f'School {school_id} has no active grading system')

        bands = list(grading_system.scales.all())
        if not bands:
            raise GradingConfigurationError(f'Grading system "{grading_system.name}" has no grade bands')

        for issue in find_band_issues(bands):
            logger.warning(f'Grading system "{grading_system.name}": {issue}')
        return bands

    def get_pass_threshold(self, school_id):
        grading_system = self._get_active_grading_system(school_id)
        if grading_system is None:
            return Decimal(str(config.DEFAULT_PASS_MARK))
        return grading_system.min_average_for_promotion

    def get_attendance_summary(self, student_id, term_id):
        from academics.models import AttendanceSession, AttendanceRecord

        student = self.get_student(student_id)
        if not student.current_class_id:
            return None
        term = self.get_term(term_id)

        sessions = AttendanceSession.objects.filter(
            class_assigned_id=student.current_class_id,
            date__gte=term.start_date,
            date__lte=term.end_date
        )
        total_days = sessions.count()
        if total_days == 0:
            return None

        present = AttendanceRecord.objects.filter(
            session__in=sessions,
            student_id=student_id,
            status__in=AttendanceRecord.PRESENT_STATUSES
        ).count()
        return {'present': present, 'total_days': total_days}

    def get_term_report(self, student_id, term_id):
        from .models import TermReport

        return TermReport.objects.select_related('student').filter(
            student_id=student_id,
            term_id=term_id
        ).first()

    def get_term_reports(self, student_ids, term_id):
        from .models import TermReport

        student_ids = list(student_ids)
        reports = {
            report.student_id: report
            for report in TermReport.objects.select_related('student').filter(
                student_id__in=student_ids,
                term_id=term_id
            )
        }
        return [reports[pk] for pk in student_ids if pk in reports]

    def persist_term_report(self, student_id, term_id, fields, results):
        from .models import TermReport, SubjectTermGrade

        with transaction.atomic():
            report, created = TermReport.objects.select_for_update().get_or_create(
                student_id=student_id,
                term_id=term_id
            )
            for name, value in fields.items():
                setattr(report, name, value)
            report.position = None
            report.out_of = None
            report.generated_at = timezone.now()
            report.save(update_fields=TermReport.COMPUTED_FIELDS + ['updated_at'])

            report.subject_grades.all().delete()
            SubjectTermGrade.objects.bulk_create(
                [
                    SubjectTermGrade(
                        term_report=report,
                        subject_id=result.subject_id,
                        total_score=result.total_score,
                        grade=result.grade,
                        grade_remark=result.remarks or '',
                        grade_point=result.grade_point,
                    )
                    for result in results
                ],
                batch_size=config.BULK_UPDATE_BATCH_SIZE
            )

        logger.debug(f"{'Created' if created else 'Updated'} term report {report.pk}")
        return report

    def invalidate_class_ranks(self, class_id, term_id):
        from .models import TermReport

        return TermReport.objects.filter(
            Q(class_assigned_id=class_id) | Q(student__current_class_id=class_id),
            term_id=term_id
        ).exclude(position__isnull=True).update(position=None, out_of=None)

    def save_rank(self, report, position, out_of):
        report.position = position
        report.out_of = out_of
        report.save(update_fields=['position', 'out_of', 'updated_at'])

    def clear_rank(self, report):
        if report.position is None and report.out_of is None:
            return
        self.save_rank(report, None, None)

    def update_report_remarks(self, student_id, term_id, remarks):
        from .models import TermReport

        report = self.get_term_report(student_id, term_id)
        if report is None:
            raise RecordNotFound('TermReport', f'{student_id}/{term_id}')

        changed = []
        for name, value in remarks.items():
            if name not in TermReport.REMARK_FIELDS:
                raise ValueError(f'{name} is not a remark field')
            setattr(report, name, value)
            changed.append(name)

        if changed:
            report.save(update_fields=changed + ['updated_at'])
        return report

    def has_class_movement(self, student_id, term_id):
        from students.models import ClassMovement

        return ClassMovement.objects.filter(student_id=student_id, term_id=term_id).exists()

    def record_class_movement(self, **movement):
        from students.models import ClassMovement

        return ClassMovement.objects.create(**movement)

    def update_student_class(self, student_id, class_id):
        from students.models import Student

        updated = Student.objects.filter(pk=student_id).update(
            current_class_id=class_id,
            updated_at=timezone.now()
        )
        if not updated:
            raise RecordNotFound('Student', student_id)
