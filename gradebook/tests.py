import json
from datetime import date
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase
from django.urls import reverse

from academics.models import AttendanceRecord, AttendanceSession, Class, Subject
from core.models import AcademicYear, Term
from schools.models import School
from students.models import Student

from .aggregation import AssessmentResult, aggregate_subject
from .exceptions import (
    GradingConfigurationError, InvalidScore, NoGradedSubjects,
    RankingDataStale, RecordNotFound, UnscoredGrade,
)
from .grading import find_band_issues, resolve_grade, resolve_grade_or_default
from .models import Assessment, GradeScale, GradingSystem, Score, TermReport
from .outcomes import BatchOutcome
from .ranking import assign_ranks, rank_class
from .reports import (
    generate_class_reports, generate_student_report, get_class_reports,
    update_report_remarks,
)
from .signals import signals_disabled
from .store import DjangoResultStore
from .tasks import generate_and_rank_class_reports


User = get_user_model()

SUBJECT_NAMES = ['Mathematics', 'English Language', 'Integrated Science', 'Social Studies', 'French']

# (label, min, max, grade point, interpretation, is_pass)
STANDARD_BANDS = [
    ('A+', '90', '100', '4.00', 'Excellent', True),
    ('A', '80', '89.99', '3.70', 'Very Good', True),
    ('B', '70', '79.99', '3.00', 'Good', True),
    ('C', '60', '69.99', '2.00', 'Credit', True),
    ('D', '50', '59.99', '1.00', 'Pass', True),
    ('F', '0', '49.99', '0.00', 'Fail', False),
]


def band(label, low, high, point=None, interpretation='', is_pass=True):
    """An unsaved grade band."""
    return GradeScale(
        grade_label=label,
        min_percentage=Decimal(low),
        max_percentage=Decimal(high),
        grade_point=Decimal(point) if point is not None else None,
        interpretation=interpretation,
        is_pass=is_pass,
    )


def result(score, max_marks, weight, subject_id=1, assessment_id=1):
    return AssessmentResult(
        student_id=1, subject_id=subject_id, assessment_id=assessment_id,
        term_id=1, score=score, max_marks=max_marks, weight=weight,
    )


class GradebookTestMixin:
    """One school with a current term, a JHS 1 class, five subjects and a grading system."""

    @classmethod
    def setUpTestData(cls):
        cls.school = School.objects.create(name='Demo School', code='demo')
        cls.year = AcademicYear.objects.create(
            school=cls.school, name='2024/2025',
            start_date=date(2024, 9, 2), end_date=date(2025, 7, 25), is_current=True
        )
        cls.term = Term.objects.create(
            academic_year=cls.year, name='Second Term', term_number=2,
            start_date=date(2025, 1, 6), end_date=date(2025, 4, 4), is_current=True
        )
        cls.grading_system = GradingSystem.objects.create(school=cls.school, name='Standard GPA')
        for order, (label, low, high, point, interpretation, is_pass) in enumerate(STANDARD_BANDS):
            GradeScale.objects.create(
                grading_system=cls.grading_system, grade_label=label,
                min_percentage=Decimal(low), max_percentage=Decimal(high),
                grade_point=Decimal(point), interpretation=interpretation,
                is_pass=is_pass, order=order
            )

        cls.class_teacher = User.objects.create_user('form.tutor', password='testpass123')
        cls.class_obj = Class.objects.create(
            school=cls.school, level_type=Class.LevelType.JHS, level_number=1,
            section='A', class_teacher=cls.class_teacher
        )
        cls.subjects = {
            name: Subject.objects.create(school=cls.school, name=name)
            for name in SUBJECT_NAMES
        }
        cls.exams = {
            name: Assessment.objects.create(
                subject=subject, term=cls.term, class_assigned=cls.class_obj,
                name='End of Term Exam', points_possible=100, weight=100
            )
            for name, subject in cls.subjects.items()
        }

    def make_student(self, first_name, last_name='Mensah', class_obj=None, **kwargs):
        return Student.objects.create(
            school=self.school,
            first_name=first_name,
            last_name=last_name,
            admission_number=f'{first_name}-{last_name}'.upper(),
            current_class=class_obj or self.class_obj,
            **kwargs
        )

    def score(self, student, subject_name, points):
        return Score.objects.create(
            student=student, assessment=self.exams[subject_name], points=points
        )

    def get_report(self, student):
        return TermReport.objects.get(student=student, term=self.term)


class GradeResolverTest(SimpleTestCase):
    """Tests for grade band lookup."""

    def setUp(self):
        self.bands = [
            band('A+', '90', '100', '4.00', 'Excellent'),
            band('A', '80', '89', '3.70', 'Very Good'),
            band('F', '0', '79.99', '0.00', 'Fail', is_pass=False),
        ]

    def test_band_bounds_are_inclusive(self):
        self.assertEqual(resolve_grade(89, self.bands)['grade'], 'A')
        self.assertEqual(resolve_grade(90, self.bands)['grade'], 'A+')
        self.assertEqual(resolve_grade(80, self.bands)['grade'], 'A')
        self.assertEqual(resolve_grade(100, self.bands)['grade'], 'A+')

    def test_resolved_fields(self):
        grade = resolve_grade(Decimal('85.5'), self.bands)
        self.assertEqual(grade['grade_point'], Decimal('3.70'))
        self.assertEqual(grade['remark'], 'Very Good')
        self.assertTrue(grade['is_passing'])
        self.assertFalse(grade['unscored'])

    def test_score_is_clamped(self):
        self.assertEqual(resolve_grade(130, self.bands)['grade'], 'A+')
        self.assertEqual(resolve_grade(-4, self.bands)['grade'], 'F')

    def test_overlap_prefers_highest_minimum(self):
        bands = [band('B', '60', '85'), band('A', '80', '100')]
        self.assertEqual(resolve_grade(82, bands)['grade'], 'A')
        self.assertEqual(resolve_grade(70, bands)['grade'], 'B')

    def test_gap_raises_unscored_grade(self):
        # 89.50 falls between A (max 89) and A+ (min 90)
        with self.assertRaises(UnscoredGrade):
            resolve_grade(Decimal('89.50'), self.bands)

    def test_default_label_for_unscored(self):
        grade = resolve_grade_or_default(Decimal('89.50'), self.bands, 'N/A')
        self.assertEqual(grade['grade'], 'N/A')
        self.assertIsNone(grade['grade_point'])
        self.assertTrue(grade['unscored'])

    def test_find_band_issues(self):
        contiguous = [band('P', '50', '100'), band('F', '0', '49.99')]
        self.assertEqual(find_band_issues(contiguous), [])

        issues = find_band_issues([band('A', '80', '89'), band('B', '60', '81')])
        self.assertTrue(any('overlap' in issue for issue in issues))
        self.assertTrue(any('below 60' in issue for issue in issues))
        self.assertTrue(any('above 89' in issue for issue in issues))

        self.assertEqual(find_band_issues([]), ['No grade bands defined'])


class SubjectAggregationTest(SimpleTestCase):
    """Tests for weighted subject totals."""

    def setUp(self):
        self.bands = [band(*row) for row in STANDARD_BANDS]

    def test_weighted_total(self):
        subject = aggregate_subject(
            [result(80, 100, 60, assessment_id=1), result(50, 100, 40, assessment_id=2)],
            self.bands, 'N/A'
        )
        self.assertEqual(subject.total_score, Decimal('68.00'))
        self.assertEqual(subject.grade, 'C')
        self.assertEqual(subject.remarks, 'Credit')

    def test_assessments_normalised_to_percentages(self):
        subject = aggregate_subject(
            [result(40, 50, 50, assessment_id=1), result(15, 20, 50, assessment_id=2)],
            self.bands, 'N/A'
        )
        self.assertEqual(subject.total_score, Decimal('77.50'))

    def test_weights_are_summed_as_given(self):
        subject = aggregate_subject([result(80, 100, 30)], self.bands, 'N/A')
        self.assertEqual(subject.total_score, Decimal('24.00'))
        self.assertEqual(subject.grade, 'F')

    def test_zero_weight_excludes_subject(self):
        self.assertIsNone(aggregate_subject([result(80, 100, 0)], self.bands, 'N/A'))
        self.assertIsNone(aggregate_subject([], self.bands, 'N/A'))

    def test_score_above_max_marks_is_rejected(self):
        with self.assertRaises(InvalidScore) as ctx:
            aggregate_subject([result(120, 100, 100, subject_id=7)], self.bands, 'N/A')
        self.assertEqual(ctx.exception.subject_id, 7)

    def test_negative_score_is_rejected(self):
        with self.assertRaises(InvalidScore):
            aggregate_subject([result(-1, 100, 100)], self.bands, 'N/A')

    def test_mixed_subjects_rejected(self):
        with self.assertRaises(ValueError):
            aggregate_subject(
                [result(80, 100, 50, subject_id=1), result(80, 100, 50, subject_id=2)],
                self.bands, 'N/A'
            )

    def test_unscored_total_uses_default_label(self):
        bands = [band('A', '50', '100')]
        subject = aggregate_subject([result(30, 100, 100)], bands, '-')
        self.assertEqual(subject.grade, '-')
        self.assertTrue(subject.unscored)


class AssignRanksTest(SimpleTestCase):
    """Tests for competition ranking."""

    def test_ties_share_rank_and_skip(self):
        ranked = assign_ranks([('a', 90), ('b', 85), ('c', 85), ('d', 70)])
        self.assertEqual([position for _, _, position in ranked], [1, 2, 2, 4])

    def test_sorted_best_first(self):
        ranked = assign_ranks([('low', 40), ('high', 95), ('mid', 60)])
        self.assertEqual([key for key, _, _ in ranked], ['high', 'mid', 'low'])

    def test_compares_at_fixed_precision(self):
        ranked = assign_ranks([('a', Decimal('85.004')), ('b', Decimal('85.001')), ('c', 84.996)], precision=2)
        self.assertEqual([position for _, _, position in ranked], [1, 1, 1])

    def test_ties_keep_input_order(self):
        ranked = assign_ranks([('first', 70), ('second', 70)])
        self.assertEqual([key for key, _, _ in ranked], ['first', 'second'])

    def test_empty(self):
        self.assertEqual(assign_ranks([]), [])


class BatchOutcomeTest(SimpleTestCase):

    def test_summary(self):
        batch = BatchOutcome('test')
        batch.add_success(1)
        batch.add_success(2, issues=[NoGradedSubjects(2, 1)])
        batch.add_failure(3, RecordNotFound('Class', 99))

        self.assertEqual(batch.summary, '2 of 3 succeeded')
        data = batch.to_dict()
        self.assertEqual(data['count'], 2)
        self.assertEqual(data['results'][1]['issues'][0]['code'], 'no_graded_subjects')
        self.assertEqual(data['results'][2]['error']['code'], 'not_found')


class StudentReportTest(GradebookTestMixin, TestCase):
    """Tests for generate_student_report."""

    def test_weighted_subject_total(self):
        student = self.make_student('Ama')
        maths = self.subjects['Mathematics']
        class_test = Assessment.objects.create(
            subject=maths, term=self.term, name='Class Test', points_possible=100, weight=60
        )
        project = Assessment.objects.create(
            subject=maths, term=self.term, name='Project', points_possible=100, weight=40
        )
        Score.objects.create(student=student, assessment=class_test, points=80)
        Score.objects.create(student=student, assessment=project, points=50)

        outcome = generate_student_report(student.pk, self.term.pk)

        grade = outcome.report.subject_grades.get(subject=maths)
        self.assertEqual(grade.total_score, Decimal('68.00'))
        self.assertEqual(grade.grade, 'C')
        self.assertEqual(grade.grade_point, Decimal('2.00'))
        self.assertEqual(outcome.issues, [])

    def test_partial_grading_does_not_penalise(self):
        student = self.make_student('Kofi')
        self.score(student, 'Mathematics', 90)
        self.score(student, 'English Language', 70)

        generate_student_report(student.pk, self.term.pk)

        report = self.get_report(student)
        self.assertEqual(report.total_marks, Decimal('160.00'))
        self.assertEqual(report.average, Decimal('80.00'))
        self.assertEqual(report.subjects_taken, 2)
        self.assertEqual(report.subject_grades.count(), 2)
        self.assertEqual(report.class_assigned, self.class_obj)

    def test_regeneration_preserves_remarks_and_clears_rank(self):
        student = self.make_student('Esi')
        score = self.score(student, 'Mathematics', 60)
        generate_student_report(student.pk, self.term.pk)
        update_report_remarks(student.pk, self.term.pk, class_teacher_remark='Good effort')
        rank_class(self.class_obj.pk, self.term.pk)
        self.assertEqual(self.get_report(student).position, 1)

        score.points = 75
        with signals_disabled():
            score.save()
        generate_student_report(student.pk, self.term.pk)

        report = self.get_report(student)
        self.assertEqual(report.class_teacher_remark, 'Good effort')
        self.assertEqual(report.total_marks, Decimal('75.00'))
        self.assertIsNone(report.position)
        self.assertIsNone(report.out_of)
        self.assertEqual(TermReport.objects.filter(student=student, term=self.term).count(), 1)
        self.assertEqual(report.subject_grades.count(), 1)

    def test_invalid_score_excludes_subject(self):
        student = self.make_student('Yaw')
        self.score(student, 'Mathematics', 120)
        self.score(student, 'English Language', 70)

        outcome = generate_student_report(student.pk, self.term.pk)

        self.assertEqual(outcome.report.total_marks, Decimal('70.00'))
        self.assertEqual(outcome.report.average, Decimal('70.00'))
        self.assertEqual(outcome.report.subjects_taken, 1)
        invalid = [issue for issue in outcome.issues if isinstance(issue, InvalidScore)]
        self.assertEqual(len(invalid), 1)
        self.assertEqual(invalid[0].subject_id, self.subjects['Mathematics'].pk)
        self.assertFalse(outcome.report.subject_grades.filter(subject=self.subjects['Mathematics']).exists())

    def test_no_graded_subjects_still_creates_report(self):
        student = self.make_student('Abena')

        outcome = generate_student_report(student.pk, self.term.pk)

        report = self.get_report(student)
        self.assertEqual(report.total_marks, Decimal('0'))
        self.assertEqual(report.average, Decimal('0'))
        self.assertEqual(report.subjects_taken, 0)
        self.assertTrue(any(isinstance(issue, NoGradedSubjects) for issue in outcome.issues))
        self.assertIsNone(report.get_rank())

    def test_unscored_grade_uses_default_label(self):
        self.grading_system.scales.filter(grade_label='F').delete()
        student = self.make_student('Kwame')
        self.score(student, 'French', 30)

        outcome = generate_student_report(student.pk, self.term.pk)

        grade = outcome.report.subject_grades.get()
        self.assertEqual(grade.grade, 'N/A')
        self.assertIsNone(grade.grade_point)
        self.assertEqual(outcome.report.average, Decimal('30.00'))
        unscored = [issue for issue in outcome.issues if isinstance(issue, UnscoredGrade)]
        self.assertEqual(unscored[0].subject_id, self.subjects['French'].pk)

    def test_missing_grading_configuration_aborts(self):
        GradingSystem.objects.filter(school=self.school).update(is_active=False)
        student = self.make_student('Akua')
        self.score(student, 'Mathematics', 80)

        with self.assertRaises(GradingConfigurationError):
            generate_student_report(student.pk, self.term.pk)
        self.assertFalse(TermReport.objects.filter(student=student).exists())

    def test_grading_system_without_bands_aborts(self):
        self.grading_system.scales.all().delete()
        student = self.make_student('Afua')

        with self.assertRaises(GradingConfigurationError):
            generate_student_report(student.pk, self.term.pk)

    def test_attendance_summary(self):
        student = self.make_student('Kojo')
        statuses = {
            date(2025, 1, 7): AttendanceRecord.Status.PRESENT,
            date(2025, 1, 8): AttendanceRecord.Status.LATE,
            date(2025, 1, 9): AttendanceRecord.Status.ABSENT,
            date(2025, 1, 10): None,
        }
        for day, status in statuses.items():
            session = AttendanceSession.objects.create(class_assigned=self.class_obj, date=day)
            if status:
                AttendanceRecord.objects.create(session=session, student=student, status=status)
        # Outside the term
        outside = AttendanceSession.objects.create(class_assigned=self.class_obj, date=date(2024, 12, 10))
        AttendanceRecord.objects.create(session=outside, student=student)

        generate_student_report(student.pk, self.term.pk)

        report = self.get_report(student)
        self.assertEqual(report.days_present, 2)
        self.assertEqual(report.total_school_days, 4)
        self.assertEqual(report.attendance_percentage, Decimal('50.00'))

    def test_attendance_left_empty_without_register(self):
        student = self.make_student('Adwoa')
        self.score(student, 'Mathematics', 55)

        generate_student_report(student.pk, self.term.pk)

        report = self.get_report(student)
        self.assertIsNone(report.days_present)
        self.assertIsNone(report.total_school_days)
        self.assertIsNone(report.attendance_percentage)

    def test_term_of_another_school_is_rejected(self):
        other = School.objects.create(name='Other School', code='other')
        other_year = AcademicYear.objects.create(
            school=other, name='2024/2025', start_date=date(2024, 9, 2), end_date=date(2025, 7, 25)
        )
        other_term = Term.objects.create(
            academic_year=other_year, name='Second Term', term_number=2,
            start_date=date(2025, 1, 6), end_date=date(2025, 4, 4)
        )
        student = self.make_student('Efua')

        with self.assertRaises(RecordNotFound):
            generate_student_report(student.pk, other_term.pk)

    def test_unknown_student(self):
        with self.assertRaises(RecordNotFound):
            generate_student_report(999999, self.term.pk)

    def test_regenerating_one_report_clears_class_ranks(self):
        first = self.make_student('Nana')
        second = self.make_student('Ekow')
        self.score(first, 'Mathematics', 80)
        self.score(second, 'Mathematics', 70)
        generate_class_reports(self.class_obj.pk, self.term.pk)
        rank_class(self.class_obj.pk, self.term.pk)
        self.assertEqual(self.get_report(second).position, 2)

        generate_student_report(first.pk, self.term.pk)

        self.assertIsNone(self.get_report(second).position)

    def test_get_rank_is_stale_until_ranked(self):
        student = self.make_student('Ato')
        self.score(student, 'Mathematics', 80)
        generate_student_report(student.pk, self.term.pk)

        with self.assertRaises(RankingDataStale):
            self.get_report(student).get_rank()

        rank_class(self.class_obj.pk, self.term.pk)
        self.assertEqual(self.get_report(student).get_rank(), 1)

    def test_to_dict_merges_remarks(self):
        student = self.make_student('Serwaa')
        self.score(student, 'Mathematics', 91)
        generate_student_report(student.pk, self.term.pk)
        update_report_remarks(student.pk, self.term.pk, principal_remark='Keep it up')

        data = self.get_report(student).to_dict()

        self.assertEqual(data['principal_remark'], 'Keep it up')
        self.assertEqual(data['class_teacher_remark'], '')
        self.assertEqual(data['average_score'], 91.0)
        self.assertEqual(data['results'][0]['grade'], 'A+')
        self.assertEqual(data['results'][0]['subject_name'], 'Mathematics')


class RemarksTest(GradebookTestMixin, TestCase):
    """Tests for update_report_remarks."""

    def test_updates_only_given_remarks(self):
        student = self.make_student('Ama')
        generate_student_report(student.pk, self.term.pk)
        update_report_remarks(student.pk, self.term.pk, class_teacher_remark='Hardworking')
        update_report_remarks(student.pk, self.term.pk, principal_remark='Promoted on trial')

        report = self.get_report(student)
        self.assertEqual(report.class_teacher_remark, 'Hardworking')
        self.assertEqual(report.head_teacher_remark, 'Promoted on trial')

    def test_remark_update_leaves_rank(self):
        student = self.make_student('Kofi')
        self.score(student, 'Mathematics', 66)
        generate_student_report(student.pk, self.term.pk)
        rank_class(self.class_obj.pk, self.term.pk)

        update_report_remarks(student.pk, self.term.pk, class_teacher_remark='Steady')

        self.assertEqual(self.get_report(student).position, 1)

    def test_missing_report(self):
        student = self.make_student('Yaa')
        with self.assertRaises(RecordNotFound):
            update_report_remarks(student.pk, self.term.pk, class_teacher_remark='x')


class ScoreSignalTest(GradebookTestMixin, TestCase):
    """Score edits refresh an existing report."""

    def test_score_edit_refreshes_report(self):
        student = self.make_student('Ama')
        score = self.score(student, 'Mathematics', 60)
        generate_student_report(student.pk, self.term.pk)
        rank_class(self.class_obj.pk, self.term.pk)

        score.points = 80
        score.save()

        report = self.get_report(student)
        self.assertEqual(report.total_marks, Decimal('80.00'))
        self.assertIsNone(report.position)

    def test_score_delete_refreshes_report(self):
        student = self.make_student('Kofi')
        self.score(student, 'Mathematics', 60)
        english = self.score(student, 'English Language', 70)
        generate_student_report(student.pk, self.term.pk)

        english.delete()

        report = self.get_report(student)
        self.assertEqual(report.subjects_taken, 1)
        self.assertEqual(report.total_marks, Decimal('60.00'))

    def test_score_without_report_creates_nothing(self):
        student = self.make_student('Esi')
        self.score(student, 'Mathematics', 60)
        self.assertFalse(TermReport.objects.filter(student=student).exists())

    def test_signals_disabled(self):
        student = self.make_student('Yaw')
        score = self.score(student, 'Mathematics', 60)
        generate_student_report(student.pk, self.term.pk)

        with signals_disabled():
            score.points = 90
            score.save()

        self.assertEqual(self.get_report(student).total_marks, Decimal('60.00'))


class FailingReportStore(DjangoResultStore):
    """Fails to persist reports for chosen students."""

    def __init__(self, fail_ids):
        self.fail_ids = set(fail_ids)

    def persist_term_report(self, student_id, term_id, fields, results):
        if student_id in self.fail_ids:
            raise DatabaseError('disk full')
        return super().persist_term_report(student_id, term_id, fields, results)


class FailingRankStore(DjangoResultStore):
    """Fails to save ranks for chosen students."""

    def __init__(self, fail_ids):
        self.fail_ids = set(fail_ids)

    def save_rank(self, report, position, out_of):
        if report.student_id in self.fail_ids:
            raise DatabaseError('deadlock detected')
        return super().save_rank(report, position, out_of)


class ClassReportsTest(GradebookTestMixin, TestCase):
    """Tests for generate_class_reports."""

    def test_generates_for_every_active_student(self):
        students = [self.make_student(name) for name in ('Ama', 'Kofi', 'Esi')]
        withdrawn = self.make_student('Yaw', status=Student.Status.WITHDRAWN)
        for student in students:
            self.score(student, 'Mathematics', 70)

        batch = generate_class_reports(self.class_obj.pk, self.term.pk)

        self.assertEqual(batch.total, 3)
        self.assertEqual(batch.summary, '3 of 3 succeeded')
        self.assertEqual(TermReport.objects.filter(term=self.term).count(), 3)
        self.assertFalse(TermReport.objects.filter(student=withdrawn).exists())

    def test_student_issues_do_not_fail_batch(self):
        bad = self.make_student('Kwame')
        empty = self.make_student('Akua')
        self.score(bad, 'Mathematics', 150)

        batch = generate_class_reports(self.class_obj.pk, self.term.pk)

        self.assertEqual(batch.succeeded, 2)
        self.assertEqual(batch.get(bad.pk).issues[0].code, 'invalid_score')
        self.assertEqual(batch.get(empty.pk).issues[0].code, 'no_graded_subjects')

    def test_one_failure_does_not_block_class(self):
        students = [self.make_student(name) for name in ('Ama', 'Kofi', 'Esi')]
        for student in students:
            self.score(student, 'Mathematics', 70)
        store = FailingReportStore([students[1].pk])

        batch = generate_class_reports(self.class_obj.pk, self.term.pk, store=store)

        self.assertEqual(batch.summary, '2 of 3 succeeded')
        failure = batch.failures[0]
        self.assertEqual(failure.key, students[1].pk)
        self.assertIsInstance(failure.error, DatabaseError)
        self.assertEqual(TermReport.objects.filter(term=self.term).count(), 2)
        self.assertFalse(TermReport.objects.filter(student=students[1]).exists())

    def test_configuration_error_aborts_batch(self):
        self.make_student('Ama')
        GradingSystem.objects.filter(school=self.school).update(is_active=False)

        with self.assertRaises(GradingConfigurationError):
            generate_class_reports(self.class_obj.pk, self.term.pk)
        self.assertFalse(TermReport.objects.exists())

    def test_unknown_class(self):
        with self.assertRaises(RecordNotFound):
            generate_class_reports(999999, self.term.pk)

    def test_get_class_reports_lists_ranked_first(self):
        low = self.make_student('Ama', last_name='Asante')
        high = self.make_student('Kofi', last_name='Boateng')
        ungraded = self.make_student('Esi', last_name='Appiah')
        self.score(low, 'Mathematics', 55)
        self.score(high, 'Mathematics', 88)
        generate_class_reports(self.class_obj.pk, self.term.pk)
        rank_class(self.class_obj.pk, self.term.pk)

        reports = get_class_reports(self.class_obj.pk, self.term.pk)

        self.assertEqual([r.student_id for r in reports], [high.pk, low.pk, ungraded.pk])


class RankClassTest(GradebookTestMixin, TestCase):
    """Tests for rank_class."""

    def make_ranked_class(self, averages):
        students = []
        for index, average in enumerate(averages):
            student = self.make_student(f'Student{index}')
            self.score(student, 'Mathematics', average)
            students.append(student)
        generate_class_reports(self.class_obj.pk, self.term.pk)
        return students

    def test_ties_share_rank(self):
        students = self.make_ranked_class([90, 85, 85, 70])

        batch = rank_class(self.class_obj.pk, self.term.pk)

        self.assertEqual(batch.summary, '4 of 4 succeeded')
        positions = [self.get_report(student).position for student in students]
        self.assertEqual(positions, [1, 2, 2, 4])
        self.assertTrue(all(self.get_report(student).out_of == 4 for student in students))

    def test_ungraded_students_are_not_ranked(self):
        students = self.make_ranked_class([60, 75])
        ungraded = self.make_student('Blank')
        generate_student_report(ungraded.pk, self.term.pk)

        batch = rank_class(self.class_obj.pk, self.term.pk)

        self.assertIsNone(self.get_report(ungraded).position)
        self.assertEqual(batch.get(ungraded.pk).issues[0].code, 'no_graded_subjects')
        self.assertEqual(self.get_report(students[1]).position, 1)
        self.assertEqual(self.get_report(students[0]).position, 2)
        self.assertEqual(self.get_report(students[0]).out_of, 2)

    def test_students_who_left_the_class_are_not_ranked(self):
        students = self.make_ranked_class([60, 75])
        other_class = Class.objects.create(
            school=self.school, level_type=Class.LevelType.JHS, level_number=1, section='B'
        )
        Student.objects.filter(pk=students[1].pk).update(current_class=other_class)

        rank_class(self.class_obj.pk, self.term.pk)

        self.assertEqual(self.get_report(students[0]).position, 1)
        self.assertEqual(self.get_report(students[0]).out_of, 1)
        self.assertIsNone(self.get_report(students[1]).position)

    def test_failed_save_does_not_stop_ranking(self):
        students = self.make_ranked_class([90, 80, 70])
        store = FailingRankStore([students[0].pk])

        batch = rank_class(self.class_obj.pk, self.term.pk, store=store)

        self.assertEqual(batch.summary, '2 of 3 succeeded')
        self.assertEqual(batch.failures[0].key, students[0].pk)
        self.assertIsNone(self.get_report(students[0]).position)
        self.assertEqual(self.get_report(students[1]).position, 2)
        self.assertEqual(self.get_report(students[2]).position, 3)

    def test_rerank_uses_current_averages(self):
        students = self.make_ranked_class([90, 80])
        rank_class(self.class_obj.pk, self.term.pk)

        score = Score.objects.get(student=students[1])
        score.points = 95
        score.save()
        rank_class(self.class_obj.pk, self.term.pk)

        self.assertEqual(self.get_report(students[1]).position, 1)
        self.assertEqual(self.get_report(students[0]).position, 2)


class ClassReportTaskTest(GradebookTestMixin, TestCase):
    """Tests for the generate-then-rank Celery task."""

    def test_generates_and_ranks(self):
        first = self.make_student('Ama')
        second = self.make_student('Kofi')
        self.score(first, 'Mathematics', 62)
        self.score(second, 'Mathematics', 81)

        result = generate_and_rank_class_reports.apply(args=[self.class_obj.pk, self.term.pk]).get()

        self.assertEqual(result['status'], 'success')
        self.assertEqual(result['generated']['summary'], '2 of 2 succeeded')
        self.assertEqual(result['ranked']['summary'], '2 of 2 succeeded')
        self.assertEqual(self.get_report(second).position, 1)
        self.assertEqual(self.get_report(first).position, 2)

    def test_configuration_error_is_reported(self):
        GradingSystem.objects.filter(school=self.school).update(is_active=False)

        result = generate_and_rank_class_reports.apply(args=[self.class_obj.pk, self.term.pk]).get()

        self.assertEqual(result['status'], 'error')
        self.assertEqual(result['error']['code'], 'grading_configuration')


class SeedGradingDataCommandTest(TestCase):
    """Tests for the seed_grading_data management command."""

    def setUp(self):
        self.school = School.objects.create(name='Seeded School', code='seeded')

    def test_seeds_contiguous_bands(self):
        call_command('seed_grading_data', '--school=seeded', stdout=StringIO())

        system = GradingSystem.objects.get(school=self.school, is_active=True)
        bands = list(system.scales.all())
        self.assertEqual(len(bands), 6)
        self.assertEqual(find_band_issues(bands), [])
        self.assertEqual(system.get_grade_for_score(90)['grade'], 'A+')

    def test_does_not_overwrite_without_force(self):
        call_command('seed_grading_data', '--school=seeded', stdout=StringIO())
        call_command('seed_grading_data', '--school=seeded', stdout=StringIO())
        self.assertEqual(GradingSystem.objects.filter(school=self.school).count(), 1)

    def test_switching_scale_deactivates_previous(self):
        call_command('seed_grading_data', '--school=seeded', stdout=StringIO())
        call_command('seed_grading_data', '--school=seeded', '--scale=wassce', stdout=StringIO())

        active = GradingSystem.objects.get(school=self.school, is_active=True)
        self.assertEqual(active.name, 'WASSCE Standard')
        self.assertEqual(active.scales.count(), 9)

    def test_unknown_school(self):
        with self.assertRaises(CommandError):
            call_command('seed_grading_data', '--school=missing', stdout=StringIO())


class ReportViewsTest(GradebookTestMixin, TestCase):
    """Tests for the report JSON endpoints."""

    def setUp(self):
        self.admin = User.objects.create_superuser('admin', 'admin@example.com', 'testpass123')
        self.client.force_login(self.admin)
        self.student = self.make_student('Ama')
        self.score(self.student, 'Mathematics', 70)

    def post_json(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type='application/json')

    def test_generate_report(self):
        response = self.post_json(
            reverse('gradebook:generate_report'),
            {'student_id': self.student.pk, 'term_id': self.term.pk}
        )
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['report']['average_score'], 70.0)
        self.assertEqual(data['issues'], [])

    def test_unknown_student_is_404(self):
        response = self.post_json(
            reverse('gradebook:generate_report'),
            {'student_id': 999999, 'term_id': self.term.pk}
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['error']['code'], 'not_found')

    def test_malformed_json_is_400(self):
        response = self.client.post(
            reverse('gradebook:generate_report'), data='{not json', content_type='application/json'
        )
        self.assertEqual(response.status_code, 400)

    def test_missing_field_is_400(self):
        response = self.post_json(reverse('gradebook:generate_report'), {'student_id': self.student.pk})
        self.assertEqual(response.status_code, 400)

    def test_configuration_error_is_422(self):
        GradingSystem.objects.filter(school=self.school).update(is_active=False)
        response = self.post_json(
            reverse('gradebook:generate_report'),
            {'student_id': self.student.pk, 'term_id': self.term.pk}
        )
        self.assertEqual(response.status_code, 422)

    def test_get_not_allowed(self):
        response = self.client.get(reverse('gradebook:generate_report'))
        self.assertEqual(response.status_code, 405)

    def test_non_admin_forbidden(self):
        user = User.objects.create_user('clerk', password='testpass123')
        self.client.force_login(user)
        response = self.post_json(
            reverse('gradebook:generate_report'),
            {'student_id': self.student.pk, 'term_id': self.term.pk}
        )
        self.assertEqual(response.status_code, 403)

    def test_anonymous_redirected_to_login(self):
        self.client.logout()
        response = self.post_json(
            reverse('gradebook:generate_report'),
            {'student_id': self.student.pk, 'term_id': self.term.pk}
        )
        self.assertEqual(response.status_code, 302)

    def test_generate_class_then_rank(self):
        other = self.make_student('Kofi')
        self.score(other, 'Mathematics', 85)
        payload = {'class_id': self.class_obj.pk, 'term_id': self.term.pk}

        response = self.post_json(reverse('gradebook:generate_class'), payload)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['summary'], '2 of 2 succeeded')

        response = self.post_json(reverse('gradebook:rank_class'), payload)
        self.assertEqual(response.status_code, 200)

        response = self.client.get(
            reverse('gradebook:class_reports', args=[self.class_obj.pk, self.term.pk])
        )
        reports = response.json()['reports']
        self.assertEqual([r['student_id'] for r in reports], [other.pk, self.student.pk])
        self.assertEqual([r['rank'] for r in reports], [1, 2])

    def test_report_detail_flags_stale_rank(self):
        generate_student_report(self.student.pk, self.term.pk)
        url = reverse('gradebook:report_detail', args=[self.student.pk, self.term.pk])

        self.assertTrue(self.client.get(url).json()['report']['rank_stale'])

        rank_class(self.class_obj.pk, self.term.pk)
        report = self.client.get(url).json()['report']
        self.assertFalse(report['rank_stale'])
        self.assertEqual(report['rank'], 1)

    def test_report_detail_missing_is_404(self):
        url = reverse('gradebook:report_detail', args=[self.student.pk, self.term.pk])
        self.assertEqual(self.client.get(url).status_code, 404)

    def test_class_teacher_updates_own_remark(self):
        generate_student_report(self.student.pk, self.term.pk)
        self.client.force_login(self.class_teacher)
        url = reverse('gradebook:update_remarks', args=[self.student.pk, self.term.pk])

        response = self.post_json(url, {'class_teacher_remark': 'Good effort'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.get_report(self.student).class_teacher_remark, 'Good effort')

        response = self.post_json(url, {'principal_remark': 'Well done'})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(self.get_report(self.student).head_teacher_remark, '')

    def test_admin_updates_principal_remark(self):
        generate_student_report(self.student.pk, self.term.pk)
        url = reverse('gradebook:update_remarks', args=[self.student.pk, self.term.pk])

        response = self.post_json(url, {'principal_remark': 'Well done'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['report']['principal_remark'], 'Well done')

    def test_empty_remark_update_is_400(self):
        generate_student_report(self.student.pk, self.term.pk)
        url = reverse('gradebook:update_remarks', args=[self.student.pk, self.term.pk])
        self.assertEqual(self.post_json(url, {}).status_code, 400)
