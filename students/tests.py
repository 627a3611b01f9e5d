import json
from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase
from django.urls import reverse

from academics.models import Class, Subject
from core.models import AcademicYear, Term
from gradebook.exceptions import RecordNotFound
from gradebook.models import Assessment, GradeScale, GradingSystem, Score
from gradebook.reports import generate_class_reports, generate_student_report
from schools.models import School
from students.models import ClassMovement, Student
from students.promotion import list_promotion_candidates, process_promotions

User = get_user_model()


class PromotionTestMixin:
    """A final term with a JHS 1 class to promote from and a JHS 2 class to promote into."""

    @classmethod
    def setUpTestData(cls):
        cls.school = School.objects.create(name='Demo School', code='demo')
        cls.year = AcademicYear.objects.create(
            school=cls.school, name='2024/2025',
            start_date=date(2024, 9, 2), end_date=date(2025, 7, 25), is_current=True
        )
        cls.term = Term.objects.create(
            academic_year=cls.year, name='Third Term', term_number=3,
            start_date=date(2025, 4, 28), end_date=date(2025, 7, 25), is_current=True
        )
        cls.grading_system = GradingSystem.objects.create(
            school=cls.school, name='Standard GPA', min_average_for_promotion=Decimal('50.00')
        )
        GradeScale.objects.create(
            grading_system=cls.grading_system, grade_label='P',
            min_percentage=50, max_percentage=100, interpretation='Pass'
        )
        GradeScale.objects.create(
            grading_system=cls.grading_system, grade_label='F',
            min_percentage=0, max_percentage=Decimal('49.99'), interpretation='Fail', is_pass=False
        )
        cls.jhs1 = Class.objects.create(school=cls.school, level_type=Class.LevelType.JHS, level_number=1, section='A')
        cls.jhs2 = Class.objects.create(school=cls.school, level_type=Class.LevelType.JHS, level_number=2, section='A')
        cls.maths = Subject.objects.create(school=cls.school, name='Mathematics')
        cls.exam = Assessment.objects.create(
            subject=cls.maths, term=cls.term, name='Promotion Exam', points_possible=100, weight=100
        )

    def make_student(self, first_name, score=None, **kwargs):
        student = Student.objects.create(
            school=self.school,
            first_name=first_name,
            last_name='Owusu',
            admission_number=f'ADM-{first_name.upper()}',
            current_class=kwargs.pop('current_class', self.jhs1),
            **kwargs
        )
        if score is not None:
            Score.objects.create(student=student, assessment=self.exam, points=score)
        return student

    def promote(self, student, target=None, **extra):
        decision = {
            'student_id': student.pk,
            'action': 'PROMOTE',
            'target_class_id': (target or self.jhs2).pk,
        }
        decision.update(extra)
        return decision


class ListPromotionCandidatesTest(PromotionTestMixin, TestCase):
    """Tests for list_promotion_candidates."""

    def candidates_by_student(self):
        return {c.student_id: c for c in list_promotion_candidates(self.jhs1.pk, self.term.pk)}

    def test_recommendations(self):
        failing = self.make_student('Ama', score=42)
        borderline = self.make_student('Kofi', score=50)
        strong = self.make_student('Esi', score=78)
        ungraded = self.make_student('Yaw')
        generate_class_reports(self.jhs1.pk, self.term.pk)
        no_report = self.make_student('Akua')

        candidates = self.candidates_by_student()

        self.assertEqual(candidates[failing.pk].recommended_action, ClassMovement.Action.RETAIN)
        self.assertEqual(candidates[failing.pk].reason, 'Average 42.0% below pass mark of 50%')
        self.assertEqual(candidates[borderline.pk].recommended_action, ClassMovement.Action.PROMOTE)
        self.assertEqual(candidates[borderline.pk].reason, 'Average 50.0% meets pass mark of 50%')
        self.assertEqual(candidates[strong.pk].recommended_action, ClassMovement.Action.PROMOTE)
        self.assertEqual(candidates[strong.pk].average_score, Decimal('78.00'))
        self.assertEqual(candidates[ungraded.pk].recommended_action, ClassMovement.Action.RETAIN)
        self.assertEqual(candidates[ungraded.pk].reason, 'Insufficient grading data')
        self.assertIsNone(candidates[ungraded.pk].average_score)
        self.assertEqual(candidates[no_report.pk].recommended_action, ClassMovement.Action.RETAIN)
        self.assertEqual(candidates[no_report.pk].reason, 'No term report generated')

    def test_ungraded_student_never_promoted(self):
        GradingSystem.objects.filter(pk=self.grading_system.pk).update(min_average_for_promotion=0)
        ungraded = self.make_student('Yaw')
        generate_student_report(ungraded.pk, self.term.pk)

        candidate = self.candidates_by_student()[ungraded.pk]

        self.assertEqual(candidate.recommended_action, ClassMovement.Action.RETAIN)

    def test_threshold_comes_from_grading_system(self):
        GradingSystem.objects.filter(pk=self.grading_system.pk).update(
            min_average_for_promotion=Decimal('45.50')
        )
        student = self.make_student('Ama', score=46)
        generate_student_report(student.pk, self.term.pk)

        candidate = self.candidates_by_student()[student.pk]

        self.assertEqual(candidate.recommended_action, ClassMovement.Action.PROMOTE)
        self.assertEqual(candidate.reason, 'Average 46.0% meets pass mark of 45.5%')

    def test_default_threshold_without_grading_system(self):
        student = self.make_student('Ama', score=49)
        generate_student_report(student.pk, self.term.pk)
        GradingSystem.objects.filter(school=self.school).update(is_active=False)

        candidate = self.candidates_by_student()[student.pk]

        self.assertEqual(candidate.reason, 'Average 49.0% below pass mark of 50%')

    def test_listing_does_not_change_anything(self):
        student = self.make_student('Ama', score=90)
        generate_student_report(student.pk, self.term.pk)

        list_promotion_candidates(self.jhs1.pk, self.term.pk)

        student.refresh_from_db()
        self.assertEqual(student.current_class, self.jhs1)
        self.assertFalse(ClassMovement.objects.exists())

    def test_to_dict(self):
        student = self.make_student('Ama', score=64)
        generate_student_report(student.pk, self.term.pk)

        data = list_promotion_candidates(self.jhs1.pk, self.term.pk)[0].to_dict()

        self.assertEqual(data['recommended_action'], 'PROMOTE')
        self.assertEqual(data['average_score'], 64.0)
        self.assertEqual(data['student_name'], 'Ama Owusu')


class ProcessPromotionsTest(PromotionTestMixin, TestCase):
    """Tests for process_promotions."""

    def test_partial_failure(self):
        first = self.make_student('Ama')
        second = self.make_student('Kofi')
        stuck = self.make_student('Esi')
        decisions = [
            self.promote(first),
            {'student_id': stuck.pk, 'action': 'PROMOTE', 'target_class_id': 999999},
            self.promote(second),
        ]

        batch = process_promotions(decisions, self.term.pk)

        self.assertEqual(batch.succeeded, 2)
        self.assertEqual(batch.summary, '2 of 3 succeeded')
        failure = batch.failures[0]
        self.assertEqual(failure.key, stuck.pk)
        self.assertEqual(failure.error.code, 'not_found')
        self.assertEqual(ClassMovement.objects.count(), 2)
        self.assertTrue(ClassMovement.objects.filter(student=first, to_class=self.jhs2).exists())
        self.assertTrue(ClassMovement.objects.filter(student=second, to_class=self.jhs2).exists())
        stuck.refresh_from_db()
        self.assertEqual(stuck.current_class, self.jhs1)

    def test_promotion_moves_student(self):
        student = self.make_student('Ama')
        admin = User.objects.create_user('director', password='testpass123')

        process_promotions([self.promote(student)], self.term.pk, changed_by=admin)

        student.refresh_from_db()
        self.assertEqual(student.current_class, self.jhs2)
        movement = ClassMovement.objects.get(student=student)
        self.assertEqual(movement.from_class, self.jhs1)
        self.assertEqual(movement.to_class, self.jhs2)
        self.assertEqual(movement.term, self.term)
        self.assertEqual(movement.action, ClassMovement.Action.PROMOTE)
        self.assertEqual(movement.reason, 'End of Year Promotion')
        self.assertEqual(movement.changed_by, admin)

    def test_retain_without_target_keeps_class(self):
        student = self.make_student('Kofi')

        batch = process_promotions(
            [{'student_id': student.pk, 'action': 'retain', 'reason': 'Repeat JHS 1'}],
            self.term.pk
        )

        self.assertEqual(batch.summary, '1 of 1 succeeded')
        movement = ClassMovement.objects.get(student=student)
        self.assertEqual(movement.from_class, self.jhs1)
        self.assertEqual(movement.to_class, self.jhs1)
        self.assertEqual(movement.action, ClassMovement.Action.RETAIN)
        self.assertEqual(movement.reason, 'Repeat JHS 1')

    def test_promote_requires_target(self):
        student = self.make_student('Esi')

        batch = process_promotions([{'student_id': student.pk, 'action': 'PROMOTE'}], self.term.pk)

        self.assertEqual(batch.failures[0].error.code, 'invalid_decision')
        self.assertFalse(ClassMovement.objects.exists())

    def test_unknown_action(self):
        student = self.make_student('Yaw')

        batch = process_promotions(
            [{'student_id': student.pk, 'action': 'GRADUATE', 'target_class_id': self.jhs2.pk}],
            self.term.pk
        )

        self.assertEqual(batch.failures[0].error.code, 'invalid_decision')

    def test_second_movement_in_term_conflicts(self):
        student = self.make_student('Akua')
        process_promotions([self.promote(student)], self.term.pk)

        batch = process_promotions([self.promote(student)], self.term.pk)

        self.assertEqual(batch.failures[0].error.code, 'movement_conflict')
        self.assertEqual(ClassMovement.objects.filter(student=student).count(), 1)

    def test_force_allows_second_movement(self):
        student = self.make_student('Akua')
        process_promotions([self.promote(student)], self.term.pk)

        batch = process_promotions(
            [self.promote(student, target=self.jhs1, action='RETAIN')], self.term.pk, force=True
        )

        self.assertEqual(batch.summary, '1 of 1 succeeded')
        self.assertEqual(ClassMovement.objects.filter(student=student).count(), 2)
        student.refresh_from_db()
        self.assertEqual(student.current_class, self.jhs1)

    def test_class_of_another_school_rejected(self):
        other = School.objects.create(name='Other School', code='other')
        foreign = Class.objects.create(school=other, level_type=Class.LevelType.JHS, level_number=2, section='A')
        student = self.make_student('Kwame')

        batch = process_promotions([self.promote(student, target=foreign)], self.term.pk)

        self.assertEqual(batch.failures[0].error.code, 'not_found')
        self.assertFalse(ClassMovement.objects.exists())

    def test_missing_student_id(self):
        batch = process_promotions([{'action': 'PROMOTE', 'target_class_id': self.jhs2.pk}], self.term.pk)
        self.assertEqual(batch.failures[0].error.code, 'invalid_decision')

    def test_unknown_term(self):
        with self.assertRaises(RecordNotFound):
            process_promotions([], 999999)


class ClassMovementModelTest(PromotionTestMixin, TestCase):
    """ClassMovement rows are append-only."""

    def setUp(self):
        self.student = self.make_student('Ama')
        self.movement = ClassMovement.objects.create(
            student=self.student, from_class=self.jhs1, to_class=self.jhs2,
            term=self.term, action=ClassMovement.Action.PROMOTE
        )

    def test_cannot_update(self):
        self.movement.reason = 'Changed my mind'
        with self.assertRaises(ValidationError):
            self.movement.save()
        self.movement.refresh_from_db()
        self.assertEqual(self.movement.reason, '')

    def test_cannot_delete(self):
        with self.assertRaises(ValidationError):
            self.movement.delete()
        self.assertTrue(ClassMovement.objects.filter(pk=self.movement.pk).exists())

    def test_movement_history(self):
        history = list(self.student.get_movement_history())
        self.assertEqual(history, [self.movement])
        self.assertIn('B7-A -> B8-A', str(self.movement))


class PromotionViewsTest(PromotionTestMixin, TestCase):
    """Tests for the promotion JSON endpoints."""

    def setUp(self):
        self.admin = User.objects.create_superuser('admin', 'admin@example.com', 'testpass123')
        self.client.force_login(self.admin)

    def test_candidates(self):
        student = self.make_student('Ama', score=72)
        generate_student_report(student.pk, self.term.pk)

        response = self.client.get(
            reverse('students:promotion_candidates'),
            {'class_id': self.jhs1.pk, 'term_id': self.term.pk}
        )

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['count'], 1)
        self.assertEqual(data['candidates'][0]['recommended_action'], 'PROMOTE')

    def test_candidates_missing_params(self):
        response = self.client.get(reverse('students:promotion_candidates'), {'class_id': self.jhs1.pk})
        self.assertEqual(response.status_code, 400)

    def test_candidates_unknown_class(self):
        response = self.client.get(
            reverse('students:promotion_candidates'),
            {'class_id': 999999, 'term_id': self.term.pk}
        )
        self.assertEqual(response.status_code, 404)

    def test_process(self):
        student = self.make_student('Kofi')

        response = self.client.post(
            reverse('students:promotion_process'),
            data=json.dumps({'term_id': self.term.pk, 'decisions': [self.promote(student)]}),
            content_type='application/json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['summary'], '1 of 1 succeeded')
        self.assertEqual(ClassMovement.objects.get(student=student).changed_by, self.admin)

    def test_process_rejects_non_list_decisions(self):
        response = self.client.post(
            reverse('students:promotion_process'),
            data=json.dumps({'term_id': self.term.pk, 'decisions': 'all'}),
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 400)

    def test_process_requires_admin(self):
        self.client.force_login(User.objects.create_user('teacher', password='testpass123'))
        response = self.client.post(
            reverse('students:promotion_process'),
            data=json.dumps({'term_id': self.term.pk, 'decisions': []}),
            content_type='application/json'
        )
        self.assertEqual(response.status_code, 403)
