from datetime import date

from django.test import TestCase

from core.models import AcademicYear, Term
from schools.models import School


class AcademicYearModelTests(TestCase):
    """Tests for AcademicYear."""

    def setUp(self):
        self.school = School.objects.create(name='Demo School', code='demo')
        self.other_school = School.objects.create(name='Other School', code='other')

    def make_year(self, school, name, is_current=True):
        return AcademicYear.objects.create(
            school=school, name=name,
            start_date=date(2024, 9, 2), end_date=date(2025, 7, 25),
            is_current=is_current
        )

    def test_only_one_current_year_per_school(self):
        old = self.make_year(self.school, '2023/2024')
        new = self.make_year(self.school, '2024/2025')

        old.refresh_from_db()
        self.assertFalse(old.is_current)
        self.assertEqual(AcademicYear.get_current(self.school), new)

    def test_current_year_is_per_school(self):
        ours = self.make_year(self.school, '2024/2025')
        theirs = self.make_year(self.other_school, '2024/2025')

        ours.refresh_from_db()
        self.assertTrue(ours.is_current)
        self.assertEqual(AcademicYear.get_current(self.other_school), theirs)


class TermModelTests(TestCase):
    """Tests for Term."""

    def setUp(self):
        self.school = School.objects.create(name='Demo School', code='demo')
        self.year = AcademicYear.objects.create(
            school=self.school, name='2024/2025',
            start_date=date(2024, 9, 2), end_date=date(2025, 7, 25), is_current=True
        )

    def make_term(self, number, is_current=False):
        return Term.objects.create(
            academic_year=self.year, name=f'Term {number}', term_number=number,
            start_date=date(2024, 9, 2), end_date=date(2024, 12, 13),
            is_current=is_current
        )

    def test_only_one_current_term(self):
        first = self.make_term(1, is_current=True)
        second = self.make_term(2, is_current=True)

        first.refresh_from_db()
        self.assertFalse(first.is_current)
        self.assertEqual(Term.get_current(self.school), second)

    def test_is_final_term(self):
        first = self.make_term(1)
        third = self.make_term(3)

        self.assertFalse(first.is_final_term)
        self.assertTrue(third.is_final_term)

    def test_str(self):
        self.assertEqual(str(self.make_term(1)), 'Term 1 - 2024/2025')
