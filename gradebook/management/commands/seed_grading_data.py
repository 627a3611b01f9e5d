"""
Management command to seed a default grading system for a school.

Usage:
    python manage.py seed_grading_data --school=demo
    python manage.py seed_grading_data --school=demo --scale=wassce --force
"""
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from gradebook.grading import find_band_issues
from gradebook.models import GradingSystem, GradeScale
from schools.models import School


# Letter grades on a 4.0 scale
GPA_SCALES = [
    {'grade_label': 'A+', 'min': 90, 'max': 100, 'points': '4.00', 'interpretation': 'Excellent', 'is_pass': True},
    {'grade_label': 'A', 'min': 80, 'max': '89.99', 'points': '3.70', 'interpretation': 'Very Good', 'is_pass': True},
    {'grade_label': 'B', 'min': 70, 'max': '79.99', 'points': '3.00', 'interpretation': 'Good', 'is_pass': True},
    {'grade_label': 'C', 'min': 60, 'max': '69.99', 'points': '2.00', 'interpretation': 'Credit', 'is_pass': True},
    {'grade_label': 'D', 'min': 50, 'max': '59.99', 'points': '1.00', 'interpretation': 'Pass', 'is_pass': True},
    {'grade_label': 'F', 'min': 0, 'max': '49.99', 'points': '0.00', 'interpretation': 'Fail', 'is_pass': False},
]

# WASSCE grading scale (A1-F9); grade points count down from A1
WASSCE_SCALES = [
    {'grade_label': 'A1', 'min': 80, 'max': 100, 'points': '1', 'interpretation': 'Excellent', 'is_pass': True},
    {'grade_label': 'B2', 'min': 70, 'max': '79.99', 'points': '2', 'interpretation': 'Very Good', 'is_pass': True},
    {'grade_label': 'B3', 'min': 65, 'max': '69.99', 'points': '3', 'interpretation': 'Good', 'is_pass': True},
    {'grade_label': 'C4', 'min': 60, 'max': '64.99', 'points': '4', 'interpretation': 'Credit', 'is_pass': True},
    {'grade_label': 'C5', 'min': 55, 'max': '59.99', 'points': '5', 'interpretation': 'Credit', 'is_pass': True},
    {'grade_label': 'C6', 'min': 50, 'max': '54.99', 'points': '6', 'interpretation': 'Credit', 'is_pass': True},
    {'grade_label': 'D7', 'min': 45, 'max': '49.99', 'points': '7', 'interpretation': 'Pass', 'is_pass': True},
    {'grade_label': 'E8', 'min': 40, 'max': '44.99', 'points': '8', 'interpretation': 'Pass', 'is_pass': True},
    {'grade_label': 'F9', 'min': 0, 'max': '39.99', 'points': '9', 'interpretation': 'Fail', 'is_pass': False},
]

SYSTEMS = {
    'gpa': {
        'name': 'Standard GPA',
        'description': 'Letter grades with grade points on a 4.0 scale',
        'pass_mark': 50,
        'min_average_for_promotion': 50,
        'scales': GPA_SCALES,
    },
    'wassce': {
        'name': 'WASSCE Standard',
        'description': 'West African Senior School Certificate Examination grading scale',
        'pass_mark': 40,
        'min_average_for_promotion': 40,
        'scales': WASSCE_SCALES,
    },
}


class Command(BaseCommand):
    help = 'Seed a default grading system (grade bands and pass marks) for a school'

    def add_arguments(self, parser):
        parser.add_argument(
            '--school',
            type=str,
            required=True,
            help='Code of the school to seed',
        )
        parser.add_argument(
            '--scale',
            choices=sorted(SYSTEMS),
            default='gpa',
            help='Grading scale to create (default: gpa)',
        )
        parser.add_argument(
            '--force',
            action='store_true',
            help='Overwrite an existing grading system of the same name',
        )

    def handle(self, *args, **options):
        try:
            school = School.objects.get(code=options['school'])
        except School.DoesNotExist:
            raise CommandError(f'School "{options["school"]}" does not exist')

        spec = SYSTEMS[options['scale']]
        with transaction.atomic():
            self.create_grading_system(school, spec, options['force'])

    def create_grading_system(self, school, spec, force):
        existing = GradingSystem.objects.filter(school=school, name=spec['name'])
        if existing.exists():
            if not force:
                self.stdout.write(f'{spec["name"]} already exists for {school}. Use --force to overwrite.')
                return
            existing.delete()

        # Only one active system per school
        GradingSystem.objects.filter(school=school, is_active=True).update(is_active=False)

        system = GradingSystem.objects.create(
            school=school,
            name=spec['name'],
            description=spec['description'],
            is_active=True,
            pass_mark=spec['pass_mark'],
            min_average_for_promotion=spec['min_average_for_promotion'],
        )

        scales = [
            GradeScale(
                grading_system=system,
                grade_label=scale_data['grade_label'],
                min_percentage=scale_data['min'],
                max_percentage=scale_data['max'],
                grade_point=scale_data['points'],
                interpretation=scale_data['interpretation'],
                is_pass=scale_data['is_pass'],
                order=i,
            )
            for i, scale_data in enumerate(spec['scales'])
        ]
        GradeScale.objects.bulk_create(scales)

        for issue in find_band_issues(scales):
            self.stdout.write(self.style.WARNING(f'  {issue}'))

        self.stdout.write(self.style.SUCCESS(
            f'Created {system.name} for {school} with {len(scales)} grades'
        ))
