import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('academics', '0001_initial'),
        ('core', '0001_initial'),
        ('schools', '0001_initial'),
        ('students', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='GradingSystem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(help_text='Name of the grading system (e.g., WASSCE, Standard GPA)', max_length=100)),
                ('description', models.TextField(blank=True)),
                ('is_active', models.BooleanField(default=True, help_text='The active grading system is used when generating reports')),
                ('pass_mark', models.DecimalField(decimal_places=2, default=Decimal('50.00'), help_text='Minimum percentage to pass a subject', max_digits=5, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('min_average_for_promotion', models.DecimalField(decimal_places=2, default=Decimal('50.00'), help_text='Minimum term average required for a PROMOTE recommendation', max_digits=5, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('school', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='grading_systems', to='schools.school')),
            ],
            options={
                'verbose_name': 'Grading System',
                'verbose_name_plural': 'Grading Systems',
                'db_table': 'grading_system',
                'ordering': ['school', 'name'],
                'unique_together': {('school', 'name')},
            },
        ),
        migrations.CreateModel(
            name='GradeScale',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('grade_label', models.CharField(help_text='Grade label (e.g., A+, B2)', max_length=10)),
                ('min_percentage', models.DecimalField(decimal_places=2, help_text='Minimum percentage for this grade (inclusive)', max_digits=5, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('max_percentage', models.DecimalField(decimal_places=2, help_text='Maximum percentage for this grade (inclusive)', max_digits=5, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('grade_point', models.DecimalField(blank=True, decimal_places=2, help_text='Grade-point value (e.g., 4.00)', max_digits=4, null=True, validators=[django.core.validators.MinValueValidator(0)])),
                ('interpretation', models.CharField(blank=True, help_text='Grade remark (e.g., Excellent, Very Good, Pass, Fail)', max_length=50)),
                ('is_pass', models.BooleanField(default=True, help_text='Whether this grade is considered passing')),
                ('order', models.IntegerField(default=0, help_text='Display order (lower numbers appear first)')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('grading_system', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='scales', to='gradebook.gradingsystem')),
            ],
            options={
                'verbose_name': 'Grade Scale',
                'verbose_name_plural': 'Grade Scales',
                'db_table': 'grade_scale',
                'ordering': ['grading_system', 'order', '-min_percentage'],
                'indexes': [models.Index(fields=['grading_system', 'min_percentage', 'max_percentage'], name='grade_scale_range_idx')],
                'unique_together': {('grading_system', 'grade_label')},
            },
        ),
        migrations.CreateModel(
            name='Assessment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(help_text='Assessment name (e.g., Quiz 1, Mid-term Test)', max_length=100)),
                ('points_possible', models.DecimalField(decimal_places=2, help_text='Maximum marks available for this assessment', max_digits=6, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('weight', models.DecimalField(decimal_places=2, help_text='Percentage of the subject grade this assessment contributes (0-100)', max_digits=5, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(100)])),
                ('date', models.DateField(blank=True, help_text='Date of the assessment (optional)', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('class_assigned', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='assessments', to='academics.class')),
                ('subject', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assessments', to='academics.subject')),
                ('term', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='assessments', to='core.term')),
            ],
            options={
                'verbose_name': 'Assessment',
                'verbose_name_plural': 'Assessments',
                'db_table': 'assessment',
                'ordering': ['term', 'subject', 'name'],
                'indexes': [models.Index(fields=['subject', 'term'], name='assessment_subject_term_idx')],
            },
        ),
        migrations.CreateModel(
            name='Score',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('points', models.DecimalField(decimal_places=2, help_text='Points earned on this assessment', max_digits=6, validators=[django.core.validators.MinValueValidator(Decimal('0'))])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assessment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='scores', to='gradebook.assessment')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='scores', to='students.student')),
            ],
            options={
                'verbose_name': 'Score',
                'verbose_name_plural': 'Scores',
                'db_table': 'score',
                'ordering': ['student', 'assessment'],
                'unique_together': {('student', 'assessment')},
            },
        ),
        migrations.CreateModel(
            name='TermReport',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('total_marks', models.DecimalField(decimal_places=2, default=0, help_text='Sum of all subject scores', max_digits=7)),
                ('average', models.DecimalField(decimal_places=2, default=0, help_text='Average percentage across graded subjects', max_digits=6)),
                ('subjects_taken', models.PositiveSmallIntegerField(default=0, help_text='Number of subjects with at least one graded assessment')),
                ('position', models.PositiveSmallIntegerField(blank=True, help_text='Overall class position (cleared on regeneration)', null=True)),
                ('out_of', models.PositiveSmallIntegerField(blank=True, help_text='Number of ranked students in the class', null=True)),
                ('class_teacher_remark', models.TextField(blank=True)),
                ('head_teacher_remark', models.TextField(blank=True)),
                ('attendance_percentage', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ('days_present', models.PositiveSmallIntegerField(blank=True, help_text='Number of days present in the term', null=True)),
                ('total_school_days', models.PositiveSmallIntegerField(blank=True, help_text='Total school days in the term', null=True)),
                ('generated_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('class_assigned', models.ForeignKey(blank=True, help_text='Class of the student when the report was generated', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='term_reports', to='academics.class')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='term_reports', to='students.student')),
                ('term', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='term_reports', to='core.term')),
            ],
            options={
                'verbose_name': 'Term Report',
                'verbose_name_plural': 'Term Reports',
                'db_table': 'term_report',
                'ordering': ['term', 'position'],
                'indexes': [
                    models.Index(fields=['term', 'class_assigned'], name='term_report_class_idx'),
                    models.Index(fields=['term', 'average'], name='term_report_average_idx'),
                ],
                'unique_together': {('student', 'term')},
            },
        ),
        migrations.CreateModel(
            name='SubjectTermGrade',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('total_score', models.DecimalField(decimal_places=2, help_text='Weighted subject total (0-100 scale)', max_digits=5)),
                ('grade', models.CharField(blank=True, help_text='Grade label (e.g., A1, B2)', max_length=10)),
                ('grade_remark', models.CharField(blank=True, help_text='Grade interpretation (e.g., Excellent)', max_length=50)),
                ('grade_point', models.DecimalField(blank=True, decimal_places=2, max_digits=4, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('subject', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='term_grades', to='academics.subject')),
                ('term_report', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='subject_grades', to='gradebook.termreport')),
            ],
            options={
                'verbose_name': 'Subject Term Grade',
                'verbose_name_plural': 'Subject Term Grades',
                'db_table': 'subject_term_grade',
                'ordering': ['term_report', 'subject__name'],
                'unique_together': {('term_report', 'subject')},
            },
        ),
    ]
