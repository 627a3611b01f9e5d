import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator
from django.core.exceptions import ValidationError

from academics.models import Class, Subject
from students.models import Student
from core.models import Term
from .exceptions import RankingDataStale


class GradingSystem(models.Model):
    """A school's grading configuration: its grade bands and pass marks."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    school = models.ForeignKey(
        'schools.School',
        on_delete=models.CASCADE,
        related_name='grading_systems'
    )
    name = models.CharField(
        max_length=100,
        help_text='Name of the grading system (e.g., WASSCE, Standard GPA)'
    )
    description = models.TextField(blank=True)
    is_active = models.BooleanField(
        default=True,
        help_text='The active grading system is used when generating reports'
    )

    pass_mark = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('50.00'),
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        help_text='Minimum percentage to pass a subject'
    )
    # Minimum average for promotion
    min_average_for_promotion = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('50.00'),
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        help_text='Minimum term average required for a PROMOTE recommendation'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.school})"

    def is_passing_score(self, score):
        """Check if a score is passing based on this grading system's pass mark."""
        if score is None:
            return False
        return Decimal(str(score)) >= self.pass_mark

    def get_grade_for_score(self, score):
        """Look up the grade for a given score, or None when no band matches."""
        from .exceptions import UnscoredGrade
        from .grading import resolve_grade

        if score is None:
            return None
        try:
            return resolve_grade(score, list(self.scales.all()))
        except UnscoredGrade:
            return None

    class Meta:
        db_table = 'grading_system'
        ordering = ['school', 'name']
        verbose_name = 'Grading System'
        verbose_name_plural = 'Grading Systems'
        unique_together = ['school', 'name']


class GradeScale(models.Model):
    """One grade band within a grading system (e.g., A = 80-89.99, 3.70 GPA)."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    grading_system = models.ForeignKey(
        GradingSystem,
        on_delete=models.CASCADE,
        related_name='scales',
        db_index=True
    )
    grade_label = models.CharField(
        max_length=10,
        help_text='Grade label (e.g., A+, B2)'
    )
    min_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        help_text='Minimum percentage for this grade (inclusive)'
    )
    max_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        help_text='Maximum percentage for this grade (inclusive)'
    )
    grade_point = models.DecimalField(
        max_digits=4,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(0)],
        help_text='Grade-point value (e.g., 4.00)'
    )
    interpretation = models.CharField(
        max_length=50,
        blank=True,
        help_text='Grade remark (e.g., Excellent, Very Good, Pass, Fail)'
    )
    is_pass = models.BooleanField(
        default=True,
        help_text='Whether this grade is considered passing'
    )
    order = models.IntegerField(
        default=0,
        help_text='Display order (lower numbers appear first)'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.grade_label} ({self.min_percentage}-{self.max_percentage}%) - {self.interpretation}"

    def clean(self):
        """Validate that min <= max and ranges don't overlap"""
        if self.min_percentage > self.max_percentage:
            raise ValidationError('Minimum percentage cannot be greater than maximum percentage')

        # Check for overlapping ranges within the same grading system
        overlapping = GradeScale.objects.filter(
            grading_system=self.grading_system
        ).exclude(pk=self.pk).filter(
            models.Q(
                min_percentage__lte=self.max_percentage,
                max_percentage__gte=self.min_percentage
            )
        )

        if overlapping.exists():
            raise ValidationError(
                f'Grade range overlaps with existing grade: {overlapping.first()}'
            )

    class Meta:
        db_table = 'grade_scale'
        ordering = ['grading_system', 'order', '-min_percentage']
        verbose_name = 'Grade Scale'
        verbose_name_plural = 'Grade Scales'
        unique_together = ['grading_system', 'grade_label']
        indexes = [
            models.Index(fields=['grading_system', 'min_percentage', 'max_percentage'], name='grade_scale_range_idx'),
        ]


class Assessment(models.Model):
    """
    A single gradable event (quiz, test, exam) for a subject in a term.
    Its weight is the percentage of the subject grade it contributes.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    subject = models.ForeignKey(
        Subject,
        on_delete=models.CASCADE,
        related_name='assessments',
        db_index=True
    )
    term = models.ForeignKey(
        Term,
        on_delete=models.CASCADE,
        related_name='assessments',
        db_index=True
    )
    class_assigned = models.ForeignKey(
        Class,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='assessments'
    )
    name = models.CharField(
        max_length=100,
        help_text='Assessment name (e.g., Quiz 1, Mid-term Test)'
    )
    points_possible = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text='Maximum marks available for this assessment'
    )
    weight = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        help_text='Percentage of the subject grade this assessment contributes (0-100)'
    )
    date = models.DateField(
        null=True,
        blank=True,
        help_text='Date of the assessment (optional)'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.subject.name}: {self.name} ({self.weight}%)"

    class Meta:
        db_table = 'assessment'
        ordering = ['term', 'subject', 'name']
        verbose_name = 'Assessment'
        verbose_name_plural = 'Assessments'
        indexes = [
            models.Index(fields=['subject', 'term'], name='assessment_subject_term_idx'),
        ]


class Score(models.Model):
    """Student score for an individual assessment"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.ForeignKey(
        Student,
        on_delete=models.CASCADE,
        related_name='scores',
        db_index=True
    )
    assessment = models.ForeignKey(
        Assessment,
        on_delete=models.CASCADE,
        related_name='scores',
        db_index=True
    )
    points = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))],
        help_text='Points earned on this assessment'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.student} - {self.assessment.name}: {self.points}/{self.assessment.points_possible}"

    def clean(self):
        """Validate that points don't exceed points_possible"""
        if self.points > self.assessment.points_possible:
            raise ValidationError(
                f'Points ({self.points}) cannot exceed points possible ({self.assessment.points_possible})'
            )

    def get_percentage(self):
        """Get the percentage score for this assessment"""
        return round((Decimal(str(self.points)) / Decimal(str(self.assessment.points_possible))) * 100, 2)

    class Meta:
        db_table = 'score'
        ordering = ['student', 'assessment']
        verbose_name = 'Score'
        verbose_name_plural = 'Scores'
        unique_together = ['student', 'assessment']


class TermReport(models.Model):
    """
    Overall term report for a student (report card summary).

    Fields fall into two ownership domains. Computed fields are rewritten
    on every regeneration; remark fields belong to staff and are never
    touched by regeneration.
    """
    COMPUTED_FIELDS = [
        'class_assigned', 'total_marks', 'average', 'subjects_taken',
        'days_present', 'total_school_days', 'attendance_percentage',
        'position', 'out_of', 'generated_at',
    ]
    REMARK_FIELDS = ['class_teacher_remark', 'head_teacher_remark']

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    student = models.ForeignKey(
        Student,
        on_delete=models.CASCADE,
        related_name='term_reports',
        db_index=True
    )
    term = models.ForeignKey(
        Term,
        on_delete=models.CASCADE,
        related_name='term_reports',
        db_index=True
    )
    class_assigned = models.ForeignKey(
        Class,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='term_reports',
        help_text='Class of the student when the report was generated'
    )

    # Aggregated scores
    total_marks = models.DecimalField(
        max_digits=7,
        decimal_places=2,
        default=0,
        help_text='Sum of all subject scores'
    )
    average = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        default=0,
        help_text='Average percentage across graded subjects'
    )
    subjects_taken = models.PositiveSmallIntegerField(
        default=0,
        help_text='Number of subjects with at least one graded assessment'
    )

    # Class position
    position = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text='Overall class position (cleared on regeneration)'
    )
    out_of = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text='Number of ranked students in the class'
    )

    # Remarks
    class_teacher_remark = models.TextField(blank=True)
    head_teacher_remark = models.TextField(blank=True)

    # Attendance (informational only)
    attendance_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        null=True,
        blank=True
    )
    days_present = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text='Number of days present in the term'
    )
    total_school_days = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text='Total school days in the term'
    )

    generated_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.student} - {self.term}: Position {self.position}/{self.out_of}"

    @property
    def has_graded_subjects(self):
        return self.subjects_taken > 0

    def get_rank(self):
        """
        Return the class position.

        Raises RankingDataStale when the report has graded subjects but was
        regenerated since the last ranking pass. Reports without graded
        subjects are never ranked and return None.
        """
        if self.position is None:
            if not self.has_graded_subjects:
                return None
            raise RankingDataStale(self.student_id, self.term_id)
        return self.position

    def to_dict(self):
        """Computed fields and staff remarks merged for display."""
        return {
            'id': str(self.pk),
            'student_id': self.student_id,
            'student_name': self.student.full_name,
            'term_id': self.term_id,
            'class_id': self.class_assigned_id,
            'total_score': float(self.total_marks),
            'average_score': float(self.average),
            'subjects_taken': self.subjects_taken,
            'rank': self.position,
            'out_of': self.out_of,
            'attendance': {
                'days_present': self.days_present,
                'total_days': self.total_school_days,
                'percentage': float(self.attendance_percentage) if self.attendance_percentage is not None else None,
            },
            'class_teacher_remark': self.class_teacher_remark,
            'principal_remark': self.head_teacher_remark,
            'results': [grade.to_dict() for grade in self.subject_grades.select_related('subject')],
        }

    class Meta:
        db_table = 'term_report'
        ordering = ['term', 'position']
        verbose_name = 'Term Report'
        verbose_name_plural = 'Term Reports'
        unique_together = ['student', 'term']
        indexes = [
            models.Index(fields=['term', 'class_assigned'], name='term_report_class_idx'),
            models.Index(fields=['term', 'average'], name='term_report_average_idx'),
        ]


class SubjectTermGrade(models.Model):
    """
    Aggregated term grade for a student in a subject.
    A projection of Scores owned by a TermReport and rewritten with it.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    term_report = models.ForeignKey(
        TermReport,
        on_delete=models.CASCADE,
        related_name='subject_grades'
    )
    subject = models.ForeignKey(
        Subject,
        on_delete=models.CASCADE,
        related_name='term_grades',
        db_index=True
    )
    total_score = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        help_text='Weighted subject total (0-100 scale)'
    )

    # Grade (looked up from GradeScale)
    grade = models.CharField(
        max_length=10,
        blank=True,
        help_text='Grade label (e.g., A1, B2)'
    )
    grade_remark = models.CharField(
        max_length=50,
        blank=True,
        help_text='Grade interpretation (e.g., Excellent)'
    )
    grade_point = models.DecimalField(
        max_digits=4,
        decimal_places=2,
        null=True,
        blank=True
    )

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.term_report.student} - {self.subject.name}: {self.total_score}%"

    def to_dict(self):
        return {
            'subject_id': self.subject_id,
            'subject_name': self.subject.name,
            'total_score': float(self.total_score),
            'grade': self.grade,
            'grade_point': float(self.grade_point) if self.grade_point is not None else None,
            'remarks': self.grade_remark,
        }

    class Meta:
        db_table = 'subject_term_grade'
        ordering = ['term_report', 'subject__name']
        verbose_name = 'Subject Term Grade'
        verbose_name_plural = 'Subject Term Grades'
        unique_together = ['term_report', 'subject']
