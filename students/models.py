from django.db import models
from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _


class Student(models.Model):
    """
    Represents a student enrolled in a school.
    """
    class Gender(models.TextChoices):
        MALE = 'M', _('Male')
        FEMALE = 'F', _('Female')

    class Status(models.TextChoices):
        ACTIVE = 'active', _('Active')
        GRADUATED = 'graduated', _('Graduated')
        WITHDRAWN = 'withdrawn', _('Withdrawn')
        SUSPENDED = 'suspended', _('Suspended')
        TRANSFERRED = 'transferred', _('Transferred')

    school = models.ForeignKey(
        'schools.School',
        on_delete=models.CASCADE,
        related_name='students'
    )

    # Personal Information
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    other_names = models.CharField(max_length=100, blank=True)
    gender = models.CharField(max_length=1, choices=Gender.choices, blank=True)

    # Admission Details
    admission_number = models.CharField(
        max_length=50,
        help_text="Unique student ID/admission number within the school"
    )

    # Enrollment
    current_class = models.ForeignKey(
        'academics.Class',
        on_delete=models.PROTECT,
        related_name='students',
        null=True,
        blank=True
    )

    # Status
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE
    )

    # Metadata
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['last_name', 'first_name']
        verbose_name = "Student"
        verbose_name_plural = "Students"
        unique_together = ['school', 'admission_number']

    def __str__(self):
        return f"{self.full_name} ({self.admission_number})"

    @property
    def full_name(self):
        """Return full name of student."""
        names = [self.first_name]
        if self.other_names:
            names.append(self.other_names)
        names.append(self.last_name)
        return ' '.join(names)

    def get_movement_history(self):
        """Return all class movements, newest first."""
        return self.class_movements.select_related(
            'from_class', 'to_class', 'term'
        ).order_by('-created_at')


class ClassMovement(models.Model):
    """
    Audit record of a class reassignment (promotion, retention or otherwise).
    Rows are append-only: they are never updated or deleted once written.
    """
    class Action(models.TextChoices):
        PROMOTE = 'PROMOTE', _('Promote')
        RETAIN = 'RETAIN', _('Retain')

    student = models.ForeignKey(
        Student,
        on_delete=models.PROTECT,
        related_name='class_movements'
    )
    from_class = models.ForeignKey(
        'academics.Class',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements_out'
    )
    to_class = models.ForeignKey(
        'academics.Class',
        on_delete=models.PROTECT,
        related_name='movements_in'
    )
    term = models.ForeignKey(
        'core.Term',
        on_delete=models.PROTECT,
        related_name='class_movements',
        help_text="Term whose results the decision was based on"
    )
    action = models.CharField(max_length=10, choices=Action.choices)
    reason = models.TextField(blank=True)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='class_movements'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = "Class Movement"
        verbose_name_plural = "Class Movements"
        indexes = [
            models.Index(fields=['student', 'term'], name='classmove_student_term_idx'),
        ]

    def __str__(self):
        return f"{self.student} {self.from_class} -> {self.to_class} ({self.get_action_display()})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError('Class movements are append-only and cannot be changed.')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError('Class movements are append-only and cannot be deleted.')
