from django.db import models


class School(models.Model):
    """
    A school (tenant). Every class, student and grading system belongs to
    exactly one school; tenant configuration is looked up through it.
    """
    # Basic Info
    name = models.CharField(max_length=100)
    short_name = models.CharField(max_length=20, blank=True, help_text="Short name for sidebar display")
    code = models.SlugField(
        max_length=30,
        unique=True,
        help_text="Stable identifier used by management commands (e.g., demo)"
    )

    # Administration
    headmaster_name = models.CharField(max_length=100, blank=True, verbose_name="Head's Name")
    headmaster_title = models.CharField(max_length=50, blank=True, default="Headmaster", verbose_name="Head's Title")

    is_active = models.BooleanField(default=True)

    # Metadata
    created_on = models.DateField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        verbose_name = "School"
        verbose_name_plural = "Schools"

    def __str__(self):
        return self.name

    @property
    def display_name(self):
        """Return short_name if available, otherwise name."""
        return self.short_name or self.name
