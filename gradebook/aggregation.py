"""
Subject aggregation: weighted per-subject totals from assessment results.

Each assessment is normalised to a 0-100 scale and scaled by its weight:

    contribution = (score / max_marks) * 100 * (weight / 100)

Weights within a subject are summed as given; they are not required to
add up to 100.
"""
from collections import OrderedDict
from decimal import Decimal, ROUND_HALF_UP

from .exceptions import InvalidScore
from .grading import resolve_grade_or_default

HUNDRED = Decimal('100')
TWO_PLACES = Decimal('0.01')


def quantize(value):
    """Round a Decimal to 2 places, half up."""
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class AssessmentResult:
    """One graded assessment for a student, as supplied by the result store."""

    def __init__(self, student_id, subject_id, assessment_id, term_id,
                 score, max_marks, weight):
        self.student_id = student_id
        self.subject_id = subject_id
        self.assessment_id = assessment_id
        self.term_id = term_id
        self.score = Decimal(str(score))
        self.max_marks = Decimal(str(max_marks))
        self.weight = Decimal(str(weight))

    def __repr__(self):
        return (
            f'AssessmentResult(student={self.student_id}, subject={self.subject_id}, '
            f'assessment={self.assessment_id}, {self.score}/{self.max_marks} @ {self.weight}%)'
        )

    def validate(self):
        if self.max_marks <= 0 or self.score < 0 or self.score > self.max_marks:
            raise InvalidScore(
                self.assessment_id, self.score, self.max_marks, subject_id=self.subject_id
            )

    @property
    def contribution(self):
        """Weighted contribution to the subject total, unrounded."""
        return (self.score / self.max_marks) * HUNDRED * (self.weight / HUNDRED)


class SubjectResult:
    """Aggregated term result for one student in one subject."""

    def __init__(self, student_id, subject_id, term_id, total_score, grade,
                 grade_point=None, remarks='', unscored=False):
        self.student_id = student_id
        self.subject_id = subject_id
        self.term_id = term_id
        self.total_score = total_score
        self.grade = grade
        self.grade_point = grade_point
        self.remarks = remarks
        self.unscored = unscored

    def __repr__(self):
        return f'SubjectResult(subject={self.subject_id}, total={self.total_score}, grade={self.grade})'

    def to_dict(self):
        return {
            'subject_id': self.subject_id,
            'total_score': float(self.total_score),
            'grade': self.grade,
            'grade_point': float(self.grade_point) if self.grade_point is not None else None,
            'remarks': self.remarks,
        }


def group_by_subject(results):
    """Group assessment results by subject, keeping first-seen order."""
    grouped = OrderedDict()
    for result in results:
        grouped.setdefault(result.subject_id, []).append(result)
    return grouped


def aggregate_subject(results, bands, default_label):
    """
    Combine one student's assessment results for a subject into a SubjectResult.

    Args:
        results: AssessmentResults for a single student, subject and term
        bands: Grade bands used to grade the subject total
        default_label: Grade label used when no band matches

    Returns:
        SubjectResult, or None when no weight contributes (the subject is
        left off the report rather than scored as zero)

    Raises:
        InvalidScore: Any score is negative or above its max marks
        ValueError: Results span more than one student, subject or term
    """
    results = list(results)
    if not results:
        return None

    keys = {(r.student_id, r.subject_id, r.term_id) for r in results}
    if len(keys) > 1:
        raise ValueError('aggregate_subject expects results for one student, subject and term')

    for result in results:
        result.validate()

    if sum(r.weight for r in results) == 0:
        return None

    total = quantize(sum(r.contribution for r in results))
    grade_info = resolve_grade_or_default(total, bands, default_label)

    first = results[0]
    return SubjectResult(
        student_id=first.student_id,
        subject_id=first.subject_id,
        term_id=first.term_id,
        total_score=total,
        grade=grade_info['grade'],
        grade_point=grade_info['grade_point'],
        remarks=grade_info['remark'],
        unscored=grade_info['unscored'],
    )
