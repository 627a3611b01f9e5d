"""
Error taxonomy for report generation, ranking and promotion.

Per-subject and per-student errors are collected on batch outcomes;
only GradingConfigurationError aborts a whole operation.
"""


class GradebookError(Exception):
    """Base class for all gradebook errors."""

    code = 'gradebook_error'

    def to_dict(self):
        return {'code': self.code, 'message': str(self)}


class InvalidScore(GradebookError):
    """A raw score is negative or exceeds the assessment's maximum marks."""

    code = 'invalid_score'

    def __init__(self, assessment_id, score, max_marks, subject_id=None):
        self.assessment_id = assessment_id
        self.score = score
        self.max_marks = max_marks
        self.subject_id = subject_id
        super().__init__(
            f'Score {score} is outside 0-{max_marks} for assessment {assessment_id}'
        )


class UnscoredGrade(GradebookError):
    """No grade band matches a computed score."""

    code = 'unscored_grade'

    def __init__(self, score, subject_id=None):
        self.score = score
        self.subject_id = subject_id
        super().__init__(f'No grade band matches score {score}')


class NoGradedSubjects(GradebookError):
    """
    The student has no graded assessments for the term.

    Not raised: attached to a report outcome so callers can warn instead of
    showing a silent 0%.
    """

    code = 'no_graded_subjects'

    def __init__(self, student_id, term_id):
        self.student_id = student_id
        self.term_id = term_id
        super().__init__(f'Student {student_id} has no graded subjects in term {term_id}')


class RankingDataStale(GradebookError):
    """A report was regenerated after the last ranking pass for its class."""

    code = 'ranking_data_stale'

    def __init__(self, student_id, term_id):
        self.student_id = student_id
        self.term_id = term_id
        super().__init__(
            f'Rank for student {student_id} in term {term_id} is stale; rank the class again'
        )


class MovementConflict(GradebookError):
    """A class movement already exists for the student and term."""

    code = 'movement_conflict'

    def __init__(self, student_id, term_id):
        self.student_id = student_id
        self.term_id = term_id
        super().__init__(
            f'Student {student_id} already has a class movement for term {term_id}'
        )


class RecordNotFound(GradebookError):
    """A referenced student, class, term or report does not exist."""

    code = 'not_found'

    def __init__(self, kind, pk):
        self.kind = kind
        self.pk = pk
        super().__init__(f'{kind} {pk} not found')


class GradingConfigurationError(GradebookError):
    """The school's grading configuration is unusable (e.g., no grade bands)."""

    code = 'grading_configuration'


class InvalidDecision(GradebookError):
    """A promotion decision is malformed (unknown action, no target class)."""

    code = 'invalid_decision'
