"""
Grade band lookup.

Maps a 0-100 score to a grade label, grade point and remark using the
bands of a grading system. Bands are passed in by the caller, never
fetched here, so every function in this module is pure.

A band is any object with ``grade_label``, ``min_percentage``,
``max_percentage``, ``grade_point``, ``interpretation`` and ``is_pass``
attributes; GradeScale instances qualify, saved or not.
"""
from decimal import Decimal

from .exceptions import UnscoredGrade

SCORE_FLOOR = Decimal('0')
SCORE_CEILING = Decimal('100')

# Smallest step a stored percentage can take (DecimalField, 2 places)
SCORE_STEP = Decimal('0.01')


def _to_decimal(value):
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def clamp_score(score):
    """Clamp a score into the 0-100 range used by grade bands."""
    return min(max(_to_decimal(score), SCORE_FLOOR), SCORE_CEILING)


def resolve_grade(score, bands):
    """
    Resolve the grade for a score.

    Bounds are inclusive on both ends. When misconfigured bands overlap,
    the matching band with the highest minimum wins.

    Args:
        score: Numeric score; clamped to 0-100 before lookup
        bands: Iterable of grade bands

    Returns:
        dict: {'grade', 'grade_point', 'remark', 'is_passing', 'unscored'}

    Raises:
        UnscoredGrade: No band contains the score
    """
    score = clamp_score(score)
    matches = [
        band for band in bands
        if _to_decimal(band.min_percentage) <= score <= _to_decimal(band.max_percentage)
    ]
    if not matches:
        raise UnscoredGrade(score)

    band = max(matches, key=lambda b: _to_decimal(b.min_percentage))
    return {
        'grade': band.grade_label,
        'grade_point': band.grade_point,
        'remark': band.interpretation,
        'is_passing': band.is_pass,
        'unscored': False,
    }


def resolve_grade_or_default(score, bands, default_label):
    """Resolve a grade, substituting ``default_label`` when no band matches."""
    try:
        return resolve_grade(score, bands)
    except UnscoredGrade:
        return {
            'grade': default_label,
            'grade_point': None,
            'remark': '',
            'is_passing': False,
            'unscored': True,
        }


def find_band_issues(bands):
    """
    Describe overlaps and gaps in a set of bands.

    The resolver tolerates both; this is used to warn about configuration
    that will produce unscored or ambiguous grades.

    Returns:
        list of str: Human-readable issues, empty when bands tile 0-100
    """
    issues = []
    ordered = sorted(bands, key=lambda b: _to_decimal(b.min_percentage))
    if not ordered:
        return ['No grade bands defined']

    for band in ordered:
        if _to_decimal(band.min_percentage) > _to_decimal(band.max_percentage):
            issues.append(f'{band.grade_label}: minimum is greater than maximum')

    first_min = _to_decimal(ordered[0].min_percentage)
    if first_min > SCORE_FLOOR:
        issues.append(f'Scores below {first_min} have no grade')

    for previous, band in zip(ordered, ordered[1:]):
        prev_max = _to_decimal(previous.max_percentage)
        band_min = _to_decimal(band.min_percentage)
        if band_min <= prev_max:
            issues.append(f'{previous.grade_label} and {band.grade_label} overlap')
        elif band_min - prev_max > SCORE_STEP:
            issues.append(
                f'Scores between {prev_max} and {band_min} have no grade '
                f'({previous.grade_label}/{band.grade_label})'
            )

    last_max = max(_to_decimal(b.max_percentage) for b in ordered)
    if last_max < SCORE_CEILING:
        issues.append(f'Scores above {last_max} have no grade')

    return issues
