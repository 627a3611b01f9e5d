import logging

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from .base import (
    admin_required, forbidden, is_class_teacher, is_school_admin,
    json_view, parse_json_body, require_fields, MalformedRequest,
)
from ..exceptions import RankingDataStale
from ..ranking import rank_class
from ..reports import (
    generate_class_reports, generate_student_report, get_class_reports,
    get_student_report, update_report_remarks,
)

logger = logging.getLogger(__name__)


def _report_payload(report):
    data = report.to_dict()
    try:
        report.get_rank()
        data['rank_stale'] = False
    except RankingDataStale:
        data['rank_stale'] = True
    return data


@login_required
@admin_required
@require_POST
@json_view
def generate_report(request):
    """Generate (or regenerate) one student's term report."""
    student_id, term_id = require_fields(parse_json_body(request), 'student_id', 'term_id')
    outcome = generate_student_report(student_id, term_id)
    return JsonResponse({'status': 'success', **outcome.to_dict()})


@login_required
@admin_required
@require_POST
@json_view
def generate_class(request):
    """
    Generate reports for a whole class.

    With ``"async": true`` the work is queued as a Celery task that also
    ranks the class once generation is done.
    """
    payload = parse_json_body(request)
    class_id, term_id = require_fields(payload, 'class_id', 'term_id')

    if payload.get('async'):
        from ..tasks import generate_and_rank_class_reports
        result = generate_and_rank_class_reports.delay(class_id, term_id)
        logger.info(f"Queued report run for class {class_id}, term {term_id}: task {result.id}")
        return JsonResponse({'status': 'queued', 'task_id': result.id}, status=202)

    batch = generate_class_reports(class_id, term_id)
    return JsonResponse({'status': 'success', **batch.to_dict()})


@login_required
@admin_required
@require_POST
@json_view
def rank(request):
    """Re-rank a class for a term."""
    class_id, term_id = require_fields(parse_json_body(request), 'class_id', 'term_id')
    batch = rank_class(class_id, term_id)
    return JsonResponse({'status': 'success', **batch.to_dict()})


@login_required
@require_GET
@json_view
def report_detail(request, student_id, term_id):
    """A student's report: computed fields and staff remarks together."""
    report = get_student_report(student_id, term_id)
    if not (is_school_admin(request.user) or is_class_teacher(request.user, report.class_assigned)):
        return forbidden()
    return JsonResponse({'status': 'success', 'report': _report_payload(report)})


@login_required
@admin_required
@require_GET
@json_view
def class_reports(request, class_id, term_id):
    """Reports of a class's current students, ranked first."""
    reports = get_class_reports(class_id, term_id)
    return JsonResponse({
        'status': 'success',
        'count': len(reports),
        'reports': [_report_payload(report) for report in reports],
    })


@login_required
@require_POST
@json_view
def update_remarks(request, student_id, term_id):
    """Update class teacher and/or principal remarks on a report."""
    payload = parse_json_body(request)
    class_teacher_remark = payload.get('class_teacher_remark')
    principal_remark = payload.get('principal_remark')
    if class_teacher_remark is None and principal_remark is None:
        raise MalformedRequest('Provide class_teacher_remark and/or principal_remark')
    for value in (class_teacher_remark, principal_remark):
        if value is not None and not isinstance(value, str):
            raise MalformedRequest('Remarks must be strings')

    report = get_student_report(student_id, term_id)
    if not is_school_admin(request.user):
        # Class teachers may write their own remark, never the principal's
        if principal_remark is not None or not is_class_teacher(request.user, report.class_assigned):
            return forbidden()

    report = update_report_remarks(
        student_id, term_id,
        class_teacher_remark=class_teacher_remark,
        principal_remark=principal_remark,
    )
    return JsonResponse({'status': 'success', 'report': _report_payload(report)})
