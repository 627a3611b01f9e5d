import logging

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from gradebook.views.base import (
    admin_required, json_view, parse_json_body, require_fields, MalformedRequest,
)
from students.promotion import list_promotion_candidates, process_promotions

logger = logging.getLogger(__name__)


@login_required
@admin_required
@require_GET
@json_view
def promotion_candidates(request):
    """Recommended PROMOTE/RETAIN actions for a class, from its term reports."""
    class_id, term_id = require_fields(request.GET, 'class_id', 'term_id')
    candidates = list_promotion_candidates(class_id, term_id)
    return JsonResponse({
        'status': 'success',
        'count': len(candidates),
        'candidates': [candidate.to_dict() for candidate in candidates],
    })


@login_required
@admin_required
@require_POST
@json_view
def promotion_process(request):
    """Commit promotion decisions; each student succeeds or fails on its own."""
    payload = parse_json_body(request)
    term_id, decisions = require_fields(payload, 'term_id', 'decisions')
    if not isinstance(decisions, list) or not all(isinstance(d, dict) for d in decisions):
        raise MalformedRequest('decisions must be a list of objects')

    batch = process_promotions(
        decisions,
        term_id,
        changed_by=request.user,
        force=bool(payload.get('force')),
    )
    return JsonResponse({'status': 'success', **batch.to_dict()})
