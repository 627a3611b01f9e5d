"""
Result objects returned by batch operations.

Partial success is the normal case for class-wide work, so every batch
reports per-item outcomes and an "N of M succeeded" summary.
"""
from typing import Any, Dict, List, Optional

from .exceptions import GradebookError


class ItemOutcome:
    """Outcome of one unit of work (one student) inside a batch."""

    def __init__(
        self,
        key,
        success: bool,
        message: str = '',
        data: Optional[Dict[str, Any]] = None,
        error: Optional[Exception] = None,
        issues: Optional[List[GradebookError]] = None,
    ):
        self.key = key
        self.success = success
        self.message = message
        self.data = data or {}
        self.error = error
        self.issues = issues or []

    def to_dict(self) -> Dict:
        result = {
            'key': self.key,
            'success': self.success,
            'message': self.message,
        }
        if self.data:
            result['data'] = self.data
        if self.error is not None:
            result['error'] = _error_dict(self.error)
        if self.issues:
            result['issues'] = [_error_dict(issue) for issue in self.issues]
        return result


class BatchOutcome:
    """Collects per-item outcomes for a class-wide operation."""

    def __init__(self, operation: str):
        self.operation = operation
        self.items: List[ItemOutcome] = []

    def add_success(self, key, message='', data=None, issues=None) -> ItemOutcome:
        item = ItemOutcome(key, True, message=message, data=data, issues=issues)
        self.items.append(item)
        return item

    def add_failure(self, key, error, message='') -> ItemOutcome:
        item = ItemOutcome(key, False, message=message or str(error), error=error)
        self.items.append(item)
        return item

    @property
    def successes(self) -> List[ItemOutcome]:
        return [item for item in self.items if item.success]

    @property
    def failures(self) -> List[ItemOutcome]:
        return [item for item in self.items if not item.success]

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def succeeded(self) -> int:
        return len(self.successes)

    @property
    def summary(self) -> str:
        return f'{self.succeeded} of {self.total} succeeded'

    def get(self, key) -> Optional[ItemOutcome]:
        for item in self.items:
            if item.key == key:
                return item
        return None

    def to_dict(self) -> Dict:
        return {
            'operation': self.operation,
            'count': self.succeeded,
            'total': self.total,
            'summary': self.summary,
            'results': [item.to_dict() for item in self.items],
        }


def _error_dict(error) -> Dict:
    if isinstance(error, GradebookError):
        return error.to_dict()
    return {'code': 'error', 'message': str(error)}
