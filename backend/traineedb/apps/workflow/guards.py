from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy.orm import Session

GuardResult = List[Dict[str, str]]

PERFORMANCE_RATING_MIN = 1
PERFORMANCE_RATING_MAX = 10


def _get_value(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def guard_trainee_decision(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    missing = []
    if not _get_value(after_obj, "approved_by"):
        missing.append({"field": "approved_by", "reason": "deciding admin required"})
    if not _get_value(after_obj, "approved_at"):
        missing.append({"field": "approved_at", "reason": "decision timestamp required"})
    return missing


def guard_project_completion(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    missing = []

    if not _get_value(after_obj, "project_report_path") or not _get_value(after_obj, "attendance_document_path"):
        missing.append({"field": "documents", "reason": "both documents required"})

    rating = _get_value(after_obj, "performance_rating")
    if rating is None or isinstance(rating, bool) or not isinstance(rating, int):
        missing.append({"field": "performance_rating", "reason": "performance rating (1-10) required"})
    elif not PERFORMANCE_RATING_MIN <= rating <= PERFORMANCE_RATING_MAX:
        missing.append({"field": "performance_rating", "reason": "performance rating must be between 1 and 10"})

    if not _get_value(after_obj, "end_date"):
        missing.append({"field": "end_date", "reason": "completion date required"})
    return missing


def guard_review_completion(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    missing = []
    if not _get_value(after_obj, "reviewed_by"):
        missing.append({"field": "reviewed_by", "reason": "reviewing admin required"})
    if not _get_value(after_obj, "reviewed_at"):
        missing.append({"field": "reviewed_at", "reason": "review timestamp required"})
    return missing
