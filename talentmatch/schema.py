from typing import Any, Dict, List

REQUIRED_QUERY_STR_FIELDS = ["primary_title", "industry"]
QUERY_LIST_FIELDS = [
    "alternate_titles",
    "core_responsibilities",
    "skill_groups",
    "expanded_keywords",
]


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _is_number(v: Any) -> bool:
    """Numbers and numeric strings count; NaN and booleans do not."""
    if isinstance(v, bool):
        return False
    try:
        f = float(v)
    except (TypeError, ValueError):
        return False
    return f == f


def validate_expanded_query(data: Any) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    List fields may be missing or null (they default to []).
    """
    if not isinstance(data, dict):
        return ["Expanded query must be a JSON object"]

    errors: List[str] = []

    for f in REQUIRED_QUERY_STR_FIELDS:
        if f not in data:
            errors.append(f"Missing required field: {f}")
        elif not _is_non_empty_str(data[f]):
            errors.append(f"Field '{f}' must be a non-empty string")

    for f in QUERY_LIST_FIELDS:
        value = data.get(f)
        if value is None:
            continue
        if not isinstance(value, list):
            errors.append(f"Field '{f}' must be a list if provided")
        elif not all(isinstance(item, str) for item in value):
            errors.append(f"Field '{f}' must contain only strings")

    return errors


def normalize_expanded_query(data: Dict[str, Any]) -> Dict[str, Any]:
    """Fill missing list fields with [] and strip the required strings."""
    normalized = {f: data[f].strip() for f in REQUIRED_QUERY_STR_FIELDS}
    for f in QUERY_LIST_FIELDS:
        normalized[f] = [item.strip() for item in data.get(f) or [] if item.strip()]
    return normalized


def validate_batch_item(item: Any) -> List[str]:
    """Validate one entry of a batch scoring response."""
    if not isinstance(item, dict):
        return ["Batch item must be a JSON object"]

    errors: List[str] = []

    candidate_id = item.get("candidate_id")
    if candidate_id is None or (isinstance(candidate_id, str) and not candidate_id.strip()):
        errors.append("Missing required field: candidate_id")

    if "llm_score" not in item:
        errors.append("Missing required field: llm_score")
    elif not _is_number(item["llm_score"]):
        errors.append("Field 'llm_score' must be a number")

    explanation = item.get("explanation")
    if explanation is not None and not isinstance(explanation, str):
        errors.append("Field 'explanation' must be a string if provided")

    return errors
