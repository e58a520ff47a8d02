"""
Layer 2 Response Validation

Strict one-to-one check of an assignment response against the candidate
set. Every violation is reported so a retry prompt can fix them all at once.
"""

import re
from typing import Any, Collection, Dict, List, Sequence

from ..common.llm_utils import parse_llm_json
from ..common.schemas import (
    Assignment,
    AssignmentAction,
    CandidateActivity,
    ValidationResult,
)

ACTION_PATTERN = re.compile(r"^(KEEP|MOVE|NEW):(.*)$", re.DOTALL)


def validate_assignments(
    raw: str,
    candidates: Sequence[CandidateActivity],
    existing_cluster_ids: Collection[str],
) -> ValidationResult:
    """
    Validate a raw LLM response.

    Args:
        raw: Response text (code fences and surrounding prose tolerated)
        candidates: Candidates the response must cover exactly
        existing_cluster_ids: Ids a KEEP/MOVE target may reference

    Returns:
        ValidationResult; ``assignments`` is filled only when valid
    """
    try:
        data = parse_llm_json(raw)
    except ValueError as e:
        return ValidationResult(valid=False, errors=[f"Response is not valid JSON: {e}"])

    if not isinstance(data, dict):
        return ValidationResult(
            valid=False,
            errors=[f"Response must be a JSON object, got {_json_type(data)}"],
        )

    existing = set(existing_cluster_ids)
    by_id = {c.id: c for c in candidates}
    errors: List[str] = []
    assignments: Dict[str, Assignment] = {}

    for candidate_id in by_id:
        if candidate_id not in data:
            errors.append(f"Missing assignment for candidate {candidate_id}")

    for key in data:
        if key not in by_id:
            errors.append(f"Unknown key {key!r} is not a candidate id")

    for candidate_id, value in data.items():
        candidate = by_id.get(candidate_id)
        if candidate is None:
            continue

        if not isinstance(value, str):
            errors.append(f"{candidate_id}: value must be a string like 'MOVE:<cluster_id>', got {_json_type(value)}")
            continue

        match = ACTION_PATTERN.match(value)
        if not match:
            errors.append(f"{candidate_id}: {value!r} does not match KEEP:<id>, MOVE:<id> or NEW:<name>")
            continue

        action = AssignmentAction(match.group(1))
        target = match.group(2).strip()
        error = _check_action(candidate, action, target, existing)
        if error:
            errors.append(f"{candidate_id}: {error}")
        else:
            assignments[candidate_id] = Assignment(action=action, target=target)

    if errors:
        return ValidationResult(valid=False, errors=errors)
    return ValidationResult(valid=True, assignments=assignments)


def _check_action(
    candidate: CandidateActivity,
    action: AssignmentAction,
    target: str,
    existing: Collection[str],
):
    current = candidate.current_cluster_id

    if action == AssignmentAction.KEEP:
        if current is None:
            return f"KEEP is invalid for an unclustered activity; use MOVE or NEW instead of KEEP:{target}"
        if target != current:
            return f"KEEP:{target} does not match current cluster {current}; use MOVE:{target} instead"
        if target not in existing:
            return f"KEEP target {target} is not an existing cluster"
        return None

    if action == AssignmentAction.MOVE:
        if target not in existing:
            return f"MOVE target {target!r} is not an existing cluster id"
        if current is not None and target == current:
            return f"MOVE:{target} is the current cluster; use KEEP:{target} instead"
        return None

    if not target:
        return "NEW requires a non-empty cluster name"
    return None


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return type(value).__name__
