"""
Store boundary for case documents.

``prepare_case_for_store`` turns a ``Case`` into the JSON document kept by
the repository; ``parse_case_from_store`` validates a stored document back
into a ``Case`` and refuses anything malformed instead of defaulting it.
"""
from typing import Any, Dict

from pydantic import ValidationError as PydanticValidationError

from lexmarket.cases.schemas import Case, Milestone
from lexmarket.exceptions import MalformedDocumentError

# Optional list fields are left out of the document when empty
_OMIT_WHEN_EMPTY = ("tags", "documents")


def prepare_milestone_for_store(milestone: Milestone) -> Dict[str, Any]:
    data = milestone.model_dump(mode="json", exclude_none=True)
    # Amounts are stored as numbers, not decimal strings
    data["amount"] = float(milestone.amount)
    return data


def prepare_case_for_store(case: Case) -> Dict[str, Any]:
    """Convert a case to its stored document. The id lives outside the document."""
    data = case.model_dump(
        mode="json",
        exclude={"case_id", "milestones"},
        exclude_none=True,
    )
    data["milestones"] = [prepare_milestone_for_store(m) for m in case.milestones]
    for field in _OMIT_WHEN_EMPTY:
        if not data.get(field):
            data.pop(field, None)
    return data


def parse_case_from_store(data: Any, case_id: str) -> Case:
    """Convert a stored document to a ``Case``."""
    if not isinstance(data, dict):
        raise MalformedDocumentError("case", case_id, f"expected an object, got {type(data).__name__}")
    try:
        return Case.model_validate({**data, "case_id": case_id})
    except PydanticValidationError as exc:
        raise MalformedDocumentError("case", case_id, str(exc)) from exc
