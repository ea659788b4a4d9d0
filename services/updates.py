"""
Typed partial updates.

Request bodies are mapped onto dataclasses through a fixed table of accepted
keys (camelCase and snake_case spellings). Unknown keys are ignored, and only
attributes listed here can ever reach a model.
"""

import math
import re
from dataclasses import dataclass, fields
from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from services.errors import ValidationError

MAX_TITLE_LENGTH = 255
_INTEGER_RE = re.compile(r'^-?[0-9]+$')


class _Unset:
    """Marker for a field the request did not mention."""

    def __repr__(self):
        return 'UNSET'

    def __bool__(self):
        return False


UNSET: Any = _Unset()


def _parse_title(value) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Title is required")
    value = value.strip()
    if len(value) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Title must be at most {MAX_TITLE_LENGTH} characters")
    return value


def _parse_optional_text(value) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("Expected a string value")
    return value


def _parse_optional_int(value) -> Optional[int]:
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise ValidationError("Expected an integer value")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Expected an integer value, got {value!r}")


def _parse_optional_float(value) -> Optional[float]:
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise ValidationError("Expected a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Expected a number, got {value!r}")
    if not math.isfinite(number):
        raise ValidationError(f"Expected a finite number, got {value!r}")
    return number


def _parse_optional_date(value) -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError("Invalid date format. Use YYYY-MM-DD")


def _parse_optional_id(value) -> Optional[str]:
    if value is None or value == '':
        return None
    if not isinstance(value, str):
        raise ValidationError("Expected an identifier string")
    return value


def _parse_bool(value) -> bool:
    if not isinstance(value, bool):
        raise ValidationError("Expected true or false")
    return value


class PartialUpdate:
    """Shared from_payload()/changes() for the update dataclasses."""

    # payload key -> (attribute, parser)
    ACCEPTED_KEYS: Dict[str, tuple] = {}

    @classmethod
    def from_payload(cls, payload: Optional[dict]):
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")
        values = {}
        for key, (attr, parser) in cls.ACCEPTED_KEYS.items():
            if key in payload:
                values[attr] = parser(payload[key])
        return cls(**values)

    def changes(self) -> Dict[str, Any]:
        """Only the fields the request actually set."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def is_empty(self) -> bool:
        return not self.changes()


@dataclass
class TaskUpdate(PartialUpdate):
    title: Union[str, _Unset] = UNSET
    description: Union[Optional[str], _Unset] = UNSET
    member_id: Union[Optional[int], _Unset] = UNSET
    requester_id: Union[Optional[int], _Unset] = UNSET
    start_date: Union[Optional[date], _Unset] = UNSET
    due_date: Union[Optional[date], _Unset] = UNSET
    effort: Union[Optional[float], _Unset] = UNSET
    priority_id: Union[Optional[int], _Unset] = UNSET
    priority: Union[Optional[str], _Unset] = UNSET  # priority name, resolved to priority_id
    column_id: Union[Optional[str], _Unset] = UNSET

    ACCEPTED_KEYS = {
        'title': ('title', _parse_title),
        'description': ('description', _parse_optional_text),
        'memberId': ('member_id', _parse_optional_int),
        'member_id': ('member_id', _parse_optional_int),
        'requesterId': ('requester_id', _parse_optional_int),
        'requester_id': ('requester_id', _parse_optional_int),
        'startDate': ('start_date', _parse_optional_date),
        'start_date': ('start_date', _parse_optional_date),
        'dueDate': ('due_date', _parse_optional_date),
        'due_date': ('due_date', _parse_optional_date),
        'effort': ('effort', _parse_optional_float),
        'priorityId': ('priority_id', _parse_optional_int),
        'priority_id': ('priority_id', _parse_optional_int),
        'priority': ('priority', _parse_optional_text),
        'columnId': ('column_id', _parse_optional_id),
        'column_id': ('column_id', _parse_optional_id),
    }

    # attributes copied straight onto Task
    SCALAR_FIELDS = ('title', 'description', 'member_id', 'requester_id',
                     'start_date', 'due_date', 'effort', 'priority_id')


@dataclass
class ColumnUpdate(PartialUpdate):
    title: Union[str, _Unset] = UNSET
    is_finished: Union[bool, _Unset] = UNSET
    is_archived: Union[bool, _Unset] = UNSET

    ACCEPTED_KEYS = {
        'title': ('title', _parse_title),
        'is_finished': ('is_finished', _parse_bool),
        'isFinished': ('is_finished', _parse_bool),
        'is_archived': ('is_archived', _parse_bool),
        'isArchived': ('is_archived', _parse_bool),
    }


def parse_title(value) -> str:
    return _parse_title(value)


def parse_position(value, name: str = 'newPosition') -> int:
    """Integer position from a request body; range checks happen in the ordering layer."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INTEGER_RE.match(value.strip()):
        return int(value)
    raise ValidationError(f"{name} must be an integer")
