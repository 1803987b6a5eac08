"""
Single-field validators and validation issue records.

A validator inspects one control value and returns the error parameters when
the value fails, or None when it passes. Empty values only ever fail the
``required`` check; range, length and pattern checks skip them so that an
optional field can be left blank.
"""

import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class ErrorScope(str, Enum):
    """Where a validation issue belongs."""
    FIELD = "field"
    GROUP = "group"
    FORM = "form"


@dataclass(frozen=True)
class ValidationIssue:
    """
    One validation problem ready for reporting.

    Attributes:
        scope: field, group (array item) or form level
        path: Control path; for group issues the array path
        kind: Error code, e.g. ``required`` or ``usedPortsExceeded``
        message: Human-readable message
        params: Values involved in the failed check
        item_index: Array item position for group issues
        sub_field: Sub-field name for group issues
    """
    scope: ErrorScope
    path: str
    kind: str
    message: str
    params: Dict[str, Any] = field(default_factory=dict)
    item_index: Optional[int] = None
    sub_field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'scope': self.scope.value,
            'path': self.path,
            'kind': self.kind,
            'message': self.message,
            'params': dict(self.params)
        }
        if self.scope == ErrorScope.GROUP:
            data['item_index'] = self.item_index
            data['sub_field'] = self.sub_field
        return data


class FieldValidator:
    """A named check over a single control value."""

    def __init__(self, kind: str, check: Callable[[Any], Optional[Dict[str, Any]]]):
        self.kind = kind
        self._check = check

    def __call__(self, value: Any) -> Optional[Dict[str, Any]]:
        return self._check(value)

    def __repr__(self) -> str:
        return f"FieldValidator({self.kind!r})"


def is_empty(value: Any) -> bool:
    """True for None, empty strings and empty collections."""
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value) == 0
    return False


def to_number(value: Any) -> Optional[float]:
    """
    Interpret a control value as a number.

    Args:
        value: Raw control value (number or numeric string)

    Returns:
        int or float, or None for empty, boolean or non-numeric values
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def required() -> FieldValidator:
    def check(value):
        if is_empty(value):
            return {}
        return None
    return FieldValidator('required', check)


def min_value(limit: float) -> FieldValidator:
    def check(value):
        number = to_number(value)
        if number is not None and number < limit:
            return {'min': limit, 'actual': number}
        return None
    return FieldValidator('min', check)


def max_value(limit: float) -> FieldValidator:
    def check(value):
        number = to_number(value)
        if number is not None and number > limit:
            return {'max': limit, 'actual': number}
        return None
    return FieldValidator('max', check)


def min_length(limit: int) -> FieldValidator:
    def check(value):
        if is_empty(value) or not hasattr(value, '__len__'):
            return None
        if len(value) < limit:
            return {'required_length': limit, 'actual_length': len(value)}
        return None
    return FieldValidator('min_length', check)


def max_length(limit: int) -> FieldValidator:
    def check(value):
        if is_empty(value) or not hasattr(value, '__len__'):
            return None
        if len(value) > limit:
            return {'required_length': limit, 'actual_length': len(value)}
        return None
    return FieldValidator('max_length', check)


def pattern(regex: str) -> FieldValidator:
    compiled = re.compile(regex)

    def check(value):
        if is_empty(value):
            return None
        if not compiled.fullmatch(str(value)):
            return {'required_pattern': regex, 'actual': value}
        return None
    return FieldValidator('pattern', check)


def build_validators(config: Any) -> List[FieldValidator]:
    """
    Build the validator list for a field from its declared constraints.

    Args:
        config: Object exposing ``required``, ``min_value``, ``max_value``,
            ``min_length``, ``max_length`` and ``pattern`` attributes
            (a FieldDescriptor)

    Returns:
        Validators in evaluation order
    """
    validators: List[FieldValidator] = []

    if getattr(config, 'required', False):
        validators.append(required())
    if getattr(config, 'min_length', None) is not None:
        validators.append(min_length(config.min_length))
    if getattr(config, 'max_length', None) is not None:
        validators.append(max_length(config.max_length))
    if getattr(config, 'min_value', None) is not None:
        validators.append(min_value(config.min_value))
    if getattr(config, 'max_value', None) is not None:
        validators.append(max_value(config.max_value))
    if getattr(config, 'pattern', None):
        validators.append(pattern(config.pattern))

    return validators


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def describe_field_error(label: str, kind: str, params: Dict[str, Any]) -> str:
    """Build the user-facing message for a single-field error."""
    if kind == 'required':
        return f"{label} is required"
    if kind == 'min':
        return f"{label} must be at least {_format_number(params.get('min'))}"
    if kind == 'max':
        return f"{label} must be at most {_format_number(params.get('max'))}"
    if kind == 'min_length':
        return f"{label} must be at least {params.get('required_length')} characters"
    if kind == 'max_length':
        return f"{label} must be at most {params.get('required_length')} characters"
    if kind == 'pattern':
        return f"{label} has an invalid format"
    return f"{label} is invalid ({kind})"
