"""
Cross-field business rules for element forms.

Each element type may declare a list of ``form_rules`` in the schema
document. A rule names one of the checks below and maps its roles to field
paths of the same form, e.g.::

    - rule: capacity
      code: usedPortsExceeded
      total: totalPortCapacity
      used: usedPorts

Rules only fire when the values they compare are present and numeric; an
empty field is reported by its own field validators instead.
"""

import logging
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, model_validator

from .validators import ErrorScope, ValidationIssue, is_empty, to_number

logger = logging.getLogger(__name__)

SPLIT_RATIO_PATTERN = re.compile(r'1:(\d+)')

# Roles each rule needs, in the order they are reported
RULE_ROLES: Dict[str, Tuple[str, ...]] = {
    'port_budget': ('total', 'parts'),
    'power_ordering': ('transmit', 'receive'),
    'ratio_consistency': ('ratio', 'count'),
    'capacity': ('total', 'used'),
    'identity': ('source', 'target'),
}

DEFAULT_CODES: Dict[str, str] = {
    'port_budget': 'portCountExceeded',
    'power_ordering': 'invalidPowerValues',
    'ratio_consistency': 'invalidSplitRatio',
    'capacity': 'capacityExceeded',
    'identity': 'sameSourceAndTarget',
}

CrossFieldValidator = Callable[[Mapping[str, Any]], List[ValidationIssue]]


class FormRuleSpec(BaseModel):
    """Declarative binding of a cross-field rule to the fields of one element type."""

    model_config = ConfigDict(frozen=True, extra='forbid')

    rule: str
    code: Optional[str] = None
    total: Optional[str] = None
    parts: Optional[Tuple[str, ...]] = None
    used: Optional[str] = None
    transmit: Optional[str] = None
    receive: Optional[str] = None
    ratio: Optional[str] = None
    count: Optional[str] = None
    source: Optional[str] = None
    target: Optional[str] = None

    @model_validator(mode='after')
    def _check_roles(self) -> 'FormRuleSpec':
        if self.rule not in RULE_ROLES:
            raise ValueError(f"Unknown form rule '{self.rule}'. Supported rules: {sorted(RULE_ROLES)}")

        missing = [role for role in RULE_ROLES[self.rule] if not getattr(self, role)]
        if missing:
            raise ValueError(f"Form rule '{self.rule}' is missing: {', '.join(missing)}")

        unused = [
            name for name in ('total', 'parts', 'used', 'transmit', 'receive',
                              'ratio', 'count', 'source', 'target')
            if getattr(self, name) is not None and name not in RULE_ROLES[self.rule]
        ]
        if unused:
            raise ValueError(f"Form rule '{self.rule}' does not take: {', '.join(unused)}")
        return self

    @property
    def error_code(self) -> str:
        return self.code or DEFAULT_CODES[self.rule]

    def referenced_paths(self) -> List[str]:
        """All field paths this rule reads."""
        paths: List[str] = []
        for role in RULE_ROLES[self.rule]:
            value = getattr(self, role)
            if isinstance(value, tuple):
                paths.extend(value)
            else:
                paths.append(value)
        return paths


def _label(labels: Mapping[str, str], path: str) -> str:
    return labels.get(path, path)


def _issue(spec: FormRuleSpec, path: str, message: str, **params: Any) -> ValidationIssue:
    return ValidationIssue(
        scope=ErrorScope.FORM,
        path=path,
        kind=spec.error_code,
        message=message,
        params=params
    )


def check_port_budget(values: Mapping[str, Any], spec: FormRuleSpec,
                      labels: Mapping[str, str]) -> Optional[ValidationIssue]:
    """Sum of the declared sub-port counts must not exceed the total port count."""
    total = to_number(values.get(spec.total))
    if total is None:
        return None

    used = 0
    for part in spec.parts:
        used += to_number(values.get(part)) or 0

    if used > total:
        parts = ', '.join(_label(labels, part) for part in spec.parts)
        return _issue(
            spec, spec.total,
            f"The sum of {parts} ({used}) exceeds {_label(labels, spec.total)} ({total})",
            actual=used, max=total
        )
    return None


def check_power_ordering(values: Mapping[str, Any], spec: FormRuleSpec,
                         labels: Mapping[str, str]) -> Optional[ValidationIssue]:
    """Transmit level must be greater than or equal to receive level."""
    transmit = to_number(values.get(spec.transmit))
    receive = to_number(values.get(spec.receive))
    if transmit is None or receive is None:
        return None

    if transmit < receive:
        return _issue(
            spec, spec.transmit,
            f"{_label(labels, spec.transmit)} ({transmit}) must be greater than or equal to "
            f"{_label(labels, spec.receive)} ({receive})",
            actual=transmit, min=receive
        )
    return None


def check_ratio_consistency(values: Mapping[str, Any], spec: FormRuleSpec,
                            labels: Mapping[str, str]) -> Optional[ValidationIssue]:
    """The N of a "1:N" ratio must equal the declared output count."""
    ratio = values.get(spec.ratio)
    if is_empty(ratio):
        return None

    match = SPLIT_RATIO_PATTERN.fullmatch(str(ratio))
    if not match:
        # Malformed ratios are reported by the field's pattern validator
        return None

    expected = int(match.group(1))
    actual = to_number(values.get(spec.count))
    if actual is None:
        actual = 0

    if actual != expected:
        return _issue(
            spec, spec.count,
            f"{_label(labels, spec.count)} ({actual}) must match "
            f"{_label(labels, spec.ratio)} {ratio}",
            actual=actual, expected=expected
        )
    return None


def check_capacity(values: Mapping[str, Any], spec: FormRuleSpec,
                   labels: Mapping[str, str]) -> Optional[ValidationIssue]:
    """A used count must not exceed its paired total capacity."""
    total = to_number(values.get(spec.total))
    used = to_number(values.get(spec.used))
    if total is None or used is None:
        return None

    if used > total:
        return _issue(
            spec, spec.used,
            f"{_label(labels, spec.used)} ({used}) exceeds {_label(labels, spec.total)} ({total})",
            actual=used, max=total
        )
    return None


def check_identity(values: Mapping[str, Any], spec: FormRuleSpec,
                   labels: Mapping[str, str]) -> Optional[ValidationIssue]:
    """Source and target references must differ."""
    source = values.get(spec.source)
    target = values.get(spec.target)
    if is_empty(source) or is_empty(target):
        return None

    if source == target:
        return _issue(
            spec, spec.target,
            f"{_label(labels, spec.source)} and {_label(labels, spec.target)} cannot be the same",
            source=source, target=target
        )
    return None


RULES: Dict[str, Callable[[Mapping[str, Any], FormRuleSpec, Mapping[str, str]], Optional[ValidationIssue]]] = {
    'port_budget': check_port_budget,
    'power_ordering': check_power_ordering,
    'ratio_consistency': check_ratio_consistency,
    'capacity': check_capacity,
    'identity': check_identity,
}


def build_form_validator(specs: Sequence[FormRuleSpec],
                         labels: Optional[Mapping[str, str]] = None) -> Optional[CrossFieldValidator]:
    """
    Compose rule specs into one cross-field validator.

    Args:
        specs: Rule bindings of one element type
        labels: Field labels by path, used in messages

    Returns:
        Callable mapping flat form values to the list of violated rules,
        or None when the type declares no rules
    """
    if not specs:
        return None

    rules = tuple(specs)
    label_map = dict(labels or {})

    def validate(values: Mapping[str, Any]) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        for spec in rules:
            issue = RULES[spec.rule](values, spec, label_map)
            if issue is not None:
                issues.append(issue)
        return issues

    return validate
