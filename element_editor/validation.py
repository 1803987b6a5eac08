"""
Aggregation of field, group and form-level validation results.

Field and group issues are only shown once their control is touched, but all
of them block submission. Form-level issues are always shown.
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple

from .form_model import FormArrayControl, FormControl, FormModel
from .validators import ErrorScope, ValidationIssue, describe_field_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationReport:
    """
    Outcome of one validation pass.

    Attributes:
        errors: Issues to display, in schema order then rule order
        blocking: Every issue that prevents submission, touched or not
    """
    errors: Tuple[ValidationIssue, ...] = ()
    blocking: Tuple[ValidationIssue, ...] = ()

    @property
    def can_submit(self) -> bool:
        return not self.blocking

    def messages(self) -> List[str]:
        return [issue.message for issue in self.errors]


class ValidationAggregator:
    """Collects the issues of a form into one ordered report."""

    @staticmethod
    def field_issues(control: FormControl) -> List[ValidationIssue]:
        return [
            ValidationIssue(
                scope=ErrorScope.FIELD,
                path=control.path,
                kind=kind,
                message=describe_field_error(control.label, kind, params),
                params=dict(params)
            )
            for kind, params in control.errors.items()
        ]

    @staticmethod
    def group_issues(array: FormArrayControl, touched_only: bool = False) -> List[ValidationIssue]:
        """
        Issues of every item of an array, keyed by position and sub-field.

        Args:
            array: Array control
            touched_only: Skip sub-field controls that are not touched

        Returns:
            Issues in item order, then sub-field order
        """
        issues = []
        for index, group in enumerate(array.items):
            for name, control in group.controls.items():
                if touched_only and not control.touched:
                    continue
                for kind, params in control.errors.items():
                    detail = describe_field_error(control.label, kind, params)
                    issues.append(ValidationIssue(
                        scope=ErrorScope.GROUP,
                        path=array.path,
                        kind=kind,
                        message=f"{array.item_label} {index + 1}: {detail}",
                        params=dict(params),
                        item_index=index,
                        sub_field=name
                    ))
        return issues

    @staticmethod
    def form_issues(form: FormModel) -> List[ValidationIssue]:
        return list(form.form_errors)

    @staticmethod
    def collect(form: FormModel) -> ValidationReport:
        """
        Build the report for the form's current validation state.

        The form is not re-validated here; FormModel keeps its errors current
        after every mutation.
        """
        visible: List[ValidationIssue] = []
        blocking: List[ValidationIssue] = []

        for path in form.field_order:
            if path in form.arrays:
                array = form.arrays[path]
                blocking.extend(ValidationAggregator.group_issues(array))
                visible.extend(ValidationAggregator.group_issues(array, touched_only=True))
            else:
                control = form.controls[path]
                issues = ValidationAggregator.field_issues(control)
                blocking.extend(issues)
                if control.touched:
                    visible.extend(issues)

        form_level = ValidationAggregator.form_issues(form)
        visible.extend(form_level)
        blocking.extend(form_level)

        if blocking:
            logger.debug(f"Form '{form.element_type}' has {len(blocking)} blocking issues, "
                         f"{len(visible)} visible")
        return ValidationReport(errors=tuple(visible), blocking=tuple(blocking))
