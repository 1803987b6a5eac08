"""
In-memory control tree of an element edit form.

Scalar fields are leaf controls keyed by their full dot-path, so
``bandwidth.downstreamCapacity`` is one control, not a nested group. Array
fields hold one sub-group of leaf controls per item. Every mutation made
through FormModel re-runs validation.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .form_rules import CrossFieldValidator
from .schema_registry import FieldDescriptor, FieldKind
from .validators import FieldValidator, ValidationIssue, is_empty

logger = logging.getLogger(__name__)


@dataclass
class FormControl:
    """A single editable value with its validators and state."""
    path: str
    label: str = ''
    value: Any = ''
    kind: FieldKind = FieldKind.TEXT
    validators: List[FieldValidator] = field(default_factory=list)
    touched: bool = False
    errors: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def required(self) -> bool:
        return any(validator.kind == 'required' for validator in self.validators)

    @property
    def valid(self) -> bool:
        return not self.errors

    def set_value(self, value: Any) -> None:
        self.value = value
        self.validate()

    def record_value(self) -> Any:
        """Value as written back to the element; a blank number is None."""
        if self.kind == FieldKind.NUMBER and is_empty(self.value):
            return None
        return self.value

    def mark_touched(self) -> None:
        self.touched = True

    def validate(self) -> Dict[str, Dict[str, Any]]:
        """Run every validator and store the failures keyed by error kind."""
        errors = {}
        for validator in self.validators:
            params = validator(self.value)
            if params is not None:
                errors[validator.kind] = params
        self.errors = errors
        return errors

    def has_error(self, kind: Optional[str] = None) -> bool:
        """True when the control is touched and fails ``kind`` (or any check)."""
        if not self.touched:
            return False
        if kind is None:
            return bool(self.errors)
        return kind in self.errors


@dataclass
class ArrayItemGroup:
    """
    Controls of one array item.

    ``source`` keeps the item record the group was populated from so keys
    not covered by the sub-fields survive a save.
    """
    controls: Dict[str, FormControl] = field(default_factory=dict)
    source: Dict[str, Any] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return all(control.valid for control in self.controls.values())

    def control(self, name: str) -> FormControl:
        if name not in self.controls:
            raise KeyError(f"Array item has no sub-field '{name}'")
        return self.controls[name]

    def value(self) -> Dict[str, Any]:
        return {name: control.value for name, control in self.controls.items()}

    def validate(self) -> None:
        for control in self.controls.values():
            control.validate()

    def mark_all_touched(self) -> None:
        for control in self.controls.values():
            control.mark_touched()


@dataclass
class FormArrayControl:
    """Ordered, position-addressed list of item groups for one array field."""
    path: str
    descriptor: FieldDescriptor
    items: List[ArrayItemGroup] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.descriptor.label

    @property
    def item_label(self) -> str:
        return self.descriptor.item_label or self.descriptor.label

    def __len__(self) -> int:
        return len(self.items)

    def item(self, index: int) -> ArrayItemGroup:
        if not 0 <= index < len(self.items):
            raise IndexError(f"'{self.path}' has no item {index}")
        return self.items[index]

    def value(self) -> List[Dict[str, Any]]:
        return [item.value() for item in self.items]

    def validate(self) -> None:
        for item in self.items:
            item.validate()

    def mark_all_touched(self) -> None:
        for item in self.items:
            item.mark_all_touched()


@dataclass
class FormModel:
    """
    Control tree for one element type.

    Attributes:
        element_type: Type key the form was assembled for
        controls: Scalar leaf controls keyed by dot-path
        arrays: Array controls keyed by dot-path
        field_order: All field paths in schema order
        form_validator: Cross-field validator of the type, if any
        form_errors: Result of the last cross-field validation
    """
    element_type: str
    controls: Dict[str, FormControl] = field(default_factory=dict)
    arrays: Dict[str, FormArrayControl] = field(default_factory=dict)
    field_order: List[str] = field(default_factory=list)
    form_validator: Optional[CrossFieldValidator] = None
    form_errors: List[ValidationIssue] = field(default_factory=list)

    def control(self, path: str) -> FormControl:
        if path not in self.controls:
            raise KeyError(f"Form has no field '{path}'")
        return self.controls[path]

    def array(self, path: str) -> FormArrayControl:
        if path not in self.arrays:
            raise KeyError(f"Form has no array field '{path}'")
        return self.arrays[path]

    def item_control(self, array_path: str, index: int, sub_field: str) -> FormControl:
        return self.array(array_path).item(index).control(sub_field)

    # Mutations

    def set_value(self, path: str, value: Any) -> None:
        self.control(path).set_value(value)
        self.validate_form()

    def set_item_value(self, array_path: str, index: int, sub_field: str, value: Any) -> None:
        self.item_control(array_path, index, sub_field).set_value(value)
        self.validate_form()

    def touch(self, path: str) -> None:
        self.control(path).mark_touched()

    def mark_all_touched(self) -> None:
        for control in self.controls.values():
            control.mark_touched()
        for array in self.arrays.values():
            array.mark_all_touched()

    # Values and validation

    def scalar_values(self) -> Dict[str, Any]:
        return {path: control.value for path, control in self.controls.items()}

    def value(self) -> Dict[str, Any]:
        """Flat map of every field path to its current value, in schema order."""
        values: Dict[str, Any] = {}
        for path in self.field_order:
            if path in self.arrays:
                values[path] = self.arrays[path].value()
            else:
                values[path] = self.controls[path].value
        return values

    def validate_form(self) -> List[ValidationIssue]:
        if self.form_validator is None:
            self.form_errors = []
        else:
            self.form_errors = list(self.form_validator(self.scalar_values()))
        return self.form_errors

    def validate(self) -> None:
        """Re-run field, group and cross-field validation over the whole tree."""
        for control in self.controls.values():
            control.validate()
        for array in self.arrays.values():
            array.validate()
        self.validate_form()

    @property
    def valid(self) -> bool:
        if self.form_errors:
            return False
        if not all(control.valid for control in self.controls.values()):
            return False
        return all(item.valid for array in self.arrays.values() for item in array.items)
