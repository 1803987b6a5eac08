"""
Builds form control trees from element schemas and moves values between
element records and forms.
"""

import copy
import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from .form_model import ArrayItemGroup, FormArrayControl, FormControl, FormModel
from .path_accessor import get_path, set_path
from .schema_registry import FieldDescriptor, SchemaRegistry, type_key

logger = logging.getLogger(__name__)


def _control_value(value: Any) -> Any:
    # 0 and False are real values; only a missing value becomes blank
    return '' if value is None else value


class FormAssembler:
    """Assembles, populates and reverse-applies element forms."""

    def __init__(self, registry: SchemaRegistry):
        self.registry = registry

    def assemble(self, element_type: Any) -> FormModel:
        """
        Create an empty form for an element type.

        Args:
            element_type: ElementType or raw type string

        Returns:
            FormModel with one blank control per scalar field and one empty
            array control per array field
        """
        schema = self.registry.schema_for(element_type)
        validators = self.registry.validators_for(element_type)

        form = FormModel(
            element_type=schema.type,
            form_validator=schema.form_validator
        )

        for descriptor in schema.fields:
            form.field_order.append(descriptor.path)
            if descriptor.is_array:
                form.arrays[descriptor.path] = FormArrayControl(path=descriptor.path, descriptor=descriptor)
            else:
                form.controls[descriptor.path] = FormControl(
                    path=descriptor.path,
                    label=descriptor.label,
                    kind=descriptor.kind,
                    validators=list(validators.get(descriptor.path, []))
                )

        logger.debug(f"Assembled form for '{schema.type}' with {len(form.controls)} controls "
                     f"and {len(form.arrays)} arrays")
        return form

    def populate(self, form: FormModel, entity: Mapping[str, Any]) -> FormModel:
        """
        Load an element record into a form.

        Array controls are rebuilt from scratch; groups from an earlier
        population are discarded. Validation runs once at the end so errors
        are known before the first edit.

        Args:
            form: Form assembled for the entity's type
            entity: Element record

        Returns:
            The same form, populated
        """
        for path, control in form.controls.items():
            control.value = _control_value(get_path(entity, path))
            control.touched = False

        for path, array in form.arrays.items():
            source_items = get_path(entity, path)
            if source_items is None:
                source_items = []
            elif not isinstance(source_items, list):
                logger.warning(f"Expected a list at '{path}', got {type(source_items).__name__}; "
                               f"treating it as empty")
                source_items = []

            array.items = [
                self.create_item_group(array.descriptor.sub_fields, item)
                for item in source_items
            ]

        form.validate()
        return form

    def build(self, entity: Mapping[str, Any]) -> FormModel:
        """Assemble and populate a form for ``entity['type']``."""
        element_type = type_key(entity.get('type'))
        return self.populate(self.assemble(element_type), entity)

    @staticmethod
    def create_item_group(sub_fields: Iterable[FieldDescriptor],
                          item: Optional[Mapping[str, Any]] = None) -> ArrayItemGroup:
        """
        Create the controls of one array item.

        Args:
            sub_fields: Sub-field descriptors of the array
            item: Source record of the item; None for a new blank item

        Returns:
            ArrayItemGroup with validated controls
        """
        if item is not None and not isinstance(item, Mapping):
            logger.warning(f"Ignoring non-mapping array item of type {type(item).__name__}")
            item = None

        group = ArrayItemGroup(source=copy.deepcopy(dict(item)) if item is not None else {})
        for descriptor in sub_fields:
            value = get_path(item, descriptor.path) if item is not None else None
            group.controls[descriptor.path] = FormControl(
                path=descriptor.path,
                label=descriptor.label,
                value=_control_value(value),
                kind=descriptor.kind,
                validators=descriptor.build_validators()
            )
        group.validate()
        return group

    @staticmethod
    def extract(form: FormModel) -> Dict[str, Any]:
        """Flat map of field path to current value."""
        return form.value()

    @staticmethod
    def apply_to_entity(form: FormModel, entity: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Write form values onto a deep copy of an element record.

        Scalar values are written at their dot-paths; blank number fields
        are written as None. Each array is replaced
        by its item groups in order; an item starts from the record it was
        populated from, so keys without a sub-field are kept.

        Args:
            form: Populated form
            entity: Record the form was populated from

        Returns:
            The patched copy; ``entity`` itself is not modified
        """
        patched = copy.deepcopy(dict(entity))

        for path, control in form.controls.items():
            set_path(patched, path, control.record_value())

        for path, array in form.arrays.items():
            records = []
            for group in array.items:
                record = copy.deepcopy(group.source)
                for name, control in group.controls.items():
                    set_path(record, name, control.record_value())
                records.append(record)
            set_path(patched, path, records)

        return patched
