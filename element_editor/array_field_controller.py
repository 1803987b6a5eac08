"""
Add and remove items of array fields in a form.

Items are addressed by position only. Removing item ``i`` shifts every later
item down by one, and per-item errors follow because they are computed from
the current positions.
"""

import logging
from typing import Iterable, Optional

from .form_assembler import FormAssembler
from .form_model import ArrayItemGroup, FormModel
from .schema_registry import FieldDescriptor

logger = logging.getLogger(__name__)


class ArrayFieldController:
    """Structural edits on the array controls of one form."""

    def __init__(self, form: FormModel):
        self.form = form

    def add_item(self, array_path: str,
                 sub_fields: Optional[Iterable[FieldDescriptor]] = None) -> ArrayItemGroup:
        """
        Append a blank item to an array field.

        Args:
            array_path: Path of the array field
            sub_fields: Sub-field descriptors; defaults to the array's own

        Returns:
            The new item group, already validated

        Raises:
            KeyError: If the form has no such array field
        """
        array = self.form.array(array_path)
        if sub_fields is None:
            sub_fields = array.descriptor.sub_fields

        group = FormAssembler.create_item_group(sub_fields)
        array.items.append(group)
        self.form.validate_form()

        logger.debug(f"Added item {len(array.items) - 1} to '{array_path}'")
        return group

    def remove_item(self, array_path: str, index: int) -> bool:
        """
        Remove the item at ``index``.

        Returns:
            True if an item was removed, False if ``index`` was out of range
            (negative indexes count as out of range)

        Raises:
            KeyError: If the form has no such array field
        """
        array = self.form.array(array_path)
        if not 0 <= index < len(array.items):
            logger.debug(f"Ignoring removal of item {index} from '{array_path}' "
                         f"({len(array.items)} items)")
            return False

        del array.items[index]
        self.form.validate_form()

        logger.debug(f"Removed item {index} from '{array_path}'")
        return True

    def item_count(self, array_path: str) -> int:
        return len(self.form.array(array_path))
