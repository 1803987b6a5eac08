"""
Schema-driven editor for network element records.

Typical use::

    registry = SchemaRegistry.load_default()
    controller = EditorController(registry, fetch_entity, persist)
    await controller.open(element_id)
"""

from .editor_controller import EditorController, EditorState
from .exceptions import EditorStateError, ElementEditorError, LoadFailure, SaveFailure, SchemaLoadError
from .form_assembler import FormAssembler
from .schema_registry import ElementStatus, ElementType, FieldDescriptor, FieldKind, SchemaRegistry, TypeSchema

__version__ = "1.0.0"

__all__ = [
    'EditorController',
    'EditorState',
    'EditorStateError',
    'ElementEditorError',
    'ElementStatus',
    'ElementType',
    'FieldDescriptor',
    'FieldKind',
    'FormAssembler',
    'LoadFailure',
    'SaveFailure',
    'SchemaLoadError',
    'SchemaRegistry',
    'TypeSchema',
]
