"""
Per-type schema registry for network element forms.

The registry is built once from a YAML schema document and is read-only
afterwards. It answers which fields an element type has, which validators
guard them, and which cross-field rules apply to the whole form.
"""

import logging
import re
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from .exceptions import SchemaLoadError
from .form_rules import CrossFieldValidator, FormRuleSpec, build_form_validator
from .path_accessor import split_path
from .validators import FieldValidator, build_validators

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_FILE = Path(__file__).parent / "schemas" / "network_elements.yaml"
DEFAULT_ICON = "device_unknown"
COMMON_FIELD_PATHS = ('name', 'code', 'description', 'status')


class ElementType(str, Enum):
    """Network element types known to the editor."""
    ODF = "ODF"
    OLT = "OLT"
    ONT = "ONT"
    SPLITTER = "SPLITTER"
    EDFA = "EDFA"
    MANGA = "MANGA"
    TERMINAL_BOX = "TERMINAL_BOX"
    FIBER_THREAD = "FIBER_THREAD"
    DROP_CABLE = "DROP_CABLE"
    DISTRIBUTION_CABLE = "DISTRIBUTION_CABLE"
    FEEDER_CABLE = "FEEDER_CABLE"
    BACKBONE_CABLE = "BACKBONE_CABLE"
    MSAN = "MSAN"
    ROUTER = "ROUTER"
    RACK = "RACK"
    NETWORK_GRAPH = "NETWORK_GRAPH"


class ElementStatus(str, Enum):
    """Operational status of a network element."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    MAINTENANCE = "MAINTENANCE"
    FAULT = "FAULT"
    PLANNED = "PLANNED"
    BUILDING = "BUILDING"
    RESERVED = "RESERVED"
    DECOMMISSIONED = "DECOMMISSIONED"


class FieldKind(str, Enum):
    """Input kinds a field descriptor can declare."""
    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"
    MULTISELECT = "multiselect"
    CHECKBOX = "checkbox"
    ARRAY = "array"


class FieldDescriptor(BaseModel):
    """
    Declarative description of one editable field.

    ``path`` is a dot-path into the element record. Array fields describe the
    shape of each item through ``sub_fields``; sub-field paths are relative
    to the item.
    """

    model_config = ConfigDict(frozen=True, extra='forbid')

    path: str
    kind: FieldKind = FieldKind.TEXT
    label: str = ''
    required: bool = False
    options: Optional[Tuple[Any, ...]] = None
    sub_fields: Optional[Tuple['FieldDescriptor', ...]] = None
    item_label: Optional[str] = None
    min_value: Optional[Union[int, float]] = None
    max_value: Optional[Union[int, float]] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def _default_label(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get('label') and data.get('path'):
            data = dict(data)
            data['label'] = str(data['path'])
        return data

    @field_validator('path')
    @classmethod
    def _check_path(cls, value: str) -> str:
        split_path(value)
        return value

    @field_validator('pattern')
    @classmethod
    def _check_pattern(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            try:
                re.compile(value)
            except re.error as e:
                raise ValueError(f"invalid regex pattern {value!r}: {e}")
        return value

    @model_validator(mode='after')
    def _check_shape(self) -> 'FieldDescriptor':
        if self.kind == FieldKind.ARRAY:
            if not self.sub_fields:
                raise ValueError(f"array field '{self.path}' must declare sub_fields")
            seen = set()
            for sub in self.sub_fields:
                if sub.kind == FieldKind.ARRAY:
                    raise ValueError(f"array field '{self.path}' cannot nest array '{sub.path}'")
                if sub.path in seen:
                    raise ValueError(f"array field '{self.path}' declares '{sub.path}' twice")
                seen.add(sub.path)
        elif self.sub_fields:
            raise ValueError(f"only array fields may declare sub_fields ('{self.path}')")

        if self.kind in (FieldKind.SELECT, FieldKind.MULTISELECT) and not self.options:
            raise ValueError(f"{self.kind.value} field '{self.path}' must declare options")

        if (self.min_value is not None and self.max_value is not None
                and self.min_value > self.max_value):
            raise ValueError(f"field '{self.path}' has min_value greater than max_value")
        return self

    @property
    def is_array(self) -> bool:
        return self.kind == FieldKind.ARRAY

    def build_validators(self) -> List[FieldValidator]:
        return build_validators(self)


class TypeSchema(BaseModel):
    """Resolved schema of one element type: common fields first, then its own."""

    model_config = ConfigDict(frozen=True)

    type: str
    fields: Tuple[FieldDescriptor, ...]
    form_rules: Tuple[FormRuleSpec, ...] = ()
    form_validator: Optional[CrossFieldValidator] = None

    def field(self, path: str) -> Optional[FieldDescriptor]:
        for descriptor in self.fields:
            if descriptor.path == path:
                return descriptor
        return None

    @property
    def labels(self) -> Dict[str, str]:
        return {descriptor.path: descriptor.label for descriptor in self.fields}


class TypeDefinition(BaseModel):
    model_config = ConfigDict(frozen=True, extra='forbid')

    fields: Tuple[FieldDescriptor, ...] = ()
    form_rules: Tuple[FormRuleSpec, ...] = ()


class DisplayEntry(BaseModel):
    model_config = ConfigDict(frozen=True, extra='forbid')

    name: Optional[str] = None
    icon: Optional[str] = None


class SchemaDocument(BaseModel):
    """Top-level layout of the schema YAML document."""

    model_config = ConfigDict(frozen=True, extra='forbid')

    common_fields: Tuple[FieldDescriptor, ...]
    types: Dict[str, TypeDefinition] = {}
    display: Dict[str, DisplayEntry] = {}

    @field_validator('common_fields')
    @classmethod
    def _check_common_fields(cls, value: Tuple[FieldDescriptor, ...]) -> Tuple[FieldDescriptor, ...]:
        paths = [descriptor.path for descriptor in value]
        if tuple(paths) != COMMON_FIELD_PATHS:
            raise ValueError(f"common_fields must be {list(COMMON_FIELD_PATHS)} in that order, got {paths}")
        return value


def type_key(element_type: Any) -> str:
    """Normalize an ElementType or raw string to the registry key."""
    if isinstance(element_type, Enum):
        return str(element_type.value)
    if element_type is None:
        return ''
    return str(element_type)


def _resolve_type(name: str, common: Tuple[FieldDescriptor, ...],
                  definition: TypeDefinition) -> TypeSchema:
    fields = tuple(common) + tuple(definition.fields)

    seen = set()
    for descriptor in fields:
        if descriptor.path in seen:
            raise ValueError(f"type '{name}' declares field '{descriptor.path}' more than once")
        seen.add(descriptor.path)

    scalar_paths = {descriptor.path for descriptor in fields if not descriptor.is_array}
    for spec in definition.form_rules:
        for path in spec.referenced_paths():
            if path not in scalar_paths:
                raise ValueError(f"form rule '{spec.rule}' of type '{name}' references unknown field '{path}'")

    labels = {descriptor.path: descriptor.label for descriptor in fields}
    return TypeSchema(
        type=name,
        fields=fields,
        form_rules=definition.form_rules,
        form_validator=build_form_validator(definition.form_rules, labels)
    )


class SchemaRegistry:
    """
    Immutable lookup table of element type schemas.

    Unknown types resolve to a fallback schema holding only the common
    fields, so an editor can still be opened for them.
    """

    def __init__(self, schemas: Mapping[str, TypeSchema], common_fields: Tuple[FieldDescriptor, ...],
                 display: Optional[Mapping[str, DisplayEntry]] = None):
        self._schemas = MappingProxyType(dict(schemas))
        self._common_fields = tuple(common_fields)
        self._display = MappingProxyType(dict(display or {}))
        self._validators = MappingProxyType({
            name: self._index_validators(schema.fields)
            for name, schema in self._schemas.items()
        })
        self._fallback_validators = self._index_validators(self._common_fields)

    @staticmethod
    def _index_validators(fields: Tuple[FieldDescriptor, ...]) -> Dict[str, Tuple[FieldValidator, ...]]:
        return {
            descriptor.path: tuple(descriptor.build_validators())
            for descriptor in fields
            if not descriptor.is_array
        }

    # Construction

    @classmethod
    def from_dict(cls, document: Mapping[str, Any], source: Any = '<dict>') -> 'SchemaRegistry':
        """
        Build a registry from a parsed schema document.

        Args:
            document: Mapping with ``common_fields``, ``types`` and ``display``
            source: Where the document came from, used in error messages

        Returns:
            SchemaRegistry

        Raises:
            SchemaLoadError: If the document is structurally invalid
        """
        if not isinstance(document, Mapping):
            raise SchemaLoadError(source, TypeError("schema document must be a mapping"))

        try:
            parsed = SchemaDocument.model_validate(dict(document))
            schemas = {
                name: _resolve_type(name, parsed.common_fields, definition)
                for name, definition in parsed.types.items()
            }
        except (ValidationError, ValueError) as e:
            raise SchemaLoadError(source, e)

        logger.info(f"Loaded element schema from {source} with {len(schemas)} types")
        return cls(schemas, parsed.common_fields, parsed.display)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> 'SchemaRegistry':
        """Load a registry from a YAML schema file."""
        schema_path = Path(path)
        try:
            with open(schema_path, 'r', encoding='utf-8') as f:
                document = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Could not read schema file {schema_path}: {e}")
            raise SchemaLoadError(schema_path, e)

        if document is None:
            raise SchemaLoadError(schema_path, ValueError("schema file is empty"))

        return cls.from_dict(document, source=schema_path)

    @classmethod
    def load_default(cls) -> 'SchemaRegistry':
        """Load the schema document shipped with the package."""
        return cls.from_yaml(DEFAULT_SCHEMA_FILE)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'SchemaRegistry':
        """Load the schema named by ``schema.schema_file``, or the packaged one."""
        schema_file = (config.get('schema') or {}).get('schema_file')
        if schema_file:
            return cls.from_yaml(schema_file)
        return cls.load_default()

    # Lookups

    @property
    def types(self) -> List[str]:
        return list(self._schemas)

    def has_type(self, element_type: Any) -> bool:
        return type_key(element_type) in self._schemas

    def schema_for(self, element_type: Any) -> TypeSchema:
        """
        Resolve the schema of an element type.

        Args:
            element_type: ElementType or raw type string

        Returns:
            The type's schema, or the common-fields fallback for unknown types
        """
        key = type_key(element_type)
        schema = self._schemas.get(key)
        if schema is None:
            logger.warning(f"No schema registered for element type '{key}', using common fields only")
            return TypeSchema(type=key, fields=self._common_fields)
        return schema

    def fields_for(self, element_type: Any) -> List[FieldDescriptor]:
        return list(self.schema_for(element_type).fields)

    def validators_for(self, element_type: Any) -> Dict[str, List[FieldValidator]]:
        """Validators of every scalar field, keyed by path."""
        key = type_key(element_type)
        indexed = self._validators.get(key)
        if indexed is None:
            logger.warning(f"No validators registered for element type '{key}', using common fields only")
            indexed = self._fallback_validators
        return {path: list(validators) for path, validators in indexed.items()}

    def form_validator_for(self, element_type: Any) -> Optional[CrossFieldValidator]:
        return self.schema_for(element_type).form_validator

    def type_display_name(self, element_type: Any) -> str:
        key = type_key(element_type)
        entry = self._display.get(key)
        if entry is not None and entry.name:
            return entry.name
        return key

    def type_icon(self, element_type: Any) -> str:
        entry = self._display.get(type_key(element_type))
        if entry is not None and entry.icon:
            return entry.icon
        return DEFAULT_ICON
