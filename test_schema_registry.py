"""
Unit tests for the schema registry and the packaged schema document.
"""

import logging
from copy import deepcopy

import pytest
import yaml

from element_editor.exceptions import SchemaLoadError
from element_editor.schema_registry import (
    DEFAULT_ICON, ElementType, FieldKind, SchemaRegistry
)

COMMON_FIELDS = [
    {'path': 'name', 'label': 'Name', 'required': True, 'max_length': 100},
    {'path': 'code', 'label': 'Code', 'required': True},
    {'path': 'description', 'label': 'Description'},
    {'path': 'status', 'kind': 'select', 'label': 'Status', 'options': ['ACTIVE', 'INACTIVE']},
]

MINIMAL_DOCUMENT = {
    'common_fields': COMMON_FIELDS,
    'types': {
        'ODF': {
            'fields': [
                {'path': 'totalPortCapacity', 'kind': 'number', 'required': True, 'min_value': 0},
                {'path': 'usedPorts', 'kind': 'number', 'required': True, 'min_value': 0},
            ],
            'form_rules': [
                {'rule': 'capacity', 'code': 'usedPortsExceeded',
                 'total': 'totalPortCapacity', 'used': 'usedPorts'},
            ],
        },
    },
    'display': {'ODF': {'name': 'Optical Distribution Frame', 'icon': 'settings_input_hdmi'}},
}


def _document(**type_overrides):
    document = deepcopy(MINIMAL_DOCUMENT)
    document['types'].update(type_overrides)
    return document


@pytest.fixture(scope='module')
def registry():
    return SchemaRegistry.load_default()


class TestPackagedSchema:
    """Test cases against the schema document shipped with the package."""

    def test_all_specific_types_are_registered(self, registry):
        for element_type in ('OLT', 'ONT', 'ODF', 'SPLITTER', 'EDFA', 'FIBER_THREAD', 'RACK'):
            assert registry.has_type(element_type)

    def test_fields_start_with_common_fields(self, registry):
        paths = [descriptor.path for descriptor in registry.fields_for(ElementType.OLT)]
        assert paths[:4] == ['name', 'code', 'description', 'status']
        assert 'supportedPONStandards' in paths
        assert 'ports' in paths

    def test_olt_ports_array(self, registry):
        ports = registry.schema_for('OLT').field('ports')

        assert ports.kind == FieldKind.ARRAY
        assert ports.item_label == 'Port'
        assert [sub.path for sub in ports.sub_fields] == ['portNumber', 'type', 'status', 'slotNumber']
        assert [sub.required for sub in ports.sub_fields] == [True, True, True, False]

    def test_nested_paths_are_flat_fields(self, registry):
        paths = [descriptor.path for descriptor in registry.fields_for('ONT')]
        assert 'bandwidth.downstreamCapacity' in paths
        assert 'bandwidth' not in paths

    def test_validators_for_olt(self, registry):
        validators = registry.validators_for('OLT')

        assert [v.kind for v in validators['portCount']] == ['required', 'min', 'max']
        assert [v.kind for v in validators['code']] == ['required', 'max_length', 'pattern']
        assert 'ports' not in validators

    def test_code_pattern(self, registry):
        pattern_check = registry.validators_for('OLT')['code'][-1]
        assert pattern_check('OLT_01-a.b') is None
        assert pattern_check('OLT 01') is not None

    def test_form_validators(self, registry):
        assert registry.form_validator_for('OLT') is not None
        assert registry.form_validator_for('EDFA') is None

    def test_rack_rules(self, registry):
        validator = registry.form_validator_for(ElementType.RACK)
        issues = validator({'heightUnits': 42, 'totalU': 42, 'usedU': 43})
        assert [issue.kind for issue in issues] == ['usedUnitsExceeded']

    def test_display_lookups(self, registry):
        assert registry.type_display_name('OLT') == 'Optical Line Terminal'
        assert registry.type_icon(ElementType.ROUTER) == 'wifi_tethering'
        assert registry.type_display_name('WDM_FILTER') == 'WDM_FILTER'
        assert registry.type_icon('WDM_FILTER') == DEFAULT_ICON


class TestFallback:
    """Test cases for unknown element types."""

    def test_unknown_type_gets_common_fields(self, registry, caplog):
        with caplog.at_level(logging.WARNING):
            schema = registry.schema_for('MANGA')

        assert [descriptor.path for descriptor in schema.fields] == ['name', 'code', 'description', 'status']
        assert schema.form_validator is None
        assert 'MANGA' in caplog.text

    def test_unknown_type_validators(self, registry):
        assert set(registry.validators_for('NOT_A_TYPE')) == {'name', 'code', 'description', 'status'}

    def test_missing_type(self, registry):
        assert len(registry.fields_for(None)) == 4


class TestLoading:
    """Test cases for building registries from documents."""

    def test_from_dict(self):
        registry = SchemaRegistry.from_dict(MINIMAL_DOCUMENT)

        assert registry.types == ['ODF']
        assert registry.fields_for('ODF')[4].label == 'totalPortCapacity'

    def test_from_yaml(self, tmp_path):
        schema_file = tmp_path / 'schema.yaml'
        schema_file.write_text(yaml.safe_dump(MINIMAL_DOCUMENT), encoding='utf-8')

        registry = SchemaRegistry.from_yaml(schema_file)
        assert registry.has_type('ODF')

    def test_from_config_uses_schema_file(self, tmp_path):
        schema_file = tmp_path / 'schema.yaml'
        schema_file.write_text(yaml.safe_dump(MINIMAL_DOCUMENT), encoding='utf-8')

        registry = SchemaRegistry.from_config({'schema': {'schema_file': str(schema_file)}})
        assert registry.types == ['ODF']

    def test_from_config_defaults_to_packaged_schema(self):
        registry = SchemaRegistry.from_config({'schema': {'schema_file': None}})
        assert registry.has_type('OLT')

    def test_missing_file(self, tmp_path):
        with pytest.raises(SchemaLoadError):
            SchemaRegistry.from_yaml(tmp_path / 'missing.yaml')

    def test_malformed_yaml(self, tmp_path):
        schema_file = tmp_path / 'broken.yaml'
        schema_file.write_text('common_fields: [unclosed', encoding='utf-8')

        with pytest.raises(SchemaLoadError) as exc_info:
            SchemaRegistry.from_yaml(schema_file)
        assert exc_info.value.get_full_details()['error_type'] == 'SchemaLoadError'

    def test_empty_file(self, tmp_path):
        schema_file = tmp_path / 'empty.yaml'
        schema_file.write_text('', encoding='utf-8')

        with pytest.raises(SchemaLoadError):
            SchemaRegistry.from_yaml(schema_file)

    @pytest.mark.parametrize('fields', [
        [{'path': 'a'}, {'path': 'a'}],
        [{'path': 'name'}],
        [{'path': 'a..b'}],
        [{'path': ''}],
        [{'path': 'ports', 'kind': 'array'}],
        [{'path': 'ports', 'kind': 'array', 'sub_fields': [{'path': 'x', 'kind': 'array',
                                                           'sub_fields': [{'path': 'y'}]}]}],
        [{'path': 'a', 'kind': 'text', 'sub_fields': [{'path': 'x'}]}],
        [{'path': 'a', 'kind': 'slider'}],
        [{'path': 'a', 'pattern': '(unclosed'}],
        [{'path': 'a', 'kind': 'select'}],
        [{'path': 'a', 'kind': 'number', 'min_value': 5, 'max_value': 1}],
    ])
    def test_invalid_fields(self, fields):
        with pytest.raises(SchemaLoadError):
            SchemaRegistry.from_dict(_document(X={'fields': fields}))

    def test_rule_referencing_unknown_field(self):
        document = _document(X={
            'fields': [{'path': 'a'}],
            'form_rules': [{'rule': 'identity', 'source': 'a', 'target': 'b'}],
        })
        with pytest.raises(SchemaLoadError):
            SchemaRegistry.from_dict(document)

    def test_rule_referencing_array_field(self):
        document = _document(X={
            'fields': [{'path': 'a'}, {'path': 'items', 'kind': 'array', 'sub_fields': [{'path': 'v'}]}],
            'form_rules': [{'rule': 'identity', 'source': 'a', 'target': 'items'}],
        })
        with pytest.raises(SchemaLoadError):
            SchemaRegistry.from_dict(document)

    def test_common_fields_must_be_complete(self):
        document = deepcopy(MINIMAL_DOCUMENT)
        document['common_fields'] = COMMON_FIELDS[:2]
        with pytest.raises(SchemaLoadError):
            SchemaRegistry.from_dict(document)

    def test_non_mapping_document(self):
        with pytest.raises(SchemaLoadError):
            SchemaRegistry.from_dict(['not', 'a', 'mapping'])
