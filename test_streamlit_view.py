"""
Tests for the Streamlit rendering of an edit session.

Most tests patch Streamlit itself; widgets echo back the value they were
given unless a test overrides them. Widget state across reruns is checked
with AppTest.
"""

from copy import deepcopy
from unittest.mock import patch

import pytest
from streamlit.testing.v1 import AppTest

from element_editor.editor_controller import EditorController, EditorState
from element_editor.exceptions import LoadFailure
from element_editor.schema_registry import FieldKind, SchemaRegistry
from element_editor.streamlit_view import EditorView, get_streamlit_widget_type

OLT = {
    'id': 'olt-1', 'type': 'OLT', 'name': 'OLT Central', 'code': 'OLT_1', 'status': 'ACTIVE',
    'manufacturer': 'Huawei', 'model': 'MA5800', 'portCount': 8, 'slotCount': 1, 'ponPorts': 4,
    'distributionPorts': 2, 'uplinkPorts': 2, 'supportedPONStandards': ['GPON'],
    'ports': [{'portNumber': 1, 'type': 'PON', 'status': 'active'}],
}


@pytest.fixture(scope='module')
def registry():
    return SchemaRegistry.load_default()


@pytest.fixture
def controller(registry):
    controller = EditorController(registry, fetch_entity=lambda element_id: deepcopy(OLT),
                                  persist=lambda element_id, entity: entity)
    controller.open_entity(deepcopy(OLT))
    return controller


def echo_widgets(mock_st, overrides=None, clicked=()):
    overrides = overrides or {}

    def echo(default_name):
        def widget(label, *args, key=None, **kwargs):
            if key in overrides:
                return overrides[key]
            return kwargs.get(default_name)
        return widget

    def selectbox(label, options, index=0, key=None, **kwargs):
        if key in overrides:
            return overrides[key]
        return options[index]

    mock_st.text_input.side_effect = echo('value')
    mock_st.number_input.side_effect = echo('value')
    mock_st.checkbox.side_effect = echo('value')
    mock_st.multiselect.side_effect = echo('default')
    mock_st.selectbox.side_effect = selectbox
    mock_st.button.side_effect = lambda label, key=None, **kwargs: key in clicked


class TestWidgetMapping:
    """Test cases for get_streamlit_widget_type."""

    def test_known_kinds(self):
        assert get_streamlit_widget_type('text') == 'text_input'
        assert get_streamlit_widget_type('number') == 'number_input'
        assert get_streamlit_widget_type(FieldKind.SELECT) == 'selectbox'
        assert get_streamlit_widget_type(FieldKind.MULTISELECT) == 'multiselect'
        assert get_streamlit_widget_type('checkbox') == 'checkbox'

    def test_unknown_kind_falls_back_to_text(self):
        assert get_streamlit_widget_type('slider') == 'text_input'


class TestRender:
    """Test cases for EditorView.render."""

    @patch('element_editor.streamlit_view.st')
    def test_render_without_edits(self, mock_st, controller):
        echo_widgets(mock_st)

        result = EditorView.render(controller)

        assert result is None
        assert not controller.has_unsaved_changes()
        assert controller.state == EditorState.READY
        mock_st.subheader.assert_called_once_with("Element properties (Optical Line Terminal)")
        keys = [call.kwargs['key'] for call in mock_st.text_input.call_args_list]
        assert 'field_name' in keys
        assert 'field_ports_0_portNumber' not in keys
        mock_st.expander.assert_called_once()

    @patch('element_editor.streamlit_view.st')
    def test_widget_change_updates_form(self, mock_st, controller):
        echo_widgets(mock_st, overrides={'field_name': 'OLT Sur', 'field_ports_0_portNumber': 4})

        EditorView.render(controller)

        assert controller.form.control('name').value == 'OLT Sur'
        assert controller.form.control('name').touched
        assert controller.form.item_control('ports', 0, 'portNumber').value == 4
        assert controller.has_unsaved_changes()

    @patch('element_editor.streamlit_view.st')
    def test_cleared_required_field_shows_error(self, mock_st, controller):
        echo_widgets(mock_st, overrides={'field_name': ''})

        EditorView.render(controller)

        errors = [call.args[0] for call in mock_st.error.call_args_list]
        assert "Name is required" in errors

    @patch('element_editor.streamlit_view.st')
    def test_form_error_is_shown(self, mock_st, controller):
        echo_widgets(mock_st, overrides={'field_ponPorts': 10})

        EditorView.render(controller)

        errors = [call.args[0] for call in mock_st.error.call_args_list]
        assert any('exceeds Port count' in message for message in errors)

    @patch('element_editor.streamlit_view.st')
    def test_add_item_button(self, mock_st, controller):
        echo_widgets(mock_st, clicked={'add_ports'})

        EditorView.render(controller)

        assert len(controller.form.array('ports')) == 2
        mock_st.rerun.assert_called()

    @patch('element_editor.streamlit_view.st')
    def test_remove_item_button(self, mock_st, controller):
        echo_widgets(mock_st, clicked={'remove_ports_0'})

        EditorView.render(controller)

        assert len(controller.form.array('ports')) == 0

    @patch('element_editor.streamlit_view.st')
    def test_save_button(self, mock_st, controller):
        echo_widgets(mock_st, clicked={'element_editor_save'})

        result = EditorView.render(controller)

        assert controller.state == EditorState.CLOSED
        assert result['name'] == 'OLT Central'

    @patch('element_editor.streamlit_view.st')
    def test_save_disabled_while_blocked(self, mock_st, controller):
        echo_widgets(mock_st, overrides={'field_name': ''})

        EditorView.render(controller)

        save_call = [call for call in mock_st.button.call_args_list
                     if call.kwargs.get('key') == 'element_editor_save'][0]
        assert save_call.kwargs['disabled'] is True

    @patch('element_editor.streamlit_view.st')
    def test_closed_session(self, mock_st, controller):
        controller._close({'id': 'olt-1'})

        result = EditorView.render(controller)

        assert result == {'id': 'olt-1'}
        mock_st.success.assert_called_once()

    @patch('element_editor.streamlit_view.st')
    def test_load_error(self, mock_st, registry):
        controller = EditorController(registry, fetch_entity=None, persist=None)
        controller.state = EditorState.LOAD_ERROR
        controller.failure = LoadFailure('olt-9', ConnectionError('down'))
        controller.error_message = controller.failure.message

        EditorView.render(controller)

        mock_st.error.assert_called_once_with("Failed to load element olt-9: down")

    @patch('element_editor.streamlit_view.st')
    def test_remove_clears_shifted_widget_state(self, mock_st, controller):
        controller.add_item('ports')
        echo_widgets(mock_st, clicked={'remove_ports_0'})
        mock_st.session_state = {
            'field_name': 'OLT Central',
            'field_ports_0_portNumber': 1,
            'field_ports_1_portNumber': 2,
            'field_ports_1_status': 'active',
            'field_userPorts_0_portNumber': 7,
        }

        EditorView.render(controller)

        assert mock_st.session_state == {'field_name': 'OLT Central', 'field_userPorts_0_portNumber': 7}


def olt_editor_script():
    import streamlit as st

    from element_editor.editor_controller import EditorController
    from element_editor.schema_registry import SchemaRegistry
    from element_editor.streamlit_view import EditorView

    if 'controller' not in st.session_state:
        entity = {
            'id': 'olt-1', 'type': 'OLT', 'name': 'OLT Central', 'code': 'OLT_1', 'status': 'ACTIVE',
            'manufacturer': 'Huawei', 'model': 'MA5800', 'portCount': 8, 'slotCount': 2, 'ponPorts': 4,
            'distributionPorts': 2, 'uplinkPorts': 2, 'supportedPONStandards': ['GPON'],
            'ports': [
                {'portNumber': 1, 'type': 'PON', 'status': 'active', 'slotNumber': 1},
                {'portNumber': 2, 'type': 'Uplink', 'status': 'inactive', 'slotNumber': 2},
            ],
        }
        controller = EditorController(SchemaRegistry.load_default(), fetch_entity=None, persist=None)
        controller.open_entity(entity)
        st.session_state.controller = controller

    EditorView.render(st.session_state.controller)


class TestArrayWidgetsAcrossReruns:
    """Widget state of array items is checked with Streamlit's app test runner."""

    def test_removing_first_item_keeps_second(self):
        at = AppTest.from_function(olt_editor_script, default_timeout=30)
        at.run()
        assert not at.exception

        at.button(key='remove_ports_0').click().run()

        assert not at.exception
        ports = at.session_state['controller'].form.array('ports').value()
        assert ports == [{'portNumber': 2, 'type': 'Uplink', 'status': 'inactive', 'slotNumber': 2}]
        assert at.number_input(key='field_ports_0_portNumber').value == 2
        assert at.selectbox(key='field_ports_0_status').value == 'inactive'

    def test_added_item_starts_blank(self):
        at = AppTest.from_function(olt_editor_script, default_timeout=30)
        at.run()

        at.button(key='remove_ports_1').click().run()
        at.button(key='add_ports').click().run()

        assert not at.exception
        ports = at.session_state['controller'].form.array('ports').value()
        assert len(ports) == 2
        assert ports[0]['portNumber'] == 1
        assert ports[1] == {'portNumber': '', 'type': '', 'status': '', 'slotNumber': ''}
