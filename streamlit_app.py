"""
Streamlit host for the network element editor.

Edits a small in-memory set of sample elements. Run with:

    streamlit run streamlit_app.py
"""

import asyncio
import logging
from copy import deepcopy

import streamlit as st

from element_editor.config_loader import load_config, validate_config
from element_editor.editor_controller import EditorController, EditorState
from element_editor.exceptions import SchemaLoadError
from element_editor.logging_config import configure_logging
from element_editor.schema_registry import SchemaRegistry
from element_editor.streamlit_view import EditorView

config = load_config()
configure_logging(config)
logger = logging.getLogger(__name__)

st.set_page_config(
    page_title=config['app']['name'],
    page_icon="🛰️",
    layout="wide"
)

SAMPLE_ELEMENTS = {
    'olt-1': {
        'id': 'olt-1', 'type': 'OLT', 'name': 'OLT Central', 'code': 'OLT_001', 'status': 'ACTIVE',
        'manufacturer': 'Huawei', 'model': 'MA5800-X7', 'portCount': 32, 'slotCount': 7,
        'ponPorts': 16, 'distributionPorts': 8, 'uplinkPorts': 4,
        'supportedPONStandards': ['GPON', 'XGS_PON'], 'ipAddress': '10.0.0.10',
        'ports': [
            {'portNumber': 1, 'type': 'PON', 'status': 'active', 'slotNumber': 1},
            {'portNumber': 2, 'type': 'Uplink', 'status': 'active', 'slotNumber': 1},
        ],
    },
    'ont-7': {
        'id': 'ont-7', 'type': 'ONT', 'name': 'ONT Client 7', 'code': 'ONT_007', 'status': 'ACTIVE',
        'manufacturer': 'ZTE', 'model': 'F670L', 'serialNumber': 'ZTEG12345678', 'ponStandard': 'GPON',
        'transmitPower': 2.5, 'receivePower': -18,
        'bandwidth': {'downstreamCapacity': 2.5, 'upstreamCapacity': 1.25},
        'userPorts': [{'portNumber': 1, 'type': 'Ethernet', 'status': 'active', 'speed': 1000}],
    },
    'spl-3': {
        'id': 'spl-3', 'type': 'SPLITTER', 'name': 'Splitter North', 'code': 'SPL_003', 'status': 'PLANNED',
        'manufacturer': 'Corning', 'inputPorts': 1, 'outputPorts': 8, 'splitRatio': '1:8',
        'insertionLoss': 10.5, 'splitterType': 'DISTRIBUTION',
    },
    'rack-2': {
        'id': 'rack-2', 'type': 'RACK', 'name': 'Rack A2', 'code': 'RCK_A2', 'status': 'ACTIVE',
        'manufacturer': 'APC', 'heightUnits': 42, 'width': 600, 'depth': 1000, 'totalU': 42,
        'usedU': 18, 'roomName': 'Main equipment room',
    },
}


@st.cache_resource
def get_registry() -> SchemaRegistry:
    return SchemaRegistry.from_config(config)


def init_session_state():
    """Initialize session state variables."""
    if 'elements' not in st.session_state:
        st.session_state.elements = deepcopy(SAMPLE_ELEMENTS)
    if 'controller' not in st.session_state:
        st.session_state.controller = None
    if 'selected_id' not in st.session_state:
        st.session_state.selected_id = None


async def fetch_element(element_id):
    return deepcopy(st.session_state.elements[element_id])


async def persist_element(element_id, entity):
    st.session_state.elements[element_id] = deepcopy(entity)
    logger.info(f"Stored element {element_id}")
    return deepcopy(entity)


def render_sidebar(registry: SchemaRegistry):
    with st.sidebar:
        st.title(config['app']['name'])
        elements = st.session_state.elements
        selected = st.radio(
            "Element",
            options=list(elements),
            format_func=lambda element_id: f"{elements[element_id]['name']} "
                                           f"({registry.type_display_name(elements[element_id]['type'])})"
        )
        st.caption(f"Version {config['app']['version']}")
    return selected


def main():
    """Main application entry point."""
    if not validate_config(config):
        st.warning("⚠️ Configuration is incomplete, some defaults are in use")

    try:
        registry = get_registry()
    except SchemaLoadError as e:
        logger.error(f"Schema could not be loaded: {e}")
        st.error(f"❌ {e.message}")
        for suggestion in e.recovery_suggestions:
            st.info(f"• {suggestion}")
        st.stop()
        return

    init_session_state()
    selected = render_sidebar(registry)

    controller = st.session_state.controller
    if controller is None or selected != st.session_state.selected_id:
        if controller is not None:
            controller.dispose()
        controller = EditorController.from_config(config, registry, fetch_element, persist_element)
        st.session_state.controller = controller
        st.session_state.selected_id = selected

    if controller.state == EditorState.IDLE:
        asyncio.run(controller.open(selected))

    EditorView.render(controller)

    if controller.state == EditorState.CLOSED:
        if st.button("✏️ Edit again"):
            st.session_state.controller = None
            st.rerun()


if __name__ == "__main__":
    main()
