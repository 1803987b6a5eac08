"""
Streamlit rendering of an element edit session.

Every field of the element's schema becomes one widget; array fields are
rendered as expanders with add and remove buttons. Widget values are pushed
into the EditorController on each rerun, which re-validates the form.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import streamlit as st

from .editor_controller import EditorController, EditorState
from .schema_registry import FieldDescriptor, FieldKind
from .validation import ValidationAggregator
from .validators import ErrorScope, to_number

logger = logging.getLogger(__name__)

WIDGET_BY_KIND = {
    FieldKind.TEXT: 'text_input',
    FieldKind.NUMBER: 'number_input',
    FieldKind.SELECT: 'selectbox',
    FieldKind.MULTISELECT: 'multiselect',
    FieldKind.CHECKBOX: 'checkbox',
}

EMPTY_OPTION = ''


def get_streamlit_widget_type(kind: Any) -> str:
    """Map a field kind to the Streamlit widget that edits it."""
    try:
        return WIDGET_BY_KIND.get(FieldKind(kind), 'text_input')
    except ValueError:
        return 'text_input'


def _shown_value(descriptor: FieldDescriptor, value: Any) -> Any:
    """Control value as the widget expects it."""
    if descriptor.kind == FieldKind.NUMBER:
        return to_number(value)
    if descriptor.kind == FieldKind.MULTISELECT:
        if not isinstance(value, list):
            return []
        return [item for item in value if item in (descriptor.options or ())]
    if descriptor.kind == FieldKind.CHECKBOX:
        return bool(value)
    if descriptor.kind == FieldKind.SELECT:
        return value if value in (descriptor.options or ()) else EMPTY_OPTION
    return '' if value is None else str(value)


class EditorView:
    """Renders an EditorController with Streamlit widgets."""

    @staticmethod
    def render(controller: EditorController) -> Optional[Dict[str, Any]]:
        """
        Render the current session.

        Args:
            controller: Session to render

        Returns:
            The saved element once the session has closed, otherwise None
        """
        if controller.entity is not None:
            st.subheader(f"Element properties ({controller.type_display_name()})")

        if controller.state == EditorState.LOADING:
            st.info("Loading element data...")
            return None

        if controller.state == EditorState.LOAD_ERROR:
            st.error(controller.error_message or "Failed to load element")
            return None

        if controller.state == EditorState.CLOSED:
            if controller.result is not None:
                st.success("Element saved")
            return controller.result

        if controller.state != EditorState.READY or controller.form is None:
            return None

        if controller.error_message:
            st.error(controller.error_message)

        schema = controller.registry.schema_for(controller.form.element_type)
        for descriptor in schema.fields:
            if descriptor.is_array:
                EditorView._render_array(controller, descriptor)
            else:
                EditorView._render_field(controller, descriptor)

        report = controller.validation_report()
        for issue in report.errors:
            if issue.scope == ErrorScope.FORM:
                st.error(issue.message)

        if not report.can_submit:
            st.caption(f"{len(report.blocking)} issue(s) must be fixed before saving")
        elif controller.has_unsaved_changes():
            st.warning("⚠️ Unsaved changes")

        if st.button("💾 Save", type="primary", key="element_editor_save",
                     disabled=controller.busy or not report.can_submit):
            asyncio.run(controller.save())
            st.rerun()
            return controller.result

        return None

    @staticmethod
    def _render_widget(descriptor: FieldDescriptor, value: Any, key: str) -> Any:
        """Render one widget and return the value it reports."""
        label = f"{descriptor.label} *" if descriptor.required else descriptor.label
        shown = _shown_value(descriptor, value)
        widget = get_streamlit_widget_type(descriptor.kind)

        if widget == 'number_input':
            return st.number_input(label, value=shown, key=key)

        if widget == 'selectbox':
            options: List[Any] = [EMPTY_OPTION] + list(descriptor.options or ())
            return st.selectbox(
                label,
                options=options,
                index=options.index(shown),
                key=key,
                format_func=lambda x: "-- Select --" if x == EMPTY_OPTION else str(x)
            )

        if widget == 'multiselect':
            return st.multiselect(label, options=list(descriptor.options or ()), default=shown, key=key)

        if widget == 'checkbox':
            return st.checkbox(label, value=shown, key=key)

        help_text = f"Pattern: {descriptor.pattern}" if descriptor.pattern else None
        return st.text_input(label, value=shown, key=key, help=help_text)

    @staticmethod
    def _render_field(controller: EditorController, descriptor: FieldDescriptor) -> None:
        control = controller.form.control(descriptor.path)
        new_value = EditorView._render_widget(descriptor, control.value, f"field_{descriptor.path}")

        if new_value != _shown_value(descriptor, control.value):
            controller.set_value(descriptor.path, new_value)
            controller.touch(descriptor.path)

        if control.has_error():
            for issue in ValidationAggregator.field_issues(control):
                st.error(issue.message)

    @staticmethod
    def _render_array(controller: EditorController, descriptor: FieldDescriptor) -> None:
        array = controller.form.array(descriptor.path)

        with st.expander(f"{descriptor.label} ({len(array)})", expanded=True):
            for index in range(len(array)):
                group = array.items[index]
                st.markdown(f"**{array.item_label} {index + 1}**")

                for sub in descriptor.sub_fields:
                    control = group.control(sub.path)
                    key = f"field_{descriptor.path}_{index}_{sub.path}"
                    new_value = EditorView._render_widget(sub, control.value, key)
                    if new_value != _shown_value(sub, control.value):
                        controller.set_item_value(descriptor.path, index, sub.path, new_value)
                        controller.touch_item(descriptor.path, index, sub.path)

                for issue in ValidationAggregator.group_issues(array, touched_only=True):
                    if issue.item_index == index:
                        st.error(issue.message)

                if st.button(f"Remove {array.item_label} {index + 1}",
                             key=f"remove_{descriptor.path}_{index}"):
                    controller.remove_item(descriptor.path, index)
                    EditorView._clear_item_widgets(descriptor.path, index)
                    st.rerun()
                    return

            if st.button(f"Add {array.item_label}", key=f"add_{descriptor.path}"):
                controller.add_item(descriptor.path)
                EditorView._clear_item_widgets(descriptor.path, len(array) - 1)
                st.rerun()

    @staticmethod
    def _clear_item_widgets(array_path: str, start: int) -> None:
        """
        Drop the widget state of array items from ``start`` on.

        Item widgets are keyed by position, so after a removal the widgets at
        shifted positions would still hold the old items' values.
        """
        prefix = f"field_{array_path}_"
        for key in list(st.session_state.keys()):
            if not isinstance(key, str) or not key.startswith(prefix):
                continue
            index, _, sub_field = key[len(prefix):].partition('_')
            if index.isdigit() and sub_field and int(index) >= start:
                del st.session_state[key]
