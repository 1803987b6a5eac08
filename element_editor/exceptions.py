"""
Custom exception classes for the network element editor.

Schema problems are raised at start-up; load and save failures are
captured by the editor controller and surfaced as messages.
"""

import logging
from typing import Optional, Dict, Any, List

logger = logging.getLogger(__name__)


class ElementEditorError(Exception):
    """
    Base exception for element editor errors.

    Attributes:
        message: Error message
        context: Additional context information
        recovery_suggestions: List of suggested recovery actions
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 recovery_suggestions: Optional[List[str]] = None):
        self.message = message
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def get_full_details(self) -> Dict[str, Any]:
        """Get complete error details including context and suggestions."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'context': self.context,
            'recovery_suggestions': self.recovery_suggestions
        }


class SchemaLoadError(ElementEditorError):
    """
    Exception raised when the element schema document cannot be loaded.

    This includes missing files, YAML syntax errors and structural problems
    such as duplicate field paths or array fields without sub-fields.
    """

    def __init__(self, source: Any, original_error: Exception,
                 message: Optional[str] = None):
        self.source = source
        self.original_error = original_error

        if message is None:
            message = f"Failed to load element schema from {source}: {str(original_error)}"

        context = {
            'source': str(source),
            'original_error_type': type(original_error).__name__,
            'original_error_message': str(original_error)
        }

        recovery_suggestions = [
            "Check that the schema file exists and is readable",
            "Verify YAML syntax is correct",
            "Ensure every field path is unique within its element type",
            "Ensure every array field declares at least one sub-field"
        ]

        super().__init__(message, context, recovery_suggestions)


class EditorStateError(ElementEditorError):
    """
    Exception raised when an editor operation is not allowed in the current state.

    Typical causes are a save requested while another request is outstanding,
    or an edit attempted before the element finished loading.
    """

    def __init__(self, operation: str, state: str, message: Optional[str] = None):
        self.operation = operation
        self.state = state

        if message is None:
            message = f"Cannot {operation} while editor is {state}"

        context = {
            'operation': operation,
            'state': state
        }

        recovery_suggestions = [
            "Wait until the editor is no longer busy",
            "Reopen the editor if the element failed to load"
        ]

        super().__init__(message, context, recovery_suggestions)


class LoadFailure(ElementEditorError):
    """Exception recorded when fetching an element fails."""

    def __init__(self, element_id: Any, original_error: BaseException,
                 message: Optional[str] = None):
        self.element_id = element_id
        self.original_error = original_error

        if message is None:
            message = f"Failed to load element {element_id}: {str(original_error) or 'unknown error'}"

        context = {
            'element_id': element_id,
            'original_error_type': type(original_error).__name__,
            'original_error_message': str(original_error)
        }

        recovery_suggestions = [
            "Close the editor and open the element again",
            "Check that the element still exists"
        ]

        super().__init__(message, context, recovery_suggestions)


class SaveFailure(ElementEditorError):
    """Exception recorded when persisting an element fails. Edits are kept."""

    def __init__(self, element_id: Any, original_error: BaseException,
                 message: Optional[str] = None):
        self.element_id = element_id
        self.original_error = original_error

        if message is None:
            message = f"Failed to save element {element_id}: {str(original_error) or 'unknown error'}"

        context = {
            'element_id': element_id,
            'original_error_type': type(original_error).__name__,
            'original_error_message': str(original_error)
        }

        recovery_suggestions = [
            "Your changes are still in the form; try saving again",
            "Check the connection to the element service"
        ]

        super().__init__(message, context, recovery_suggestions)
