"""
Edit session state machine for one network element.

    IDLE -> LOADING -> READY | LOAD_ERROR
    READY -> SAVING -> CLOSED | SAVE_ERROR -> READY

The controller owns the form of the session. Fetch and persist are supplied
by the host and may be coroutine functions or plain callables. At most one
load or save is outstanding at a time; ``dispose()`` invalidates any request
still in flight so its late response is dropped.
"""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from .array_field_controller import ArrayFieldController
from .diff_utils import calculate_diff, has_changes
from .exceptions import EditorStateError, LoadFailure, SaveFailure
from .form_assembler import FormAssembler
from .form_model import ArrayItemGroup, FormModel
from .schema_registry import SchemaRegistry
from .validation import ValidationAggregator, ValidationReport

logger = logging.getLogger(__name__)

Entity = Dict[str, Any]
FetchEntity = Callable[[Any], Union[Entity, Awaitable[Entity]]]
PersistEntity = Callable[[Any, Entity], Union[Entity, Awaitable[Entity]]]


class EditorState(str, Enum):
    """Lifecycle states of an edit session."""
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    LOAD_ERROR = "load_error"
    SAVING = "saving"
    SAVE_ERROR = "save_error"
    CLOSED = "closed"


async def _resolve(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


def _is_new(entity: Entity) -> bool:
    return entity.get('id') in (None, '')


class EditorController:
    """
    Drives one element edit session from load to save.

    Attributes:
        state: Current EditorState
        entity: Record the session was opened with
        form: Control tree while the session is open
        failure: Last LoadFailure or SaveFailure
        error_message: Message of the last failure, for display
        result: Saved record once the session closed successfully
    """

    def __init__(self, registry: SchemaRegistry, fetch_entity: FetchEntity,
                 persist: PersistEntity, assembler: Optional[FormAssembler] = None,
                 reveal_errors_on_submit: bool = True):
        self.registry = registry
        self.fetch_entity = fetch_entity
        self.persist = persist
        self.assembler = assembler or FormAssembler(registry)
        self.reveal_errors_on_submit = reveal_errors_on_submit

        self.state = EditorState.IDLE
        self.entity: Optional[Entity] = None
        self.form: Optional[FormModel] = None
        self.failure: Optional[Union[LoadFailure, SaveFailure]] = None
        self.error_message: Optional[str] = None
        self.result: Optional[Entity] = None

        self._busy = False
        self._generation = 0
        self._baseline: Optional[Entity] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any], registry: SchemaRegistry,
                    fetch_entity: FetchEntity, persist: PersistEntity) -> 'EditorController':
        editor_config = config.get('editor') or {}
        return cls(
            registry, fetch_entity, persist,
            reveal_errors_on_submit=editor_config.get('reveal_errors_on_submit', True)
        )

    @property
    def busy(self) -> bool:
        return self._busy

    def _transition(self, state: EditorState) -> None:
        logger.info(f"Editor state {self.state.value} -> {state.value}")
        self.state = state

    def _require_ready(self, operation: str) -> FormModel:
        if self._busy or self.state != EditorState.READY or self.form is None:
            raise EditorStateError(operation, self.state.value)
        return self.form

    def _is_stale(self, generation: int, operation: str) -> bool:
        if generation != self._generation:
            logger.debug(f"Ignoring {operation} response from a disposed session")
            return True
        return False

    def _start_session(self, entity: Entity) -> None:
        form = self.assembler.build(entity)
        self.entity = entity
        self.form = form
        self._baseline = self.assembler.apply_to_entity(form, entity)
        self._transition(EditorState.READY)

    def _close(self, result: Optional[Entity]) -> None:
        self.result = result
        self.form = None
        self.entity = None
        self._baseline = None
        self._transition(EditorState.CLOSED)

    # Loading

    async def open(self, element_id: Any) -> None:
        """
        Fetch an element and prepare its form.

        Failures are recorded on ``failure`` and ``error_message`` and leave
        the session in LOAD_ERROR; they are not raised.

        Raises:
            EditorStateError: If a request is outstanding or the session was
                already opened
            asyncio.CancelledError: If the task was cancelled while fetching;
                the session is left in LOAD_ERROR first
        """
        if self._busy or self.state not in (EditorState.IDLE, EditorState.LOAD_ERROR):
            raise EditorStateError('open', self.state.value)

        generation = self._generation
        self._busy = True
        self.failure = None
        self.error_message = None
        self._transition(EditorState.LOADING)

        try:
            entity = await _resolve(self.fetch_entity(element_id))
            if not isinstance(entity, dict):
                raise TypeError(f"fetch returned {type(entity).__name__}, expected a record")
        except asyncio.CancelledError as e:
            if not self._is_stale(generation, 'load'):
                self._fail_load(element_id, e, f"Loading element {element_id} was cancelled")
            raise
        except Exception as e:
            if self._is_stale(generation, 'load'):
                return
            self._fail_load(element_id, e)
            return

        if self._is_stale(generation, 'load'):
            return

        self._busy = False
        try:
            self._start_session(entity)
        except Exception as e:
            self._fail_load(element_id, e)

    def _fail_load(self, element_id: Any, error: BaseException, message: Optional[str] = None) -> None:
        self._busy = False
        self.failure = LoadFailure(element_id, error, message)
        self.error_message = self.failure.message
        logger.error(self.failure.message, exc_info=error)
        self._transition(EditorState.LOAD_ERROR)

    def open_entity(self, entity: Entity) -> None:
        """Start a session from a record already at hand, without fetching."""
        if self._busy or self.state not in (EditorState.IDLE, EditorState.LOAD_ERROR):
            raise EditorStateError('open', self.state.value)

        self.failure = None
        self.error_message = None
        self._start_session(entity)

    # Editing

    def set_value(self, path: str, value: Any) -> None:
        self._require_ready('edit').set_value(path, value)

    def touch(self, path: str) -> None:
        self._require_ready('edit').touch(path)

    def set_item_value(self, array_path: str, index: int, sub_field: str, value: Any) -> None:
        self._require_ready('edit').set_item_value(array_path, index, sub_field, value)

    def touch_item(self, array_path: str, index: int, sub_field: str) -> None:
        self._require_ready('edit').item_control(array_path, index, sub_field).mark_touched()

    def add_item(self, array_path: str) -> ArrayItemGroup:
        return ArrayFieldController(self._require_ready('edit')).add_item(array_path)

    def remove_item(self, array_path: str, index: int) -> bool:
        return ArrayFieldController(self._require_ready('edit')).remove_item(array_path, index)

    # Inspection

    def validation_report(self) -> ValidationReport:
        if self.form is None:
            return ValidationReport()
        return ValidationAggregator.collect(self.form)

    @property
    def can_submit(self) -> bool:
        return (self.state == EditorState.READY and not self._busy
                and self.validation_report().can_submit)

    def patched_entity(self) -> Entity:
        """The loaded record with the current form values applied."""
        if self.form is None or self.entity is None:
            raise EditorStateError('build the patched element', self.state.value)
        return self.assembler.apply_to_entity(self.form, self.entity)

    def has_unsaved_changes(self) -> bool:
        if self.form is None or self._baseline is None:
            return False
        return has_changes(calculate_diff(self._baseline, self.patched_entity()))

    def type_display_name(self, element_type: Any = None) -> str:
        if element_type is None and self.entity is not None:
            element_type = self.entity.get('type')
        return self.registry.type_display_name(element_type)

    def type_icon(self, element_type: Any = None) -> str:
        if element_type is None and self.entity is not None:
            element_type = self.entity.get('type')
        return self.registry.type_icon(element_type)

    # Saving

    async def save(self) -> Optional[Entity]:
        """
        Validate and persist the edited element.

        An invalid form is not persisted; its errors are revealed and the
        session stays READY. A failed or cancelled persist keeps every edit
        and returns to READY.

        Returns:
            The saved record when the session closed, otherwise None. For a
            new element (no ``id``) ``persist`` is not called: the session
            closes with the patched record itself, which is also stored on
            ``result``. The host is responsible for creating it.

        Raises:
            EditorStateError: If the session is not READY or a request is
                outstanding
            asyncio.CancelledError: If the task was cancelled while
                persisting; the session is back in READY first
        """
        form = self._require_ready('save')

        report = ValidationAggregator.collect(form)
        if not report.can_submit:
            if self.reveal_errors_on_submit:
                form.mark_all_touched()
            logger.info(f"Save blocked by {len(report.blocking)} validation issues")
            return None

        patched = self.assembler.apply_to_entity(form, self.entity)
        if _is_new(self.entity):
            logger.info("New element, closing without persisting")
            self._close(patched)
            return patched

        element_id = self.entity['id']
        generation = self._generation
        self._busy = True
        self.failure = None
        self.error_message = None
        self._transition(EditorState.SAVING)

        try:
            saved = await _resolve(self.persist(element_id, patched))
        except asyncio.CancelledError as e:
            if not self._is_stale(generation, 'save'):
                self._fail_save(element_id, e, f"Saving element {element_id} was cancelled")
            raise
        except Exception as e:
            if self._is_stale(generation, 'save'):
                return None
            self._fail_save(element_id, e)
            return None

        if self._is_stale(generation, 'save'):
            return None

        self._busy = False
        self._close(saved)
        return saved

    def _fail_save(self, element_id: Any, error: BaseException, message: Optional[str] = None) -> None:
        self._busy = False
        self.failure = SaveFailure(element_id, error, message)
        self.error_message = self.failure.message
        logger.error(self.failure.message, exc_info=error)
        self._transition(EditorState.SAVE_ERROR)
        self._transition(EditorState.READY)

    def dispose(self) -> None:
        """End the session, discarding the form and any request in flight."""
        self._generation += 1
        self._busy = False
        self.form = None
        self.entity = None
        self._baseline = None
        if self.state != EditorState.CLOSED:
            self._transition(EditorState.CLOSED)
