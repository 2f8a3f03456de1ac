"""
Lifecycle Controller — drives one form instance for a details dialog.

Feeds the loaded record into the form once, forwards user events to the
transition function, and runs submissions through an injected mutate
function. After a successful creation the controller switches the dialog
from ADD to EDIT and re-points it at the identifier returned by the backend,
so the next submission updates the record instead of creating it again.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable

from .errors import ConfigurationError, InvalidFormError, SubmissionPendingError
from .form_state import DialogMode, FormState, create_initial_state
from .reducer import (
    HighlightErrors, OnBlur, OnChange, SetMode, Submit, UpdateValues, transition,
)

logger = logging.getLogger(__name__)

_NOT_LOADED = object()


@dataclass(frozen=True)
class SubmitSucceeded:
    """On-success event passed to controller observers."""
    name: str
    mode: DialogMode        # mode the submission was made in
    row_id: Any             # identifier of the record after the submission
    data: Any               # backend response


def make_mutation(client, url: str) -> Callable:
    """Build the mutate function for a details dialog.

    ADD posts to ``url``; EDIT puts to ``url/{row_id}``; any other mode
    patches ``url/{row_id}``.
    """
    def mutate(payload, mode, row_id):
        if mode == DialogMode.ADD:
            return client.post(url, payload)
        if mode == DialogMode.EDIT:
            return client.put(f"{url}/{row_id}", payload)
        return client.patch(f"{url}/{row_id}", payload)
    return mutate


class FormController:
    def __init__(self, registry, mode=DialogMode.ADD, row_id=None,
                 mutate: Callable | None = None, name: str = '',
                 adapter: Callable | None = None):
        self.name = name
        self.row_id = None if mode == DialogMode.ADD else row_id
        self.last_result = None
        self._mutate = mutate
        self._adapter = adapter
        self._observers = []
        self._loaded_for = _NOT_LOADED
        self._pending = False
        self._lock = threading.RLock()
        self._state = transition(create_initial_state(registry), SetMode(mode))

    @property
    def state(self) -> FormState:
        return self._state

    @property
    def mode(self) -> DialogMode:
        return self._state.mode

    @property
    def is_pending(self) -> bool:
        return self._pending

    def subscribe(self, observer: Callable[[SubmitSucceeded], Any]):
        """Register an observer called after every successful submission."""
        self._observers.append(observer)
        return observer

    def dispatch(self, action) -> FormState:
        with self._lock:
            self._state = transition(self._state, action)
            return self._state

    # -- user events -------------------------------------------------------

    def on_change(self, field, value=None, event=None) -> FormState:
        return self.dispatch(OnChange(field, value=value, event=event))

    def on_blur(self, field, event=None) -> FormState:
        return self.dispatch(OnBlur(field, event=event))

    def update_values(self, content) -> FormState:
        return self.dispatch(UpdateValues(content))

    def highlight_errors(self) -> FormState:
        return self.dispatch(HighlightErrors())

    def set_mode(self, mode) -> FormState:
        return self.dispatch(SetMode(mode))

    # -- population --------------------------------------------------------

    def _values_of(self, record):
        return self._adapter(record) if self._adapter else record

    def load(self, record) -> bool:
        """Populate the form from the loaded backing record.

        Only the first record for the current row id is applied.

        Returns:
            True if the record was applied.
        """
        with self._lock:
            if self._loaded_for == self.row_id:
                logger.debug("%s: record %s already loaded", self.name, self.row_id)
                return False
            self._state = transition(self._state, UpdateValues(self._values_of(record)))
            self._loaded_for = self.row_id
        logger.info("%s: loaded record %s", self.name, self.row_id)
        return True

    # -- submission --------------------------------------------------------

    def submit(self):
        """Validate, send the payload through the mutate function, and
        advance ADD to EDIT on success.

        Returns:
            The backend response.

        Raises:
            SubmissionPendingError: If a submission is already in flight.
            InvalidFormError: If any field is invalid; nothing is sent.
            ConfigurationError: If no mutate function was configured.
            Exception: Whatever the mutate function raises; the form state
                is left unchanged.
        """
        if self._mutate is None:
            raise ConfigurationError(f"{self.name or 'form'}: no mutate function configured")

        with self._lock:
            if self._pending:
                logger.warning("%s: submit rejected, previous submission pending", self.name)
                raise SubmissionPendingError("A submission is already in progress")
            self._pending = True
            state = self._state
            mode, row_id = state.mode, self.row_id

        responses = []
        try:
            submitted = transition(state, Submit(
                lambda payload: responses.append(self._mutate(payload, mode, row_id))))
        except InvalidFormError:
            # keep the highlighted errors visible
            self.dispatch(HighlightErrors())
            raise
        finally:
            with self._lock:
                self._pending = False

        result = responses[0]
        self._apply_success(state, submitted, mode, result)
        return result

    def _apply_success(self, state, submitted, mode, result):
        with self._lock:
            if self._state is state:
                self._state = submitted
            if mode == DialogMode.ADD:
                new_id = result.get('id') if isinstance(result, Mapping) else None
                if new_id is None:
                    logger.warning("%s: create response carries no id; staying in add mode",
                                   self.name)
                else:
                    self.row_id = new_id
                    self._state = transition(self._state, SetMode(DialogMode.EDIT))
                    logger.info("%s: created record %s, switched to edit mode",
                                self.name, new_id)
            if isinstance(result, Mapping):
                self._state = transition(self._state, UpdateValues(self._values_of(result)))
                self._loaded_for = self.row_id
            self.last_result = result
            event = SubmitSucceeded(self.name, mode, self.row_id, result)

        for observer in list(self._observers):
            observer(event)
