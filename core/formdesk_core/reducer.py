"""
Transition function — the only mutator of FormState.

``transition(state, action)`` is pure apart from SUBMIT, which calls the
handler it carries once the form validated cleanly. Every ON_CHANGE and
ON_BLUR ends with the cross-field cascade: all other fields are re-validated
against the updated state, so validators that read sibling values (e.g.
"active from" vs. "active until") stay consistent in both directions.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, Callable

from .errors import InvalidFormError, UnknownFieldError
from .field_registry import ControlType, FieldDef
from .form_state import DialogMode, FieldState, FormState, get_final_payload
from .validation import is_empty, validate_all, validate_field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OnChange:
    field: str
    value: Any = None
    event: Any = None       # input event carrying the control's text


@dataclass(frozen=True)
class OnBlur:
    field: str
    event: Any = None


@dataclass(frozen=True)
class UpdateValues:
    content: Mapping


@dataclass(frozen=True)
class HighlightErrors:
    pass


@dataclass(frozen=True)
class Submit:
    handler: Callable[[dict], Any]


@dataclass(frozen=True)
class SetMode:
    mode: DialogMode


# ---------------------------------------------------------------------------
# Value extraction
# ---------------------------------------------------------------------------

def event_text(event) -> str | None:
    """Text carried by an input event: a string, a mapping or an object
    with a ``value`` attribute."""
    if event is None or isinstance(event, str):
        return event
    if isinstance(event, Mapping):
        return event.get('value')
    return getattr(event, 'value', None)


def _change_value(fdef: FieldDef, action: OnChange):
    control_type = fdef.control_type
    if control_type == ControlType.TEXT:
        text = event_text(action.event) if action.event is not None else action.value
        return '' if text is None else text
    if control_type == ControlType.BOOLEAN:
        return False if action.value is None else action.value
    if control_type == ControlType.DATE:
        return action.value or None
    if control_type.is_lookup:
        return None if is_empty(action.value) else action.value
    raise AssertionError(f"Unhandled control type: {control_type}")


def _validates_on_change(control_type: ControlType) -> bool:
    return control_type == ControlType.DATE or control_type.is_lookup


def _column(state: FormState, name: str) -> FieldDef:
    try:
        return state.columns[name]
    except KeyError:
        raise UnknownFieldError(name) from None


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def _commit(state, fdef, value, validate, edited):
    """Store a value and, if requested, the result of validating it."""
    name = fdef.name
    updated = replace(state, values={**state.values, name: value})
    current = state.field_state[name]
    error_text = validate_field(fdef, value, updated) if validate else current.error_text
    field_state = {**state.field_state,
                   name: FieldState(edited=edited, error_text=error_text)}
    return replace(updated, field_state=field_state)


def _cascade(state: FormState, changed: str) -> FormState:
    field_state = dict(state.field_state)
    for name, fdef in state.columns.items():
        if name == changed:
            continue
        error_text = validate_field(fdef, state.values[name], state)
        field_state[name] = replace(field_state[name], error_text=error_text)
    return replace(state, field_state=field_state)


def _on_change(state, action):
    fdef = _column(state, action.field)
    previous = state.values[fdef.name]
    candidate = _change_value(fdef, action)
    state = _commit(state, fdef, candidate,
                    validate=_validates_on_change(fdef.control_type),
                    edited=candidate != previous)
    return _cascade(state, fdef.name)


def _on_blur(state, action):
    fdef = _column(state, action.field)
    if fdef.control_type == ControlType.BOOLEAN:
        return state

    committed = state.values[fdef.name]
    candidate = committed
    if fdef.control_type == ControlType.TEXT and action.event is not None:
        text = event_text(action.event)
        candidate = '' if text is None else text

    edited = state.field_state[fdef.name].edited or candidate != committed
    state = _commit(state, fdef, candidate, validate=True, edited=edited)
    return _cascade(state, fdef.name)


def _update_values(state, action):
    content = action.content or {}
    updates = {name: content[name] for name in state.columns if name in content}
    return replace(state,
                   values={**state.values, **updates},
                   loaded={**state.loaded, **updates})


def _highlight_errors(state):
    errors = validate_all(state)
    field_state = {name: replace(fs, error_text=errors[name])
                   for name, fs in state.field_state.items()}
    return replace(state, field_state=field_state)


def _submit(state, action):
    state = _highlight_errors(state)
    if state.has_errors:
        logger.warning("Submit rejected: %d invalid field(s)", len(state.errors))
        raise InvalidFormError(state.errors)
    action.handler(get_final_payload(state))
    return state


def transition(state: FormState, action) -> FormState:
    """Apply one action and return the new state."""
    logger.debug("transition %s", type(action).__name__)
    if isinstance(action, OnChange):
        return _on_change(state, action)
    if isinstance(action, OnBlur):
        return _on_blur(state, action)
    if isinstance(action, UpdateValues):
        return _update_values(state, action)
    if isinstance(action, HighlightErrors):
        return _highlight_errors(state)
    if isinstance(action, Submit):
        return _submit(state, action)
    if isinstance(action, SetMode):
        return replace(state, mode=DialogMode(action.mode))
    raise TypeError(f"Unknown action: {action!r}")
