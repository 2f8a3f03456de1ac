"""
Form State — the value container of one form instance.

FormState is immutable: the transition function in reducer.py returns new
instances built with dataclasses.replace().
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from .field_registry import ControlType, FieldDef


class DialogMode(str, Enum):
    VIEW = 'view'
    EDIT = 'edit'
    ADD = 'add'


@dataclass(frozen=True)
class FieldState:
    edited: bool = False
    error_text: str | None = None


@dataclass(frozen=True)
class FormState:
    columns: MappingProxyType           # name -> FieldDef
    values: dict[str, Any]
    field_state: dict[str, FieldState]
    loaded: dict[str, Any] = field(default_factory=dict)
    mode: DialogMode | None = None

    @property
    def has_errors(self) -> bool:
        return any(fs.error_text for fs in self.field_state.values())

    @property
    def has_changes(self) -> bool:
        return any(self.values[name] != self.loaded.get(name)
                   for name in self.columns)

    @property
    def errors(self) -> dict[str, str]:
        return {name: fs.error_text for name, fs in self.field_state.items()
                if fs.error_text}


def default_value(fdef: FieldDef):
    """Seed value of a field before any record is loaded."""
    if fdef.control_type == ControlType.TEXT:
        return ''
    if fdef.control_type == ControlType.BOOLEAN:
        return False
    return None


def create_initial_state(registry: dict[str, FieldDef]) -> FormState:
    values = {name: default_value(fdef) for name, fdef in registry.items()}
    return FormState(
        columns=MappingProxyType(dict(registry)),
        values=values,
        field_state={name: FieldState() for name in registry},
        loaded=dict(values),
        mode=None,
    )


def get_final_payload(state: FormState) -> dict[str, Any]:
    """Extract the submission payload: non-skip fields, transformed."""
    payload = {}
    for name, fdef in state.columns.items():
        if fdef.skip_on_submit:
            continue
        value = state.values[name]
        if fdef.final_value is not None:
            value = fdef.final_value(value)
        payload[name] = value
    return payload


def snapshot(state: FormState) -> dict[str, Any]:
    """Plain-dict view of a state for rendering layers."""
    return {
        'mode': state.mode.value if state.mode else None,
        'values': dict(state.values),
        'field_state': {
            name: {'edited': fs.edited, 'error_text': fs.error_text}
            for name, fs in state.field_state.items()
        },
        'has_errors': state.has_errors,
        'has_changes': state.has_changes,
    }
