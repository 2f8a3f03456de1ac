"""
Field Registry — compile declarative field descriptors into field definitions.

Provides the ControlType enum and the FieldDef dataclass used by the form
state engine. Descriptors are plain dicts, as found in entity metadata:

    {
        "grid": {"field": "name", "header": "Name"},
        "control": {"text": {"field": "name", "label": "Name", "required": True}},
    }

Descriptors without a ``control`` entry only drive display surfaces (grids)
and are skipped.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .errors import ConfigurationError


class ControlType(str, Enum):
    TEXT = 'text'
    BOOLEAN = 'boolean'
    DATE = 'date'
    LOOKUP_SINGLE = 'lookup-single'
    LOOKUP_MULTI = 'lookup-multi'

    @property
    def is_lookup(self) -> bool:
        return self in (ControlType.LOOKUP_SINGLE, ControlType.LOOKUP_MULTI)


@dataclass(frozen=True)
class FieldDef:
    name: str
    label: str
    control_type: ControlType
    required: bool = False
    skip_on_submit: bool = False
    validator: Callable | None = None      # (ValidationContext) -> str | None
    final_value: Callable | None = None    # stored value -> wire value
    choices: tuple | None = None           # static lookup options
    source: str | None = None              # lookup data source, e.g. 'countries'
    options: dict = field(default_factory=dict)


# Descriptor discriminators and the option keys consumed by the registry.
CONTROL_KEYS = ('text', 'boolean', 'date', 'lookup', 'country')
_ENGINE_KEYS = {'field', 'label', 'required', 'skip_on_submit', 'validator',
                'final_value', 'choices', 'multiple', 'source'}


def _control_type(kind: str, opts: dict) -> ControlType:
    if kind == 'text':
        return ControlType.TEXT
    if kind == 'boolean':
        return ControlType.BOOLEAN
    if kind == 'date':
        return ControlType.DATE
    if kind in ('lookup', 'country'):
        if opts.get('multiple'):
            return ControlType.LOOKUP_MULTI
        return ControlType.LOOKUP_SINGLE
    raise ConfigurationError(f"Unknown control type: {kind!r}")


def _build_field(kind: str, opts: dict) -> FieldDef:
    if not isinstance(opts, dict):
        raise ConfigurationError(f"Options of control {kind!r} must be a dict")
    name = opts.get('field')
    if not name or not isinstance(name, str):
        raise ConfigurationError(f"Control {kind!r} is missing its 'field' name")

    control_type = _control_type(kind, opts)

    for key in ('validator', 'final_value'):
        if opts.get(key) is not None and not callable(opts[key]):
            raise ConfigurationError(f"Field '{name}': {key} must be callable")

    choices = opts.get('choices')
    if choices is not None:
        if not control_type.is_lookup:
            raise ConfigurationError(f"Field '{name}': choices require a lookup control")
        choices = tuple(dict(c) for c in choices)

    source = opts.get('source')
    if kind == 'country':
        source = source or 'countries'

    return FieldDef(
        name=name,
        label=opts.get('label') or name.replace('_', ' ').title(),
        control_type=control_type,
        required=bool(opts.get('required', False)),
        skip_on_submit=bool(opts.get('skip_on_submit', False)),
        validator=opts.get('validator'),
        final_value=opts.get('final_value'),
        choices=choices,
        source=source,
        options={k: v for k, v in opts.items() if k not in _ENGINE_KEYS},
    )


def build_registry(descriptors) -> dict[str, FieldDef]:
    """Build the field definition map from a list of descriptors.

    Args:
        descriptors: Ordered list of descriptor dicts.

    Returns:
        Dict mapping field name to FieldDef, in descriptor order.

    Raises:
        ConfigurationError: On an unknown, missing or ambiguous control
            type, a missing field name, or a duplicate field.
    """
    registry = {}
    for index, descriptor in enumerate(descriptors):
        if not isinstance(descriptor, dict):
            raise ConfigurationError(f"Descriptor #{index} must be a dict")
        if 'control' not in descriptor:
            continue

        control = descriptor['control']
        if not isinstance(control, dict) or not control:
            raise ConfigurationError(f"Descriptor #{index} has no control type")
        if len(control) > 1:
            kinds = ', '.join(sorted(control))
            raise ConfigurationError(
                f"Descriptor #{index} names more than one control type: {kinds}")

        (kind, opts), = control.items()
        if kind not in CONTROL_KEYS:
            raise ConfigurationError(f"Unknown control type: {kind!r}")

        fdef = _build_field(kind, opts)
        if fdef.name in registry:
            raise ConfigurationError(f"Duplicate field: {fdef.name}")
        registry[fdef.name] = fdef

    return registry


def describe_registry(registry: dict[str, FieldDef]) -> dict[str, dict[str, Any]]:
    """Return a JSON-serialisable description of a registry."""
    return {
        name: {
            'label': fdef.label,
            'control_type': fdef.control_type.value,
            'required': fdef.required,
            'skip_on_submit': fdef.skip_on_submit,
            'choices': list(fdef.choices) if fdef.choices is not None else None,
            'source': fdef.source,
            'options': {k: v for k, v in fdef.options.items()
                        if isinstance(v, (str, int, float, bool, type(None)))},
        }
        for name, fdef in registry.items()
    }
