"""
Validation Pipeline — default validators per control type plus optional
custom validators.

Validators take a ValidationContext and return an error message or None.
The pipeline always runs the default validator first and only runs the
field's custom validator when the default one passed.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from types import MappingProxyType
from typing import Any

from .errors import FieldValidationError
from .field_registry import ControlType, FieldDef

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


@dataclass(frozen=True)
class ValidationContext:
    field: str
    label: str
    value: Any
    required: bool
    state: Any          # FormState the candidate value is validated against

    @property
    def values(self) -> Mapping:
        """Read-only view of the whole form's values."""
        return MappingProxyType(self.state.values)


def is_empty(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict)):
        return not value
    return False


def parse_date(value) -> date | None:
    """Convert a date-like value to a date.

    Accepts date/datetime objects and ISO-8601 strings ("2025-01-01",
    "2025-01-01T10:00:00Z"). Returns None for empty values.

    Raises:
        ValueError: If the value is not a well-formed date.
    """
    if is_empty(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            return datetime.fromisoformat(text.replace('Z', '+00:00')).date()
    raise ValueError(f"Not a date: {value!r}")


# ---------------------------------------------------------------------------
# Default validators
# ---------------------------------------------------------------------------

def _required_message(ctx: ValidationContext) -> str | None:
    if ctx.required and is_empty(ctx.value):
        return f"{ctx.label} is required."
    return None


def _validate_text(ctx):
    message = _required_message(ctx)
    if message:
        return message
    if ctx.value is not None and not isinstance(ctx.value, str):
        return f"{ctx.label} must be text."
    return None


def _validate_boolean(ctx):
    if ctx.value is None:
        return f"{ctx.label} is required." if ctx.required else None
    if not isinstance(ctx.value, bool):
        return f"{ctx.label} must be true or false."
    return None


def _validate_date(ctx):
    message = _required_message(ctx)
    if message:
        return message
    try:
        parse_date(ctx.value)
    except (ValueError, TypeError):
        return f"{ctx.label} must be a valid date."
    return None


def _check_option(ctx, option, choices) -> str | None:
    if not isinstance(option, Mapping) or 'id' not in option:
        return f"{ctx.label} must be a valid option."
    if choices is not None and option['id'] not in [c['id'] for c in choices]:
        labels = ', '.join(str(c.get('label', c['id'])) for c in choices)
        return f"{ctx.label} must be one of: {labels}."
    return None


def _validate_lookup(ctx, fdef: FieldDef):
    message = _required_message(ctx)
    if message or is_empty(ctx.value):
        return message
    if fdef.control_type == ControlType.LOOKUP_MULTI:
        if not isinstance(ctx.value, (list, tuple)):
            return f"{ctx.label} must be a list of options."
        options = ctx.value
    else:
        options = [ctx.value]
    for option in options:
        message = _check_option(ctx, option, fdef.choices)
        if message:
            return message
    return None


def default_validate(fdef: FieldDef, ctx: ValidationContext) -> str | None:
    control_type = fdef.control_type
    if control_type == ControlType.TEXT:
        return _validate_text(ctx)
    if control_type == ControlType.BOOLEAN:
        return _validate_boolean(ctx)
    if control_type == ControlType.DATE:
        return _validate_date(ctx)
    if control_type.is_lookup:
        return _validate_lookup(ctx, fdef)
    raise AssertionError(f"Unhandled control type: {control_type}")


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def validate_field(fdef: FieldDef, value, state) -> str | None:
    """Run default-then-custom validation for one field.

    Returns:
        The error message, or None when the value is valid.
    """
    ctx = ValidationContext(field=fdef.name, label=fdef.label, value=value,
                            required=fdef.required, state=state)
    message = default_validate(fdef, ctx)
    if message or fdef.validator is None:
        return message
    try:
        return fdef.validator(ctx) or None
    except FieldValidationError as e:
        return str(e) or f"{fdef.label} is invalid."


def validate_all(state) -> dict[str, str | None]:
    """Validate every field against its committed value."""
    return {name: validate_field(fdef, state.values[name], state)
            for name, fdef in state.columns.items()}


# ---------------------------------------------------------------------------
# Custom validators used by entity metadata
# ---------------------------------------------------------------------------

def verify_email(ctx: ValidationContext) -> str | None:
    if is_empty(ctx.value):
        return None
    if not EMAIL_PATTERN.fullmatch(str(ctx.value).strip()):
        return f"{ctx.label} must be a valid email address."
    return None


def _compare_dates(ctx, other: str):
    """Return (own, other, other_label); dates that don't parse yield None."""
    other_fdef = ctx.state.columns[other]
    try:
        own_date = parse_date(ctx.value)
        other_date = parse_date(ctx.values.get(other))
    except (ValueError, TypeError):
        return None, None, other_fdef.label
    return own_date, other_date, other_fdef.label


def date_not_after(other: str, message: str = None):
    """Build a validator failing when the value lies after field ``other``."""
    def validate(ctx: ValidationContext) -> str | None:
        own_date, other_date, other_label = _compare_dates(ctx, other)
        if own_date and other_date and own_date > other_date:
            template = message or "The {label} must be before the {other} date."
            return template.format(label=ctx.label, other=other_label)
        return None
    return validate


def date_not_before(other: str, message: str = None):
    """Build a validator failing when the value lies before field ``other``."""
    def validate(ctx: ValidationContext) -> str | None:
        own_date, other_date, other_label = _compare_dates(ctx, other)
        if own_date and other_date and own_date < other_date:
            template = message or "The {label} must be after the {other} date."
            return template.format(label=ctx.label, other=other_label)
        return None
    return validate
