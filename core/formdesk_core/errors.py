"""
errors.py — exception taxonomy of the form state engine.

Configuration errors fail fast at registry build time. Validation failures
never leave the pipeline: they become per-field error text. Submission
errors are raised to the caller of the SUBMIT transition.
"""


class FormError(Exception):
    """Base exception for form engine operations."""


class ConfigurationError(FormError):
    """Raised when field metadata is malformed (e.g. unknown control type)."""


class FieldValidationError(FormError):
    """Raised by a custom validator to report a field error.

    The validation pipeline catches it and stores the message as the
    field's error text; it is never propagated past the pipeline.
    """


class UnknownFieldError(FormError, KeyError):
    """Raised when an action names a field that is not registered."""

    def __init__(self, field):
        super().__init__(field)
        self.field = field

    def __str__(self):
        return f"Unknown field: {self.field}"


class InvalidFormError(FormError):
    """Raised when SUBMIT is issued while at least one field has an error.

    ``errors`` maps each failing field name to its message.
    """

    def __init__(self, errors):
        self.errors = dict(errors)
        fields = ', '.join(sorted(self.errors))
        super().__init__(f"Form has invalid fields: {fields}")


class SubmissionPendingError(FormError):
    """Raised when SUBMIT is issued while a previous submission is in flight."""
