"""formdesk_core — pure-stdlib form state engine for admin dashboard dialogs."""

__version__ = "0.1.0"

from .errors import (
    FormError, ConfigurationError, FieldValidationError, UnknownFieldError,
    InvalidFormError, SubmissionPendingError,
)
from .field_registry import ControlType, FieldDef, build_registry, describe_registry
from .form_state import (
    DialogMode, FieldState, FormState,
    create_initial_state, get_final_payload, snapshot,
)
from .validation import (
    ValidationContext, validate_field, validate_all,
    verify_email, date_not_after, date_not_before, parse_date,
)
from .reducer import (
    OnChange, OnBlur, UpdateValues, HighlightErrors, Submit, SetMode, transition,
)
from .query_cache import QueryCache, invalidator
from .lifecycle import FormController, SubmitSucceeded, make_mutation
from .backend_client import (
    BackendClient, StatusMessage, get_status_message,
    BackendError, BackendConnectionError, BackendSSLError, BackendResponseError,
)
