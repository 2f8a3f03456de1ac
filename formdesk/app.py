"""
formdesk Web Interface
FastAPI application serving the dashboard's details dialogs and entity proxies
"""

from fastapi import FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from typing import Any, Optional
import logging
import os

logger = logging.getLogger(__name__)

from formdesk_core import (
    BackendClient, BackendError, BackendResponseError, DialogMode,
    InvalidFormError, SubmissionPendingError, UnknownFieldError,
    QueryCache, get_status_message,
)
from formdesk import __version__ as FORMDESK_VERSION
from .dialogs import (
    DialogNotFoundError, DialogRegistry, fetch_list, fetch_lookup, fetch_record,
)
from .models import ENTITIES, describe_entity, get_entity

app = FastAPI(title="formdesk")

# Admin/Viewer mode, set via FORMDESK_MODE env var or _set_formdesk_mode()
FORMDESK_MODE = os.environ.get('FORMDESK_MODE', 'admin')


def _set_formdesk_mode(mode: str):
    """Set the server mode (for testing)."""
    global FORMDESK_MODE
    FORMDESK_MODE = mode


def _require_admin():
    """Raise 403 if not in admin mode."""
    if FORMDESK_MODE != 'admin':
        raise HTTPException(status_code=403, detail="Admin mode required")


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
)


# ---------------------------------------------------------------------------
# Backend wiring: one client, cache and dialog registry per process
# ---------------------------------------------------------------------------

query_cache = QueryCache()
_backend = None
_dialogs = None


def _get_dialogs() -> DialogRegistry:
    global _backend, _dialogs
    if _dialogs is None:
        if _backend is None:
            _backend = BackendClient()
        _dialogs = DialogRegistry(_backend, query_cache)
    return _dialogs


def _set_backend(client):
    """Replace the backend client and drop all cached state (for testing)."""
    global _backend, _dialogs
    _backend = client
    _dialogs = None
    query_cache.clear()


# ---------------------------------------------------------------------------
# Pydantic request models
# ---------------------------------------------------------------------------

class DialogOpen(BaseModel):
    entity: str
    mode: str = 'add'
    row_id: Optional[str] = None

class FieldChange(BaseModel):
    field: str
    value: Any = None

class FieldBlur(BaseModel):
    field: str
    value: Any = None       # text typed into the control, if any

class ErrorResponse(BaseModel):
    error: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _entity_not_found(name):
    return JSONResponse({'error': f'Entity type not found: {name}'}, status_code=404)


def _backend_error(e: BackendError):
    """Translate a backend failure into a JSON error response."""
    message = get_status_message(error=e)
    status = e.status if isinstance(e, BackendResponseError) else 502
    return JSONResponse({'error': message.message, 'status_message': message.to_dict()},
                        status_code=status)


def _dialog_response(session, status_code=200, **extra):
    result = session.to_dict()
    result.update(extra)
    return JSONResponse(jsonable_encoder(result), status_code=status_code)


# ---------------------------------------------------------------------------
# Server info and entity metadata
# ---------------------------------------------------------------------------

@app.get('/api/info')
def api_info():
    """Server version, mode and backend location."""
    return {
        'version': FORMDESK_VERSION,
        'mode': FORMDESK_MODE,
        'backend_url': _get_dialogs().client.base_url,
    }


@app.get('/api/entities')
def api_entity_types():
    """List all entity types with their described field registries."""
    return {name: describe_entity(entity) for name, entity in ENTITIES.items()}


@app.get('/api/entities/{entity_type}',
         responses={404: {"model": ErrorResponse}, 403: {"model": ErrorResponse}})
def api_entity_list(entity_type: str):
    """List records of an entity type (cached)."""
    entity = get_entity(entity_type)
    if entity is None:
        return _entity_not_found(entity_type)
    if 'read' not in entity.operations:
        return JSONResponse({'error': 'Read not allowed'}, status_code=403)

    dialogs = _get_dialogs()
    try:
        return fetch_list(dialogs.client, dialogs.cache, entity)
    except BackendError as e:
        return _backend_error(e)


@app.get('/api/entities/{entity_type}/{pk}',
         responses={404: {"model": ErrorResponse}, 403: {"model": ErrorResponse}})
def api_entity_read(entity_type: str, pk: str):
    """Get a single record by primary key (cached)."""
    entity = get_entity(entity_type)
    if entity is None:
        return _entity_not_found(entity_type)
    if 'read' not in entity.operations:
        return JSONResponse({'error': 'Read not allowed'}, status_code=403)

    dialogs = _get_dialogs()
    try:
        return fetch_record(dialogs.client, dialogs.cache, entity, pk)
    except BackendError as e:
        return _backend_error(e)


@app.delete('/api/entities/{entity_type}/{pk}',
            responses={404: {"model": ErrorResponse}, 403: {"model": ErrorResponse}})
def api_entity_delete(entity_type: str, pk: str):
    """Delete a record and invalidate the entity's cached queries."""
    _require_admin()
    entity = get_entity(entity_type)
    if entity is None:
        return _entity_not_found(entity_type)
    if 'delete' not in entity.operations:
        return JSONResponse({'error': 'Delete not allowed'}, status_code=403)

    dialogs = _get_dialogs()
    try:
        data = dialogs.client.delete(f"{entity.url}/{pk}")
    except BackendError as e:
        return _backend_error(e)
    for key in (entity.query_key,) + tuple(entity.invalidates):
        dialogs.cache.invalidate(key)
    message = get_status_message(data=data, is_mutation=True)
    return {'message': f'{entity_type} deleted', 'id': pk,
            'status_message': message.to_dict()}


@app.get('/api/lookups/{source}', responses={404: {"model": ErrorResponse}})
def api_lookup(source: str):
    """Options of a lookup data source (e.g. countries)."""
    dialogs = _get_dialogs()
    try:
        options = fetch_lookup(dialogs.client, dialogs.cache, source)
    except BackendError as e:
        return _backend_error(e)
    if options is None:
        return JSONResponse({'error': f'Lookup source not found: {source}'}, status_code=404)
    return options


# ---------------------------------------------------------------------------
# Details dialogs
# ---------------------------------------------------------------------------

_MODE_OPERATION = {
    DialogMode.ADD: ('create', 'Create not allowed'),
    DialogMode.EDIT: ('update', 'Update not allowed'),
    DialogMode.VIEW: ('read', 'Read not allowed'),
}


@app.post('/api/dialogs', status_code=201,
          responses={404: {"model": ErrorResponse}, 403: {"model": ErrorResponse},
                     400: {"model": ErrorResponse}})
def api_dialog_open(body: DialogOpen):
    """Open a details dialog; EDIT and VIEW dialogs load their record."""
    entity = get_entity(body.entity)
    if entity is None:
        return _entity_not_found(body.entity)
    try:
        mode = DialogMode(body.mode)
    except ValueError:
        return JSONResponse({'error': f'Invalid dialog mode: {body.mode}'}, status_code=400)
    if mode != DialogMode.VIEW:
        _require_admin()
    if mode != DialogMode.ADD and body.row_id is None:
        return JSONResponse({'error': 'row_id required'}, status_code=400)

    operation, denied = _MODE_OPERATION[mode]
    if operation not in entity.operations:
        return JSONResponse({'error': denied}, status_code=403)

    try:
        session = _get_dialogs().open(entity, mode, body.row_id)
    except BackendError as e:
        return _backend_error(e)
    return _dialog_response(session, status_code=201)


@app.get('/api/dialogs/{dialog_id}', responses={404: {"model": ErrorResponse}})
def api_dialog_get(dialog_id: str):
    """Current snapshot of a dialog's form state."""
    try:
        session = _get_dialogs().get(dialog_id)
    except DialogNotFoundError as e:
        return JSONResponse({'error': str(e)}, status_code=404)
    return _dialog_response(session)


@app.delete('/api/dialogs/{dialog_id}', responses={404: {"model": ErrorResponse}})
def api_dialog_close(dialog_id: str):
    """Close a dialog and discard its form state."""
    try:
        _get_dialogs().close(dialog_id)
    except DialogNotFoundError as e:
        return JSONResponse({'error': str(e)}, status_code=404)
    return {'message': 'Dialog closed', 'id': dialog_id}


@app.post('/api/dialogs/{dialog_id}/change', responses={404: {"model": ErrorResponse}})
def api_dialog_change(dialog_id: str, body: FieldChange):
    """Forward a control's change event."""
    try:
        session = _get_dialogs().get(dialog_id)
        session.controller.on_change(body.field, value=body.value)
    except (DialogNotFoundError, UnknownFieldError) as e:
        return JSONResponse({'error': str(e)}, status_code=404)
    return _dialog_response(session)


@app.post('/api/dialogs/{dialog_id}/blur', responses={404: {"model": ErrorResponse}})
def api_dialog_blur(dialog_id: str, body: FieldBlur):
    """Forward a control's blur event, optionally with the typed text."""
    event = {'value': body.value} if 'value' in body.model_fields_set else None
    try:
        session = _get_dialogs().get(dialog_id)
        session.controller.on_blur(body.field, event=event)
    except (DialogNotFoundError, UnknownFieldError) as e:
        return JSONResponse({'error': str(e)}, status_code=404)
    return _dialog_response(session)


@app.post('/api/dialogs/{dialog_id}/highlight', responses={404: {"model": ErrorResponse}})
def api_dialog_highlight(dialog_id: str):
    """Validate every field and show all errors."""
    try:
        session = _get_dialogs().get(dialog_id)
    except DialogNotFoundError as e:
        return JSONResponse({'error': str(e)}, status_code=404)
    session.controller.highlight_errors()
    return _dialog_response(session)


@app.post('/api/dialogs/{dialog_id}/submit',
          responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse},
                     422: {"model": ErrorResponse}, 502: {"model": ErrorResponse}})
def api_dialog_submit(dialog_id: str):
    """Validate the form and send its payload to the backend."""
    _require_admin()
    try:
        session = _get_dialogs().get(dialog_id)
    except DialogNotFoundError as e:
        return JSONResponse({'error': str(e)}, status_code=404)

    controller = session.controller
    try:
        data = controller.submit()
    except InvalidFormError as e:
        return _dialog_response(session, status_code=422, error=str(e), errors=e.errors)
    except SubmissionPendingError as e:
        return JSONResponse({'error': str(e)}, status_code=409)
    except BackendError as e:
        return _backend_error(e)

    message = get_status_message(data=data, is_mutation=True)
    logger.info("Submitted %s dialog %s (row %s)", session.entity.name, dialog_id,
                controller.row_id)
    return _dialog_response(session, status_message=message.to_dict())

