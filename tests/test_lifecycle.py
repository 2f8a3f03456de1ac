"""
Tests for formdesk_core.lifecycle — FormController population, submission,
the Add→Edit transition and on-success observers.
"""

import threading

import pytest

from formdesk_core import (
    BackendConnectionError, ConfigurationError, DialogMode, FormController,
    InvalidFormError, QueryCache, SubmissionPendingError, SubmitSucceeded,
    invalidator, make_mutation,
)
from formdesk.models import ENTITIES, access_token_values


class RecordingMutation:
    """Mutate function that records its calls and answers like a backend."""

    def __init__(self, responses=None):
        self.calls = []
        self.responses = list(responses or [])

    def __call__(self, payload, mode, row_id):
        self.calls.append((payload, mode, row_id))
        if self.responses:
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return dict(payload, id=row_id)


def _token_controller(mutate, mode=DialogMode.ADD, row_id=None):
    entity = ENTITIES['access-tokens']
    return FormController(entity.registry(), mode, row_id, mutate=mutate,
                          name=entity.name, adapter=access_token_values)


def _fill_token(controller):
    controller.on_change('name', event='deploy')
    controller.on_change('expiration', value='2026-01-31')


# ═══════════════════════════════════════════════════════════════════════
# Population
# ═══════════════════════════════════════════════════════════════════════

def test_controller_starts_in_requested_mode(token_registry):
    controller = FormController(token_registry, DialogMode.VIEW, row_id='7')
    assert controller.mode == DialogMode.VIEW
    assert controller.row_id == '7'
    assert not controller.is_pending


def test_add_mode_ignores_row_id(token_registry):
    controller = FormController(token_registry, DialogMode.ADD, row_id='7')
    assert controller.row_id is None


def test_load_applies_record_once():
    controller = _token_controller(RecordingMutation(), DialogMode.EDIT, '7')
    assert controller.load({'id': 7, 'name': 'CI', 'revoked': False})
    assert controller.state.values['name'] == 'CI'
    assert controller.state.values['id'] == '7'

    assert not controller.load({'id': 7, 'name': 'Other'})
    assert controller.state.values['name'] == 'CI'


# ═══════════════════════════════════════════════════════════════════════
# Submission
# ═══════════════════════════════════════════════════════════════════════

def test_add_submit_switches_to_edit_with_new_id():
    """The identifier of the next update comes from the create response."""
    mutate = RecordingMutation([
        {'id': 'new-1', 'name': 'deploy', 'expiration': '2026-01-31',
         'revoked': False, 'scopes': [], 'value': 'secret-token'},
        {'id': 'new-1', 'name': 'deploy', 'expiration': '2026-01-31', 'revoked': True},
    ])
    controller = _token_controller(mutate)
    _fill_token(controller)

    controller.submit()
    assert controller.mode == DialogMode.EDIT
    assert controller.row_id == 'new-1'
    assert controller.state.values['value'] == 'secret-token'
    assert not controller.state.has_changes

    controller.on_change('revoked', value=True)
    controller.submit()

    (first_payload, first_mode, first_id), (second_payload, second_mode, second_id) = mutate.calls
    assert (first_mode, first_id) == (DialogMode.ADD, None)
    assert (second_mode, second_id) == (DialogMode.EDIT, 'new-1')
    assert first_payload == {'name': 'deploy', 'scopes': None,
                             'expiration': '2026-01-31', 'revoked': False}
    assert second_payload['revoked'] is True


def test_submit_clears_error_left_by_earlier_blur():
    """A text error kept through ON_CHANGE is gone once the form submits cleanly."""
    controller = _token_controller(RecordingMutation([{'id': 'new-2', 'name': 'tok1'}]))
    controller.on_change('expiration', value='2030-01-01')
    controller.on_blur('name')
    controller.on_change('name', value='tok1')
    assert controller.state.field_state['name'].error_text == 'Name is required.'

    controller.submit()
    assert controller.mode == DialogMode.EDIT
    assert controller.state.field_state['name'].error_text is None
    assert not controller.state.has_errors


def test_add_submit_without_id_stays_in_add_mode():
    controller = _token_controller(RecordingMutation([{'status': 'ok'}]))
    _fill_token(controller)
    controller.submit()
    assert controller.mode == DialogMode.ADD
    assert controller.row_id is None


def test_invalid_form_is_not_sent():
    mutate = RecordingMutation()
    controller = _token_controller(mutate)
    with pytest.raises(InvalidFormError):
        controller.submit()
    assert mutate.calls == []
    assert not controller.is_pending
    assert controller.state.field_state['name'].error_text == 'Name is required.'


def test_transport_failure_leaves_state_unchanged():
    mutate = RecordingMutation([BackendConnectionError('down')])
    controller = _token_controller(mutate)
    _fill_token(controller)
    before = controller.state

    with pytest.raises(BackendConnectionError):
        controller.submit()
    assert controller.state == before
    assert controller.mode == DialogMode.ADD
    assert not controller.is_pending


def test_submit_without_mutate_function(token_registry):
    controller = FormController(token_registry, DialogMode.ADD)
    with pytest.raises(ConfigurationError):
        controller.submit()


def test_second_submit_while_pending_is_rejected():
    entered = threading.Event()
    release = threading.Event()
    errors = []

    def slow_mutate(payload, mode, row_id):
        entered.set()
        release.wait(timeout=5)
        return dict(payload, id='new-1')

    controller = _token_controller(slow_mutate)
    _fill_token(controller)

    worker = threading.Thread(target=controller.submit)
    worker.start()
    assert entered.wait(timeout=5)
    assert controller.is_pending
    try:
        controller.submit()
    except SubmissionPendingError as e:
        errors.append(e)
    finally:
        release.set()
        worker.join(timeout=5)

    assert len(errors) == 1
    assert not controller.is_pending
    assert controller.row_id == 'new-1'


# ═══════════════════════════════════════════════════════════════════════
# Observers
# ═══════════════════════════════════════════════════════════════════════

def test_observers_receive_submit_succeeded():
    events = []
    controller = _token_controller(RecordingMutation([{'id': 'new-1', 'name': 'deploy'}]))
    controller.subscribe(events.append)
    _fill_token(controller)
    controller.submit()

    assert events == [SubmitSucceeded('access-tokens', DialogMode.ADD, 'new-1',
                                      {'id': 'new-1', 'name': 'deploy'})]
    assert controller.last_result == {'id': 'new-1', 'name': 'deploy'}


def test_observers_not_called_on_failure():
    events = []
    controller = _token_controller(RecordingMutation())
    controller.subscribe(events.append)
    with pytest.raises(InvalidFormError):
        controller.submit()
    assert events == []


def test_invalidator_refreshes_cached_lists():
    cache = QueryCache()
    cache.get(('me', 'access-tokens'), lambda: ['old'])
    cache.get(('countries',), lambda: ['kept'])

    controller = _token_controller(RecordingMutation([{'id': 'new-1'}]))
    controller.subscribe(invalidator(cache, ('me', 'access-tokens')))
    _fill_token(controller)
    controller.submit()

    assert cache.peek(('me', 'access-tokens')) is None
    assert cache.peek(('countries',)) == ['kept']


# ═══════════════════════════════════════════════════════════════════════
# Mutation mapping
# ═══════════════════════════════════════════════════════════════════════

class _Client:
    def __init__(self):
        self.calls = []

    def post(self, path, data=None):
        self.calls.append(('POST', path, data))

    def put(self, path, data=None):
        self.calls.append(('PUT', path, data))

    def patch(self, path, data=None):
        self.calls.append(('PATCH', path, data))


def test_make_mutation_maps_modes_to_methods():
    client = _Client()
    mutate = make_mutation(client, '/v1/countries')
    mutate({'a': 1}, DialogMode.ADD, None)
    mutate({'a': 2}, DialogMode.EDIT, 40)
    mutate({'a': 3}, DialogMode.VIEW, 40)
    assert client.calls == [
        ('POST', '/v1/countries', {'a': 1}),
        ('PUT', '/v1/countries/40', {'a': 2}),
        ('PATCH', '/v1/countries/40', {'a': 3}),
    ]
