"""
Shared test fixtures for the formdesk test suite.

  - backend: in-memory FakeBackend seeded with accounts, access tokens
    and countries
  - client / viewer_client: TestClient wired to the fake backend in admin
    or viewer mode
  - account_registry / token_registry / country_registry: field registries
    built from the real entity metadata
"""

import pytest

from formdesk_core import BackendResponseError, StatusMessage
from formdesk.app import app, _set_backend, _set_formdesk_mode
from formdesk.models import (
    ENTITIES, URL_ACCOUNTS, URL_COUNTRIES, URL_COUNTRIES_LOOKUP,
    URL_ME_ACCESS_TOKENS, URL_ME_SCOPES,
)


class FakeBackend:
    """Stands in for BackendClient: same methods, records kept in dicts."""

    base_url = 'http://backend.test/api'

    def __init__(self, collections, static=None):
        self.collections = {url: {str(r['id']): dict(r) for r in records}
                            for url, records in collections.items()}
        self.static = dict(static or {})
        self.calls = []
        self.fail_with = None
        self._next_id = 100

    def _call(self, method, path, data=None):
        self.calls.append((method, path, data))
        if self.fail_with is not None:
            error, self.fail_with = self.fail_with, None
            raise error

    def _not_found(self, path):
        return BackendResponseError(404, StatusMessage('error', f'Not found: {path}'))

    def _split(self, path):
        if path in self.collections:
            return path, None
        base, _, row_id = path.rpartition('/')
        if base in self.collections:
            return base, row_id
        raise self._not_found(path)

    def _record(self, path):
        url, row_id = self._split(path)
        if row_id not in self.collections[url]:
            raise self._not_found(path)
        return url, row_id

    def get(self, path, with_csrf=False):
        self._call('GET', path)
        if path in self.static:
            return self.static[path]
        url, row_id = self._split(path)
        if row_id is None:
            return list(self.collections[url].values())
        url, row_id = self._record(path)
        return dict(self.collections[url][row_id])

    def post(self, path, data=None):
        self._call('POST', path, data)
        url, _ = self._split(path)
        self._next_id += 1
        record = dict(data or {}, id=str(self._next_id))
        if url == URL_ME_ACCESS_TOKENS:
            record['value'] = f'secret-{self._next_id}'
        self.collections[url][record['id']] = record
        return dict(record)

    def put(self, path, data=None):
        self._call('PUT', path, data)
        url, row_id = self._record(path)
        self.collections[url][row_id].update(data or {})
        return dict(self.collections[url][row_id])

    def patch(self, path, data=None):
        self._call('PATCH', path, data)
        url, row_id = self._record(path)
        self.collections[url][row_id].update(data or {})
        return dict(self.collections[url][row_id])

    def delete(self, path):
        self._call('DELETE', path)
        url, row_id = self._record(path)
        del self.collections[url][row_id]
        return {'type': 'statusMessage', 'severity': 'success',
                'message': 'The record was deleted.'}

    def methods(self):
        return [(method, path) for method, path, _ in self.calls]


ACCOUNTS = [
    {'id': 1, 'full_name': 'Ada Lovelace', 'email': 'ada@example.com',
     'locked': False, 'roles': [200], 'active_from': '2025-01-01',
     'active_until': '2025-12-31', 'last_login': '2025-03-01T08:00:00Z'},
    {'id': 2, 'full_name': 'Alan Turing', 'email': 'alan@example.com',
     'locked': True, 'roles': [100, 300], 'active_from': None,
     'active_until': None, 'last_login': None},
]

ACCESS_TOKENS = [
    {'id': 7, 'name': 'CI pipeline', 'revoked': False, 'expiration': '2026-06-30',
     'scopes': [{'id': 'read', 'label': 'Read'}], 'created_at': '2025-01-02T10:00:00Z'},
]

COUNTRIES = [
    {'id': 40, 'name': 'Austria', 'code': 'AT', 'phone': '+43',
     'default': True, 'display': True},
    {'id': 276, 'name': 'Germany', 'code': 'DE', 'phone': '+49',
     'default': False, 'display': True},
]

SCOPES = [{'id': 'read', 'label': 'Read'}, {'id': 'write', 'label': 'Write'}]


@pytest.fixture
def backend():
    return FakeBackend(
        {URL_ACCOUNTS: ACCOUNTS, URL_ME_ACCESS_TOKENS: ACCESS_TOKENS,
         URL_COUNTRIES: COUNTRIES},
        static={
            URL_COUNTRIES_LOOKUP: [{'id': c['id'], 'label': c['name'], 'code': c['code']}
                                   for c in COUNTRIES],
            URL_ME_SCOPES: SCOPES,
        },
    )


@pytest.fixture
def client(backend):
    """Test client wired to the fake backend in admin mode."""
    from starlette.testclient import TestClient
    _set_backend(backend)
    _set_formdesk_mode('admin')
    with TestClient(app) as client:
        yield client
    _set_backend(None)


@pytest.fixture
def viewer_client(backend):
    """Test client wired to the fake backend in viewer mode (read-only)."""
    from starlette.testclient import TestClient
    _set_backend(backend)
    _set_formdesk_mode('viewer')
    with TestClient(app) as client:
        yield client
    _set_formdesk_mode('admin')
    _set_backend(None)


@pytest.fixture
def account_registry():
    return ENTITIES['accounts'].registry()


@pytest.fixture
def token_registry():
    return ENTITIES['access-tokens'].registry()


@pytest.fixture
def country_registry():
    return ENTITIES['countries'].registry()
