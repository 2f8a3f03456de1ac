"""
Dialog sessions — open details dialogs of the HTTP API.

A DialogSession owns one FormController. Opening a dialog in EDIT or VIEW
mode loads the backing record through the query cache, so the form is
populated exactly once; successful submissions invalidate the entity's
cached queries.
"""

import logging
import threading
import uuid
from dataclasses import dataclass

from formdesk_core import (
    DialogMode, FormController, FormError, QueryCache, invalidator, make_mutation,
    snapshot,
)

from .models import LOOKUP_SOURCES, EntityDef

logger = logging.getLogger(__name__)


class DialogNotFoundError(FormError, KeyError):
    """Raised when no open dialog has the given id."""

    def __str__(self):
        return f"Dialog not found: {self.args[0]}"


# ---------------------------------------------------------------------------
# Cached backend reads
# ---------------------------------------------------------------------------

def fetch_list(client, cache: QueryCache, entity: EntityDef):
    return cache.get(entity.query_key, lambda: client.get(entity.url))


def fetch_record(client, cache: QueryCache, entity: EntityDef, row_id):
    key = entity.query_key + (str(row_id),)
    return cache.get(key, lambda: client.get(f"{entity.url}/{row_id}"))


def fetch_lookup(client, cache: QueryCache, source: str):
    """Options of a lookup data source, or None for an unknown source."""
    if source not in LOOKUP_SOURCES:
        return None
    url, key = LOOKUP_SOURCES[source]
    return cache.get(key, lambda: client.get(url))


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

@dataclass
class DialogSession:
    id: str
    entity: EntityDef
    controller: FormController

    def to_dict(self):
        result = snapshot(self.controller.state)
        result.update({
            'id': self.id,
            'entity': self.entity.name,
            'row_id': self.controller.row_id,
            'is_pending': self.controller.is_pending,
        })
        return result


class DialogRegistry:
    def __init__(self, client, cache: QueryCache):
        self.client = client
        self.cache = cache
        self._sessions = {}
        self._lock = threading.Lock()

    def open(self, entity: EntityDef, mode=DialogMode.ADD, row_id=None) -> DialogSession:
        """Create a dialog for ``entity`` and load its record unless adding.

        Raises:
            BackendError: If the backing record cannot be loaded; no dialog
                is registered in that case.
        """
        mode = DialogMode(mode)
        controller = FormController(
            entity.registry(), mode, row_id,
            mutate=make_mutation(self.client, entity.url),
            name=entity.name,
            adapter=entity.to_values,
        )
        controller.subscribe(invalidator(self.cache, entity.query_key, *entity.invalidates))

        if mode != DialogMode.ADD and row_id is not None:
            controller.load(fetch_record(self.client, self.cache, entity, row_id))

        session = DialogSession(id=uuid.uuid4().hex, entity=entity, controller=controller)
        with self._lock:
            self._sessions[session.id] = session
        logger.info("Opened %s dialog %s for %s (row %s)",
                    mode.value, session.id, entity.name, row_id)
        return session

    def get(self, dialog_id: str) -> DialogSession:
        with self._lock:
            try:
                return self._sessions[dialog_id]
            except KeyError:
                raise DialogNotFoundError(dialog_id) from None

    def close(self, dialog_id: str) -> DialogSession:
        with self._lock:
            try:
                session = self._sessions.pop(dialog_id)
            except KeyError:
                raise DialogNotFoundError(dialog_id) from None
        logger.info("Closed dialog %s", dialog_id)
        return session

    def clear(self):
        with self._lock:
            self._sessions.clear()

    def __len__(self):
        with self._lock:
            return len(self._sessions)
