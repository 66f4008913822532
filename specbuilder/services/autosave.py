"""
Debounced auto-save for project header edits (name / description / audience).

Edits arriving for the same project within the debounce window are merged
and written once, after the window has been quiet for
``AUTOSAVE_DEBOUNCE_SECONDS``.  Every new edit restarts the window.

Writes run on a ``threading.Timer`` inside a fresh app context and commit
on their own; they never write change history.

Usage:
    saver = current_app.extensions["autosave"]
    saver.schedule(project_id, {"name": "Sales"}, actor_id="u-1")
    saver.flush()   # force pending writes (shutdown, tests)
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from flask import Flask

from specbuilder.models import db

logger = logging.getLogger(__name__)


def _write_header(project_id: int, patch: dict, actor_id: str | None) -> None:
    from specbuilder.services.project_service import save_header

    save_header(project_id, patch, actor_id=actor_id)
    db.session.commit()


class DebouncedSaver:
    """Per-project coalescing of header patches."""

    def __init__(
        self,
        app: Flask | None = None,
        *,
        delay: float | None = None,
        writer: Callable[[int, dict, str | None], None] | None = None,
    ):
        self._app = None
        self.delay = delay if delay is not None else 1.0
        self._writer = writer or _write_header
        self._pending: dict[int, tuple[dict, str | None]] = {}
        self._timers: dict[int, threading.Timer] = {}
        self._lock = threading.Lock()
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        self._app = app
        self.delay = float(app.config.get("AUTOSAVE_DEBOUNCE_SECONDS", self.delay))
        app.extensions["autosave"] = self

    def schedule(self, project_id: int, patch: dict, *, actor_id: str | None = None) -> dict:
        """Merge ``patch`` into the pending write and restart the window.

        Returns the merged patch that will be written.
        """
        with self._lock:
            merged, _ = self._pending.get(project_id, ({}, None))
            merged = {**merged, **patch}
            self._pending[project_id] = (merged, actor_id)
            timer = self._timers.pop(project_id, None)
            if timer is not None:
                timer.cancel()
            timer = threading.Timer(self.delay, self._fire, args=(project_id,))
            timer.daemon = True
            self._timers[project_id] = timer
            timer.start()
        return dict(merged)

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def pending(self, project_id: int) -> dict | None:
        with self._lock:
            entry = self._pending.get(project_id)
        return dict(entry[0]) if entry else None

    def flush(self) -> int:
        """Cancel every timer and write all pending patches now."""
        with self._lock:
            keys = list(self._pending)
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
        for project_id in keys:
            self._fire(project_id)
        return len(keys)

    def _fire(self, project_id: int) -> None:
        with self._lock:
            entry = self._pending.pop(project_id, None)
            self._timers.pop(project_id, None)
        if entry is None:
            return
        patch, actor_id = entry
        if self._app is None:
            self._writer(project_id, patch, actor_id)
            return
        try:
            with self._app.app_context():
                self._writer(project_id, patch, actor_id)
        except Exception:
            logger.exception("Auto-save failed for project %s", project_id)
        else:
            logger.debug("Auto-saved project %s fields=%s", project_id, sorted(patch))


autosaver = DebouncedSaver()
