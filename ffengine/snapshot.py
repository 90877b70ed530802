import os
import queue
import threading
import time
from pathlib import Path
from typing import Callable, Optional, Union

import structlog
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from ffengine import settings
from ffengine.errors import FlagEngineError
from ffengine.loader import load_compiled
from ffengine.models import CompiledConfig

log = structlog.get_logger(__name__)

TRIGGER_CHANGE = "change"
TRIGGER_WATCH_ERROR = "watch_error"
TRIGGER_TICK = "tick"
TRIGGER_MANUAL = "manual"

_STOP = object()


class _ConfigFileHandler(FileSystemEventHandler):
    # The parent directory is watched, so filter down to the one file.
    # Editors that save via rename show up as a move onto the path.

    def __init__(self, path: str, events: "queue.Queue"):
        super().__init__()
        self._path = path
        self._events = events

    def on_any_event(self, event):
        if event.is_directory or event.event_type not in ("modified", "created", "moved"):
            return
        for candidate in (event.src_path, getattr(event, "dest_path", "")):
            if candidate and os.path.abspath(os.fsdecode(candidate)) == self._path:
                self._events.put(TRIGGER_CHANGE)
                return


class SnapshotManager:
    """Owns the current compiled configuration and keeps it fresh.

    Readers call ``current`` and get one immutable snapshot; reloads build a
    complete new snapshot and publish it with a single reference store, so a
    reader sees either the old generation or the new one, never a mix.

    ``start(interval)`` launches one background thread multiplexing three
    inputs over a queue: file-change events from a watchdog observer, a
    periodic tick (``queue.get`` timeout) and a stop sentinel. Failed reloads
    keep the last good snapshot and back off; after ``max_errors``
    consecutive failures the thread stops attempting reloads.
    """

    def __init__(
        self,
        path: Union[str, Path],
        loader: Callable[[str], CompiledConfig] = load_compiled,
        on_reload_error: Optional[Callable[[Exception], None]] = None,
        max_errors: Optional[int] = None,
        max_backoff: Optional[float] = None,
        backoff_step: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.path = os.path.abspath(os.fspath(path))
        self._loader = loader
        self._on_reload_error = on_reload_error
        self._max_errors = settings.MAX_RELOAD_ERRORS if max_errors is None else max_errors
        self._max_backoff = settings.MAX_BACKOFF_SECONDS if max_backoff is None else max_backoff
        self._backoff_step = settings.BACKOFF_STEP_SECONDS if backoff_step is None else backoff_step
        self._clock = clock

        self._current = loader(self.path)
        log.info("config_loaded", path=self.path, flags=len(self._current))

        self._failures = 0
        self._last_failure = 0.0
        self._gave_up = False
        self._reload_lock = threading.Lock()

        self._events: "queue.Queue" = queue.Queue()
        self._lifecycle_lock = threading.Lock()
        self._interval = 0.0
        self._thread: Optional[threading.Thread] = None
        self._observer: Optional[Observer] = None
        self._watch_lost = False
        self._closed = False

    @property
    def current(self) -> CompiledConfig:
        return self._current

    @property
    def failures(self) -> int:
        return self._failures

    @property
    def gave_up(self) -> bool:
        return self._gave_up

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, interval: float) -> None:
        if interval <= 0:
            raise ValueError(f"reload interval must be positive, got {interval}")
        with self._lifecycle_lock:
            if self._closed:
                raise RuntimeError("snapshot manager is closed")
            if self._thread is not None:
                return

            observer = Observer()
            observer.schedule(
                _ConfigFileHandler(self.path, self._events),
                os.path.dirname(self.path),
                recursive=False,
            )
            try:
                observer.start()
            except Exception:
                observer.stop()
                raise

            self._observer = observer
            self._interval = interval
            self._thread = threading.Thread(target=self._run, name="ffengine-reload", daemon=True)
            self._thread.start()

    def close(self) -> None:
        """Stop the reload thread and the file watcher; blocks until both exit."""
        with self._lifecycle_lock:
            if self._closed:
                return
            self._closed = True
            thread, observer = self._thread, self._observer

        if thread is not None:
            self._events.put(_STOP)
            thread.join()
        if observer is not None:
            observer.stop()
            observer.join()

    def _run(self) -> None:
        log.debug("reload_watcher_started", path=self.path, interval=self._interval)
        stop = False
        while not stop:
            try:
                trigger = self._events.get(timeout=self._interval)
            except queue.Empty:
                trigger = TRIGGER_TICK
            if trigger is _STOP:
                break

            # coalesce bursts of change events from a single save
            while True:
                try:
                    pending = self._events.get_nowait()
                except queue.Empty:
                    break
                if pending is _STOP:
                    stop = True

            if self._observer is not None and not self._observer.is_alive():
                if not self._watch_lost:
                    self._watch_lost = True
                    log.warning("file_watcher_stopped", path=self.path)
                trigger = TRIGGER_WATCH_ERROR

            self.maybe_reload(trigger)
        log.debug("reload_watcher_stopped", path=self.path)

    def maybe_reload(self, trigger: str = TRIGGER_MANUAL) -> bool:
        """One reload attempt subject to backoff. Returns True if a new snapshot was published."""
        with self._reload_lock:
            if self._gave_up:
                return False

            now = self._clock()
            if self._failures:
                backoff = min(self._failures * self._backoff_step, self._max_backoff)
                if now - self._last_failure < backoff:
                    return False

            try:
                compiled = self._loader(self.path)
            except FlagEngineError as exc:
                self._failures += 1
                self._last_failure = now
                if self._failures >= self._max_errors:
                    self._gave_up = True
                    log.error("reload_given_up", path=self.path, failures=self._failures, error=str(exc))
                else:
                    log.warning(
                        "reload_failed",
                        path=self.path,
                        trigger=trigger,
                        failures=self._failures,
                        error=str(exc),
                    )
                self._report(exc)
                return False

            self._publish(compiled, trigger)
            return True

    def reload(self) -> CompiledConfig:
        """Reload now, ignoring backoff. Raises on failure; the live snapshot is kept."""
        with self._reload_lock:
            compiled = self._loader(self.path)
            self._publish(compiled, TRIGGER_MANUAL)
            self._gave_up = False
            return compiled

    def _publish(self, compiled: CompiledConfig, trigger: str) -> None:
        if self._failures:
            log.info("reload_recovered", path=self.path, failures=self._failures)
        self._current = compiled
        self._failures = 0
        log.debug("config_reloaded", path=self.path, trigger=trigger, flags=len(compiled))

    def _report(self, exc: Exception) -> None:
        if self._on_reload_error is None:
            return
        try:
            self._on_reload_error(exc)
        except Exception:
            log.exception("reload_error_hook_failed", path=self.path)
