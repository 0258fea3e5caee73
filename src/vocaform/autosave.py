"""
Auto-Save Manager.

Periodically persists the current FormData snapshot through an injected
persistence port, skips redundant writes, and reconciles a local
snapshot against a remote one.

State machine:
    STOPPED -> SCHEDULED -> SAVING -> SCHEDULED   (normal loop)
    SCHEDULED -> STOPPED                          (explicit stop)

Both the timer and save_now() converge on the same write routine,
which runs at most one write at a time. A snapshot submitted while a
write is in flight replaces any queued snapshot and is written by the
in-flight caller as soon as its write completes.
"""
from __future__ import annotations

import json
import logging
import threading
from enum import Enum
from typing import Callable, List, Optional, Tuple

from .conditions import is_empty
from .evaluator import strict_equals
from .errors import PersistenceError
from .form_data import FormData, utcnow
from .serialization import form_data_from_json, form_data_to_dict, form_data_to_json
from .storage import PersistencePort
from .versioning import TemplateVersionManager, parse_version

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 5.0
DEFAULT_KEY_PREFIX = "vocaform_autosave"

ConflictResolver = Callable[[FormData, FormData], FormData]


class AutoSaveState(Enum):
    STOPPED = "stopped"
    SCHEDULED = "scheduled"
    SAVING = "saving"


def storage_key(template_id: str, session_id: str, prefix: str = DEFAULT_KEY_PREFIX) -> str:
    return f"{prefix}_{template_id}_{session_id}"


def snapshot_fingerprint(form_data: FormData) -> str:
    """
    Serialized content of a snapshot, used for the dirty-check.

    Save bookkeeping (lastSavedAt, autosave metadata) is excluded so
    that recording a save does not itself make the snapshot dirty.
    """
    d = form_data_to_dict(form_data)
    d.pop("lastSavedAt", None)
    d.pop("autoSaveData", None)
    return json.dumps(d, sort_keys=True)


def detect_conflicts(local: FormData, remote: FormData) -> List[str]:
    """Field ids where both snapshots hold different non-empty values."""
    conflicts = []
    for field_id, local_value in local.values.items():
        remote_value = remote.values.get(field_id)
        if is_empty(local_value) or is_empty(remote_value):
            continue
        if not strict_equals(local_value, remote_value):
            conflicts.append(field_id)
    return conflicts


def _align_versions(
    local: FormData, remote: FormData, version_manager: TemplateVersionManager
) -> Tuple[FormData, FormData]:
    if parse_version(local.template_version) < parse_version(remote.template_version):
        local = version_manager.migrate_form_data(local, local.template_version, remote.template_version)
    else:
        remote = version_manager.migrate_form_data(remote, remote.template_version, local.template_version)
    return local, remote


def resolve_conflicts(
    local: FormData,
    remote: FormData,
    resolver: Optional[ConflictResolver] = None,
    version_manager: Optional[TemplateVersionManager] = None,
) -> FormData:
    """
    Reconcile two snapshots of the same session.

    When the snapshots are bound to different template versions and a
    version manager is given, the older one is migrated first.

    Default policy: the snapshot with the later last_saved_at wins in
    full (ties go to the remote snapshot). A resolver, when given,
    picks the winner instead. Conflicting field ids are appended to the
    winner's autosave.conflicts; they are never dropped.

    Raises:
        MigrationError: if version alignment is needed and fails
    """
    if local.template_version != remote.template_version and version_manager is not None:
        local, remote = _align_versions(local, remote, version_manager)

    conflicts = detect_conflicts(local, remote)

    if resolver is not None:
        winner = resolver(local, remote)
    elif local.last_saved_at > remote.last_saved_at:
        winner = local
    else:
        winner = remote

    winner = winner.copy()
    for field_id in conflicts:
        if field_id not in winner.autosave.conflicts:
            winner.autosave.conflicts.append(field_id)

    if conflicts:
        logger.info(
            "Resolved %d conflicting field(s) for session '%s': %s",
            len(conflicts),
            winner.session_id,
            ", ".join(conflicts),
        )
    return winner


class AutoSaveManager:
    """
    Debounced, conflict-aware persistence of one session.

    Attributes:
        store: Persistence port
        key: Storage key of this session
        interval: Seconds between periodic saves
        on_save: Called with the stamped snapshot after each write
        on_error: Called with a PersistenceError after each failed write
        on_conflict: Optional resolver used by reconcile()
        version_manager: Optional, used to align versions in reconcile()

    Failures never stop the schedule: the in-memory snapshot stays the
    source of truth and the next tick retries.
    """

    def __init__(
        self,
        store: PersistencePort,
        key: str,
        interval: float = DEFAULT_INTERVAL,
        on_save: Optional[Callable[[FormData], None]] = None,
        on_error: Optional[Callable[[PersistenceError], None]] = None,
        on_conflict: Optional[ConflictResolver] = None,
        version_manager: Optional[TemplateVersionManager] = None,
        clock: Callable = utcnow,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"Auto-save interval must be positive, got {interval}")
        self.store = store
        self.key = key
        self.interval = interval
        self.on_save = on_save
        self.on_error = on_error
        self.on_conflict = on_conflict
        self.version_manager = version_manager
        self._clock = clock

        self._lock = threading.Lock()
        self._state = AutoSaveState.STOPPED
        self._running = False
        self._generation = 0
        self._timer: Optional[threading.Timer] = None
        self._source: Optional[Callable[[], FormData]] = None
        self._pending: Optional[FormData] = None
        self._writing = False
        self._last_fingerprint = ""

    @classmethod
    def for_session(
        cls,
        store: PersistencePort,
        template_id: str,
        session_id: str,
        prefix: str = DEFAULT_KEY_PREFIX,
        **options,
    ) -> "AutoSaveManager":
        return cls(store, storage_key(template_id, session_id, prefix), **options)

    @property
    def state(self) -> AutoSaveState:
        with self._lock:
            return self._state

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    # ------------------------------------------------------------------
    # Schedule
    # ------------------------------------------------------------------

    def start(self, source: Callable[[], FormData]) -> None:
        """
        Begin periodic saving.

        Args:
            source: Returns the current snapshot each time it is called
        """
        with self._lock:
            self._source = source
            self._running = True
            self._generation += 1
            self._schedule_locked()
        logger.info("Auto-save started for %s every %.1fs", self.key, self.interval)

    def stop(self) -> None:
        """
        Cancel the schedule.

        No timer callback survives this call. A write already in flight
        is allowed to complete.
        """
        with self._lock:
            was_running = self._running
            self._running = False
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if not self._writing:
                self._state = AutoSaveState.STOPPED
        if was_running:
            logger.info("Auto-save stopped for %s", self.key)

    def _schedule_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        timer = threading.Timer(self.interval, self._on_timer, args=(self._generation,))
        timer.daemon = True
        self._timer = timer
        if not self._writing:
            self._state = AutoSaveState.SCHEDULED
        timer.start()

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            if not self._running or generation != self._generation:
                return
        try:
            self.tick()
        finally:
            with self._lock:
                if self._running and generation == self._generation:
                    self._schedule_locked()

    def tick(self) -> bool:
        """
        One periodic iteration: save the source snapshot if it changed.

        Errors go to on_error and are not raised.

        Returns:
            True if a write happened
        """
        with self._lock:
            source = self._source
        if source is None:
            return False
        return self._submit(source(), raise_errors=False)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save_now(self, form_data: FormData) -> bool:
        """
        Save immediately, coalescing with any write in flight.

        Returns:
            True if this call wrote a snapshot, False if it was unchanged
            or was queued behind a write in flight

        Raises:
            PersistenceError: if the write performed by this call failed
        """
        return self._submit(form_data.copy(), raise_errors=True)

    def _submit(self, form_data: FormData, raise_errors: bool) -> bool:
        with self._lock:
            self._pending = form_data
            if self._writing:
                logger.debug("Write in flight for %s; queued newer snapshot", self.key)
                return False
            self._writing = True
            self._state = AutoSaveState.SAVING

        written = False
        failure: Optional[PersistenceError] = None
        try:
            while True:
                with self._lock:
                    snapshot, self._pending = self._pending, None
                if snapshot is None:
                    break
                try:
                    written = self._write_if_changed(snapshot) or written
                except PersistenceError as e:
                    failure = e
                    self._report(e)
        finally:
            with self._lock:
                self._writing = False
                self._state = AutoSaveState.SCHEDULED if self._running else AutoSaveState.STOPPED

        if failure is not None and raise_errors:
            raise failure
        return written

    def _write_if_changed(self, snapshot: FormData) -> bool:
        fingerprint = snapshot_fingerprint(snapshot)
        if fingerprint == self._last_fingerprint:
            logger.debug("Snapshot for %s unchanged; skipping save", self.key)
            return False

        now = self._clock()
        stamped = snapshot.copy()
        stamped.last_saved_at = now
        stamped.autosave.last_save = now
        stamped.autosave.save_count += 1

        try:
            self.store.save(self.key, form_data_to_json(stamped))
        except Exception as e:
            raise PersistenceError(self.key, e) from e

        self._last_fingerprint = fingerprint
        if self.on_save is not None:
            self.on_save(stamped)
        return True

    def _report(self, error: PersistenceError) -> None:
        logger.warning("Auto-save failed: %s", error)
        if self.on_error is not None:
            self.on_error(error)

    # ------------------------------------------------------------------
    # Loading and reconciliation
    # ------------------------------------------------------------------

    def load(self) -> Optional[FormData]:
        """
        Read the stored snapshot.

        Returns:
            FormData, or None when nothing is stored

        Raises:
            PersistenceError: if the port fails or the payload is corrupt
        """
        try:
            payload = self.store.load(self.key)
        except Exception as e:
            raise PersistenceError(self.key, e) from e
        if payload is None:
            return None
        try:
            return form_data_from_json(payload)
        except (ValueError, KeyError, TypeError) as e:
            raise PersistenceError(self.key, e) from e

    def clear(self) -> None:
        try:
            self.store.delete(self.key)
        except Exception as e:
            raise PersistenceError(self.key, e) from e
        with self._lock:
            self._last_fingerprint = ""

    def reconcile(self, local: FormData) -> FormData:
        """Resolve a local snapshot against the stored (remote) one."""
        remote = self.load()
        if remote is None:
            return local.copy()
        return resolve_conflicts(local, remote, self.on_conflict, self.version_manager)
