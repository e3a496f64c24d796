# Author: Futhark1393
# Description: Acquisition lifecycle controller: one forensic session against one device.
# Features: device bootstrap, ordered initialization with rollback, collector
#          provisioning, evidence staging, hashes.csv manifest, acquisition.json.

import os
import sys
import uuid as uuid_module
from datetime import datetime, timezone
from typing import Callable

from aqf import assets
from aqf.audit.logger import ForensicLogger, ForensicLoggerError
from aqf.config import AcquisitionConfig
from aqf.core import metadata
from aqf.core.errors import (
    AcquisitionStateError,
    InitializationError,
    StepFailure,
    StorageError,
)
from aqf.core.manifest import HashRecord, ManifestBuilder
from aqf.core.session import AcquisitionState, SessionLifecycle
from aqf.core.staging import create_folders, remove_folders
from aqf.core.sysinfo import get_system_information

LOG_FILE_NAME = "command.log"


class Acquisition:
    """
    Root object of an acquisition session.

    Lifecycle::

        acq = Acquisition.new(config)      # InitializationError if no device
        acq.initialize()                   # StepFailure(step, cause) on error
        ...                                # collector work, save_output()
        acq.complete()                     # never raises
        acq.store_info()
        acq.hash_files()

    ``bridge`` is transient and never serialized.
    """

    def __init__(
        self,
        uuid: str | None = None,
        started: datetime | None = None,
        completed: datetime | None = None,
        storage_path: str = "",
        apks_path: str = "",
        logs_path: str = "",
        cpu: str = "",
        tmp_dir: str = "",
        collector=None,
        bridge=None,
        config: AcquisitionConfig | None = None,
        logger: ForensicLogger | None = None,
    ):
        self._uuid = uuid or str(uuid_module.uuid4())
        self.started = started or datetime.now(timezone.utc)
        self.completed = completed
        self.storage_path = storage_path
        self.apks_path = apks_path
        self.logs_path = logs_path
        self.cpu = cpu
        self.tmp_dir = tmp_dir
        self.collector = collector
        self.bridge = bridge
        self.config = config or AcquisitionConfig()

        self.logger = logger or ForensicLogger(session_id=self._uuid)
        self.logger.bind_session(self._uuid)
        self.lifecycle = SessionLifecycle()

    @property
    def uuid(self) -> str:
        return self._uuid

    @property
    def state(self) -> AcquisitionState:
        return self.lifecycle.state

    # ── Bootstrap ───────────────────────────────────────────────────────

    @classmethod
    def new(
        cls,
        config: AcquisitionConfig | None = None,
        logger: ForensicLogger | None = None,
        bridge_factory: Callable | None = None,
    ) -> "Acquisition":
        """Create a session and connect to the device.

        Raises InitializationError when the bridge cannot be created or no
        device answers; no Acquisition is returned in that case.
        """
        config = config or AcquisitionConfig()
        if config.assets_dir:
            assets.configure(config.assets_dir)

        acq = cls(started=datetime.now(timezone.utc), config=config, logger=logger)
        acq._init_bridge(bridge_factory)
        return acq

    def _init_bridge(self, bridge_factory: Callable | None) -> None:
        if bridge_factory is None:
            from aqf.device.adb import AdbBridge

            def bridge_factory():
                return AdbBridge.from_config(self.config)

        try:
            self.bridge = bridge_factory()
        except Exception as e:
            self.logger.debug(f"Failed to initialize device bridge: {e}", "BRIDGE_ERROR")
            raise InitializationError(f"Failed to initialize device bridge: {e}") from e

        try:
            state = self.bridge.get_state()
        except Exception as e:
            self.logger.debug(f"Failed to get device state: {e}", "BRIDGE_ERROR")
            self._close_bridge()
            raise InitializationError(
                f"Failed to get device state (are you sure a device is connected?): {e}"
            ) from e

        self.logger.debug(f"Device state: {state}", "BRIDGE_READY")

    # ── Initialization ──────────────────────────────────────────────────

    def initialize(self) -> None:
        """
        Run the ordered initialization steps:
        system_information → collector → folders → log_file.

        Side effects of completed steps are undone in reverse order if a
        later step fails, then StepFailure is raised naming the failed step.
        """
        self.lifecycle.require(AcquisitionState.NEW)

        undo: list[Callable[[], None]] = []
        steps = (
            ("system_information", self._step_system_information),
            ("collector", self._step_collector),
            ("folders", self._step_folders),
            ("log_file", self._step_log_file),
        )

        for name, step in steps:
            try:
                step(undo)
            except Exception as e:
                self._log_quietly(f"Initialization step '{name}' failed: {e}", "ERROR", "INIT_FAILED")
                self._rollback(undo)
                raise StepFailure(name, e) from e

        self.lifecycle.mark_initialized()
        self.logger.info(f"Acquisition {self.uuid} initialized at {self.storage_path}", "INIT_COMPLETE")

    def _rollback(self, undo: list[Callable[[], None]]) -> None:
        while undo:
            action = undo.pop()
            try:
                action()
            except Exception as e:
                self._log_quietly(f"Rollback action failed: {e}", "WARNING", "ROLLBACK_ERROR")

    def _step_system_information(self, undo: list) -> None:
        self.get_system_information()

    def _step_collector(self, undo: list) -> None:
        self.collector = self.bridge.get_collector(self.tmp_dir, self.cpu)

        def _release():
            collector, self.collector = self.collector, None
            if collector is not None:
                collector.release()

        undo.append(_release)

    def _step_folders(self, undo: list) -> None:
        try:
            paths = create_folders(self.config.storage_base, self.uuid)
        except StorageError as e:
            created = e.created
            undo.append(lambda: self._remove_folders(created))
            raise

        self.storage_path = paths.storage_path
        self.apks_path = paths.apks_path
        self.logs_path = paths.logs_path
        undo.append(lambda: self._remove_folders(paths.as_list()))

    def _remove_folders(self, created: list[str]) -> None:
        leftovers = remove_folders(created)
        self.storage_path = self.apks_path = self.logs_path = ""
        for path in leftovers:
            self._log_quietly(f"Could not remove staged folder {path}", "WARNING", "ROLLBACK_ERROR")

    def _step_log_file(self, undo: list) -> None:
        log_path = os.path.abspath(os.path.join(self.storage_path, LOG_FILE_NAME))

        def _disable():
            if self.logger.log_file_path == log_path:
                self.logger.disable_file_sink()
            if os.path.exists(log_path):
                os.unlink(log_path)

        # A logger shared with another live session keeps that session's sink.
        previous = self.logger.log_file_path
        try:
            self.logger.enable_file_sink(self.config.log_level, log_path)
        finally:
            if previous is None and self.logger.log_file_path == log_path:
                undo.append(_disable)

    def get_system_information(self) -> None:
        """Populate ``cpu`` and ``tmp_dir`` from the device."""
        info = get_system_information(self.bridge, self.logger)
        self.cpu = info.cpu
        self.tmp_dir = info.tmp_dir

    # ── Collection ──────────────────────────────────────────────────────

    def run_collector(self, arguments: str = "") -> str:
        """Run the provisioned collector with *arguments* and return its output."""
        if self.collector is None:
            raise AcquisitionStateError("No collector provisioned; call initialize() first.")
        self.logger.debug(f"Running collector: {arguments}", "COLLECTOR_RUN")
        return self.collector.run(arguments)

    def save_output(self, file_name: str, output: str) -> str:
        """Write *output* to <storage_path>/<file_name>, synced to disk."""
        self._require_storage()
        path = os.path.join(self.storage_path, file_name)
        try:
            with open(path, "w", encoding="utf-8") as f:
                f.write(output)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise StorageError(f"Failed to write output to {file_name}: {e}", path=path) from e
        return path

    # ── Completion ──────────────────────────────────────────────────────

    def complete(self) -> None:
        """Stamp the completion time and release device-side resources.

        Best-effort: never raises.
        """
        self.completed = datetime.now(timezone.utc)

        if self.collector is not None:
            try:
                released = self.collector.release()
            except Exception:
                released = False
            if not released:
                self._log_quietly("Failed to remove collector from device.", "WARNING", "COLLECTOR_CLEANUP")

        try:
            assets.clean_assets()
        except Exception as e:
            self._log_quietly(f"Failed to clean assets: {e}", "WARNING", "ASSETS_CLEANUP")

        self._close_bridge()
        self.lifecycle.mark_completed()
        self._log_quietly(f"Acquisition {self.uuid} completed.", "INFO", "ACQUISITION_COMPLETE")

    def _close_bridge(self) -> None:
        if self.bridge is None:
            return
        try:
            self.bridge.close()
        except Exception as e:
            self._log_quietly(f"Failed to close device bridge: {e}", "WARNING", "BRIDGE_CLEANUP")

    # ── Evidence integrity ──────────────────────────────────────────────

    def hash_files(self) -> list[HashRecord]:
        """Write hashes.csv for every regular file under the evidence folder.

        Call it last: the file log is detached once the manifest is written,
        so later entries only reach the console. Raises WalkError on any
        traversal or read error. When a signing key is configured the
        manifest also gets a detached Ed25519 signature.
        """
        self._require_storage()
        self.logger.info("Generating list of files hashes...", "HASHING_STARTED")

        builder = ManifestBuilder(self.storage_path)
        records = builder.build()

        # command.log is now covered by the manifest and must stay unchanged.
        self.logger.disable_file_sink()
        self.logger.info(
            f"Hashed {len(records)} files into {builder.manifest_path}", "HASHING_COMPLETE"
        )

        if self.config.signing_key_path:
            from aqf.audit.signing import sign_manifest

            try:
                sig_path = sign_manifest(
                    builder.manifest_path, self.config.signing_key_path, records
                )
            except (OSError, TypeError, ValueError) as e:
                raise StorageError(f"Failed to sign manifest: {e}", path=builder.manifest_path) from e
            self.logger.info(f"Manifest signed: {sig_path}", "MANIFEST_SIGNED")

        return records

    def store_info(self) -> str:
        """Persist the acquisition.json snapshot. Raises StorageError."""
        self._require_storage()
        self.logger.info("Saving details about acquisition and device...", "STORE_INFO")
        return metadata.store_info(self)

    def to_dict(self) -> dict:
        return metadata.snapshot(self)

    def _require_storage(self) -> None:
        if not self.storage_path or not os.path.isdir(self.storage_path):
            raise AcquisitionStateError("Evidence folder is not staged; call initialize() first.")

    def _log_quietly(self, message: str, level: str, event_type: str) -> None:
        try:
            self.logger.log(message, level, event_type)
        except ForensicLoggerError as e:
            print(f"WARNING: could not write log entry ({e}): {message}", file=sys.stderr)
