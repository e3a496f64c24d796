# Author: Futhark1393
# Description: Forensic session logger.
# Features: Leveled entries stamped with session id, console echo, thread-safety,
#          and a one-time file sink (command.log) with kernel sync (fsync).

import os
import sys
import threading
import uuid
from datetime import datetime, timezone

LEVELS = {
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}


class ForensicLoggerError(Exception):
    pass


def _level_value(level: str) -> int:
    try:
        return LEVELS[str(level).upper()]
    except KeyError:
        raise ForensicLoggerError(f"Unknown log level: {level!r}")


class ForensicLogger:
    """
    Leveled logger handed to every acquisition component.

    Entries are echoed to *stream* (stderr by default) when at or above
    *console_level*. enable_file_sink() additionally appends entries at or
    above the sink level to a text file; the sink can be enabled once.
    """

    def __init__(self, session_id: str | None = None, console_level: str = "INFO", stream=None):
        self.session_id = session_id or str(uuid.uuid4())
        self.console_level = _level_value(console_level)
        self._stream = stream if stream is not None else sys.stderr

        self._lock = threading.Lock()
        self.log_file_path: str | None = None
        self._file_level = LEVELS["DEBUG"]

    def bind_session(self, session_id: str) -> None:
        with self._lock:
            self.session_id = session_id

    def enable_file_sink(self, level: str, path: str) -> None:
        """Start appending entries at or above *level* to *path*.

        Re-enabling the same path is a no-op; a different path raises
        ForensicLoggerError.
        """
        with self._lock:
            path = os.path.abspath(path)
            if self.log_file_path is not None:
                if self.log_file_path == path:
                    return
                raise ForensicLoggerError(
                    f"File log already enabled at {self.log_file_path}. Cannot redirect to {path}."
                )

            directory = os.path.dirname(path)
            if not os.path.isdir(directory):
                raise ForensicLoggerError(f"Log directory does not exist: {directory}")

            file_level = _level_value(level)
            try:
                with open(path, "a", encoding="utf-8"):
                    pass
            except OSError as e:
                raise ForensicLoggerError(f"Cannot open log file {path}: {e}")

            self.log_file_path = path
            self._file_level = file_level

            self._internal_log_unlocked(
                f"File log enabled at {path}.",
                "DEBUG",
                "FILE_LOG_ENABLED",
                source_module="logger",
            )

    def disable_file_sink(self) -> None:
        with self._lock:
            self.log_file_path = None

    def log(
        self,
        message: str,
        level: str = "INFO",
        event_type: str = "GENERAL",
        source_module: str = "acquisition",
    ) -> str:
        with self._lock:
            return self._internal_log_unlocked(message, level, event_type, source_module)

    def debug(self, message: str, event_type: str = "GENERAL", source_module: str = "acquisition") -> str:
        return self.log(message, "DEBUG", event_type, source_module)

    def info(self, message: str, event_type: str = "GENERAL", source_module: str = "acquisition") -> str:
        return self.log(message, "INFO", event_type, source_module)

    def warning(self, message: str, event_type: str = "GENERAL", source_module: str = "acquisition") -> str:
        return self.log(message, "WARNING", event_type, source_module)

    def error(self, message: str, event_type: str = "GENERAL", source_module: str = "acquisition") -> str:
        return self.log(message, "ERROR", event_type, source_module)

    def _internal_log_unlocked(
        self,
        message: str,
        level: str,
        event_type: str,
        source_module: str,
    ) -> str:
        level = str(level).upper()
        value = _level_value(level)

        now_utc = datetime.now(timezone.utc)
        timestamp_iso = now_utc.strftime("%Y-%m-%dT%H:%M:%SZ")
        console_line = f"[{timestamp_iso}] [{level}] {message}"

        if value >= self.console_level and self._stream is not None:
            print(console_line, file=self._stream)

        if self.log_file_path and value >= self._file_level:
            self._write_to_file(
                f"{timestamp_iso} {level:<8} session={self.session_id} "
                f"event={event_type} module={source_module} | {message}\n"
            )

        return console_line

    def _write_to_file(self, line: str) -> None:
        try:
            with open(self.log_file_path, "a", encoding="utf-8") as f:
                f.write(line)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise ForensicLoggerError(f"File System Write Error: {str(e)}")
