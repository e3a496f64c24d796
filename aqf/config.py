# Author: Kemal Sebzeci
# Description: Acquisition configuration: evidence base folder, adb location,
#              assets folder, manifest signing key and log level.
# Values come from keyword arguments or AQF_* environment variables.

import os
import sys
from dataclasses import dataclass, field

from aqf.core.validation import (
    validate_log_level,
    validate_signing_key,
    validate_storage_base,
)


def program_dir() -> str:
    """Directory of the running program; the default evidence base folder."""
    return os.path.dirname(os.path.abspath(sys.argv[0]))


@dataclass
class AcquisitionConfig:
    storage_base: str = field(default_factory=program_dir)
    adb_path: str | None = None
    device_serial: str | None = None
    adb_timeout: float | None = None
    assets_dir: str | None = None
    signing_key_path: str | None = None
    log_level: str = "DEBUG"

    @classmethod
    def from_env(cls, environ=None) -> "AcquisitionConfig":
        env = os.environ if environ is None else environ

        timeout = env.get("AQF_ADB_TIMEOUT")
        try:
            adb_timeout = float(timeout) if timeout else None
        except ValueError:
            raise ValueError(f"AQF_ADB_TIMEOUT must be a number, got {timeout!r}")

        return cls(
            storage_base=env.get("AQF_STORAGE_BASE") or program_dir(),
            adb_path=env.get("AQF_ADB_PATH") or None,
            device_serial=env.get("ANDROID_SERIAL") or None,
            adb_timeout=adb_timeout,
            assets_dir=env.get("AQF_ASSETS_DIR") or None,
            signing_key_path=env.get("AQF_SIGNING_KEY") or None,
            log_level=(env.get("AQF_LOG_LEVEL") or "DEBUG").upper(),
        )

    def validate(self) -> None:
        """Raise ValueError describing the first invalid setting."""
        for ok, msg in (
            validate_storage_base(self.storage_base),
            validate_signing_key(self.signing_key_path or ""),
            validate_log_level(self.log_level),
        ):
            if not ok:
                raise ValueError(msg)
        if self.adb_timeout is not None and self.adb_timeout <= 0:
            raise ValueError("adb timeout must be a positive number of seconds.")
