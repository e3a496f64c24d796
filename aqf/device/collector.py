# Author: Futhark1393
# Description: Remote collector handle: uploads the collector build matching the
#              device ABI into the device temp folder, runs it, removes it.

import posixpath
import shlex
from dataclasses import dataclass, field

from aqf.device.base import DeviceError

COLLECTOR_NAME = "collector"

# Android ABI (ro.product.cpu.abi) → collector build shipped in the assets folder
_ABI_BINARIES = {
    "arm64-v8a": "collector_arm64",
    "armeabi-v7a": "collector_arm",
    "armeabi": "collector_arm",
    "x86_64": "collector_amd64",
    "x86": "collector_386",
}


def collector_binary_name(cpu: str) -> str:
    """Map a device ABI to the collector asset name."""
    cpu = cpu.strip()
    if cpu in _ABI_BINARIES:
        return _ABI_BINARIES[cpu]
    # Vendor builds sometimes report suffixed ABIs, e.g. "arm64-v8a-hwasan".
    for abi, binary in _ABI_BINARIES.items():
        if cpu.startswith(abi):
            return binary
    raise DeviceError(f"Unsupported device architecture: {cpu!r}")


@dataclass
class Collector:
    """
    Provisioned collector on the device.

    The bridge reference is transient: it is excluded from equality and from
    to_dict(), so a collector restored from acquisition.json is detached.
    """
    tmp_dir: str
    arch: str
    exe_path: str = ""
    installed: bool = False
    bridge: object = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if not self.exe_path:
            self.exe_path = posixpath.join(self.tmp_dir, COLLECTOR_NAME)

    def _require_bridge(self):
        if self.bridge is None:
            raise DeviceError("Collector is detached from any device bridge.")
        return self.bridge

    def install(self, assets=None) -> None:
        """Push the matching collector build to the device and make it executable."""
        from aqf import assets as asset_module

        bridge = self._require_bridge()
        cache = assets or asset_module.default_cache()
        binary = collector_binary_name(self.arch)

        try:
            local_path = cache.get(binary)
        except OSError as e:
            raise DeviceError(f"Collector build {binary} is unavailable: {e}") from e

        bridge.push(local_path, self.exe_path)
        # From here on the binary is on the device and release() must remove it.
        self.installed = True
        try:
            bridge.shell(f"chmod 755 {shlex.quote(self.exe_path)}")
        except Exception:
            self.release()
            raise

    def run(self, arguments: str = "") -> str:
        """Execute the collector with *arguments* and return its output."""
        if not self.installed:
            raise DeviceError("Collector is not installed on the device.")
        bridge = self._require_bridge()
        command = shlex.quote(self.exe_path)
        if arguments:
            command = f"{command} {arguments}"
        return bridge.shell(command)

    def release(self) -> bool:
        """
        Best-effort removal of the collector from the device. Never raises.

        Returns True when the binary was removed (or nothing was installed),
        False when the removal command failed.
        """
        if not self.installed or self.bridge is None:
            return True
        try:
            self.bridge.shell(f"rm -f {shlex.quote(self.exe_path)}")
        except Exception:
            return False
        finally:
            self.installed = False
        return True

    def to_dict(self) -> dict:
        return {
            "exe_path": self.exe_path,
            "tmp_dir": self.tmp_dir,
            "arch": self.arch,
            "installed": self.installed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Collector":
        return cls(
            tmp_dir=data.get("tmp_dir", ""),
            arch=data.get("arch", ""),
            exe_path=data.get("exe_path", ""),
            installed=bool(data.get("installed", False)),
        )
