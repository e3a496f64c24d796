# Author: Futhark1393
# Description: ADB device bridge: drives the platform `adb` binary via subprocess.

import shutil
import subprocess

from aqf.device.base import DeviceBridge, DeviceError


def find_adb(assets=None) -> str:
    """Locate an adb binary: PATH first, then the bundled assets folder."""
    path = shutil.which("adb")
    if path:
        return path
    if assets is not None and assets.has("adb"):
        return assets.get("adb")
    raise DeviceError(
        "adb binary not found. Install Android platform-tools or place adb in the assets folder."
    )


class AdbBridge(DeviceBridge):
    """
    Device bridge backed by the `adb` command-line client.

    Usage::

        bridge = AdbBridge()
        bridge.get_state()            # "device"
        bridge.shell("getprop ro.product.cpu.abi")
    """

    def __init__(
        self,
        adb_path: str | None = None,
        serial: str | None = None,
        timeout: float | None = None,
        assets=None,
    ):
        self.adb_path = adb_path or find_adb(assets)
        self.serial = serial
        self.timeout = timeout
        self.assets = assets

    @classmethod
    def from_config(cls, config) -> "AdbBridge":
        from aqf import assets as asset_module

        return cls(
            adb_path=config.adb_path,
            serial=config.device_serial,
            timeout=config.adb_timeout,
            assets=asset_module.default_cache(),
        )

    def _run(self, *args: str) -> str:
        cmd = [self.adb_path]
        if self.serial:
            cmd += ["-s", self.serial]
        cmd += list(args)

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="ignore",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise DeviceError(f"adb {args[0]} timed out after {self.timeout}s") from e
        except OSError as e:
            raise DeviceError(f"Failed to execute {self.adb_path}: {e}") from e

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise DeviceError(f"adb {args[0]} failed (exit {result.returncode}): {detail}")

        return (result.stdout or "").strip()

    def get_state(self) -> str:
        state = self._run("get-state")
        if state != "device":
            raise DeviceError(f"Device is not ready (state: {state or 'unknown'})")
        return state

    def shell(self, command: str) -> str:
        return self._run("shell", command)

    def push(self, local_path: str, remote_path: str) -> None:
        self._run("push", local_path, remote_path)

    def get_collector(self, tmp_dir: str, cpu: str, assets=None):
        return super().get_collector(tmp_dir, cpu, assets or self.assets)
