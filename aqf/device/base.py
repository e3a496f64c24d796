# Author: Futhark1393
# Description: Device bootstrap bridge interface shared by the ADB and SSH transports.

from abc import ABC, abstractmethod


class DeviceError(Exception):
    """Raised when a command cannot be executed on the connected device."""
    pass


class DeviceBridge(ABC):
    """
    Synchronous command channel to one connected device.

    Every call blocks until the device answers. Timeouts, if any, belong to
    the concrete transport.
    """

    @abstractmethod
    def get_state(self) -> str:
        """Return the device state. Raises DeviceError if no device answers."""

    @abstractmethod
    def shell(self, command: str) -> str:
        """Run *command* in a device shell and return its stripped stdout."""

    @abstractmethod
    def push(self, local_path: str, remote_path: str) -> None:
        """Copy a local file onto the device."""

    def get_collector(self, tmp_dir: str, cpu: str, assets=None):
        """Upload and prepare the collector binary matching *cpu* under *tmp_dir*."""
        from aqf.device.collector import Collector

        collector = Collector(tmp_dir=tmp_dir, arch=cpu, bridge=self)
        collector.install(assets)
        return collector

    def close(self) -> None:
        """Release the transport. Default: nothing to release."""
