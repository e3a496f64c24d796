# Author: Futhark1393
# Description: SSH device bridge for rooted devices running an SSH daemon.
# Features: key-based login, optional `su -c` elevation, SFTP upload.

import shlex

import paramiko

from aqf.core.validation import validate_target_address, validate_ssh_username
from aqf.device.base import DeviceBridge, DeviceError


def ssh_exec(ssh: paramiko.SSHClient, cmd: str) -> tuple[str, str, int]:
    """Execute a command over SSH and return (stdout, stderr, exit_code)."""
    stdin, stdout, stderr = ssh.exec_command(cmd)
    out = stdout.read().decode("utf-8", errors="ignore").strip()
    err = stderr.read().decode("utf-8", errors="ignore").strip()
    code = stdout.channel.recv_exit_status()
    return out, err, code


class SshBridge(DeviceBridge):
    """
    Device bridge over an established paramiko SSH session.

    Usage::

        bridge = SshBridge.connect("192.168.1.20", "root", "~/.ssh/device.pem")
        bridge.shell("getprop ro.product.cpu.abi")
        bridge.close()
    """

    def __init__(self, ssh: paramiko.SSHClient, use_su: bool = False):
        self._ssh = ssh
        self.use_su = use_su

    @classmethod
    def connect(
        cls,
        host: str,
        user: str,
        key_path: str,
        port: int = 22,
        timeout: float = 10.0,
        use_su: bool = False,
    ) -> "SshBridge":
        ok, msg = validate_target_address(host)
        if not ok:
            raise DeviceError(msg)
        ok, msg = validate_ssh_username(user)
        if not ok:
            raise DeviceError(msg)

        ssh = paramiko.SSHClient()
        ssh.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            ssh.connect(
                hostname=host,
                port=port,
                username=user,
                key_filename=key_path,
                timeout=timeout,
            )
        except (paramiko.SSHException, OSError) as e:
            ssh.close()
            raise DeviceError(f"SSH connection to {user}@{host}:{port} failed: {e}") from e

        return cls(ssh, use_su=use_su)

    def get_state(self) -> str:
        transport = self._ssh.get_transport()
        if transport is None or not transport.is_active():
            raise DeviceError("SSH session is not active.")
        _, err, code = self._exec("getprop sys.boot_completed")
        if code != 0:
            raise DeviceError(f"Device did not answer state query: {err}")
        return "device"

    def _exec(self, command: str) -> tuple[str, str, int]:
        if self.use_su:
            command = f"su -c {shlex.quote(command)}"
        try:
            return ssh_exec(self._ssh, command)
        except (paramiko.SSHException, OSError) as e:
            raise DeviceError(f"SSH command failed: {e}") from e

    def shell(self, command: str) -> str:
        out, err, code = self._exec(command)
        if code != 0:
            raise DeviceError(f"Command exited with {code}: {err or out}")
        return out

    def push(self, local_path: str, remote_path: str) -> None:
        try:
            sftp = self._ssh.open_sftp()
            try:
                sftp.put(local_path, remote_path)
            finally:
                sftp.close()
        except (paramiko.SSHException, OSError) as e:
            raise DeviceError(f"SFTP upload to {remote_path} failed: {e}") from e

    def close(self) -> None:
        self._ssh.close()
