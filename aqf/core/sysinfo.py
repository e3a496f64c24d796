# Author: Futhark1393
# Description: Device system information probe: CPU ABI and remote temp folder.

import re
from dataclasses import dataclass

DEFAULT_TMP_DIR = "/data/local/tmp"
TMPDIR_PREFIX = "TMPDIR="
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


@dataclass
class SystemInfo:
    cpu: str
    tmp_dir: str


def parse_tmp_dir(env_output: str) -> str:
    """Extract TMPDIR from an `env` dump, falling back to /data/local/tmp.

    Tolerates \\n, \\r\\n and \\r line endings and blank lines. The first
    TMPDIR= line wins.
    """
    for line in _LINE_BREAK.split(env_output):
        line = line.strip()
        if line.startswith(TMPDIR_PREFIX):
            value = line[len(TMPDIR_PREFIX):].strip()
            return value or DEFAULT_TMP_DIR
    return DEFAULT_TMP_DIR


def get_system_information(bridge, logger=None) -> SystemInfo:
    """Query the device for its CPU ABI and temp folder.

    Bridge errors propagate unchanged.
    """
    cpu = bridge.shell("getprop ro.product.cpu.abi")
    if logger:
        logger.debug(f"CPU architecture: {cpu}", event_type="SYSTEM_INFO", source_module="sysinfo")

    env_output = bridge.shell("env")
    tmp_dir = parse_tmp_dir(env_output)
    if logger:
        logger.debug(f"Found temp folder: {tmp_dir}", event_type="SYSTEM_INFO", source_module="sysinfo")

    return SystemInfo(cpu=cpu, tmp_dir=tmp_dir)
