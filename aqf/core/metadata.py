# Author: Futhark1393
# Description: Acquisition metadata persister: acquisition.json snapshot.
# The transient device bridge is never serialized.

import json
import os
from datetime import datetime

from aqf.core.errors import StorageError

INFO_NAME = "acquisition.json"


def _format_time(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_time(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def snapshot(acquisition) -> dict:
    """Return the serializable fields of *acquisition* as a JSON-ready dict."""
    collector = acquisition.collector
    return {
        "uuid": acquisition.uuid,
        "storage_path": acquisition.storage_path,
        "apks_path": acquisition.apks_path,
        "logs_path": acquisition.logs_path,
        "started": _format_time(acquisition.started),
        "completed": _format_time(acquisition.completed),
        "collector": collector.to_dict() if collector is not None else None,
        "tmp_dir": acquisition.tmp_dir,
        "cpu": acquisition.cpu,
    }


def restore(data: dict):
    """Rebuild a detached Acquisition (no bridge) from a snapshot dict."""
    from aqf.core.acquisition import Acquisition
    from aqf.device.collector import Collector

    collector_data = data.get("collector")
    return Acquisition(
        uuid=data["uuid"],
        started=_parse_time(data.get("started")),
        completed=_parse_time(data.get("completed")),
        storage_path=data.get("storage_path", ""),
        apks_path=data.get("apks_path", ""),
        logs_path=data.get("logs_path", ""),
        cpu=data.get("cpu", ""),
        tmp_dir=data.get("tmp_dir", ""),
        collector=Collector.from_dict(collector_data) if collector_data else None,
    )


def store_info(acquisition, file_name: str = INFO_NAME) -> str:
    """
    Write the acquisition snapshot to <storage_path>/acquisition.json.

    The file is created and written directly, without a temp-file rename.
    Returns the written path. Raises StorageError on failure.
    """
    info_path = os.path.join(acquisition.storage_path, file_name)

    try:
        info = json.dumps(snapshot(acquisition), indent=1)
    except (TypeError, ValueError) as e:
        raise StorageError(f"Failed to serialize the acquisition details: {e}", path=info_path) from e

    try:
        with open(info_path, "w", encoding="utf-8") as f:
            f.write(info)
    except OSError as e:
        raise StorageError(
            f"Failed to write acquisition details to file: {e}", path=info_path
        ) from e

    return info_path


def load_info(info_path: str):
    """Load an acquisition.json snapshot back into a detached Acquisition."""
    with open(info_path, "r", encoding="utf-8") as f:
        return restore(json.load(f))
