# Author: Futhark1393
# Description: Local evidence directory staging: <base>/<uuid>/{apks,logs}.

import os
from dataclasses import dataclass

from aqf.core.errors import StorageError

APKS_DIR = "apks"
LOGS_DIR = "logs"


@dataclass
class StagingPaths:
    storage_path: str
    apks_path: str
    logs_path: str

    def as_list(self) -> list[str]:
        return [self.storage_path, self.apks_path, self.logs_path]


def create_folders(base_dir: str, session_id: str, mode: int = 0o755) -> StagingPaths:
    """
    Create the evidence tree for *session_id* under *base_dir*.

    The session directory must not exist yet: there is no retry and no merge
    into an existing directory. Directories are created in the order
    storage → apks → logs. On failure a StorageError is raised whose
    ``created`` attribute lists what was already made; those directories are
    left in place for the caller to keep or remove.
    """
    storage_path = os.path.abspath(os.path.join(base_dir, session_id))
    paths = StagingPaths(
        storage_path=storage_path,
        apks_path=os.path.join(storage_path, APKS_DIR),
        logs_path=os.path.join(storage_path, LOGS_DIR),
    )

    created: list[str] = []
    for path in paths.as_list():
        try:
            os.mkdir(path, mode)
        except OSError as e:
            raise StorageError(
                f"Failed to create acquisition folder {path}: {e.strerror or e}",
                path=path,
                created=created,
            ) from e
        created.append(path)

    return paths


def remove_folders(created: list[str]) -> list[str]:
    """
    Remove directories made by create_folders(), newest first.

    Only empty directories are removed so collected evidence is never
    deleted. Returns the paths that could not be removed.
    """
    leftovers = []
    for path in reversed(created):
        try:
            os.rmdir(path)
        except FileNotFoundError:
            continue
        except OSError:
            leftovers.append(path)
    return leftovers
