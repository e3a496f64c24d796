# Author: Futhark1393
# Description: Error taxonomy for the acquisition lifecycle.


class AcquisitionError(Exception):
    """Base class for unrecoverable acquisition failures."""
    pass


class InitializationError(AcquisitionError):
    """Raised when the device bridge cannot be bootstrapped or no device answers."""
    pass


class AcquisitionStateError(AcquisitionError):
    """Raised when an operation is attempted in the wrong lifecycle state."""
    pass


class StepFailure(AcquisitionError):
    """Raised when one ordered step of Acquisition.initialize() fails.

    ``step`` names the failing step, ``cause`` holds the original exception.
    """

    def __init__(self, step: str, cause: BaseException):
        self.step = step
        self.cause = cause
        super().__init__(f"Initialization step '{step}' failed: {cause}")


class StorageError(AcquisitionError):
    """Raised when a directory or file under the evidence tree cannot be written.

    ``created`` lists the directories made before the failure, oldest first.
    """

    def __init__(self, message: str, path: str | None = None, created: list[str] | None = None):
        self.path = path
        self.created = list(created or [])
        super().__init__(message)


class WalkError(AcquisitionError):
    """Raised when the evidence tree cannot be walked or a file cannot be hashed."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)
