"""Exceptions raised by command handlers and the streaming pipeline"""

from typing import Optional


class FileManagerError(Exception):
    """Base class for file manager errors"""

    #: Single line shown to the user for this kind of failure
    message = "Operation failed"


class InvalidInput(FileManagerError):
    """Malformed or unknown command, missing arguments, rejected cd target"""

    message = "Invalid input"


class OperationFailed(FileManagerError):
    """A well-formed command whose underlying operation failed"""

    message = "Operation failed"


class PipelineError(OperationFailed):
    """First failure of any pipeline stage.

    Args:
        stage: Name of the failing stage (e.g. "source", "brotli-decompress")
        reason: Human readable description of what went wrong
    """

    def __init__(self, stage: str, reason: str, path: Optional[str] = None):
        self.stage = stage
        self.reason = reason
        self.path = path
        if path:
            super().__init__(f"{stage}: {path}: {reason}")
        else:
            super().__init__(f"{stage}: {reason}")
