"""Per-process session state"""

import logging
import os

from . import paths

logger = logging.getLogger(__name__)


class Session:
    """
    Current working directory and display name of one shell session

    Only the navigation commands change ``current_directory``; everything
    else reads it to resolve paths.
    """

    def __init__(self, display_name: str = "User", start_directory: str = None,
                 home_directory: str = None):
        self.display_name = display_name
        self.home_directory = os.path.normpath(
            home_directory or os.path.expanduser("~")
        )
        start = os.path.normpath(os.path.abspath(start_directory or self.home_directory))
        if not os.path.isdir(start):
            raise NotADirectoryError(start)
        self.current_directory = start

    def resolve(self, path: str) -> str:
        """Resolve a user supplied path against the current directory"""
        return paths.resolve(self.current_directory, path)

    def change_directory(self, path: str) -> None:
        """Switch to an already validated directory"""
        logger.debug("cwd: %s -> %s", self.current_directory, path)
        self.current_directory = path

    def __repr__(self):
        return f"Session(display_name={self.display_name!r}, cwd={self.current_directory!r})"
