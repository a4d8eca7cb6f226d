"""REPL Command Handlers"""

import logging
import shlex
import sys
from typing import BinaryIO, List, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from . import operations, osinfo, paths
from .config import Config
from .decorators import fm_command
from .errors import InvalidInput
from .result import CommandResult, Outcome
from .session import Session

logger = logging.getLogger(__name__)


def split_command_line(line: str) -> List[str]:
    """Split a line into tokens, honouring quotes where they balance"""
    try:
        return shlex.split(line)
    except ValueError:
        # Unmatched quotes: fall back to plain whitespace splitting
        return line.split()


class CommandHandler:
    """Handler for REPL commands"""

    def __init__(
        self,
        session: Session,
        config: Optional[Config] = None,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
        stdout: Optional[BinaryIO] = None,
    ):
        self.session = session
        self.config = config or Config()
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)
        self.stdout = stdout
        self.commands = {
            "up": self.cmd_up,
            "cd": self.cmd_cd,
            "ls": self.cmd_ls,
            "cat": self.cmd_cat,
            "add": self.cmd_add,
            "rn": self.cmd_rn,
            "cp": self.cmd_cp,
            "mv": self.cmd_mv,
            "rm": self.cmd_rm,
            "os": self.cmd_os,
            "hash": self.cmd_hash,
            "compress": self.cmd_compress,
            "decompress": self.cmd_decompress,
            "help": self.cmd_help,
            ".exit": self.cmd_exit,
        }
        self.os_flags = {
            "--EOL": self._os_eol,
            "--cpus": self._os_cpus,
            "--homedir": self._os_homedir,
            "--username": self._os_username,
            "--architecture": self._os_architecture,
        }

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, line: str) -> Optional[CommandResult]:
        """
        Run one input line and return its result

        Returns:
            None for a blank line, otherwise the handler's CommandResult
        """
        tokens = split_command_line(line.strip())
        if not tokens:
            return None

        cmd, args = tokens[0], tokens[1:]
        handler = self.commands.get(cmd)
        if handler is None:
            logger.debug("unknown command: %s", cmd)
            return CommandResult.invalid(f"unknown command: {cmd}")
        return handler(args)

    def report(self, result: CommandResult) -> None:
        """Print the user-facing line for a failed command"""
        if result.is_error:
            logger.info("%s (%s)", result.message, result.detail)
            self.err_console.print(result.message, highlight=False, markup=False, soft_wrap=True)

    def execute(self, line: str) -> bool:
        """Execute a command. Returns False if should exit."""
        result = self.dispatch(line)
        if result is None:
            return True
        self.report(result)
        if result.outcome is Outcome.EXIT:
            return False
        self.show_current_directory()
        return True

    # ------------------------------------------------------------------
    # Session messages
    # ------------------------------------------------------------------

    def welcome(self) -> None:
        self.console.print(
            f"Welcome to the File Manager, {self.session.display_name}!",
            highlight=False, markup=False, soft_wrap=True,
        )

    def farewell(self) -> None:
        self.console.print(
            f"Thank you for using File Manager, {self.session.display_name}, goodbye!",
            highlight=False, markup=False, soft_wrap=True,
        )

    def show_current_directory(self) -> None:
        self.console.print(
            f"You are currently in {self.session.current_directory}",
            highlight=False, markup=False, soft_wrap=True,
        )

    def _binary_stdout(self) -> BinaryIO:
        if self.stdout is not None:
            return self.stdout
        return sys.stdout.buffer

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    @fm_command(usage="")
    def cmd_up(self, args: List[str]):
        """Go to the parent directory (no-op at the root)"""
        current = self.session.current_directory
        if not paths.is_root(current):
            self.session.change_directory(paths.parent_of(current))

    @fm_command(min_args=1, usage="<path>")
    def cmd_cd(self, args: List[str]):
        """Change directory within the home directory tree or to the root"""
        target = self.session.resolve(args[0])
        paths.check_cd_target(target, self.session.home_directory)
        self.session.change_directory(target)

    @fm_command(usage="")
    def cmd_ls(self, args: List[str]):
        """List the current directory, directories first"""
        entries = operations.list_directory(self.session.current_directory)
        table = Table(show_header=True, header_style="bold")
        table.add_column("name")
        table.add_column("type")
        for name, entry_type in entries:
            style = "bold cyan" if entry_type == "directory" else ""
            table.add_row(Text(name, style=style), entry_type)
        self.console.print(table)

    # ------------------------------------------------------------------
    # Basic file operations
    # ------------------------------------------------------------------

    @fm_command(min_args=1, usage="<file>")
    def cmd_cat(self, args: List[str]):
        """Print a file's contents"""
        path = self.session.resolve(args[0])
        # Anything rich buffered must precede the raw bytes
        self.console.file.flush()
        operations.cat_file(path, self._binary_stdout(), self.config.chunk_size)

    @fm_command(min_args=1, usage="<file>")
    def cmd_add(self, args: List[str]):
        """Create an empty file; an existing file is an error"""
        operations.create_file(self.session.resolve(args[0]))

    @fm_command(min_args=2, usage="<file> <new_name>")
    def cmd_rn(self, args: List[str]):
        """Rename a file within its directory"""
        operations.rename_file(self.session.resolve(args[0]), args[1])

    @fm_command(min_args=2, usage="<source> <destination>")
    def cmd_cp(self, args: List[str]):
        """Copy a file"""
        operations.copy_file(
            self.session.resolve(args[0]),
            self.session.resolve(args[1]),
            self.config.chunk_size,
        )

    @fm_command(min_args=2, usage="<source> <destination>")
    def cmd_mv(self, args: List[str]):
        """Copy a file, then delete the source"""
        operations.move_file(
            self.session.resolve(args[0]),
            self.session.resolve(args[1]),
            self.config.chunk_size,
        )

    @fm_command(min_args=1, usage="<file>")
    def cmd_rm(self, args: List[str]):
        """Delete a file"""
        operations.remove_file(self.session.resolve(args[0]))

    # ------------------------------------------------------------------
    # Operating system info
    # ------------------------------------------------------------------

    @fm_command(min_args=1, usage="--EOL|--cpus|--homedir|--username|--architecture")
    def cmd_os(self, args: List[str]):
        """Report host operating system information"""
        reporter = self.os_flags.get(args[0])
        if reporter is None:
            raise InvalidInput(f"unknown flag: {args[0]}")
        reporter()

    def _os_eol(self):
        self.console.print(osinfo.eol(), highlight=False, markup=False, soft_wrap=True)

    def _os_cpus(self):
        cpus = osinfo.cpus()
        table = Table(show_header=True, header_style="bold")
        table.add_column("model")
        table.add_column("speed")
        for model, speed in cpus:
            table.add_row(Text(model), speed)
        self.console.print(table)

    def _os_homedir(self):
        self.console.print(osinfo.home_directory(), highlight=False, markup=False, soft_wrap=True)

    def _os_username(self):
        self.console.print(osinfo.username(), highlight=False, markup=False, soft_wrap=True)

    def _os_architecture(self):
        self.console.print(osinfo.architecture(), highlight=False, markup=False, soft_wrap=True)

    # ------------------------------------------------------------------
    # Hash, compress and decompress
    # ------------------------------------------------------------------

    @fm_command(min_args=1, usage="<file>")
    def cmd_hash(self, args: List[str]):
        """Print the SHA-256 digest of a file"""
        digest = operations.hash_file(
            self.session.resolve(args[0]), "sha256", self.config.chunk_size
        )
        self.console.print(digest, highlight=False, markup=False, soft_wrap=True)

    @fm_command(min_args=2, usage="<source> <destination>")
    def cmd_compress(self, args: List[str]):
        """Brotli-compress a file"""
        operations.compress_file(
            self.session.resolve(args[0]),
            self.session.resolve(args[1]),
            self.config.brotli_quality,
            self.config.chunk_size,
        )

    @fm_command(min_args=2, usage="<source> <destination>")
    def cmd_decompress(self, args: List[str]):
        """Brotli-decompress a file"""
        operations.decompress_file(
            self.session.resolve(args[0]),
            self.session.resolve(args[1]),
            self.config.chunk_size,
        )

    # ------------------------------------------------------------------
    # Utility commands
    # ------------------------------------------------------------------

    @fm_command(usage="")
    def cmd_help(self, args: List[str]):
        """Show help information"""
        table = Table(show_header=True, header_style="bold")
        table.add_column("command")
        table.add_column("description")
        for name, handler in self.commands.items():
            usage = f"{name} {handler.usage}".rstrip()
            description = (handler.__doc__ or "").strip().split("\n")[0]
            table.add_row(Text(usage), description)
        self.console.print(table)

    @fm_command(usage="", command_name=".exit")
    def cmd_exit(self, args: List[str]):
        """Leave the file manager"""
        self.farewell()
        return CommandResult.exit()
