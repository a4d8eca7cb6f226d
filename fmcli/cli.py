"""Main CLI Entry Point"""

import locale
import logging
import os
import sys
import tempfile

import click
from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import FileHistory
from rich.console import Console

from .commands import CommandHandler
from .config import Config
from .session import Session
from .version import get_version_string

console = Console()
logger = logging.getLogger("fmcli")


class FMCompleter(Completer):
    """Custom completer for file manager commands and local file paths"""

    def __init__(self, handler):
        self.handler = handler
        self.command_names = list(handler.commands.keys())

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        words = text.split()

        # If we're at the start or only typing the command
        if len(words) == 0 or (len(words) == 1 and not text.endswith(" ")):
            word = words[0] if words else ""
            for cmd in self.command_names:
                if cmd.startswith(word):
                    yield Completion(cmd, start_position=-len(word))
            return

        # os takes flags, not paths
        if words[0] == "os":
            current_word = "" if text.endswith(" ") else words[-1]
            for flag in self.handler.os_flags:
                if flag.startswith(current_word):
                    yield Completion(flag, start_position=-len(current_word))
            return

        current_word = "" if text.endswith(" ") else words[-1]
        dir_part, file_part = os.path.split(current_word)
        list_path = self.handler.session.resolve(dir_part) if dir_part else \
            self.handler.session.current_directory

        try:
            with os.scandir(list_path) as entries:
                names = sorted((e.name, e.is_dir()) for e in entries)
        except OSError:
            # If we can't list the directory, just skip completion
            return

        for name, is_dir in names:
            if name.startswith(file_part):
                display_name = name + os.sep if is_dir else name
                yield Completion(
                    os.path.join(dir_part, display_name),
                    start_position=-len(current_word),
                    display=display_name,
                )


def _open_history(history_path: str) -> FileHistory:
    """File history at history_path, or a temp file if it is not writable"""
    try:
        os.makedirs(os.path.dirname(history_path) or ".", exist_ok=True)
        with open(history_path, "a"):
            pass  # Just test if we can open for append
        return FileHistory(history_path)
    except OSError:
        temp_history = tempfile.NamedTemporaryFile(
            mode="w", delete=False, suffix="_fmcli_history"
        )
        temp_history_path = temp_history.name
        temp_history.close()
        logger.warning("cannot use %s, using temporary history file %s",
                       history_path, temp_history_path)
        return FileHistory(temp_history_path)


def _read_lines_interactive(handler: CommandHandler, config: Config):
    """Yield input lines from a prompt_toolkit session"""
    session = PromptSession(
        history=_open_history(config.history_file),
        auto_suggest=AutoSuggestFromHistory(),
        completer=FMCompleter(handler),
        complete_while_typing=True,
    )
    while True:
        yield session.prompt("> ")


def _read_lines_piped(stream):
    """Yield input lines from a non-interactive stream"""
    for line in stream:
        yield line.rstrip("\r\n")


def run_session(handler: CommandHandler, lines) -> int:
    """
    Drive the handler with input lines until .exit, EOF or interrupt

    Returns:
        Process exit status (always 0)
    """
    handler.welcome()
    handler.show_current_directory()

    try:
        for line in lines:
            if not handler.execute(line):
                return 0
    except (KeyboardInterrupt, EOFError):
        # prompt_toolkit raises on Ctrl-C / Ctrl-D; a signal raises anywhere
        handler.console.print()
    handler.farewell()
    return 0


def start_repl(config: Config) -> int:
    """Start interactive REPL session"""
    try:
        session = Session(config.username, config.start_directory)
    except OSError as e:
        console.print(f"Cannot start in {config.start_directory}: {e}", highlight=False,
                      markup=False)
        return 1

    handler = CommandHandler(session, config)
    logger.debug("starting with %r", config)

    if sys.stdin.isatty():
        lines = _read_lines_interactive(handler, config)
    else:
        lines = _read_lines_piped(sys.stdin)
    return run_session(handler, lines)


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), None)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.command()
@click.version_option(version=get_version_string(), prog_name="fmcli")
@click.option(
    "--username",
    default=lambda: os.environ.get("FM_USERNAME", "User"),
    help="Name used in the welcome and farewell messages",
    show_default="User",
)
@click.option(
    "--log-level",
    default=lambda: os.environ.get("FM_LOG_LEVEL", "WARNING"),
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level for diagnostics on stderr",
    show_default="WARNING",
)
def main(username, log_level):
    """File Manager - interactive shell for the local filesystem"""
    _configure_logging(log_level)
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error:
        logger.debug("falling back to the C collation locale")

    config = Config.from_args(username=username, log_level=log_level)
    sys.exit(start_repl(config))


if __name__ == "__main__":
    main()
