"""Outcome of a single command invocation"""

from enum import Enum

from .errors import InvalidInput, OperationFailed


class Outcome(Enum):
    OK = "ok"
    INVALID_INPUT = "invalid_input"
    OPERATION_FAILED = "operation_failed"
    EXIT = "exit"


class CommandResult:
    """Value returned by every command handler.

    ``message`` is the one line shown to the user for the two error
    outcomes; ``detail`` carries the underlying cause for logging.
    """

    __slots__ = ("outcome", "detail")

    def __init__(self, outcome: Outcome, detail: str = ""):
        self.outcome = outcome
        self.detail = detail

    @classmethod
    def ok(cls) -> "CommandResult":
        return cls(Outcome.OK)

    @classmethod
    def invalid(cls, detail: str = "") -> "CommandResult":
        return cls(Outcome.INVALID_INPUT, detail)

    @classmethod
    def failed(cls, detail: str = "") -> "CommandResult":
        return cls(Outcome.OPERATION_FAILED, detail)

    @classmethod
    def exit(cls) -> "CommandResult":
        return cls(Outcome.EXIT)

    @property
    def is_error(self) -> bool:
        return self.outcome in (Outcome.INVALID_INPUT, Outcome.OPERATION_FAILED)

    @property
    def message(self) -> str:
        if self.outcome is Outcome.INVALID_INPUT:
            return InvalidInput.message
        if self.outcome is Outcome.OPERATION_FAILED:
            return OperationFailed.message
        return ""

    def __eq__(self, other):
        if not isinstance(other, CommandResult):
            return NotImplemented
        return self.outcome is other.outcome

    def __hash__(self):
        return hash(self.outcome)

    def __repr__(self):
        if self.detail:
            return f"CommandResult({self.outcome.name}, {self.detail!r})"
        return f"CommandResult({self.outcome.name})"
