"""Shared exception types for rolecheck."""

from __future__ import annotations


class RolecheckError(RuntimeError):
    """Base error for rolecheck operations."""


class CollectionError(RolecheckError):
    """Raised when the role repository cannot be enumerated at all."""

    def __init__(self, root: object, reason: str) -> None:
        """Initialise the error with the offending root and reason."""
        super().__init__(f"Cannot collect role at {root}: {reason}.")
        self.root = root
        self.reason = reason


class ParseError(RolecheckError):
    """Raised when a structured-text file is malformed."""

    def __init__(self, file: str, line: int, column: int, message: str) -> None:
        """Record the location of the syntax problem."""
        super().__init__(f"{file}:{line}:{column}: {message}")
        self.file = file
        self.line = line
        self.column = column
        self.message = message


class InternalRuleFault(RolecheckError):
    """Raised when a rule implementation fails unexpectedly."""

    def __init__(self, rule_id: str, cause: BaseException) -> None:
        """Wrap the exception raised by the rule handler."""
        detail = str(cause) or type(cause).__name__
        super().__init__(f"Rule {rule_id!r} failed: {detail}")
        self.rule_id = rule_id
        self.cause = cause


class PhaseTimeoutError(RolecheckError):
    """Raised when a parse or rule task exceeds its time budget."""

    def __init__(self, phase: str, subject: str, timeout: float) -> None:
        """Describe which task ran out of time."""
        super().__init__(
            f"{phase} task for {subject} exceeded the {timeout * 1000:.0f} ms timeout"
        )
        self.phase = phase
        self.subject = subject
        self.timeout = timeout


class ConfigError(RolecheckError):
    """Raised when the configuration file or options are invalid."""


class UnknownRuleError(ConfigError):
    """Raised when selecting rules that are not registered."""

    def __init__(self, names: list[str]) -> None:
        """Initialise the error with the unknown rule identifiers."""
        listed = ", ".join(repr(name) for name in names)
        super().__init__(f"Unknown rule(s): {listed}.")
        self.names = names
