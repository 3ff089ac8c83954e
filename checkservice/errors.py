"""Exception types raised while converging the host."""
from __future__ import annotations


class CheckServiceError(Exception):
    """Base class for every failure the convergence run can report."""


class ExternalCommandFailure(CheckServiceError):
    """A systemctl or database control command failed or could not run."""

    def __init__(self, command: str, detail: str = "") -> None:
        self.command = command
        self.detail = detail
        message = f"{command} failed"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class TimeoutExceeded(CheckServiceError):
    """The bounded wait for the database ran out of attempts."""

    def __init__(self, attempts: int, interval_seconds: float) -> None:
        self.attempts = attempts
        self.interval_seconds = interval_seconds
        super().__init__(
            f"timeout: database not healthy after {attempts} attempts "
            f"({interval_seconds:g}s interval)"
        )


class InstallationFailure(CheckServiceError):
    """The watcher unit could not be resolved, written or enabled."""
