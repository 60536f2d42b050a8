"""
Error types for prtrace.

Everything derives from PrtraceError except ProcessAbort, which is a clean
exit requested by the user rather than a failure.
"""

from __future__ import annotations


class PrtraceError(Exception):
    """Base error for prtrace."""
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ParseError(PrtraceError):
    """Malformed output from git."""


class NotFoundError(PrtraceError):
    """A ref, pull request or issue key could not be found."""


class RepositoryError(PrtraceError):
    """Repository metadata (remote URL, layout) is unusable."""


class UsageError(PrtraceError):
    """Invalid user input such as an unknown status or line range."""


class BrowserError(PrtraceError):
    """No browser could be launched."""


class GitCommandError(PrtraceError):
    """A git invocation failed."""
    def __init__(
        self,
        message: str,
        args: list[str] | None = None,
        returncode: int | None = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = list(args or [])
        self.returncode = returncode
        self.stderr = stderr


class RemoteQueryError(GitCommandError):
    """`git ls-remote` failed."""


class CommitLookupError(GitCommandError):
    """A single commit could not be described."""


class ProcessLaunchError(GitCommandError):
    """The git process could not be started."""


class ProcessReadError(GitCommandError):
    """The git process output could not be read, or it exited non-zero."""


class ProcessAbort(SystemExit):
    """The user cancelled an interactive choice. Exits with status 0."""
    def __init__(self) -> None:
        super().__init__(0)
