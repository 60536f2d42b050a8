"""
Git gateway for prtrace.

Each external git query the attribution engine needs is a one-method
capability protocol, so the engine can be driven by in-memory fakes:

- RemoteLister:     `git ls-remote` text
- CommitDescriber:  one-line summary of a single commit
- HistoryStreamer:  live, line-by-line output of a long-running git command

GitCli implements all three by shelling out, and also answers the
repository metadata questions (HEAD ref, remote URL, worktree root).
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import ContextManager, Iterator, Protocol, runtime_checkable

from .errors import (
    CommitLookupError,
    GitCommandError,
    ProcessLaunchError,
    ProcessReadError,
    RemoteQueryError,
    RepositoryError,
)

logger = logging.getLogger(__name__)

DETACHED_HEAD = "HEAD"
_SHORT_NAME_PREFIXES = ("refs/heads/", "refs/tags/", "refs/remotes/")
# Seconds an abandoned child gets to exit after SIGTERM before SIGKILL
TERMINATE_TIMEOUT = 2.0


@runtime_checkable
class RemoteLister(Protocol):
    """Lists every ref of the remote."""

    def ls_remote(self) -> str:
        """Return raw `<hash>\\t<refname>` lines."""
        ...


@runtime_checkable
class CommitDescriber(Protocol):
    """Describes a single commit."""

    def describe(self, commit: str) -> str:
        """Return the one-line summary (`<hash> <subject>`) of a commit."""
        ...


@runtime_checkable
class HistoryStreamer(Protocol):
    """Runs a git command and exposes its stdout as it is produced."""

    def stream(self, args: list[str]) -> ContextManager[Iterator[str]]:
        """
        Start `git <args>` and yield an iterator over its output lines.

        Leaving the context always reaps the child, whether the lines were
        fully consumed, abandoned early, or an exception escaped.
        """
        ...


def short_ref_name(ref: str) -> str:
    """`refs/heads/feature/x` -> `feature/x`."""
    for prefix in _SHORT_NAME_PREFIXES:
        if ref.startswith(prefix):
            return ref[len(prefix):]
    return ref


class GitCli:
    """Production gateway that shells out to the git executable."""

    def __init__(self, git: str = "git", cwd: Path | str | None = None, remote: str = "origin"):
        self.git = git
        self.cwd = str(cwd) if cwd is not None else None
        self.remote = remote

    def _run(self, args: list[str], error_cls: type[GitCommandError] = GitCommandError) -> str:
        """Run git to completion and return stdout."""
        cmd = [self.git, *args]
        logger.debug("Running: %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                check=True,
            )
        except OSError as e:
            raise ProcessLaunchError(f"failed to run {self.git}: {e}", args=cmd) from e
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or "").strip()
            raise error_cls(
                f"git {' '.join(args)} failed: {stderr or f'exit status {e.returncode}'}",
                args=cmd,
                returncode=e.returncode,
                stderr=stderr,
            ) from e
        return result.stdout

    def ls_remote(self) -> str:
        return self._run(["ls-remote", "-q", self.remote], RemoteQueryError)

    def describe(self, commit: str) -> str:
        return self._run(["show", "--oneline", "--no-patch", commit], CommitLookupError)

    @contextmanager
    def stream(self, args: list[str]) -> Iterator[Iterator[str]]:
        cmd = [self.git, *args]
        logger.debug("Streaming: %s", " ".join(cmd))
        # stderr goes to a file so a chatty child cannot block on a full pipe
        stderr_file = tempfile.TemporaryFile(mode="w+", encoding="utf-8", errors="replace")
        try:
            proc = subprocess.Popen(
                cmd,
                cwd=self.cwd,
                stdout=subprocess.PIPE,
                stderr=stderr_file,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            stderr_file.close()
            raise ProcessLaunchError(f"failed to start {self.git}: {e}", args=cmd) from e

        drained = False

        def lines() -> Iterator[str]:
            nonlocal drained
            try:
                for line in proc.stdout:
                    yield line.removesuffix("\n")
            except (OSError, ValueError) as e:
                raise ProcessReadError(f"failed reading git {' '.join(args)}: {e}", args=cmd) from e
            drained = True

        try:
            try:
                yield lines()
            except BaseException:
                self._reap(proc, drained=False)
                raise
            returncode = self._reap(proc, drained)
            if drained and returncode != 0:
                stderr_file.seek(0)
                stderr = stderr_file.read().strip()
                raise ProcessReadError(
                    f"git {' '.join(args)} failed: {stderr or f'exit status {returncode}'}",
                    args=cmd,
                    returncode=returncode,
                    stderr=stderr,
                )
        finally:
            stderr_file.close()

    @staticmethod
    def _reap(proc: subprocess.Popen, drained: bool, timeout: float | None = None) -> int:
        """Close the pipe and wait for the child, terminating it if abandoned."""
        if timeout is None:
            timeout = TERMINATE_TIMEOUT
        terminated = False
        if not drained and proc.poll() is None:
            logger.debug("Terminating abandoned git process %s", proc.pid)
            proc.terminate()
            terminated = True
        if proc.stdout is not None:
            proc.stdout.close()
        if not terminated:
            return proc.wait()
        try:
            return proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.warning("git process %s ignored SIGTERM, killing it", proc.pid)
            proc.kill()
            return proc.wait()

    def head_name(self) -> str:
        """Full name of the checked-out ref, or `HEAD` when detached."""
        cmd = [self.git, "symbolic-ref", "-q", "HEAD"]
        try:
            result = subprocess.run(cmd, cwd=self.cwd, capture_output=True, text=True)
        except OSError as e:
            raise RepositoryError(f"failed to run {self.git}: {e}") from e
        if result.returncode == 1:
            return DETACHED_HEAD
        if result.returncode != 0:
            raise RepositoryError(f"could not read HEAD: {result.stderr.strip()}")
        return result.stdout.strip()

    def head_short_name(self) -> str:
        return short_ref_name(self.head_name())

    def remote_url(self) -> str:
        try:
            url = self._run(["remote", "get-url", self.remote]).strip()
        except GitCommandError as e:
            raise RepositoryError(f"could not find remote URL for '{self.remote}': {e.stderr or e.message}") from e
        if not url:
            raise RepositoryError("could not find remote URL")
        return url

    def root_directory(self) -> Path:
        try:
            return Path(self._run(["rev-parse", "--show-toplevel"]).strip())
        except GitCommandError as e:
            raise RepositoryError(f"not a git repository: {e.stderr or e.message}") from e


class Repository(RemoteLister, CommitDescriber, HistoryStreamer, Protocol):
    """Everything prtrace asks of a local clone."""

    def head_name(self) -> str:
        ...

    def head_short_name(self) -> str:
        ...

    def remote_url(self) -> str:
        ...

    def root_directory(self) -> Path:
        ...
