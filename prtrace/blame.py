"""
Pull request attribution for `git blame` output.

Every blamed line is relabelled with the pull request whose merge commit
introduced it (`PR #123`), or keeps its commit hash when the commit is not
a pull request merge. Each distinct commit is looked up once per run.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Iterator

from .errors import CommitLookupError, ProcessReadError
from .git import CommitDescriber, HistoryStreamer

logger = logging.getLogger(__name__)

MERGE_PULL_REQUEST_RE = re.compile(r"^[a-f0-9]+ Merge pull request #([0-9]+) \S+ into \S+")


def label_from_summary(commit: str, summary: str) -> str:
    """`PR #<n>` when `summary` is a pull request merge, else `commit`."""
    match = MERGE_PULL_REQUEST_RE.match(summary)
    if not match:
        return commit
    return f"PR #{int(match.group(1))}"


def format_line(commit: str, label: str, source: str) -> str:
    """Left-justify the label to at least the width of the hash."""
    width = max(len(commit), len(label))
    return f"{label:<{width}} {source}"


class BlameResolver:
    """
    Relabels blame records for one run.

    The cache belongs to this instance; build a new resolver per run.
    With `strict=False`, a commit that git cannot describe keeps its hash
    as label instead of aborting the run.
    """

    def __init__(self, describer: CommitDescriber, strict: bool = True):
        self.describer = describer
        self.strict = strict
        self.cache: dict[str, str] = {}

    def lookup(self, commit: str) -> str:
        if commit in self.cache:
            return self.cache[commit]

        try:
            summary = self.describer.describe(commit)
        except CommitLookupError as e:
            if self.strict:
                raise
            logger.warning("Could not describe %s, keeping hash: %s", commit, e.message)
            summary = ""

        label = label_from_summary(commit, summary)
        self.cache[commit] = label
        return label

    def resolve(self, records: Iterable[str]) -> Iterator[str]:
        """Yield one formatted line per `<hash> <source>` record."""
        for record in records:
            commit, sep, source = record.partition(" ")
            if not sep:
                raise ProcessReadError(f"malformed blame line: {record!r}")
            yield format_line(commit, self.lookup(commit), source)


def blame_args(args: Iterable[str], first_parent: bool = True) -> list[str]:
    argv = ["blame"]
    if first_parent:
        argv.append("--first-parent")
    return argv + list(args)


def attribute_blame(
    args: Iterable[str],
    streamer: HistoryStreamer,
    describer: CommitDescriber,
    *,
    first_parent: bool = True,
    strict: bool = True,
) -> Iterator[str]:
    """
    Run `git blame` and yield its lines relabelled with pull requests.

    Lines are produced while git is still running. The git process is
    reaped before this generator finishes, raises, or is closed.
    """
    resolver = BlameResolver(describer, strict=strict)
    with streamer.stream(blame_args(args, first_parent)) as records:
        yield from resolver.resolve(records)
    logger.debug("Blame resolved %d distinct commits", len(resolver.cache))
