from __future__ import annotations

from contextlib import contextmanager

import pytest

from prtrace.blame import (
    BlameResolver,
    attribute_blame,
    blame_args,
    format_line,
    label_from_summary,
)
from prtrace.errors import CommitLookupError, ProcessReadError


class FakeDescriber:
    def __init__(self, summaries: dict[str, str] | None = None, failing: set[str] | None = None):
        self.summaries = summaries or {}
        self.failing = failing or set()
        self.calls: list[str] = []

    def describe(self, commit: str) -> str:
        self.calls.append(commit)
        if commit in self.failing:
            raise CommitLookupError(f"bad object {commit}", returncode=128)
        return self.summaries.get(commit, f"{commit} Fix typo\n")


class FakeStreamer:
    def __init__(self, output: str):
        self.output = output
        self.args: list[str] | None = None
        self.closed = False

    @contextmanager
    def stream(self, args):
        self.args = args
        try:
            yield iter(self.output.splitlines())
        finally:
            self.closed = True


def test_label_from_merge_summary():
    summary = "1a2b3c4 Merge pull request #123 feature/login into master\n"
    assert label_from_summary("1a2b3c4", summary) == "PR #123"


def test_label_strips_leading_zeros():
    summary = "1a2b3c4 Merge pull request #007 topic into main"
    assert label_from_summary("1a2b3c4", summary) == "PR #7"


@pytest.mark.parametrize(
    "summary",
    [
        "1a2b3c4 Fix typo",
        "1a2b3c4 Merge branch 'main' into feature",
        "1a2b3c4 Merge pull request #12 topic",
        "Merge pull request #12 topic into main",
        "",
    ],
)
def test_label_falls_back_to_commit(summary):
    assert label_from_summary("1a2b3c4", summary) == "1a2b3c4"


def test_format_line_pads_to_hash_width():
    assert format_line("1a2b3c4d", "PR #5", "x = 1") == "PR #5    x = 1"


def test_format_line_pads_to_label_width():
    assert format_line("1a2b", "PR #12345", "x = 1") == "PR #12345 x = 1"


def test_blame_args():
    assert blame_args(["-L", "1,2", "a.py"]) == ["blame", "--first-parent", "-L", "1,2", "a.py"]
    assert blame_args(["a.py"], first_parent=False) == ["blame", "a.py"]


def test_same_commit_described_once():
    describer = FakeDescriber({"cafe1234": "cafe1234 Merge pull request #77 topic into main"})
    resolver = BlameResolver(describer)
    records = [f"cafe1234 line {i}" for i in range(100)]

    lines = list(resolver.resolve(records))

    assert describer.calls == ["cafe1234"]
    assert len(lines) == 100
    assert {line.split(" line ")[0] for line in lines} == {"PR #77  "}
    assert resolver.cache == {"cafe1234": "PR #77"}


def test_non_merge_commit_keeps_hash():
    describer = FakeDescriber()
    streamer = FakeStreamer("deadbeef line one\ndeadbeef line two\n")

    lines = list(attribute_blame(["file.txt"], streamer, describer))

    assert lines == ["deadbeef line one", "deadbeef line two"]
    assert describer.calls == ["deadbeef"]
    assert streamer.args == ["blame", "--first-parent", "file.txt"]
    assert streamer.closed


def test_source_spaces_are_preserved():
    resolver = BlameResolver(FakeDescriber())
    lines = list(resolver.resolve(["abc (Alice 2020-01-01  3)     indented  code"]))
    assert lines == ["abc (Alice 2020-01-01  3)     indented  code"]


def test_mixed_commits_align_per_line():
    describer = FakeDescriber({
        "aaaaaaa": "aaaaaaa Merge pull request #1234567 a into main",
        "bbbbbbb": "bbbbbbb Merge pull request #8 b into main",
    })
    streamer = FakeStreamer("aaaaaaa one\nbbbbbbb two\nccccccc three\naaaaaaa four\n")

    lines = list(attribute_blame([], streamer, describer))

    assert lines == [
        "PR #1234567 one",
        "PR #8   two",
        "ccccccc three",
        "PR #1234567 four",
    ]
    assert describer.calls == ["aaaaaaa", "bbbbbbb", "ccccccc"]


def test_lookup_failure_aborts_in_strict_mode():
    describer = FakeDescriber(failing={"bad0000"})
    streamer = FakeStreamer("good000 a\nbad0000 b\ngood000 c\n")

    produced = []
    with pytest.raises(CommitLookupError):
        for line in attribute_blame([], streamer, describer):
            produced.append(line)

    assert produced == ["good000 a"]
    assert streamer.closed


def test_lookup_failure_keeps_hash_when_lenient():
    describer = FakeDescriber(failing={"bad0000"})
    streamer = FakeStreamer("bad0000 a\nbad0000 b\n")

    lines = list(attribute_blame([], streamer, describer, strict=False))

    assert lines == ["bad0000 a", "bad0000 b"]
    assert describer.calls == ["bad0000"]


def test_malformed_record_raises():
    resolver = BlameResolver(FakeDescriber())
    with pytest.raises(ProcessReadError):
        list(resolver.resolve(["nospace"]))


def test_resolution_is_lazy():
    describer = FakeDescriber()
    streamer = FakeStreamer("a1 x\nb2 y\n")

    lines = attribute_blame([], streamer, describer)
    assert streamer.args is None

    assert next(lines) == "a1 x"
    assert describer.calls == ["a1"]

    lines.close()
    assert streamer.closed
