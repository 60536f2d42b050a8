"""
Backlog git hosting: remote URL parsing, page URLs and the repository facade.

A clone of `https://space.backlog.com/git/PROJ/repo.git` (or the ssh form
`space@space.git.backlog.com:/PROJ/repo.git`) maps to space key `space`,
domain `backlog.com`, project key `PROJ` and repository `repo`.
"""

from __future__ import annotations

import logging
import re
import webbrowser
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import Callable, Iterable, Iterator
from urllib.parse import quote, urlencode, urlparse

from .blame import attribute_blame
from .errors import BrowserError, NotFoundError, RepositoryError, UsageError
from .git import Repository
from .refs import resolve_pr_for_head
from .selector import SelectorDriver

logger = logging.getLogger(__name__)

_SCP_LIKE_RE = re.compile(r"^(?:[^@/]+@)?(?P<host>[^:/]+):(?P<path>.*)$")
_LINE_RE = re.compile(r"^\d+(-\d+)?$")
_ISSUE_KEY_RE = re.compile(r"([A-Z0-9]+(?:_[A-Z0-9]+)*-[0-9]+)")

DEFAULT_BASE_BRANCH = "master"


@dataclass
class Endpoint:
    """Host and path of a git remote URL."""
    host: str
    path: str


def parse_remote_url(url: str) -> Endpoint:
    """Split an https, ssh or scp-like remote URL into host and path."""
    if "://" in url:
        parsed = urlparse(url)
        if not parsed.hostname:
            raise RepositoryError(f"could not find host in remote URL: {url}")
        return Endpoint(host=parsed.hostname, path=parsed.path)

    match = _SCP_LIKE_RE.match(url)
    if not match:
        raise RepositoryError(f"unsupported remote URL: {url}")
    path = match.group("path")
    if not path.startswith("/"):
        path = "/" + path
    return Endpoint(host=match.group("host"), path=path)


def split_host(host: str) -> tuple[str, str]:
    """`space.git.backlog.jp` -> (`space`, `backlog.jp`)."""
    labels = host.split(".")
    if len(labels) < 3:
        raise RepositoryError(f"not a Backlog host: {host}")
    return labels[0], ".".join(labels[-2:])


def split_path(path: str) -> tuple[str, str]:
    """`/git/PROJ/repo.git` -> (`PROJ`, `repo`)."""
    if path.startswith("/git/"):
        path = path[len("/git"):]
    parts = path.split("/")
    if len(parts) < 3 or not parts[1] or not parts[2]:
        raise RepositoryError(f"not a Backlog repository path: {path}")
    return parts[1], parts[2].removesuffix(".git")


def extract_issue_key(text: str) -> str | None:
    """Find an issue key such as `PROJ-123` in a branch name."""
    match = _ISSUE_KEY_RE.search(text)
    return match.group(1) if match else None


def _status_from_string(enum_cls, value: str, kind: str):
    try:
        return enum_cls[value.upper()]
    except KeyError:
        choices = ", ".join(member.name.lower() for member in enum_cls)
        raise UsageError(f"invalid {kind} status '{value}'. choose from [{choices}]") from None


class PRStatus(IntEnum):
    ALL = 0
    OPEN = 1
    CLOSED = 2
    MERGED = 3

    @classmethod
    def from_string(cls, value: str) -> "PRStatus":
        return _status_from_string(cls, value, "pull request")


class IssueStatus(IntEnum):
    ALL = 0
    OPEN = 1
    IN_PROGRESS = 2
    RESOLVED = 3
    CLOSED = 4
    NOT_CLOSED = 5

    @classmethod
    def from_string(cls, value: str) -> "IssueStatus":
        return _status_from_string(cls, value, "issue")

    def status_ids(self) -> list[int]:
        """Backlog status ids to filter on; empty means no filter."""
        if self is IssueStatus.ALL:
            return []
        if self is IssueStatus.NOT_CLOSED:
            return [int(IssueStatus.OPEN), int(IssueStatus.IN_PROGRESS), int(IssueStatus.RESOLVED)]
        return [int(self)]


def _q(segment: str) -> str:
    return quote(segment, safe="/")


class BacklogURLBuilder:
    """Builds Backlog web URLs for one repository."""

    def __init__(self, domain: str, space_key: str, project_key: str = "", repo_name: str = ""):
        self.domain = domain
        self.space_key = space_key
        self.project_key = project_key
        self.repo_name = repo_name

    @property
    def base_url(self) -> str:
        return f"https://{self.space_key}.{self.domain}"

    def git_base_url(self) -> str:
        return f"{self.base_url}/git/{_q(self.project_key)}/{_q(self.repo_name)}"

    def object_url(self, ref: str, rel_path: str, is_directory: bool = False, line: str = "") -> str:
        kind = "tree" if is_directory else "blob"
        url = f"{self.git_base_url()}/{kind}/{_q(ref)}"
        if rel_path:
            url += f"/{_q(rel_path)}"
        if line:
            url += f"#{line}"
        return url

    def tree_url(self, ref: str) -> str:
        return f"{self.git_base_url()}/tree/{_q(ref)}"

    def history_url(self, ref: str) -> str:
        return f"{self.git_base_url()}/history/{_q(ref)}"

    def commit_url(self, commit: str) -> str:
        return f"{self.git_base_url()}/commit/{_q(commit)}"

    def network_url(self, ref: str) -> str:
        return f"{self.git_base_url()}/network/{_q(ref)}"

    def branch_list_url(self) -> str:
        return f"{self.git_base_url()}/branches"

    def tag_list_url(self) -> str:
        return f"{self.git_base_url()}/tags"

    def pull_request_list_url(self, status: PRStatus = PRStatus.OPEN) -> str:
        url = f"{self.git_base_url()}/pullRequests"
        if status is not PRStatus.ALL:
            url += "?" + urlencode({"q.statusId": int(status)})
        return url

    def pull_request_url(self, pr_id: str) -> str:
        return f"{self.git_base_url()}/pullRequests/{_q(pr_id)}"

    def add_pull_request_url(self, base: str, topic: str) -> str:
        return f"{self.git_base_url()}/pullRequests/add/{_q(base)}...{_q(topic)}"

    def issue_url(self, key: str) -> str:
        return f"{self.base_url}/view/{_q(key)}"

    def add_issue_url(self) -> str:
        return f"{self.base_url}/add/{_q(self.project_key)}"

    def issue_list_url(self, status_ids: Iterable[int] = ()) -> str:
        url = f"{self.base_url}/find/{_q(self.project_key)}"
        params = [("condition.statusId", int(i)) for i in status_ids]
        if params:
            url += "?" + urlencode(params)
        return url


def open_browser(url: str) -> None:
    """Open `url` with the platform browser."""
    logger.debug("Opening %s", url)
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as e:
        raise BrowserError(f"could not open browser: {e}") from e
    if not opened:
        raise BrowserError(f"could not open browser for {url}")


class BacklogRepository:
    """
    A local clone whose `origin` lives on Backlog.

    Every `open_*` method hands the page URL to `opener` and returns it.
    """

    def __init__(
        self,
        repo: Repository,
        opener: Callable[[str], None] = open_browser,
        driver: SelectorDriver | None = None,
        first_parent: bool = True,
        strict_lookup: bool = True,
    ):
        self.repo = repo
        self.opener = opener
        self.driver = driver
        self.first_parent = first_parent
        self.strict_lookup = strict_lookup

        endpoint = parse_remote_url(repo.remote_url())
        self.space_key, self.domain = split_host(endpoint.host)
        self.project_key, self.repo_name = split_path(endpoint.path)
        self.urls = BacklogURLBuilder(self.domain, self.space_key, self.project_key, self.repo_name)

    @property
    def full_name(self) -> str:
        return f"{self.project_key}/{self.repo_name}"

    def _open(self, url: str) -> str:
        self.opener(url)
        return url

    def _ref_or_head(self, ref: str | None) -> str:
        return ref or self.repo.head_short_name()

    def open_object(self, abs_path: str | Path, is_directory: bool = False, line: str = "") -> str:
        root = Path(self.repo.root_directory()).resolve()
        path = Path(abs_path).resolve()
        try:
            rel_path = path.relative_to(root).as_posix()
        except ValueError:
            raise UsageError(f"path {path} is out of repository {root}") from None
        if rel_path == ".":
            rel_path = ""

        if line:
            if is_directory:
                raise UsageError("line cannot be set for directory.")
            if not _LINE_RE.match(line):
                raise UsageError(f"line can be number or 'from-to' format. :{line}")

        return self._open(self.urls.object_url(self.repo.head_short_name(), rel_path, is_directory, line))

    def open_repository(self) -> str:
        return self._open(self.urls.git_base_url())

    def open_tree(self, ref: str | None = None) -> str:
        return self._open(self.urls.tree_url(self._ref_or_head(ref)))

    def open_history(self, ref: str | None = None) -> str:
        return self._open(self.urls.history_url(self._ref_or_head(ref)))

    def open_commit(self, commit: str) -> str:
        return self._open(self.urls.commit_url(commit))

    def open_network(self, ref: str | None = None) -> str:
        return self._open(self.urls.network_url(self._ref_or_head(ref)))

    def open_branch_list(self) -> str:
        return self._open(self.urls.branch_list_url())

    def open_tag_list(self) -> str:
        return self._open(self.urls.tag_list_url())

    def open_pull_request_list(self, status: str = "open") -> str:
        return self._open(self.urls.pull_request_list_url(PRStatus.from_string(status)))

    def open_pull_request_by_id(self, pr_id: str) -> str:
        return self._open(self.urls.pull_request_url(pr_id))

    def find_pull_request_id(self) -> str:
        """Pull request of the current branch, prompting when several tie."""
        return resolve_pr_for_head(
            self.repo,
            self.repo.head_name(),
            driver=self.driver,
            label=self.full_name,
        )

    def open_pull_request(self) -> str:
        return self.open_pull_request_by_id(self.find_pull_request_id())

    def open_add_pull_request(self, base: str = DEFAULT_BASE_BRANCH, topic: str | None = None) -> str:
        return self._open(self.urls.add_pull_request_url(base, self._ref_or_head(topic)))

    def open_issue(self) -> str:
        key = extract_issue_key(self.repo.head_short_name())
        if key is None:
            raise NotFoundError("could not find issue key in current branch name")
        return self._open(self.urls.issue_url(key))

    def open_add_issue(self) -> str:
        return self._open(self.urls.add_issue_url())

    def open_issue_list(self, status: str = "not_closed") -> str:
        return self._open(self.urls.issue_list_url(IssueStatus.from_string(status).status_ids()))

    def blame_pr(self, args: Iterable[str]) -> Iterator[str]:
        """`git blame` lines labelled with the pull requests that merged them."""
        return attribute_blame(
            args,
            self.repo,
            self.repo,
            first_parent=self.first_parent,
            strict=self.strict_lookup,
        )
