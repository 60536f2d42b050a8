"""
Remote reference index and pull request matching.

`git ls-remote` output is parsed into a ref -> hash table; pull request
head refs (`refs/pull/<id>/head`) pointing at the same commit as the
current branch are the candidates for "the PR of this branch".
"""

from __future__ import annotations

import logging

from .errors import NotFoundError, ParseError
from .git import RemoteLister
from .selector import SelectorDriver, select

logger = logging.getLogger(__name__)

REF_PREFIX = "refs/"
REF_PULL_REQUEST_PREFIX = REF_PREFIX + "pull/"
REF_PULL_REQUEST_SUFFIX = "/head"

RefToHash = dict[str, str]


def build_index(raw_listing: str) -> RefToHash:
    """
    Parse `<hash>\\t<refname>` lines into a ref -> hash table.

    A single trailing newline is ignored. Any line that is not exactly
    one hash and one ref name fails the whole listing.
    """
    ref_to_hash: RefToHash = {}
    body = raw_listing.removesuffix("\n")
    if not body:
        return ref_to_hash

    for lineno, line in enumerate(body.split("\n"), 1):
        fields = line.split("\t")
        if len(fields) != 2 or not fields[0] or not fields[1]:
            raise ParseError(f"malformed ls-remote line {lineno}: {line!r}")
        commit_hash, ref = fields
        ref_to_hash[ref] = commit_hash
    return ref_to_hash


def is_pr_ref(ref: str) -> bool:
    return ref.startswith(REF_PULL_REQUEST_PREFIX) and ref.endswith(REF_PULL_REQUEST_SUFFIX)


def extract_pr_id(ref: str) -> str:
    """`refs/pull/42/head` -> `42`."""
    return ref[len(REF_PULL_REQUEST_PREFIX):-len(REF_PULL_REQUEST_SUFFIX)]


def find_candidates(ref_to_hash: RefToHash, target_ref: str) -> list[str]:
    """
    Return ids of the pull requests whose head is the commit of `target_ref`.

    Ids are ordered by descending string comparison, so "9" sorts before
    "10". The newest-looking id comes first for ids of equal length.
    """
    target_hash = ref_to_hash.get(target_ref)
    if target_hash is None:
        raise NotFoundError("not found a current branch in remote")

    pr_ids = [
        extract_pr_id(ref)
        for ref, commit_hash in ref_to_hash.items()
        if is_pr_ref(ref) and commit_hash == target_hash
    ]
    if not pr_ids:
        raise NotFoundError("not found a pull request related to current branch")

    pr_ids.sort(reverse=True)
    logger.debug("Pull requests at %s (%s): %s", target_ref, target_hash, pr_ids)
    return pr_ids


def resolve_pr_for_head(
    lister: RemoteLister,
    head_ref: str,
    driver: SelectorDriver | None = None,
    label: str = "",
) -> str:
    """
    List the remote, match `head_ref` against PR heads and pick one.

    Prompts through `driver` only when several pull requests tie; a
    cancelled prompt raises ProcessAbort.
    """
    ref_to_hash = build_index(lister.ls_remote())
    return select(find_candidates(ref_to_hash, head_ref), driver=driver, label=label)
