"""
Prtrace CLI - Trace branches and blamed lines back to Backlog pull requests.

Commands:
    init      - Write a sample prtrace.yml
    pr        - Open the pull request of the current branch (or by id)
    pr-id     - Print the pull request id of the current branch
    blame-pr  - git blame with pull request labels
    open      - Open a file or directory
    repo, tree, history, commit, network, branches, tags
    prs, add-pr, issue, add-issue, issues
"""

from __future__ import annotations

import sys
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, TypeVar

import click
from dotenv import load_dotenv

# Load .env file from current directory or repo root
load_dotenv()
from .config import get_repo_root
load_dotenv(get_repo_root() / ".env")

from . import __version__
from .backlog import DEFAULT_BASE_BRANCH, BacklogRepository, open_browser
from .config import CONFIG_FILENAME, PrtraceConfig
from .errors import PrtraceError
from .git import GitCli
from .log import setup_logging
from .tui import TextualSelectorDriver

T = TypeVar("T")


SAMPLE_CONFIG = """\
# Prtrace Configuration

git:
  executable: git     # git binary to run
  remote: origin      # remote hosted on Backlog

blame:
  first_parent: true  # follow merge commits only (git blame --first-parent)
  strict_lookup: true # abort when a commit cannot be described

browser:
  open: true          # false prints URLs instead of opening them

selector:
  inline: true        # draw the pull request chooser below the prompt

logging:
  level: WARNING      # overridden by PRTRACE_LOG_LEVEL or --verbose
  # file: ~/.prtrace/prtrace.log
"""


@dataclass
class CliContext:
    repo_root: Path
    config: PrtraceConfig
    print_only: bool = False

    def backlog(self) -> BacklogRepository:
        git = GitCli(
            git=self.config.git.executable,
            remote=self.config.git.remote,
        )
        opener = click.echo if self.print_only or not self.config.browser.open else open_browser
        return BacklogRepository(
            git,
            opener=opener,
            driver=TextualSelectorDriver(inline=self.config.selector.inline),
            first_parent=self.config.blame.first_parent,
            strict_lookup=self.config.blame.strict_lookup,
        )


pass_cli = click.make_pass_decorator(CliContext)


def run(action: Callable[[], T]) -> T:
    """Run a command body, turning prtrace errors into exit status 1."""
    try:
        return action()
    except PrtraceError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--print", "print_only", is_flag=True, help="Print URLs instead of opening a browser")
@click.pass_context
def main(ctx: click.Context, verbose: bool, print_only: bool):
    """Prtrace - Trace branches and blamed lines back to Backlog pull requests."""
    repo_root = get_repo_root()
    config = PrtraceConfig.load(repo_root)
    setup_logging("DEBUG" if verbose else config.log_level, config.logging.file)
    ctx.obj = CliContext(repo_root=repo_root, config=config, print_only=print_only)


@main.command()
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
@pass_cli
def init(cli: CliContext, force: bool):
    """Write a sample prtrace.yml at the repository root."""
    config_path = cli.repo_root / CONFIG_FILENAME
    if config_path.exists() and not force:
        click.echo(f"Skipped: {config_path} (already exists)")
        return
    config_path.write_text(SAMPLE_CONFIG)
    click.echo(f"Created: {config_path}")


@main.command()
@click.argument("pr_id", required=False)
@pass_cli
def pr(cli: CliContext, pr_id: str | None):
    """Open a pull request.

    Without PR_ID, opens the pull request whose head is the current branch.
    When several pull requests share that commit, a chooser is shown.
    """
    def action():
        backlog = cli.backlog()
        if pr_id:
            return backlog.open_pull_request_by_id(pr_id)
        return backlog.open_pull_request()
    run(action)


@main.command("pr-id")
@pass_cli
def pr_id(cli: CliContext):
    """Print the pull request id of the current branch."""
    click.echo(run(lambda: cli.backlog().find_pull_request_id()))


@main.command(
    "blame-pr",
    context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
)
@click.argument("git_args", nargs=-1, type=click.UNPROCESSED)
@pass_cli
def blame_pr(cli: CliContext, git_args: tuple[str, ...]):
    """Run git blame, labelling lines with the pull request that merged them.

    Arguments are passed to `git blame --first-parent`.

    Examples:

        prtrace blame-pr README.md
        prtrace blame-pr -L 10,20 src/app.py
    """
    def action():
        with closing(cli.backlog().blame_pr(git_args)) as lines:
            for line in lines:
                click.echo(line)
    run(action)


@main.command("open")
@click.argument("path", default=".", type=click.Path(exists=True))
@click.option("--line", "-l", default="", help="Line number or range (10 or 10-20)")
@pass_cli
def open_(cli: CliContext, path: str, line: str):
    """Open a file or directory of the current branch."""
    target = Path(path).resolve()
    run(lambda: cli.backlog().open_object(target, target.is_dir(), line))


@main.command()
@pass_cli
def repo(cli: CliContext):
    """Open the repository page."""
    run(lambda: cli.backlog().open_repository())


@main.command()
@click.argument("ref", required=False)
@pass_cli
def tree(cli: CliContext, ref: str | None):
    """Open the file tree of REF (default: current branch)."""
    run(lambda: cli.backlog().open_tree(ref))


@main.command()
@click.argument("ref", required=False)
@pass_cli
def history(cli: CliContext, ref: str | None):
    """Open the commit history of REF (default: current branch)."""
    run(lambda: cli.backlog().open_history(ref))


@main.command()
@click.argument("commit_hash")
@pass_cli
def commit(cli: CliContext, commit_hash: str):
    """Open a commit."""
    run(lambda: cli.backlog().open_commit(commit_hash))


@main.command()
@click.argument("ref", required=False)
@pass_cli
def network(cli: CliContext, ref: str | None):
    """Open the network graph of REF (default: current branch)."""
    run(lambda: cli.backlog().open_network(ref))


@main.command()
@pass_cli
def branches(cli: CliContext):
    """Open the branch list."""
    run(lambda: cli.backlog().open_branch_list())


@main.command()
@pass_cli
def tags(cli: CliContext):
    """Open the tag list."""
    run(lambda: cli.backlog().open_tag_list())


@main.command()
@click.option(
    "--status",
    default="open",
    type=click.Choice(["all", "open", "closed", "merged"]),
    help="Pull request status filter",
)
@pass_cli
def prs(cli: CliContext, status: str):
    """Open the pull request list."""
    run(lambda: cli.backlog().open_pull_request_list(status))


@main.command("add-pr")
@click.option("--base", default=DEFAULT_BASE_BRANCH, show_default=True, help="Branch to merge into")
@click.option("--topic", default=None, help="Branch to merge (default: current branch)")
@pass_cli
def add_pr(cli: CliContext, base: str, topic: str | None):
    """Open the new pull request form."""
    run(lambda: cli.backlog().open_add_pull_request(base, topic))


@main.command()
@pass_cli
def issue(cli: CliContext):
    """Open the issue whose key appears in the current branch name."""
    run(lambda: cli.backlog().open_issue())


@main.command("add-issue")
@pass_cli
def add_issue(cli: CliContext):
    """Open the new issue form."""
    run(lambda: cli.backlog().open_add_issue())


@main.command()
@click.option(
    "--status",
    default="not_closed",
    type=click.Choice(["all", "open", "in_progress", "resolved", "closed", "not_closed"]),
    help="Issue status filter",
)
@pass_cli
def issues(cli: CliContext, status: str):
    """Open the issue list."""
    run(lambda: cli.backlog().open_issue_list(status))


if __name__ == "__main__":
    main()
