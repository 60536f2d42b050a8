"""
Prtrace - Trace branches and blamed lines back to Backlog pull requests.

A CLI tool that:
1. Finds the pull request whose head matches the current branch
2. Annotates `git blame` output with the pull request that merged each line
3. Opens Backlog pages (tree, history, commits, PRs, issues) for the repository

Usage:
    prtrace init            # Write a sample prtrace.yml
    prtrace pr              # Open the PR for the current branch
    prtrace pr-id           # Print the PR number for the current branch
    prtrace blame-pr FILE   # git blame with PR numbers instead of hashes
    prtrace open [PATH]     # Open a file or directory in the browser
"""

__version__ = "0.1.0"
__author__ = "Prtrace"
