#!/usr/bin/env -S uv run
# /// script
# requires-python = ">=3.10"
# dependencies = [
#     "click",
#     "utz",
# ]
# ///
"""Inspect commits, diffs and commit stacks for AI-assisted commit/review tooling.

All commands go through the VCS backend contract, so the text they print is
exactly what an AI pipeline would receive: unified patches with lockfiles
and vendored dependencies (node_modules/) removed.

Common uses:

    git-scry show HEAD~2            # message + filtered patch of one commit
    git-scry diff --staged          # what the next commit would contain
    git-scry diff main...feature    # changes on feature since it forked
    git-scry stack main             # non-empty commits in main..HEAD
    git-scry log | fzf --ansi       # pick a commit interactively
    git-scry show HEAD --copy       # send it to the clipboard (OSC 52)
"""

import logging
import sys
from functools import wraps
from typing import Optional

from click import Choice, echo, group, pass_context, pass_obj, style
from utz import err
from utz.cli import arg, flag, opt

from .backend import VcsBackend, VcsError
from .clipboard import copy_osc52
from .color import should_use_color, strip_ansi
from .diff import split_range
from .git import GitBackend


# Common option decorators
color_opt = opt('-c', '--color', type=Choice(['auto', 'always', 'never']), default='auto', help='When to use colored output (default: auto)')
copy_flag = flag('-y', '--copy', help='Copy the output to the clipboard (OSC 52) instead of printing it')


def reports_vcs_errors(func):
    """Turn backend failures into an error message and exit status 1."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except VcsError as e:
            err(f"Error: {e}")
            sys.exit(1)
    return wrapper


def open_backend(repo: str) -> VcsBackend:
    return GitBackend(repo)


def emit(text: str, copy: bool, use_color: bool = False) -> None:
    """Print text (coloring patch lines), or copy it to the clipboard."""
    if copy:
        copy_osc52(text)
        err(f"Copied {len(text)} characters to clipboard")
        return
    if not use_color:
        echo(text, nl=False)
        return
    for line in text.splitlines():
        if line.startswith('+') and not line.startswith('+++'):
            echo(style(line, fg='green'), color=True)
        elif line.startswith('-') and not line.startswith('---'):
            echo(style(line, fg='red'), color=True)
        elif line.startswith('@@'):
            echo(style(line, fg='cyan'), color=True)
        elif line.startswith('diff --git '):
            echo(style(line, bold=True), color=True)
        else:
            echo(line)


@group()
@opt('-C', '--repo', default='.', envvar='GIT_SCRY_REPO', help='Path inside the repository (default: current directory)')
@flag('-v', '--verbose', help='Log git invocations to stderr')
@pass_context
def cli(ctx, repo: str, verbose: bool):
    """Inspect commits, diffs and commit ranges through the VCS backend."""
    ctx.obj = repo
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(name)s: %(message)s', stream=sys.stderr)


@cli.command()
@color_opt
@copy_flag
@arg('reference', default='HEAD', required=False)
@pass_obj
@reports_vcs_errors
def show(repo: str, color: str, copy: bool, reference: str) -> None:
    """Show a commit's metadata and filtered patch."""
    use_color = should_use_color(color)
    info = open_backend(repo).get_commit(reference)
    message = '\n'.join(f'    {line}' if line else '' for line in info.message.split('\n'))
    header = f"Author: {info.author}\nDate:   {info.date}\n\n{message}\n\n"
    if use_color and not copy:
        echo(style(f"commit {info.commit_id}", fg='yellow'), color=True)
        echo(header, nl=False)
        emit(info.diff, copy=False, use_color=True)
    else:
        emit(f"commit {info.commit_id}\n{header}{info.diff}", copy)


@cli.command()
@color_opt
@copy_flag
@flag('-s', '--staged', help='Diff HEAD against the index instead of the index against the working tree')
@arg('range_', metavar='[RANGE]', required=False)
@pass_obj
@reports_vcs_errors
def diff(repo: str, color: str, copy: bool, staged: bool, range_: Optional[str]) -> None:
    """Show working tree changes, or the diff of a range (A..B, A...B).

    A three-dot range compares the merge-base of A and B against B.
    """
    use_color = should_use_color(color)
    backend = open_backend(repo)
    if range_:
        endpoints = split_range(range_.strip())
        if not endpoints:
            err(f"Error: not a range: {range_} (expected A..B or A...B)")
            sys.exit(1)
        from_ref, to_ref, three_dot = endpoints
        text = backend.get_range_diff(from_ref or 'HEAD', to_ref or 'HEAD', three_dot)
    else:
        text = backend.get_working_tree_diff(staged)
    emit(text, copy, use_color)


@cli.command()
@arg('reference', default='HEAD', required=False)
@pass_obj
@reports_vcs_errors
def files(repo: str, reference: str) -> None:
    """List files changed by a commit or between the ends of a range."""
    for path in open_backend(repo).get_changed_files(reference):
        echo(path)


@cli.command()
@pass_obj
@reports_vcs_errors
def status(repo: str) -> None:
    """List modified, added and untracked files."""
    for path in open_backend(repo).get_working_tree_changed_files():
        echo(path)


@cli.command()
@opt('-c', '--color', type=Choice(['auto', 'always', 'never']), default='always', help='When to use colored output (default: always, for `fzf --ansi`)')
@pass_obj
@reports_vcs_errors
def log(repo: str, color: str) -> None:
    """Print one colored line per commit, for fuzzy selection.

    Example: git-scry show $(git-scry log | fzf --ansi | cut -d' ' -f1)
    """
    text = open_backend(repo).get_commit_log_for_fzf()
    if not should_use_color(color):
        text = strip_ansi(text)
    echo(text, nl=False)


@cli.command()
@flag('-l', '--long', 'long_ids', help='Print full commit ids')
@arg('from_ref', metavar='FROM')
@arg('to_ref', metavar='[TO]', default='HEAD', required=False)
@pass_obj
@reports_vcs_errors
def stack(repo: str, long_ids: bool, from_ref: str, to_ref: str) -> None:
    """List commits in FROM..TO that change files, oldest first."""
    commits = open_backend(repo).get_commits_in_range(from_ref, to_ref)
    if not commits:
        err(f"No commits with changes in {from_ref}..{to_ref}")
        return
    for c in commits:
        echo(f"{c.commit_id if long_ids else c.short_id} {c.summary}")


@cli.command()
@arg('reference')
@pass_obj
@reports_vcs_errors
def resolve(repo: str, reference: str) -> None:
    """Print the full commit id a reference points to."""
    echo(open_backend(repo).resolve_ref(reference))


@cli.command()
@arg('reference')
@pass_obj
@reports_vcs_errors
def parent(repo: str, reference: str) -> None:
    """Print a reference to the commit's parent (the empty tree for root commits)."""
    echo(open_backend(repo).get_parent_ref_or_empty(reference))


@cli.command('merge-base')
@arg('ref1')
@arg('ref2')
@pass_obj
@reports_vcs_errors
def merge_base(repo: str, ref1: str, ref2: str) -> None:
    """Print the nearest common ancestor of two commits."""
    echo(open_backend(repo).get_merge_base(ref1, ref2))


@cli.command()
@pass_obj
@reports_vcs_errors
def branch(repo: str) -> None:
    """Print the current branch name (exit 1 when HEAD is detached)."""
    name = open_backend(repo).get_current_branch()
    if name is None:
        err("HEAD is detached")
        sys.exit(1)
    echo(name)


@cli.command()
@arg('reference')
@arg('path')
@pass_obj
@reports_vcs_errors
def cat(repo: str, reference: str, path: str) -> None:
    """Print a file's content at a reference."""
    echo(open_backend(repo).get_file_content_at_ref(reference, path), nl=False)


@cli.command()
@opt('-m', '--message', required=True, help='Commit message (used verbatim)')
@arg('paths', nargs=-1)
@pass_obj
@reports_vcs_errors
def commit(repo: str, message: str, paths: tuple[str, ...]) -> None:
    """Stage PATHS (if any) and commit the index; prints the new commit id."""
    backend = open_backend(repo)
    if paths:
        backend.stage_files(paths)
    echo(backend.commit(message))


if __name__ == '__main__':
    cli()
