"""Fixtures that build throwaway git repositories."""

import os
import subprocess
from pathlib import Path

import pytest


def git(cwd: Path, *args: str, env: dict = None) -> str:
    """Run git in `cwd` and return its stripped stdout."""
    run_env = dict(os.environ, **(env or {}))
    result = subprocess.run(
        ['git', *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
        env=run_env,
    )
    return result.stdout.strip()


def write(repo: Path, path: str, content) -> Path:
    """Write a file inside the repo, creating parent directories."""
    target = repo / path
    target.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        target.write_bytes(content)
    else:
        target.write_text(content)
    return target


def commit_all(repo: Path, message: str, allow_empty: bool = False, env: dict = None) -> str:
    """Stage everything and commit; returns the new HEAD id."""
    git(repo, 'add', '-A')
    args = ['commit', '-q', '-m', message]
    if allow_empty:
        args.append('--allow-empty')
    git(repo, *args, env=env)
    return git(repo, 'rev-parse', 'HEAD')


def init_repo(path: Path, identity: bool = True) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    git(path, 'init', '-q')
    git(path, 'symbolic-ref', 'HEAD', 'refs/heads/main')
    git(path, 'config', 'commit.gpgsign', 'false')
    if identity:
        git(path, 'config', 'user.name', 'Test User')
        git(path, 'config', 'user.email', 'test@example.com')
    return path


@pytest.fixture(autouse=True)
def isolated_git_config(tmp_path, monkeypatch):
    """Keep the user's global/system git config (and any enclosing repo) out of tests."""
    monkeypatch.setenv('GIT_CONFIG_GLOBAL', str(tmp_path / 'gitconfig'))
    monkeypatch.setenv('GIT_CONFIG_NOSYSTEM', '1')
    monkeypatch.setenv('GIT_CEILING_DIRECTORIES', str(tmp_path))
    for var in ('GIT_DIR', 'GIT_WORK_TREE', 'GIT_INDEX_FILE', 'GIT_AUTHOR_DATE', 'GIT_COMMITTER_DATE'):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def empty_repo(tmp_path) -> Path:
    """A repository with no commits."""
    return init_repo(tmp_path / 'repo')


@pytest.fixture
def repo(empty_repo) -> Path:
    """A repository on `main` with one commit ("init") adding README.md."""
    write(empty_repo, 'README.md', 'hello\n')
    commit_all(empty_repo, 'init')
    return empty_repo
