"""Test the git-scry command line."""

import pytest
from click.testing import CliRunner

from conftest import commit_all, git, write
from scry.cli import cli
from scry.git import EMPTY_TREE_SHA


def invoke(repo, *args):
    return CliRunner().invoke(cli, ['-C', str(repo), *args])


@pytest.fixture
def stacked(repo):
    """main: init; feature: one, (empty), two."""
    git(repo, 'checkout', '-q', '-b', 'feature')
    write(repo, 'one.txt', '1\n')
    commit_all(repo, 'one')
    commit_all(repo, 'nothing', allow_empty=True)
    write(repo, 'two.txt', '2\n')
    commit_all(repo, 'two')
    return repo


def test_show(repo):
    """Header, indented message and patch."""
    sha = git(repo, 'rev-parse', 'HEAD')
    result = invoke(repo, 'show', 'HEAD')
    assert result.exit_code == 0, result.output
    assert result.output.startswith(f'commit {sha}\nAuthor: Test User <test@example.com>\nDate:   ')
    assert '\n    init\n' in result.output
    assert '+hello\n' in result.output


def test_show_copy(repo):
    """--copy emits an OSC 52 sequence instead of the text."""
    result = invoke(repo, 'show', '--copy')
    assert result.exit_code == 0, result.output
    assert '\x1b]52;c;' in result.output
    assert '+hello' not in result.output


def test_show_invalid_ref(repo):
    """Backend errors exit 1 with a message."""
    result = invoke(repo, 'show', 'nope')
    assert result.exit_code == 1
    assert 'Error: invalid reference: nope' in result.output


def test_show_rejects_option_like_ref(repo):
    """Dash-prefixed references are refused, not passed to git."""
    result = invoke(repo, 'show', '--', '--all')
    assert result.exit_code == 1
    assert "cannot start with '-'" in result.output


def test_not_a_repository(tmp_path):
    """Running outside a repository fails cleanly."""
    plain = tmp_path / 'plain'
    plain.mkdir()
    result = invoke(plain, 'status')
    assert result.exit_code == 1
    assert 'Error: not a repository' in result.output


def test_diff_working_tree_and_staged(repo):
    """Unstaged by default, index with --staged."""
    write(repo, 'README.md', 'hello\nworld\n')
    assert '+world' in invoke(repo, 'diff').output
    assert invoke(repo, 'diff', '--staged').output == ''
    git(repo, 'add', 'README.md')
    assert '+world' in invoke(repo, 'diff', '--staged').output


def test_diff_range(stacked):
    """Ranges go through the range diff."""
    result = invoke(stacked, 'diff', 'main...feature')
    assert result.exit_code == 0, result.output
    assert 'one.txt' in result.output
    assert 'two.txt' in result.output


def test_diff_not_a_range(repo):
    """A single reference is not accepted as a range."""
    result = invoke(repo, 'diff', 'HEAD')
    assert result.exit_code == 1
    assert 'not a range' in result.output


def test_files(stacked):
    """Changed files of a commit and of a range."""
    assert invoke(stacked, 'files').output == 'two.txt\n'
    assert invoke(stacked, 'files', 'main..feature').output == 'one.txt\ntwo.txt\n'


def test_status(repo):
    """Working tree changes, one per line."""
    write(repo, 'new.txt', 'n\n')
    write(repo, 'README.md', 'changed\n')
    assert invoke(repo, 'status').output == 'README.md\nnew.txt\n'


def test_log_plain(stacked):
    """--color never strips the fzf colors."""
    result = invoke(stacked, 'log', '--color', 'never')
    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert len(lines) == 4
    assert '\x1b[' not in result.output
    assert lines[0].split(' ')[1] == 'two'


def test_log_colored_by_default(repo):
    """Colors are on by default for `fzf --ansi`."""
    assert '\x1b[33m' in invoke(repo, 'log').output


def test_stack(stacked):
    """Empty commits are skipped, oldest first."""
    result = invoke(stacked, 'stack', 'main')
    assert result.exit_code == 0, result.output
    assert [line.split(' ', 1)[1] for line in result.output.splitlines()] == ['one', 'two']


def test_stack_long_ids(stacked):
    """--long prints full ids."""
    head = git(stacked, 'rev-parse', 'HEAD')
    result = invoke(stacked, 'stack', '--long', 'main', 'feature')
    assert result.output.splitlines()[-1] == f'{head} two'


def test_resolve_parent_and_merge_base(stacked):
    """Reference helpers print ids."""
    main = git(stacked, 'rev-parse', 'main')
    assert invoke(stacked, 'resolve', 'main').output.strip() == main
    assert invoke(stacked, 'merge-base', 'main', 'feature').output.strip() == main
    assert invoke(stacked, 'parent', 'HEAD').output.strip() == 'HEAD^'
    assert invoke(stacked, 'parent', 'main').output.strip() == EMPTY_TREE_SHA


def test_branch(repo):
    """Branch name, or exit 1 when detached."""
    assert invoke(repo, 'branch').output == 'main\n'
    git(repo, 'checkout', '-q', '--detach')
    assert invoke(repo, 'branch').exit_code == 1


def test_cat(repo):
    """File content at a revision."""
    assert invoke(repo, 'cat', 'HEAD', 'README.md').output == 'hello\n'
    result = invoke(repo, 'cat', 'HEAD', 'missing.txt')
    assert result.exit_code == 1
    assert 'file not found: missing.txt' in result.output


def test_commit(repo):
    """Stages the named paths and prints the new id."""
    write(repo, 'a.txt', 'a\n')
    result = invoke(repo, 'commit', '-m', 'Add a', 'a.txt')
    assert result.exit_code == 0, result.output
    sha = result.output.strip()
    assert sha == git(repo, 'rev-parse', 'HEAD')
    assert git(repo, 'log', '-1', '--format=%s') == 'Add a'
