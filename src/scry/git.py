"""Git backend: implements `VcsBackend` by driving the `git` executable.

Every externally supplied reference is validated and resolved to a full
commit id before it reaches any other git command, so later invocations
only ever see hex ids.
"""

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from subprocess import run
from typing import Optional, Sequence, Union

from .backend import (
    CommitInfo,
    FileNotFound,
    InvalidRef,
    NotARepository,
    StackedCommitInfo,
    VcsBackend,
    VcsOperationError,
)
from .color import GRAY, YELLOW, ansi
from .diff import build_diff_cmd, filter_patch, split_nul, split_range
from .filters import validate_ref_format
from .timefmt import format_git_time, format_relative_time, parse_tz_offset

logger = logging.getLogger(__name__)

# Object id of the empty tree in SHA-1 repositories; GitBackend.empty_tree
# holds the id for the repository's own object format
EMPTY_TREE_SHA = '4b825dc642cb6eb9a060e54bf8d69288fbee4904'
SHORT_ID_LEN = 7

PathLike = Union[str, os.PathLike]


@dataclass(frozen=True)
class GitResult:
    code: int
    stdout: str
    stderr: str


@dataclass(frozen=True)
class Signature:
    name: str
    email: str
    seconds: int
    offset_minutes: int

    def __str__(self) -> str:
        return f'{self.name} <{self.email}>'


@dataclass(frozen=True)
class RawCommit:
    """Fields of a commit object as stored by git."""
    tree: str
    parents: tuple[str, ...]
    author: Signature
    committer: Signature
    message: str

    @property
    def summary(self) -> str:
        return self.message.lstrip().split('\n', 1)[0].rstrip()


def _decode(data: bytes) -> str:
    return data.decode('utf-8', errors='replace')


def run_git(
    args: Sequence[str],
    cwd: PathLike,
    input: Optional[str] = None,
    env: Optional[dict] = None,
) -> GitResult:
    """Run git in `cwd`, capturing bytes and decoding them permissively.

    Output is never newline-translated, so CRLF content survives intact.
    """
    cmd = ['git', '-c', 'core.quotepath=off', *args]
    logger.debug('%s (in %s)', ' '.join(cmd), cwd)
    run_env = dict(os.environ, GIT_LITERAL_PATHSPECS='1')
    if env:
        run_env.update(env)
    try:
        proc = run(
            cmd,
            cwd=cwd,
            input=input.encode('utf-8') if input is not None else None,
            capture_output=True,
            env=run_env,
        )
    except FileNotFoundError:
        raise VcsOperationError('git executable not found in PATH')
    return GitResult(proc.returncode, _decode(proc.stdout), _decode(proc.stderr))


def parse_signature(value: str) -> Signature:
    """Parse 'Name <email> 1700000000 +0100'."""
    ident, _, rest = value.rpartition('>')
    name, _, email = ident.partition('<')
    fields = rest.split()
    seconds = int(fields[0]) if fields and fields[0].lstrip('-').isdigit() else 0
    offset = parse_tz_offset(fields[1]) if len(fields) > 1 else 0
    return Signature(name.strip(), email.strip(), seconds, offset)


def parse_commit_object(text: str) -> RawCommit:
    """Parse `git cat-file commit` output.

    Multi-line headers (gpgsig, mergetag) continue on lines starting with a
    space and are skipped.
    """
    header, _, message = text.partition('\n\n')
    tree = ''
    parents = []
    author = committer = Signature('', '', 0, 0)
    for line in header.split('\n'):
        if line.startswith(' '):
            continue
        key, _, value = line.partition(' ')
        if key == 'tree':
            tree = value
        elif key == 'parent':
            parents.append(value)
        elif key == 'author':
            author = parse_signature(value)
        elif key == 'committer':
            committer = parse_signature(value)
    return RawCommit(tree, tuple(parents), author, committer, message)


class GitBackend(VcsBackend):
    """`VcsBackend` for a local git working tree."""

    def __init__(self, path: PathLike = '.'):
        """Discover the repository containing `path`, walking upward.

        Raises:
            NotARepository: if `path` is not inside a git working tree
        """
        start = Path(path)
        if start.is_file():
            start = start.parent
        if not start.is_dir():
            raise NotARepository(str(path))
        result = run_git(['rev-parse', '--show-toplevel'], cwd=start)
        if result.code != 0 or not result.stdout.strip():
            raise NotARepository(str(path))
        self.root = Path(result.stdout.strip())
        self.empty_tree = self._git(
            'hash-object', '-t', 'tree', '--stdin', input='', what='hash empty tree',
        ).stdout.strip()

    def __repr__(self):
        return f'GitBackend({str(self.root)!r})'

    def _git(
        self,
        *args: str,
        input: Optional[str] = None,
        env: Optional[dict] = None,
        check: bool = True,
        what: Optional[str] = None,
    ) -> GitResult:
        result = run_git(args, cwd=self.root, input=input, env=env)
        if check and result.code != 0:
            detail = result.stderr.strip() or f'git {args[0]} exited with status {result.code}'
            raise VcsOperationError(f'failed to {what or args[0]}: {detail}')
        return result

    # ------------------------------------------------------------------
    # Object access
    # ------------------------------------------------------------------

    def _resolve(self, reference: str) -> str:
        """Validate `reference` and peel it to a full commit id."""
        ref = validate_ref_format(reference)
        if not ref:
            raise InvalidRef(reference, 'empty reference')
        result = self._git('rev-parse', '--verify', '--quiet', f'{ref}^{{commit}}', check=False)
        sha = result.stdout.strip()
        if result.code != 0 or not sha:
            raise InvalidRef(ref)
        return sha

    def _head_sha(self) -> Optional[str]:
        """Commit id of HEAD, or None on an unborn branch."""
        result = self._git('rev-parse', '--verify', '--quiet', 'HEAD^{commit}', check=False)
        return result.stdout.strip() if result.code == 0 and result.stdout.strip() else None

    def _read_commit(self, sha: str) -> RawCommit:
        result = self._git('cat-file', 'commit', sha, what=f'read commit {sha}')
        return parse_commit_object(result.stdout)

    def _parent_or_empty(self, commit: RawCommit) -> str:
        return commit.parents[0] if commit.parents else self.empty_tree

    def _merge_base(self, sha1: str, sha2: str) -> str:
        result = self._git('merge-base', sha1, sha2, check=False)
        if result.code == 1 and not result.stderr.strip():
            raise VcsOperationError(
                f'failed to find merge base: no common ancestor between {sha1} and {sha2}'
            )
        if result.code != 0:
            raise VcsOperationError(f'failed to find merge base: {result.stderr.strip()}')
        return result.stdout.strip()

    def _config(self, key: str) -> Optional[str]:
        result = self._git('config', '--get', key, check=False)
        if result.code == 1:
            return None
        if result.code != 0:
            raise VcsOperationError(f'failed to get git config: {result.stderr.strip()}')
        return result.stdout.strip() or None

    # ------------------------------------------------------------------
    # Diffs
    # ------------------------------------------------------------------

    def _diff(self, plumbing: str, *revs: str) -> str:
        """Unified patch (3 lines context) with excluded paths removed."""
        result = self._git(*build_diff_cmd(plumbing), *revs, what='create diff')
        return filter_patch(result.stdout)

    def _changed_between(self, old: str, new: str) -> list[str]:
        result = self._git(*build_diff_cmd('diff-tree', name_only=True), old, new, what='create diff')
        return split_nul(result.stdout)

    def get_commit(self, reference: str) -> CommitInfo:
        sha = self._resolve(reference)
        commit = self._read_commit(sha)
        return CommitInfo(
            commit_id=sha,
            change_id=None,
            message=commit.message.rstrip('\n'),
            diff=self._diff('diff-tree', self._parent_or_empty(commit), sha),
            author=str(commit.author),
            date=format_git_time(commit.committer.seconds, commit.committer.offset_minutes),
        )

    def get_working_tree_diff(self, staged: bool) -> str:
        if staged:
            return self._diff('diff-index', '--cached', self._head_sha() or self.empty_tree)
        # Refresh stat info so touched-but-identical files don't show up as
        # empty diffs. Like `git diff`, this rewrites the index file (stat
        # data only, no staged content changes); exits non-zero when entries
        # need updating.
        self._git('update-index', '-q', '--refresh', check=False)
        return self._diff('diff-files')

    def get_range_diff(self, from_ref: str, to_ref: str, three_dot: bool) -> str:
        from_sha = self._resolve(from_ref)
        to_sha = self._resolve(to_ref)
        base = self._merge_base(from_sha, to_sha) if three_dot else from_sha
        return self._diff('diff-tree', base, to_sha)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def get_changed_files(self, reference: str) -> list[str]:
        reference = reference.strip()
        endpoints = split_range(reference)
        if endpoints:
            from_ref, to_ref, _ = endpoints
            # Like git, an omitted side of a range means HEAD
            return self.get_range_changed_files(from_ref or 'HEAD', to_ref or 'HEAD')

        sha = self._resolve(reference)
        return self._changed_between(self._parent_or_empty(self._read_commit(sha)), sha)

    def get_range_changed_files(self, from_ref: str, to_ref: str) -> list[str]:
        from_sha = self._resolve(from_ref)
        to_sha = self._resolve(to_ref)
        return self._changed_between(from_sha, to_sha)

    def get_file_content_at_ref(self, reference: str, path: PathLike) -> str:
        sha = self._resolve(reference)
        rel = Path(path).as_posix()
        if rel.startswith('./'):
            rel = rel[2:]

        listing = split_nul(self._git('ls-tree', '-z', sha, '--', rel, what='read tree').stdout)
        if not listing:
            raise FileNotFound(str(path))
        meta, _, entry_path = listing[0].partition('\t')
        fields = meta.split()
        if entry_path != rel or len(fields) != 3 or fields[1] != 'blob':
            raise FileNotFound(str(path))

        return self._git('cat-file', 'blob', fields[2], what=f'read {rel}').stdout

    def get_working_tree_changed_files(self) -> list[str]:
        result = self._git(
            'status',
            '--porcelain=v1',
            '-z',
            '--untracked-files=all',
            '--ignore-submodules=all',
            '--no-renames',
            what='get status',
        )
        # Entries are "XY <path>"
        return sorted({entry[3:] for entry in split_nul(result.stdout) if len(entry) > 3})

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    def resolve_ref(self, reference: str) -> str:
        return self._resolve(reference)

    def get_current_branch(self) -> Optional[str]:
        result = self._git('symbolic-ref', '--quiet', '--short', 'HEAD', check=False)
        if result.code == 0:
            return result.stdout.strip() or None
        if result.code == 1:
            # Detached HEAD
            return None
        raise VcsOperationError(f'failed to get HEAD: {result.stderr.strip()}')

    def get_merge_base(self, ref1: str, ref2: str) -> str:
        return self._merge_base(self._resolve(ref1), self._resolve(ref2))

    def working_copy_parent_ref(self) -> str:
        return 'HEAD'

    def get_parent_ref_or_empty(self, reference: str) -> str:
        ref = reference.strip()
        commit = self._read_commit(self._resolve(ref))
        if commit.parents:
            return f'{ref}^'
        return self.empty_tree

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def get_commit_log_for_fzf(self) -> str:
        head = self._head_sha()
        if head is None:
            raise VcsOperationError('failed to read log: HEAD does not point to a commit')
        result = self._git(
            'log',
            '--no-color',
            '--no-show-signature',
            '--format=%H%x00%ct%x00%s',
            head,
            what='read log',
        )
        now = int(time.time())
        lines = []
        for record in result.stdout.split('\n'):
            if not record:
                continue
            sha, _, rest = record.partition('\0')
            ctime, _, summary = rest.partition('\0')
            age = format_relative_time(now - int(ctime))
            lines.append(f'{ansi(sha[:SHORT_ID_LEN], YELLOW)} {summary} {ansi(age, GRAY)}\n')
        return ''.join(lines)

    def get_commits_in_range(self, from_ref: str, to_ref: str) -> list[StackedCommitInfo]:
        # Resolve both ends up front so bad input fails before walking
        from_sha = self._resolve(from_ref)
        to_sha = self._resolve(to_ref)

        walk = self._git('rev-list', '--topo-order', to_sha, f'^{from_sha}', what='walk commits')
        commits = []
        for sha in walk.stdout.split():
            commit = self._read_commit(sha)
            # Skip merges/allow-empty commits that change no files
            if not self._changed_between(self._parent_or_empty(commit), sha):
                continue
            commits.append(StackedCommitInfo(
                commit_id=sha,
                short_id=sha[:SHORT_ID_LEN],
                change_id=None,
                summary=commit.summary,
            ))

        # rev-list is newest first
        commits.reverse()
        return commits

    def name(self) -> str:
        return 'git'

    # ------------------------------------------------------------------
    # Staging and committing
    # ------------------------------------------------------------------

    def stage_files(self, paths: Sequence[PathLike]) -> None:
        """Stage `paths` (relative to the repository root).

        Every path is checked before anything is staged, and all paths go
        through a single `git update-index`, which gives up on the first bad
        path without writing, so the index is written once or not at all.
        Ignore rules do not apply to explicitly named files.
        """
        if not paths:
            return
        rel_paths = [Path(p).as_posix() for p in paths]
        for rel in rel_paths:
            full = self.root / rel
            if not (full.exists() or full.is_symlink()):
                raise VcsOperationError(f'failed to stage {rel}: no such file in working tree')
        self._git(
            'update-index', '--add', '--', *rel_paths,
            what=f'stage {", ".join(rel_paths)}',
        )

    def commit(self, message: str) -> str:
        """Commit the current index with HEAD as parent and return the new id."""
        name = self._config('user.name')
        if not name:
            raise VcsOperationError(
                'git user.name not configured. Run: git config user.name "Your Name"'
            )
        email = self._config('user.email')
        if not email:
            raise VcsOperationError(
                'git user.email not configured. Run: git config user.email "you@example.com"'
            )

        tree = self._git('write-tree', what='write tree').stdout.strip()
        parent = self._head_sha()

        args = ['commit-tree', '--no-gpg-sign', tree]
        if parent:
            args.extend(['-p', parent])
        identity = {
            'GIT_AUTHOR_NAME': name,
            'GIT_AUTHOR_EMAIL': email,
            'GIT_COMMITTER_NAME': name,
            'GIT_COMMITTER_EMAIL': email,
        }
        sha = self._git(*args, input=message, env=identity, what='create commit').stdout.strip()

        summary = message.lstrip().split('\n', 1)[0]
        self._git(
            'update-ref', '-m', f'commit: {summary}', 'HEAD', sha, parent or '',
            what='update HEAD',
        )
        logger.debug('created commit %s', sha)
        return sha
