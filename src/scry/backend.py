"""VCS backend contract shared by all version-control implementations.

Callers (CLI commands, AI commit/review pipelines) only depend on
:class:`VcsBackend`; concrete backends such as :class:`scry.git.GitBackend`
translate it into repository queries.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


class VcsError(Exception):
    """Base class for all backend failures."""


class NotARepository(VcsError):
    """No repository could be discovered from the given path."""

    def __init__(self, path: str = ''):
        self.path = path
        super().__init__(f'not a repository: {path}' if path else 'not a repository')


class InvalidRef(VcsError):
    """A reference failed validation or does not resolve to a commit."""

    def __init__(self, reference: str, reason: str = ''):
        self.reference = reference
        super().__init__(reason or f'invalid reference: {reference}')


class FileNotFound(VcsError):
    """A path does not exist in the tree of the requested revision."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f'file not found: {path}')


class VcsOperationError(VcsError):
    """Any other failure, carrying a human-readable description."""


@dataclass(frozen=True)
class CommitInfo:
    """Presentation data for a single resolved commit."""
    commit_id: str
    change_id: Optional[str]
    message: str
    diff: str
    author: str
    date: str


@dataclass(frozen=True)
class StackedCommitInfo:
    """Lightweight record for one commit of a stack/range."""
    commit_id: str
    short_id: str
    change_id: Optional[str]
    summary: str


class VcsBackend(ABC):
    """Operations every version-control backend must provide.

    All reference arguments are plain text expressions; implementations
    validate them before handing them to the underlying tool.
    """

    @abstractmethod
    def get_commit(self, reference: str) -> CommitInfo:
        """Resolve `reference` and return its metadata and diff against its first parent."""

    @abstractmethod
    def get_working_tree_diff(self, staged: bool) -> str:
        """Diff HEAD against the index (`staged`), or the index against the working tree."""

    @abstractmethod
    def get_range_diff(self, from_ref: str, to_ref: str, three_dot: bool) -> str:
        """Diff `from_ref` (or its merge-base with `to_ref` when `three_dot`) against `to_ref`."""

    @abstractmethod
    def get_changed_files(self, reference: str) -> list[str]:
        """List files changed by a commit, or between the endpoints of an ``A..B`` range."""

    @abstractmethod
    def get_file_content_at_ref(self, reference: str, path: str) -> str:
        """Return the content of `path` at `reference`, decoded permissively."""

    @abstractmethod
    def get_current_branch(self) -> Optional[str]:
        """Return the checked-out branch name, or None when detached."""

    @abstractmethod
    def get_commit_log_for_fzf(self) -> str:
        """Return a colored one-line-per-commit log suited for fuzzy selection."""

    @abstractmethod
    def resolve_ref(self, reference: str) -> str:
        """Return the canonical commit id for `reference`."""

    @abstractmethod
    def get_working_tree_changed_files(self) -> list[str]:
        """Return modified, added and untracked paths (no ignored files, no submodules)."""

    @abstractmethod
    def get_merge_base(self, ref1: str, ref2: str) -> str:
        """Return the id of the nearest common ancestor of `ref1` and `ref2`."""

    @abstractmethod
    def working_copy_parent_ref(self) -> str:
        """Symbolic name for the commit the working copy is based on."""

    @abstractmethod
    def get_range_changed_files(self, from_ref: str, to_ref: str) -> list[str]:
        """List files changed between the trees of `from_ref` and `to_ref`."""

    @abstractmethod
    def get_parent_ref_or_empty(self, reference: str) -> str:
        """Return a parent reference expression, or the empty tree id for a root commit."""

    @abstractmethod
    def get_commits_in_range(self, from_ref: str, to_ref: str) -> list[StackedCommitInfo]:
        """Return non-empty commits in ``from_ref..to_ref``, oldest first."""

    @abstractmethod
    def name(self) -> str:
        """Backend identifier, e.g. ``'git'``."""
