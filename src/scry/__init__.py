"""git-scry: VCS backend layer that extracts filtered diffs, commit metadata and commit stacks."""

__version__ = "0.1.0"

from .backend import (
    CommitInfo,
    FileNotFound,
    InvalidRef,
    NotARepository,
    StackedCommitInfo,
    VcsBackend,
    VcsError,
    VcsOperationError,
)
from .cli import cli
from .clipboard import copy_osc52
from .color import should_use_color
from .diff import filter_patch, split_range
from .filters import should_exclude_path, validate_ref_format
from .git import EMPTY_TREE_SHA, GitBackend
from .timefmt import days_to_ymd, format_git_time, format_relative_time

__all__ = [
    "CommitInfo",
    "FileNotFound",
    "InvalidRef",
    "NotARepository",
    "StackedCommitInfo",
    "VcsBackend",
    "VcsError",
    "VcsOperationError",
    "cli",
    "copy_osc52",
    "should_use_color",
    "filter_patch",
    "split_range",
    "should_exclude_path",
    "validate_ref_format",
    "EMPTY_TREE_SHA",
    "GitBackend",
    "days_to_ymd",
    "format_git_time",
    "format_relative_time",
]
