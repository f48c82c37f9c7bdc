"""Input-only guards: diff path denylist and reference validation."""

from .backend import InvalidRef

# Lockfiles, matched by exact basename
EXCLUDED_FILES = frozenset({
    'package-lock.json',
    'yarn.lock',
    'pnpm-lock.yaml',
    'Cargo.lock',
})

# Matched anywhere in the repo-relative path
EXCLUDED_PATTERNS = ('node_modules/',)


def should_exclude_path(path: str) -> bool:
    """Whether a path's diff lines are left out of generated patches."""
    filename = path.rsplit('/', 1)[-1]
    if filename in EXCLUDED_FILES:
        return True
    return any(pattern in path for pattern in EXCLUDED_PATTERNS)


def validate_ref_format(reference: str) -> str:
    """Reject references that git could parse as an option.

    Returns:
        The trimmed reference

    Raises:
        InvalidRef: if the trimmed reference starts with '-'
    """
    trimmed = reference.strip()
    if trimmed.startswith('-'):
        raise InvalidRef(reference, f"references cannot start with '-': {reference}")
    return trimmed
