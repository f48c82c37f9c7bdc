from typing import Iterator, Optional

from .filters import should_exclude_path

DIFF_HEADER = 'diff --git '
# Conflicted paths: combined diffs from diff-files, a marker line from diff-index
COMBINED_HEADERS = ('diff --cc ', 'diff --combined ')
UNMERGED_MARKER = '* Unmerged path '

# git's C-style quoting escapes (see quote_c_style in git's quote.c)
_C_ESCAPES = {
    'a': 0x07,
    'b': 0x08,
    't': 0x09,
    'n': 0x0a,
    'v': 0x0b,
    'f': 0x0c,
    'r': 0x0d,
    '"': 0x22,
    '\\': 0x5c,
}


def build_diff_cmd(
    plumbing: str = 'diff-tree',
    unified: int = 3,
    name_only: bool = False,
) -> list[str]:
    """Build a git diff plumbing command (without the leading 'git').

    Plumbing commands ignore user diff config (noprefix, external diff
    drivers, color), so the patch format stays stable.

    Args:
        plumbing: 'diff-tree', 'diff-index' or 'diff-files'
        unified: Number of context lines
        name_only: List NUL-separated paths instead of a patch
    """
    cmd = [plumbing]
    if plumbing == 'diff-tree':
        cmd.append('-r')
    if name_only:
        cmd.extend(['--name-only', '-z'])
    else:
        cmd.extend([
            '-p',
            f'-U{unified}',
            '--no-color',
            '--no-ext-diff',
            '--src-prefix=a/',
            '--dst-prefix=b/',
        ])
    cmd.append('--no-renames')
    return cmd


def split_range(reference: str) -> Optional[tuple[str, str, bool]]:
    """Split 'A..B' / 'A...B' into (A, B, three_dot).

    Returns None when the reference is not a two-endpoint range.
    """
    three_dot = '...' in reference
    if not three_dot and '..' not in reference:
        return None
    parts = reference.split('...' if three_dot else '..')
    if len(parts) != 2:
        return None
    return parts[0], parts[1], three_dot


def unquote_c_path(quoted: str) -> str:
    """Decode a git C-quoted path ("a/tab\\there") to text."""
    body = quoted[1:-1] if quoted.startswith('"') and quoted.endswith('"') else quoted
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != '\\' or i + 1 >= len(body):
            out.extend(ch.encode('utf-8'))
            i += 1
            continue
        nxt = body[i + 1]
        if nxt in _C_ESCAPES:
            out.append(_C_ESCAPES[nxt])
            i += 2
        elif body[i + 1:i + 4].isdigit():
            out.append(int(body[i + 1:i + 4], 8) & 0xff)
            i += 4
        else:
            out.extend(nxt.encode('utf-8'))
            i += 2
    return out.decode('utf-8', errors='replace')


def _take_quoted(text: str) -> tuple[str, str]:
    """Split a leading C-quoted token off `text`, returning (token, rest)."""
    i = 1
    while i < len(text):
        if text[i] == '\\':
            i += 2
            continue
        if text[i] == '"':
            break
        i += 1
    return text[:i + 1], text[i + 1:].lstrip(' ')


def _strip_prefix(path: str, prefix: str) -> str:
    return path[len(prefix):] if path.startswith(prefix) else path


def parse_diff_header(line: str) -> tuple[str, str]:
    """Extract (old_path, new_path) from a 'diff --git a/X b/Y' line."""
    rest = line[len(DIFF_HEADER):].rstrip('\n')

    if rest.startswith('"'):
        old, rest = _take_quoted(rest)
        old = unquote_c_path(old)
        new = unquote_c_path(rest) if rest.startswith('"') else rest
        return _strip_prefix(old, 'a/'), _strip_prefix(new, 'b/')

    if rest.endswith('"'):
        idx = rest.rfind(' "')
        return _strip_prefix(rest[:idx], 'a/'), _strip_prefix(unquote_c_path(rest[idx + 1:]), 'b/')

    # Without rename detection both sides name the same path: "a/X b/X"
    n = (len(rest) - 5) // 2
    old, new = rest[2:2 + n], rest[5 + n:]
    if rest.startswith('a/') and rest[2 + n:5 + n] == ' b/' and old == new:
        return old, new

    old, sep, new = rest.partition(' b/')
    if not sep:
        return _strip_prefix(rest, 'a/'), _strip_prefix(rest, 'a/')
    return _strip_prefix(old, 'a/'), new


def _split_lines(text: str) -> list[str]:
    """Split on LF only, keeping terminators; CR and form feeds are content."""
    parts = text.split('\n')
    lines = [part + '\n' for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def section_paths(line: str) -> Optional[tuple[str, str]]:
    """Paths named by a line that starts a file section, else None.

    Besides 'diff --git', conflicted paths start sections as
    'diff --cc <path>' / 'diff --combined <path>' (possibly C-quoted) or as
    a single '* Unmerged path <path>' line (never quoted).
    """
    if line.startswith(DIFF_HEADER):
        return parse_diff_header(line)
    for header in COMBINED_HEADERS:
        if line.startswith(header):
            path = line[len(header):].rstrip('\n')
            if path.startswith('"'):
                path = unquote_c_path(path)
            return path, path
    if line.startswith(UNMERGED_MARKER):
        path = line[len(UNMERGED_MARKER):].rstrip('\n')
        return path, path
    return None


def iter_file_sections(patch: str) -> Iterator[tuple[Optional[tuple[str, str]], list[str]]]:
    """Group patch lines by file.

    Yields ((old_path, new_path), lines) per file section; lines before the
    first file header are yielded with paths None.
    """
    paths = None
    lines: list[str] = []
    for line in _split_lines(patch):
        header = section_paths(line)
        if header:
            if lines:
                yield paths, lines
            paths = header
            lines = []
        lines.append(line)
    if lines:
        yield paths, lines


def filter_patch(patch: str) -> str:
    """Drop every line belonging to a file whose old or new path is excluded."""
    out = []
    for paths, lines in iter_file_sections(patch):
        if paths and any(should_exclude_path(p) for p in paths):
            continue
        out.extend(lines)
    return ''.join(out)


def split_nul(output: str) -> list[str]:
    """Split NUL-terminated git output (-z) into entries."""
    return [entry for entry in output.split('\0') if entry]
