import sys

# SGR codes used by the fzf log (yellow hash, gray age)
YELLOW = '33'
GRAY = '90'
RESET = '\x1b[0m'


def should_use_color(color_option: str) -> bool:
    """Determine if color should be used based on option and TTY status."""
    if color_option == 'always':
        return True
    elif color_option == 'never':
        return False
    else:  # auto
        return sys.stdout.isatty()


def ansi(text: str, code: str) -> str:
    """Wrap text in an SGR color sequence followed by a reset."""
    return f'\x1b[{code}m{text}{RESET}'


def strip_ansi(text: str) -> str:
    """Remove the SGR sequences produced by `ansi`."""
    out = []
    i = 0
    while i < len(text):
        if text.startswith('\x1b[', i):
            end = text.find('m', i)
            if end != -1:
                i = end + 1
                continue
        out.append(text[i])
        i += 1
    return ''.join(out)
