import sys
from base64 import b64encode
from typing import Optional, TextIO


def osc52_sequence(text: str) -> str:
    """OSC 52 "set clipboard" escape sequence for `text` ('c' = clipboard selection)."""
    encoded = b64encode(text.encode('utf-8')).decode('ascii')
    return f'\x1b]52;c;{encoded}\x07'


def copy_osc52(text: str, stream: Optional[TextIO] = None) -> None:
    """Copy text to the system clipboard through the terminal emulator.

    Works over SSH and inside tmux (with `set-clipboard on`), since the
    terminal, not this process, owns the clipboard.
    """
    stream = stream or sys.stdout
    stream.write(osc52_sequence(text))
    stream.flush()
