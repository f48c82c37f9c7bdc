"""Test OSC 52 clipboard output."""

import io
from base64 import b64decode

from scry.clipboard import copy_osc52, osc52_sequence


def test_osc52_sequence():
    """Text is base64-encoded between the OSC 52 prefix and BEL."""
    assert osc52_sequence('hi') == '\x1b]52;c;aGk=\x07'


def test_osc52_sequence_utf8():
    """Non-ASCII text survives the round trip through base64."""
    seq = osc52_sequence('café ✓')
    payload = seq[len('\x1b]52;c;'):-1]
    assert b64decode(payload).decode('utf-8') == 'café ✓'


def test_copy_osc52_writes_to_stream():
    """The sequence is written to the given stream."""
    out = io.StringIO()
    copy_osc52('diff --git a/x b/x\n', out)
    assert out.getvalue() == osc52_sequence('diff --git a/x b/x\n')
