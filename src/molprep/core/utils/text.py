"""Line clean-up shared by the text file readers."""

from typing import Optional

COMMENT_CHAR = "#"
ESCAPE_CHAR = "\\"


def normalize_line(line: str) -> Optional[str]:
    """
    Strip a ``#`` comment and surrounding white space from ``line``.

    A backslash makes the next character literal, so ``\\#`` survives.
    Returns None for lines with nothing left.
    """
    out = []
    escaped = False
    for char in line:
        if not escaped:
            if char == ESCAPE_CHAR:
                escaped = True
                continue
            if char == COMMENT_CHAR:
                break
        escaped = False
        out.append(char)
    cleaned = "".join(out).strip()
    return cleaned or None
