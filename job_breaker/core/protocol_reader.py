"""
Generator protocol reader.

The generator writes one directive per line on stdout:

    push_file: <bucket>,<filename>   upload <filename> to <bucket>
    error_messages: <text>           diagnostic, passed through untouched
    set_queue: <name>                route later tasks to <name>
    <anything else>                  a task payload

Directives are matched in that order. Task payloads may be written as a
double-quoted escaped string (one physical line for a multi-line document);
those are unescaped here. Blank lines are ignored.

Dependencies: re
System role: Line classification for subprocess mode
"""

import re
from collections.abc import Iterable, Iterator

from job_breaker.core.exceptions import ProtocolError
from job_breaker.core.models import LineKind, ProtocolLine

_DIRECTIVES = (
    (LineKind.PUSH_FILE, re.compile(r"^push_file\s*:\s*(?P<arg>.*)$")),
    (LineKind.ERROR_MESSAGE, re.compile(r"^error_messages\s*:")),
    (LineKind.SET_QUEUE, re.compile(r"^set_queue\s*:\s*(?P<arg>.*)$")),
)

_ESCAPE = re.compile(
    r'\\(?:u\{(?P<code>[0-9a-fA-F]{1,6})\}|u(?P<u4>[0-9a-fA-F]{4})|x(?P<hex>[0-9a-fA-F]{1,2})|(?P<char>.))'
    r'|(?P<quote>")',
    re.DOTALL,
)

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "f": "\f",
    "v": "\v",
    "b": "\b",
    "a": "\a",
    "e": "\x1b",
    "s": " ",
    "0": "\0",
    '"': '"',
    "'": "'",
    "\\": "\\",
    "/": "/",
    "#": "#",
}


def _replace_escape(match: re.Match) -> str:
    if match.group("quote"):
        raise ValueError("unescaped quote inside quoted payload")
    if match.group("code"):
        return chr(int(match.group("code"), 16))
    if match.group("u4"):
        return chr(int(match.group("u4"), 16))
    if match.group("hex"):
        return chr(int(match.group("hex"), 16))
    char = match.group("char")
    if char not in _SIMPLE_ESCAPES:
        raise ValueError(f"unknown escape sequence \\{char}")
    return _SIMPLE_ESCAPES[char]


def unescape_payload(line: str) -> str:
    """
    Reverse double-quoted string escaping.

    Accepts JSON string escapes plus the Ruby String#dump forms generators
    commonly emit (\\e, \\#, \\u{...}).

    Args:
        line: Payload including the surrounding quotes

    Returns:
        str: Unescaped payload

    Raises:
        ValueError: Unterminated string, stray quote or bad escape
    """
    if len(line) < 2 or not (line.startswith('"') and line.endswith('"')):
        raise ValueError("unterminated quoted payload")
    inner = line[1:-1]
    trailing_backslashes = len(inner) - len(inner.rstrip("\\"))
    if trailing_backslashes % 2:
        raise ValueError("unterminated quoted payload")

    text = _ESCAPE.sub(_replace_escape, inner)
    # \uXXXX pairs may encode astral characters as surrogates
    return text.encode("utf-16", "surrogatepass").decode("utf-16")


def classify_line(line: str, line_number: int) -> ProtocolLine | None:
    """
    Classify one generator line.

    Args:
        line: Line without its terminator
        line_number: 1-based position in the stream

    Returns:
        ProtocolLine, or None for a blank line

    Raises:
        ProtocolError: Malformed directive or quoted payload
    """
    if not line.strip():
        return None

    for kind, pattern in _DIRECTIVES:
        match = pattern.match(line)
        if not match:
            continue

        if kind is LineKind.PUSH_FILE:
            bucket, _, key = match.group("arg").partition(",")
            bucket, key = bucket.strip(), key.strip()
            if not bucket or not key:
                raise ProtocolError(
                    "push_file requires '<bucket>,<filename>'",
                    line_number=line_number,
                    line=line,
                )
            return ProtocolLine(kind=kind, line_number=line_number, bucket=bucket, key=key)

        if kind is LineKind.ERROR_MESSAGE:
            return ProtocolLine(kind=kind, line_number=line_number, text=line)

        queue_name = match.group("arg").strip()
        if not queue_name:
            raise ProtocolError(
                "set_queue requires a queue name",
                line_number=line_number,
                line=line,
            )
        return ProtocolLine(kind=kind, line_number=line_number, queue_name=queue_name)

    text = line
    if line.startswith('"'):
        try:
            text = unescape_payload(line)
        except ValueError as e:
            raise ProtocolError(
                f"Invalid quoted task payload: {e}",
                line_number=line_number,
                line=line,
            ) from e
    return ProtocolLine(kind=LineKind.TASK, line_number=line_number, text=text)


class ProtocolReader:
    """Iterate classified lines from a generator's output."""

    def __init__(self, lines: Iterable[str]) -> None:
        """
        Initialize reader.

        Args:
            lines: Raw output lines (terminators are stripped here too)
        """
        self._lines = lines
        self.lines_read = 0

    def __iter__(self) -> Iterator[ProtocolLine]:
        for line_number, raw in enumerate(self._lines, start=1):
            self.lines_read = line_number
            parsed = classify_line(raw.rstrip("\r\n"), line_number)
            if parsed is not None:
                yield parsed
