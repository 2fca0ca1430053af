"""Line-span helpers for declarations found by regex scanning.

Analyzers record where each type lives (1-based start and end line) so that a
later editing step can replace exactly one declaration body. Brace matching
therefore has to ignore braces that appear inside string literals, character
literals and comments.

Supported lexical forms:

* ``"..."`` and backtick strings with backslash escapes, or backtick strings
  without escapes (``raw_backticks=True``, Go raw strings)
* JavaScript regex literals ``/.../flags`` (``regex_literals=True``) where a
  ``/`` starts an operand rather than a division
* ``'...'`` as a string (default) or as a short character literal
  (``single_quote_strings=False``, needed for Rust lifetimes such as ``'a``)
* C# verbatim strings ``@"..."`` / ``@$"..."`` where ``""`` escapes a quote
* Rust raw strings ``r"..."``, ``r#"..."#`` and byte variants
* ``//`` line comments and ``/* */`` block comments, optionally nested

Known gaps: triple-quoted C# 11 raw string literals with unbalanced braces,
preprocessor directives that hide braces from the compiler, and regex literals
right after ``)`` (``if (x) /re/``), which read as division.
"""

from __future__ import annotations

from typing import Optional, Tuple

_IDENT_CHARS = frozenset("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_")
_MAX_CHAR_LITERAL = 12


def line_of_offset(text: str, offset: int) -> int:
    """Return the 1-based line containing ``offset``."""
    if not text or offset <= 0:
        return 1
    return text.count("\n", 0, min(offset, len(text))) + 1


def matching_brace_offset(
    text: str,
    open_offset: int,
    *,
    nested_comments: bool = False,
    single_quote_strings: bool = True,
    raw_backticks: bool = False,
    regex_literals: bool = False,
    brackets: str = "{}",
) -> Optional[int]:
    """Return the offset of the ``}`` closing the brace at ``open_offset``.

    ``brackets`` selects another pair, e.g. ``"()"`` for parameter lists.
    Returns ``None`` when the text ends before the depth returns to zero.
    """
    length = len(text)
    if open_offset < 0 or open_offset >= length:
        return None
    opener, closer = brackets[0], brackets[1]

    depth = 1
    i = open_offset + 1
    while i < length:
        char = text[i]
        nxt = text[i + 1] if i + 1 < length else ""

        if char == "/" and nxt == "/":
            newline = text.find("\n", i + 2)
            i = length if newline < 0 else newline + 1
            continue
        if char == "/" and nxt == "*":
            i = _skip_block_comment(text, i, nested_comments)
            continue
        if char == "/" and regex_literals and _starts_regex(text, i):
            i = _skip_regex(text, i)
            continue
        if char == "@" and (nxt == '"' or text.startswith('$"', i + 1)):
            i = _skip_verbatim_string(text, text.index('"', i))
            continue
        if char in "rb" and _starts_raw_string(text, i):
            i = _skip_raw_string(text, i)
            continue
        if char == "`" and raw_backticks:
            end = text.find("`", i + 1)
            i = length if end < 0 else end + 1
            continue
        if char == '"' or char == "`":
            i = _skip_quoted(text, i, char)
            continue
        if char == "'":
            if single_quote_strings:
                i = _skip_quoted(text, i, char)
            else:
                end = _char_literal_end(text, i)
                i = i + 1 if end is None else end + 1
            continue

        if char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def declaration_span(
    text: str,
    declaration_offset: int,
    *,
    stop_at_semicolon: bool = False,
    nested_comments: bool = False,
    single_quote_strings: bool = True,
    raw_backticks: bool = False,
    regex_literals: bool = False,
) -> Tuple[int, int]:
    """Return ``(start_line, end_line)`` of a brace-delimited declaration.

    The body is the first ``{`` at or after ``declaration_offset``. With
    ``stop_at_semicolon`` a ``;`` before that brace marks a bodiless
    declaration (``struct Unit;``, ``record Point(int X);``).
    """
    start_line = line_of_offset(text, declaration_offset)
    begin = max(declaration_offset, 0)
    open_brace = text.find("{", begin)
    if open_brace < 0:
        return start_line, start_line
    if stop_at_semicolon:
        semicolon = text.find(";", begin, open_brace)
        if semicolon >= 0:
            return start_line, start_line
    close_brace = matching_brace_offset(
        text,
        open_brace,
        nested_comments=nested_comments,
        single_quote_strings=single_quote_strings,
        raw_backticks=raw_backticks,
        regex_literals=regex_literals,
    )
    if close_brace is None:
        return start_line, start_line
    return start_line, line_of_offset(text, close_brace)


def indentation_span(
    text: str, declaration_offset: int, header_end: Optional[int] = None
) -> Tuple[int, int]:
    """Return ``(start_line, end_line)`` of an indentation-delimited block.

    ``header_end`` marks where the declaration header stops (the ``:`` of a
    Python ``class`` statement); continuation lines of a multi-line header
    are not mistaken for the end of the block.
    """
    start_line = line_of_offset(text, declaration_offset)
    lines = text.splitlines()
    if start_line > len(lines):
        return start_line, start_line

    header_line = lines[start_line - 1]
    indent = len(header_line) - len(header_line.lstrip())
    body_from = line_of_offset(text, header_end) if header_end is not None else start_line

    end_line = body_from
    for number in range(body_from + 1, len(lines) + 1):
        line = lines[number - 1]
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if len(line) - len(line.lstrip()) <= indent:
            break
        end_line = number
    return start_line, end_line


def _skip_block_comment(text: str, start: int, nested: bool) -> int:
    length = len(text)
    depth = 1
    i = start + 2
    while i < length:
        if text.startswith("*/", i):
            depth -= 1
            i += 2
            if depth == 0 or not nested:
                return i
            continue
        if nested and text.startswith("/*", i):
            depth += 1
            i += 2
            continue
        i += 1
    return length


def _skip_quoted(text: str, start: int, quote: str) -> int:
    length = len(text)
    i = start + 1
    while i < length:
        char = text[i]
        if char == "\\":
            i += 2
            continue
        if char == quote:
            return i + 1
        i += 1
    return length


# A / after one of these starts a regex literal; after ) ] } or a name it divides.
_REGEX_PRECEDERS = frozenset("(,=:[!&|?{;+-*%~^")
_REGEX_PRECEDING_WORDS = frozenset(
    "return typeof case in of instanceof void delete throw new yield await else do".split()
)


def _starts_regex(text: str, slash: int) -> bool:
    j = slash - 1
    while j >= 0 and text[j] in " \t":
        j -= 1
    if j < 0 or text[j] == "\n":
        return True
    if text[j] in _REGEX_PRECEDERS:
        return True
    if text[j] not in _IDENT_CHARS:
        return False
    word_end = j + 1
    while j >= 0 and text[j] in _IDENT_CHARS:
        j -= 1
    return text[j + 1 : word_end] in _REGEX_PRECEDING_WORDS


def _skip_regex(text: str, slash: int) -> int:
    length = len(text)
    in_class = False
    i = slash + 1
    while i < length:
        char = text[i]
        if char == "\n":
            return slash + 1
        if char == "\\":
            i += 2
            continue
        if char == "[":
            in_class = True
        elif char == "]":
            in_class = False
        elif char == "/" and not in_class:
            i += 1
            while i < length and text[i] in _IDENT_CHARS:
                i += 1
            return i
        i += 1
    return slash + 1


def _skip_verbatim_string(text: str, quote_offset: int) -> int:
    length = len(text)
    i = quote_offset + 1
    while i < length:
        if text[i] == '"':
            if i + 1 < length and text[i + 1] == '"':
                i += 2
                continue
            return i + 1
        i += 1
    return length


def _starts_raw_string(text: str, start: int) -> bool:
    if start > 0 and text[start - 1] in _IDENT_CHARS:
        return False
    i = start
    if text[i] == "b":
        i += 1
        if i >= len(text) or text[i] != "r":
            return False
    if text[i] != "r":
        return False
    i += 1
    while i < len(text) and text[i] == "#":
        i += 1
    return i < len(text) and text[i] == '"'


def _skip_raw_string(text: str, start: int) -> int:
    i = text.index("r", start) + 1
    hashes = 0
    while text[i] == "#":
        hashes += 1
        i += 1
    terminator = '"' + "#" * hashes
    end = text.find(terminator, i + 1)
    if end < 0:
        return len(text)
    return end + len(terminator)


def _char_literal_end(text: str, start: int) -> Optional[int]:
    length = len(text)
    i = start + 1
    if i >= length or text[i] in "'\n":
        return None
    if text[i] == "\\":
        limit = min(length, start + _MAX_CHAR_LITERAL)
        j = i + 2
        while j < limit:
            if text[j] == "'":
                return j
            if text[j] == "\n":
                return None
            j += 1
        return None
    if i + 1 < length and text[i + 1] == "'":
        return i + 1
    return None


__all__ = [
    "declaration_span",
    "indentation_span",
    "line_of_offset",
    "matching_brace_offset",
]
