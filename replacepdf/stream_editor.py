"""Direct PDF content stream editing: tokenizer and token-scoped text replacement."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Union

from .config import STREAM_ENCODING, TEXT_SHOW_OPERATOR
from .errors import InputError, MalformedStreamError


@dataclass(frozen=True)
class Literal:
    """A ``(...)`` string token with its escape sequences resolved."""

    text: str


@dataclass(frozen=True)
class Hex:
    """A ``<...>`` string token, kept as its raw hex digits."""

    digits: str


@dataclass(frozen=True)
class Atom:
    """Any other token: operators, names, numbers, ``<<``/``>>``."""

    text: str


Token = Union[Literal, Hex, Atom]

_WHITESPACE = b" \t\r\n\x00\x0c"
_DELIMITERS = _WHITESPACE + b"()<>%"
_HEX_DIGITS = b"0123456789abcdefABCDEF"

_ESCAPE_MAP = {
    ord("n"): ord("\n"),
    ord("r"): ord("\r"),
    ord("t"): ord("\t"),
    ord("b"): ord("\b"),
    ord("f"): ord("\f"),
    ord("\\"): ord("\\"),
    ord("("): ord("("),
    ord(")"): ord(")"),
}


def _read_literal(raw: bytes, i: int) -> tuple[str, int]:
    """Decode the literal string opening at ``raw[i]``.

    Unescaped parentheses nest; the string ends when the depth returns to
    zero.  Returns ``(text, index_after_closing_paren)``.
    """
    start = i
    n = len(raw)
    i += 1
    depth = 1
    result = bytearray()
    while i < n:
        b = raw[i]
        if b == 0x5C:  # backslash
            i += 1
            if i >= n:
                break
            nxt = raw[i]
            if nxt in _ESCAPE_MAP:
                result.append(_ESCAPE_MAP[nxt])
                i += 1
            elif 0x30 <= nxt <= 0x37:  # octal
                octal = chr(nxt)
                for _ in range(2):
                    if i + 1 < n and 0x30 <= raw[i + 1] <= 0x37:
                        i += 1
                        octal += chr(raw[i])
                    else:
                        break
                result.append(int(octal, 8) & 0xFF)
                i += 1
            elif nxt in (0x0D, 0x0A):  # line continuation
                i += 1
                if nxt == 0x0D and i < n and raw[i] == 0x0A:
                    i += 1
            else:
                result.append(nxt)
                i += 1
            continue
        if b == 0x28:
            depth += 1
        elif b == 0x29:
            depth -= 1
            if depth == 0:
                return bytes(result).decode(STREAM_ENCODING), i + 1
        result.append(b)
        i += 1
    raise MalformedStreamError("Unterminated literal string", start)


def _read_hex(raw: bytes, i: int) -> tuple[str, int]:
    """Collect the digits of the hex string opening at ``raw[i]``."""
    start = i
    n = len(raw)
    i += 1
    digits = bytearray()
    while i < n:
        b = raw[i]
        if b == 0x3E:  # >
            return digits.decode("ascii"), i + 1
        if b in _HEX_DIGITS:
            digits.append(b)
        elif b not in _WHITESPACE:
            raise MalformedStreamError(f"Invalid character {chr(b)!r} in hex string", i)
        i += 1
    raise MalformedStreamError("Unterminated hex string", start)


def _read_inline_data(raw: bytes, i: int) -> tuple[str, int]:
    """Capture the binary payload of an inline image (``BI ... ID <data> EI``).

    ``i`` points just past the ``ID`` operator.  Returns the payload and the
    index of the terminating ``EI``.
    """
    start = i
    n = len(raw)
    if i < n and raw[i] in _WHITESPACE:
        i += 1
    data_start = i
    while i < n:
        j = raw.find(b"EI", i)
        if j == -1:
            break
        before_ok = j == data_start or raw[j - 1] in _WHITESPACE
        after_ok = j + 2 >= n or raw[j + 2] in _DELIMITERS
        if before_ok and after_ok:
            end = j - 1 if j > data_start else j
            return raw[data_start:end].decode(STREAM_ENCODING), j
        i = j + 1
    raise MalformedStreamError("Inline image data without EI", start)


def tokenize(data: bytes | str) -> list[Token]:
    """Split a decoded content stream into ``Literal``/``Hex``/``Atom`` tokens.

    Whitespace separates tokens and comments are dropped.  Raises
    ``MalformedStreamError`` instead of returning a truncated token list when
    a string is left open or a closing delimiter has no opener.  ``str``
    input must hold one character per stream byte; anything else raises
    ``InputError``.
    """
    if isinstance(data, str):
        try:
            raw = data.encode(STREAM_ENCODING)
        except UnicodeEncodeError as exc:
            raise InputError(f"Stream text cannot be encoded in {STREAM_ENCODING}: {exc}") from exc
    else:
        raw = bytes(data)
    tokens: list[Token] = []
    i = 0
    n = len(raw)

    while i < n:
        b = raw[i]

        if b in _WHITESPACE:
            i += 1
            continue

        # Comment: skip to end of line
        if b == 0x25:
            while i < n and raw[i] not in (0x0D, 0x0A):
                i += 1
            continue

        if b == 0x28:
            text, i = _read_literal(raw, i)
            tokens.append(Literal(text))
            continue

        if b == 0x3C:
            if raw[i + 1 : i + 2] == b"<":
                tokens.append(Atom("<<"))
                i += 2
                continue
            digits, i = _read_hex(raw, i)
            tokens.append(Hex(digits))
            continue

        if b == 0x3E:
            if raw[i + 1 : i + 2] == b">":
                tokens.append(Atom(">>"))
                i += 2
                continue
            raise MalformedStreamError("Unexpected '>'", i)

        if b == 0x29:
            raise MalformedStreamError("Unbalanced ')'", i)

        start = i
        while i < n and raw[i] not in _DELIMITERS:
            i += 1
        atom = raw[start:i].decode(STREAM_ENCODING)
        tokens.append(Atom(atom))

        if atom == "ID":
            payload, i = _read_inline_data(raw, i)
            if payload:
                tokens.append(Atom(payload))

    return tokens


def _encode_literal(text: str) -> bytes:
    """Encode text as an escaped PDF literal string ``(...)``."""
    try:
        raw = text.encode(STREAM_ENCODING)
    except UnicodeEncodeError as exc:
        raise InputError(f"Cannot encode text in {STREAM_ENCODING}: {exc}") from exc

    escaped = bytearray()
    for b in raw:
        if b == 0x5C:  # backslash
            escaped.extend(b"\\\\")
        elif b == 0x28:  # (
            escaped.extend(b"\\(")
        elif b == 0x29:  # )
            escaped.extend(b"\\)")
        elif b == 0x0D:  # \r
            escaped.extend(b"\\r")
        elif b == 0x0A:  # \n
            escaped.extend(b"\\n")
        else:
            escaped.append(b)
    return b"(" + bytes(escaped) + b")"


def serialize_token(token: Token) -> bytes:
    """Render a token in its canonical surface form."""
    if isinstance(token, Literal):
        return _encode_literal(token.text)
    if isinstance(token, Hex):
        return b"<" + token.digits.encode("ascii") + b">"
    return token.text.encode(STREAM_ENCODING)


def rebuild(tokens: Sequence[Token]) -> bytes:
    """Join tokens back into stream bytes, one space between each.

    Original inter-token whitespace is not preserved.
    """
    return b" ".join(serialize_token(tok) for tok in tokens)


def _shows_text(tokens: Sequence[Token], i: int, operator: str) -> bool:
    """True if ``tokens[i]`` is a literal string consumed by the show-text operator."""
    return (
        isinstance(tokens[i], Literal)
        and i + 1 < len(tokens)
        and tokens[i + 1] == Atom(operator)
    )


def substitute(
    tokens: Sequence[Token],
    find_text: str,
    replace_text: str,
    operator: str = TEXT_SHOW_OPERATOR,
) -> tuple[list[Token], int]:
    """Replace the string operand of every ``(find_text) Tj`` instruction.

    Matching is exact equality on the decoded literal.  Literals used by any
    other operator (font names, marked-content tags, ...) are left alone.
    Returns the new token list and the number of instructions changed.
    """
    result: list[Token] = []
    count = 0
    for i, tok in enumerate(tokens):
        if _shows_text(tokens, i, operator) and tok.text == find_text:
            result.append(Literal(replace_text))
            count += 1
        else:
            result.append(tok)
    return result, count


def text_shows(tokens: Sequence[Token], operator: str = TEXT_SHOW_OPERATOR) -> list[str]:
    """List the strings drawn by show-text instructions, in stream order."""
    return [tok.text for i, tok in enumerate(tokens) if _shows_text(tokens, i, operator)]


def replace_in_stream(raw: bytes, find_text: str, replace_text: str) -> tuple[bytes, int]:
    """Tokenize *raw*, substitute matching instructions, and rebuild the bytes."""
    tokens, count = substitute(tokenize(raw), find_text, replace_text)
    return rebuild(tokens), count
