"""Unit tests for content stream tokenizing and text substitution."""

import pytest

from replacepdf.errors import InputError, MalformedStreamError
from replacepdf.stream_editor import (
    Atom,
    Hex,
    Literal,
    rebuild,
    replace_in_stream,
    substitute,
    text_shows,
    tokenize,
)


def test_tokenize_text_block():
    tokens = tokenize(b"BT /F1 12 Tf 72 720 Td (Hello) Tj ET")
    assert tokens == [
        Atom("BT"),
        Atom("/F1"),
        Atom("12"),
        Atom("Tf"),
        Atom("72"),
        Atom("720"),
        Atom("Td"),
        Literal("Hello"),
        Atom("Tj"),
        Atom("ET"),
    ]


def test_tokenize_accepts_str():
    assert tokenize("(Hi)Tj") == [Literal("Hi"), Atom("Tj")]


def test_tokenize_str_keeps_latin1_atoms():
    assert tokenize("/Caf\xe9 Do") == [Atom("/Caf\xe9"), Atom("Do")]


def test_tokenize_rejects_str_outside_latin1():
    with pytest.raises(InputError):
        tokenize("(a) Tj /Name€ Do")


def test_tokenize_adjacent_strings_without_whitespace():
    assert tokenize(b"(a)(b)<41>Tj") == [Literal("a"), Literal("b"), Hex("41"), Atom("Tj")]


@pytest.mark.parametrize(
    "raw,text",
    [
        (rb"(a \(b\) c)", "a (b) c"),
        (b"(a (b) c)", "a (b) c"),
        (rb"(a \( b)", "a ( b"),
        (rb"(a\\b)", "a\\b"),
        (rb"(\101\102)", "AB"),
        (rb"(tab\there)", "tab\there"),
        (b"(ab\\\ncd)", "abcd"),
        (rb"(\q)", "q"),
        (b"()", ""),
    ],
)
def test_literal_escapes(raw, text):
    assert tokenize(raw) == [Literal(text)]


def test_hex_string_keeps_digits_and_strips_whitespace():
    assert tokenize(b"<48 65\n6C6c> Tj") == [Hex("48656C6c"), Atom("Tj")]


def test_dictionary_delimiters_are_atoms():
    tokens = tokenize(b"/Span << /MCID 0 >> BDC")
    assert tokens == [
        Atom("/Span"),
        Atom("<<"),
        Atom("/MCID"),
        Atom("0"),
        Atom(">>"),
        Atom("BDC"),
    ]


def test_comments_are_dropped():
    assert tokenize(b"% drawn by (x\n(Hi) Tj") == [Literal("Hi"), Atom("Tj")]


def test_inline_image_data_is_one_atom():
    tokens = tokenize(b"q BI /W 1 /H 1 /BPC 8 /CS /G ID \xff) EI Q")
    assert tokens[10:] == [Atom("ID"), Atom("\xff)"), Atom("EI"), Atom("Q")]


@pytest.mark.parametrize(
    "raw",
    [
        b"(abc",
        b"BT (abc Tj ET",
        rb"(a \) Tj",
        b"<414243",
        b"<41 zz> Tj",
        b") Tj",
        b"> Tj",
        b"BI /W 1 ID \x00\x01",
    ],
)
def test_malformed_streams_raise(raw):
    with pytest.raises(MalformedStreamError):
        tokenize(raw)


def test_malformed_error_reports_offset():
    with pytest.raises(MalformedStreamError) as exc_info:
        tokenize(b"q (open")
    assert exc_info.value.offset == 2


def test_substitute_replaces_text_show_operand():
    tokens, count = substitute([Literal("Hello"), Atom("Tj")], "Hello", "Goodbye")
    assert tokens == [Literal("Goodbye"), Atom("Tj")]
    assert count == 1
    assert rebuild(tokens) == b"(Goodbye) Tj"


def test_substitute_only_touches_text_show_instructions():
    tokens = [Atom("/F1"), Literal("abc"), Atom("Tj"), Literal("abc"), Atom("Tf")]
    result, count = substitute(tokens, "abc", "xyz")
    assert count == 1
    assert result == [Atom("/F1"), Literal("xyz"), Atom("Tj"), Literal("abc"), Atom("Tf")]


def test_substitute_is_exact_match():
    tokens = [Literal("abc"), Atom("Tj")]
    result, count = substitute(tokens, "ab", "zz")
    assert count == 0
    assert result == tokens


def test_substitute_ignores_hex_and_trailing_literal():
    tokens = [Hex("616263"), Atom("Tj"), Literal("abc")]
    result, count = substitute(tokens, "abc", "x")
    assert count == 0
    assert result == tokens


def test_substitute_keeps_unmatched_tokens_identical():
    tokens = [Atom("BT"), Literal("keep"), Atom("Tj"), Literal("Hello"), Atom("Tj")]
    result, _ = substitute(tokens, "Hello", "Bye")
    assert result[0] is tokens[0]
    assert result[1] is tokens[1]


def test_substitute_with_same_text_is_idempotent():
    tokens = tokenize(b"BT (a) Tj (b) Tj (a) Tj (a) Tf ET")
    result, count = substitute(tokens, "a", "a")
    assert count == 2
    assert result == tokens
    assert tokenize(rebuild(result)) == tokens


def test_rebuild_escapes_parentheses_in_replacement():
    tokens, _ = substitute([Literal("x"), Atom("Tj")], "x", "a(b)")
    assert rebuild(tokens) == rb"(a\(b\)) Tj"


def test_rebuild_escapes_backslash_and_newlines():
    assert rebuild([Literal("a\\b\nc")]) == rb"(a\\b\nc)"


def test_rebuild_hex_and_atoms():
    assert rebuild([Atom("<<"), Atom("/MCID"), Atom("0"), Atom(">>"), Hex("48aB")]) == (
        b"<< /MCID 0 >> <48aB>"
    )


def test_rebuild_rejects_text_outside_latin1():
    with pytest.raises(InputError):
        rebuild([Literal("☃"), Atom("Tj")])


def test_rebuild_then_tokenize_preserves_program():
    raw = (
        b"q 1 0 0 1 72 720 cm\nBT /F1 12 Tf (Price \\(net\\)) Tj <00410042> Tj\n"
        b"[(A) -20 (B)] TJ ET\n/Span << /MCID 3 >> BDC EMC Q"
    )
    tokens = tokenize(raw)
    assert tokenize(rebuild(tokens)) == tokens


def test_replace_in_stream():
    raw = b"BT\n/F1 12 Tf\n72 720 Td\n(Hello) Tj\nET"
    new, count = replace_in_stream(raw, "Hello", "Goodbye")
    assert count == 1
    assert new == b"BT /F1 12 Tf 72 720 Td (Goodbye) Tj ET"


def test_array_form_text_is_not_replaced():
    new, count = replace_in_stream(b"[(Hello)] TJ", "Hello", "Bye")
    assert count == 0
    assert tokenize(new) == tokenize(b"[(Hello)] TJ")


def test_text_shows_lists_tj_operands():
    tokens = tokenize(b"BT (one) Tj <41> Tj (two) Tj (font) Tf ET")
    assert text_shows(tokens) == ["one", "two"]
