import pytest

from mimepart.codec.decoder import (
    DecodeResult,
    ParserState,
    decode,
    extract_boundary,
    multipart_subtype,
)
from mimepart.codec.encoder import encode
from mimepart.models.body_part import BodyPart, Multipart, Nested, Payload
from mimepart.utils.errors import (
    InputTooLargeError,
    MalformedBoundaryError,
    RecursionLimitExceededError,
)


def test_single_text_part():
    parts = decode("--B\r\nContent-Type: text/plain\r\n\r\nhello\r\n--B--", "B")
    assert len(parts) == 1
    assert parts[0].headers == {"Content-Type": "text/plain"}
    assert parts[0].body == Payload("hello")
    assert not parts.truncated
    assert parts.errors == []


def test_empty_input_gives_empty_result():
    result = decode("", "B")
    assert isinstance(result, DecodeResult)
    assert result == []
    assert not result.truncated


def test_input_without_boundary_gives_empty_result():
    result = decode("just some text\r\n--other\r\n", "B")
    assert result == []
    assert not result.truncated


def test_multiple_parts_in_order():
    text = (
        "--B\r\nContent-Type: text/plain\r\n\r\none"
        "\r\n--B\r\nContent-Type: text/html\r\n\r\n<b>two</b>"
        "\r\n--B\r\n\r\nthree"
        "\r\n--B--"
    )
    parts = decode(text, "B")
    assert [p.payload for p in parts] == ["one", "<b>two</b>", "three"]
    assert [p.content_type for p in parts] == ["text/plain", "text/html", None]


def test_preamble_and_epilogue_are_discarded():
    text = "preamble text\r\n--B\r\n\r\nbody\r\n--B--\r\nepilogue --B\r\n\r\nghost"
    parts = decode(text, "B")
    assert [p.payload for p in parts] == ["body"]


def test_transport_padding_after_delimiters_is_tolerated():
    text = "--B \t \r\nContent-Type: a/b\r\n\r\nx\r\n--B\t\r\n\r\ny\r\n--B--  \r\n"
    parts = decode(text, "B")
    assert [p.payload for p in parts] == ["x", "y"]
    assert parts[0].content_type == "a/b"


def test_folded_field_body_is_unfolded_keeping_whitespace():
    text = (
        "--B\r\n"
        "Content-Description: first\r\n second\r\n\tthird\r\n"
        "Content-Type: text/plain\r\n"
        "\r\nbody\r\n--B--"
    )
    part = decode(text, "B")[0]
    assert part.headers["Content-Description"] == "first second\tthird"
    assert part.content_type == "text/plain"


def test_empty_field_body_is_kept():
    part = decode("--B\r\nContent-ID:\r\nContent-Type: x/y\r\n\r\nz\r\n--B--", "B")[0]
    assert part.headers == {"Content-ID": "", "Content-Type": "x/y"}


def test_non_content_fields_are_preserved():
    part = decode("--B\r\nX-Custom: 1\r\n\r\nz\r\n--B--", "B")[0]
    assert part.headers == {"X-Custom": "1"}


def test_invalid_field_names_are_skipped():
    text = (
        "--B\r\n"
        "Bad Name: dropped\r\n continued\r\n"
        ": no name\r\n"
        "Content-Type: text/plain\r\n"
        "\r\nbody\r\n--B--"
    )
    result = decode(text, "B")
    assert result[0].headers == {"Content-Type": "text/plain"}
    assert result[0].payload == "body"
    assert result.errors == ["invalid_field:Bad Name: dropped", "invalid_field:: no name"]
    assert not result.truncated


def test_boundary_like_text_in_body_is_preserved():
    body = "line\r\n--notit\r\n--Bx\r\n--B-\r\n------------------\r\nend"
    parts = decode(f"--B\r\nContent-Type: text/plain\r\n\r\n{body}\r\n--B--", "B")
    assert parts[0].payload == body


def test_longer_nested_boundary_is_not_an_outer_delimiter():
    text = (
        "--B\r\n"
        'Content-Type: multipart/mixed; boundary="BB"\r\n'
        "\r\n"
        "--BB\r\n\r\ninner\r\n--BB--"
        "\r\n--B--"
    )
    part = decode(text, "B")[0]
    assert part.nested == Multipart.from_parts(
        [BodyPart(body=Payload("inner"))], boundary="BB", subtype="mixed"
    )


def test_header_only_parts_have_no_body():
    parts = decode("--B\r\nContent-Type: text/plain\r\n\r\n--B\r\nContent-ID: <2>\r\n--B--", "B")
    assert [p.headers for p in parts] == [{"Content-Type": "text/plain"}, {"Content-ID": "<2>"}]
    assert [p.body for p in parts] == [None, None]


def test_empty_part():
    parts = decode("--B\r\n\r\n--B--", "B")
    assert parts == [BodyPart()]


def test_nested_multipart_is_decoded_recursively():
    text = (
        "--outer\r\n"
        "Content-Type: multipart/alternative; boundary=inner\r\n"
        "\r\n"
        "--inner\r\nContent-Type: text/plain\r\n\r\nplain"
        "\r\n--inner\r\nContent-Type: text/html\r\n\r\n<p>html</p>"
        "\r\n--inner--"
        "\r\n--outer\r\nContent-Type: text/plain\r\n\r\nafter"
        "\r\n--outer--"
    )
    parts = decode(text, "outer")
    assert len(parts) == 2

    nested = parts[0].nested
    assert isinstance(parts[0].body, Nested)
    assert nested.boundary == "inner"
    assert nested.subtype == "alternative"
    assert [p.payload for p in nested.parts] == ["plain", "<p>html</p>"]
    assert parts[1].payload == "after"


def test_boundary_parameter_outside_content_type_is_ignored():
    text = (
        "--B\r\n"
        "Content-Description: see; boundary=X\r\n"
        "\r\n--X\r\n\r\nraw\r\n--X--"
        "\r\n--B--"
    )
    part = decode(text, "B")[0]
    assert part.payload == "--X\r\n\r\nraw\r\n--X--"


def test_content_type_name_is_matched_case_insensitively():
    text = "--B\r\ncontent-type: multipart/digest; boundary=X\r\n\r\n--X\r\n\r\nm\r\n--X--\r\n--B--"
    part = decode(text, "B")[0]
    assert part.nested.subtype == "digest"
    assert part.nested.parts[0].payload == "m"


def test_invalid_nested_boundary_keeps_raw_body():
    text = '--B\r\nContent-Type: multipart/mixed; boundary="ends "\r\n\r\nraw\r\n--B--'
    result = decode(text, "B")
    assert result[0].payload == "raw"
    assert result.errors == ["invalid_nested_boundary:ends "]


def _nest(depth):
    text = "--L0\r\n\r\nleaf\r\n--L0--"
    for level in range(1, depth + 1):
        text = (
            f"--L{level}\r\n"
            f'Content-Type: multipart/mixed; boundary="L{level - 1}"\r\n'
            f"\r\n{text}\r\n--L{level}--"
        )
    return text


def test_deep_nesting_within_limit():
    result = decode(_nest(5), "L5", max_depth=5)
    part = result[0]
    for _ in range(5):
        part = part.nested.parts[0]
    assert part.payload == "leaf"


def test_recursion_limit_is_enforced():
    with pytest.raises(RecursionLimitExceededError) as excinfo:
        decode(_nest(5), "L5", max_depth=4)
    assert excinfo.value.depth == 5
    assert excinfo.value.limit == 4


def test_truncated_body_drops_incomplete_part():
    text = "--B\r\n\r\none\r\n--B\r\nContent-Type: text/plain\r\n\r\nunfinished"
    result = decode(text, "B")
    assert [p.payload for p in result] == ["one"]
    assert result.truncated
    assert result.errors == ["truncated"]


def test_truncated_headers():
    result = decode("--B\r\nContent-Type: text/pl", "B")
    assert result == []
    assert result.truncated


def test_missing_close_delimiter_is_truncation():
    result = decode("--B\r\n\r\none\r\n--B", "B")
    assert [p.payload for p in result] == ["one"]
    assert result.truncated


def test_truncation_inside_nested_part_is_reported():
    text = (
        "--B\r\n"
        "Content-Type: multipart/mixed; boundary=N\r\n"
        "\r\n--N\r\n\r\ninner"
        "\r\n--B--"
    )
    result = decode(text, "B")
    assert len(result) == 1
    assert result[0].nested.parts == []
    assert result.truncated


def test_bytes_input_is_read_as_latin_1():
    result = decode(b"--B\r\n\r\n\xe9t\xe9\r\n--B--", "B")
    assert result[0].payload == "\xe9t\xe9"


def test_rejects_other_input_types():
    with pytest.raises(TypeError):
        decode(12, "B")


def test_rejects_malformed_boundary():
    with pytest.raises(MalformedBoundaryError):
        decode("--\r\n", "")
    with pytest.raises(MalformedBoundaryError):
        decode("anything", "trailing ")


def test_rejects_oversized_input():
    with pytest.raises(InputTooLargeError) as excinfo:
        decode("x" * 11, "B", max_size=10)
    assert excinfo.value.size == 11
    assert decode("x" * 10, "B", max_size=10) == []


def test_decode_result_repr_and_equality():
    result = DecodeResult([BodyPart()], truncated=True, errors=["truncated"])
    assert result == [BodyPart()]
    assert "truncated=True" in repr(result)


def test_parser_states():
    assert {s.name for s in ParserState} == {
        "SCANNING_FOR_BOUNDARY",
        "PARSING_HEADER_FIELDS",
        "PARSING_PART_BODY",
        "DONE",
    }


@pytest.mark.parametrize(
    "field_body, expected",
    [
        ('multipart/mixed; boundary="simple boundary"', "simple boundary"),
        ("multipart/mixed; boundary=gc0p4Jq0M2Yt08jU534c0p", "gc0p4Jq0M2Yt08jU534c0p"),
        ("multipart/mixed;boundary=abc; charset=x", "abc"),
        ("multipart/mixed;  \tBOUNDARY=Up", "Up"),
        ("multipart/mixed; charset=utf-8; boundary=second", "second"),
        ("multipart/mixed; boundary=unquoted stops", "unquoted"),
        ("multipart/mixed; xboundary=nope", None),
        ("multipart/mixed; boundary=", None),
        ("multipart/mixed", None),
        ("boundary=no-semicolon", None),
        ("", None),
    ],
)
def test_extract_boundary(field_body, expected):
    assert extract_boundary(field_body) == expected


@pytest.mark.parametrize(
    "field_body, expected",
    [
        ('multipart/alternative; boundary="x"', "alternative"),
        ("Multipart/Related", "Related"),
        ("text/plain; boundary=x", None),
        ("multipart/", None),
        ("", None),
    ],
)
def test_multipart_subtype(field_body, expected):
    assert multipart_subtype(field_body) == expected


@pytest.mark.parametrize("inner_boundary", ["B C", "B--x", "B-", "B tail"])
def test_nested_boundary_starting_with_outer_one(inner_boundary):
    inner = Multipart("mixed", boundary=inner_boundary)
    inner.add_body_part(BodyPart().set_type("text/plain").set_payload("deep"))
    outer = Multipart("mixed", boundary="B")
    outer.add_body_part(BodyPart().set_payload(inner))
    outer.add_body_part(BodyPart().set_type("text/plain").set_payload("after"))

    result = decode(encode(outer), "B")
    assert result == outer.parts
    assert not result.truncated
    assert result.errors == []
    assert result[0].nested.parts[0].payload == "deep"


def test_delimiter_followed_by_text_is_body_content():
    body = "--B trailing words\r\n--B-- not closed\r\n--B\rnot a line end"
    parts = decode(f"--B\r\nContent-Type: text/plain\r\n\r\n{body}\r\n--B--", "B")
    assert [p.payload for p in parts] == [body]
    assert not parts.truncated


def test_close_delimiter_with_padding_then_epilogue():
    parts = decode("--B\r\n\r\nx\r\n--B-- \t\r\nepilogue", "B")
    assert [p.payload for p in parts] == ["x"]
    assert not parts.truncated


def test_only_the_separator_space_is_dropped_from_field_bodies():
    text = "--B\r\nContent-Description:   indented\r\nContent-ID:\t<tab>\r\n\r\nx\r\n--B--"
    part = decode(text, "B")[0]
    assert part.headers == {"Content-Description": "  indented", "Content-ID": "\t<tab>"}


def test_leading_whitespace_in_field_values_round_trips():
    m = Multipart(boundary="B")
    m.add_body_part(BodyPart().set_description("  indented").set_type("text/plain").set_payload("x"))
    assert decode(encode(m), "B") == m.parts
