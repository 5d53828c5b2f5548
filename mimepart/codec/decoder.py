"""
mimepart/codec/decoder.py
-------------------------
Single-pass decoder for multipart bodies.

The caller supplies the boundary (it is not self-describing). The text is
scanned once, left to right, by a small state machine:

    SCANNING_FOR_BOUNDARY   look for "--" boundary; "--" after it closes
    PARSING_HEADER_FIELDS   name ":" body CRLF, unfolding CRLF WSP
    PARSING_PART_BODY       raw text up to CRLF "--" boundary
    DONE

A part whose Content-Type carries a boundary parameter has its body
decoded again with that boundary, so nested multiparts come back as
Nested(Multipart) instead of raw text.

Decoding is tolerant: bad header lines are skipped, transport padding
after a delimiter is ignored, and input that stops before the closing
delimiter yields the parts completed so far with `truncated` set. Only
resource limits (nesting depth, input size) and an invalid boundary raise.
"""

from enum import Enum, auto
from typing import Dict, Iterable, List, Optional, Union

from mimepart.codec.boundary import (
    BCHARS,
    BCHARS_NOSPACE,
    CRLF,
    HYPHENS,
    WSP,
    dash_boundary,
    delimiter,
    ensure_boundary,
    validate_boundary,
)
from mimepart.models.body_part import (
    CONTENT_TYPE,
    Body,
    BodyPart,
    Multipart,
    Nested,
    Payload,
    is_field_name_char,
)
from mimepart.utils.config import CONFIG
from mimepart.utils.errors import InputTooLargeError, RecursionLimitExceededError
from mimepart.utils.logging_utils import get_logger

logger = get_logger()

_BOUNDARY_PARAM = "boundary="
_MULTIPART_PREFIX = "multipart/"


class ParserState(Enum):
    SCANNING_FOR_BOUNDARY = auto()
    PARSING_HEADER_FIELDS = auto()
    PARSING_PART_BODY = auto()
    DONE = auto()


class DecodeResult(list):
    """
    The decoded body parts, in wire order.

    Compares equal to a plain list of the same parts. Also carries:
        truncated  input ended before the closing delimiter
        errors     non-fatal findings as "code:detail" strings
    """

    def __init__(
        self,
        parts: Iterable[BodyPart] = (),
        truncated: bool = False,
        errors: Optional[List[str]] = None,
    ):
        super().__init__(parts)
        self.truncated = truncated
        self.errors: List[str] = list(errors or [])

    def __repr__(self) -> str:
        return (
            f"DecodeResult({list.__repr__(self)}, "
            f"truncated={self.truncated!r}, errors={self.errors!r})"
        )


# ---------------------------------------------------------------------------
# Parameter helpers
# ---------------------------------------------------------------------------

def extract_boundary(field_body: str) -> Optional[str]:
    """
    Find a boundary parameter in a Content-Type field body.

    Every ";" starts a lookahead: skip WSP, match "boundary=" (any case),
    then take the run of boundary characters that follows. A quoted value
    may contain spaces and loses its quotes; an unquoted one stops at the
    first space. A failed lookahead consumes nothing, so scanning carries
    on from the next ";".

    Returns None if no parameter is present.
    """
    if not field_body:
        return None

    n = len(field_body)
    semi = field_body.find(";")
    while semi != -1:
        i = semi + 1
        while i < n and field_body[i] in WSP:
            i += 1

        if field_body[i:i + len(_BOUNDARY_PARAM)].lower() == _BOUNDARY_PARAM:
            i += len(_BOUNDARY_PARAM)
            if i < n and field_body[i] == '"':
                i += 1
                allowed = BCHARS
            else:
                allowed = BCHARS_NOSPACE
            end = i
            while end < n and field_body[end] in allowed:
                end += 1
            if end > i:
                return field_body[i:end]

        semi = field_body.find(";", semi + 1)

    return None


def multipart_subtype(field_body: str) -> Optional[str]:
    """'multipart/alternative; boundary=x' -> 'alternative'"""
    media_type = (field_body or "").split(";", 1)[0].strip()
    if media_type[:len(_MULTIPART_PREFIX)].lower() != _MULTIPART_PREFIX:
        return None
    return media_type[len(_MULTIPART_PREFIX):].strip() or None


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

class _MultipartScanner:
    """Decodes one nesting level; nested bodies get a scanner of their own."""

    def __init__(self, text: str, boundary: str, depth: int, max_depth: int):
        self.text = text
        self.boundary = boundary
        self.depth = depth
        self.max_depth = max_depth

        self._dash_boundary = dash_boundary(boundary)
        self._delimiter = delimiter(boundary)

        self.pos = 0
        self.state = ParserState.SCANNING_FOR_BOUNDARY
        self.opened = False
        self.closed = False
        self.result = DecodeResult()

        self._headers: Dict[str, str] = {}
        self._nested_boundary: Optional[str] = None
        self._nested_subtype: Optional[str] = None

    def run(self) -> DecodeResult:
        handlers = {
            ParserState.SCANNING_FOR_BOUNDARY: self._scan_for_boundary,
            ParserState.PARSING_HEADER_FIELDS: self._parse_header_fields,
            ParserState.PARSING_PART_BODY: self._parse_part_body,
        }
        while self.state is not ParserState.DONE:
            handlers[self.state]()

        if self.opened and not self.closed and not self.result.truncated:
            self._truncate()
        return self.result

    # -- helpers -----------------------------------------------------------

    def _is_delimiter_at(self, i: int) -> bool:
        """
        True if a whole delimiter line starts at i:

            "--" boundary ["--"] *WSP (CRLF / end of text)

        so "--" boundary is never matched as the prefix of a longer token,
        such as a nested boundary that starts with this one.
        """
        text = self.text
        n = len(text)
        if not text.startswith(self._dash_boundary, i):
            return False
        end = i + len(self._dash_boundary)
        if text.startswith(HYPHENS, end):
            end += len(HYPHENS)
        while end < n and text[end] in WSP:
            end += 1
        return end == n or text.startswith(CRLF, end)

    def _start_part(self) -> None:
        self._headers = {}
        self._nested_boundary = None
        self._nested_subtype = None

    def _finish_part(self, raw: Optional[str]) -> None:
        body: Optional[Body] = None
        if raw is not None and self._nested_boundary:
            body = self._decode_nested(raw)
        elif raw:
            body = Payload(raw)
        self.result.append(BodyPart(headers=self._headers, body=body))

    def _truncate(self) -> None:
        logger.warning(
            "Multipart input truncated at depth {} after {} complete part(s)",
            self.depth, len(self.result),
        )
        self.result.truncated = True
        self.result.errors.append("truncated")
        self.state = ParserState.DONE

    def _decode_nested(self, raw: str) -> Optional[Body]:
        boundary = self._nested_boundary
        ok, reason = validate_boundary(boundary)
        if not ok:
            logger.warning("Ignoring nested boundary {!r}: {}", boundary, reason)
            self.result.errors.append(f"invalid_nested_boundary:{boundary}")
            return Payload(raw) if raw else None

        logger.debug("Descending into nested multipart at depth {}", self.depth + 1)
        nested = _decode(raw, boundary, self.depth + 1, self.max_depth)
        if nested.truncated:
            self.result.truncated = True
        self.result.errors.extend(nested.errors)
        return Nested(Multipart.from_parts(nested, boundary=boundary, subtype=self._nested_subtype))

    # -- states ------------------------------------------------------------

    def _scan_for_boundary(self) -> None:
        text = self.text
        search = self.pos
        while True:
            found = text.find(self._dash_boundary, search)
            if found == -1:
                self.pos = len(text)
                self.state = ParserState.DONE
                return
            if self._is_delimiter_at(found):
                break
            search = found + 1

        self.opened = True
        pos = found + len(self._dash_boundary)

        if text.startswith(HYPHENS, pos):
            # close-delimiter; anything after it is epilogue
            self.closed = True
            self.pos = pos + len(HYPHENS)
            self.state = ParserState.DONE
            return

        # transport padding
        while pos < len(text) and text[pos] in WSP:
            pos += 1
        if text.startswith(CRLF, pos):
            pos += len(CRLF)

        self.pos = pos
        self._start_part()
        self.state = ParserState.PARSING_HEADER_FIELDS

    def _parse_header_fields(self) -> None:
        text = self.text
        n = len(text)

        while self.state is ParserState.PARSING_HEADER_FIELDS:
            pos = self.pos
            if pos >= n:
                self._truncate()
            elif text.startswith(CRLF, pos):
                # blank line ends the header block
                self.pos = pos + len(CRLF)
                self.state = ParserState.PARSING_PART_BODY
            elif self._is_delimiter_at(pos):
                # headers ran straight into the next delimiter: no body
                self._finish_part(None)
                self.state = ParserState.SCANNING_FOR_BOUNDARY
            else:
                self._parse_field(pos)

    def _parse_field(self, start: int) -> None:
        text = self.text
        n = len(text)

        colon = start
        while colon < n and is_field_name_char(text[colon]):
            colon += 1

        if colon >= n:
            self._truncate()
            return

        if colon == start or text[colon] != ":":
            eol = text.find(CRLF, start)
            bad_line = text[start:eol if eol != -1 else n]
            logger.warning("Skipping header line with invalid field name: {!r}", bad_line[:80])
            self.result.errors.append(f"invalid_field:{bad_line[:80]}")
            self.pos = self._skip_field(start)
            return

        name = text[start:colon]
        value, end, terminated = self._read_field_body(colon + 1)
        self._headers[name] = value

        if name.lower() == CONTENT_TYPE.lower():
            nested_boundary = extract_boundary(value)
            if nested_boundary:
                self._nested_boundary = nested_boundary
                self._nested_subtype = multipart_subtype(value)

        if terminated:
            self.pos = end
        else:
            self._truncate()

    def _read_field_body(self, start: int):
        """
        Read an unfolded field body starting just after the colon.

        Returns (value, position after the terminating CRLF, terminated).
        CRLF followed by WSP is folding: the CRLF is dropped and the WSP kept.
        """
        text = self.text
        n = len(text)

        # only the single separator space written after the colon
        i = start
        if i < n and text[i] == " ":
            i += 1

        chunks: List[str] = []
        segment = i
        while True:
            eol = text.find(CRLF, i)
            if eol == -1:
                chunks.append(text[segment:])
                return "".join(chunks), n, False
            chunks.append(text[segment:eol])
            nxt = eol + len(CRLF)
            if nxt < n and text[nxt] in WSP:
                segment = i = nxt
                continue
            return "".join(chunks), nxt, True

    def _skip_field(self, start: int) -> int:
        """Position just past the unfolded line starting at `start`."""
        text = self.text
        n = len(text)
        i = start
        while True:
            eol = text.find(CRLF, i)
            if eol == -1:
                return n
            nxt = eol + len(CRLF)
            if nxt < n and text[nxt] in WSP:
                i = nxt
                continue
            return nxt

    def _parse_part_body(self) -> None:
        text = self.text
        start = self.pos

        if self._is_delimiter_at(start):
            # the blank line was the delimiter's own CRLF
            self._finish_part(None)
            self.state = ParserState.SCANNING_FOR_BOUNDARY
            return

        search = start
        while True:
            found = text.find(self._delimiter, search)
            if found == -1:
                self._truncate()
                return
            if self._is_delimiter_at(found + len(CRLF)):
                break
            search = found + 1

        # leave pos on "--" so the scan state picks the delimiter up again
        self.pos = found + len(CRLF)
        self._finish_part(text[start:found])
        self.state = ParserState.SCANNING_FOR_BOUNDARY


def _decode(text: str, boundary: str, depth: int, max_depth: int) -> DecodeResult:
    if depth > max_depth:
        logger.error("Decoding stopped at nesting depth {} (limit {})", depth, max_depth)
        raise RecursionLimitExceededError(depth, max_depth)
    return _MultipartScanner(text, boundary, depth, max_depth).run()


def decode(
    text: Union[str, bytes],
    boundary: str,
    *,
    max_depth: Optional[int] = None,
    max_size: Optional[int] = None,
) -> DecodeResult:
    """
    Decode a multipart body delimited by `boundary` into its body parts.

    Bytes are read as ISO-8859-1 so every octet maps to one character.
    Empty input, or input without the boundary, gives an empty result.

    Raises:
        MalformedBoundaryError       boundary is not a valid RFC 2046 token
        InputTooLargeError           text is longer than max_size
        RecursionLimitExceededError  nesting deeper than max_depth
    """
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("iso-8859-1")
    elif not isinstance(text, str):
        raise TypeError(f"Cannot decode {type(text).__name__}; expected str or bytes")

    ensure_boundary(boundary)

    if max_depth is None:
        max_depth = CONFIG.MAX_NESTING_DEPTH
    if max_size is None:
        max_size = CONFIG.MAX_INPUT_SIZE

    if max_size and len(text) > max_size:
        logger.error("Refusing to decode {} characters (limit {})", len(text), max_size)
        raise InputTooLargeError(len(text), max_size)

    logger.debug("Decoding {} characters with boundary {!r}", len(text), boundary)
    return _decode(text, boundary, 0, max_depth)
