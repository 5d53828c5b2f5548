"""
mimepart/codec/encoder.py
-------------------------
Serialize a Multipart tree to wire text.

Layout produced for a multipart with boundary B:

    [preamble CRLF] "--B" CRLF part *(CRLF "--B" CRLF part) CRLF "--B--" [CRLF epilogue]

where each part is its Content-* header lines followed, if it has a body,
by a blank line and the body. Nested multiparts get their Content-Type
rewritten to carry their own boundary before the headers are written.
Transport padding is never emitted.
"""

from typing import List, Optional

from mimepart.codec.boundary import CRLF, close_delimiter, dash_boundary, delimiter
from mimepart.models.body_part import (
    CONTENT_PREFIX,
    CONTENT_TYPE,
    BodyPart,
    Multipart,
    Nested,
    Payload,
)
from mimepart.utils.config import CONFIG
from mimepart.utils.errors import BoundaryCollisionError, RecursionLimitExceededError
from mimepart.utils.logging_utils import get_logger

logger = get_logger()


def nested_content_type(nested: Multipart) -> str:
    return f'multipart/{nested.subtype}; boundary="{nested.boundary}"'


def _check_collision(text: str, boundary: str, where: str) -> None:
    if dash_boundary(boundary) in text:
        logger.error("Delimiter --{} found in {}", boundary, where)
        raise BoundaryCollisionError(boundary, where)


def encode_part(
    part: BodyPart,
    enclosing_boundary: Optional[str] = None,
    *,
    strict: bool = False,
    max_depth: int = CONFIG.MAX_NESTING_DEPTH,
    _depth: int = 0,
) -> str:
    """
    Serialize one body part: Content-* header lines, then a blank line and
    the body if there is one.

    With strict=True, header values and payloads are checked against the
    enclosing boundary and BoundaryCollisionError is raised on a match.
    """
    body = part.body

    if isinstance(body, Nested):
        # the only mutation of caller data
        part.headers[CONTENT_TYPE] = nested_content_type(body.multipart)

    lines: List[str] = []
    for name, value in part.headers.items():
        if not name.startswith(CONTENT_PREFIX) or not isinstance(value, str) or not value:
            continue
        if strict and enclosing_boundary:
            _check_collision(value, enclosing_boundary, f"header {name}")
        lines.append(f"{name}: {value}{CRLF}")
    entity_headers = "".join(lines)

    if isinstance(body, Nested):
        inner = _encode(body.multipart, strict=strict, max_depth=max_depth, depth=_depth + 1)
        if strict and enclosing_boundary:
            _check_collision(inner, enclosing_boundary, "nested multipart")
        return entity_headers + CRLF + inner

    if isinstance(body, Payload) and isinstance(body.text, str) and body.text:
        if strict and enclosing_boundary:
            _check_collision(body.text, enclosing_boundary, "payload")
        return entity_headers + CRLF + body.text

    return entity_headers


def _encode(multipart: Multipart, *, strict: bool, max_depth: int, depth: int) -> str:
    if depth > max_depth:
        logger.error("Encoding stopped at nesting depth {} (limit {})", depth, max_depth)
        raise RecursionLimitExceededError(depth, max_depth)

    boundary = multipart.boundary
    encapsulation = delimiter(boundary) + CRLF

    multipart_body = encapsulation.join(
        encode_part(part, boundary, strict=strict, max_depth=max_depth, _depth=depth)
        for part in multipart.parts
    )

    preamble = multipart.preamble + CRLF if multipart.preamble else ""
    epilogue = CRLF + multipart.epilogue if multipart.epilogue else ""

    return (
        preamble
        + dash_boundary(boundary) + CRLF
        + multipart_body
        + close_delimiter(boundary)
        + epilogue
    )


def encode(
    multipart: Multipart,
    *,
    strict: Optional[bool] = None,
    max_depth: Optional[int] = None,
) -> str:
    """
    Serialize `multipart` to its wire form.

    Encoding does not validate payloads unless strict is set (defaults to
    CONFIG.STRICT_ENCODING). Trees nested deeper than max_depth, including
    cyclic ones, raise RecursionLimitExceededError.
    """
    if strict is None:
        strict = CONFIG.STRICT_ENCODING
    if max_depth is None:
        max_depth = CONFIG.MAX_NESTING_DEPTH
    return _encode(multipart, strict=strict, max_depth=max_depth, depth=0)
