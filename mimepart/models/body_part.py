"""
mimepart/models/body_part.py
----------------------------
In-memory model of a multipart body.

A Multipart is an ordered list of BodyPart plus the boundary that delimits
them. Each BodyPart has an insertion-ordered header mapping and at most one
body, which is either:
    Payload(text)        opaque content, emitted verbatim
    Nested(multipart)    another Multipart, encoded recursively

Setters return self so trees can be built fluently:

    mp = multipart("mixed").add_body_part(
        bodypart().set_type("text/plain").set_payload("hello")
    )
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

from mimepart.codec.boundary import discard_text, ensure_boundary, generate_boundary
from mimepart.utils.config import CONFIG

CONTENT_PREFIX = "Content-"

CONTENT_TYPE = "Content-Type"
CONTENT_TRANSFER_ENCODING = "Content-Transfer-Encoding"
CONTENT_ID = "Content-ID"
CONTENT_DESCRIPTION = "Content-Description"
CONTENT_LOCATION = "Content-Location"
CONTENT_DISPOSITION = "Content-Disposition"


def is_field_name_char(c: str) -> bool:
    # printable US-ASCII except ":"
    return "!" <= c <= "~" and c != ":"


def is_valid_field_name(name: str) -> bool:
    return isinstance(name, str) and bool(name) and all(is_field_name_char(c) for c in name)


@dataclass(frozen=True)
class Payload:
    text: str


@dataclass(frozen=True)
class Nested:
    multipart: "Multipart"


Body = Union[Payload, Nested]


@dataclass
class BodyPart:
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Body] = None

    # ------------------------------------------------------------------
    # Content-* setters
    # ------------------------------------------------------------------

    def _set(self, name: str, value: str) -> "BodyPart":
        if isinstance(value, str):
            self.headers[name] = value
        return self

    def set_type(self, content_type: str) -> "BodyPart":
        return self._set(CONTENT_TYPE, content_type)

    def set_transfer_encoding(self, encoding: str) -> "BodyPart":
        return self._set(CONTENT_TRANSFER_ENCODING, encoding)

    def set_id(self, content_id: str) -> "BodyPart":
        return self._set(CONTENT_ID, content_id)

    def set_description(self, description: str) -> "BodyPart":
        return self._set(CONTENT_DESCRIPTION, description)

    def set_location(self, location: str) -> "BodyPart":
        return self._set(CONTENT_LOCATION, location)

    def set_disposition(self, disposition: str) -> "BodyPart":
        return self._set(CONTENT_DISPOSITION, disposition)

    def set_field(self, name: str, value: str) -> "BodyPart":
        """
        Set any other header field. Fields without the Content- prefix are
        kept on the part but never written by the encoder.
        """
        if not is_valid_field_name(name):
            raise ValueError(f"Invalid header field name: {name!r}")
        return self._set(name, value)

    def get_field(self, name: str) -> Optional[str]:
        return self.headers.get(name)

    # ------------------------------------------------------------------
    # Body
    # ------------------------------------------------------------------

    def set_payload(self, payload: Union[str, "Multipart"]) -> "BodyPart":
        """
        Set the body to raw text or to a nested Multipart. Any other type is
        ignored; an empty string clears the body since it encodes the same
        way as no body at all.
        """
        if isinstance(payload, Multipart):
            self.body = Nested(payload)
        elif isinstance(payload, str):
            self.body = Payload(payload) if payload else None
        return self

    @property
    def payload(self) -> Optional[str]:
        return self.body.text if isinstance(self.body, Payload) else None

    @property
    def nested(self) -> Optional["Multipart"]:
        return self.body.multipart if isinstance(self.body, Nested) else None

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get(CONTENT_TYPE)


@dataclass(eq=False)
class Multipart:
    subtype: str = CONFIG.DEFAULT_SUBTYPE
    preamble: str = ""
    epilogue: str = ""
    boundary: str = ""
    parts: List[BodyPart] = field(default_factory=list)

    def __post_init__(self):
        if not isinstance(self.subtype, str):
            self.subtype = CONFIG.DEFAULT_SUBTYPE
        self.preamble = discard_text(self.preamble) if isinstance(self.preamble, str) else ""
        self.epilogue = discard_text(self.epilogue) if isinstance(self.epilogue, str) else ""
        if isinstance(self.boundary, str) and self.boundary:
            ensure_boundary(self.boundary)
        else:
            self.boundary = generate_boundary()
        parts = list(self.parts or [])
        self.parts = []
        for part in parts:
            self.add_body_part(part)

    @classmethod
    def from_parts(
        cls,
        parts: Iterable[BodyPart],
        boundary: str,
        subtype: Optional[str] = None,
    ) -> "Multipart":
        """Rebuild a Multipart around decoded parts."""
        return cls(subtype=subtype or CONFIG.DEFAULT_SUBTYPE, boundary=boundary, parts=list(parts))

    # Readers discard preamble and epilogue, so they take no part in equality
    def __eq__(self, other):
        if not isinstance(other, Multipart):
            return NotImplemented
        return (
            self.subtype == other.subtype
            and self.boundary == other.boundary
            and self.parts == other.parts
        )

    def add_body_part(self, part: BodyPart) -> "Multipart":
        if isinstance(part, BodyPart) and not any(p is part for p in self.parts):
            self.parts.append(part)
        return self

    def set_subtype(self, subtype: str) -> "Multipart":
        if isinstance(subtype, str):
            self.subtype = subtype
        return self

    def get_boundary(self) -> str:
        return self.boundary

    def set_boundary(self, boundary: str) -> "Multipart":
        if isinstance(boundary, str):
            self.boundary = ensure_boundary(boundary)
        return self

    def set_preamble(self, preamble: str) -> "Multipart":
        if isinstance(preamble, str):
            self.preamble = discard_text(preamble)
        return self

    def set_epilogue(self, epilogue: str) -> "Multipart":
        if isinstance(epilogue, str):
            self.epilogue = discard_text(epilogue)
        return self

    def to_string(self, **kwargs) -> str:
        from mimepart.codec.encoder import encode

        return encode(self, **kwargs)

    def __str__(self) -> str:
        return self.to_string()


def multipart(
    subtype: str = CONFIG.DEFAULT_SUBTYPE,
    preamble: Optional[str] = None,
    epilogue: Optional[str] = None,
) -> Multipart:
    """Shortcut for Multipart(subtype, preamble, epilogue)."""
    return Multipart(subtype=subtype, preamble=preamble, epilogue=epilogue)


def bodypart() -> BodyPart:
    return BodyPart()


mp = multipart
bp = bodypart
