"""
mimepart/codec/boundary.py
--------------------------
Boundary tokens and the delimiter grammar of RFC 2046 section 5.1.1.

    boundary := 0*69<bchars> bcharsnospace
    bchars := bcharsnospace / " "
    bcharsnospace := DIGIT / ALPHA / "'" / "(" / ")" /
                     "+" / "_" / "," / "-" / "." /
                     "/" / ":" / "=" / "?"
"""

import random
import re
import string
from typing import Optional, Tuple

from mimepart.utils.config import CONFIG
from mimepart.utils.errors import MalformedBoundaryError
from mimepart.utils.logging_utils import get_logger

logger = get_logger()

CRLF = "\r\n"
HYPHENS = "--"
WSP = " \t"

BCHARS_NOSPACE = string.digits + string.ascii_uppercase + string.ascii_lowercase + "'()+_,-./:=?"
BCHARS = BCHARS_NOSPACE + " "

# Same alphabet as BCHARS, used for whole-token validation
BOUNDARY_CHAR_PATTERN = re.compile(r"^[0-9A-Za-z'()+_,\-./:=? ]{1,70}$")

_SYSTEM_RANDOM = random.SystemRandom()


def generate_boundary(rng: Optional[random.Random] = None) -> str:
    """
    Generate a random boundary token.

    The length is uniform in [1, 70]. Every character but the last is drawn
    from the full alphabet; the last never is a space, so no retry loop is
    needed. Collisions with caller content are improbable, not impossible.
    """
    rng = rng or _SYSTEM_RANDOM
    length = rng.randint(1, CONFIG.MAX_BOUNDARY_LENGTH)
    head = "".join(rng.choice(BCHARS) for _ in range(length - 1))
    token = head + rng.choice(BCHARS_NOSPACE)
    logger.debug("Generated boundary of length {}", len(token))
    return token


def validate_boundary(boundary: str) -> Tuple[bool, Optional[str]]:
    """
    Validate boundary string per RFC 2046.

    Returns (is_valid, error_message).
    """
    if not isinstance(boundary, str):
        return False, f"Boundary must be a string, got {type(boundary).__name__}"

    if not boundary:
        return False, "Boundary cannot be empty"

    if len(boundary) > CONFIG.MAX_BOUNDARY_LENGTH:
        return False, (
            f"Boundary exceeds maximum length of {CONFIG.MAX_BOUNDARY_LENGTH} "
            f"(got {len(boundary)})"
        )

    if boundary.endswith(" "):
        return False, "Boundary cannot end with a space"

    if not BOUNDARY_CHAR_PATTERN.match(boundary):
        invalid_chars = sorted(set(c for c in boundary if c not in BCHARS))
        return False, f"Boundary contains invalid characters: {invalid_chars}"

    return True, None


def ensure_boundary(boundary: str) -> str:
    """Return `boundary` unchanged, or raise MalformedBoundaryError."""
    ok, reason = validate_boundary(boundary)
    if not ok:
        logger.warning("Rejected boundary {!r}: {}", boundary, reason)
        raise MalformedBoundaryError(boundary, reason)
    return boundary


def dash_boundary(boundary: str) -> str:
    return HYPHENS + boundary


def delimiter(boundary: str) -> str:
    """Encapsulation delimiter that separates two body parts."""
    return CRLF + dash_boundary(boundary)


def close_delimiter(boundary: str) -> str:
    """Delimiter that ends the last body part."""
    return delimiter(boundary) + HYPHENS


def discard_text(text: str) -> str:
    """
    Collapse every CRLF in preamble/epilogue text to a single space so it
    cannot be read back as part of the delimiter structure.
    """
    return text.replace(CRLF, " ")
