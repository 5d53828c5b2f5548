"""
mimepart/utils/errors.py
------------------------
Exceptions raised by the multipart codec.

Only resource limits and invalid boundaries are fatal. Recoverable decode
problems (bad field names, truncated input) are reported on the
DecodeResult instead of being raised.
"""

from typing import Optional


class MultipartError(Exception):
    """Base class for every error raised by mimepart."""


class MalformedBoundaryError(MultipartError, ValueError):
    def __init__(self, boundary: object, reason: str):
        self.boundary = boundary
        self.reason = reason
        super().__init__(f"Malformed boundary {boundary!r}: {reason}")


class RecursionLimitExceededError(MultipartError):
    def __init__(self, depth: int, limit: int):
        self.depth = depth
        self.limit = limit
        super().__init__(f"Multipart nesting depth {depth} exceeds limit of {limit}")


class InputTooLargeError(MultipartError):
    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Input of {size} characters exceeds limit of {limit}")


class BoundaryCollisionError(MultipartError):
    """A payload or header value contains the delimiter that encloses it."""

    def __init__(self, boundary: str, where: Optional[str] = None):
        self.boundary = boundary
        self.where = where
        location = f" in {where}" if where else ""
        super().__init__(f"Delimiter --{boundary}{location} would end the body part early")
