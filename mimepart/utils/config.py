"""
Global configuration values for the multipart codec.
"""

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class CodecConfig:
    # RFC 2046 limit on boundary length
    MAX_BOUNDARY_LENGTH: int = 70
    DEFAULT_SUBTYPE: str = "mixed"

    # Resource limits applied to externally supplied text
    MAX_NESTING_DEPTH: int = 32
    MAX_INPUT_SIZE: int = 64 * 1024 * 1024   # characters

    # Reject payloads containing their own delimiter when encoding
    STRICT_ENCODING: bool = False

    LOG_LEVEL: str = os.environ.get("MIMEPART_LOG_LEVEL", "INFO").upper()


CONFIG = CodecConfig()
