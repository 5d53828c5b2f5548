# tests/conftest.py

import random
import sys
from pathlib import Path

import pytest

# Add the project root to sys.path so `import mimepart` works without installing
ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from mimepart.models.body_part import BodyPart, Multipart  # noqa: E402


@pytest.fixture
def rng():
    return random.Random(20461)


@pytest.fixture
def mixed_multipart():
    """Two leaf parts and one nested alternative, all with fixed boundaries."""
    alternative = Multipart(subtype="alternative", boundary="inner-XYZ")
    alternative.add_body_part(BodyPart().set_type("text/plain").set_payload("plain body"))
    alternative.add_body_part(BodyPart().set_type("text/html").set_payload("<p>html body</p>"))

    outer = Multipart(subtype="mixed", boundary="outer-ABC")
    outer.add_body_part(
        BodyPart()
        .set_type("application/json")
        .set_id("<json@example>")
        .set_payload('{"a": 1}')
    )
    outer.add_body_part(BodyPart().set_payload(alternative))
    outer.add_body_part(
        BodyPart()
        .set_type("application/octet-stream")
        .set_disposition('attachment; filename="blob.bin"')
        .set_transfer_encoding("base64")
        .set_payload("AAECAwQ=")
    )
    return outer
