import os
import sys

import pytest

# Ensure the 'src' directory is in the python path so we can import stackpatch
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../src')))

from stackpatch.core.document import Document  # noqa: E402
from samples import COMPOSE_SAMPLE  # noqa: E402


@pytest.fixture
def compose_text() -> str:
    return COMPOSE_SAMPLE


@pytest.fixture
def compose_doc() -> Document:
    return Document.from_text(COMPOSE_SAMPLE)


@pytest.fixture
def compose_file(tmp_path):
    path = tmp_path / "podman-compose-dev.yaml"
    path.write_text(COMPOSE_SAMPLE, encoding="utf-8")
    return path
