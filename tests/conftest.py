from pathlib import Path

import pytest

from ffengine.compiler import compile_config
from ffengine.loader import load_config
from tests.helpers import VALID_YAML

TESTDATA = Path(__file__).parent / "testdata"


@pytest.fixture
def flags_path() -> Path:
    return TESTDATA / "flags.yaml"


@pytest.fixture
def compiled(flags_path):
    return compile_config(load_config(flags_path))


@pytest.fixture
def config_file(tmp_path) -> Path:
    path = tmp_path / "flags.yaml"
    path.write_text(VALID_YAML, encoding="utf-8")
    return path
