import pytest

from losp.interpreter import Interpreter


@pytest.fixture
def interp():
    """Fresh interpreter with an empty global table."""
    return Interpreter()


@pytest.fixture(autouse=True)
def _default_config(monkeypatch):
    # Tests must not pick up settings from the developer's shell
    for var in ("LOSP_MAX_FRAMES", "LOSP_DISASM", "LOSP_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
