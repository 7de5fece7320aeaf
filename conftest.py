import os

import pytest

from solorpg.config import ENV_PREFIX


@pytest.fixture(autouse=True)
def clean_engine_env(monkeypatch, tmp_path):
    """Isolate every test from SOLORPG_* variables and any local config file."""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key)
    monkeypatch.setenv(f"{ENV_PREFIX}CONFIG", str(tmp_path / "solorpg.json"))
    yield
