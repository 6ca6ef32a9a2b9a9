"""Tests for gunicorn configuration."""
from __future__ import annotations

import importlib.util
import os
from pathlib import Path
from unittest.mock import patch

_CONF_PATH = Path(__file__).resolve().parents[1] / "gunicorn.conf.py"


def _load(name: str = "gunicorn_conf"):
    spec = importlib.util.spec_from_file_location(name, _CONF_PATH)
    mod = importlib.util.module_from_spec(spec)  # type: ignore[arg-type]
    spec.loader.exec_module(mod)  # type: ignore[union-attr]
    return mod


class TestGunicornConfig:
    def test_defaults(self) -> None:
        mod = _load()
        assert mod.bind.endswith(":8000")
        assert "uvicorn" in mod.worker_class
        assert mod.timeout == 30
        assert mod.proc_name == "subsync"
        assert mod.preload_app is False

    def test_env_overrides(self) -> None:
        with patch.dict(
            os.environ, {"GUNICORN_WORKERS": "4", "GUNICORN_TIMEOUT": "10"}
        ):
            mod = _load("gunicorn_conf_custom")
        assert mod.workers == 4
        assert mod.timeout == 10
