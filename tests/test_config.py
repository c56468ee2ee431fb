# tests/test_config.py
import importlib
import os

from catalog import config


def test_dotenv_file_fills_unset_settings(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("CATALOG_MAX_LIMIT=25\nCATALOG_STORAGE=memory\n")
    monkeypatch.delenv("CATALOG_MAX_LIMIT", raising=False)
    monkeypatch.delenv("CATALOG_STORAGE", raising=False)
    monkeypatch.chdir(tmp_path)
    try:
        importlib.reload(config)
        assert config.PAGINATION["MAX_LIMIT"] == 25
        assert config.STORAGE["BACKEND"] == "memory"
    finally:
        os.environ.pop("CATALOG_MAX_LIMIT", None)
        os.environ.pop("CATALOG_STORAGE", None)
        monkeypatch.undo()
        importlib.reload(config)
