"""Tests for command line settings resolution."""

from __future__ import annotations

import json

import pytest

from toothbrush.cli import resolve_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("TOOTHBRUSH_HOST", "TOOTHBRUSH_PORT", "TOOTHBRUSH_META_DIR"):
        monkeypatch.delenv(name, raising=False)


def test_meta_dir_option_locates_config_file(tmp_path):
    (tmp_path / "config.json").write_text(json.dumps({"port": 9100}))
    settings = resolve_settings(meta_dir=tmp_path)
    assert settings.port == 9100
    assert settings.meta_dir == tmp_path


def test_explicit_config_wins_over_meta_dir(tmp_path):
    (tmp_path / "config.json").write_text(json.dumps({"port": 9100}))
    other = tmp_path / "other.json"
    other.write_text(json.dumps({"port": 9200}))
    settings = resolve_settings(meta_dir=tmp_path, config_path=other)
    assert settings.port == 9200


def test_options_override_config_file(tmp_path):
    (tmp_path / "config.json").write_text(json.dumps({"host": "filehost", "port": 9100}))
    settings = resolve_settings(host="clihost", port=9300, meta_dir=tmp_path)
    assert settings.base_url == "http://clihost:9300"
