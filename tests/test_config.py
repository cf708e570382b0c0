from __future__ import annotations

import pytest

from studio.config import get_api_key, get_base_url, get_poll_settings, get_timeout, load_config
from wanx_client.models import PollSettings


def test_default_config_file_is_optional(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert load_config() == {}


def test_explicit_missing_config_is_an_error(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.yaml"))


def test_yaml_values(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "api:\n"
        "  base_url: https://dashscope-intl.aliyuncs.com\n"
        "  timeout: 30\n"
        "polling:\n"
        "  video:\n"
        "    interval: 5\n",
        encoding="utf-8",
    )

    config = load_config(str(path))

    assert get_base_url(config) == "https://dashscope-intl.aliyuncs.com"
    assert get_timeout(config) == 30.0
    assert get_poll_settings(config, "video") == PollSettings(max_attempts=100, interval=5.0)
    assert get_poll_settings(config, "image") == PollSettings(max_attempts=60, interval=2.0)


def test_api_key_prefers_environment(monkeypatch):
    monkeypatch.setenv("DASHSCOPE_API_KEY", "sk-env")
    assert get_api_key({"api": {"api_key": "sk-file"}}) == "sk-env"


def test_api_key_missing_or_placeholder(monkeypatch):
    monkeypatch.delenv("DASHSCOPE_API_KEY", raising=False)
    assert get_api_key({}) is None
    assert get_api_key({"api": {"api_key": "YOUR_DASHSCOPE_API_KEY"}}) is None
    assert get_api_key({"api": {"api_key": "sk-file"}}) == "sk-file"


@pytest.mark.parametrize("content", ["- a\n- b\n", "just a string\n"])
def test_non_mapping_config_is_rejected(tmp_path, content):
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError, match="must be a mapping"):
        load_config(str(path))
