"""Tests for reforge.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from reforge.config import (
    ConfigError,
    GitHubConfig,
    LLMConfig,
    ReforgeConfig,
    SelectionConfig,
    load_config,
)


@pytest.fixture(autouse=True)
def _clear_token_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GH_TOKEN", raising=False)


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, ReforgeConfig)
    assert config.root == tmp_path.resolve()
    assert config.llm == LLMConfig()
    assert config.github == GitHubConfig()
    assert config.selection == SelectionConfig()
    assert config.output_dir is None


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".reforge.yml"
    config_file.write_text(
        """
llm:
  model: "gpt-4o"
  base_url: "http://localhost:12434/engines/v1"
  api_key: "test-key"
  temperature: 0.15
  max_tokens: 4096
  request_timeout: 120
github:
  api_base: "https://github.example.com/api/v3/repos/"
  token: "ghp_from_file"
  batch_size: 5
  max_retries: 0
  backoff: 0.1
  request_timeout: 10
selection:
  max_files: 12
output:
  directory: "dist"
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.llm == LLMConfig(
        model="gpt-4o",
        base_url="http://localhost:12434/engines/v1",
        api_key="test-key",
        temperature=0.15,
        max_tokens=4096,
        request_timeout=120.0,
    )
    assert config.github == GitHubConfig(
        api_base="https://github.example.com/api/v3/repos",
        token="ghp_from_file",
        batch_size=5,
        max_retries=0,
        backoff=0.1,
        request_timeout=10.0,
    )
    assert config.selection.max_files == 12
    assert config.output_dir == tmp_path.resolve() / "dist"


def test_token_falls_back_to_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GH_TOKEN", "ghp_env")

    assert load_config(tmp_path).github.token == "ghp_env"


def test_file_token_wins_over_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_env")
    (tmp_path / ".reforge.yml").write_text("github:\n  token: ghp_file\n", encoding="utf-8")

    assert load_config(tmp_path).github.token == "ghp_file"


def test_invalid_numbers_fall_back_to_defaults(tmp_path: Path) -> None:
    (tmp_path / ".reforge.yml").write_text(
        "github:\n  batch_size: 0\n  max_retries: -1\nselection:\n  max_files: many\n",
        encoding="utf-8",
    )

    config = load_config(tmp_path)

    assert config.github.batch_size == 20
    assert config.github.max_retries == 3
    assert config.selection.max_files == 50


def test_empty_file_uses_defaults(tmp_path: Path) -> None:
    (tmp_path / ".reforge.yml").write_text("\n", encoding="utf-8")

    assert load_config(tmp_path).github == GitHubConfig()


def test_malformed_yaml_raises(tmp_path: Path) -> None:
    (tmp_path / ".reforge.yml").write_text("llm: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_non_mapping_root_raises(tmp_path: Path) -> None:
    (tmp_path / ".reforge.yml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="mapping"):
        load_config(tmp_path)
