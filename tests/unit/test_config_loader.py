"""Tests for pipeline configuration loading."""

from pathlib import Path

import pytest

from crosscheck.matrix_action.config_loader import load_pipeline_file, select_pipelines
from crosscheck.matrix_action.errors import ConfigurationError

CONFIG = """
version: "1.0"
pipelines:
  - name: check-toolchains
    trigger:
      event: pull_request
      label: ready-to-merge
      paths: ["**.rs", "**/Cargo.toml"]
    matrix:
      axes:
        - name: toolchain
          values: [stable, nightly]
    env:
      CARGO_TERM_COLOR: always
    command: cargo +${{ matrix.toolchain }} check --all
  - name: check-platforms
    trigger:
      label: ready-to-merge
    matrix:
      axes:
        - name: platform
          values: [ubuntu-latest, windows-latest, macOS-latest]
    command: cargo check --all
"""


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write a valid configuration file."""
    path = tmp_path / "matrix.yaml"
    path.write_text(CONFIG)
    return path


def test_load_pipeline_file_valid(config_file: Path) -> None:
    """load_pipeline_file parses every pipeline."""
    pipeline_file = load_pipeline_file(config_file)

    assert [p.name for p in pipeline_file.pipelines] == [
        "check-toolchains",
        "check-platforms",
    ]
    toolchains = pipeline_file.pipelines[0]
    assert toolchains.trigger.label == "ready-to-merge"
    assert toolchains.trigger.paths == ("**.rs", "**/Cargo.toml")
    assert toolchains.matrix.axes[0].name == "toolchain"
    assert toolchains.matrix.axes[0].values == ("stable", "nightly")
    assert toolchains.env == {"CARGO_TERM_COLOR": "always"}
    assert toolchains.command == "cargo +${{ matrix.toolchain }} check --all"
    assert pipeline_file.pipelines[1].trigger.event == "pull_request"


def test_load_pipeline_file_not_found(tmp_path: Path) -> None:
    """A missing file is a configuration error."""
    with pytest.raises(ConfigurationError, match="not found"):
        load_pipeline_file(tmp_path / "missing.yaml")


def test_load_pipeline_file_invalid_yaml(tmp_path: Path) -> None:
    """Malformed YAML is a configuration error."""
    path = tmp_path / "matrix.yaml"
    path.write_text("invalid: yaml: content: [")

    with pytest.raises(ConfigurationError, match="Invalid YAML"):
        load_pipeline_file(path)


def test_load_pipeline_file_empty(tmp_path: Path) -> None:
    """An empty file is a configuration error."""
    path = tmp_path / "matrix.yaml"
    path.write_text("")

    with pytest.raises(ConfigurationError, match="Empty configuration file"):
        load_pipeline_file(path)


def test_load_pipeline_file_invalid_schema(tmp_path: Path) -> None:
    """Schema violations are configuration errors."""
    path = tmp_path / "matrix.yaml"
    path.write_text(
        """
pipelines:
  - name: check
    matrix:
      axes:
        - name: toolchain
          values: [stable]
"""
    )

    with pytest.raises(ConfigurationError, match="Invalid configuration schema"):
        load_pipeline_file(path)


def test_load_pipeline_file_unquoted_version(tmp_path: Path) -> None:
    """Bare version numbers are rejected instead of losing trailing zeros."""
    path = tmp_path / "matrix.yaml"
    path.write_text(
        """
pipelines:
  - name: msrv
    matrix:
      axes:
        - name: toolchain
          values: [1.70, 1.10]
    command: cargo +${{ matrix.toolchain }} check
"""
    )

    with pytest.raises(ConfigurationError, match="quote it in YAML"):
        load_pipeline_file(path)


def test_load_pipeline_file_duplicate_names(tmp_path: Path) -> None:
    """Pipeline names must be unique."""
    path = tmp_path / "matrix.yaml"
    path.write_text(
        """
pipelines:
  - name: check
    command: cargo check
  - name: check
    command: cargo test
"""
    )

    with pytest.raises(ConfigurationError, match="Duplicate pipeline names"):
        load_pipeline_file(path)


def test_select_pipelines(config_file: Path) -> None:
    """select_pipelines filters by name and keeps file order."""
    pipeline_file = load_pipeline_file(config_file)

    assert len(select_pipelines(pipeline_file)) == 2
    selected = select_pipelines(
        pipeline_file, ["check-platforms", "check-toolchains"]
    )
    assert [p.name for p in selected] == ["check-toolchains", "check-platforms"]


def test_select_pipelines_unknown(config_file: Path) -> None:
    """Selecting an undefined pipeline is a configuration error."""
    pipeline_file = load_pipeline_file(config_file)

    with pytest.raises(ConfigurationError, match="Unknown pipelines: nope"):
        select_pipelines(pipeline_file, ["nope"])
