"""Tests for pipeline parser."""

from pathlib import Path

import pytest
from patchrun.src.models.step import StepKind
from patchrun.src.services.pipeline_parser import (
    load_pipeline_file,
    parse_pipeline_config,
    parse_pipeline_dict,
)
from patchrun.src.services.errors import PipelineConfigError

BASE = Path("/work")

def test_valid_pipeline():
    config = """
pipelines:
  lint:
    steps:
      - name: apply-check
        kind: validate
        program: git
        args: [apply, --check, ../fix.patch]
        cwd: rust-src
      - name: apply
        kind: mutate
        program: git
        args: [apply, ../fix.patch]
        cwd: rust-src
      - name: clippy
        program: cargo
        args: [clippy]
        cwd: .
        timeout: 300
      - name: restore
        program: git
        args: [checkout, --, .]
        cwd: rust-src
        must_run: true
"""
    result = parse_pipeline_config(config, BASE)
    lint = result["lint"]
    assert lint.name == "lint"
    assert len(lint.steps) == 4
    assert lint.steps[0].kind == StepKind.VALIDATE
    assert lint.steps[0].cwd == BASE / "rust-src"
    assert lint.steps[2].args == ("clippy",)
    assert lint.steps[2].timeout == 300
    assert lint.steps[2].kind == StepKind.EXECUTE
    assert lint.restore_step.name == "restore"
    assert lint.restore_step.kind == StepKind.RESTORE

def test_missing_pipelines():
    with pytest.raises(PipelineConfigError, match="must have 'pipelines'"):
        parse_pipeline_config("name: Bad\n", BASE)

def test_missing_steps():
    config = """
pipelines:
  bad: {}
"""
    with pytest.raises(PipelineConfigError, match="must have 'steps'"):
        parse_pipeline_config(config, BASE)

def test_missing_step_program():
    config = """
pipelines:
  bad:
    steps:
      - name: restore
        cwd: rust-src
        must_run: true
"""
    with pytest.raises(PipelineConfigError, match="missing 'program'"):
        parse_pipeline_config(config, BASE)

def test_unknown_kind():
    config = """
pipelines:
  bad:
    steps:
      - name: restore
        kind: deploy
        program: git
        cwd: rust-src
        must_run: true
"""
    with pytest.raises(PipelineConfigError, match="'kind' must be one of"):
        parse_pipeline_config(config, BASE)

def test_restore_step_must_be_last():
    config = """
pipelines:
  bad:
    steps:
      - name: restore
        program: git
        cwd: rust-src
        must_run: true
      - name: build
        program: cargo
        cwd: .
"""
    with pytest.raises(PipelineConfigError, match="must be the last step"):
        parse_pipeline_config(config, BASE)

def test_missing_restore_step():
    config = """
pipelines:
  bad:
    steps:
      - name: build
        program: cargo
        cwd: .
"""
    with pytest.raises(PipelineConfigError, match="exactly one must-run step"):
        parse_pipeline_config(config, BASE)

def test_invalid_timeout():
    config = """
pipelines:
  bad:
    steps:
      - name: restore
        program: git
        cwd: rust-src
        must_run: true
        timeout: -1
"""
    with pytest.raises(PipelineConfigError, match="'timeout' must be a positive number"):
        parse_pipeline_config(config, BASE)

def test_invalid_yaml():
    with pytest.raises(PipelineConfigError, match="Invalid YAML"):
        parse_pipeline_config("pipelines: [unclosed", BASE)

def test_empty_config():
    with pytest.raises(PipelineConfigError, match="Empty"):
        parse_pipeline_config("", BASE)

def test_dict_parsing():
    config = {
        "pipelines": {
            "clean": {
                "steps": [
                    {"name": "restore", "program": "git", "args": ["checkout", "--", "."],
                     "cwd": "/abs/tree", "must_run": True}
                ]
            }
        }
    }
    result = parse_pipeline_dict(config, BASE, default_timeout=30)
    assert list(result) == ["clean"]
    step = result["clean"].restore_step
    assert step.cwd == Path("/abs/tree")
    assert step.timeout == 30

def test_load_pipeline_file_resolves_against_file_directory(tmp_path):
    path = tmp_path / "pipelines.yaml"
    path.write_text("""
pipelines:
  clean:
    steps:
      - name: restore
        program: git
        args: [checkout, --, .]
        cwd: rust-src
        must_run: true
""")
    result = load_pipeline_file(path)
    assert result["clean"].restore_step.cwd == tmp_path / "rust-src"

def test_load_missing_pipeline_file(tmp_path):
    with pytest.raises(PipelineConfigError, match="Cannot read pipeline file"):
        load_pipeline_file(tmp_path / "missing.yaml")
