"""
Pipeline YAML parser and validator.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional

from pydantic import ValidationError

from patchrun.src.models.step import PipelineConfig, StepConfig, StepKind
from patchrun.src.services.errors import PipelineConfigError

STEP_KINDS = [kind.value for kind in StepKind]

def load_pipeline_file(path: Path, default_timeout: Optional[float] = None) -> Dict[str, PipelineConfig]:
    """Load pipelines from a YAML file. Relative step directories resolve against the file's directory."""
    path = Path(path)
    try:
        content = path.read_text()
    except OSError as e:
        raise PipelineConfigError(f"Cannot read pipeline file {path}: {e}")

    return parse_pipeline_config(content, path.parent, default_timeout=default_timeout)

def parse_pipeline_config(
    yaml_content: str,
    base_dir: Path,
    default_timeout: Optional[float] = None,
) -> Dict[str, PipelineConfig]:
    """Parse pipeline YAML configuration from string."""
    try:
        config = yaml.safe_load(yaml_content)
    except yaml.YAMLError as e:
        raise PipelineConfigError(f"Invalid YAML: {e}")

    return validate_config(config, Path(base_dir), default_timeout)

def parse_pipeline_dict(
    config: Dict[str, Any],
    base_dir: Path,
    default_timeout: Optional[float] = None,
) -> Dict[str, PipelineConfig]:
    """Validate pipeline configuration from dict."""
    return validate_config(config, Path(base_dir), default_timeout)

def validate_config(
    config: Optional[Dict[str, Any]],
    base_dir: Path,
    default_timeout: Optional[float] = None,
) -> Dict[str, PipelineConfig]:
    """Validate the top-level structure and build every pipeline."""
    if not config:
        raise PipelineConfigError("Empty pipeline configuration")

    if not isinstance(config, dict):
        raise PipelineConfigError("Pipeline configuration must be a dictionary")

    if "pipelines" not in config:
        raise PipelineConfigError("Configuration must have 'pipelines' defined")

    pipelines = config["pipelines"]
    if not isinstance(pipelines, dict) or not pipelines:
        raise PipelineConfigError("'pipelines' must be a non-empty mapping of name to pipeline")

    return {
        str(name): validate_pipeline(str(name), pipeline, base_dir, default_timeout)
        for name, pipeline in pipelines.items()
    }

def validate_pipeline(
    name: str,
    pipeline: Any,
    base_dir: Path,
    default_timeout: Optional[float] = None,
) -> PipelineConfig:
    """Validate a single pipeline definition."""
    if not isinstance(pipeline, dict):
        raise PipelineConfigError(f"Pipeline '{name}' must be a dictionary")

    if "steps" not in pipeline:
        raise PipelineConfigError(f"Pipeline '{name}' must have 'steps' defined")

    steps = pipeline["steps"]
    if not isinstance(steps, list):
        raise PipelineConfigError(f"Pipeline '{name}' 'steps' must be a list")

    if len(steps) == 0:
        raise PipelineConfigError(f"Pipeline '{name}' must have at least one step")

    validated_steps = [
        validate_step(name, step, i, base_dir, default_timeout)
        for i, step in enumerate(steps)
    ]

    try:
        return PipelineConfig(name=name, steps=tuple(validated_steps))
    except ValidationError as e:
        # Surface the invariant message rather than pydantic's full report
        messages = "; ".join(error["msg"].removeprefix("Value error, ") for error in e.errors())
        raise PipelineConfigError(messages)

def validate_step(
    pipeline_name: str,
    step: Any,
    index: int,
    base_dir: Path,
    default_timeout: Optional[float] = None,
) -> StepConfig:
    """Validate a single pipeline step."""
    where = f"Pipeline '{pipeline_name}' step {index}"

    if not isinstance(step, dict):
        raise PipelineConfigError(f"{where} must be a dictionary")

    # Required fields
    for field in ("name", "program", "cwd"):
        if field not in step:
            raise PipelineConfigError(f"{where} missing '{field}'")

    # Validate types
    for field in ("name", "program", "cwd"):
        if not isinstance(step[field], str):
            raise PipelineConfigError(f"{where} '{field}' must be a string")

    args = step.get("args", [])
    if not isinstance(args, list):
        raise PipelineConfigError(f"{where} 'args' must be a list")

    for j, arg in enumerate(args):
        if not isinstance(arg, (str, int, float)) or isinstance(arg, bool):
            raise PipelineConfigError(f"{where} argument {j} must be a string")

    must_run = step.get("must_run", False)
    if not isinstance(must_run, bool):
        raise PipelineConfigError(f"{where} 'must_run' must be true or false")

    kind = step.get("kind", StepKind.RESTORE.value if must_run else StepKind.EXECUTE.value)
    if kind not in STEP_KINDS:
        raise PipelineConfigError(
            f"{where} 'kind' must be one of: {', '.join(STEP_KINDS)}"
        )

    timeout = step.get("timeout", default_timeout)
    if timeout is not None and (
        isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0
    ):
        raise PipelineConfigError(f"{where} 'timeout' must be a positive number")

    cwd = Path(step["cwd"]).expanduser()
    if not cwd.is_absolute():
        cwd = base_dir / cwd

    return StepConfig(
        name=step["name"],
        program=step["program"],
        args=tuple(str(arg) for arg in args),
        cwd=cwd,
        kind=StepKind(kind),
        must_run=must_run,
        timeout=timeout,
    )
