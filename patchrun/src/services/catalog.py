"""
Built-in pipelines: patch the tree, build or run against it, restore it.
"""

import logging
from typing import Dict, List

from pydantic import ValidationError

from patchrun.src.config import Settings
from patchrun.src.models.step import PipelineConfig, StepConfig, StepKind
from patchrun.src.services.errors import PipelineConfigError, UnknownPipelineError
from patchrun.src.services.pipeline_parser import load_pipeline_file

logger = logging.getLogger(__name__)

BUILD_PIPELINE = "build"
RUN_PIPELINE = "run"

def patch_steps(settings: Settings) -> List[StepConfig]:
    """
    Apply-check followed by apply, both run inside the working tree.
    The patch goes into the index as well so files it adds are tracked and the restore step removes them.
    """
    tree = settings.resolve(settings.tree_dir)
    patch = str(settings.resolve(settings.patch_file))

    return [
        StepConfig(
            name="apply-check",
            kind=StepKind.VALIDATE,
            program=settings.vcs_program,
            args=("apply", "--check", "--index", patch),
            cwd=tree,
            timeout=settings.step_timeout,
        ),
        StepConfig(
            name="apply",
            kind=StepKind.MUTATE,
            program=settings.vcs_program,
            args=("apply", "--index", patch),
            cwd=tree,
            timeout=settings.step_timeout,
        ),
    ]

def restore_step(settings: Settings) -> StepConfig:
    """Reset the index and the tree to HEAD, dropping modified and patch-added files."""
    return StepConfig(
        name="restore",
        kind=StepKind.RESTORE,
        program=settings.vcs_program,
        args=("reset", "--hard", "--quiet"),
        cwd=settings.resolve(settings.tree_dir),
        must_run=True,
        timeout=settings.step_timeout,
    )

def build_pipeline(settings: Settings) -> PipelineConfig:
    return PipelineConfig(
        name=BUILD_PIPELINE,
        steps=(
            *patch_steps(settings),
            StepConfig(
                name="build",
                program=settings.build_program,
                args=tuple(settings.build_args),
                cwd=settings.resolve(settings.project_dir),
                timeout=settings.step_timeout,
            ),
            restore_step(settings),
        ),
    )

def run_pipeline(settings: Settings) -> PipelineConfig:
    return PipelineConfig(
        name=RUN_PIPELINE,
        steps=(
            *patch_steps(settings),
            StepConfig(
                name="execute",
                program=settings.build_program,
                args=tuple(settings.run_args),
                cwd=settings.resolve(settings.project_dir),
                timeout=settings.step_timeout,
            ),
            StepConfig(
                name="check",
                program=settings.checker_program,
                args=tuple(settings.checker_args),
                cwd=settings.resolve(settings.checker_dir),
                timeout=settings.step_timeout,
            ),
            restore_step(settings),
        ),
    )

def build_catalog(settings: Settings) -> Dict[str, PipelineConfig]:
    """
    Build the pipeline catalog.
    Pipelines from the configured pipeline file replace built-ins of the same name.
    """
    try:
        catalog = {
            BUILD_PIPELINE: build_pipeline(settings),
            RUN_PIPELINE: run_pipeline(settings),
        }
    except ValidationError as e:
        raise PipelineConfigError(f"Invalid built-in pipeline: {e}")

    if settings.pipeline_file:
        path = settings.resolve(settings.pipeline_file)
        extra = load_pipeline_file(path, default_timeout=settings.step_timeout)
        for name in extra:
            if name in catalog:
                logger.info(f"Pipeline '{name}' overridden by {path}")
        catalog.update(extra)

    return catalog

def get_pipeline(catalog: Dict[str, PipelineConfig], name: str) -> PipelineConfig:
    try:
        return catalog[name]
    except KeyError:
        raise UnknownPipelineError(name, catalog.keys())

def describe_pipeline(pipeline: PipelineConfig, indent: str = "  ") -> str:
    lines = [pipeline.name]
    for i, step in enumerate(pipeline.steps):
        marker = " (must run)" if step.must_run else ""
        lines.append(f"{indent}{i}. {step.name} [{step.kind.value}]{marker}: "
                     f"{' '.join(step.command)} (in {step.cwd})")
    return "\n".join(lines)
