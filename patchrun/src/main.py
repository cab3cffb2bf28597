"""
patchrun - Main entry point.
"""

import logging
import sys
from functools import partial
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from patchrun.src.config import Settings, get_settings
from patchrun.src.models.step import PipelineResult
from patchrun.src.services.catalog import (
    BUILD_PIPELINE,
    RUN_PIPELINE,
    build_catalog,
    describe_pipeline,
    get_pipeline,
)
from patchrun.src.services.errors import PatchRunError
from patchrun.src.services.executor import execute_step
from patchrun.src.services.sequencer import execute_pipeline

logger = logging.getLogger(__name__)

CONFIG_ERROR_EXIT_CODE = 2

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Apply a patch to a working tree, build or run against it, then restore the tree.",
)

def configure_logging(level: str):
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

@app.callback()
def cli(
    ctx: typer.Context,
    pipeline_file: Optional[Path] = typer.Option(
        None, "--pipeline-file", help="YAML file with additional pipelines"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    try:
        settings = get_settings()
    except ValidationError as e:
        typer.echo(f"Error: invalid settings: {e}", err=True)
        raise typer.Exit(code=CONFIG_ERROR_EXIT_CODE)

    if pipeline_file is not None:
        # Relative to where the command was run, not to project_dir
        settings = settings.model_copy(update={"pipeline_file": pipeline_file.resolve()})

    configure_logging("DEBUG" if verbose else settings.log_level)
    logger.debug(f"Project directory: {settings.resolve(settings.project_dir)}")
    logger.debug(f"Working tree: {settings.resolve(settings.tree_dir)}")
    ctx.obj = settings

def load_catalog(settings: Settings):
    try:
        return build_catalog(settings)
    except PatchRunError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=CONFIG_ERROR_EXIT_CODE)

def report(result: PipelineResult):
    """Print the outcome of a pipeline run."""
    failed = result.failed_step
    if failed is None:
        typer.echo(f"Pipeline '{result.pipeline}' succeeded")
    else:
        typer.echo(
            f"Pipeline '{result.pipeline}' failed at step '{failed.name}' "
            f"({failed.error_type}: {failed.error})",
            err=True,
        )
        if failed.diagnostics:
            typer.echo(failed.diagnostics, err=True)

    for warning in result.warnings:
        typer.echo(f"Warning: {warning}", err=True)

def run_named_pipeline(settings: Settings, name: str):
    catalog = load_catalog(settings)
    try:
        pipeline = get_pipeline(catalog, name)
    except PatchRunError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=CONFIG_ERROR_EXIT_CODE)

    executor = partial(execute_step, capture_output=settings.capture_output)
    result = execute_pipeline(pipeline, executor=executor)
    report(result)
    raise typer.Exit(code=result.exit_code)

@app.command("build")
def build(ctx: typer.Context):
    """Patch the tree, run the build tool, restore the tree."""
    run_named_pipeline(ctx.obj, BUILD_PIPELINE)

@app.command("run")
def run(ctx: typer.Context):
    """Patch the tree, run the build tool in run mode and the checker, restore the tree."""
    run_named_pipeline(ctx.obj, RUN_PIPELINE)

@app.command("pipeline")
def pipeline(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the pipeline to run"),
):
    """Run any pipeline from the catalog."""
    run_named_pipeline(ctx.obj, name)

@app.command("list")
def list_pipelines(ctx: typer.Context):
    """Show every pipeline and its steps."""
    catalog = load_catalog(ctx.obj)
    for name in sorted(catalog):
        typer.echo(describe_pipeline(catalog[name]))

def main():
    """Main entry point."""
    app()

if __name__ == "__main__":
    main()
