"""Thin CLI wrapper for slugpack.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from slugpack import __version__, output
from slugpack.config import Settings, get_settings, print_settings_json
from slugpack.types import ArtifactMode, BuildError

app = typer.Typer(
    name="slugpack",
    help="slugpack - compile an application directory into a deployable slug",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"slugpack version {__version__}")
        raise typer.Exit()


def configure_logging(settings: Settings) -> None:
    """Send log records to stderr at the configured level."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """slugpack - compile an application directory into a deployable slug."""


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings), soft_wrap=True)
    else:
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Remote:[/bold]")
        console.print(f"  Vendor URL:          {settings.vendor_url}")
        console.print(f"  JSNES repository:    {settings.jsnes_git_url}")
        console.print()
        console.print("[bold]Paths:[/bold]")
        console.print(f"  Cache directory:     {settings.cache_dir}")
        console.print(f"  Runtime scratch:     {settings.runtime_scratch_dir}")
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Artifact mode:       {settings.artifact_mode.value}")
        console.print(f"  Log level:           {settings.log_level}")
        console.print(f"  HTTP timeout:        {settings.http_timeout}")


@app.command()
def detect(
    build_dir: Annotated[
        Path,
        typer.Argument(help="Application directory", exists=True, file_okay=False),
    ],
) -> None:
    """Print the name of the pack that applies to BUILD_DIR."""
    from slugpack.packs import detect as detect_pack

    pack_cls = detect_pack(build_dir)
    if pack_cls is None:
        console.print("no")
        raise typer.Exit(code=1)
    console.print(pack_cls.name)


@app.command()
def release(
    build_dir: Annotated[
        Path,
        typer.Argument(help="Application directory", exists=True, file_okay=False),
    ],
) -> None:
    """Print release metadata (YAML) for BUILD_DIR."""
    from slugpack.builds.context import BuildContext
    from slugpack.packs import detect as detect_pack

    pack_cls = detect_pack(build_dir)
    if pack_cls is None:
        output.error(f"No language pack applies to {build_dir}")
        raise typer.Exit(code=1)

    with BuildContext.create(build_dir) as ctx:
        console.print(
            pack_cls(ctx).release(), end="", markup=False, highlight=False, soft_wrap=True
        )


@app.command("compile")
def compile_command(
    build_dir: Annotated[
        Path,
        typer.Argument(help="Application directory to compile in place"),
    ],
    cache_dir: Annotated[
        Path | None,
        typer.Argument(help="Cross-build cache directory"),
    ] = None,
    artifact_mode: Annotated[
        ArtifactMode | None,
        typer.Option("--artifact-mode", "-m", help="Format of the generated ROM index"),
    ] = None,
) -> None:
    """Compile BUILD_DIR into a slug, caching into CACHE_DIR."""
    from slugpack.pipeline import run

    settings = get_settings()
    if artifact_mode is not None:
        settings = settings.model_copy(update={"artifact_mode": artifact_mode})
    configure_logging(settings)

    try:
        pack = run(build_dir, cache_dir=cache_dir, settings=settings)
    except BuildError as e:
        output.error(str(e))
        raise typer.Exit(code=1) from None

    output.topic(f"Compiled {pack.name} app")


__all__ = ["app"]
