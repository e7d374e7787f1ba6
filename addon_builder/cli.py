"""Thin CLI wrapper for addon_builder.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from addon_builder import __version__
from addon_builder.config import Settings, get_settings, print_settings_json
from addon_builder.errors import BuilderError
from addon_builder.models import BuildRequest
from addon_builder.orchestrator import run_build

app = typer.Typer(
    name="addon-build",
    help="Add-on build environment - build, tag and push multi-arch Docker images",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"addon-build-env version {__version__}")
        raise typer.Exit()


def configure_logging(settings: Settings) -> None:
    """Send log records through Rich at the configured level."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def parse_build_args(values: list[str] | None) -> dict[str, str]:
    """Parse repeated ``KEY=VALUE`` options into a mapping.

    Raises:
        typer.BadParameter: If an entry has no ``=`` or an empty key.
    """
    build_args: dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(
                f"Expected KEY=VALUE, got {item!r}", param_hint="--arg"
            )
        build_args[key] = value
    return build_args


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
    """Add-on build environment - build, tag and push multi-arch Docker images."""


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
        console.print(print_settings_json(settings))
        return

    log_dir_display = str(settings.log_dir) if settings.log_dir else "(disabled)"
    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Tools:[/bold]")
    console.print(f"  Docker client:       {settings.docker_binary}")
    console.print(
        f"  Docker daemon:       {settings.dockerd_binary} "
        f"{' '.join(settings.dockerd_args)}"
    )
    console.print(f"  Git:                 {settings.git_binary}")
    console.print()
    console.print("[bold]Cross compile:[/bold]")
    console.print(f"  binfmt_misc:         {settings.binfmt_misc_dir}")
    console.print(f"  Handlers:            {', '.join(settings.binfmt_handlers)}")
    console.print()
    console.print("[bold]Timeouts (seconds):[/bold]")
    console.print(f"  Daemon timeout:      {settings.daemon_timeout}")
    console.print(f"  Poll interval:       {settings.poll_interval}")
    console.print()
    console.print("[bold]Operational:[/bold]")
    console.print(f"  Default branch:      {settings.default_branch}")
    console.print(f"  Log level:           {settings.log_level}")
    console.print(f"  Log directory:       {log_dir_display}")


@app.command()
def build(
    target: Annotated[
        Path,
        typer.Option(
            "--target", "-t", help="Directory containing the Dockerfile to build"
        ),
    ] = Path("."),
    repository: Annotated[
        str | None,
        typer.Option(
            "--repository",
            "-r",
            help="Git repository to clone into the working directory first",
        ),
    ] = None,
    branch: Annotated[
        str | None,
        typer.Option("--branch", "-b", help="Git branch to clone"),
    ] = None,
    aarch64: Annotated[
        bool, typer.Option("--aarch64", help="Build for aarch64 (arm 64 bits)")
    ] = False,
    amd64: Annotated[
        bool, typer.Option("--amd64", help="Build for amd64 (intel/amd 64 bits)")
    ] = False,
    armhf: Annotated[
        bool, typer.Option("--armhf", help="Build for armhf (arm 32 bits)")
    ] = False,
    i386: Annotated[
        bool, typer.Option("--i386", help="Build for i386 (intel/amd 32 bits)")
    ] = False,
    build_all: Annotated[
        bool,
        typer.Option("--all", "-a", help="Build for all supported architectures"),
    ] = False,
    image: Annotated[
        str | None,
        typer.Option("--image", "-i", help="Name of the output image"),
    ] = None,
    tag_latest: Annotated[
        bool, typer.Option("--tag-latest", "-l", help="Tag the build as latest")
    ] = False,
    tag_test: Annotated[
        bool, typer.Option("--tag-test", help="Tag the build as test")
    ] = False,
    push: Annotated[
        bool, typer.Option("--push", "-p", help="Push the resulting images")
    ] = False,
    args: Annotated[
        list[str] | None,
        typer.Option(
            "--arg",
            help="Extra build argument as KEY=VALUE (can be repeated)",
        ),
    ] = None,
    no_cache: Annotated[
        bool,
        typer.Option("--no-cache", "-n", "-c", help="Build without cache"),
    ] = False,
    single: Annotated[
        bool,
        typer.Option(
            "--single", "-s", help="Build architectures one after another"
        ),
    ] = False,
    no_squash: Annotated[
        bool,
        typer.Option("--no-squash", "-q", help="Do not squash image layers"),
    ] = False,
    build_type: Annotated[
        str | None,
        typer.Option(
            "--type",
            help="Type of the thing you are building "
            "(addon, base, cluster, homeassistant, supervisor)",
        ),
    ] = None,
    version: Annotated[
        str | None,
        typer.Option("--version", "-v", help="Version of the thing you are building"),
    ] = None,
) -> None:
    """Build, tag and optionally push Docker images for several architectures."""
    settings = get_settings()
    configure_logging(settings)

    build_args = parse_build_args(args)

    selected = {"aarch64": aarch64, "amd64": amd64, "armhf": armhf, "i386": i386}
    request = BuildRequest(
        target=target,
        repository=repository,
        branch=branch or settings.default_branch,
        version=version,
        image=image,
        archs=tuple(arch for arch, wanted in selected.items() if wanted),
        build_type=build_type,
        build_args=build_args,
        build_all=build_all,
        parallel=not single,
        push=push,
        cache=not no_cache,
        squash=False if no_squash else None,
        tag_latest=tag_latest,
        tag_test=tag_test,
    )

    try:
        report = run_build(request, settings)
    except BuilderError as e:
        console.print(f"[red]Error:[/red] {escape(e.message)}")
        raise typer.Exit(code=int(e.exit_code)) from e

    for result in report.failed:
        console.print(f"[red]{result.arch}:[/red] {escape(result.message)}")

    if not report.succeeded:
        raise typer.Exit(code=int(report.exit_code))

    console.print("[green]Build finished[/green]")


__all__ = ["app"]
