"""covstart CLI - Resolve what to launch and measure for a native solution."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from covstart.config import ResolvedStartupConfig, ResolveOptions, SelectionKind
from covstart.errors import SolutionLoadError
from covstart.msbuild.host import SolutionHost
from covstart.output import write_output
from covstart.phases.flatten import flatten_projects
from covstart.phases.matching import find_build_context
from covstart.pipeline import resolve_startup_config


@click.group()
def cli() -> None:
    """covstart - Find the startup project of a solution and what to cover."""
    pass


def _configure_logging(verbose: bool, quiet: bool = False) -> None:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")
    level = logging.NOTSET
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.getLogger("covstart").setLevel(level)


def _load_host(solution_path: str) -> SolutionHost:
    try:
        return SolutionHost.load(solution_path)
    except SolutionLoadError as e:
        click.echo(str(e), err=True)
        sys.exit(2)


def _resolve(options: ResolveOptions, host: SolutionHost, progress=None) -> ResolvedStartupConfig:
    configuration = options.configuration or host.active_configuration

    startup_names = set(options.startup_names) if options.startup_names else host.default_startup_names()

    return resolve_startup_config(
        host.project_tree(),
        configuration,
        host.build_contexts(configuration),
        options.kind,
        declared_startup_names=startup_names,
        selected_projects=options.selected_names,
        progress_callback=progress,
    )


def _run_with_progress(options: ResolveOptions, host: SolutionHost) -> ResolvedStartupConfig:
    """Run the resolver with Rich progress display."""
    from rich.console import Console
    from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
    from rich.table import Table

    console = Console()

    with Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Loading solution...", total=None)

        def on_phase(name, label):
            progress.update(task, description=label)

        result = _resolve(options, host, progress=on_phase)

    if result.is_empty:
        return result

    table = Table(title=f"Startup project: {result.project_name}", show_edge=False)
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    table.add_row("Configuration", result.solution_configuration_name)
    table.add_row("Project path", result.project_path)
    table.add_row("Command", result.command)
    table.add_row("Arguments", result.arguments)
    table.add_row("Working directory", result.working_dir)
    for key, value in result.environment_variables:
        table.add_row("Environment", f"{key}={value}")

    console.print(table)

    modules = Table(title="Modules to cover", show_edge=False)
    modules.add_column("Project", style="bold")
    modules.add_column("Module")
    modules.add_column("Source folders")
    for project in result.cpp_projects:
        modules.add_row(project.path, project.module_path, "\n".join(sorted(project.source_paths)))
    console.print(modules)

    return result


@cli.command("resolve")
@click.argument("solution", type=click.Path(exists=True, dir_okay=False))
@click.option("-c", "--configuration", default=None, help="Solution configuration, e.g. 'Debug|x64'")
@click.option("--startup", multiple=True, help="Startup project unique name (repeatable)")
@click.option("--selected", multiple=True, help="Explicitly selected project unique name")
@click.option("-o", "--output", "output_path", default=None, help="Output JSON file path")
@click.option("--verbose", is_flag=True, help="Log resolution details")
@click.option("--quiet", is_flag=True, help="Suppress all output except errors")
def resolve_cmd(
    solution: str,
    configuration: str | None,
    startup: tuple[str, ...],
    selected: tuple[str, ...],
    output_path: str | None,
    verbose: bool,
    quiet: bool,
) -> None:
    """Resolve the startup project settings of a .sln file."""
    options = ResolveOptions(
        solution_path=str(Path(solution).resolve()),
        configuration=configuration,
        kind=SelectionKind.SELECTED_PROJECT if selected else SelectionKind.STARTUP_PROJECTS,
        startup_names=list(startup),
        selected_names=list(selected),
        output_path=output_path,
        verbose=verbose,
        quiet=quiet,
    )
    _configure_logging(options.verbose, options.quiet)
    host = _load_host(options.solution_path)

    if options.quiet:
        result = _resolve(options, host)
    else:
        result = _run_with_progress(options, host)

    if result.is_empty:
        click.echo("Could not determine startup project", err=True)
        sys.exit(1)

    if options.output_path:
        write_output(result, options.output_path)
        if not options.quiet:
            from rich.console import Console
            Console().print(f"[green]Output written to:[/green] {options.output_path}")


@cli.command("projects")
@click.argument("solution", type=click.Path(exists=True, dir_okay=False))
@click.option("-c", "--configuration", default=None, help="Solution configuration, e.g. 'Debug|x64'")
@click.option("--verbose", is_flag=True, help="Log resolution details")
def projects_cmd(solution: str, configuration: str | None, verbose: bool) -> None:
    """List the native projects of a .sln file and how they build."""
    from rich.console import Console
    from rich.table import Table

    _configure_logging(verbose)
    host = _load_host(str(Path(solution).resolve()))
    configuration = configuration or host.active_configuration
    contexts = host.build_contexts(configuration)

    table = Table(title=f"Native projects ({configuration or 'no configuration'})", show_edge=False)
    table.add_column("Project", style="bold")
    table.add_column("Builds as")
    table.add_column("Build", justify="center")

    for project in flatten_projects(host.project_tree()):
        context = find_build_context(contexts, project.unique_name)
        if context is None:
            table.add_row(project.unique_name, "-", "no")
            continue
        table.add_row(
            project.unique_name,
            f"{context.configuration_name}|{context.platform_name}",
            "yes" if context.should_build else "no",
        )

    Console().print(table)


if __name__ == "__main__":
    cli()
