"""
Command-line interface for PitStop Server CLI.
"""

import asyncio
import logging
import os
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from pitstop_server import __version__
from pitstop_server.exceptions import PitStopError
from pitstop_server.locator import check_application_path, get_application_path
from pitstop_server.server import PitStopServer
from pitstop_server.types import MeasurementUnit, VariableEntry, VariableType
from pitstop_server.utils import format_file_size, get_pdf_info

console = Console()


def parse_variable(spec):
    """Parse ``NAME=TYPE:VALUE`` into a :class:`VariableEntry`."""

    name, separator, rest = spec.partition("=")
    if not separator or not name.strip():
        raise click.BadParameter(f"Expected NAME=TYPE:VALUE, got '{spec}'")
    type_name, separator, value = rest.partition(":")
    if not separator:
        raise click.BadParameter(f"Expected NAME=TYPE:VALUE, got '{spec}'")
    try:
        variable_type = VariableType.parse(type_name)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc
    return VariableEntry(name=name.strip(), type=variable_type, value=value)


def _configure_logging(verbose):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Show debug logging')
def cli(verbose):
    """
    PitStop Server CLI - Preflight PDF files with Enfocus PitStop Server.
    """
    _configure_logging(verbose)


@cli.command(name="run")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--output-folder', '-o',
    required=True,
    help='Folder for the configuration, output PDF and reports',
    type=click.Path(file_okay=False)
)
@click.option('--profile', '-p', help='Preflight profile (.ppp)', type=click.Path(exists=True))
@click.option(
    '--action-list', '-a', 'action_lists',
    multiple=True,
    help='Action list (.eal), can be repeated',
    type=click.Path(exists=True)
)
@click.option('--variable-set', help='Variable set template (.evs)', type=click.Path(exists=True))
@click.option(
    '--variable', 'variables',
    multiple=True,
    help="Variable value as NAME=TYPE:VALUE (e.g. 'Bleed=Length:3')",
    type=str
)
@click.option('--output-name', '-n', help='File name of the processed PDF', type=str)
@click.option('--pdf-report', is_flag=True, help='Write a PDF report')
@click.option('--xml-report', is_flag=True, help='Write an XML report')
@click.option('--json-report', is_flag=True, help='Write a JSON report')
@click.option('--task-report', is_flag=True, help='Write a task report')
@click.option('--config-template', help='Configuration template', type=click.Path(exists=True))
@click.option(
    '--unit', '-u',
    type=click.Choice([unit.value for unit in MeasurementUnit], case_sensitive=False),
    help='Measurement unit'
)
@click.option('--language', '-l', help='Report language (e.g. enUS)', type=str)
@click.option('--application-path', help='Path to PitStopServerCLI', type=click.Path())
@click.option('--dry-run', is_flag=True, help='Build and print the configuration only')
def run(input_pdf, output_folder, profile, action_lists, variable_set, variables, output_name,
        pdf_report, xml_report, json_report, task_report, config_template, unit, language,
        application_path, dry_run):
    """
    Preflight a PDF with a profile and/or action lists.

    Examples:

        pitstop-server run input.pdf -o out -p check.ppp --xml-report

        pitstop-server run input.pdf -o out -a fix.eal --variable 'Bleed=Length:3'
    """
    try:
        entries = [parse_variable(spec) for spec in variables]

        os.makedirs(output_folder, exist_ok=True)
        options = {
            "input_pdf": input_pdf,
            "output_folder": output_folder,
            "output_pdf_name": output_name,
            "preflight_profile": profile,
            "action_lists": list(action_lists),
            "pdf_report": pdf_report,
            "xml_report": xml_report,
            "json_report": json_report,
            "task_report": task_report,
            "measurement_unit": unit,
            "language": language,
        }
        optional = {
            "variable_set": variable_set,
            "config_file": config_template,
            "application_path": application_path,
        }
        options.update({key: value for key, value in optional.items() if value})

        _print_input_summary(input_pdf)
        server = PitStopServer(options)

        if entries:
            if server.variable_set_path is not None:
                server.update_variable_set(entries)
            else:
                server.create_variable_set(entries)

        if dry_run:
            server.build_config()
            console.print(server.get_task_config(), markup=False, highlight=False, soft_wrap=True)
            return

        console.print("\n[bold cyan]Running PitStop Server...[/bold cyan]")
        result = asyncio.run(server.run())
        _print_result(result, server)

        if not result.succeeded:
            sys.exit(result.exit_code if result.exit_code > 0 else 1)

    except PitStopError as e:
        console.print(f"\n[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)


@cli.command(name="version")
@click.option('--application-path', help='Path to PitStopServerCLI', type=click.Path())
def show_version(application_path):
    """
    Print the version of the installed PitStop Server.
    """
    try:
        path = check_application_path(application_path) if application_path else None
        version = asyncio.run(PitStopServer.get_version(path))
        console.print(version, soft_wrap=True)
    except PitStopError as e:
        console.print(f"[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)


@cli.command(name="locate")
def locate():
    """
    Print the path of the PitStop Server CLI executable.
    """
    try:
        console.print(str(get_application_path()), markup=False, soft_wrap=True)
    except PitStopError as e:
        console.print(f"[bold red]✗ Error:[/bold red] {e}")
        sys.exit(1)


def _print_input_summary(input_pdf):
    info_table = Table(title="Input PDF", show_header=False)
    info_table.add_column("Property", style="cyan")
    info_table.add_column("Value", style="green")

    info_table.add_row("File", os.path.basename(input_pdf))
    try:
        info = get_pdf_info(input_pdf)
    except PitStopError as e:
        info_table.add_row("Warning", str(e))
    else:
        info_table.add_row("Pages", str(info.num_pages) if not info.is_encrypted else "encrypted")
        info_table.add_row("Size", format_file_size(info.file_size))
        if info.title:
            info_table.add_row("Title", info.title)

    console.print(info_table)


def _print_result(result, server):
    table = Table(title="PitStop Server Result", show_header=False)
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")

    table.add_row("Command", result.command)
    table.add_row("Exit code", str(result.exit_code))
    table.add_row("Execution time", f"{server.execution_time:.2f} s")
    table.add_row("Output PDF", str(server.task.output_pdf_path))

    console.print()
    console.print(table)
    if result.stdout:
        console.print(result.stdout, markup=False, highlight=False)
    if result.succeeded:
        console.print("\n[bold green]✓ PitStop Server finished[/bold green]\n")
    else:
        console.print(f"\n[bold red]✗ PitStop Server failed:[/bold red] {result.stderr}\n")


def main():
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
