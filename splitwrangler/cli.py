"""
Command-line interface for splitwrangler.
"""

import json
import os
import shutil
import sys
from pathlib import Path
from zipfile import ZipFile

import click
from pydantic import ValidationError
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeRemainingColumn
from rich.table import Table

from splitwrangler.archive import unique_names
from splitwrangler.backends import PypdfBackend
from splitwrangler.dispatcher import build_default_dispatcher
from splitwrangler.exceptions import SplitWranglerError
from splitwrangler.models import FailurePolicy, JobStatus, SectionType, SplitRequest, SplitStrategy
from splitwrangler.utils import base_name, format_file_size

console = Console()


def _fail(message):
    console.print(f"\n[bold red]✗ Error:[/bold red] {message}")
    sys.exit(1)


def _build_request(input_pdf, strategy, ranges, threshold_mb, section_type, selections,
                   min_pages, pattern, bookmarks, metadata, continue_on_error, password):
    try:
        page_selections = json.loads(selections) if selections else []
    except json.JSONDecodeError as e:
        _fail(f"--selections must be valid JSON: {e}")

    try:
        return SplitRequest(
            source=Path(input_pdf).read_bytes(),
            original_filename=os.path.basename(input_pdf),
            strategy=SplitStrategy(strategy),
            page_ranges=list(ranges),
            file_size_threshold_mb=threshold_mb,
            section_type=SectionType(section_type),
            content_config={"min_partition_pages": min_pages},
            page_selections=page_selections,
            file_name_pattern=pattern,
            preserve_bookmarks=bookmarks,
            preserve_metadata=metadata,
            failure_policy=FailurePolicy.CONTINUE if continue_on_error else None,
            password=password,
        )
    except ValidationError as e:
        _fail(f"Invalid options: {e.error_count()} error(s)\n{e}")


def split_options(func):
    """Options shared by ``split`` and ``preview``."""

    options = [
        click.option('--strategy', '-s', type=click.Choice([s.value for s in SplitStrategy]),
                     default=SplitStrategy.PAGE_RANGES.value, show_default=True,
                     help='Partitioning algorithm'),
        click.option('--range', '-r', 'ranges', multiple=True,
                     help="Page range per output file, e.g. '1-3' or '1-3,7' (repeatable)"),
        click.option('--threshold-mb', type=float, default=None,
                     help='Maximum size per output for the fileSize strategy'),
        click.option('--section-type', type=click.Choice([s.value for s in SectionType]),
                     default=SectionType.CHAPTERS.value, show_default=True,
                     help='Structure used by the documentSection strategy'),
        click.option('--selections', default=None,
                     help='JSON list of {name, pages, ranges, excludePages} selections'),
        click.option('--min-pages', type=int, default=1, show_default=True,
                     help='Minimum pages per output for the contentAware strategy'),
        click.option('--pattern', '-p', default=None,
                     help='File name pattern, e.g. {original}_part_{index}.pdf'),
        click.option('--bookmarks/--no-bookmarks', default=True, help='Carry outline entries over'),
        click.option('--metadata/--no-metadata', default=True, help='Carry document metadata over'),
        click.option('--continue-on-error', is_flag=True, help='Keep going when a partition fails'),
        click.option('--password', default=None, help='Password for encrypted PDFs'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.version_option(version="1.0.0")
def cli():
    """
    splitwrangler - Split PDF files by ranges, size, structure or content.
    """
    pass


@cli.command(name="split")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@split_options
@click.option(
    '--output', '-o',
    default=None,
    help='Archive to write (defaults to <name>_split.zip)',
    type=click.Path(dir_okay=False)
)
@click.option(
    '--extract-to',
    default=None,
    help='Unpack the split documents into this directory instead of keeping the archive',
    type=click.Path(file_okay=False)
)
def split(input_pdf, strategy, ranges, threshold_mb, section_type, selections, min_pages,
          pattern, bookmarks, metadata, continue_on_error, password, output, extract_to):
    """
    Split a PDF and write the results as a zip archive.

    Examples:

        splitwrangler split input.pdf -r 1-3 -r 4-6 -r 7-10

        splitwrangler split input.pdf -s fileSize --threshold-mb 5

        splitwrangler split book.pdf -s chapterBased --extract-to chapters/
    """
    request = _build_request(input_pdf, strategy, ranges, threshold_mb, section_type, selections,
                             min_pages, pattern, bookmarks, metadata, continue_on_error, password)
    dispatcher = build_default_dispatcher()
    try:
        console.print(f"\n[bold cyan]Planning {strategy} split...[/bold cyan]")
        operation_id = dispatcher.submit_async(request)

        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeRemainingColumn(),
            console=console
        ) as progress:
            task = progress.add_task("Splitting", total=None)
            while True:
                state = dispatcher.tracker.wait(operation_id, timeout=0.1)
                progress.update(task, total=state.total_partitions or None,
                                completed=state.processed_partitions)
                if state.status.is_terminal:
                    break

        if state.status is JobStatus.FAILED:
            _fail((state.error or {}).get("message", "Split failed"))
        if state.status is JobStatus.CANCELLED:
            _fail("Split was cancelled")

        archive_path = dispatcher.get_result(operation_id)
        artifacts = dispatcher.tracker.get_artifacts(operation_id)

        if extract_to:
            target = Path(extract_to)
            target.mkdir(parents=True, exist_ok=True)
            with ZipFile(archive_path) as archive:
                archive.extractall(target)
            destination = target
        else:
            destination = Path(output or f"{base_name(request.original_filename)}_split.zip")
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(archive_path, destination)

        table = Table(title="Split Results", show_header=True)
        table.add_column("File", style="cyan")
        table.add_column("Pages", style="green", justify="right")
        table.add_column("Range", style="magenta")
        table.add_column("Size", style="yellow", justify="right")
        for artifact, name in zip(artifacts, unique_names(a.file_name for a in artifacts)):
            table.add_row(name, str(artifact.page_count), artifact.page_ranges,
                          format_file_size(artifact.size_bytes))
        console.print(table)

        for failure in state.failures:
            console.print(f"[yellow]⚠ Partition {failure['partitionIndex']} "
                          f"({failure['pageRanges']}) failed:[/yellow] {failure['error']}")

        console.print(f"\n[bold green]✓ Successfully split into {len(artifacts)} files[/bold green]")
        console.print(f"[dim]Output: {os.path.abspath(destination)}[/dim]\n")
    except SplitWranglerError as e:
        _fail(e.message)
    except OSError as e:
        _fail(e)
    finally:
        dispatcher.close()


@cli.command(name="preview")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@split_options
def preview(input_pdf, strategy, ranges, threshold_mb, section_type, selections, min_pages,
            pattern, bookmarks, metadata, continue_on_error, password):
    """
    Show the documents a split would produce without writing anything.

    Example:

        splitwrangler preview input.pdf -s fileSize --threshold-mb 2
    """
    request = _build_request(input_pdf, strategy, ranges, threshold_mb, section_type, selections,
                             min_pages, pattern, bookmarks, metadata, continue_on_error, password)
    dispatcher = build_default_dispatcher()
    try:
        result = dispatcher.preview_split(request)
    except SplitWranglerError as e:
        _fail(e.message)
    finally:
        dispatcher.close()

    table = Table(title=f"Split Preview: {request.original_filename} ({result.total_pages} pages)")
    table.add_column("#", style="dim", justify="right")
    table.add_column("File", style="cyan")
    table.add_column("Pages", style="green", justify="right")
    table.add_column("Range", style="magenta")
    table.add_column("Est. Size", style="yellow", justify="right")
    for index, item in enumerate(result.preview_results, start=1):
        table.add_row(str(index), item.output_file_name, str(item.page_count), item.page_ranges,
                      f"{item.estimated_file_size_mb:.2f} MB")
    console.print(table)
    console.print(f"\n[bold]{result.estimated_output_files} output files[/bold]\n")


@cli.command(name="info")
@click.argument('input_pdf', type=click.Path(exists=True, dir_okay=False))
@click.option('--password', default=None, help='Password for encrypted PDFs')
def show_info(input_pdf, password):
    """
    Display page count and structure of a PDF file.

    Example:

        splitwrangler info input.pdf
    """
    try:
        data = Path(input_pdf).read_bytes()
        with PypdfBackend().load(data, file_name=os.path.basename(input_pdf), password=password) as document:
            table = Table(title=f"PDF Information: {os.path.basename(input_pdf)}")
            table.add_column("Property", style="cyan")
            table.add_column("Value", style="green")
            table.add_row("Pages", str(document.total_page_count))
            table.add_row("Size", format_file_size(document.size_bytes))
            table.add_row("Outline entries", str(len(document.outline)))
            table.add_row("Markup annotations", str(len(document.annotation_markers())))
            console.print(table)

            if document.outline:
                outline_table = Table(title="Outline", show_header=True)
                outline_table.add_column("Title", style="cyan")
                outline_table.add_column("Page", style="green", justify="right")
                outline_table.add_column("Level", style="dim", justify="right")
                for entry in document.outline:
                    outline_table.add_row(("  " * entry.depth) + entry.title, str(entry.page_number),
                                          str(entry.depth))
                console.print(outline_table)
    except SplitWranglerError as e:
        _fail(e.message)
    except OSError as e:
        _fail(e)


if __name__ == '__main__':
    cli()
