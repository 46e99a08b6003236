#!/usr/bin/env python3
"""
Smart Image Compressor - CLI Interface

Compress images to a target size while preserving maximum visual clarity.

Usage:
    imgcompress compress photo.jpg --target 100KB --output small.jpg
    imgcompress compress scan.png --target 50KB --format webp --precision precise
    imgcompress batch *.jpg --target 200KB --output-dir out/
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    BarColumn,
    TaskProgressColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from imagecompress import (
    SEARCH_PRESETS,
    ImageAnalyzer,
    ImageFormat,
    compress_file,
    convert_image,
    get_search_config,
    load_image,
    pad_file,
)
from imagecompress.utils import format_size, get_output_path, parse_size

console = Console()
logger = logging.getLogger(__name__)

FORMAT_CHOICES = [fmt.value for fmt in ImageFormat] + ["jpg"]


def configure_logging(verbose: bool):
    """Route library logging through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def create_progress_bar(disable: bool = False):
    """Create a rich progress bar."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeRemainingColumn(),
        console=console,
        disable=disable,
    )


def parse_target(target: str) -> int:
    """Parse a --target value, reporting bad input as a click usage error."""
    try:
        return parse_size(target)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="'--target'")


def resolve_format(fmt: Optional[str], input_path: Path) -> ImageFormat:
    """Pick the output format: explicit option first, then the input suffix."""
    try:
        if fmt:
            return ImageFormat.parse(fmt)
        return ImageFormat.from_path(input_path)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="'--format'")


@click.group(invoke_without_command=True)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output",
)
@click.pass_context
def cli(ctx, verbose: bool):
    """Smart Image Compressor - Compress images to a target size."""
    configure_logging(verbose)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--target", "-t",
    required=True,
    help="Target file size (e.g., 100KB, 1.5MB, 20480)",
)
@click.option(
    "--format", "-f", "fmt",
    type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
    help="Output format (default: same as input)",
)
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False),
    help="Output file path (default: input_compressed.<ext>)",
)
@click.option(
    "--precision", "-p",
    type=click.Choice(list(SEARCH_PRESETS)),
    default="balanced",
    help="Search precision (default: balanced)",
)
@click.option(
    "--json-output", "-j",
    is_flag=True,
    help="Output results as JSON",
)
def compress(
    input_file: str,
    target: str,
    fmt: Optional[str],
    output: Optional[str],
    precision: str,
    json_output: bool,
):
    """Compress an image to a target size."""
    input_path = Path(input_file)
    target_bytes = parse_target(target)
    image_format = resolve_format(fmt, input_path)
    output_path = get_output_path(input_path, output, image_format)

    if not json_output:
        console.print(Panel(
            f"[bold blue]Smart Image Compressor[/bold blue]\n"
            f"Input: {input_path.name}\n"
            f"Format: {image_format.value.upper()}\n"
            f"Target: {format_size(target_bytes)}",
            title="Compression Job",
        ))

    with create_progress_bar(disable=json_output) as progress:
        task = progress.add_task("Initializing...", total=100)

        def progress_callback(stage: str, percentage: int):
            progress.update(task, description=stage, completed=percentage)

        try:
            result = compress_file(
                input_path,
                output_path,
                target_bytes,
                fmt=image_format,
                config=get_search_config(precision),
                progress_callback=progress_callback,
            )
        except Exception as e:
            if json_output:
                click.echo(json.dumps({"error": str(e)}, indent=2))
            else:
                console.print(f"[bold red]Error: {e}[/bold red]")
            sys.exit(1)

    if json_output:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    # Display results table
    table = Table(title="Compression Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Original Size", format_size(result.original_size))
    table.add_row("Compressed Size", format_size(result.size))
    table.add_row("Reduction", f"{result.compression_ratio * 100:.1f}%")
    table.add_row("Target Size", format_size(result.target_size))
    table.add_row("Target Achieved", "Yes" if result.target_achieved else "No")
    table.add_row("Dimensions", f"{result.width}x{result.height} (source {result.source_width}x{result.source_height})")
    table.add_row("Quality", f"{result.quality:.2f}" if image_format.is_lossy else "lossless")
    table.add_row("Fidelity", result.quality_estimate)
    table.add_row("Encode Passes", str(result.encode_calls))

    console.print(table)

    if not result.target_achieved:
        console.print(
            f"\n[bold yellow]Warning: smallest encoding is {format_size(result.size)}, "
            f"{result.achieved_ratio:.1f}x the target[/bold yellow]"
        )
    console.print(f"\n[bold green]Saved to: {output_path}[/bold green]")


@cli.command()
@click.argument("input_files", nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--target", "-t",
    required=True,
    help="Target file size (e.g., 100KB, 1MB)",
)
@click.option(
    "--output-dir", "-d",
    type=click.Path(file_okay=False),
    help="Output directory (default: same as input)",
)
@click.option(
    "--format", "-f", "fmt",
    type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
    help="Output format (default: same as each input)",
)
@click.option(
    "--precision", "-p",
    type=click.Choice(list(SEARCH_PRESETS)),
    default="balanced",
    help="Search precision",
)
@click.option(
    "--json-output", "-j",
    is_flag=True,
    help="Output results as JSON",
)
def batch(
    input_files: tuple,
    target: str,
    output_dir: Optional[str],
    fmt: Optional[str],
    precision: str,
    json_output: bool,
):
    """Batch compress multiple images."""
    if not input_files:
        console.print("[red]No input files specified[/red]")
        sys.exit(1)

    target_bytes = parse_target(target)
    config = get_search_config(precision)
    output_directory = Path(output_dir) if output_dir else None

    if output_directory:
        output_directory.mkdir(parents=True, exist_ok=True)

    results = []
    success_count = 0
    fail_count = 0

    with create_progress_bar(disable=json_output) as progress:
        overall_task = progress.add_task(
            f"Processing {len(input_files)} files...",
            total=len(input_files),
        )

        for input_file in input_files:
            input_path = Path(input_file)

            try:
                image_format = resolve_format(fmt, input_path)
                if output_directory:
                    output_path = output_directory / f"{input_path.stem}_compressed{image_format.extension}"
                else:
                    output_path = get_output_path(input_path, None, image_format)

                result = compress_file(input_path, output_path, target_bytes, fmt=image_format, config=config)
                results.append(result.to_dict())
                success_count += 1
            except Exception as e:
                logger.error("Failed to compress %s: %s", input_path, e)
                results.append({"input_path": str(input_path), "error": str(e)})
                fail_count += 1

            progress.update(overall_task, advance=1)

    if json_output:
        click.echo(json.dumps({
            "total": len(input_files),
            "success": success_count,
            "failed": fail_count,
            "results": results,
        }, indent=2))
    else:
        missed = sum(1 for r in results if r.get("target_achieved") is False)
        console.print(f"\n[bold]Batch Complete[/bold]")
        console.print(f"[green]Success: {success_count}[/green]")
        if missed > 0:
            console.print(f"[yellow]Over target: {missed}[/yellow]")
        if fail_count > 0:
            console.print(f"[red]Failed: {fail_count}[/red]")

    if fail_count > 0:
        sys.exit(1)


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format", "-f", "fmt",
    type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
    help="Estimate reachable sizes for this output format",
)
@click.option(
    "--json-output", "-j",
    is_flag=True,
    help="Output as JSON",
)
def analyze(input_file: str, fmt: Optional[str], json_output: bool):
    """Analyze an image and show compression potential."""
    input_path = Path(input_file)

    analyzer = ImageAnalyzer(input_path)
    result = analyzer.analyze(probe_format=fmt)

    if json_output:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.error:
        console.print(f"[red]Error: {result.error}[/red]")
        sys.exit(1)

    table = Table(title=f"Image Analysis: {input_path.name}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Current Size", format_size(result.file_size))
    table.add_row("Dimensions", f"{result.width}x{result.height}")
    table.add_row("Megapixels", f"{result.megapixels:.2f}")
    table.add_row("Format", result.format or "unknown")
    table.add_row("Color Mode", result.mode)
    table.add_row("Transparency", "Yes" if result.has_alpha else "No")
    if result.probe_format:
        table.add_row(
            f"Est. {result.probe_format.upper()} Size",
            f"{format_size(result.estimated_min_size)} - {format_size(result.estimated_max_size)}"
        )

    console.print(table)


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--format", "-f", "fmt",
    type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
    required=True,
    help="Output format",
)
@click.option("--width", "-w", type=click.IntRange(min=1), help="Output width in pixels")
@click.option("--height", "-h", type=click.IntRange(min=1), help="Output height in pixels")
@click.option(
    "--quality", "-q",
    type=click.FloatRange(0.01, 1.0),
    default=0.92,
    show_default=True,
    help="Quality for lossy formats (0.01-1.0)",
)
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False),
    help="Output file path (default: input_converted.<ext>)",
)
def convert(
    input_file: str,
    fmt: str,
    width: Optional[int],
    height: Optional[int],
    quality: float,
    output: Optional[str],
):
    """Convert an image to another format, optionally resizing it."""
    input_path = Path(input_file)
    image_format = ImageFormat.parse(fmt)
    output_path = get_output_path(input_path, output, image_format, suffix="_converted")

    try:
        with load_image(input_path) as image:
            data = convert_image(image, image_format, width, height, quality)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    output_path.write_bytes(data)

    console.print(f"[green]Converted to {image_format.value.upper()} ({format_size(len(data))})[/green]")
    console.print(f"Saved to: {output_path}")


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--target", "-t",
    required=True,
    help="Minimum file size (e.g., 500KB, 2MB)",
)
@click.option(
    "--output", "-o",
    type=click.Path(dir_okay=False),
    help="Output file path (default: input_padded.<ext>)",
)
def pad(input_file: str, target: str, output: Optional[str]):
    """Increase a file's size by appending padding."""
    input_path = Path(input_file)
    target_bytes = parse_target(target)
    output_path = Path(output) if output else input_path.with_stem(input_path.stem + "_padded")

    result = pad_file(input_path, output_path, target_bytes)

    if result.padded:
        console.print(f"[green]File padded successfully![/green]")
    else:
        console.print(f"[yellow]File is already at least {format_size(target_bytes)}[/yellow]")
    console.print(f"Original size: {format_size(result.original_size)}")
    console.print(f"New size: {format_size(result.new_size)}")
    console.print(f"Saved to: {output_path}")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
