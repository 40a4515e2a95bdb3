"""seasonmux CLI - compile downloaded episode fragments into a media library.

Commands:
  - list: Show the seasons and episodes found in a download folder
  - compile: Normalize subtitles, mux and package every episode into a library
  - convert: Convert a single subtitle file between JSON/ASS/SRT/VTT
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn

import typer
from rich import print
from rich.console import Console
from rich.table import Table

from .config import AUDIO_STEM, DEFAULT_LANGUAGE, DEFAULT_WORKERS, LOG_LEVEL, VIDEO_STEM, PipelineConfig, SubtitleMode
from .data.storage import determine_output_path
from .errors import SeasonMuxError
from .muxer import find_stream
from .parsers.metadata import resolve_download_folder
from .parsers.subtitles import parse_subtitle_file, write_subtitle
from .pipelines import CompilePipeline
from .util.types import SubtitleFormat


app = typer.Typer(add_completion=False, no_args_is_help=True)


@app.callback()
def main(
	verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
	"""Compile downloaded episode fragments into playable, subtitled files."""
	level = logging.DEBUG if verbose else getattr(logging, LOG_LEVEL, logging.WARNING)
	logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _fail(exc: Exception) -> NoReturn:
	print(f"[red]{exc}[/red]")
	raise typer.Exit(code=1)


@app.command(name="list")
def list_cmd(
	input: Path = typer.Argument(..., help="Download folder containing season directories"),
) -> None:
	"""List all seasons and episodes in the download folder."""
	try:
		folder = resolve_download_folder(input)
	except SeasonMuxError as e:
		_fail(e)

	if not folder.seasons:
		print(f"[yellow]No seasons found in[/yellow] {input}")
		return

	for i, season in enumerate(folder.seasons, start=1):
		table = Table(title=f"{i}.) {season.title}")
		for col in ["Episode", "Kind", "Type tag", "Streams", "Library name"]:
			table.add_column(col)
		for e in season.episodes:
			has_video = find_stream(e, VIDEO_STEM) is not None
			has_audio = find_stream(e, AUDIO_STEM) is not None
			streams = "[green]ok[/green]" if has_video and has_audio else "[red]missing[/red]"
			table.add_row(
				e.identity.full_display,
				e.identity.kind,
				e.type_tag,
				streams,
				determine_output_path(Path("."), season.title, e).name,
			)
		print(table)


@app.command(name="compile")
def compile_cmd(
	input: Path = typer.Argument(..., help="Download folder containing season directories"),
	output: Path = typer.Argument(..., help="Library directory to write compiled episodes to"),
	copy: bool = typer.Option(False, "--copy", "-c", help="Copy compiled files instead of moving them"),
	language: str = typer.Option(DEFAULT_LANGUAGE, "--language", "-l", help="Subtitle language tag, e.g. en, zh-Hans"),
	use_hard_subtitle: bool = typer.Option(False, "--use-hard-subtitle", help="Burn the subtitle into the video"),
	parallel: bool = typer.Option(False, "--parallel", "-p", help="Compile episodes of a season in parallel"),
	workers: int = typer.Option(DEFAULT_WORKERS, "--workers", min=1, help="Worker count used with --parallel"),
) -> None:
	"""Compile all seasons in the download folder into the output library."""
	config = PipelineConfig(
		output_root=output,
		language=language,
		subtitle_mode=SubtitleMode.HARD if use_hard_subtitle else SubtitleMode.SOFT,
		copy=copy,
		parallel=parallel,
		max_workers=workers,
	)
	console = Console()
	try:
		folder = resolve_download_folder(input)
		results = CompilePipeline(config, console=console).compile_folder(folder)
	except SeasonMuxError as e:
		_fail(e)

	table = Table(title="Compiled seasons")
	table.add_column("Season")
	table.add_column("Episodes")
	table.add_column("Time")
	for r in results:
		table.add_row(r.season.title, str(len(r.outputs)), f"{r.elapsed_seconds:.1f}s")
	console.print(table)


@app.command(name="convert")
def convert_cmd(
	source: Path = typer.Argument(..., help="Subtitle file (.json/.ass/.ssa/.srt/.vtt)"),
	destination: Path = typer.Argument(..., help="Output file; format taken from its extension (.ass/.srt/.vtt)"),
) -> None:
	"""Convert a subtitle file to another format."""
	fmt = SubtitleFormat.from_extension(destination.suffix)
	if fmt is None:
		raise typer.BadParameter(f"Unsupported output extension: {destination.suffix}")
	if not source.is_file():
		raise typer.BadParameter(f"Subtitle file not found: {source}")
	try:
		doc = parse_subtitle_file(source)
		write_subtitle(doc, destination, fmt)
	except SeasonMuxError as e:
		_fail(e)
	print(f"[green]Converted[/green] {len(doc)} cue(s) -> {destination}")
