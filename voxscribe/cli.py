"""
voxscribe.cli - Typer CLI entry point.

Thin command layer over the pipeline: option parsing, progress display and
output writing. Status messages go to stderr; transcripts go to stdout
unless --output is given.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from rich.table import Table

from voxscribe import __version__
from voxscribe.cache import MODEL_SIZES, ensure_model, list_cached_models
from voxscribe.config import MODEL_PRESETS, ModelSpec, load_config, parse_model, resolve_cache_dir
from voxscribe.exceptions import DependencyError, VoxscribeError
from voxscribe.export.formats import OutputFormat, load_transcript, render, write_transcript
from voxscribe.languages import supported_languages
from voxscribe.logging import configure_logging
from voxscribe.pipeline import transcribe_source
from voxscribe.transcript import Transcript
from voxscribe.utils import format_duration, format_size
from voxscribe.validation import check_disk_space, check_ffmpeg, check_whisper, check_ytdlp

app = typer.Typer(
    name="voxscribe",
    help="Transcribe audio and video from a file or URL.\n\n"
    "Decodes with FFmpeg, transcribes with whisper.cpp, and writes plain text, "
    "SRT, WebVTT or JSON.",
    add_completion=False,
)
console = Console(stderr=True)


class DownloadProgress:
    """Model download progress bar, started on the first update."""

    def __init__(self, console: Console) -> None:
        self.console = console
        self._progress: Progress | None = None
        self._task = None

    def __call__(self, done: int, total: int | None) -> None:
        if self._progress is None:
            self._progress = Progress(
                TextColumn("[cyan]Downloading model[/cyan]"),
                BarColumn(),
                DownloadColumn(),
                TransferSpeedColumn(),
                TimeRemainingColumn(),
                console=self.console,
                transient=True,
            )
            self._progress.start()
            self._task = self._progress.add_task("download", total=total)
        self._progress.update(self._task, completed=done)

    def stop(self) -> None:
        if self._progress is not None:
            self._progress.stop()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"voxscribe {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Voxscribe - speech-to-text transcription toolkit."""
    pass


def _emit(transcript: Transcript, fmt: OutputFormat, output: Path | None) -> None:
    if output is not None:
        write_transcript(transcript, output, fmt)
        console.print(f"[dim]  Written to {output}[/dim]")
        return
    rendered = render(transcript, fmt)
    typer.echo(rendered, nl=not rendered.endswith("\n"))


@app.command("transcribe")
def transcribe(
    source: str = typer.Argument(..., help="Audio/video file path or http(s) URL"),
    fmt: OutputFormat = typer.Option(OutputFormat.TEXT, "--format", "-f", help="Output format"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Write output to file instead of stdout"
    ),
    model: str | None = typer.Option(
        None, "--model", "-m", help="Model preset (e.g. large-v3) or path to a ggml .bin file"
    ),
    language: str | None = typer.Option(
        None, "--language", "-l", help="Language code or name, or 'auto' to detect"
    ),
    translate: bool | None = typer.Option(
        None, "--translate/--no-translate", help="Translate to English"
    ),
    word_timestamps: bool | None = typer.Option(
        None, "--word-timestamps/--no-word-timestamps", help="Include word-level timestamps"
    ),
    diarize: bool | None = typer.Option(
        None, "--diarize/--no-diarize", help="Detect speaker turns (tinydiarize models)"
    ),
    gpu: bool | None = typer.Option(None, "--gpu/--no-gpu", help="Use GPU acceleration"),
    gpu_device: int | None = typer.Option(None, "--gpu-device", help="GPU device index"),
    threads: int | None = typer.Option(None, "--threads", "-t", help="Inference threads"),
    vad: bool | None = typer.Option(None, "--vad/--no-vad", help="Voice activity detection"),
    vad_model: Path | None = typer.Option(
        None, "--vad-model", help="Silero VAD model file (VAD is skipped without one)"
    ),
    temperature: float | None = typer.Option(None, "--temperature", help="Sampling temperature"),
    beam_size: int | None = typer.Option(
        None, "--beam-size", help="Beam search width (greedy decoding if not set)"
    ),
    cache_dir: Path | None = typer.Option(None, "--cache-dir", help="Model cache directory"),
    dc_offset: bool | None = typer.Option(
        None, "--dc-offset/--no-dc-offset", help="Remove DC offset"
    ),
    normalize: bool | None = typer.Option(
        None, "--normalize/--no-normalize", help="Peak-normalize audio"
    ),
    trim_silence: bool | None = typer.Option(
        None, "--trim-silence/--no-trim-silence", help="Trim leading/trailing silence"
    ),
    config_file: Path | None = typer.Option(
        None, "--config", "-c", help="YAML config file (default: ./voxscribe.yaml if present)"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
) -> None:
    """Transcribe a local file or a URL."""
    configure_logging(verbose)

    overrides = {
        "model": model,
        "language": language,
        "translate": translate,
        "word_timestamps": word_timestamps,
        "diarize": diarize,
        "gpu": gpu,
        "gpu_device": gpu_device,
        "threads": threads,
        "vad": vad,
        "vad_model_path": vad_model,
        "temperature": temperature,
        "beam_size": beam_size,
        "cache_dir": cache_dir,
        "audio": {
            "dc_offset_removal": dc_offset,
            "normalize": normalize,
            "trim_silence": trim_silence,
        },
    }

    progress = DownloadProgress(console)
    try:
        config = load_config(config_file, overrides)
        console.print(
            f"[cyan]Transcribing {escape(source)} with {config.model.name} model...[/cyan]"
        )
        transcript = transcribe_source(source, config, progress=progress)
    except VoxscribeError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    finally:
        progress.stop()

    console.print(
        f"[green]✓[/green] Transcribed {format_duration(transcript.duration)} of audio, "
        f"{len(transcript.segments)} segments, language: {transcript.language}"
    )

    try:
        _emit(transcript, fmt, output)
    except (VoxscribeError, OSError) as e:
        console.print(f"[red]Error writing output: {escape(str(e))}[/red]")
        raise typer.Exit(1)


@app.command("convert")
def convert(
    transcript_file: Path = typer.Argument(..., help="JSON transcript written by voxscribe"),
    fmt: OutputFormat = typer.Option(OutputFormat.SRT, "--format", "-f", help="Output format"),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Write output to file instead of stdout"
    ),
) -> None:
    """Re-render a saved JSON transcript in another format."""
    try:
        transcript = load_transcript(transcript_file)
        _emit(transcript, fmt, output)
    except (VoxscribeError, OSError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)


@app.command("models")
def list_models(
    cache_dir: Path | None = typer.Option(None, "--cache-dir", help="Model cache directory"),
) -> None:
    """List model presets and the models already cached."""
    resolved = cache_dir or resolve_cache_dir()
    cached = {p.name: p for p in list_cached_models(resolved)}

    table = Table(title="Whisper Models")
    table.add_column("Model", style="cyan")
    table.add_column("Size", style="green")
    table.add_column("Status", style="yellow")

    preset_files = set()
    for name in MODEL_PRESETS:
        filename = ModelSpec(name=name).filename
        preset_files.add(filename)
        status = "[green]✓ Cached[/green]" if filename in cached else "[dim]-[/dim]"
        table.add_row(name, format_size(MODEL_SIZES[name] * 1_000_000), status)

    for filename, path in cached.items():
        if filename not in preset_files:
            table.add_row(filename, format_size(path.stat().st_size), "[green]✓ Cached[/green]")

    console.print(table)
    console.print(f"[dim]Cache directory: {resolved}[/dim]")


@app.command("download-model")
def download_model_cmd(
    name: str = typer.Argument(..., help="Model preset to download"),
    cache_dir: Path | None = typer.Option(None, "--cache-dir", help="Model cache directory"),
) -> None:
    """Download a model into the cache without transcribing."""
    try:
        spec = parse_model(name)
    except VoxscribeError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        console.print("[dim]Run 'voxscribe models' to see available models[/dim]")
        raise typer.Exit(1)

    if spec.is_custom:
        console.print("[red]Error: Only preset models can be downloaded[/red]")
        raise typer.Exit(1)

    resolved = cache_dir or resolve_cache_dir()
    if not (resolved / spec.filename).exists():
        try:
            disk = check_disk_space(resolved, MODEL_SIZES[spec.name])
        except VoxscribeError as e:
            console.print(f"[red]Error: {escape(str(e))}[/red]")
            raise typer.Exit(1)
        if not disk["sufficient"]:
            console.print(
                f"[red]Error: Insufficient disk space. "
                f"Need ~{disk['required_mb']}MB, have {disk['available_mb']}MB[/red]"
            )
            raise typer.Exit(1)

    progress = DownloadProgress(console)
    try:
        path = ensure_model(spec, resolved, progress=progress)
    except VoxscribeError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    finally:
        progress.stop()

    console.print(f"[green]✓[/green] Model ready: {path}")


@app.command("languages")
def list_languages() -> None:
    """List supported languages."""
    table = Table(title="Supported Languages")
    table.add_column("Code", style="cyan")
    table.add_column("Language", style="green")
    for code, name in supported_languages():
        table.add_row(code, name)
    console.print(table)


@app.command("doctor")
def doctor() -> None:
    """Check external dependencies (FFmpeg, yt-dlp, whisper.cpp bindings)."""
    table = Table(title="Dependencies")
    table.add_column("Dependency", style="cyan")
    table.add_column("Status", style="yellow")
    table.add_column("Details", style="dim")

    missing = 0
    for label, check in (
        ("ffmpeg", check_ffmpeg),
        ("yt-dlp", check_ytdlp),
        ("pywhispercpp", check_whisper),
    ):
        try:
            info = check()
            table.add_row(label, "[green]✓ Found[/green]", f"{info['version']} ({info['path']})")
        except DependencyError as e:
            missing += 1
            table.add_row(label, "[red]Missing[/red]", e.install_hint or e.message)

    console.print(table)
    if missing:
        raise typer.Exit(1)
