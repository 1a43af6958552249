"""Command-line interface for VocalFlow.

Provides commands for:
- practice: Sing a melody into the microphone, note by note
- replay: Run a recording through the practice engine
- detect: Show the pitch contour of an audio file
- melody: Show the notes of a melody file
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .core import Song, SessionSetupError, pitch_name
from .core.constants import DEFAULT_BUFFER_SIZE, DEFAULT_SR, DEFAULT_TICK_MS
from .practice import Difficulty, Engine, EngineConfig, TickResult, TickSource

app = typer.Typer(
    name="vocalflow",
    help="Real-time vocal pitch training",
    rich_markup_mode="markdown",
)
console = Console()

METER_WIDTH = 41


def _setup_logging(verbose: bool, quiet: bool = False) -> None:
    """Route library logging through rich, on stderr."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def _load_song(melody: Optional[Path], notes: Optional[str]) -> Song:
    """Load a song from a file or a comma-separated list of pitch codes."""
    from .input import MelodyLoader

    loader = MelodyLoader()
    try:
        if notes:
            codes = [int(code) for code in notes.replace(" ", "").split(",") if code]
            song = loader.from_codes(codes, title="Custom melody")
        elif melody is not None:
            song = loader.load(str(melody))
        else:
            console.print("[red]Error: Give a melody file or --notes[/red]")
            raise typer.Exit(1)
    except (FileNotFoundError, ValueError, ImportError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    if len(song) == 0:
        console.print("[red]Error: No notes found in melody[/red]")
        raise typer.Exit(1)
    return song


def _parse_difficulty(name: str) -> Difficulty:
    try:
        return Difficulty.from_name(name)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _cents_meter(cents: float, tolerance: float, voiced: bool) -> Text:
    """Render a +/-100 cent meter with the tolerance zone marked."""
    half = METER_WIDTH // 2
    cells = []
    for i in range(METER_WIDTH):
        offset = (i - half) * 100.0 / half
        cells.append("=" if abs(offset) <= tolerance else "-")
    cells[half] = "|"

    text = Text("flat ")
    if voiced:
        clamped = max(-100.0, min(100.0, cents))
        pos = half + int(round(clamped * half / 100.0))
        in_tune = abs(cents) <= tolerance
        text.append("".join(cells[:pos]), style="dim")
        text.append("O", style="bold green" if in_tune else "bold red")
        text.append("".join(cells[pos + 1:]), style="dim")
    else:
        text.append("".join(cells), style="dim")
    text.append(" sharp")
    return text


def _render_panel(song: Song, engine: Engine) -> Panel:
    """Build the live practice display."""
    from .analysis import PitchReading

    state = engine.state
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style="bold")
    grid.add_column()

    grid.add_row("Song", song.title)
    grid.add_row("Progress", f"Note {state.current_index + 1} of {len(song)}")
    grid.add_row("Mode", engine.difficulty.value.upper())

    if state.completed:
        grid.add_row("Status", "[bold green]Song completed![/bold green]")
        return Panel(grid, title="VocalFlow", border_style="green")

    target = engine.target
    target_label = f"{target.pitch_name} ({target.frequency:.0f} Hz)"
    if target.lyric:
        target_label += f"  \"{target.lyric}\""
    grid.add_row("Target", target_label)

    observation = engine.observation
    tolerance = engine.difficulty.tolerance_cents
    reading = PitchReading.from_observation(observation, tolerance)

    if observation.voiced:
        grid.add_row(
            "You",
            f"{pitch_name(observation.pitch)} ({observation.frequency:.0f} Hz) "
            f"{observation.cents:+.0f} cents",
        )
    else:
        grid.add_row("You", "---")

    grid.add_row("Tuning", _cents_meter(observation.cents, tolerance, observation.voiced))
    label_style = "bold green" if reading.in_tolerance else "white"
    grid.add_row("", Text(reading.label, style=label_style))
    grid.add_row("Hold", f"{state.hold_ms:.0f} / {engine.difficulty.required_hold_ms:.0f} ms")

    return Panel(grid, title="VocalFlow", border_style="cyan")


@app.command()
def practice(
    melody: Optional[Path] = typer.Argument(None, help="Melody file: JSON, MusicXML or MIDI"),
    notes: Optional[str] = typer.Option(
        None, "-n", "--notes", help="Comma-separated pitch codes instead of a file, e.g. 60,62,64"
    ),
    difficulty: str = typer.Option("easy", "-d", "--difficulty", help="easy or hard"),
    device: Optional[int] = typer.Option(None, "--device", help="Input device index"),
    sample_rate: int = typer.Option(DEFAULT_SR, "--sample-rate", help="Capture sample rate"),
    buffer_size: int = typer.Option(DEFAULT_BUFFER_SIZE, "--buffer-size", help="Samples per analysed buffer"),
    tick_ms: float = typer.Option(DEFAULT_TICK_MS, "--tick-ms", help="Milliseconds per tick"),
    measure_time: bool = typer.Option(
        False, "--measure-time", help="Credit measured time between ticks instead of --tick-ms"
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose output"),
):
    """Practice a melody live from the microphone.

    **Examples:**

        vocalflow practice song.musicxml

        vocalflow practice --notes 60,62,64,65,67 -d hard
    """
    _setup_logging(verbose)
    song = _load_song(melody, notes)
    level = _parse_difficulty(difficulty)

    from .input.microphone import MicrophoneSource

    config = EngineConfig(
        tick_ms=tick_ms,
        sample_rate=sample_rate,
        buffer_size=buffer_size,
        measure_tick_time=measure_time,
    )
    source = MicrophoneSource(sample_rate=sample_rate, buffer_size=buffer_size, device=device)
    engine = Engine(song.notes, source, difficulty=level, config=config)
    driver = TickSource(interval_s=tick_ms / 1000.0)

    console.print(f"[blue]Sing along:[/blue] {song.title} ({len(song)} notes). Ctrl+C to stop.")
    try:
        with Live(_render_panel(song, engine), console=console, refresh_per_second=20) as live:
            driver.on_tick = lambda result: live.update(_render_panel(song, engine))
            driver.run(engine)
    except SessionSetupError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")
    finally:
        engine.stop()

    if engine.completed:
        console.print("[bold green]Song completed! Great job.[/bold green]")


@app.command()
def replay(
    melody: Path = typer.Argument(..., help="Melody file: JSON, MusicXML or MIDI"),
    audio_file: Path = typer.Argument(..., help="Recorded singing, e.g. WAV"),
    difficulty: str = typer.Option("easy", "-d", "--difficulty", help="easy or hard"),
    sample_rate: int = typer.Option(DEFAULT_SR, "--sample-rate", help="Resample the recording to this rate"),
    buffer_size: int = typer.Option(DEFAULT_BUFFER_SIZE, "--buffer-size", help="Samples per analysed buffer"),
    tick_ms: float = typer.Option(DEFAULT_TICK_MS, "--tick-ms", help="Milliseconds per tick"),
    json_output: bool = typer.Option(False, "--json", help="Output results as JSON (for scripting)"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose output"),
):
    """Run a recording through the practice engine as if it were sung live."""
    from .input import AudioLoader, ArrayFrameSource

    _setup_logging(verbose, quiet=json_output)
    song = _load_song(melody, None)
    level = _parse_difficulty(difficulty)

    try:
        audio, sr = AudioLoader(target_sr=sample_rate).load(str(audio_file))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    # One tick consumes tick_ms of audio; buffers overlap like a live analyser
    hop = max(1, int(round(sr * tick_ms / 1000.0)))
    source = ArrayFrameSource(audio, sr, buffer_size=buffer_size, hop_length=hop)
    config = EngineConfig(tick_ms=tick_ms, sample_rate=sr, buffer_size=buffer_size)
    engine = Engine(song.notes, source, difficulty=level, config=config)

    advances: List[Dict[str, Any]] = []
    tick_count = 0

    def record(result: TickResult) -> None:
        nonlocal tick_count
        tick_count += 1
        if result.advanced:
            # On completion the index stays on the last note
            index = result.current_index if result.completed else result.current_index - 1
            sung = engine.melody[index]
            advances.append(
                {
                    "note": sung.pitch_name,
                    "pitch": sung.pitch,
                    "lyric": sung.lyric,
                    "time": round(tick_count * tick_ms / 1000.0, 3),
                }
            )

    try:
        TickSource(interval_s=0, on_tick=record).run(engine)
    except SessionSetupError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        engine.stop()

    summary = {
        "title": song.title,
        "difficulty": level.value,
        "completed": engine.completed,
        "notes_total": len(song),
        "notes_sung": len(advances),
        "ticks": tick_count,
        "advances": advances,
    }

    if json_output:
        console.print_json(json.dumps(summary))
        return

    table = Table(title=f"Replay: {song.title}")
    table.add_column("#", style="dim")
    table.add_column("Note", style="cyan")
    table.add_column("Lyric", style="magenta")
    table.add_column("Reached at (s)", style="green")
    for i, adv in enumerate(advances, start=1):
        table.add_row(str(i), adv["note"], adv["lyric"] or "", f"{adv['time']:.3f}")
    console.print(table)

    status = "[green]completed[/green]" if engine.completed else "[yellow]not completed[/yellow]"
    console.print(f"  {len(advances)} of {len(song)} notes sung, {status}")


@app.command()
def detect(
    audio_file: Path = typer.Argument(..., help="Input audio file"),
    sample_rate: int = typer.Option(DEFAULT_SR, "--sample-rate", help="Resample to this rate"),
    buffer_size: int = typer.Option(DEFAULT_BUFFER_SIZE, "--buffer-size", help="Samples per analysed buffer"),
    hop: int = typer.Option(0, "--hop", help="Samples between buffers (0 = buffer size)"),
    show_all: bool = typer.Option(False, "--all", help="Include frames without pitch"),
):
    """Show the detected pitch of an audio file, buffer by buffer."""
    import numpy as np
    from .input import AudioLoader
    from .analysis import PitchDetector, PitchClassifier, Detection

    try:
        audio, sr = AudioLoader(target_sr=sample_rate).load(str(audio_file))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    times, freqs = PitchDetector().contour(audio, sr, buffer_size=buffer_size, hop_length=hop or None)
    classifier = PitchClassifier()

    table = Table(title=f"Pitch: {audio_file.name}")
    table.add_column("Time (s)", style="green")
    table.add_column("Frequency (Hz)", style="yellow")
    table.add_column("Note", style="cyan")
    table.add_column("Cents", style="magenta")

    voiced = 0
    for t, f in zip(times, freqs):
        observation = classifier.observe(Detection(None if np.isnan(f) else float(f)))
        if observation.voiced:
            voiced += 1
            table.add_row(
                f"{t:.3f}",
                f"{f:.1f}",
                pitch_name(observation.pitch),
                f"{observation.cents:+.1f}",
            )
        elif show_all:
            table.add_row(f"{t:.3f}", "---", "", "")

    console.print(table)
    console.print(f"  {voiced} of {len(times)} buffers voiced")


@app.command()
def melody(
    melody_file: Path = typer.Argument(..., help="Melody file: JSON, MusicXML or MIDI"),
):
    """Show the notes of a melody file."""
    song = _load_song(melody_file, None)

    table = Table(title=song.title)
    table.add_column("#", style="dim")
    table.add_column("Note", style="cyan")
    table.add_column("Code", style="green")
    table.add_column("Frequency (Hz)", style="yellow")
    table.add_column("Duration", style="blue")
    table.add_column("Lyric", style="magenta")

    for i, note in enumerate(song.notes, start=1):
        table.add_row(
            str(i),
            note.pitch_name,
            str(note.pitch),
            f"{note.frequency:.2f}",
            f"{note.duration:g}",
            note.lyric or "",
        )

    console.print(table)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
