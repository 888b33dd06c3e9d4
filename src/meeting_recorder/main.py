"""
Meeting Recorder.

Entry point for recording meetings and transcribing stored recordings.
"""

import asyncio
import signal
from uuid import UUID

import typer
from ddtrace import patch_all

from meeting_recorder.dependencies import (
    get_config,
    get_lifecycle_channel,
    get_live_recorder,
    get_orphan_sweep,
    get_repository,
    get_transcription_client,
    get_transcription_handler,
)
from meeting_recorder.domain.lifecycle import (
    LifecycleEvent,
    LifecycleEventType,
    RecorderLifecycleObserver,
)
from meeting_recorder.domain.models import RecordingState, TranscriptionMode
from meeting_recorder.exceptions import (
    CapabilityDeniedError,
    MeetingNotFoundError,
    MissingAudioFileError,
    RecordingStartError,
    RecordPersistenceError,
    TranscriptionError,
)
from meeting_recorder.logging import setup_logging

patch_all()

logger = setup_logging()

app = typer.Typer(
    name="meeting-recorder",
    help="Interruption-safe meeting recording with remote and segmented transcription.",
    no_args_is_help=True,
)

# Signals standing in for platform lifecycle notifications.
_LIFECYCLE_SIGNALS = {
    signal.SIGTSTP: LifecycleEvent(type=LifecycleEventType.DID_ENTER_BACKGROUND),
    signal.SIGCONT: LifecycleEvent(type=LifecycleEventType.WILL_ENTER_FOREGROUND),
    signal.SIGUSR1: LifecycleEvent(type=LifecycleEventType.INTERRUPTION_BEGAN),
    signal.SIGUSR2: LifecycleEvent(
        type=LifecycleEventType.INTERRUPTION_ENDED, should_resume=True
    ),
}


@app.callback()
def startup(ctx: typer.Context) -> None:
    """Reconciles orphaned recordings before running a command."""
    if ctx.invoked_subcommand != "recover":
        get_orphan_sweep().run()


@app.command()
def record(
    pause_on_background: bool = typer.Option(
        None,
        "--pause-on-background/--keep-recording-in-background",
        help="Pause while backgrounded (SIGTSTP) instead of recording through it.",
    ),
) -> None:
    """
    Record until interrupted (Ctrl-C). SIGTERM finalizes immediately.

    SIGUSR1/SIGUSR2 simulate an audio interruption beginning and ending.
    """
    if pause_on_background is None:
        pause_on_background = get_config().recorder.pause_on_background

    try:
        result = asyncio.run(_record_session(pause_on_background))
    except CapabilityDeniedError as e:
        typer.echo(f"Cannot record: {e}", err=True)
        raise typer.Exit(code=1)
    except RecordingStartError as e:
        typer.echo(f"Recording failed to start: {e}", err=True)
        raise typer.Exit(code=1)
    except RecordPersistenceError as e:
        typer.echo(
            f"Recording kept at {e.audio_file_path} but not saved; "
            "it will be recovered on next start.",
            err=True,
        )
        raise typer.Exit(code=1)

    if result is None:
        typer.echo("Recording finalized on termination.")
        return
    typer.echo(
        typer.style("✓ Meeting saved", fg=typer.colors.GREEN, bold=True)
    )
    typer.echo(f"Record: {result.record_id}")
    typer.echo(f"Audio: {result.audio_file_path}")


@app.command()
def transcribe(
    record_id: UUID = typer.Argument(..., help="Meeting record ID"),
    mode: TranscriptionMode = typer.Option(
        TranscriptionMode.REMOTE, "--mode", "-m", help="Transcription path"
    ),
    optimize: bool = typer.Option(
        False, "--optimize", help="Refine punctuation and wording with the LLM"
    ),
) -> None:
    """Transcribe a stored meeting and save the transcript on its record."""
    try:
        outcome = asyncio.run(_transcribe(record_id, mode, optimize))
    except (MeetingNotFoundError, MissingAudioFileError) as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    except TranscriptionError as e:
        typer.echo(f"Transcription failed: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(outcome.transcript)


@app.command("list")
def list_meetings() -> None:
    """List stored meetings, newest first."""
    records = get_repository().list_records()
    if not records:
        typer.echo("No meetings recorded yet.")
        return
    for meeting in records:
        status = "transcribed" if meeting.transcript.strip() else "no transcript"
        typer.echo(
            f"{meeting.id}  {meeting.title}  {meeting.duration:.0f}s  ({status})"
        )


@app.command()
def recover() -> None:
    """Create placeholder records for recordings that have none."""
    created = get_orphan_sweep().run()
    typer.echo(f"Recovered {len(created)} recording(s).")


async def _record_session(pause_on_background: bool):
    loop = asyncio.get_running_loop()
    store = get_repository()
    channel = get_lifecycle_channel()
    recorder = get_live_recorder()
    subscription = channel.subscribe(
        RecorderLifecycleObserver(recorder, store, pause_on_background)
    )
    stop_requested = asyncio.Event()
    pending: set[asyncio.Task] = set()

    def deliver(event: LifecycleEvent) -> None:
        task = loop.create_task(channel.publish(event))
        pending.add(task)
        task.add_done_callback(pending.discard)

    def terminate() -> None:
        channel.terminate()
        stop_requested.set()

    loop.add_signal_handler(signal.SIGINT, stop_requested.set)
    loop.add_signal_handler(signal.SIGTERM, terminate)
    for signum, event in _LIFECYCLE_SIGNALS.items():
        loop.add_signal_handler(signum, deliver, event)

    try:
        await recorder.start()
        typer.echo("Recording... press Ctrl-C to stop.")
        await stop_requested.wait()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        if recorder.state is RecordingState.STOPPED:
            return None
        return await recorder.stop(store)
    finally:
        subscription.cancel()
        for signum in (signal.SIGINT, signal.SIGTERM, *_LIFECYCLE_SIGNALS):
            loop.remove_signal_handler(signum)


async def _transcribe(record_id: UUID, mode: TranscriptionMode, optimize: bool):
    client = get_transcription_client()
    handler = get_transcription_handler(client, optimize=optimize)
    try:
        return await handler.process(
            record_id,
            mode=mode,
            optimize=optimize,
            progress=_log_progress,
        )
    finally:
        await handler.drain()
        await client.aclose()


def _log_progress(fraction: float) -> None:
    logger.info("Transcription progress", extra={"progress": round(fraction, 3)})


if __name__ == "__main__":
    app()
