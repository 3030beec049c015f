"""Command-line entry point."""

import asyncio
from pathlib import Path
from typing import Optional

import typer

from meetcap.capture.joiner import AdmissionTimeoutError, JoinError
from meetcap.capture.runner import record_meeting
from meetcap.config import get_settings
from meetcap.logging_config import configure_logging
from meetcap.storage.session import SessionError

app = typer.Typer(add_completion=False, no_args_is_help=True)


@app.command()
def main(
    meeting_url: str = typer.Argument(..., help="Meeting URL to join"),
    bot_name: Optional[str] = typer.Option(None, "--bot-name", help="Display name to join with"),
    seconds: Optional[float] = typer.Option(
        None, "--seconds", "-s", help="Capture duration after admission"
    ),
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", help="Directory for recording sessions"
    ),
    headless: Optional[bool] = typer.Option(
        None, "--headless/--headed", help="Run the browser without a window"
    ),
) -> None:
    """Join a meeting, record its audio per speaker, and save the session."""
    settings = get_settings()
    overrides = {
        k: v for k, v in {"output_dir": output_dir, "headless": headless}.items() if v is not None
    }
    if overrides:
        settings = settings.model_copy(update=overrides)

    configure_logging(settings.log_level)

    try:
        root = asyncio.run(record_meeting(meeting_url, bot_name, seconds, settings))
    except (SessionError, AdmissionTimeoutError, JoinError) as e:
        typer.echo(f"Capture failed: {e}", err=True)
        raise typer.Exit(code=1) from e

    typer.echo(f"Recording saved to {root}")


if __name__ == "__main__":
    app()
