"""Command line entry point for the chat relay."""

from __future__ import annotations

import typer
import uvicorn

from .config import get_settings

app = typer.Typer(help="Chat relay CLI")


@app.callback()
def main_callback() -> None:
    """Root callback that requires a command."""


@app.command()
def serve(
    host: str | None = typer.Option(None, help="Bind address (defaults to HOST)."),
    port: int | None = typer.Option(None, help="Listening port (defaults to PORT)."),
) -> None:
    """Run the relay with uvicorn until SIGINT/SIGTERM."""

    settings = get_settings()
    uvicorn.run(
        "chat_relay.app:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        timeout_graceful_shutdown=settings.shutdown_grace_seconds,
        log_config=None,
    )


if __name__ == "__main__":  # pragma: no cover
    app()
