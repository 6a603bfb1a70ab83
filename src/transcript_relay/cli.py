"""Command-line interface for transcript-relay."""

import sys

import click

from transcript_relay.config import load_config
from transcript_relay.hook.runner import handle_hook
from transcript_relay.logging import setup_logging
from transcript_relay.models import HookTrigger

TRIGGER_CHOICES = ["auto"] + [trigger.value for trigger in HookTrigger]


@click.group()
def cli() -> None:
    """Relay developer-tool session transcripts to remote storage."""


@cli.command()
@click.option(
    "--trigger",
    type=click.Choice(TRIGGER_CHOICES),
    default="auto",
    show_default=True,
    help="Hook point that invoked this command",
)
def hook(trigger: str) -> None:
    """Run as a hook: read hook JSON from stdin and upload the transcript.

    Always exits 0 so upload problems never fail the host tool.
    """
    try:
        config = load_config()
        # The host tool owns stderr; log to file only
        setup_logging("hook", log_dir=config.log_dir, console=False)
        raw_input = sys.stdin.read()
    except Exception:
        sys.exit(0)

    handle_hook(raw_input, config, trigger=None if trigger == "auto" else HookTrigger(trigger))
    sys.exit(0)


@cli.command()
@click.option("--host", default=None, help="Bind address (defaults to server.host)")
@click.option("--port", type=int, default=None, help="Bind port (defaults to server.port)")
def serve(host: str | None, port: int | None) -> None:
    """Run the ingestion endpoint."""
    import uvicorn

    from transcript_relay.server.app import create_app

    config = load_config()
    setup_logging("server", log_dir=config.log_dir)
    app = create_app(config)
    uvicorn.run(app, host=host or config.server.host, port=port or config.server.port)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
