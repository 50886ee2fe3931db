"""Command-line interface for SMTP Verifier."""

import sys

import click
import structlog

from smtp_verifier.config import Settings, get_settings
from smtp_verifier.core import configure_logging
from smtp_verifier.exceptions import SmtpVerifierError
from smtp_verifier.models import DeliveryMode, build_probe_message
from smtp_verifier.transport import DeliveryVerifier, build_config, find_certificate
from smtp_verifier.transport.certificates import default_store_scope

logger = structlog.get_logger(__name__)

MODE_CHOICE = click.Choice([m.value for m in DeliveryMode])


def _load_settings() -> Settings:
    try:
        return get_settings()
    except Exception as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(2)


@click.group()
@click.option("--debug/--no-debug", default=False, envvar="DEBUG", help="Enable debug logging")
@click.option(
    "--json-logs/--no-json-logs", default=False, envvar="JSON_LOGS", help="JSON log format"
)
@click.pass_context
def main(ctx: click.Context, debug: bool, json_logs: bool) -> None:
    """SMTP Verifier - check that a mail transport accepts a message."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["json_logs"] = json_logs
    configure_logging(json_format=json_logs, debug=debug)


@main.command("show-config")
@click.option("--mode", "mode", type=MODE_CHOICE, required=True, help="Delivery mode")
def show_config(mode: str) -> None:
    """Print the transport configuration a mode resolves to."""
    settings = _load_settings()
    try:
        config = build_config(mode, settings)
    except SmtpVerifierError as e:
        click.echo(f"Cannot build {mode} config: {e.message}", err=True)
        sys.exit(2)

    for key, value in config.describe().items():
        if value is not None:
            click.echo(f"{key}: {value}")


@main.command("find-cert")
@click.argument("thumbprint")
@click.option("--store", "store_path", default=None, help="PEM bundle or directory")
@click.option("--store-name", default="root", show_default=True, help="Store label")
def find_cert(thumbprint: str, store_path: str | None, store_name: str) -> None:
    """Look up a certificate by thumbprint; exit 1 when absent."""
    try:
        scope = default_store_scope(store_name, store_path)
        cert = find_certificate(thumbprint, store=scope)
    except SmtpVerifierError as e:
        click.echo(f"Lookup failed: {e.message}", err=True)
        sys.exit(2)

    if cert is None:
        click.echo(f"Not found in {scope.name} ({scope.location})")
        sys.exit(1)

    click.echo(f"Thumbprint: {cert.thumbprint}")
    click.echo(f"Subject:    {cert.subject}")
    click.echo(f"Source:     {cert.source}")


@main.command()
@click.option("--mode", "mode", type=MODE_CHOICE, required=True, help="Delivery mode")
@click.option("--to", "recipient", default=None, help="Recipient (defaults to the sender)")
@click.option("--subject", default="test", show_default=True)
@click.option("--body", default="Hi!", show_default=True)
def send(mode: str, recipient: str | None, subject: str, body: str) -> None:
    """Send a probe message through MODE and report the outcome."""
    settings = _load_settings()
    logger.info("send_requested", mode=mode)

    try:
        config = build_config(mode, settings)
    except SmtpVerifierError as e:
        click.echo(f"Cannot build {mode} config: {e.message}", err=True)
        sys.exit(2)

    message = build_probe_message(
        settings.email_username, recipient=recipient, subject=subject, body=body
    )
    outcome = DeliveryVerifier().send(config, message)

    if outcome.success:
        click.echo(f"OK: message delivered via {mode}")
        sys.exit(0)

    failure = outcome.failure.value if outcome.failure else "unknown"
    click.echo(f"FAILED ({failure}): {outcome.cause}")
    sys.exit(1)


if __name__ == "__main__":
    main()
