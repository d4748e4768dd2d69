"""Status commands: configuration overview and store health."""

import sys

import click

from bucket_kv.cli.commands.kv import build_backend
from bucket_kv.cli.utils import coro, error, header, success, warning
from bucket_kv.core.exceptions import KVBackendError
from bucket_kv.core.settings import get_backend_settings


@click.command(name="info")
def info_cmd() -> None:
    """Show the backend configuration (credentials are never printed)."""
    settings = get_backend_settings()

    header("Backend Configuration")
    click.echo(f"Endpoints: {', '.join(settings.endpoints) or '(none)'}")
    if settings.endpoints:
        click.echo(f"Endpoint in use: {settings.endpoint_url(settings.endpoints[0])}")
    click.echo(f"Bucket: {settings.bucket_name or '(not set)'}")
    click.echo(f"Root path: {settings.root_path or '(not set)'}")
    click.echo(f"Region: {settings.region}")
    click.echo(f"Use SSL: {settings.use_ssl}")
    click.echo(f"Notification events: {', '.join(settings.notification_events)}")

    if settings.has_credentials:
        success("Credentials: Configured")
    else:
        warning("Credentials: Not configured")
        click.echo("Set MINIO_ACCESS_KEY_ID and MINIO_SECRET_ACCESS_KEY", err=True)


@click.command(name="health")
@coro
async def health_cmd() -> None:
    """Check that the object store and bucket are reachable."""
    try:
        async with build_backend() as backend:
            healthy = await backend.health_check()
    except KVBackendError as e:
        error(f"Health check failed: {e.message}")
        sys.exit(1)

    if not healthy:
        error("Object store is unreachable or the bucket is missing")
        sys.exit(1)
    success("Object store is healthy")
