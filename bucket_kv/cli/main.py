"""Main CLI entry point for bucket-kv."""

import click

from bucket_kv import __version__
from bucket_kv.cli.commands import kv, status
from bucket_kv.core.settings import get_logging_settings
from bucket_kv.infra.logging.config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="bucket-kv")
@click.option("-v", "--verbose", is_flag=True, help="Log at DEBUG level")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """bucket-kv - key/value configuration stored in an S3-compatible bucket.

    Connection settings come from the environment (MINIO_ENDPOINTS,
    MINIO_ACCESS_KEY_ID, MINIO_SECRET_ACCESS_KEY, MINIO_BUCKET_NAME,
    MINIO_ROOT_PATH) or a .env file.

    \b
    Quick Start:
      bucket-kv info                         # Show configuration
      bucket-kv health                       # Check connectivity
      bucket-kv set config/app.json '{"a":1}'
      bucket-kv get                          # Merged JSON of every object
      bucket-kv watch config/app.json        # Follow changes
    """
    ctx.ensure_object(dict)
    log_settings = get_logging_settings()
    if verbose:
        setup_logging(log_settings, log_level="DEBUG")
    else:
        setup_logging(log_settings)


cli.add_command(kv.get_cmd)
cli.add_command(kv.set_cmd)
cli.add_command(kv.list_cmd)
cli.add_command(kv.watch_cmd)
cli.add_command(status.info_cmd)
cli.add_command(status.health_cmd)


if __name__ == "__main__":
    cli()
