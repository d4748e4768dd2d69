"""Key/value commands: get, set, list and watch.

Every command builds its backend from the MINIO_* environment, runs one
operation and exits non-zero with the error message on failure.
"""

import json
import sys
from pathlib import Path

import click

from bucket_kv.cli.utils import coro, error, info, success
from bucket_kv.core.exceptions import KVBackendError
from bucket_kv.core.settings import get_backend_settings
from bucket_kv.kv import KVBackend, ValueUpdated


def build_backend() -> KVBackend:
    """Build a backend from the environment settings."""
    settings = get_backend_settings()
    return KVBackend.new(settings.endpoints, settings)


@click.command(name="get")
@click.argument("prefix", default="")
@click.option("--pretty", is_flag=True, help="Indent the merged JSON document")
@coro
async def get_cmd(prefix: str, pretty: bool) -> None:
    """Print every JSON object under PREFIX merged into one document.

    Examples:
        bucket-kv get
        bucket-kv get config/service/ --pretty
    """
    try:
        async with build_backend() as backend:
            value = await backend.get(prefix)
    except KVBackendError as e:
        error(f"Get failed: {e.message}")
        sys.exit(1)

    if pretty:
        click.echo(json.dumps(json.loads(value), indent=2, sort_keys=True))
    else:
        click.echo(value.decode("utf-8"))


@click.command(name="set")
@click.argument("key")
@click.argument("value", required=False)
@click.option(
    "--file",
    "file_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Read the value from a file instead of the VALUE argument",
)
@coro
async def set_cmd(key: str, value: str | None, file_path: Path | None) -> None:
    """Write VALUE (or the contents of --file) to KEY, exactly as given.

    Examples:
        bucket-kv set config/app.json '{"debug": true}'
        bucket-kv set config/app.json --file app.json
    """
    if (value is None) == (file_path is None):
        error("Provide exactly one of VALUE or --file")
        sys.exit(2)

    data = file_path.read_bytes() if file_path is not None else value.encode("utf-8")

    try:
        async with build_backend() as backend:
            await backend.set(key, data)
    except KVBackendError as e:
        error(f"Set failed: {e.message}")
        sys.exit(1)

    success(f"Wrote {len(data)} bytes to {key}")


@click.command(name="list")
@click.argument("prefix", default="")
@click.option("--values", "show_values", is_flag=True, help="Print each object's body after its key")
@coro
async def list_cmd(prefix: str, show_values: bool) -> None:
    """List every object under PREFIX.

    Examples:
        bucket-kv list config/
        bucket-kv list config/ --values
    """
    try:
        async with build_backend() as backend:
            pairs = await backend.list(prefix)
    except KVBackendError as e:
        error(f"List failed: {e.message}")
        sys.exit(1)

    for pair in pairs:
        if show_values:
            click.echo(f"{pair.key}\t{pair.value.decode('utf-8', 'replace')}")
        else:
            click.echo(pair.key)
    info(f"{len(pairs)} object(s)")


@click.command(name="watch")
@click.argument("key")
@click.option("--count", type=int, default=None, help="Exit after this many events")
@coro
async def watch_cmd(key: str, count: int | None) -> None:
    """Print KEY's value every time the bucket changes.

    Runs until interrupted, or until --count events have been printed.

    Examples:
        bucket-kv watch config/app.json
    """
    seen = 0
    try:
        async with build_backend() as backend:
            stream = backend.watch(key)
            info(f"Watching {key} (Ctrl+C to stop)")
            async for event in stream:
                if isinstance(event, ValueUpdated):
                    click.echo(event.value.decode("utf-8", "replace"))
                else:
                    error(str(event.error))
                seen += 1
                if count is not None and seen >= count:
                    stream.close()
                    break
    except KVBackendError as e:
        error(f"Watch failed: {e.message}")
        sys.exit(1)
