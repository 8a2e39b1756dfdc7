"""osspresign CLI - sign URLs and run the signing service."""

import json
import sys
import tomllib
from pathlib import Path
from typing import Any, cast

import click
from rich.console import Console
from rich.panel import Panel

from osspresign.common.logging import setup_logging
from osspresign.common.settings import Settings
from osspresign.signer import Presigner, SignerError, SigningRequest, get_hash_provider

console = Console()
err_console = Console(stderr=True)


def _load_config(path: str | None) -> dict[str, Any]:
    if not path:
        return {}
    config_path = Path(path).expanduser()
    if not config_path.exists():
        err_console.print(f"[red]Config not found: {config_path}[/red]")
        sys.exit(1)

    raw = config_path.read_bytes()
    if config_path.suffix.lower() == ".toml":
        data = tomllib.loads(raw.decode("utf-8"))
    else:
        data = json.loads(raw.decode("utf-8"))

    if isinstance(data, dict) and isinstance(data.get("osspresign"), dict):
        return cast(dict[str, Any], data["osspresign"])
    return cast(dict[str, Any], data) if isinstance(data, dict) else {}


def _parse_pairs(pairs: tuple[str, ...], what: str) -> dict[str, str | None]:
    """Turn ``KEY=VALUE`` items into a dict; a bare ``KEY`` maps to None."""
    result: dict[str, str | None] = {}
    for item in pairs:
        key, sep, value = item.partition("=")
        if not key:
            raise click.BadParameter(f"empty {what} name in {item!r}")
        result[key] = value if sep else None
    return result


@click.group()
@click.option(
    "--config",
    type=click.Path(exists=False, dir_okay=False),
    help="Path to config (JSON or TOML with optional [osspresign] section)",
)
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, ...)")
@click.pass_context
def cli(ctx: click.Context, config: str | None, log_level: str | None) -> None:
    """osspresign - OSS V4 presigned URLs."""
    config_data = _load_config(config)
    settings = Settings(**config_data)
    setup_logging(log_level or settings.log_level, settings.log_json)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


@cli.command("sign")
@click.option("--access-key-id", help="Access key id (defaults to OSS_ACCESS_KEY_ID)")
@click.option("--access-key-secret", help="Access key secret (defaults to OSS_ACCESS_KEY_SECRET)")
@click.option("--security-token", help="STS security token")
@click.option("--bucket", help="Bucket name")
@click.option("--region", help="Region code, e.g. oss-cn-hangzhou")
@click.option("--endpoint", help="Endpoint override, e.g. https://cdn.example.com")
@click.option("--cloud-box-id", help="Cloud box id")
@click.option("--object", "object_name", help="Object key (omit for a bucket-level URL)")
@click.option("--method", default="GET", show_default=True, help="HTTP method")
@click.option("--expires", type=int, default=60, show_default=True, help="Validity in seconds")
@click.option("--header", "headers", multiple=True, help="Signed header KEY=VALUE (repeatable)")
@click.option("--query", "queries", multiple=True, help="Query parameter KEY=VALUE (repeatable)")
@click.option(
    "--additional-header",
    "additional_headers",
    multiple=True,
    help="Extra header name to force into the signature (repeatable)",
)
@click.option(
    "--hash-provider",
    type=click.Choice(["hashlib", "cryptography"]),
    default=None,
    help="Hash backend",
)
@click.option("--verbose", "-v", is_flag=True, help="Also print canonical request and string to sign")
@click.pass_context
def sign(
    ctx: click.Context,
    access_key_id: str | None,
    access_key_secret: str | None,
    security_token: str | None,
    bucket: str | None,
    region: str | None,
    endpoint: str | None,
    cloud_box_id: str | None,
    object_name: str | None,
    method: str,
    expires: int,
    headers: tuple[str, ...],
    queries: tuple[str, ...],
    additional_headers: tuple[str, ...],
    hash_provider: str | None,
    verbose: bool,
) -> None:
    """Print a presigned URL."""
    settings: Settings = ctx.obj["settings"]

    request = SigningRequest(
        access_key_id=access_key_id or settings.access_key_id,
        access_key_secret=access_key_secret or settings.access_key_secret,
        security_token=security_token or settings.security_token,
        bucket=bucket or settings.bucket,
        region=region or settings.region,
        endpoint=endpoint or settings.endpoint,
        cloud_box_id=cloud_box_id or settings.cloud_box_id,
        object=object_name,
        method=method.upper(),
        expires=expires,
        headers=_parse_pairs(headers, "header"),
        queries=_parse_pairs(queries, "query"),
        additional_headers=additional_headers,
    )

    try:
        presigner = Presigner(get_hash_provider(hash_provider or settings.hash_provider))
        result = presigner.presign(request)
    except SignerError as exc:
        err_console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    if verbose:
        err_console.print(Panel(result.canonical_request, title="Canonical request"))
        err_console.print(Panel(result.string_to_sign, title="String to sign"))
        err_console.print(f"[dim]Signature:[/dim] {result.signature}")

    # Plain output so the URL can be piped.
    click.echo(result.url)


@cli.command("serve")
@click.option("--host", default=None, help="Bind address")
@click.option("--port", type=int, default=None, help="Bind port")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Run the signing HTTP service."""
    from osspresign.service.main import run

    run(ctx.obj["settings"], host=host, port=port)


def main() -> None:
    """CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
