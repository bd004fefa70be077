"""Commands for converting between target URLs and proxied URLs."""

from urllib.parse import urlsplit

import click
from rich.console import Console
from rich.table import Table

from frameproxy.proxy.errors import TargetError
from frameproxy.proxy.target import encode_proxied_url, parse_target, resolve_target
from frameproxy.utils.helpers import describe_target

console = Console()


@click.command()
@click.argument("url")
@click.option(
    "--proxy-base",
    help="scheme://host of the proxy (default: public_base_url or http://localhost:<port>)"
)
@click.pass_context
def encode(ctx, url, proxy_base):
    """Print the proxied form of URL."""
    settings = ctx.obj["settings"]
    result = parse_target(url)
    if not result.ok:
        console.print(f"[red]Error:[/red] {result.error.message}")
        raise SystemExit(1)

    base = proxy_base or settings.public_base_url or f"http://localhost:{settings.port}"
    click.echo(encode_proxied_url(base, url))


@click.command()
@click.argument("proxied_url")
def decode(proxied_url):
    """Show which upstream resource PROXIED_URL forwards to."""
    parts = urlsplit(proxied_url)
    try:
        target = resolve_target(parts.path, parts.query).unwrap()
    except TargetError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise SystemExit(1)

    table = Table(title="Proxied target", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for field, value in describe_target(target).items():
        table.add_row(field, value)
    console.print(table)
