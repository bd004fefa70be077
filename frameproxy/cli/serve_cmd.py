"""CLI command to start the forwarding proxy."""

import click


@click.command()
@click.option("--port", type=int, help="Port to listen on (default: $PORT or 3000)")
@click.option("--host", help="Host to bind to (default: 0.0.0.0)")
@click.option("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.option(
    "--public-base-url",
    help="Fixed scheme://host of this proxy used in rewritten URLs"
)
@click.pass_context
def serve(ctx, port, host, log_level, public_base_url):
    """Start the forwarding proxy.

    \b
    Quickstart:
        frameproxy serve --port 3000 --public-base-url http://localhost:3000
        open "http://localhost:3000/?site=https://example.com"
    """
    overrides = {
        "port": port,
        "host": host,
        "log_level": log_level,
        "public_base_url": public_base_url,
    }
    settings = ctx.obj["settings"].model_copy(
        update={k: v for k, v in overrides.items() if v is not None}
    )

    from frameproxy.proxy.server import ProxyServer, configure_logging

    configure_logging(settings.log_level)
    server = ProxyServer(settings)

    click.echo("frameproxy - forwarding proxy")
    click.echo(f"  Listening on:     {server.address}")
    click.echo(f"  Public base URL:  {settings.public_base_url or '(from request Host)'}")
    click.echo(f"  Usage:            {server.address}/?site=https://example.com")
    click.echo()

    server.run()
