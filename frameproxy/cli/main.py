"""Main CLI entry point for frameproxy."""

import click

from frameproxy import __version__
from frameproxy.config.settings import Settings


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    type=click.Path(exists=True),
    help="Path to configuration file"
)
@click.pass_context
def cli(ctx, config):
    """frameproxy - forwarding proxy for embedding remote sites.

    Serves any site through a single origin, rewriting its pages so every
    follow-on request keeps routing through the proxy.
    """
    ctx.ensure_object(dict)

    if config:
        ctx.obj["settings"] = Settings.load_from_file(config)
    else:
        ctx.obj["settings"] = Settings()


# Import and register commands
from frameproxy.cli.serve_cmd import serve
from frameproxy.cli.url_cmd import encode, decode

cli.add_command(serve)
cli.add_command(encode)
cli.add_command(decode)


if __name__ == "__main__":
    cli()
