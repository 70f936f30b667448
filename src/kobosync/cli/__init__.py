# ABOUTME: CLI package for kobosync, built on Click.
# ABOUTME: Defines the root command group and registers subcommands.

import click

from kobosync.cli.commands import covers_cmd, info_cmd, ls_cmd, sync_cmd


@click.group()
@click.version_option(package_name="kobosync")
def cli() -> None:
    """kobosync - keep a Kobo's metadata cache, catalog and covers in step."""


cli.add_command(sync_cmd.sync)
cli.add_command(ls_cmd.ls)
cli.add_command(covers_cmd.covers)
cli.add_command(info_cmd.info)
