#!/usr/bin/env python3

import click
import sys

from gomodpack.config import load_config, configure_logging
from gomodpack.errors import ConfigError
from gomodpack.exit_codes import CONFIG_ERROR
from gomodpack.commands.pack import pack_handler, version_handler
from gomodpack.commands.versions import list_handler, import_versions_handler
from gomodpack.commands.config import config_cmd


@click.group()
@click.version_option(package_name='gomodpack')
@click.option('-v', '--verbose', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, verbose):
    """gomodpack - Pack a Go module working copy into a module proxy folder.

    Writes <version>.info, <version>.mod and <version>.zip into the module
    download cache and records the version in its list file, so the module
    can be fetched with GOPROXY=file://... without publishing a tag.
    """
    config = load_config()
    try:
        configure_logging(config, verbose=verbose)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(CONFIG_ERROR)
    ctx.ensure_object(dict)
    ctx.obj['config'] = config


cli.add_command(pack_handler, name='pack')
cli.add_command(version_handler, name='version')
cli.add_command(list_handler, name='list')
cli.add_command(import_versions_handler, name='import-versions')
cli.add_command(config_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
