"""
Version list commands for gomodpack.
"""

import json
from typing import Optional, Tuple

import click

from ..cli_utils import standard_command
from ..domain import format_time
from ..render import render_versions_table
from ..services.packaging_service import PackagingService


@click.command('list')
@click.option('-c', '--cache-dir', type=click.Path(file_okay=False),
              help='Module proxy base folder (default: $GOMODCACHE/cache/download)')
@click.option('-d', '--module-dir', type=click.Path(exists=True, file_okay=False),
              help='Module directory (default: current directory)')
@click.option('--json', 'as_json', is_flag=True, help='Output JSON lines instead of a table')
@click.pass_context
@standard_command
def list_handler(ctx, cache_dir: Optional[str], module_dir: Optional[str], as_json: bool):
    """List the versions of the current module in the proxy folder."""
    service = PackagingService(config=ctx.obj.get('config'))
    module = service.module_identity(module_dir)
    folder = service.open_folder(module.path, cache_dir)
    versions = folder.list_versions_info()

    if as_json:
        for version, info in versions:
            click.echo(json.dumps({
                'module': module.path,
                'version': version,
                'time': format_time(info.time) if info else None,
            }))
    else:
        render_versions_table(module.path, versions)


@click.command('import-versions')
@click.argument('versions', nargs=-1, required=True)
@click.option('-c', '--cache-dir', type=click.Path(file_okay=False),
              help='Module proxy base folder (default: $GOMODCACHE/cache/download)')
@click.option('-d', '--module-dir', type=click.Path(exists=True, file_okay=False),
              help='Module directory (default: current directory)')
@click.pass_context
@standard_command
def import_versions_handler(ctx, versions: Tuple[str, ...], cache_dir: Optional[str], module_dir: Optional[str]):
    """
    Add version strings to the current module's version list.

    Versions already listed are ignored; the list stays sorted.
    """
    service = PackagingService(config=ctx.obj.get('config'))
    added = service.import_versions(versions, module_dir=module_dir, cache_dir=cache_dir)
    for version in added:
        click.echo(version)
