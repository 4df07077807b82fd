"""
Pack and version commands for gomodpack.
"""

import json
from typing import Optional

import click

from ..cli_utils import standard_command
from ..services.packaging_service import PackagingService


@click.command('pack')
@click.option('--force', is_flag=True, help='Re-pack even if the version is already in the list')
@click.option('-c', '--cache-dir', type=click.Path(file_okay=False),
              help='Module proxy base folder (default: $GOMODCACHE/cache/download)')
@click.option('-d', '--module-dir', type=click.Path(exists=True, file_okay=False),
              help='Module directory (default: current directory)')
@click.option('--json', 'as_json', is_flag=True, help='Print the result as JSON')
@click.pass_context
@standard_command
def pack_handler(ctx, force: bool, cache_dir: Optional[str], module_dir: Optional[str], as_json: bool):
    """
    Package the current module into the module proxy folder.

    The version is the greatest semver tag on HEAD, or a pseudo-version
    (v0.0.0-<commit time>-<hash>) when HEAD is not tagged. The working copy
    must be clean.

    \b
    Examples:
        gomodpack pack
        gomodpack pack --force
        gomodpack pack -c /srv/goproxy
    """
    service = PackagingService(config=ctx.obj.get('config'))
    result = service.pack(module_dir=module_dir, cache_dir=cache_dir, force=force)

    if as_json:
        click.echo(json.dumps(result.to_dict(), ensure_ascii=False))
    elif result.skipped:
        click.echo(f"{result.module_path}@{result.version} already packed (use --force to re-pack)")
    else:
        click.echo(f"{result.module_path}@{result.version}")


@click.command('version')
@click.option('-d', '--module-dir', type=click.Path(exists=True, file_okay=False),
              help='Module directory (default: current directory)')
@click.pass_context
@standard_command
def version_handler(ctx, module_dir: Optional[str]):
    """Print the version the current module would be packed as."""
    service = PackagingService(config=ctx.obj.get('config'))
    click.echo(service.resolve_version(module_dir=module_dir))
