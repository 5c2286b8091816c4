"""Perch CLI - Main Entry Point.

Commands:
    bruno   - Generate a Bruno collection from an introspection endpoint
    routes  - Print the compiled route table of an app
    serve   - Serve an app with uvicorn
"""

import importlib
import logging
import os
import sys

import click
import httpx

from . import __version__, __cli_name__
from . import bruno as bruno_gen
from .utils.colors import bold, error, file_written, info, kv, section, success, table, warning


def load_app(target: str):
    """Import ``module:attribute`` and return the attribute."""
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise click.BadParameter(f"expected MODULE:APP, got '{target}'", param_hint="APP")

    if os.getcwd() not in sys.path:
        sys.path.insert(0, os.getcwd())

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"cannot import '{module_name}': {e}", param_hint="APP")

    try:
        return getattr(module, attr)
    except AttributeError:
        raise click.BadParameter(f"'{module_name}' has no attribute '{attr}'", param_hint="APP")


@click.group()
@click.version_option(version=__version__, prog_name=__cli_name__)
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.pass_context
def cli(ctx, verbose: bool):
    """Declarative controllers compiled into an ASGI app."""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command('bruno')
@click.option('--url', default='http://localhost:8000/introspection', show_default=True,
              help='Introspection endpoint')
@click.option('--base-url', default='http://localhost:8000', show_default=True,
              help='Base URL written into each request')
@click.option('--out-dir', default='./generated', show_default=True,
              help='Output directory (created if missing)')
@click.pass_context
def bruno_cmd(ctx, url: str, base_url: str, out_dir: str):
    """
    Generate Bruno request files from a running app.

    Examples:
      perch bruno --url http://localhost:8000/introspection --out-dir ./bruno
    """
    try:
        objects = bruno_gen.fetch_introspection(url)
    except (httpx.HTTPError, ValueError) as e:
        error(f"  {bold('Error fetching introspection data:')} {e}")
        sys.exit(1)

    if not objects:
        warning(f"  No routes described at {url}")

    paths = bruno_gen.write_collection(objects, base_url, out_dir)
    for path in paths:
        file_written(path.name, path=str(path) if ctx.obj['verbose'] else "")
    success(f"  Finished generating {len(paths)} bruno files in {out_dir}")


@cli.command('routes')
@click.argument('app')
def routes_cmd(app: str):
    """
    Print the route table of APP (MODULE:APP).

    Examples:
      perch routes myapp.main:app
    """
    perch_app = load_app(app)
    compiled = getattr(perch_app, 'routes', None)
    if compiled is None:
        error(f"  '{app}' is not a Perch application")
        sys.exit(1)

    section("Routes")
    table(
        ["Method", "Path", "Handler", "Chain"],
        [
            [r.http_method, r.full_path, r.handler_name, " > ".join(r.chain[:-1]) or "-"]
            for r in compiled
        ],
    )
    click.echo()
    kv("Routes", str(len(compiled)))
    if perch_app.config.enable_introspection:
        kv("Introspection", perch_app.config.introspection_path)


@cli.command('serve')
@click.argument('app')
@click.option('--host', default='127.0.0.1', show_default=True, help='Bind host')
@click.option('--port', default=8000, type=int, show_default=True, help='Bind port')
@click.option('--reload', is_flag=True, help='Reload on code changes')
@click.option('--log-level', default='info', show_default=True,
              type=click.Choice(['critical', 'error', 'warning', 'info', 'debug']))
def serve_cmd(app: str, host: str, port: int, reload: bool, log_level: str):
    """
    Serve APP (MODULE:APP) with uvicorn.

    Examples:
      perch serve myapp.main:app --port 8787
    """
    import uvicorn

    # Fail early with a CLI error instead of a uvicorn traceback
    load_app(app)
    info(f"  Serving {app} on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, reload=reload, log_level=log_level)


def main():
    """Main CLI entry point."""
    cli(obj={})


if __name__ == '__main__':
    main()
