"""
Inkwell CLI - serve the workspace and manage its saved files.
"""

import logging
from pathlib import Path

import click

from .config import DB_PATH, DEBUG, HOST, PORT
from .errors import WorkspaceError
from .models import FileKind
from .store import SqliteBlobStore
from .workspace import Workspace

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(message)s'
)


def _workspace(ctx) -> Workspace:
    return ctx.obj['workspace']


@click.group()
@click.option('--db', default=DB_PATH, help='Database path')
@click.pass_context
def cli(ctx, db):
    """Inkwell - personal AI workspace."""
    ctx.ensure_object(dict)
    workspace = Workspace(SqliteBlobStore(db))
    workspace.load()
    ctx.obj['db'] = db
    ctx.obj['workspace'] = workspace


@cli.command()
@click.option('--host', default=HOST, help='Bind address')
@click.option('--port', default=PORT, type=int, help='Port')
@click.option('--debug/--no-debug', default=DEBUG, help='Flask debug mode')
@click.pass_context
def serve(ctx, host, port, debug):
    """Start the HTTP API."""
    from .app import create_app

    app = create_app(_workspace(ctx))
    click.echo(f"Inkwell on http://localhost:{port}")
    # One request at a time; AI calls block the workspace while they run
    app.run(host=host, port=port, debug=debug, threaded=False)


@cli.command()
@click.confirmation_option(prompt='Replace all files with the defaults?')
@click.pass_context
def reset(ctx):
    """Restore the built-in files."""
    _workspace(ctx).reset()
    click.echo("Workspace reset")


# File commands
@cli.group()
def files():
    """Manage files."""
    pass


@files.command('list')
@click.pass_context
def files_list(ctx):
    """List all files."""
    store = _workspace(ctx).files

    if not len(store):
        click.echo("No files")
        return

    click.echo(f"{'Name':<30} {'Kind':<12} {'Size'}")
    click.echo("-" * 50)
    for name in store.names():
        f = store.get(name)
        click.echo(f"{f.name:<30} {f.kind.value:<12} {len(f.content)}")


@files.command('show')
@click.argument('name')
@click.pass_context
def files_show(ctx, name):
    """Print a file's content."""
    try:
        click.echo(_workspace(ctx).files.content(name))
    except WorkspaceError as e:
        raise click.ClickException(str(e))


@files.command('export')
@click.argument('name')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Output path (defaults to NAME)')
@click.pass_context
def files_export(ctx, name, output):
    """Write a file to disk."""
    try:
        exported = _workspace(ctx).export(name)
    except WorkspaceError as e:
        raise click.ClickException(str(e))

    path = Path(output or exported.filename)
    path.write_text(exported.content, encoding="utf-8")
    click.echo(f"Exported {name} ({exported.mimetype}) to {path}")


@files.command('import')
@click.argument('path', type=click.Path(exists=True, dir_okay=False))
@click.option('--name', '-n', help='Name in the workspace (defaults to the file name)')
@click.option('--kind', '-k', type=click.Choice([k.value for k in FileKind]), help='File kind')
@click.pass_context
def files_import(ctx, path, name, kind):
    """Add a file from disk and save."""
    workspace = _workspace(ctx)
    source = Path(path)
    try:
        f = workspace.files.create(
            name or source.name,
            kind=FileKind(kind) if kind else None,
            content=source.read_text(encoding="utf-8"),
        )
    except WorkspaceError as e:
        raise click.ClickException(str(e))
    workspace.save()
    click.echo(f"Imported {f.name}")


@files.command('rename')
@click.argument('old_name')
@click.argument('new_name')
@click.pass_context
def files_rename(ctx, old_name, new_name):
    """Rename a file and save."""
    workspace = _workspace(ctx)
    try:
        f = workspace.files.rename(old_name, new_name)
    except WorkspaceError as e:
        raise click.ClickException(str(e))
    workspace.save()
    click.echo(f"Renamed {old_name} to {f.name}")


@files.command('remove')
@click.argument('name')
@click.pass_context
def files_remove(ctx, name):
    """Delete a file and save."""
    workspace = _workspace(ctx)
    try:
        workspace.files.delete(name)
    except WorkspaceError as e:
        raise click.ClickException(str(e))
    workspace.save()
    click.echo(f"Removed {name}")


@cli.command()
@click.argument('description')
@click.option('--file', '-f', 'name', help='Spreadsheet to read column names from')
@click.pass_context
def formula(ctx, description, name):
    """Generate a spreadsheet formula from a description."""
    workspace = _workspace(ctx)
    if not name:
        sheets = [n for n in workspace.files.names()
                  if workspace.files.get(n).kind is FileKind.SPREADSHEET]
        if not sheets:
            raise click.ClickException("No spreadsheet to read columns from")
        name = sheets[0]

    try:
        click.echo(workspace.create_formula(description, name))
    except WorkspaceError as e:
        raise click.ClickException(str(e))


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
