from pathlib import Path

import click

from .index import Origin


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "-v", "--verbose", is_flag=True, help="Print diagnostics to stderr."
)
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Workspace root. Defaults to the nearest directory holding comptrack.yaml or .comptrack/.",
)
@click.pass_context
def cli(ctx, verbose, root):
    """Track working-tree files as components."""
    from .runtime import set_verbose_logging

    ctx.ensure_object(dict)
    if verbose:
        set_verbose_logging(True)
    ctx.obj["root"] = root


@cli.command("add")
@click.argument("paths", nargs=-1, required=True)
@click.option("-i", "--id", "component_id", help="Component id (box/name).")
@click.option(
    "-m", "--main", help="Main file, may use {dir}, {name}, {ext} placeholders."
)
@click.option("-n", "--namespace", help="Box for ids derived from paths.")
@click.option(
    "-t",
    "--tests",
    multiple=True,
    help="Test file patterns, may use placeholders. Repeatable.",
)
@click.option(
    "-e", "--exclude", multiple=True, help="Patterns to leave out. Repeatable."
)
@click.option(
    "-o",
    "--override",
    is_flag=True,
    help="Take files from other components and replace the tracked file set.",
)
@click.pass_context
def add_cmd(ctx, paths, component_id, main, namespace, tests, exclude, override):
    """
    Track PATHS as one or more components.
    Several paths without --id become one component each.
    """
    from .add import add_components

    try:
        result = add_components(
            list(paths),
            id=component_id,
            main=main,
            namespace=namespace,
            tests=list(tests),
            exclude=list(exclude),
            override=override,
            root=ctx.obj.get("root"),
        )
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    for component in result.added:
        count = len(component.files)
        noun = "file" if count == 1 else "files"
        click.echo(f"tracking {count} {noun} as {component.id}")
    for owner, files in sorted(result.warnings.items()):
        click.echo(
            click.style("warning: ", fg="yellow")
            + f"files already tracked by {owner} were skipped: {', '.join(files)}",
            err=True,
        )


@cli.command("status")
@click.option(
    "--origin",
    type=click.Choice([origin.value for origin in Origin], case_sensitive=False),
    default=None,
    help="Only list components of this origin.",
)
@click.pass_context
def status_cmd(ctx, origin):
    """List tracked components."""
    from .config import find_workspace_root
    from .index import ComponentIndex

    root = ctx.obj.get("root") or find_workspace_root()
    try:
        index = ComponentIndex.load(root)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    entries = index.entries(Origin(origin.upper()) if origin else None)
    if not entries:
        click.echo("no components tracked")
        return
    for entry in entries:
        main_file = entry.main_file or "-"
        click.echo(
            f"{entry.id}\t{entry.origin.value}\t{len(entry.files)}\t{main_file}"
        )


def main():
    cli()


if __name__ == "__main__":
    main()
