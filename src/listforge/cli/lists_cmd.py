"""List metadata CLI commands: validate and describe."""

import json
from pathlib import Path

import click

from listforge.context import ListForge
from listforge.errors import ListForgeError
from listforge.metadata.loader import load_metadata
from listforge.metadata.validator import (
    _SUBDIR_SCHEMA,
    schema_for,
    validate_metadata_dir,
    validate_yaml_file,
)
from listforge.persistence.memory import MemoryBackend

_metadata_dir_option = click.option(
    "--metadata-dir",
    "metadata_dir",
    default="metadata",
    show_default=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory containing lists/ and blocks/.",
)


@click.group()
def lists():
    """List metadata commands."""
    pass


@lists.command()
@_metadata_dir_option
@click.option(
    "--path",
    "target_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Validate a single YAML file instead of the whole metadata directory.",
)
def validate(metadata_dir: Path, target_path: Path | None):
    """Validate list metadata YAML files, then build the lists."""
    if target_path is not None:
        schema_name = schema_for(target_path)
        if schema_name is None:
            click.echo(
                f"Error: cannot determine schema for directory '{target_path.parent.name}'. "
                f"Expected one of: {', '.join(_SUBDIR_SCHEMA)}.",
                err=True,
            )
            raise SystemExit(1)
        issues = validate_yaml_file(target_path, schema_name)
    else:
        if not metadata_dir.exists():
            click.echo(f"Error: Metadata directory not found at {metadata_dir}", err=True)
            raise SystemExit(1)
        issues = validate_metadata_dir(metadata_dir)

    for issue in issues:
        colour = "red" if issue.severity == "error" else "yellow"
        click.echo(click.style(str(issue), fg=colour))

    if any(i.severity == "error" for i in issues):
        click.echo(f"\n{len(issues)} issue(s) found.", err=True)
        raise SystemExit(1)

    # Schema-valid files can still describe broken lists (unknown types, refs)
    if target_path is None:
        try:
            built = load_metadata(ListForge(backend=MemoryBackend()), metadata_dir)
        except ListForgeError as exc:
            click.echo(click.style(f"[ERROR] {exc}", fg="red"))
            raise SystemExit(1)
        click.echo(click.style(f"OK: {len(built)} list(s) valid.", fg="green"))
    else:
        click.echo(click.style(f"OK: {target_path} is valid.", fg="green"))


@lists.command()
@_metadata_dir_option
@click.argument("key")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print list options as JSON.")
def describe(metadata_dir: Path, key: str, as_json: bool):
    """Describe the fields of list KEY."""
    forge = ListForge(backend=MemoryBackend())
    try:
        load_metadata(forge, metadata_dir)
        lst = forge.list(key)
    except ListForgeError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(lst.get_options(), indent=2, default=str))
        return

    click.echo(f"{lst.label} ({lst.key})")
    click.echo(f"  name path:    {lst.name_path}")
    click.echo(f"  default sort: {lst.default_sort or '(none)'}")
    click.echo("  fields:")
    for path, field in lst.fields.items():
        flags = [
            flag
            for flag, on in (
                ("required", field.required is True),
                ("unique", field.unique),
                ("noedit", field.noedit),
                ("hidden", field.hidden),
            )
            if on
        ]
        suffix = f"  [{', '.join(flags)}]" if flags else ""
        click.echo(f"    {path:<20} {field.type_id:<14} {field.label}{suffix}")
