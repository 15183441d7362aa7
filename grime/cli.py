"""
CLI interface for grime.

Usage:
    grime add todo "fix login bug" --file src/auth.js --line 42
    grime list
    grime edit 3f2a --type fixme --description "Fix login bug urgently"
    grime delete 3f2a
    grime goto 3f2a
"""

import json
import os
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .api import Grime
from .config import load_or_create_config
from .errors import GrimeError
from .logging_config import configure_quiet_mode, enable_debug_mode
from .paths import get_config_dir
from .types import AnnotationRecord, AnnotationType, RepairNotice
from .workspace import workspace_hash


# Configure quiet mode by default
# Set GRIME_VERBOSE=1 to enable debug mode via environment
if os.environ.get("GRIME_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"grime {version('grime')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_workspace_override: Optional[Path] = None
_storage_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _workspace_callback(value: Optional[Path]):
    global _workspace_override
    _workspace_override = value


def _storage_callback(value: Optional[Path]):
    global _storage_override
    _storage_override = value


app = typer.Typer(
    name="grime",
    help="Track todos, fixmes, chores and notes per workspace.",
    no_args_is_help=False,
    invoke_without_command=True,
    rich_markup_mode=None,
)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    workspace: Annotated[Optional[Path], typer.Option(
        "--workspace", "-w",
        envvar="GRIME_WORKSPACE",
        help="Workspace root (default: current directory)",
        callback=_workspace_callback,
        is_eager=True,
    )] = None,
    storage: Annotated[Optional[Path], typer.Option(
        "--storage",
        envvar="GRIME_STORAGE_ROOT",
        help="Global storage root (default: ~/.grime/storage)",
        callback=_storage_callback,
        is_eager=True,
    )] = None,
):
    """Track todos, fixmes, chores and notes per workspace."""
    # If no subcommand provided, show the tree
    if ctx.invoked_subcommand is None:
        gr = _get_grime()
        _echo_tree(gr, [])


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def _fail(message) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


def _report_repair(notice: RepairNotice) -> None:
    typer.echo(f"Warning: {notice}", err=True)


def _get_grime() -> Grime:
    """Open the workspace, handling errors gracefully."""
    import atexit

    workspace = _workspace_override if _workspace_override is not None else Path.cwd()
    try:
        gr = Grime(
            os.path.abspath(workspace),
            _storage_override,
            on_repair=_report_repair,
        )
    except (GrimeError, OSError, ValueError) as e:
        _fail(e)
    atexit.register(gr.close)
    return gr


def _resolve_file_arg(path: Path) -> str:
    """Absolute form of a --file argument.

    Relative paths are taken from --workspace when it is given, else the cwd.
    """
    path = path.expanduser()
    if not path.is_absolute() and _workspace_override is not None:
        path = _workspace_override.expanduser() / path
    return os.path.abspath(path)


def _format_record(record: AnnotationRecord) -> str:
    line = f"{record.id}  [{record.type.value}]  {record.description}"
    if record.location_label:
        line += f"  ({record.location_label})"
    return line


def _echo_record(record: AnnotationRecord) -> None:
    if _get_json_output():
        typer.echo(json.dumps(record.to_dict(), indent=2, ensure_ascii=False))
    else:
        typer.echo(_format_record(record))


def _echo_tree(gr: Grime, types: list[AnnotationType]) -> None:
    if _get_json_output():
        collections = gr.store.load_all()
        data = {
            t.value: [r.to_dict() for r in entries]
            for t, entries in collections.items()
            if not types or t in types
        }
        typer.echo(json.dumps(data, indent=2, ensure_ascii=False))
    else:
        typer.echo(gr.tree(types or None))


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command()
def init():
    """Create storage for the current workspace and validate its files."""
    gr = _get_grime()
    if _get_json_output():
        typer.echo(json.dumps({
            "workspace": str(gr.context.root),
            "hash": gr.context.workspace_hash,
            "storage": str(gr.context.storage_dir),
            "repairs": [str(r.backup_path) for r in gr.repairs],
        }, indent=2))
        return
    typer.echo(f"workspace: {gr.context.root}")
    typer.echo(f"hash: {gr.context.workspace_hash}")
    typer.echo(f"storage: {gr.context.storage_dir}")


@app.command("hash")
def hash_cmd(
    path: Annotated[Optional[Path], typer.Argument(
        help="Workspace path (default: the current workspace)"
    )] = None,
):
    """Print the storage identifier of a workspace path."""
    target = path or _workspace_override or Path.cwd()
    value = workspace_hash(os.path.abspath(target))
    if value is None:
        _fail("No workspace path given")
    typer.echo(value)


@app.command()
def add(
    type: Annotated[AnnotationType, typer.Argument(
        case_sensitive=False,
        help="Annotation type",
    )],
    description: Annotated[str, typer.Argument(
        help="What needs doing (or the note text)",
    )],
    file: Annotated[Optional[Path], typer.Option(
        "--file", "-f",
        help="Associate the annotation with this file",
    )] = None,
    line: Annotated[Optional[int], typer.Option(
        "--line", "-l",
        min=1,
        help="1-based line in --file",
    )] = None,
):
    """Add an annotation."""
    if line is not None and file is None:
        _fail("--line requires --file")
    gr = _get_grime()
    try:
        record = gr.add(
            type,
            description,
            file=_resolve_file_arg(file) if file is not None else None,
            line=line,
        )
    except (GrimeError, ValueError) as e:
        _fail(e)
    if file is not None and record.file is None:
        typer.echo(f"Warning: {file} is outside the workspace; not recorded", err=True)
    if _get_json_output():
        _echo_record(record)
    else:
        typer.echo(f"{record.type.value} saved: {record.id}")


@app.command("list")
def list_cmd(
    types: Annotated[Optional[list[AnnotationType]], typer.Argument(
        case_sensitive=False,
        help="Only show these types",
    )] = None,
):
    """Show annotations grouped by type."""
    gr = _get_grime()
    try:
        _echo_tree(gr, types or [])
    except GrimeError as e:
        _fail(e)


@app.command()
def show(
    id: Annotated[str, typer.Argument(help="Annotation id or unique prefix")],
):
    """Show one annotation."""
    gr = _get_grime()
    try:
        record = gr.find(id)
    except GrimeError as e:
        _fail(e)
    if _get_json_output():
        _echo_record(record)
        return
    typer.echo(f"id: {record.id}")
    typer.echo(f"type: {record.type.value}")
    typer.echo(f"description: {record.description}")
    typer.echo(f"created: {record.created_at}")
    if record.file:
        typer.echo(f"file: {record.location_label}")


@app.command()
def edit(
    id: Annotated[str, typer.Argument(help="Annotation id or unique prefix")],
    type: Annotated[Optional[AnnotationType], typer.Option(
        "--type", "-t",
        case_sensitive=False,
        help="Move the annotation to this type",
    )] = None,
    description: Annotated[Optional[str], typer.Option(
        "--description", "-d",
        help="New description",
    )] = None,
):
    """Change an annotation's description or type."""
    if type is None and description is None:
        _fail("Specify --type and/or --description")
    gr = _get_grime()
    try:
        record = gr.edit(id, type=type, description=description)
    except (GrimeError, ValueError) as e:
        _fail(e)
    if _get_json_output():
        _echo_record(record)
    else:
        typer.echo(f"{record.type.value} was successfully updated: {record.id}")


@app.command("delete")
def delete(
    id: Annotated[str, typer.Argument(help="Annotation id or unique prefix")],
    type: Annotated[Optional[AnnotationType], typer.Option(
        "--type", "-t",
        case_sensitive=False,
        help="Collection to delete from (exact id required)",
    )] = None,
):
    """Delete an annotation."""
    gr = _get_grime()
    try:
        record = gr.delete(id, type)
    except GrimeError as e:
        _fail(e)
    if _get_json_output():
        _echo_record(record)
    else:
        typer.echo(f"{record.type.value} was deleted: {record.id}")


@app.command("del", hidden=True)
def delete_alias(
    id: Annotated[str, typer.Argument(help="Annotation id or unique prefix")],
    type: Annotated[Optional[AnnotationType], typer.Option(
        "--type", "-t",
        case_sensitive=False,
    )] = None,
):
    """Alias for delete."""
    delete(id, type)


@app.command()
def goto(
    id: Annotated[str, typer.Argument(help="Annotation id or unique prefix")],
    yes: Annotated[bool, typer.Option(
        "--yes", "-y",
        help="Delete a stale annotation without asking",
    )] = False,
):
    """Print the file:line an annotation points at."""
    gr = _get_grime()

    def confirm(record: AnnotationRecord) -> bool:
        typer.echo(f"Associated file could not be found: {record.file}", err=True)
        return yes or typer.confirm("Delete Annotation?", default=False)

    try:
        location = gr.goto(id, confirm_delete=confirm)
    except GrimeError as e:
        _fail(e)

    if location is None:
        typer.echo("Stale annotation deleted.")
        return
    if _get_json_output():
        typer.echo(json.dumps(location.to_dict()))
    else:
        typer.echo(f"{location.path}:{location.line_number}")


@app.command()
def config():
    """Show the configuration file and the resolved storage root."""
    config_dir = get_config_dir()
    try:
        cfg = load_or_create_config(config_dir)
    except (OSError, ValueError) as e:
        _fail(e)
    storage_root = _storage_override or cfg.resolved_storage_root()
    if _get_json_output():
        typer.echo(json.dumps({
            "config": str(cfg.config_path),
            "storage_root": str(storage_root),
            "ops_log": cfg.ops_log,
        }, indent=2))
        return
    typer.echo(f"config: {cfg.config_path}")
    typer.echo(f"storage_root: {storage_root}")
    typer.echo(f"ops_log: {'on' if cfg.ops_log else 'off'}")


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="grime CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
