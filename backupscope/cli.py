from __future__ import annotations

import shlex

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from backupscope.config import BackupScopeConfig, default_password, load_config, save_config
from backupscope.errors import BackupScopeError, TraversalEntryError
from backupscope.logging_setup import setup_logging
from backupscope.models import SelectionType
from backupscope.path_store import PathStore
from backupscope.patterns import parse_patterns
from backupscope.scanner import select_with_progress
from backupscope.storage import parse_storage
from backupscope.target import BackupTarget


app = typer.Typer(help="backupscope CLI")
console = Console()

SELECTION_STYLES = {
    SelectionType.INCLUDED: "green",
    SelectionType.EXCLUDED: "yellow",
    SelectionType.CONTAINS: "cyan",
    SelectionType.IRRELEVANT: "dim",
}


def _fail(exc: Exception, prefix: str | None = None) -> int:
    message = f"{prefix} {exc}" if prefix else str(exc)
    console.print(Text(message, style="red"), soft_wrap=True)
    return 1


def _render_target(config: BackupScopeConfig) -> None:
    table = Table(title="Backup target")
    table.add_column("Kind")
    table.add_column("Value")
    for folder in config.target.folders:
        table.add_row("folder", str(folder))
    for pattern in config.target.exclusions:
        table.add_row("exclude", pattern.text)
    for tag in config.target.tags:
        table.add_row("tag", tag)
    console.print(table)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging on stderr."),
) -> None:
    setup_logging(verbose)


def _init(
    repository: str,
    folders: tuple[str, ...],
    exclude: tuple[str, ...],
    tags: tuple[str, ...],
    password: str | None,
    create_repo: bool,
) -> int:
    try:
        parse_storage(repository)
        target = BackupTarget.new_from_text(folders, exclude, tags)
        config = BackupScopeConfig(
            repository=repository.strip(),
            password=password if password is not None else default_password(),
            target=target,
        )
        if create_repo:
            config.restic().init_repo()
    except (BackupScopeError, RuntimeError, ValueError) as exc:
        return _fail(exc)

    path = save_config(config)
    console.print(f"[green]Initialized backupscope[/green] for {config.storage.locator()}")
    console.print(f"Config: {path}")
    if not config.password:
        console.print(
            "[yellow]RESTIC_PASSWORD not found in environment. `password` was initialized as empty.[/yellow]"
        )
    _render_target(config)
    return 0


@app.command()
def init(
    repository: str,
    folder: list[str] | None = typer.Option(
        None, "--folder", "-f", help="Folder to back up (repeatable)."
    ),
    exclude: list[str] | None = typer.Option(
        None, "--exclude", "-e", help="Exclude glob pattern (repeatable)."
    ),
    tag: list[str] | None = typer.Option(None, "--tag", "-t", help="Snapshot tag (repeatable)."),
    password: str | None = typer.Option(
        None, "--password", help="Repository password stored in the config file."
    ),
    create_repo: bool = typer.Option(
        False, "--create-repo", help="Run `restic init` for the repository."
    ),
) -> None:
    """Write a backupscope config in the current directory."""
    raise typer.Exit(
        code=_init(
            repository,
            tuple(folder or ()),
            tuple(exclude or ()),
            tuple(tag or ()),
            password,
            create_repo,
        )
    )


@app.command("add-folder")
def add_folder(paths: list[str] = typer.Argument(..., help="Folders to add to the target.")) -> None:
    """Add folders to the configured backup target."""
    try:
        config = load_config()
        added = [config.target.add_folder(path) for path in paths]
    except (FileNotFoundError, BackupScopeError) as exc:
        raise typer.Exit(code=_fail(exc))
    save_config(config)
    for folder in added:
        console.print(f"[green]Added[/green] {folder}", soft_wrap=True)


@app.command()
def exclude(patterns: list[str] = typer.Argument(..., help="Glob patterns to exclude.")) -> None:
    """Add exclusion patterns to the configured backup target."""
    try:
        config = load_config()
        parsed = parse_patterns(patterns)
        current = config.target
        config.target = BackupTarget.new(
            current.folders, [*current.exclusions, *parsed], current.tags
        )
    except (FileNotFoundError, BackupScopeError) as exc:
        raise typer.Exit(code=_fail(exc))
    save_config(config)
    for pattern in parsed:
        console.print(f"[green]Excluding[/green] {pattern.glob}")


@app.command()
def show() -> None:
    """Show the configured backup target."""
    try:
        config = load_config()
    except (FileNotFoundError, BackupScopeError) as exc:
        raise typer.Exit(code=_fail(exc))
    console.print(f"Repository: {config.storage.locator()}")
    _render_target(config)


@app.command()
def classify(paths: list[str] = typer.Argument(..., help="Paths to classify.")) -> None:
    """Show how each path relates to the backup target."""
    try:
        config = load_config()
        results = [(path, config.target.check_path_is_in_backup(path)) for path in paths]
    except (FileNotFoundError, BackupScopeError) as exc:
        raise typer.Exit(code=_fail(exc))

    for path, selection in results:
        console.print(
            Text.assemble((f"{selection.value:<10}", SELECTION_STYLES[selection]), " ", path),
            soft_wrap=True,
        )


@app.command()
def files(
    count_only: bool = typer.Option(False, "--count", help="Only print the number of selected paths."),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="Show a spinner while walking."),
) -> None:
    """List every path the backup target selects."""
    try:
        config = load_config()
    except (FileNotFoundError, BackupScopeError) as exc:
        raise typer.Exit(code=_fail(exc))

    errors: list[TraversalEntryError] = []
    target = config.target
    try:
        if progress:
            store = select_with_progress(
                PathStore(),
                target.folders,
                target.compile_exclusions(),
                on_error=errors.append,
                console=console,
            )
        else:
            store = target.generate_files(on_error=errors.append)
    except KeyboardInterrupt:
        console.print("[yellow]Selection interrupted.[/yellow]")
        raise typer.Exit(code=130)
    except BackupScopeError as exc:
        raise typer.Exit(code=_fail(exc, "Selection failed:"))

    if not count_only:
        for path in store:
            console.print(str(path), highlight=False, markup=False, soft_wrap=True)
    for error in errors:
        console.print(Text(f"Skipped {error.path}: {error.cause}", style="yellow"))
    console.print(f"Selected: {store.count()} path(s) | Unreadable: {len(errors)}")


@app.command()
def backup(
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the restic command instead of running it."),
) -> None:
    """Run `restic backup` for the configured target."""
    try:
        config = load_config()
        restic = config.restic()
        if dry_run:
            command = shlex.join([*restic.base_command(), *restic.backup_args(config.target)])
            console.print(command, markup=False, highlight=False, soft_wrap=True)
            return
        with console.status("Running restic backup..."):
            summary = restic.backup(config.target)
    except (FileNotFoundError, RuntimeError, ValueError, BackupScopeError) as exc:
        raise typer.Exit(code=_fail(exc, "Backup failed:"))

    console.print(f"[green]Snapshot saved:[/green] {summary.snapshot_id}")
    console.print(
        f"Files new: {summary.files_new} | changed: {summary.files_changed} | "
        f"unmodified: {summary.files_unmodified} | data added: {summary.data_added} bytes"
    )
    for error in summary.errors:
        console.print(Text(error, style="yellow"))


@app.command()
def snapshots() -> None:
    """List snapshots stored in the repository."""
    try:
        records = load_config().restic().snapshots()
    except (FileNotFoundError, RuntimeError, BackupScopeError) as exc:
        raise typer.Exit(code=_fail(exc))

    if not records:
        console.print("[green]Repository has no snapshots.[/green]")
        return

    table = Table(title="Snapshots")
    table.add_column("ID")
    table.add_column("Time")
    table.add_column("Host")
    table.add_column("Tags")
    table.add_column("Paths")
    for record in records:
        table.add_row(record.short_id, record.time, record.hostname, ", ".join(record.tags), "\n".join(record.paths))
    console.print(table)


@app.command("ls")
def list_snapshot(snapshot_id: str) -> None:
    """List the contents of a snapshot."""
    try:
        records = load_config().restic().list_snapshot(snapshot_id)
    except (FileNotFoundError, RuntimeError, BackupScopeError) as exc:
        raise typer.Exit(code=_fail(exc))

    table = Table(title=f"Snapshot {snapshot_id}")
    table.add_column("Type")
    table.add_column("Path")
    table.add_column("Size", justify="right")
    for record in records:
        table.add_row(record.type, record.path, "" if record.size is None else str(record.size))
    console.print(table)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
