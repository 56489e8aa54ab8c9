from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, Iterator

import structlog

from backupscope.errors import TraversalEntryError
from backupscope.path_store import PathStore
from backupscope.patterns import PatternSet

if TYPE_CHECKING:
    from rich.console import Console


logger = structlog.get_logger(__name__)

ErrorCallback = Callable[[TraversalEntryError], None]


def _report(error: TraversalEntryError, on_error: ErrorCallback | None) -> None:
    logger.warning("traversal_entry_error", path=error.path, error=str(error.cause))
    if on_error is not None:
        on_error(error)


def iter_selected_paths(
    folder: Path,
    matcher: PatternSet,
    *,
    on_error: ErrorCallback | None = None,
) -> Iterator[Path]:
    """Yield the folder and everything beneath it that no exclusion matches.

    Each entry is tested once against its own path. An excluded directory is
    removed from the walk before ``os.walk`` descends, so nothing below it is
    ever listed or tested.
    """
    try:
        folder.lstat()
    except OSError as exc:
        _report(TraversalEntryError(folder, exc), on_error)
        return

    if matcher.is_match(folder):
        logger.debug("excluded_path", path=str(folder))
        return
    yield folder

    def _on_walk_error(exc: OSError) -> None:
        _report(TraversalEntryError(exc.filename or folder, exc), on_error)

    for dirpath, dirnames, filenames in os.walk(
        folder, topdown=True, onerror=_on_walk_error, followlinks=False
    ):
        base = Path(dirpath)
        kept: list[str] = []
        for name in sorted(dirnames):
            child = base / name
            if matcher.is_match(child):
                logger.debug("excluded_path", path=str(child))
                continue
            kept.append(name)
            yield child
        # os.walk only descends into the names left in dirnames.
        dirnames[:] = kept

        for name in sorted(filenames):
            child = base / name
            if matcher.is_match(child):
                logger.debug("excluded_path", path=str(child))
                continue
            yield child


def select_into(
    store: PathStore,
    folders: Iterable[Path],
    matcher: PatternSet,
    *,
    on_error: ErrorCallback | None = None,
    on_path: Callable[[Path], None] | None = None,
) -> PathStore:
    for folder in folders:
        logger.debug("walking_folder", folder=str(folder))
        for path in iter_selected_paths(folder, matcher, on_error=on_error):
            store.insert(path)
            if on_path is not None:
                on_path(path)
    return store


def select_with_progress(
    store: PathStore,
    folders: Iterable[Path],
    matcher: PatternSet,
    *,
    on_error: ErrorCallback | None = None,
    console: "Console | None" = None,
) -> PathStore:
    from rich.progress import Progress, SpinnerColumn, TextColumn

    def _shorten_path(path: str, max_len: int = 64) -> str:
        if len(path) <= max_len:
            return path
        keep = max_len - 3
        head = keep // 2
        tail = keep - head
        return f"{path[:head]}...{path[-tail:]}"

    with Progress(
        SpinnerColumn(),
        TextColumn("[bold]Selecting"),
        TextColumn("{task.completed} path(s)"),
        TextColumn("{task.fields[path]}"),
        console=console,
        transient=True,
    ) as progress:
        task_id = progress.add_task("select", total=None, path="")

        def _advance(path: Path) -> None:
            progress.update(task_id, advance=1, path=_shorten_path(str(path)))

        select_into(store, folders, matcher, on_error=on_error, on_path=_advance)

    return store
