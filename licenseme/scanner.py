"""Repo discovery — walk one or more roots in parallel and find git repositories."""

from __future__ import annotations

import os
import string
import sys
import threading
from concurrent.futures import CancelledError, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Iterable, Iterator, NamedTuple, Optional, Sequence, Union

from licenseme.licenses import GithubLicense
from licenseme.log import get_logger
from licenseme.repo import RepositoryRecord, build_record

GIT_MARKER = ".git"
DEFAULT_WORKERS = 8

# Huge trees that never hold a user's own repositories
SKIP_DIRS = frozenset({
    "AppData", "node_modules", ".venv", "venv", "__pycache__", "site-packages",
    ".cargo", ".rustup", ".gradle", ".m2", ".npm", ".cache", ".dart_tool",
    ".tox", ".mypy_cache", ".ruff_cache", ".pytest_cache", "Pods",
})

# Kernel and device filesystems, skipped only directly under the filesystem root
VIRTUAL_FS_DIRS = frozenset({"proc", "sys", "dev", "run"})

logger = get_logger("scanner")

PathLike = Union[str, "os.PathLike[str]"]
FoundCallback = Callable[[RepositoryRecord], None]


class Child(NamedTuple):
    name: str
    path: str
    is_dir: bool


def list_children(path: str) -> Iterator[Child]:
    """Yield the immediate entries of path. Unreadable directories yield nothing."""
    try:
        it = os.scandir(path)
    except OSError as e:
        logger.debug("Skipping unreadable %s: %s", path, e)
        return

    with it:
        while True:
            try:
                entry = next(it)
            except StopIteration:
                break
            except OSError as e:
                logger.debug("Listing of %s cut short: %s", path, e)
                break
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError:
                is_dir = False
            yield Child(entry.name, entry.path, is_dir)


def is_noise(name: str) -> bool:
    """True for a path component that must never be scanned."""
    return "$" in name or name in SKIP_DIRS


def should_descend(name: str) -> bool:
    """Whether the walker enters a child directory called name."""
    # Hidden directories (including .git itself) are never entered
    return not name.startswith(".") and not is_noise(name)


def has_noise_component(path: str) -> bool:
    """True when any component of path is noise."""
    return any(is_noise(part) for part in Path(path).parts)


def is_virtual_fs(path: str) -> bool:
    """True for /proc, /sys and friends; the same names deeper down are ordinary."""
    parent = os.path.dirname(path)
    return parent == os.path.dirname(parent) and os.path.basename(path) in VIRTUAL_FS_DIRS


def strip_git_suffix(path: str) -> str:
    """Drop a terminal .git component; '.git' elsewhere in the path is kept."""
    p = Path(path)
    if p.name == GIT_MARKER:
        return str(p.parent)
    return str(p)


def default_roots() -> list[str]:
    """Every drive letter on Windows, the filesystem root elsewhere."""
    if sys.platform.startswith("win"):
        drives = [f"{letter}:\\" for letter in string.ascii_uppercase]
        return [d for d in drives if os.path.exists(d)]
    return ["/"]


def _visit(path: str, catalog: Optional[Sequence[GithubLicense]]) -> tuple[Optional[RepositoryRecord], list[str]]:
    """List path once: detect a repository here and collect enterable subdirs."""
    names: set[str] = set()
    subdirs: list[str] = []
    for child in list_children(path):
        names.add(child.name)
        if child.is_dir and should_descend(child.name):
            subdirs.append(child.path)

    record = None
    if GIT_MARKER in names:
        record = build_record(path, catalog, names)
    return record, subdirs


def walk_subtree(
    top: str,
    catalog: Optional[Sequence[GithubLicense]] = None,
    *,
    cancel: Optional[threading.Event] = None,
    max_depth: Optional[int] = None,
    on_found: Optional[FoundCallback] = None,
    depth: int = 1,
) -> list[RepositoryRecord]:
    """Find every repository at or below top.

    Descent continues inside detected repositories so nested repos
    (submodules, vendored checkouts) are reported too. Symlinks are not
    followed; already-visited directories are skipped by (device, inode).
    """
    found: list[RepositoryRecord] = []
    visited: set[tuple[int, int]] = set()
    stack: list[tuple[str, int]] = [(top, depth)]

    while stack:
        if cancel is not None and cancel.is_set():
            logger.debug("Walk of %s cancelled", top)
            break
        path, level = stack.pop()
        try:
            st = os.stat(path, follow_symlinks=False)
        except OSError:
            continue
        key = (st.st_dev, st.st_ino)
        if key in visited:
            continue
        visited.add(key)

        record, subdirs = _visit(path, catalog)
        if record is not None:
            found.append(record)
            if on_found is not None:
                on_found(record)

        if max_depth is not None and level >= max_depth:
            continue
        for sub in reversed(sorted(subdirs)):
            stack.append((sub, level + 1))

    return found


def merge_results(batches: Iterable[Iterable[RepositoryRecord]]) -> list[RepositoryRecord]:
    """Union of all batches, deduplicated by root_path and sorted by path.

    Records under a noise component are dropped.
    """
    merged: dict[str, RepositoryRecord] = {}
    for batch in batches:
        for record in batch:
            if has_noise_component(record.root_path):
                continue
            merged.setdefault(record.root_path, record)
    return sorted(merged.values(), key=lambda r: r.root_path)


def find_repos(
    roots: Union[PathLike, Sequence[PathLike]],
    catalog: Optional[Sequence[GithubLicense]] = None,
    *,
    workers: int = DEFAULT_WORKERS,
    cancel: Optional[threading.Event] = None,
    timeout: Optional[float] = None,
    max_depth: Optional[int] = None,
    on_found: Optional[FoundCallback] = None,
) -> list[RepositoryRecord]:
    """Find all git repositories under roots.

    A root with a noise component (`$`, AppData, node_modules, ...) is
    skipped entirely. Each root is listed once; every enterable
    first-level subdirectory is
    then walked as its own task on a pool of `workers` threads. Setting
    `cancel` (or hitting `timeout` seconds) stops outstanding work, and
    whatever was found so far is returned.
    """
    if isinstance(roots, (str, os.PathLike)):
        roots = [roots]
    if cancel is None:
        cancel = threading.Event()

    timer: Optional[threading.Timer] = None
    if timeout:
        timer = threading.Timer(timeout, cancel.set)
        timer.daemon = True
        timer.start()

    batches: list[list[RepositoryRecord]] = []
    try:
        with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
            futures = {}
            for raw_root in roots:
                if cancel.is_set():
                    break
                root = strip_git_suffix(os.path.abspath(os.path.expanduser(os.fspath(raw_root))))
                if has_noise_component(root) or is_virtual_fs(root):
                    logger.info("Skipping excluded root %s", root)
                    continue
                logger.info("Scanning %s", root)

                record, subdirs = _visit(root, catalog)
                if record is not None:
                    batches.append([record])
                    if on_found is not None:
                        on_found(record)
                if max_depth is not None and max_depth < 1:
                    continue

                for sub in subdirs:
                    if is_virtual_fs(sub):
                        continue
                    future = executor.submit(
                        walk_subtree, sub, catalog,
                        cancel=cancel, max_depth=max_depth, on_found=on_found,
                    )
                    futures[future] = sub

            try:
                for future in as_completed(futures):
                    try:
                        batches.append(future.result())
                    except CancelledError:
                        continue
                    except Exception as e:
                        logger.debug("Walk of %s failed: %s", futures[future], e)
            except BaseException:
                # Ctrl-C and friends: stop every walker before the pool joins
                cancel.set()
                executor.shutdown(wait=False, cancel_futures=True)
                raise
    finally:
        if timer is not None:
            timer.cancel()

    if cancel.is_set():
        logger.warning("Scan stopped early; results may be incomplete")

    return merge_results(batches)
