"""CLI entry point for licenseme."""

from __future__ import annotations

import argparse
import json
import sys
import threading
import time
from pathlib import Path
from typing import Optional, Sequence

from licenseme import __version__
from licenseme.actions import OperatingMode, run_action, select_candidates
from licenseme.licenses import GithubLicense, LicenseApiError, LicenseClient
from licenseme.log import configure_logging, get_logger
from licenseme.repo import RepositoryRecord
from licenseme.scanner import DEFAULT_WORKERS, default_roots, find_repos
from licenseme.settings import (
    ProgramSettings,
    SettingsError,
    default_settings_path,
    load_settings,
    save_settings,
)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_ABORT = 130

logger = get_logger("cli")


def parse_selection(raw: str, count: int) -> tuple[list[int], list[str]]:
    """Turn '1 3,4' or 'all' into zero-based indices.

    Returns (indices, rejected tokens). Duplicates are dropped, order kept.
    """
    indices: list[int] = []
    rejected: list[str] = []
    for token in raw.replace(",", " ").split():
        if token.lower() == "all":
            candidates = range(count)
        else:
            try:
                number = int(token)
            except ValueError:
                rejected.append(token)
                continue
            if number < 1 or number > count:
                rejected.append(token)
                continue
            candidates = [number - 1]
        for idx in candidates:
            if idx not in indices:
                indices.append(idx)
    return indices, rejected


def _scan(
    console,
    roots: Sequence[str],
    catalog: Optional[list[GithubLicense]],
    *,
    workers: int,
    timeout: Optional[float],
) -> list[RepositoryRecord]:
    """Run the walker behind a spinner. Ctrl-C cancels the walk and propagates."""
    from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

    found = 0
    lock = threading.Lock()
    started = time.monotonic()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Searching...", total=None)

        def on_found(record: RepositoryRecord) -> None:
            nonlocal found
            with lock:
                found += 1
                progress.update(task, description=f"Searching... {found} repos found")

        records = find_repos(
            roots, catalog,
            workers=workers, timeout=timeout, on_found=on_found,
        )

    console.print(f"  [dim]Searching took {time.monotonic() - started:.1f}s[/dim]")
    return records


def _fetch_catalog(console, client: LicenseClient) -> list[GithubLicense]:
    with console.status("Fetching licenses from GitHub..."):
        return client.fetch_catalog()


def render_records(console, records: Sequence[RepositoryRecord], title: str) -> None:
    """Print the numbered table of repositories."""
    from rich.table import Table

    from licenseme.theme import ACCENT_REPOS, CYAN, MUTED, SURFACE, license_label, presence_mark

    table = Table(title=title, border_style=SURFACE, title_style=f"bold {ACCENT_REPOS}")
    table.add_column("#", justify="right", style=MUTED)
    table.add_column("Project", style=f"bold {CYAN}")
    table.add_column("Path", style=MUTED, overflow="fold")
    table.add_column("README", justify="center")
    table.add_column("LICENSE", justify="center")
    table.add_column("License")

    for idx, record in enumerate(records, 1):
        spdx = record.matched_license.spdx_id if record.matched_license else None
        table.add_row(
            str(idx),
            record.project_title,
            record.root_path,
            presence_mark(record.has_readme),
            presence_mark(record.has_license),
            license_label(spdx, record.has_license),
        )
    console.print(table)


def choose_license(console, catalog: Sequence[GithubLicense]) -> Optional[GithubLicense]:
    """List the catalog and read one choice. None when the input is invalid."""
    from rich.prompt import Prompt

    from licenseme.theme import PURPLE

    for idx, entry in enumerate(catalog, 1):
        console.print(f"  [{PURPLE}][{idx}][/{PURPLE}] {entry.name} [dim]({entry.spdx_id})[/dim]")
    raw = Prompt.ask("Your selection", console=console)
    indices, rejected = parse_selection(raw, len(catalog))
    if rejected or len(indices) != 1:
        return None
    return catalog[indices[0]]


def _readme_source(console, client: LicenseClient, settings: ProgramSettings):
    from rich.prompt import Confirm

    def source(record: RepositoryRecord) -> Optional[str]:
        if not Confirm.ask(
            f"No README in [bold]{record.project_title}[/bold] — create one?",
            console=console,
            default=False,
        ):
            return None
        try:
            return client.fetch_readme_template(
                settings.readme_template_link,
                record.project_title,
                settings.replace_in_readme_phrase,
            )
        except LicenseApiError as e:
            logger.warning("README template unavailable, using a bare one: %s", e)
            return f"# {record.project_title}\n"

    return source


def _resolve_mode(args: argparse.Namespace) -> OperatingMode:
    if args.include_licensed and args.mode == OperatingMode.SET_NEW_LICENSE.value:
        return OperatingMode.LICENSE_REPLACE
    return OperatingMode(args.mode)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="licenseme",
        description="Find git repositories on this machine and add or manage their LICENSE files.",
    )
    parser.add_argument(
        "paths",
        nargs="*",
        help="Directories to scan (default: every disk)",
    )
    parser.add_argument(
        "--mode",
        choices=[m.value for m in OperatingMode],
        default=OperatingMode.SET_NEW_LICENSE.value,
        help="new: license unlicensed repos (default); append: add a second license; "
             "replace: swap the license; show: list repos only; unlicense: remove licenses",
    )
    parser.add_argument(
        "--include-licensed",
        action="store_true",
        help="Offer repos that already have a LICENSE for replacement (same as --mode replace)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=DEFAULT_WORKERS,
        metavar="N",
        help=f"Parallel directory walkers (default: {DEFAULT_WORKERS})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        metavar="SECONDS",
        help="Stop scanning after this many seconds",
    )
    parser.add_argument(
        "--no-match",
        action="store_true",
        help="Don't identify existing licenses (skips the GitHub catalog download when possible)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print found repositories as JSON and exit",
    )
    parser.add_argument(
        "--token",
        metavar="TOKEN",
        help="GitHub API token (default: settings file, then $GITHUB_TOKEN)",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        metavar="FILE",
        help=f"Settings file (default: {default_settings_path()})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show progress messages")
    parser.add_argument("-d", "--debug", action="store_true", help="Show debug messages")
    parser.add_argument(
        "--version",
        action="version",
        version=f"licenseme {__version__}",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the licenseme CLI."""
    from rich.console import Console

    from licenseme.theme import GREEN, RED, render_banner

    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose, debug=args.debug)
    console = Console(stderr=args.json_output)
    mode = _resolve_mode(args)

    settings = load_settings(args.settings)
    token = args.token or settings.effective_token()

    if not args.json_output:
        console.print(render_banner())

    with LicenseClient(token=token) as client:
        catalog: Optional[list[GithubLicense]] = None
        if mode.needs_license_choice or not args.no_match:
            try:
                catalog = _fetch_catalog(console, client)
            except LicenseApiError as e:
                if mode.needs_license_choice:
                    console.print(f"[{RED}]Cannot load licenses:[/{RED}] {e}")
                    return EXIT_ERROR
                logger.warning("License identification disabled: %s", e)

        roots = args.paths or default_roots()
        try:
            records = _scan(
                console, roots, None if args.no_match else catalog,
                workers=args.workers, timeout=args.timeout,
            )
        except KeyboardInterrupt:
            console.print(f"\n[{RED}]Aborted.[/{RED}]")
            return EXIT_ABORT

        candidates = select_candidates(records, mode)

        if args.json_output:
            print(json.dumps([r.to_json() for r in candidates], indent=2))
            return EXIT_OK

        if not candidates:
            console.print(f"[{RED}]Found no matching git repositories.[/{RED}] Exiting...")
            return EXIT_ERROR

        render_records(console, candidates, f"Found {len(candidates)} repositories")
        if mode is OperatingMode.SHOW_ALL_GIT_DIRS:
            return EXIT_OK

        from rich.prompt import Prompt

        try:
            raw = Prompt.ask("Enter the number(s) of the repositories to select them, or 'all'", console=console)
            indices, rejected = parse_selection(raw, len(candidates))
            for bad in rejected:
                console.print(f"[{RED}]Index {bad} not available[/{RED}]")
            if not indices:
                console.print("Nothing selected.")
                return EXIT_OK
            selected = [candidates[i] for i in indices]

            license: Optional[GithubLicense] = None
            if mode.needs_license_choice:
                license = choose_license(console, catalog or [])
                if license is None:
                    console.print(f"[{RED}]Unknown or wrong input![/{RED}]")
                    return EXIT_ERROR
                fullname = settings.github_user
                if license.needs_fullname and not fullname:
                    fullname = Prompt.ask("Enter your full name (John Doe)", console=console)
                    settings.github_user = fullname
                    try:
                        save_settings(settings, args.settings)
                    except SettingsError as e:
                        logger.warning("%s", e)
                license = license.fill_placeholders(fullname)

            errors = run_action(
                selected, mode, license,
                readme_source=_readme_source(console, client, settings),
            )
        except (KeyboardInterrupt, EOFError):
            console.print(f"\n[{RED}]Aborted.[/{RED}]")
            return EXIT_ABORT

    if errors:
        console.print(f"[bold {RED}]!! ERROR(S) OCCURRED !![/bold {RED}]")
        for idx, message in enumerate(errors.errors, 1):
            console.print(f"  [{RED}][{idx}][/{RED}] {message}")
        return EXIT_ERROR

    console.print(f"\n[{GREEN}]Done![/{GREEN}] Processed {len(selected)} directories successfully!")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
