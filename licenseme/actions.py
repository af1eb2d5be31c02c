"""Operating modes — write, append, replace or remove licenses in repositories."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Sequence

from licenseme.licenses import GithubLicense
from licenseme.log import get_logger
from licenseme.readme import strip_readme, update_readme
from licenseme.repo import DEFAULT_LICENSE_FILE, RepositoryRecord

logger = get_logger("actions")

ReadmeSource = Callable[[RepositoryRecord], Optional[str]]


class OperatingMode(Enum):
    SET_NEW_LICENSE = "new"
    APPEND_LICENSE = "append"
    LICENSE_REPLACE = "replace"
    SHOW_ALL_GIT_DIRS = "show"
    UNLICENSE = "unlicense"

    @property
    def needs_license_choice(self) -> bool:
        return self in (
            OperatingMode.SET_NEW_LICENSE,
            OperatingMode.APPEND_LICENSE,
            OperatingMode.LICENSE_REPLACE,
        )


@dataclass
class ErrorCollector:
    """Per-directory failures gathered while processing a selection."""

    errors: list[str] = field(default_factory=list)

    def add(self, message: str) -> None:
        logger.error("%s", message)
        self.errors.append(message)

    def __len__(self) -> int:
        return len(self.errors)

    def __bool__(self) -> bool:
        return bool(self.errors)


def select_candidates(records: Sequence[RepositoryRecord], mode: OperatingMode) -> list[RepositoryRecord]:
    """Records the given mode can act on."""
    if mode is OperatingMode.SET_NEW_LICENSE:
        return [r for r in records if not r.has_license]
    if mode is OperatingMode.SHOW_ALL_GIT_DIRS:
        return list(records)
    return [r for r in records if r.has_license]


def license_target(record: RepositoryRecord, license: GithubLicense, mode: OperatingMode) -> str:
    """Path the chosen license is written to."""
    if mode is OperatingMode.APPEND_LICENSE and record.license_path and os.path.exists(record.license_path):
        return os.path.join(record.root_path, f"{DEFAULT_LICENSE_FILE}-{license.spdx_id}")
    return record.default_license_path


def write_readme(record: RepositoryRecord, content: str) -> str:
    """Create README.md for a record that has none."""
    path = record.default_readme_path
    Path(path).write_text(content, encoding="utf-8")
    record.readme_path = path
    logger.info("Created %s", path)
    return path


def apply_license(
    record: RepositoryRecord,
    license: GithubLicense,
    mode: OperatingMode,
    *,
    readme_source: Optional[ReadmeSource] = None,
) -> str:
    """Write license into record's repository and link it from the README.

    `license` must already have its placeholders filled. When the
    repository has no README, `readme_source` is asked for the content of
    a new one; returning None leaves the repository without a README.
    Filesystem errors propagate. Returns the written LICENSE path.
    """
    target = license_target(record, license, mode)
    Path(target).write_text(license.body, encoding="utf-8")
    logger.info("Wrote %s", target)

    # The old file goes only after the new one is on disk
    old = record.license_path
    if mode is OperatingMode.LICENSE_REPLACE and old and old != target:
        if os.path.samefile(old, target):
            # Case-insensitive filesystem: fix the name's case
            os.replace(old, target)
        else:
            os.remove(old)
            logger.info("Removed %s", old)
        record.license_path = None
        record.matched_license = None

    if mode is not OperatingMode.APPEND_LICENSE or not record.license_path:
        record.license_path = target
        record.matched_license = license

    if record.readme_path is None and readme_source is not None:
        content = readme_source(record)
        if content is not None:
            write_readme(record, content)

    if record.readme_path is not None:
        update_readme(
            record.readme_path,
            license.markdown_link(),
            append=mode is OperatingMode.APPEND_LICENSE,
        )
    return target


def unlicense(record: RepositoryRecord) -> None:
    """Delete the license file and its README link."""
    if record.license_path is None:
        return
    os.remove(record.license_path)
    logger.info("Removed %s", record.license_path)

    if record.readme_path and record.matched_license is not None:
        strip_readme(record.readme_path, [record.matched_license.markdown_link()])

    record.license_path = None
    record.matched_license = None


def run_action(
    records: Sequence[RepositoryRecord],
    mode: OperatingMode,
    license: Optional[GithubLicense] = None,
    *,
    readme_source: Optional[ReadmeSource] = None,
) -> ErrorCollector:
    """Apply mode to every record, collecting failures instead of stopping."""
    errors = ErrorCollector()
    if mode.needs_license_choice and license is None:
        raise ValueError(f"Mode {mode.value} needs a license")

    for record in records:
        logger.info("Processing %s", record.root_path)
        try:
            if mode is OperatingMode.UNLICENSE:
                unlicense(record)
            elif mode.needs_license_choice:
                apply_license(record, license, mode, readme_source=readme_source)
        except OSError as e:
            errors.add(f"{record.root_path}: {e}")
    return errors
