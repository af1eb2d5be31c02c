"""Repository records — README/LICENSE detection and license identification."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from licenseme.alike import similarity, max_similarity
from licenseme.licenses import GithubLicense
from licenseme.log import get_logger

# Probe order matters: first existing variant wins
README_VARIANTS = (
    "README",
    "README.md",
    "README.MD",
    "readme.md",
    "Readme.md",
    "Readme.MD",
)
LICENSE_VARIANTS = ("LICENSE", "license", "License")

DEFAULT_README_FILE = "README.md"
DEFAULT_LICENSE_FILE = "LICENSE"

MATCH_THRESHOLD = 60

logger = get_logger("repo")


@dataclass
class RepositoryRecord:
    root_path: str
    project_title: str
    readme_path: Optional[str] = None
    license_path: Optional[str] = None
    matched_license: Optional[GithubLicense] = None

    @property
    def has_readme(self) -> bool:
        return self.readme_path is not None

    @property
    def has_license(self) -> bool:
        return self.license_path is not None

    @property
    def default_readme_path(self) -> str:
        return os.path.join(self.root_path, DEFAULT_README_FILE)

    @property
    def default_license_path(self) -> str:
        return os.path.join(self.root_path, DEFAULT_LICENSE_FILE)

    def set_license(self, license: GithubLicense) -> bool:
        """Record the identified license. Only the first match sticks."""
        if self.matched_license is not None:
            return False
        self.matched_license = license
        return True

    def to_json(self) -> dict:
        return {
            "root_path": self.root_path,
            "project_title": self.project_title,
            "readme_path": self.readme_path,
            "license_path": self.license_path,
            "matched_license": self.matched_license.spdx_id if self.matched_license else None,
        }

    def __str__(self) -> str:
        return f"Project: {self.project_title}\nPath: {self.root_path}"


def _first_existing(root: str, names: Sequence[str], present: Optional[set[str]]) -> Optional[str]:
    for name in names:
        if present is not None:
            if name in present:
                return os.path.join(root, name)
        elif os.path.isfile(os.path.join(root, name)):
            return os.path.join(root, name)
    return None


def find_readme(root: str, present: Optional[set[str]] = None) -> Optional[str]:
    """Path of the first README variant in root, or None."""
    return _first_existing(root, README_VARIANTS, present)


def find_license(root: str, present: Optional[set[str]] = None) -> Optional[str]:
    """Path of the first LICENSE variant in root, or None."""
    return _first_existing(root, LICENSE_VARIANTS, present)


def match_license(
    text: str,
    catalog: Sequence[GithubLicense],
    threshold: float = MATCH_THRESHOLD,
) -> Optional[GithubLicense]:
    """Best-scoring catalog entry for text, if it reaches threshold."""
    text = text.strip()
    best: Optional[GithubLicense] = None
    best_score = -1.0
    for entry in catalog:
        body = entry.body.strip()
        # Skip entries that cannot beat the threshold or the current best
        bound = max_similarity(text, body)
        if bound < threshold or bound <= best_score:
            continue
        score = similarity(text, body)
        if score >= threshold and score > best_score:
            best, best_score = entry, score
    if best is not None:
        logger.debug("Matched %s (%.1f%%)", best.spdx_id, best_score)
    return best


def build_record(
    git_root: str,
    catalog: Optional[Sequence[GithubLicense]] = None,
    entries: Optional[set[str]] = None,
) -> RepositoryRecord:
    """Build the record for a directory that contains a .git entry.

    `entries` is the set of names directly under git_root, when the caller
    already listed the directory; otherwise the filesystem is probed.
    """
    root = os.path.normpath(git_root)
    title = Path(root).name or root
    record = RepositoryRecord(
        root_path=root,
        project_title=title,
        readme_path=find_readme(root, entries),
        license_path=find_license(root, entries),
    )

    if catalog and record.license_path:
        try:
            with open(record.license_path, encoding="utf-8", errors="replace") as f:
                content = f.read()
        except OSError as e:
            logger.debug("Cannot read %s: %s", record.license_path, e)
        else:
            found = match_license(content, catalog)
            if found is not None:
                record.set_license(found)

    return record
