"""Persistent program settings stored as JSON in the user's profile."""

from __future__ import annotations

import json
import os
import sys
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

from licenseme.log import get_logger

SETTINGS_DIR = "LicenseMe"
SETTINGS_FILE = "settings.json"
SETTINGS_ENV = "LICENSEME_SETTINGS"
TOKEN_ENV = "GITHUB_TOKEN"

DEFAULT_README_TEMPLATE = (
    "https://raw.githubusercontent.com/PurpleBooth/a-good-readme-template/main/README.md"
)
DEFAULT_README_PHRASE = "# Project Title"

logger = get_logger("settings")


class SettingsError(Exception):
    """Settings file could not be written."""


@dataclass
class ProgramSettings:
    github_user: str = ""
    github_api_token: Optional[str] = None
    readme_template_link: str = DEFAULT_README_TEMPLATE
    replace_in_readme_phrase: str = DEFAULT_README_PHRASE

    @classmethod
    def from_dict(cls, data: dict) -> ProgramSettings:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def effective_token(self) -> Optional[str]:
        """Configured token, falling back to $GITHUB_TOKEN."""
        return self.github_api_token or os.environ.get(TOKEN_ENV) or None

    def __str__(self) -> str:
        token = "set" if self.github_api_token else "not set"
        return (
            f"GitHub user: {self.github_user or '-'}\n"
            f"GitHub API token: {token}\n"
            f"README template: {self.readme_template_link}\n"
            f"Replaced in README: {self.replace_in_readme_phrase}"
        )


def default_settings_path() -> Path:
    """%APPDATA%/LicenseMe/settings.json on Windows, ~/LicenseMe/settings.json elsewhere."""
    override = os.environ.get(SETTINGS_ENV)
    if override:
        return Path(override).expanduser()
    if sys.platform.startswith("win"):
        base = os.environ.get("APPDATA") or os.getcwd()
    else:
        base = os.environ.get("HOME") or os.getcwd()
    return Path(base) / SETTINGS_DIR / SETTINGS_FILE


def save_settings(settings: ProgramSettings, path: Optional[Path] = None) -> Path:
    """Write settings as pretty JSON, creating the parent directory."""
    path = path or default_settings_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(asdict(settings), indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        raise SettingsError(f"Error writing settings file {path}: {e}")
    return path


def load_settings(path: Optional[Path] = None) -> ProgramSettings:
    """Load settings, creating or recreating the file with defaults when needed."""
    path = path or default_settings_path()
    logger.debug("Loading settings from %s", path)

    if not path.exists():
        logger.info("No settings file at %s, creating one", path)
        settings = ProgramSettings()
        _save_quietly(settings, path)
        return settings

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("settings root is not an object")
        settings = ProgramSettings.from_dict(data)
    except (OSError, ValueError, TypeError) as e:
        logger.error("Recreated settings file %s: %s", path, e)
        settings = ProgramSettings()
        _save_quietly(settings, path)
        return settings

    logger.info("Settings loaded from %s", path)
    return settings


def _save_quietly(settings: ProgramSettings, path: Path) -> None:
    try:
        save_settings(settings, path)
    except SettingsError as e:
        logger.warning("%s", e)
