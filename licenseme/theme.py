"""Shared visual constants and helpers for licenseme."""

from __future__ import annotations

from rich.style import Style
from rich.text import Text

# ── Color Palette (GitHub Dark + Neon Accents) ──────────────────────────

SURFACE = "#161b22"
BORDER = "#30363d"
MUTED = "#8b949e"

CYAN = "#58a6ff"
GREEN = "#39d353"
PURPLE = "#bc8cff"
YELLOW = "#e3b341"
RED = "#f85149"

ACCENT_REPOS = CYAN
ACCENT_LICENSES = PURPLE

# ── Banner ──────────────────────────────────────────────────────────────

TITLE = "licenseme"
TAGLINE = "find your repos, give them a license"

# ── Status Marks ────────────────────────────────────────────────────────

MARK_YES = "✔"
MARK_NO = "✘"


def render_banner() -> Text:
    """Render the licenseme title line as styled Rich Text."""
    text = Text()
    text.append(f"  📜 {TITLE}", style=Style(color=GREEN, bold=True))
    text.append(f"  {TAGLINE}\n", style=Style(color=MUTED, italic=True))
    return text


def presence_mark(present: bool) -> Text:
    """Green check or red cross for a README/LICENSE column."""
    if present:
        return Text(MARK_YES, style=Style(color=GREEN, bold=True))
    return Text(MARK_NO, style=Style(color=RED, bold=True))


def license_label(spdx_id: str | None, has_file: bool) -> Text:
    """Matched SPDX id, 'unknown' for an unmatched file, or a dash."""
    if spdx_id:
        return Text(spdx_id, style=Style(color=PURPLE, bold=True))
    if has_file:
        return Text("unknown", style=Style(color=YELLOW))
    return Text("—", style=Style(color=MUTED))
