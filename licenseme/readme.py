"""README editing — find the license section by Markdown headings and rewrite it."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from licenseme.log import get_logger

LICENSE_HEADING = "## License"

_HEADING_RE = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*$")
_SETEXT_RE = re.compile(r"^ {0,3}(=+|-+)[ \t]*$")
_FENCE_RE = re.compile(r"^[ \t]{0,3}(`{3,}|~{3,})")
_LICENSE_TITLE_RE = re.compile(r"^\W*(licen[cs]es?|licensing)\W*$", re.IGNORECASE)

logger = get_logger("readme")


@dataclass
class Section:
    """A heading and the lines up to the next heading.

    The preamble before the first heading is a Section with level 0.
    """

    heading: str
    level: int
    title: str
    lines: list[str] = field(default_factory=list)

    def text(self) -> str:
        return self.heading + "".join(self.lines)


def parse_sections(text: str) -> list[Section]:
    """Split Markdown into sections at headings outside code fences.

    Both ATX (`## Title`) and setext (`Title` underlined with `===` or
    `---`) headings start a section. A setext heading takes only the
    single text line above its underline.
    """
    sections = [Section(heading="", level=0, title="")]
    fence: Optional[str] = None
    # The last line appended was plain paragraph text
    after_text = False

    for line in text.splitlines(keepends=True):
        stripped = line.rstrip("\r\n")
        fence_match = _FENCE_RE.match(stripped)
        if fence is not None:
            if fence_match and fence_match.group(1)[0] == fence[0] and len(fence_match.group(1)) >= len(fence):
                fence = None
            sections[-1].lines.append(line)
            continue
        if fence_match:
            fence = fence_match.group(1)
            sections[-1].lines.append(line)
            after_text = False
            continue

        heading = _HEADING_RE.match(stripped)
        underline = _SETEXT_RE.match(stripped)
        if heading:
            sections.append(Section(
                heading=line,
                level=len(heading.group(1)),
                title=(heading.group(2) or "").strip(),
            ))
            after_text = False
        elif underline and after_text:
            title_line = sections[-1].lines.pop()
            sections.append(Section(
                heading=title_line + line,
                level=1 if underline.group(1)[0] == "=" else 2,
                title=title_line.strip(),
            ))
            after_text = False
        else:
            sections[-1].lines.append(line)
            after_text = bool(stripped.strip())

    return sections


def is_license_title(title: str) -> bool:
    return bool(_LICENSE_TITLE_RE.match(title))


def find_license_section(sections: list[Section]) -> Optional[tuple[int, int]]:
    """(start, end) indices of the license section and its subsections."""
    for i, section in enumerate(sections):
        if section.level and is_license_title(section.title):
            end = i + 1
            while end < len(sections) and sections[end].level > section.level:
                end += 1
            return i, end
    return None


def _render_section(heading: str, content: str, is_last: bool) -> str:
    if not heading.endswith("\n"):
        heading += "\n"
    tail = "\n" if is_last else "\n\n"
    return f"{heading}\n{content}{tail}"


def replace_license_section(text: str, link: str, append: bool = False) -> str:
    """Put link into the README's license section.

    With append, the link is added after the existing section content
    (unless it is already there); otherwise the section content is replaced.
    A README without a license section gets a new one at the end.
    """
    sections = parse_sections(text)
    found = find_license_section(sections)

    if found is None:
        body = text.rstrip("\n")
        prefix = f"{body}\n\n" if body else ""
        return f"{prefix}{LICENSE_HEADING}\n\n{link}\n"

    start, end = found
    head = sections[start]
    existing = ("".join(head.lines) + "".join(s.text() for s in sections[start + 1:end])).strip("\n")

    if append:
        if link in existing:
            return text
        content = f"{existing}\n\n{link}" if existing.strip() else link
    else:
        content = link

    before = "".join(s.text() for s in sections[:start])
    after = "".join(s.text() for s in sections[end:])
    return before + _render_section(head.heading, content, is_last=not after) + after


def remove_license_links(text: str, links: Iterable[str]) -> str:
    """Drop links from the license section; an emptied section is removed."""
    links = [link for link in links if link]
    sections = parse_sections(text)
    found = find_license_section(sections)
    if found is None or not links:
        return text

    start, end = found
    head = sections[start]
    kept: list[str] = []
    for line in head.lines:
        new_line = line
        for link in links:
            new_line = new_line.replace(link, "")
        if new_line.strip() or not line.strip():
            kept.append(new_line)

    before = "".join(s.text() for s in sections[:start])
    subsections = "".join(s.text() for s in sections[start + 1:end])
    after = "".join(s.text() for s in sections[end:])

    remaining = "".join(kept).strip("\n")
    if not remaining.strip() and not subsections:
        result = before + after
        if not after:
            result = result.rstrip("\n") + "\n" if result.strip() else ""
        return result

    head.lines = kept
    return before + head.text() + subsections + after


def update_readme(path: str, link: str, append: bool = False) -> bool:
    """Rewrite the license section of the README at path. True if it changed."""
    p = Path(path)
    old = p.read_text(encoding="utf-8", errors="replace")
    new = replace_license_section(old, link, append=append)
    if new == old:
        logger.debug("%s already up to date", path)
        return False
    p.write_text(new, encoding="utf-8")
    logger.info("Updated license section in %s", path)
    return True


def strip_readme(path: str, links: Iterable[str]) -> bool:
    """Remove license links from the README at path. True if it changed."""
    p = Path(path)
    old = p.read_text(encoding="utf-8", errors="replace")
    new = remove_license_links(old, links)
    if new == old:
        return False
    p.write_text(new, encoding="utf-8")
    logger.info("Removed license links from %s", path)
    return True
