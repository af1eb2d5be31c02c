"""GitHub Licenses API client and the license catalog entry type."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Optional

import httpx

from licenseme.log import get_logger

GITHUB_API_URL = "https://api.github.com"
LICENSES_ENDPOINT = "/licenses"
API_VERSION = "2022-11-28"
USER_AGENT = "licenseme"
REQUEST_TIMEOUT = 15

logger = get_logger("licenses")


class LicenseApiError(Exception):
    """Error talking to the GitHub Licenses API."""


@dataclass(frozen=True)
class GithubLicense:
    key: str
    name: str
    spdx_id: str
    url: str = ""
    node_id: str = ""
    html_url: str = ""
    description: str = ""
    implementation: str = ""
    permissions: tuple[str, ...] = field(default_factory=tuple)
    conditions: tuple[str, ...] = field(default_factory=tuple)
    limitations: tuple[str, ...] = field(default_factory=tuple)
    body: str = ""
    featured: bool = False

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> GithubLicense:
        """Build from an API payload, tolerating missing optional fields."""
        return cls(
            key=data.get("key", ""),
            name=data.get("name", ""),
            spdx_id=data.get("spdx_id") or data.get("key", ""),
            url=data.get("url") or "",
            node_id=data.get("node_id") or "",
            html_url=data.get("html_url") or "",
            description=data.get("description") or "",
            implementation=data.get("implementation") or "",
            permissions=tuple(data.get("permissions") or ()),
            conditions=tuple(data.get("conditions") or ()),
            limitations=tuple(data.get("limitations") or ()),
            body=data.get("body") or "",
            featured=bool(data.get("featured", False)),
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "spdx_id": self.spdx_id,
            "html_url": self.html_url,
        }

    @property
    def needs_fullname(self) -> bool:
        return "[fullname]" in self.body

    def fill_placeholders(self, fullname: str = "", year: Optional[int] = None) -> GithubLicense:
        """Return a copy with [fullname] and [year] filled in."""
        year = year or date.today().year
        body = self.body
        if fullname:
            body = body.replace("[fullname]", fullname)
        body = body.replace("[year]", str(year)).replace("[yyyy]", str(year))
        return replace(self, body=body)

    def markdown_link(self) -> str:
        """Markdown link to the license, e.g. [MIT](https://...)."""
        return f"[{self.spdx_id}]({self.html_url})"


class LicenseClient:
    """Client for the GitHub Licenses REST API."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = GITHUB_API_URL,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
            "User-Agent": USER_AGENT,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.Client(timeout=timeout, headers=headers)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> LicenseClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _get(self, url: str) -> httpx.Response:
        try:
            resp = self._client.get(url)
        except httpx.TimeoutException:
            raise LicenseApiError(f"Request timed out: {url}")
        except httpx.HTTPError as e:
            raise LicenseApiError(f"Request failed: {url}: {e}")
        if resp.status_code != 200:
            hint = ""
            if resp.status_code == 403:
                remaining = resp.headers.get("X-RateLimit-Remaining", "N/A")
                hint = f" (rate limit remaining: {remaining}; set GITHUB_TOKEN)"
            raise LicenseApiError(
                f"GitHub returned {resp.status_code} for {url}{hint}: {resp.text[:200]}"
            )
        return resp

    def _get_json(self, url: str) -> Any:
        resp = self._get(url)
        try:
            return resp.json()
        except ValueError:
            raise LicenseApiError(f"Invalid JSON from {url}: {resp.text[:200]}")

    def list_licenses(self) -> list[GithubLicense]:
        """Summary entries (no body) for every license GitHub knows."""
        data = self._get_json(f"{self.base_url}{LICENSES_ENDPOINT}")
        if not isinstance(data, list):
            raise LicenseApiError("Unexpected license list payload")
        return [GithubLicense.from_json(item) for item in data]

    def get_license(self, key: str) -> GithubLicense:
        """Full entry, including body text, for one license key."""
        data = self._get_json(f"{self.base_url}{LICENSES_ENDPOINT}/{key}")
        if not isinstance(data, dict):
            raise LicenseApiError(f"Unexpected payload for license {key}")
        return GithubLicense.from_json(data)

    def fetch_catalog(self) -> list[GithubLicense]:
        """Full entries for every license in the summary list."""
        catalog: list[GithubLicense] = []
        for summary in self.list_licenses():
            logger.debug("Fetching license %s", summary.key)
            if summary.url:
                data = self._get_json(summary.url)
                catalog.append(GithubLicense.from_json(data))
            else:
                catalog.append(self.get_license(summary.key))
        logger.info("Fetched %d licenses", len(catalog))
        return catalog

    def fetch_readme_template(self, url: str, project_title: str, phrase: str) -> str:
        """Download a README template and put the project title in place of phrase."""
        text = self._get(url).text
        if not phrase:
            return text
        # Keep the heading level of the placeholder, e.g. "# Project Title"
        hashes = phrase[: len(phrase) - len(phrase.lstrip("#"))]
        title = f"{hashes} {project_title}" if hashes else project_title
        return text.replace(phrase, title)
