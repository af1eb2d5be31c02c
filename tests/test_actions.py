"""Tests for license actions across operating modes."""

import os
from pathlib import Path

import pytest

from licenseme.actions import (
    ErrorCollector,
    OperatingMode,
    apply_license,
    license_target,
    run_action,
    select_candidates,
    unlicense,
)
from licenseme.licenses import GithubLicense
from licenseme.repo import RepositoryRecord, build_record

MIT = GithubLicense(
    key="mit", name="MIT License", spdx_id="MIT",
    html_url="https://choosealicense.com/licenses/mit/",
    body="MIT License\n\nCopyright (c) 2024 Jane Doe\n",
)
APACHE = GithubLicense(
    key="apache-2.0", name="Apache License 2.0", spdx_id="Apache-2.0",
    html_url="https://choosealicense.com/licenses/apache-2.0/",
    body="Apache License\nVersion 2.0, January 2004\n",
)


def _repo(tmp_path, name="proj", readme=None, license=None):
    root = tmp_path / name
    (root / ".git").mkdir(parents=True)
    if readme is not None:
        (root / "README.md").write_text(readme)
    if license is not None:
        (root / "LICENSE").write_text(license)
    return build_record(str(root))


def test_select_candidates():
    with_license = RepositoryRecord("/a", "a", license_path="/a/LICENSE")
    without = RepositoryRecord("/b", "b")
    records = [with_license, without]
    assert select_candidates(records, OperatingMode.SET_NEW_LICENSE) == [without]
    assert select_candidates(records, OperatingMode.LICENSE_REPLACE) == [with_license]
    assert select_candidates(records, OperatingMode.APPEND_LICENSE) == [with_license]
    assert select_candidates(records, OperatingMode.UNLICENSE) == [with_license]
    assert select_candidates(records, OperatingMode.SHOW_ALL_GIT_DIRS) == records


def test_set_new_license_with_readme(tmp_path):
    record = _repo(tmp_path, readme="# proj\n\nHello.\n")
    path = apply_license(record, MIT, OperatingMode.SET_NEW_LICENSE)
    assert path == os.path.join(record.root_path, "LICENSE")
    assert (tmp_path / "proj" / "LICENSE").read_text() == MIT.body
    assert record.license_path == path
    assert record.matched_license == MIT
    readme = (tmp_path / "proj" / "README.md").read_text()
    assert readme.endswith(f"## License\n\n{MIT.markdown_link()}\n")


def test_set_new_license_creates_readme(tmp_path):
    record = _repo(tmp_path)
    apply_license(
        record, MIT, OperatingMode.SET_NEW_LICENSE,
        readme_source=lambda r: f"# {r.project_title}\n",
    )
    readme = (tmp_path / "proj" / "README.md").read_text()
    assert readme == f"# proj\n\n## License\n\n{MIT.markdown_link()}\n"
    assert record.readme_path == os.path.join(record.root_path, "README.md")


def test_set_new_license_readme_declined(tmp_path):
    record = _repo(tmp_path)
    apply_license(record, MIT, OperatingMode.SET_NEW_LICENSE, readme_source=lambda r: None)
    assert not (tmp_path / "proj" / "README.md").exists()
    assert record.readme_path is None


def test_append_license(tmp_path):
    record = _repo(tmp_path, readme=f"# proj\n\n## License\n\n{MIT.markdown_link()}\n", license=MIT.body)
    path = apply_license(record, APACHE, OperatingMode.APPEND_LICENSE)
    assert path == os.path.join(record.root_path, "LICENSE-Apache-2.0")
    assert (tmp_path / "proj" / "LICENSE").read_text() == MIT.body
    assert (tmp_path / "proj" / "LICENSE-Apache-2.0").read_text() == APACHE.body
    assert record.license_path == os.path.join(record.root_path, "LICENSE")
    readme = (tmp_path / "proj" / "README.md").read_text()
    assert MIT.markdown_link() in readme
    assert APACHE.markdown_link() in readme


def test_license_target_append_without_existing(tmp_path):
    record = _repo(tmp_path)
    assert license_target(record, APACHE, OperatingMode.APPEND_LICENSE) == record.default_license_path


def test_replace_license(tmp_path):
    record = _repo(tmp_path, readme=f"# proj\n\n## License\n\n{MIT.markdown_link()}\n", license=MIT.body)
    apply_license(record, APACHE, OperatingMode.LICENSE_REPLACE)
    assert (tmp_path / "proj" / "LICENSE").read_text() == APACHE.body
    assert record.matched_license == APACHE
    readme = (tmp_path / "proj" / "README.md").read_text()
    assert MIT.markdown_link() not in readme
    assert APACHE.markdown_link() in readme


def test_replace_lowercase_license_file(tmp_path):
    root = tmp_path / "proj"
    (root / ".git").mkdir(parents=True)
    (root / "license").write_text("old")
    record = build_record(str(root))
    apply_license(record, APACHE, OperatingMode.LICENSE_REPLACE)
    names = sorted(os.listdir(root))
    assert "license" not in names
    assert (root / "LICENSE").read_text() == APACHE.body


def test_replace_keeps_old_license_when_write_fails(tmp_path, monkeypatch):
    root = tmp_path / "proj"
    (root / ".git").mkdir(parents=True)
    (root / "license").write_text("old")
    record = build_record(str(root))

    def refuse(self, *args, **kwargs):
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "write_text", refuse)
    with pytest.raises(OSError):
        apply_license(record, APACHE, OperatingMode.LICENSE_REPLACE)
    monkeypatch.undo()

    assert (root / "license").read_text() == "old"
    assert record.license_path == str(root / "license")


def test_unlicense(tmp_path):
    record = _repo(tmp_path, readme=f"# proj\n\n## License\n\n{MIT.markdown_link()}\n", license=MIT.body)
    record.set_license(MIT)
    unlicense(record)
    assert not (tmp_path / "proj" / "LICENSE").exists()
    assert (tmp_path / "proj" / "README.md").read_text() == "# proj\n"
    assert record.license_path is None
    assert record.matched_license is None


def test_unlicense_without_license_is_noop(tmp_path):
    record = _repo(tmp_path)
    unlicense(record)
    assert record.license_path is None


def test_run_action_collects_errors(tmp_path):
    good = _repo(tmp_path, name="good")
    gone = RepositoryRecord(str(tmp_path / "gone"), "gone")
    errors = run_action([gone, good], OperatingMode.SET_NEW_LICENSE, MIT)
    assert len(errors) == 1
    assert "gone" in errors.errors[0]
    assert (tmp_path / "good" / "LICENSE").exists()


def test_run_action_requires_license():
    with pytest.raises(ValueError):
        run_action([], OperatingMode.APPEND_LICENSE)


def test_run_action_show_mode_touches_nothing(tmp_path):
    record = _repo(tmp_path)
    errors = run_action([record], OperatingMode.SHOW_ALL_GIT_DIRS)
    assert not errors
    assert os.listdir(tmp_path / "proj") == [".git"]


def test_error_collector():
    errors = ErrorCollector()
    assert not errors
    errors.add("boom")
    assert errors
    assert errors.errors == ["boom"]
