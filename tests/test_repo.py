"""Tests for repository records and license identification."""

import os
import tempfile
from unittest.mock import patch

from licenseme.licenses import GithubLicense
from licenseme.repo import (
    RepositoryRecord,
    build_record,
    find_license,
    find_readme,
    match_license,
)

MIT_BODY = (
    "MIT License\n\nCopyright (c) [year] [fullname]\n\n"
    "Permission is hereby granted, free of charge, to any person obtaining a copy "
    "of this software and associated documentation files (the \"Software\"), to deal "
    "in the Software without restriction.\n"
)
UNLICENSE_BODY = (
    "This is free and unencumbered software released into the public domain.\n\n"
    "Anyone is free to copy, modify, publish, use, compile, sell, or distribute this "
    "software, either in source code form or as a compiled binary.\n"
)


def _license(spdx: str, body: str) -> GithubLicense:
    return GithubLicense(key=spdx.lower(), name=spdx, spdx_id=spdx, body=body)


def _touch(path: str, content: str = "") -> None:
    with open(path, "w") as f:
        f.write(content)


def test_build_record_no_files():
    with tempfile.TemporaryDirectory() as tmp:
        record = build_record(tmp)
        assert record.root_path == os.path.normpath(tmp)
        assert record.project_title == os.path.basename(os.path.normpath(tmp))
        assert record.readme_path is None
        assert record.license_path is None
        assert record.matched_license is None


def test_build_record_license_file():
    with tempfile.TemporaryDirectory() as tmp:
        _touch(os.path.join(tmp, "LICENSE"), "text")
        record = build_record(tmp)
        assert record.license_path == os.path.join(os.path.normpath(tmp), "LICENSE")
        assert record.has_license


def test_readme_priority_uses_listing():
    names = {"readme.md", "README.md", "Readme.md"}
    assert find_readme("/r", names) == os.path.join("/r", "README.md")
    assert find_readme("/r", {"Readme.MD", "readme.md"}) == os.path.join("/r", "readme.md")
    assert find_readme("/r", {"README", "README.md"}) == os.path.join("/r", "README")
    assert find_readme("/r", {"README.rst"}) is None


def test_license_priority_uses_listing():
    assert find_license("/r", {"License", "license"}) == os.path.join("/r", "license")
    assert find_license("/r", {"LICENSE", "license"}) == os.path.join("/r", "LICENSE")
    assert find_license("/r", {"LICENSE.txt"}) is None


def test_find_readme_probes_filesystem():
    with tempfile.TemporaryDirectory() as tmp:
        _touch(os.path.join(tmp, "README.md"), "# hi")
        assert find_readme(tmp) == os.path.join(tmp, "README.md")


def test_match_license_best_entry():
    catalog = [_license("Unlicense", UNLICENSE_BODY), _license("MIT", MIT_BODY)]
    filled = MIT_BODY.replace("[year]", "2024").replace("[fullname]", "Jane Doe")
    assert match_license(filled, catalog).spdx_id == "MIT"


def test_match_license_below_threshold():
    catalog = [_license("MIT", MIT_BODY)]
    assert match_license("All rights reserved. Do not copy.", catalog) is None


def test_match_license_empty_catalog():
    assert match_license(MIT_BODY, []) is None


def test_build_record_matches_catalog():
    catalog = [_license("Unlicense", UNLICENSE_BODY), _license("MIT", MIT_BODY)]
    with tempfile.TemporaryDirectory() as tmp:
        _touch(os.path.join(tmp, "LICENSE"), MIT_BODY)
        record = build_record(tmp, catalog)
        assert record.matched_license.spdx_id == "MIT"


def test_build_record_unreadable_license():
    catalog = [_license("MIT", MIT_BODY)]
    with tempfile.TemporaryDirectory() as tmp:
        _touch(os.path.join(tmp, "LICENSE"), MIT_BODY)
        with patch("builtins.open", side_effect=PermissionError("denied")):
            record = build_record(tmp, catalog)
        assert record.license_path is not None
        assert record.matched_license is None


def test_set_license_only_once():
    record = RepositoryRecord(root_path="/r/p", project_title="p")
    mit = _license("MIT", MIT_BODY)
    other = _license("Unlicense", UNLICENSE_BODY)
    assert record.set_license(mit)
    assert not record.set_license(other)
    assert record.matched_license == mit


def test_to_json():
    record = RepositoryRecord(
        root_path="/r/p",
        project_title="p",
        license_path="/r/p/LICENSE",
        matched_license=_license("MIT", MIT_BODY),
    )
    data = record.to_json()
    assert data["matched_license"] == "MIT"
    assert data["readme_path"] is None
    assert data["project_title"] == "p"
