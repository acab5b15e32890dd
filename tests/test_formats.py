"""Filename heuristics and container detection."""

from __future__ import annotations

import pytest

from flashsource.formats import detect_container, file_extension, is_url, looks_like_windows_image


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("https://example.com/a.img", True),
        ("http://example.com/a.img", True),
        ("ftp://example.com/a.img", False),
        ("file:///tmp/a.img", False),
        ("HTTPS://example.com/a.img", False),
    ],
)
def test_is_url(value: str, expected: bool) -> None:
    assert is_url(value) is expected


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/tmp/raspios.IMG", "img"),
        ("/tmp/raspios.img.xz", "xz"),
        ("/tmp/dir.d/noext", None),
        ("/tmp/trailing.", None),
        ("C:\\images\\Ubuntu.ISO", "iso"),
    ],
)
def test_file_extension(path: str, expected: str | None) -> None:
    assert file_extension(path) == expected


def test_detect_container_prefers_extension() -> None:
    assert detect_container("a.img.gz", b"") == "gzip"
    assert detect_container("a.zip", b"") == "zip"
    # known image extension wins over magic bytes
    assert detect_container("a.img", b"\x1f\x8b\x08") is None


def test_detect_container_falls_back_to_magic() -> None:
    assert detect_container("download", b"\xfd7zXZ\x00\x00") == "xz"
    assert detect_container(None, b"BZh91AY") == "bzip2"
    assert detect_container("download", b"\x00" * 8) is None


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/isos/Win10_22H2_English_x64.iso", True),
        ("/isos/WINDOWS-server.iso", True),
        ("C:\\Downloads\\winxp.img", True),
        ("/isos/ubuntu-24.04.iso", False),
        ("/windows/ubuntu.iso", False),
    ],
)
def test_looks_like_windows_image(path: str, expected: bool) -> None:
    assert looks_like_windows_image(path) is expected


def test_windows_patterns_are_configurable() -> None:
    assert looks_like_windows_image("/isos/tiny11.iso", ["tiny11"])
    assert not looks_like_windows_image("/isos/win10.iso", ["tiny11"])


@pytest.mark.parametrize("patterns", [[], [""], ["", "   "]])
def test_blank_windows_patterns_match_nothing(patterns: list[str]) -> None:
    assert not looks_like_windows_image("/data/raspios.img", patterns)
    assert not looks_like_windows_image("/isos/win10.iso", patterns)


def test_blank_windows_patterns_are_skipped() -> None:
    assert looks_like_windows_image("/isos/Win10_x64.iso", ["", "win10"])
    assert not looks_like_windows_image("/data/raspios.img", ["", "win10"])
