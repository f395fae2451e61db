from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from codegrab.config import FileItem, guess_language
from codegrab.exceptions import NotADirectoryRootError
from codegrab.file_cache import FileCache
from codegrab.file_manipulation import build_tree_lines, ensure_root, is_text_file, relpath, walk_directory
from codegrab.filters import FilterManager, GitIgnoreManager, Visibility


def _write(root: Path, rel: str, data: bytes = b"x") -> None:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


@pytest.mark.unit
def test_relpath_uses_posix_separators(tmp_path: Path) -> None:
    assert relpath(tmp_path / "a" / "b.go", tmp_path) == "a/b.go"
    assert relpath(Path("/elsewhere/x"), tmp_path) == "/elsewhere/x"


@pytest.mark.unit
@pytest.mark.parametrize(
    ("data", "expected"),
    [
        (b"", True),
        (b"plain ascii\n", True),
        ("héllo".encode(), True),
        (b"abc\x00def", False),
        (b"\xff\xfe\xfa garbage", False),
    ],
)
def test_is_text_file(tmp_path: Path, data: bytes, expected: bool) -> None:
    f = tmp_path / "f"
    f.write_bytes(data)

    assert is_text_file(f) is expected


@pytest.mark.unit
def test_is_text_file_accepts_multibyte_cut_at_sample_boundary(tmp_path: Path) -> None:
    f = tmp_path / "f"
    f.write_bytes(b"a" * 511 + "é".encode())

    assert is_text_file(f) is True


@pytest.mark.unit
def test_is_text_file_permission_denied_is_binary(tmp_path: Path, mocker: MockerFixture) -> None:
    mocker.patch("codegrab.file_manipulation.open", side_effect=PermissionError("denied"), create=True)

    assert is_text_file(tmp_path / "f") is False


@pytest.mark.unit
def test_ensure_root(tmp_path: Path) -> None:
    f = tmp_path / "file.txt"
    f.write_text("x", encoding="utf-8")

    assert ensure_root(tmp_path) == tmp_path.resolve()
    with pytest.raises(NotADirectoryRootError):
        ensure_root(f)


@pytest.mark.unit
def test_walk_directory_applies_visibility(tmp_path: Path) -> None:
    _write(tmp_path, ".gitignore", b"build/\n")
    _write(tmp_path, "build/out.go")
    _write(tmp_path, ".git/config")
    _write(tmp_path, "src/main.go", b"package main\n")
    _write(tmp_path, "src/big.go", b"x" * 2000)
    _write(tmp_path, "src/logo.png", b"\x89PNG\x00\x00")
    _write(tmp_path, "src/notes.md", b"# notes\n")
    visibility = Visibility(
        gitignore=GitIgnoreManager.from_root(tmp_path),
        filters=FilterManager(["!*.md"]),
        max_file_size=1000,
    )

    items = walk_directory(tmp_path, visibility, FileCache(max_bytes=1 << 20, max_items=100), max_workers=4)

    assert items == [
        FileItem(path="src", is_dir=True, size=(tmp_path / "src").stat().st_size),
        FileItem(path="src/main.go", size=13),
    ]
    assert items[1].level == 1
    assert items[1].name == "main.go"


@pytest.mark.unit
def test_walk_directory_shows_hidden_when_asked(tmp_path: Path) -> None:
    _write(tmp_path, ".config/app.toml", b"a = 1\n")
    visibility = Visibility(gitignore=GitIgnoreManager(tmp_path), show_hidden=True)

    items = walk_directory(tmp_path, visibility, FileCache(max_bytes=1 << 20, max_items=100))

    assert [item.path for item in items] == [".config", ".config/app.toml"]


@pytest.mark.unit
def test_build_tree_lines() -> None:
    lines = build_tree_lines("proj", ["src/b.go", "src/a.go", "README.md"])

    assert lines == [
        "proj/",
        "├── src/",
        "│   ├── a.go",
        "│   └── b.go",
        "└── README.md",
    ]


@pytest.mark.unit
@pytest.mark.parametrize(
    ("path", "expected"),
    [("cmd/main.go", "go"), ("web/App.TSX", "tsx"), ("Dockerfile", "dockerfile"), ("LICENSE", "")],
)
def test_guess_language(path: str, expected: str) -> None:
    assert guess_language(path) == expected
