from pathlib import Path

import pytest

from codegrab.dependencies import ResolverRegistry
from codegrab.file_cache import FileCache
from codegrab.session import GrabSession
from codegrab.settings import Settings


def _write(root: Path, rel: str, text: str = "x") -> None:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@pytest.mark.unit
def test_session_walks_root_on_creation(tmp_path: Path) -> None:
    _write(tmp_path, "src/app.py")
    _write(tmp_path, ".env", "SECRET=1")

    with GrabSession(Settings(root=tmp_path)) as session:
        assert [item.path for item in session.files] == ["src", "src/app.py"]
        assert session.engine.files == session.files


@pytest.mark.unit
def test_session_uses_injected_collaborators(tmp_path: Path) -> None:
    cache = FileCache(max_bytes=10, max_items=2)
    registry = ResolverRegistry()

    with GrabSession(Settings(root=tmp_path), cache=cache, registry=registry) as session:
        assert session.cache is cache
        assert session.registry is registry
        assert session.engine.registry is registry


@pytest.mark.unit
def test_toggle_hidden_reloads_and_filters(tmp_path: Path) -> None:
    _write(tmp_path, ".config/a.toml")
    _write(tmp_path, "b.txt")

    with GrabSession(Settings(root=tmp_path)) as session:
        assert session.toggle_hidden() is True
        assert ".config/a.toml" in [item.path for item in session.files]
        session.toggle(".config")
        session.toggle("b.txt")

        assert session.toggle_hidden() is False
        assert session.engine.selected == {"b.txt"}
        assert ".config/a.toml" not in [item.path for item in session.files]


@pytest.mark.unit
def test_toggle_gitignore_reloads_and_filters(tmp_path: Path) -> None:
    _write(tmp_path, ".gitignore", "out.log\n")
    _write(tmp_path, "out.log")

    with GrabSession(Settings(root=tmp_path)) as session:
        assert "out.log" not in [item.path for item in session.files]

        assert session.toggle_gitignore() is False
        assert "out.log" in [item.path for item in session.files]
        session.toggle("out.log")

        assert session.toggle_gitignore() is True
        assert session.engine.selected == frozenset()


@pytest.mark.unit
def test_dependency_resolution_toggle_applies_to_next_selection(tmp_path: Path) -> None:
    _write(tmp_path, "pkg/__init__.py", "")
    _write(tmp_path, "pkg/core.py", "X = 1\n")
    _write(tmp_path, "main.py", "from pkg import core\n")

    with GrabSession(Settings(root=tmp_path)) as session:
        assert session.toggle_dependency_resolution() is True
        session.toggle("main.py")

        assert session.engine.selected == {"main.py", "pkg/__init__.py", "pkg/core.py"}
        assert session.engine.is_dependency == {"pkg/__init__.py", "pkg/core.py"}


@pytest.mark.unit
def test_select_all_selects_every_listed_file(tmp_path: Path) -> None:
    _write(tmp_path, "a.txt")
    _write(tmp_path, "d/b.txt")

    with GrabSession(Settings(root=tmp_path)) as session:
        session.select_all()

        assert session.engine.selected_files() == ["a.txt", "d/b.txt"]


@pytest.mark.unit
def test_dependency_pruning_survives_a_reload(tmp_path: Path) -> None:
    _write(tmp_path, "go.mod", "module example.com/app\n\ngo 1.22\n")
    _write(tmp_path, "D/a.go", 'package d\n\nimport "example.com/app/lib"\n\nvar _ = lib.B\n')
    _write(tmp_path, "D/c.go", "package d\n")
    _write(tmp_path, "lib/b.go", "package lib\n\nconst B = 1\n")

    with GrabSession(Settings(root=tmp_path, deps=True, max_depth=1)) as session:
        session.toggle("D")
        assert session.engine.selected == {"D", "D/a.go", "D/c.go", "lib/b.go"}
        assert session.engine.is_dependency == {"lib/b.go"}

        session.toggle_hidden()
        session.toggle_hidden()
        assert session.engine.is_dependency == {"lib/b.go"}

        session.toggle("D")
        assert session.engine.selected == frozenset()
        assert session.engine.is_dependency == frozenset()
