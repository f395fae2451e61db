import json
from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from codegrab import cli
from codegrab import settings as settings_module
from codegrab.session import GrabSession


@pytest.fixture(autouse=True)
def _no_dotenv(mocker: MockerFixture) -> None:
    mocker.patch.object(settings_module, "ENV_FILE", "")


def _go_project(root: Path) -> Path:
    (root / "go.mod").write_text("module example.com/proj\n\ngo 1.22\n", encoding="utf-8")
    (root / "cmd").mkdir()
    (root / "cmd" / "main.go").write_text(
        'package main\n\nimport (\n\t"fmt"\n\n\t"example.com/proj/pkg"\n)\n\nfunc main() { fmt.Println(pkg.Name()) }\n',
        encoding="utf-8",
    )
    (root / "pkg").mkdir()
    (root / "pkg" / "util.go").write_text(
        'package pkg\n\nimport "example.com/proj/internal/names"\n\nfunc Name() string { return names.Default }\n',
        encoding="utf-8",
    )
    (root / "pkg" / "util_test.go").write_text("package pkg\n", encoding="utf-8")
    (root / "internal" / "names").mkdir(parents=True)
    (root / "internal" / "names" / "names.go").write_text(
        'package names\n\nconst Default = "x"\n',
        encoding="utf-8",
    )
    return root


@pytest.mark.integration
def test_main_selects_dependencies_up_to_max_depth(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = _go_project(tmp_path)
    output = tmp_path / "bundle.md"

    code = cli.main([str(root), "--select", "cmd/main.go", "--deps", "--output", str(output)])

    assert code == 0
    content = output.read_text(encoding="utf-8")
    assert "## cmd/main.go\n" in content
    assert "## pkg/util.go (dependency)" in content
    assert "util_test.go" not in content
    assert "names.go" not in content
    assert f"Wrote {output} format=md files=2" in capsys.readouterr().out


@pytest.mark.integration
def test_main_unlimited_depth_follows_the_whole_chain(tmp_path: Path) -> None:
    root = _go_project(tmp_path)
    output = tmp_path / "bundle.jsonl"

    code = cli.main([str(root), "-s", "cmd/main.go", "--deps", "--max-depth", "-1", "--output", str(output)])

    assert code == 0
    items = [json.loads(line) for line in output.read_text(encoding="utf-8").splitlines()]
    assert sorted({item["path"] for item in items}) == ["cmd/main.go", "internal/names/names.go", "pkg/util.go"]
    assert {item["path"] for item in items if item["dependency"]} == {"internal/names/names.go", "pkg/util.go"}


@pytest.mark.integration
def test_main_toggles_each_selected_path_through_the_session(tmp_path: Path, mocker: MockerFixture) -> None:
    root = _go_project(tmp_path)
    toggle = mocker.spy(GrabSession, "toggle")
    select_all = mocker.spy(GrabSession, "select_all")

    code = cli.main([str(root), "-s", "pkg", "-s", "cmd/main.go", "--output", str(tmp_path / "out.md")])

    assert code == 0
    assert [c.args[1] for c in toggle.call_args_list] == ["pkg", "cmd/main.go"]
    select_all.assert_not_called()


@pytest.mark.integration
def test_main_without_selection_exports_every_visible_file(tmp_path: Path) -> None:
    root = _go_project(tmp_path)
    (root / ".gitignore").write_text("internal/\n", encoding="utf-8")
    output = tmp_path / "out.md"

    code = cli.main([str(root), "--glob", "*.go", "--glob", "!*_test.go", "--output", str(output)])

    assert code == 0
    content = output.read_text(encoding="utf-8")
    assert "## cmd/main.go" in content
    assert "## pkg/util.go" in content
    assert "names.go" not in content
    assert "## go.mod" not in content
    assert "util_test.go" not in content


@pytest.mark.integration
def test_main_reports_unknown_select_path(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = _go_project(tmp_path)

    code = cli.main([str(root), "-s", "nope.go", "-s", "cmd/main.go", "--output", str(tmp_path / "out.md")])

    assert code == 0
    assert "warning: cannot access nope.go" in capsys.readouterr().err
