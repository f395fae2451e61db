import json
from pathlib import Path

import pytest
from pytest_mock import MockerFixture

from codegrab import cli
from codegrab import settings as settings_module


@pytest.fixture(autouse=True)
def _no_dotenv(mocker: MockerFixture) -> None:
    mocker.patch.object(settings_module, "ENV_FILE", "")


def _write(root: Path, rel: str, text: str) -> None:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_end_to_end_markdown_export(tmp_path: Path) -> None:
    repo = tmp_path
    _write(repo, "src/app.py", "print('hi')\n")
    _write(repo, "README.md", "# demo\n")
    (repo / "logo.png").write_bytes(b"\x89PNG\x00\x00\x00")

    output = repo / "export.md"

    exit_code = cli.main([str(repo), "--output", str(output)])

    assert exit_code == 0
    content = output.read_text(encoding="utf-8")
    assert "## src/app.py" in content
    assert "## README.md" in content
    assert "logo.png" not in content


def test_end_to_end_typescript_dependencies_to_jsonl(tmp_path: Path) -> None:
    repo = tmp_path
    _write(repo, "web/src/main.tsx", 'import { App } from "./App";\nimport "./styles.css";\n\nexport default App;\n')
    _write(repo, "web/src/App.tsx", 'import { format } from "../lib/format";\n\nexport const App = () => format(1);\n')
    _write(repo, "web/lib/format.ts", "export const format = (n: number) => `${n}`;\n")
    _write(repo, "web/src/styles.css", "body { margin: 0; }\n")

    output = repo / "corpus.jsonl"

    exit_code = cli.main([str(repo), "-s", "web/src/main.tsx", "--deps", "--max-depth", "2", "--output", str(output)])

    assert exit_code == 0
    items = [json.loads(line) for line in output.read_text(encoding="utf-8").splitlines()]
    paths = {item["path"]: item["dependency"] for item in items}
    assert paths == {
        "web/src/main.tsx": False,
        "web/src/App.tsx": True,
        "web/lib/format.ts": True,
        "web/src/styles.css": True,
    }


def test_end_to_end_python_directory_selection_with_size_limit(tmp_path: Path) -> None:
    repo = tmp_path
    _write(repo, "app/__init__.py", "")
    _write(repo, "app/main.py", "from lib import helpers\n")
    _write(repo, "lib/__init__.py", "")
    _write(repo, "lib/helpers.py", "def help():\n    return 1\n")
    _write(repo, "lib/huge.py", "x = 1\n" * 1000)

    output = repo / "export.md"

    exit_code = cli.main(
        [str(repo), "-s", "app", "--deps", "--max-file-size", "1kb", "--compact", "--output", str(output)],
    )

    assert exit_code == 0
    content = output.read_text(encoding="utf-8")
    assert "## app/main.py\n" in content
    assert "## lib/helpers.py (dependency)" in content
    assert "## lib/__init__.py (dependency)" in content
    assert "huge.py" not in content
