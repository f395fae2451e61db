from pathlib import Path

import pytest

from codegrab.dependencies import JSResolver
from codegrab.dependencies.js_resolver import import_specifiers, resolve_js_path
from codegrab.exceptions import ResolverError

APP_TS = b"""import { helper } from "./utils/helper";
import React from "react";
export { thing } from "../shared/thing";
const legacy = require("./legacy");
const lazy = import("./lazy");
"""


def _js_project(root: Path) -> Path:
    src = root / "src"
    (src / "utils").mkdir(parents=True)
    (src / "utils" / "helper.ts").write_text("export const helper = 1;\n", encoding="utf-8")
    (src / "legacy.js").write_text("module.exports = {};\n", encoding="utf-8")
    (src / "lazy").mkdir()
    (src / "lazy" / "index.tsx").write_text("export default 1;\n", encoding="utf-8")
    (root / "shared").mkdir()
    (root / "shared" / "thing.mjs").write_text("export const thing = 1;\n", encoding="utf-8")
    (src / "app.ts").write_bytes(APP_TS)
    return root


@pytest.mark.unit
def test_import_specifiers_collects_all_forms() -> None:
    specifiers = import_specifiers(APP_TS, "src/app.ts")

    assert specifiers == ["./utils/helper", "react", "../shared/thing", "./legacy", "./lazy"]


@pytest.mark.unit
def test_relative_specifiers_resolve_with_extensions_and_index(tmp_path: Path) -> None:
    root = _js_project(tmp_path)

    deps = JSResolver().resolve(APP_TS, "src/app.ts", root, "")

    assert deps == {
        "src/utils/helper.ts",
        "shared/thing.mjs",
        "src/legacy.js",
        "src/lazy/index.tsx",
    }


@pytest.mark.unit
def test_unresolvable_specifier_is_dropped(tmp_path: Path) -> None:
    src = b'import x from "./missing";\n'

    assert JSResolver().resolve(src, "a.js", tmp_path, "") == set()


@pytest.mark.unit
def test_resolve_js_path_outside_root(tmp_path: Path) -> None:
    root = tmp_path / "proj"
    root.mkdir()
    (tmp_path / "outside.js").write_text("", encoding="utf-8")

    assert resolve_js_path("../outside", root, root) is None


@pytest.mark.unit
def test_syntax_error_raises_resolver_error(tmp_path: Path) -> None:
    with pytest.raises(ResolverError):
        JSResolver().resolve(b"import { from './x'\n", "bad.js", tmp_path, "")
