from __future__ import annotations

import logging
from pathlib import Path

import pytest

EXAMPLES_DEPS_JS = """\
goog.addDependency("base.js", ['goog'], []);
goog.addDependency("../cljs/core.js", ['cljs.core'], ['goog.string', 'goog.object', 'goog.string.StringBuffer', 'goog.array']);
goog.addDependency("../om/dom.js", ['om.dom'], ['cljs.core']);
goog.addDependency("../om/core.js", ['om.core'], ['cljs.core', 'om.dom', 'goog.ui.IdGenerator']);
goog.addDependency("../examples/table_component.js", ['examples.table_component'], ['cljs.core', 'om.dom', 'om.core']);
goog.addDependency("../examples/core.js", ['examples.core'], ['cljs.core', 'om.dom', 'om.core']);
goog.addDependency("../examples/select_component.js", ['examples.select_component'], ['cljs.core', 'om.dom', 'om.core']);
"""


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """Undo handlers installed by configure_logging during a test."""

    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture()
def examples_manifest(tmp_path: Path) -> Path:
    path = tmp_path / "deps.js"
    path.write_text(EXAMPLES_DEPS_JS, encoding="utf-8")
    return path
