"""End-to-end resolution of the om examples manifest."""

from __future__ import annotations

from pathlib import Path

import pytest

from loadorder.config import load_config
from loadorder.manifest import load_manifests
from loadorder.resolver import (
    CyclicDependencyError,
    DependencyGraphResolver,
    UnresolvedSymbolError,
)

EXPECTED_ORDER = [
    "base.js",
    "../cljs/core.js",
    "../om/dom.js",
    "../om/core.js",
    "../examples/table_component.js",
    "../examples/core.js",
    "../examples/select_component.js",
]


def _session(tmp_path: Path, config_body: str, *extra: Path) -> DependencyGraphResolver:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(config_body, encoding="utf-8")
    config = load_config(config_path)
    resolver = DependencyGraphResolver(config.policy)
    resolver.register_many(load_manifests([*config.manifests, *extra]))
    return resolver


def test_examples_resolve_with_closure_library_external(
    tmp_path: Path, examples_manifest: Path
) -> None:
    resolver = _session(
        tmp_path,
        "manifests: [deps.js]\nresolver:\n  external_symbols: ['goog.*']\n",
    )

    assert resolver.resolve() == EXPECTED_ORDER
    assert resolver.load_order_for(["examples.core"]) == EXPECTED_ORDER[1:4] + [
        "../examples/core.js"
    ]


def test_examples_fail_without_external_policy(tmp_path: Path, examples_manifest: Path) -> None:
    resolver = _session(tmp_path, "manifests: [deps.js]\n")

    with pytest.raises(UnresolvedSymbolError) as excinfo:
        resolver.resolve()

    assert excinfo.value.symbol == "goog.string"


def test_yaml_overlay_introducing_cycle(tmp_path: Path, examples_manifest: Path) -> None:
    overlay = tmp_path / "overlay.yaml"
    overlay.write_text(
        "- path: ../om/patch.js\n"
        "  provides: [om.patch]\n"
        "  requires: [om.core]\n",
        encoding="utf-8",
    )
    # Rewire om.dom to depend on the overlay, closing a loop through om.core.
    examples_manifest.write_text(
        examples_manifest.read_text(encoding="utf-8").replace(
            "['om.dom'], ['cljs.core']", "['om.dom'], ['cljs.core', 'om.patch']"
        ),
        encoding="utf-8",
    )

    resolver = _session(
        tmp_path,
        "manifests: [deps.js]\nresolver:\n  external_symbols: ['goog.*']\n",
        overlay,
    )

    with pytest.raises(CyclicDependencyError) as excinfo:
        resolver.resolve()

    assert excinfo.value.cycle == ("../om/dom.js", "../om/patch.js", "../om/core.js")
