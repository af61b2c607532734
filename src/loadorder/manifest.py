"""Readers for dependency manifests (Closure ``deps.js`` and YAML)."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml

from .types import Record, RecordError

LOGGER = logging.getLogger(__name__)

CALL_MARKER = "goog.addDependency"
YAML_SUFFIXES = {".yaml", ".yml"}

_CALL_PATTERN = re.compile(
    r"""goog\.addDependency\(\s*
        (?P<quote>['"])(?P<path>[^'"]*)(?P=quote)\s*,\s*
        \[(?P<provides>[^\]]*)\]\s*,\s*
        \[(?P<requires>[^\]]*)\]
        (?:\s*,[^)]*)?
        \s*\)""",
    re.VERBOSE,
)
_STRING_PATTERN = re.compile(r"""(['"])(.*?)\1""")
_ARRAY_TOKEN = re.compile(r"""(?:['"].*?['"])|(?P<junk>[^,\s'"]+)""")


class ManifestError(ValueError):
    """Raised when a manifest cannot be read or parsed."""

    def __init__(self, message: str, *, source: str, line: int | None = None) -> None:
        location = f"{source}:{line}" if line is not None else source
        super().__init__(f"{location}: {message}")
        self.source = source
        self.line = line


def parse_deps_js(text: str, source: str = "<string>") -> list[Record]:
    """Parse ``goog.addDependency`` calls, one record per call, in file order."""

    records: list[Record] = []
    for lineno, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("//"):
            continue
        if CALL_MARKER not in line:
            continue
        matches = list(_CALL_PATTERN.finditer(line))
        if len(matches) != line.count(CALL_MARKER):
            raise ManifestError(
                f"Malformed {CALL_MARKER} call: {line}", source=source, line=lineno
            )
        for match in matches:
            provides = _string_array(match.group("provides"), source, lineno)
            requires = _string_array(match.group("requires"), source, lineno)
            try:
                records.append(Record(match.group("path"), provides, requires))
            except RecordError as exc:
                raise ManifestError(str(exc), source=source, line=lineno) from exc
    LOGGER.debug("Parsed %d record(s) from %s", len(records), source)
    return records


def parse_yaml_manifest(text: str, source: str = "<string>") -> list[Record]:
    """Parse a YAML list of ``{path, provides, requires}`` mappings."""

    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ManifestError(f"Invalid YAML: {exc}", source=source) from exc
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ManifestError("Manifest root must be a list of records.", source=source)

    records: list[Record] = []
    for idx, entry in enumerate(raw, start=1):
        if not isinstance(entry, dict):
            raise ManifestError(f"records[{idx}] must be a mapping.", source=source)
        path = entry.get("path")
        if not isinstance(path, str):
            raise ManifestError(f"records[{idx}] requires a string 'path'.", source=source)
        provides = _symbol_list(entry.get("provides"), f"records[{idx}].provides", source)
        requires = _symbol_list(entry.get("requires"), f"records[{idx}].requires", source)
        try:
            records.append(Record(path, provides, requires))
        except RecordError as exc:
            raise ManifestError(str(exc), source=source) from exc
    LOGGER.debug("Parsed %d record(s) from %s", len(records), source)
    return records


def load_manifest(path: Path | str) -> list[Record]:
    """Read records from ``path``, choosing the format by file suffix."""

    manifest_path = Path(path).expanduser()
    source = str(manifest_path)
    try:
        text = manifest_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ManifestError("Manifest file not found.", source=source) from exc
    except OSError as exc:
        raise ManifestError(f"Cannot read manifest: {exc}", source=source) from exc
    except UnicodeDecodeError as exc:
        raise ManifestError(f"Manifest is not valid UTF-8: {exc}", source=source) from exc

    if manifest_path.suffix.lower() in YAML_SUFFIXES:
        return parse_yaml_manifest(text, source)
    return parse_deps_js(text, source)


def load_manifests(paths: Iterable[Path | str]) -> list[Record]:
    """Concatenate records from several manifests, preserving order."""

    records: list[Record] = []
    for path in paths:
        records.extend(load_manifest(path))
    return records


def _string_array(body: str, source: str, lineno: int) -> list[str]:
    for match in _ARRAY_TOKEN.finditer(body):
        junk = match.group("junk")
        if junk:
            raise ManifestError(
                f"Unexpected token '{junk}' in symbol list.", source=source, line=lineno
            )
    return [match.group(2) for match in _STRING_PATTERN.finditer(body)]


def _symbol_list(value: Any, field_name: str, source: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ManifestError(f"{field_name} must be a list of strings.", source=source)
    return list(value)


__all__ = [
    "ManifestError",
    "load_manifest",
    "load_manifests",
    "parse_deps_js",
    "parse_yaml_manifest",
]
