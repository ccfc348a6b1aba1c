# src/manifest/store.py - v2
"""Structure-preserving read/write access to the project manifest (package.json).

Only the targeted field is replaced on write-back. Key order, nesting,
indentation, number literals, a leading UTF-8 BOM and the trailing
newline of the original file are kept.
The file is re-read on every call so callers never see stale content.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import uuid
from pathlib import Path
from typing import Any

from ngupgrade.core.errors import ManifestError, ManifestKind
from ngupgrade.core.models import DependencyKind

logger = logging.getLogger(__name__)

_INDENT_RE = re.compile(r"\A\s*\{[ \t]*\r?\n([ \t]+)\S")
DEFAULT_INDENT = "  "
_BOM = "\ufeff"


class ManifestStore:
    """Read and mutate one JSON manifest file in place."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, Any]:
        """Parse the manifest into an ordered mapping.

        Raises:
            ManifestError: ReadFailure on I/O error, ParseFailure if the
                content is not a JSON object.
        """
        data, _ = self._read()
        return data

    def get_field(self, path: str, default: Any = None) -> Any:
        """Return the value at a dotted path such as ``engines.node``."""
        node: Any = self.load()
        for key in path.split("."):
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return node

    def set_field(self, path: str, value: Any) -> None:
        """Replace the value at a dotted path, creating missing parent objects.

        New keys are appended after existing ones; existing keys keep
        their position.

        Raises:
            ManifestError: ParseFailure if a parent on the path is not an
                object, WriteFailure if the file cannot be written back.
        """
        data, text = self._read()
        keys = path.split(".")
        node = data
        for key in keys[:-1]:
            child = node.setdefault(key, {})
            if not isinstance(child, dict):
                raise ManifestError(
                    ManifestKind.PARSE_FAILURE,
                    f"{self._path.name}: '{key}' in '{path}' is not an object",
                )
            node = child
        node[keys[-1]] = value
        self._write(data, text)
        logger.info("Set %s = %r in %s", path, value, self._path.name)

    def get_dependency_map(self, kind: DependencyKind) -> dict[str, str]:
        """Return the ``dependencies`` or ``devDependencies`` section (empty if absent).

        Raises:
            ManifestError: ParseFailure if the section is not a name -> version mapping.
        """
        section = self.load().get(kind)
        if section is None:
            return {}
        if not isinstance(section, dict) or not all(
            isinstance(v, str) for v in section.values()
        ):
            raise ManifestError(
                ManifestKind.PARSE_FAILURE,
                f"{self._path.name}: '{kind}' is not a name -> version mapping",
            )
        return dict(section)

    # --- I/O ---

    def _read(self) -> tuple[dict[str, Any], str]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise ManifestError(
                ManifestKind.READ_FAILURE, f"Cannot read {self._path}: {e}"
            ) from e
        except UnicodeDecodeError as e:
            raise ManifestError(
                ManifestKind.PARSE_FAILURE, f"{self._path.name} is not UTF-8: {e}"
            ) from e
        try:
            data = json.loads(text.removeprefix(_BOM), parse_float=_SourceFloat)
        except json.JSONDecodeError as e:
            raise ManifestError(
                ManifestKind.PARSE_FAILURE, f"{self._path.name} is not valid JSON: {e}"
            ) from e
        if not isinstance(data, dict):
            raise ManifestError(
                ManifestKind.PARSE_FAILURE, f"{self._path.name} is not a JSON object"
            )
        return data, text

    def _write(self, data: dict[str, Any], original_text: str) -> None:
        """Serialize with the original formatting and atomically replace the file."""
        has_bom = original_text.startswith(_BOM)
        body = original_text.removeprefix(_BOM)
        match = _INDENT_RE.search(body)
        indent = match.group(1) if match else DEFAULT_INDENT
        content = _dumps(data, indent)
        if body.endswith("\n"):
            content += "\n"
        if has_bom:
            content = _BOM + content

        tmp_name: str | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(content)
            os.replace(tmp_name, self._path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise ManifestError(
                ManifestKind.WRITE_FAILURE, f"Cannot write {self._path}: {e}"
            ) from e


class _SourceFloat(float):
    """Float that keeps its literal text so ``1.50`` is written back as ``1.50``."""

    def __new__(cls, text: str) -> _SourceFloat:
        obj = super().__new__(cls, text)
        obj.text = text
        return obj


def _dumps(data: dict[str, Any], indent: str) -> str:
    """``json.dumps`` that emits every parsed float with its original literal."""
    marker = f"__ngupgrade_float_{uuid.uuid4().hex}_"
    literals: dict[str, str] = {}

    def swap(node: Any) -> Any:
        if isinstance(node, _SourceFloat):
            token = f"{marker}{len(literals)}"
            literals[token] = node.text
            return token
        if isinstance(node, dict):
            return {k: swap(v) for k, v in node.items()}
        if isinstance(node, list):
            return [swap(v) for v in node]
        return node

    content = json.dumps(swap(data), indent=indent, ensure_ascii=False)
    for token, text in literals.items():
        content = content.replace(f'"{token}"', text)
    return content
