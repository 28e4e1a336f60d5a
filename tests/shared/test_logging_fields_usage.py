"""System-level static check that canonical logging fields stay in use."""

from __future__ import annotations

import ast
from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parents[2]
_FIELDS_FILE = _REPO_ROOT / "packages/asset_shared/logging/fields.py"
_SOURCE_ROOTS = ("packages", "resources", "services")


def test_every_logging_field_is_referenced() -> None:
    """Reject field constants no runtime module reads through ``fields.<NAME>``."""
    declared = _declared_fields()
    referenced: set[str] = set()
    for root in _SOURCE_ROOTS:
        for file_path in sorted((_REPO_ROOT / root).rglob("*.py")):
            if "tests" in file_path.relative_to(_REPO_ROOT).parts:
                continue
            if file_path == _FIELDS_FILE:
                continue
            tree = ast.parse(file_path.read_text(encoding="utf-8"), filename=str(file_path))
            referenced.update(_field_references(tree))

    unused = sorted(declared - referenced)
    assert declared
    assert not unused, f"Unused logging fields: {unused}"


def _declared_fields() -> set[str]:
    tree = ast.parse(_FIELDS_FILE.read_text(encoding="utf-8"))
    return {
        target.id
        for node in tree.body
        if isinstance(node, ast.Assign)
        for target in node.targets
        if isinstance(target, ast.Name)
    }


def _field_references(tree: ast.AST) -> set[str]:
    return {
        node.attr
        for node in ast.walk(tree)
        if isinstance(node, ast.Attribute)
        and isinstance(node.value, ast.Name)
        and node.value.id == "fields"
    }
