"""
Architecture tests enforcing the layer boundaries of catalog_rules.

Rules enforced:
- domain/ imports only the standard library and itself
- application/ never imports infrastructure/
- shared/ never imports application/, domain/ or infrastructure/
"""

import ast
import os
from pathlib import Path

import pytest

PACKAGE_PATH = Path(__file__).parent.parent.parent / "src" / "catalog_rules"

pytestmark = pytest.mark.architecture


def get_python_files(directory: Path) -> list[Path]:
    """Get all Python files in a directory recursively."""
    python_files = []
    if not directory.exists():
        return python_files

    for root, dirs, files in os.walk(directory):
        dirs[:] = [d for d in dirs if d != "__pycache__"]
        for file in files:
            if file.endswith(".py"):
                python_files.append(Path(root) / file)

    return python_files


def extract_imports(file_path: Path) -> set[str]:
    """Extract absolute imports from a Python file; relative imports stay in-package."""
    imports = set()

    try:
        tree = ast.parse(file_path.read_text(encoding="utf-8"))
    except (SyntaxError, UnicodeDecodeError) as e:
        pytest.fail(f"Failed to parse {file_path}: {e}")

    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            imports.update(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.level == 0 and node.module:
            imports.add(node.module)

    return imports


def find_violations(layer: str, is_forbidden) -> list[str]:
    layer_path = PACKAGE_PATH / layer
    if not layer_path.exists():
        pytest.skip(f"{layer} directory not found")

    violations = []
    for file_path in get_python_files(layer_path):
        for import_name in sorted(extract_imports(file_path)):
            if is_forbidden(import_name):
                violations.append(f"{file_path.relative_to(PACKAGE_PATH)}: imports {import_name}")
    return violations


STANDARD_LIBRARY = {
    "abc",
    "dataclasses",
    "datetime",
    "enum",
    "math",
    "re",
    "typing",
    "unicodedata",
    "uuid",
}


class TestDomainLayerPurity:
    """Domain layer has no framework dependencies."""

    def test_domain_imports_only_standard_library(self):
        def forbidden(name: str) -> bool:
            root = name.split(".")[0]
            if root == "catalog_rules":
                return not name.startswith("catalog_rules.domain")
            return root not in STANDARD_LIBRARY

        violations = find_violations("domain", forbidden)
        if violations:
            pytest.fail("Domain layer import violations:\n" + "\n".join(violations))


class TestApplicationLayer:
    def test_application_does_not_import_infrastructure(self):
        violations = find_violations(
            "application", lambda name: name.startswith("catalog_rules.infrastructure")
        )
        if violations:
            pytest.fail("Application layer imports infrastructure:\n" + "\n".join(violations))

    def test_application_does_not_import_persistence_or_http(self):
        violations = find_violations(
            "application", lambda name: name.split(".")[0] in ("sqlalchemy", "httpx")
        )
        if violations:
            pytest.fail("Application layer imports adapters:\n" + "\n".join(violations))


class TestSharedKernel:
    def test_shared_is_independent_of_layers(self):
        layers = ("catalog_rules.domain", "catalog_rules.application", "catalog_rules.infrastructure")
        violations = find_violations("shared", lambda name: name.startswith(layers))
        if violations:
            pytest.fail("Shared kernel imports a layer:\n" + "\n".join(violations))
