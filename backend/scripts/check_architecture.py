#!/usr/bin/env python3
"""
Architecture boundary checker.

Enforces the layered architecture of the feedback backend:

  routers -> services -> repositories -> models

Rules:
  - Routers: CANNOT import repositories directly (database and db_models
    are infrastructure and allowed)
  - Services: CANNOT import routers, CANNOT use FastAPI's HTTPException
    (raise exceptions from models/exceptions.py instead), CANNOT read or
    write through the session directly (db.query, db.add...); transaction
    control (commit, flush, rollback) stays in services
  - Repositories: CANNOT import services or routers

Usage:
    python scripts/check_architecture.py
    python scripts/check_architecture.py services/vote_service.py

Exit codes:
    0 - No violations found
    1 - Violations found
"""

import ast
import sys
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]

LAYER_RULES: dict[str, dict[str, list[str] | str]] = {
    "routers": {
        "forbidden": ["repositories"],
        "reason": "Routers must use services, not repositories directly",
    },
    "services": {
        "forbidden": ["routers"],
        "reason": "Services cannot depend on routers and raise domain exceptions",
    },
    "repositories": {
        "forbidden": ["routers", "services"],
        "reason": "Repositories cannot depend on higher layers",
    },
}

ALLOWED_IMPORTS = {
    "repositories.database",  # get_db dependency injection
    "repositories.db_models",  # Type hints for SQLAlchemy models
}

HTTP_EXCEPTION_MODULES = ("fastapi", "fastapi.exceptions", "starlette.exceptions")

# Session methods services must reach through a repository
FORBIDDEN_DB_METHODS = {"query", "add", "add_all", "delete", "execute", "scalar", "scalars", "get"}


class BoundaryChecker(ast.NodeVisitor):
    """AST visitor collecting boundary violations of one file."""

    def __init__(self, layer: str, forbidden: list[str]) -> None:
        self.layer = layer
        self.forbidden = forbidden
        self.violations: list[tuple[int, str]] = []

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            self._check_module(node.lineno, alias.name)
        self.generic_visit(node)

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        if node.module:
            self._check_module(node.lineno, node.module)
            if self.layer == "services" and node.module in HTTP_EXCEPTION_MODULES:
                for alias in node.names:
                    if alias.name == "HTTPException":
                        self.violations.append(
                            (node.lineno, f"import HTTPException from '{node.module}'")
                        )
        self.generic_visit(node)

    def visit_Raise(self, node: ast.Raise) -> None:
        if self.layer == "services" and isinstance(node.exc, ast.Call):
            func = node.exc.func
            name = func.id if isinstance(func, ast.Name) else getattr(func, "attr", None)
            if name == "HTTPException":
                self.violations.append((node.lineno, "raise HTTPException(...)"))
        self.generic_visit(node)

    def visit_Call(self, node: ast.Call) -> None:
        func = node.func
        if (
            self.layer == "services"
            and isinstance(func, ast.Attribute)
            and isinstance(func.value, ast.Name)
            and func.value.id == "db"
            and func.attr in FORBIDDEN_DB_METHODS
        ):
            self.violations.append((node.lineno, f"db.{func.attr}() outside a repository"))
        self.generic_visit(node)

    def _check_module(self, lineno: int, module: str) -> None:
        if module in ALLOWED_IMPORTS:
            return
        for forbidden_layer in self.forbidden:
            if module == forbidden_layer or module.startswith(f"{forbidden_layer}."):
                self.violations.append((lineno, f"import from '{module}'"))


def get_layer(filepath: Path) -> str | None:
    """Determine which layer a file belongs to."""
    for layer in LAYER_RULES:
        if layer in filepath.parts:
            return layer
    return None


def check_source(source: str, layer: str, filename: str = "<source>") -> list[tuple[int, str]]:
    """Check source code of the given layer; returns (line, description) pairs."""
    checker = BoundaryChecker(layer, LAYER_RULES[layer]["forbidden"])  # type: ignore[arg-type]
    checker.visit(ast.parse(source, filename))
    return checker.violations


def check_file(filepath: Path) -> list[tuple[int, str]]:
    layer = get_layer(filepath)
    if layer is None:
        return []
    return check_source(filepath.read_text(), layer, str(filepath))


def collect_files(root: Path = BACKEND_DIR) -> list[Path]:
    files: list[Path] = []
    for layer in LAYER_RULES:
        layer_dir = root / layer
        if layer_dir.exists():
            files.extend(layer_dir.glob("**/*.py"))
    return sorted(f for f in files if f.name != "__init__.py")


def main() -> int:
    files = [Path(f) for f in sys.argv[1:]] or collect_files()
    if not files:
        print("No files to check")
        return 0

    files_with_violations = []
    for filepath in files:
        violations = check_file(filepath)
        if violations:
            files_with_violations.append((filepath, violations))

    if not files_with_violations:
        print(f"No architecture violations in {len(files)} file(s)")
        return 0

    print("=" * 70)
    print("ARCHITECTURE VIOLATION")
    print("=" * 70)
    print()
    print("Layer hierarchy: routers -> services -> repositories -> models")
    print()
    total = 0
    for filepath, violations in files_with_violations:
        layer = get_layer(filepath)
        print(f"  {filepath} ({layer}):")
        print(f"    Rule: {LAYER_RULES[layer]['reason'] if layer else 'Unknown'}")
        for line, desc in violations:
            print(f"    Line {line}: {desc}")
        print()
        total += len(violations)

    print(f"Total: {total} violation(s) in {len(files_with_violations)} file(s)")
    return 1


if __name__ == "__main__":
    sys.exit(main())
