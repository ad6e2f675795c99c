"""Root conftest.py for the labctl monorepo.

Puts every package ``src`` directory on ``sys.path`` so the suite runs from a
plain checkout, registers the shared markers and marks tests that stand in
for hardware with mocks, so hardware-free coverage can be told apart from
emulator and integration coverage.
"""

from __future__ import annotations

import ast
import inspect
import sys
import textwrap
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.nodes import Item


PROJECT_ROOT = Path(__file__).parent
for pkg_dir in sorted(PROJECT_ROOT.glob("labctl-*/src")):
    if str(pkg_dir) not in sys.path:
        sys.path.insert(0, str(pkg_dir))


def pytest_configure(config: Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "uses_mock: Test uses mocking (auto-detected or manually marked)",
    )
    config.addinivalue_line(
        "markers",
        "integration: Integration test requiring real instruments",
    )
    config.addinivalue_line(
        "markers",
        "slow: Slow-running test",
    )


class MockDetector(ast.NodeVisitor):
    """AST visitor that flags unittest.mock usage in a test function."""

    MOCK_NAMES = frozenset({
        "MagicMock",
        "Mock",
        "patch",
        "create_autospec",
        "PropertyMock",
        "mocker",
    })

    def __init__(self) -> None:
        self.uses_mock = False

    def visit_Call(self, node: ast.Call) -> None:
        """Flag calls such as ``MagicMock()`` and ``patch.object(...)``."""
        func = node.func
        if isinstance(func, ast.Attribute) and isinstance(func.value, ast.Name):
            # patch.object / patch.dict
            if func.value.id in self.MOCK_NAMES or func.attr in self.MOCK_NAMES:
                self.uses_mock = True
        elif isinstance(func, ast.Name) and func.id in self.MOCK_NAMES:
            self.uses_mock = True
        self.generic_visit(node)

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        """Flag mock fixtures in the parameter list."""
        if any("mock" in arg.arg.lower() for arg in node.args.args):
            self.uses_mock = True
        self.generic_visit(node)


def _uses_mock(item: Item) -> bool:
    name = item.name.lower()
    if "mock" in name or "fake" in name:
        return True
    obj = getattr(item, "obj", None)
    if obj is None:
        return False
    try:
        source = inspect.getsource(obj)
    except (OSError, TypeError):
        return False
    try:
        tree = ast.parse(textwrap.dedent(source))
    except SyntaxError:
        return False
    detector = MockDetector()
    detector.visit(tree)
    return detector.uses_mock


def pytest_collection_modifyitems(config: Config, items: list[Item]) -> None:
    """Auto-detect and mark tests that use mocking."""
    for item in items:
        if item.get_closest_marker("uses_mock") is None and _uses_mock(item):
            item.add_marker(pytest.mark.uses_mock)


def pytest_report_header(config: Config) -> list[str]:
    """Add a suite banner and the coverage mode to the pytest header."""
    lines = ["labctl monorepo test suite"]
    if getattr(config.option, "cov_source", None):
        lines.append("Coverage: enabled with mock detection")
    return lines
