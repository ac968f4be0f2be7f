"""
Pytest configuration and shared fixtures for all elmgen tests.

The parser builds two LALR tables on construction, so one instance is shared
across the session (it is stateless between parses).
"""

import sys
import pytest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from elmgen.compiler.driver import CodegenDriver
from elmgen.frontend.parser import Parser


# =============================================================================
# Session-scoped fixtures (shared across all tests)
# =============================================================================

@pytest.fixture(scope="session")
def session_parser():
    """Session-scoped parser shared across all tests."""
    return Parser()


@pytest.fixture(scope="session")
def session_driver(session_parser):
    """Session-scoped driver reusing the session parser."""
    driver = CodegenDriver()
    driver._parser = session_parser
    return driver


# =============================================================================
# Class-scoped fixtures
# =============================================================================

@pytest.fixture(scope="class")
def parser(session_parser):
    return session_parser


@pytest.fixture(scope="class")
def driver(session_driver):
    return session_driver


@pytest.fixture
def no_color(monkeypatch):
    """Plain diagnostics regardless of the terminal."""
    monkeypatch.setenv("NO_COLOR", "1")
