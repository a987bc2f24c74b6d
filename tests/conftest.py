"""
Pytest configuration and shared fixtures for all circflow tests.

This conftest.py provides session-scoped fixtures to speed up tests by
reusing the parser (Lark grammar loading is the expensive part) and the
analysis driver.
"""

import sys
import pytest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from circflow.compiler.driver import AnalysisDriver
from circflow.frontend.parser import Parser


# =============================================================================
# Session-scoped fixtures (shared across all tests)
# =============================================================================

@pytest.fixture(scope="session")
def session_parser():
    """
    Session-scoped parser shared across ALL tests.

    The parser keeps no state between parses apart from the transformer's
    per-parse reset, so it is safe to share.
    """
    return Parser()


@pytest.fixture(scope="session")
def session_driver(session_parser):
    """Session-scoped analysis driver (creates fresh pass instances per run)."""
    return AnalysisDriver(parser=session_parser)


# =============================================================================
# Class-scoped fixtures (shared within a test class)
# =============================================================================

@pytest.fixture(scope="class")
def parser(session_parser):
    """Class-scoped parser - returns session parser (safe to share)."""
    return session_parser


@pytest.fixture(scope="class")
def driver(session_driver):
    """Class-scoped driver - returns session driver (safe to share)."""
    return session_driver


# =============================================================================
# Helper fixtures
# =============================================================================

@pytest.fixture(scope="session")
def parse_program(session_parser):
    """Factory fixture: parse source text into a ProgramArchive."""
    def _parse(source: str, source_file: str = "<test>"):
        return session_parser.parse(source, source_file)
    return _parse


def pytest_configure(config):
    """Register custom markers for test organization."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as end-to-end driver tests"
    )
