"""
Pytest configuration for the zeromq-src test suite.

This configuration enables the --full flag to run integration tests, which
invoke the host C/C++ compiler.
"""

import pytest


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--full",
        action="store_true",
        default=False,
        help="Run full test suite including integration tests (slow, needs a C compiler)",
    )


def pytest_configure(config):
    """Configure pytest based on command-line options."""
    config.addinivalue_line("markers", "integration: test invokes the real host toolchain")
    if config.getoption("--full"):
        # Remove the default marker expression that excludes integration tests
        markexpr = config.getoption("-m", "")
        if markexpr == "not integration":
            # Clear the marker expression to run all tests
            config.option.markexpr = ""


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --full was given."""
    if config.getoption("--full"):
        return
    skip_integration = pytest.mark.skip(reason="integration test, use --full to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)
