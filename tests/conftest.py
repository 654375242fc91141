from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest


@pytest.fixture(autouse=True)
def _reset_cli_logging() -> Iterator[None]:
    """Drop the stderr handler `main()` installs so it never outlives a captured stream."""
    yield
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if handler.get_name() == "code_packager.stderr":
            root_logger.removeHandler(handler)
