from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from prospectminer.config.logging import NOISY_LOGGERS, configure_logging

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def restore_library_levels() -> Iterator[None]:
    previous = {name: logging.getLogger(name).level for name in NOISY_LOGGERS}
    yield
    for name, level in previous.items():
        logging.getLogger(name).setLevel(level)


def test_http_libraries_are_quiet_at_info() -> None:
    configure_logging(level=logging.INFO, force=True)

    assert logging.getLogger("httpx").level == logging.WARNING


def test_verbose_logging_includes_http_libraries() -> None:
    configure_logging(level=logging.DEBUG, force=True)

    assert logging.getLogger("httpx").level == logging.DEBUG
    assert logging.getLogger().level == logging.DEBUG
