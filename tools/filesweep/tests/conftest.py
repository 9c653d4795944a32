from __future__ import annotations

from typing import Iterator

import pytest

from filesweep.common.log import shutdown_logging


@pytest.fixture(autouse=True)
def _close_log_handlers() -> Iterator[None]:
    yield
    shutdown_logging()
