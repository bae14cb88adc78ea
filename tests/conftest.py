from __future__ import annotations

import logging

import pytest


@pytest.fixture(autouse=True)
def _propagate_reforge_logs():
    """Let caplog see reforge records even after configure_logging disabled propagation."""
    logger = logging.getLogger("reforge")
    previous = logger.propagate
    logger.propagate = True
    yield
    logger.propagate = previous
