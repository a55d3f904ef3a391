"""Pytest bootstrap for local source imports.

The ``pytest`` console script can run with a sys.path that excludes the
repository root. Ensure ``import mirrorsync`` and ``import main`` resolve
to the local sources.
"""

from __future__ import annotations

import sys
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parent.parent
PROJECT_ROOT_STR = str(PROJECT_ROOT)

if PROJECT_ROOT_STR not in sys.path:
    sys.path.insert(0, PROJECT_ROOT_STR)


import pytest


@pytest.fixture(scope="session", autouse=True)
def qt_core_application():
    """Keep a single QCoreApplication alive for the whole session.

    Tests call ``QCoreApplication.instance() or QCoreApplication([])`` without
    holding a reference, so the instance would be garbage-collected at once
    and timers/event loops would have no application to run on.
    """
    from PyQt6.QtCore import QCoreApplication

    app = QCoreApplication.instance() or QCoreApplication([])
    yield app
