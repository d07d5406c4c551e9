"""
expecthttp - Pytest fixtures.

Registered automatically through the ``pytest11`` entry point once the
package is installed. Without the plugin, import the fixtures in your
``conftest.py``::

    from expecthttp.fixtures import expect_t, recording_t, settings_override  # noqa: F401
"""

from __future__ import annotations

import pytest

from .config import override_settings
from .reporting import PytestT, RecordingT


@pytest.fixture
def expect_t():
    """
    A :class:`PytestT` reporting handle.

    Assertion failures reported during the test fail it at teardown.

    Usage::

        def test_health(expect_t):
            live_executor().get(expect_t, "http://localhost:8000/health").expect_it(
                status_is(200),
            )
    """
    t = PytestT()
    yield t
    t.verify()


@pytest.fixture
def recording_t():
    """A :class:`RecordingT` for inspecting what a pipeline reported."""
    return RecordingT()


@pytest.fixture
def settings_override():
    """
    Fixture factory for overriding settings.

    Usage::

        def test_prefix(settings_override):
            with settings_override(message_prefix="api"):
                ...
    """
    return override_settings
