"""Tests for where domain events are processed in each config overlay."""

import tomllib
from pathlib import Path

from protean import current_domain

import storefront

CONFIG = tomllib.loads((Path(storefront.__file__).parent / "domain.toml").read_text())


class TestEventProcessing:
    def test_defaults_to_async(self):
        assert CONFIG["event_processing"] == "async"
        assert CONFIG["production"]["event_processing"] == "async"

    def test_test_overlay_dispatches_inline(self):
        assert CONFIG["test"]["event_processing"] == "sync"
        assert current_domain.config["event_processing"] == "sync"
