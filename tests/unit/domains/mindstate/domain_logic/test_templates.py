"""Tests for the YAML text catalog."""

from __future__ import annotations

import pytest

from lifelog.domains.mindstate.domain_logic.templates import (
    TemplateError,
    catalog,
    load_catalog,
    text,
)


class TestCatalog:
    def test_bundled_catalog_sections(self):
        assert {"mirror", "forecast", "narrator", "notifications"} <= set(catalog())

    def test_lookup(self):
        assert text("notifications.titles.insight") == "New Insight Available"

    def test_format_values(self):
        assert text("comparison.mood_down", value=12.0) == "Your mood declined by 12.0 points"

    def test_non_string_nodes(self):
        assert isinstance(text("forecast.actions.positive"), list)

    def test_unknown_key(self):
        with pytest.raises(TemplateError, match="Unknown text key: mirror.missing"):
            text("mirror.missing")

    def test_key_through_leaf(self):
        with pytest.raises(TemplateError):
            text("mirror.mood_high.deeper")


class TestLoadCatalog:
    def test_missing_file(self, tmp_path):
        with pytest.raises(TemplateError, match="Failed to load"):
            load_catalog(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("mirror: [unclosed", encoding="utf-8")
        with pytest.raises(TemplateError, match="Failed to load"):
            load_catalog(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- one\n- two\n", encoding="utf-8")
        with pytest.raises(TemplateError, match="must be a mapping"):
            load_catalog(path)

    def test_custom_file(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("greeting:\n  hello: hi {name}\n", encoding="utf-8")
        assert load_catalog(path) == {"greeting": {"hello": "hi {name}"}}
