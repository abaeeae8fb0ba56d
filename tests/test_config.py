"""Tests for environment-driven configuration."""
from __future__ import annotations

import dataclasses

import pytest

from order_archiver.config import DEFAULT_IDENTITY_ATTRIBUTES, TrackerConfig, _b, _csv, _i, _level


class TestEnvHelpers:
    def test_int(self, monkeypatch):
        monkeypatch.setenv("OA_TEST_INT", "25")
        assert _i("OA_TEST_INT", 10) == 25

    @pytest.mark.parametrize("raw", ["zero", "0", "-4", ""])
    def test_int_invalid_falls_back(self, monkeypatch, raw):
        monkeypatch.setenv("OA_TEST_INT", raw)
        assert _i("OA_TEST_INT", 10) == 10

    def test_bool(self, monkeypatch):
        monkeypatch.setenv("OA_TEST_BOOL", "off")
        assert _b("OA_TEST_BOOL", True) is False
        monkeypatch.setenv("OA_TEST_BOOL", "maybe")
        assert _b("OA_TEST_BOOL", True) is True

    def test_csv(self, monkeypatch):
        monkeypatch.setenv("OA_TEST_CSV", " data-ref , ,data-id")
        assert _csv("OA_TEST_CSV", ()) == ("data-ref", "data-id")
        monkeypatch.setenv("OA_TEST_CSV", " , ")
        assert _csv("OA_TEST_CSV", ("x",)) == ("x",)

    def test_level(self, monkeypatch):
        monkeypatch.setenv("OA_TEST_LEVEL", "debug")
        assert _level("OA_TEST_LEVEL", "INFO") == "DEBUG"
        monkeypatch.setenv("OA_TEST_LEVEL", "chatty")
        assert _level("OA_TEST_LEVEL", "INFO") == "INFO"


def test_config_is_frozen():
    config = TrackerConfig(max_line_items=3)
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.max_line_items = 4  # type: ignore[misc]


def test_default_identity_attributes():
    assert DEFAULT_IDENTITY_ATTRIBUTES[0] == "data-order-id"


class TestTrackerConfig:
    def test_environment_read_per_instance(self, monkeypatch):
        monkeypatch.setenv("ORDER_ARCHIVER_MAX_LINE_ITEMS", "3")
        monkeypatch.setenv("ORDER_ARCHIVER_IDENTITY_ATTRIBUTES", "data-ref")
        config = TrackerConfig()
        assert config.max_line_items == 3
        assert config.identity_attributes == ("data-ref",)

        monkeypatch.delenv("ORDER_ARCHIVER_MAX_LINE_ITEMS")
        assert TrackerConfig().max_line_items == 10

    def test_explicit_values_win(self, monkeypatch):
        monkeypatch.setenv("ORDER_ARCHIVER_SNIFF_MARKUP", "false")
        assert TrackerConfig(sniff_markup=True).sniff_markup is True
