from __future__ import annotations

import pytest

from pdfcleanx.config import (
    DEFAULT_MARKED_CONTENT_TAGS,
    DEFAULT_ROTATION_TOLERANCE,
    RemovalConfig,
    available_levels,
)


def test_defaults() -> None:
    config = RemovalConfig()

    assert config.rotation_tolerance == DEFAULT_ROTATION_TOLERANCE
    assert config.shared_xobject_ratio == 0.8
    assert config.denylist == ()
    assert config.marked_content_tags == DEFAULT_MARKED_CONTENT_TAGS
    assert config.removal_level.remove_form_xobjects is True
    assert config.exempt_quarter_turns is False


def test_available_levels() -> None:
    assert available_levels() == ["conservative", "standard"]
    assert RemovalConfig(level="conservative").removal_level.remove_form_xobjects is False


@pytest.mark.parametrize(
    "changes",
    [
        {"level": "aggressive"},
        {"rotation_tolerance": -0.1},
        {"shared_xobject_ratio": 0},
        {"shared_xobject_ratio": 1.5},
        {"small_document_pages": -1},
    ],
)
def test_invalid_values_are_rejected(changes: dict) -> None:
    with pytest.raises(ValueError):
        RemovalConfig(**changes)


def test_denylist_is_stripped_and_deduplicated() -> None:
    config = RemovalConfig(denylist=[" DRAFT ", "", "DRAFT", "Jane Doe"])

    assert config.denylist == ("DRAFT", "Jane Doe")


def test_marked_content_tags_gain_name_prefix() -> None:
    assert RemovalConfig(marked_content_tags=("Artifact", "/Stamp")).marked_content_tags == ("/Artifact", "/Stamp")


def test_with_updates_returns_new_config() -> None:
    config = RemovalConfig()
    updated = config.with_updates(level="conservative")

    assert config.level == "standard"
    assert updated.level == "conservative"


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PDFCLEANX_ROTATION_TOLERANCE", "0.1")
    monkeypatch.setenv("PDFCLEANX_SHARED_RATIO", "0.5")
    monkeypatch.setenv("PDFCLEANX_LEVEL", " Conservative ")
    monkeypatch.setenv("PDFCLEANX_DENYLIST", "Jane Doe, DRAFT")

    config = RemovalConfig.from_env()

    assert config.rotation_tolerance == 0.1
    assert config.shared_xobject_ratio == 0.5
    assert config.level == "conservative"
    assert config.denylist == ("Jane Doe", "DRAFT")


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PDFCLEANX_LEVEL", "conservative")

    assert RemovalConfig.from_env(level="standard").level == "standard"


def test_from_env_rejects_bad_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PDFCLEANX_LEVEL", "extreme")

    with pytest.raises(ValueError):
        RemovalConfig.from_env()
