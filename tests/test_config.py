from __future__ import annotations

from datetime import timedelta
from pathlib import Path
import textwrap

import pytest
from pydantic import ValidationError

from story_relay.config.loader import load_config, masked_env_snapshot
from story_relay.config.schema import AppConfigRoot, CatalogConfig, CheckoutConfig, resolve_paths


def test_resolve_paths_makes_absolute(tmp_path: Path) -> None:
    config = AppConfigRoot()
    config.app.data_dir = Path("data")
    config.storage.sqlite_path = Path("data/relay.db")

    resolved = resolve_paths(config, tmp_path)

    assert resolved.app.data_dir == (tmp_path / "data").resolve()
    assert resolved.storage.sqlite_path == (tmp_path / "data/relay.db").resolve()


def test_checkout_config_defaults() -> None:
    config = AppConfigRoot()

    assert config.checkout.duration == timedelta(days=7)
    assert config.checkout.min_words == 50
    assert config.checkout.max_words == 1312
    assert config.checkout.author_roles == ["author"]
    assert config.checkout.finish_at_words is None
    assert [language.code for language in config.catalog.languages] == ["en", "ta", "es", "fr"]


def test_checkout_config_validates_ranges() -> None:
    with pytest.raises(ValidationError):
        CheckoutConfig(min_words=200, max_words=100)

    with pytest.raises(ValidationError):
        CheckoutConfig(duration_days=0)

    with pytest.raises(ValidationError):
        CheckoutConfig(author_roles=["editor"])

    with pytest.raises(ValidationError):
        CheckoutConfig(finish_at_words=0)


def test_catalog_config_rejects_duplicate_codes() -> None:
    with pytest.raises(ValidationError):
        CatalogConfig.model_validate(
            {
                "languages": [
                    {"name": "English", "code": "en", "container": "a"},
                    {"name": "Anglais", "code": "en", "container": "b"},
                ]
            }
        )


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ValidationError):
        AppConfigRoot.model_validate({"checkout": {"duration_hours": 3}})


def test_load_config_merge_order(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    configs_dir = tmp_path / "configs"
    profiles_dir = configs_dir / "profiles"
    profiles_dir.mkdir(parents=True)

    (configs_dir / "default.yaml").write_text(
        textwrap.dedent(
            """
            app:
              data_dir: "./data-default"
              log_level: "INFO"
            checkout:
              duration_days: 7
              min_words: 50
            content_store:
              owner: "default-owner"
            """
        ).strip(),
        encoding="utf-8",
    )

    (profiles_dir / "short.yaml").write_text(
        textwrap.dedent(
            """
            checkout:
              duration_days: 1
            """
        ).strip(),
        encoding="utf-8",
    )

    (configs_dir / "custom.yaml").write_text(
        textwrap.dedent(
            """
            checkout:
              min_words: 10
            """
        ).strip(),
        encoding="utf-8",
    )

    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("STORY_RELAY_DATA_DIR", str(tmp_path / "env-data"))
    monkeypatch.setenv("STORY_RELAY_GITHUB_OWNER", "env-owner")
    monkeypatch.setenv("STORY_RELAY_LANGUAGE_TA_CONTAINER", "tamil-override")

    config = load_config(
        config_path=configs_dir / "custom.yaml",
        profile="short",
        overrides={"app": {"log_level": "DEBUG"}},
    )

    assert config.app.data_dir == (tmp_path / "env-data").resolve()
    assert config.app.log_level == "DEBUG"
    assert config.checkout.duration_days == 1
    assert config.checkout.min_words == 10
    assert config.content_store.owner == "env-owner"
    containers = {language.code: language.container for language in config.catalog.languages}
    assert containers["ta"] == "tamil-override"
    assert containers["en"] == "oola-stories-english"


def test_masked_env_snapshot_hides_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_secret")
    config = AppConfigRoot()

    snapshot = masked_env_snapshot(config)

    assert snapshot["GITHUB_TOKEN"] == "***"
    assert "ghp_secret" not in str(snapshot)
    assert snapshot["catalog.languages.en.container"] == "oola-stories-english"
