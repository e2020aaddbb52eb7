from __future__ import annotations

from pathlib import Path
from typing import Any
import os
import re

import yaml
from loguru import logger

from story_relay.config.schema import AppConfigRoot, default_languages, resolve_paths


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    return data or {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _load_dotenv(dotenv_path: Path) -> None:
    if not dotenv_path.exists():
        return
    for raw_line in dotenv_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip("\"")
        os.environ.setdefault(key, value)


def _language_container_override_var(code: str) -> str:
    normalized = re.sub(r"[^A-Za-z0-9]", "_", code).upper()
    return f"STORY_RELAY_LANGUAGE_{normalized}_CONTAINER"


def _apply_env(config_data: dict[str, Any]) -> dict[str, Any]:
    catalog = config_data.setdefault("catalog", {})
    if "languages" not in catalog:
        catalog["languages"] = [language.model_dump() for language in default_languages()]
    for language_cfg in catalog["languages"]:
        if not isinstance(language_cfg, dict) or "code" not in language_cfg:
            continue
        container_override = os.getenv(_language_container_override_var(str(language_cfg["code"])))
        if container_override:
            language_cfg["container"] = container_override

    content_store = config_data.setdefault("content_store", {})
    owner = os.getenv("STORY_RELAY_GITHUB_OWNER")
    if owner:
        content_store["owner"] = owner
    base_url = os.getenv("STORY_RELAY_GITHUB_BASE_URL")
    if base_url:
        content_store["base_url"] = base_url

    data_dir = os.getenv("STORY_RELAY_DATA_DIR")
    if data_dir:
        app = config_data.setdefault("app", {})
        app["data_dir"] = data_dir
    return config_data


def load_config(
    config_path: Path | None = None,
    profile: str | None = None,
    overrides: dict[str, Any] | None = None,
) -> AppConfigRoot:
    base_dir = Path.cwd()
    _load_dotenv(base_dir / ".env")

    config_data: dict[str, Any] = {}
    config_data = _deep_merge(config_data, _read_yaml(base_dir / "configs" / "default.yaml"))

    if profile:
        profile_path = base_dir / "configs" / "profiles" / f"{profile}.yaml"
        config_data = _deep_merge(config_data, _read_yaml(profile_path))

    if config_path:
        config_data = _deep_merge(config_data, _read_yaml(config_path))

    if overrides:
        config_data = _deep_merge(config_data, overrides)

    config_data = _apply_env(config_data)

    config = AppConfigRoot.model_validate(config_data)
    config = resolve_paths(config, base_dir)

    logger.debug("Loaded config from {}", base_dir)
    return config


def masked_env_snapshot(config: AppConfigRoot | None = None) -> dict[str, str | None]:
    snapshot: dict[str, str | None] = {}
    for name in ("STORY_RELAY_DATA_DIR", "STORY_RELAY_GITHUB_OWNER", "STORY_RELAY_GITHUB_BASE_URL"):
        snapshot[name] = os.getenv(name)

    if config is None:
        return snapshot

    for language in config.catalog.languages:
        override_var = _language_container_override_var(language.code)
        snapshot[override_var] = os.getenv(override_var)
        snapshot[f"catalog.languages.{language.code}.container"] = language.container

    token_env = config.content_store.token_env
    if token_env:
        snapshot[token_env] = "***" if os.getenv(token_env) else None

    return snapshot
