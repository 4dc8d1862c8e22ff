"""
Configuration Loader - Load YAML configuration files
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List
from functools import lru_cache


# 설정 파일이 없을 때 사용하는 기본값
DEFAULT_I18N = {
    "default_locale": "en",
    "locales": ["en"],
}

DEFAULT_ENGINE = {
    "autosave": {
        "quiet_period_seconds": 1.0,
    },
    "publish": {
        "concurrency": 5,
        "default_message": "",
    },
    "storage": {
        "drafts_dir": ".drafts",
    },
    "remote": {
        "base_url": "https://api.github.com",
        "owner": "",
        "repo": "",
        "main_branch": "main",
        "draft_branch_prefix": "cms-draft",
        "pages_dir": "src/content/pages",
        "globals_path": "src/content/globals.json",
        "timeout_seconds": 30.0,
        "max_conflict_retries": 2,
    },
}


class ConfigLoader:
    """
    Loader for YAML configuration files.

    Usage:
        config = ConfigLoader()
        i18n = config.load("i18n")
        engine = config.load("engine")
    """

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize the config loader.

        Args:
            config_dir: Path to config directory.
                        Defaults to $DRAFT_ENGINE_CONFIG_DIR or config/ at project root.
        """
        if config_dir is None:
            env_dir = os.getenv("DRAFT_ENGINE_CONFIG_DIR")
            if env_dir:
                self.config_dir = Path(env_dir)
            else:
                base_dir = Path(__file__).parent.parent.parent
                self.config_dir = base_dir / "config"
        else:
            self.config_dir = Path(config_dir)

    @lru_cache(maxsize=32)
    def load(self, name: str) -> Dict[str, Any]:
        """
        Load a configuration file by name.

        Args:
            name: Config file name (without .yaml extension)

        Returns:
            Parsed configuration dict

        Raises:
            FileNotFoundError: If config file not found
        """
        candidates = [
            self.config_dir / f"{name}.yaml",
            self.config_dir / f"{name}.yml",
            self.config_dir / name,
        ]

        for path in candidates:
            if path.exists() and path.is_file():
                with open(path, "r", encoding="utf-8") as f:
                    return yaml.safe_load(f) or {}

        raise FileNotFoundError(
            f"Config file '{name}' not found in {self.config_dir}"
        )

    def load_optional(self, name: str, default: Dict[str, Any]) -> Dict[str, Any]:
        """
        Load a configuration file, falling back to defaults when missing.

        Nested sections are merged key by key so a partial file only overrides
        what it declares.
        """
        try:
            data = self.load(name)
        except FileNotFoundError:
            return _deep_merge(default, {})
        return _deep_merge(default, data)

    def get_default_locale(self) -> str:
        """Get the default (source) locale code"""
        return self.load_optional("i18n", DEFAULT_I18N)["default_locale"]

    def get_locales(self) -> List[str]:
        """Get configured locale codes, default locale first"""
        config = self.load_optional("i18n", DEFAULT_I18N)
        default_locale = config["default_locale"]
        locales = [code for code in config.get("locales", []) if code != default_locale]
        return [default_locale] + locales

    def get_engine_settings(self) -> Dict[str, Any]:
        """Get autosave/publish/storage/remote settings"""
        return self.load_optional("engine", DEFAULT_ENGINE)

    def get_remote_settings(self) -> Dict[str, Any]:
        """Get remote content store settings"""
        return self.get_engine_settings()["remote"]

    def get_manifest(self) -> Dict[str, Dict[str, int]]:
        """
        Get the component manifest (unit id -> {schemaKey: occurrenceCount}).

        Returns:
            Manifest dict, empty when no manifest file exists
        """
        config = self.load_optional("manifest", {"units": {}})
        units = config.get("units") or {}
        return {
            str(unit_id): {str(key): int(count) for key, count in (entries or {}).items()}
            for unit_id, entries in units.items()
        }

    def get_schemas(self) -> List[Dict[str, Any]]:
        """Get component schema declarations"""
        config = self.load_optional("schemas", {"schemas": []})
        return config.get("schemas") or []

    def clear_cache(self):
        """Clear the config cache"""
        self.load.cache_clear()


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = {}
    for key, value in base.items():
        if isinstance(value, dict):
            merged[key] = _deep_merge(value, {})
        elif isinstance(value, list):
            merged[key] = list(value)
        else:
            merged[key] = value
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# Singleton instance
_default_loader: Optional[ConfigLoader] = None


def get_config_loader(config_dir: Optional[str] = None) -> ConfigLoader:
    """Get or create the default config loader singleton"""
    global _default_loader
    if _default_loader is None:
        _default_loader = ConfigLoader(config_dir)
    return _default_loader


def get_config(name: str) -> Dict[str, Any]:
    """Convenience function to load a config file"""
    loader = get_config_loader()
    return loader.load(name)


def get_locales() -> List[str]:
    """Convenience function to get configured locales"""
    return get_config_loader().get_locales()


def get_manifest() -> Dict[str, Dict[str, int]]:
    """Convenience function to get the component manifest"""
    return get_config_loader().get_manifest()
