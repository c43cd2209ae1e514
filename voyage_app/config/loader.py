"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from ..errors import ConfigurationError
from .defaults import DefaultConfig, get_default_config


@dataclass(frozen=True)
class ConfigLoader:
    """Manages experience and settings loading with 3-tier precedence."""

    config_dir: Path
    defaults: DefaultConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def experience_path(self, experience: str) -> Path:
        """Path of the YAML file describing an experience."""
        return self.config_dir / "experiences" / f"{experience}.yaml"

    def list_experiences(self) -> list[str]:
        """Names of all experiences present in the config directory."""
        experiences_dir = self.config_dir / "experiences"
        if not experiences_dir.exists():
            return []
        return sorted(path.stem for path in experiences_dir.glob("*.yaml"))

    def load_experience(self, experience: str) -> dict[str, Any]:
        """Load the raw experience definition (start phase and phase list)."""
        path = self.experience_path(experience)

        if not path.exists():
            raise ConfigurationError(
                f"Experience definition not found: {experience}",
                context={"path": str(path)}
            )

        with open(path) as f:
            document = yaml.safe_load(f) or {}

        if not isinstance(document, dict) or not isinstance(document.get("experience"), dict):
            raise ConfigurationError(
                f"Experience file has no 'experience' mapping: {experience}",
                context={"path": str(path)}
            )

        definition = dict(document["experience"])
        definition.setdefault("name", experience)
        definition["views"] = document.get("views", {}) or {}
        definition["settings"] = document.get("settings", {}) or {}
        return definition

    def merge_config(
        self,
        experience: Optional[str] = None,
        overrides: Optional[dict[str, Any]] = None
    ) -> dict[str, Any]:
        """
        Merge settings with 3-tier precedence.

        Priority order:
        1. Per-run overrides (highest priority)
        2. Experience-specific settings
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)

        if experience and self.experience_path(experience).exists():
            experience_settings = self.load_experience(experience)["settings"]
            config = self._deep_merge(config, experience_settings)

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name, _field in obj.__dataclass_fields__.items():
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
