"""Configuration loading utilities for xlcompose."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

DEFAULT_CONFIG_PATH = Path("config/config.yaml")


@dataclass
class TemplateConfig:
    """Location and upload limits of the template directory."""

    directory: Path = Path("templates")
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_extensions: List[str] = field(default_factory=lambda: [".xlsx", ".xls"])

    def resolved(self, base_path: Path) -> "TemplateConfig":
        return TemplateConfig(
            directory=_resolve_path(self.directory, base_path),
            max_upload_bytes=self.max_upload_bytes,
            allowed_extensions=list(self.allowed_extensions),
        )


@dataclass
class DatabaseConfig:
    """Connection settings for the query database."""

    url: Optional[str] = None


@dataclass
class OutputConfig:
    """Where generated workbooks are written by the CLI."""

    directory: Path = Path("output")
    default_filename: str = "generated.xlsx"

    def resolved(self, base_path: Path) -> "OutputConfig":
        return OutputConfig(
            directory=_resolve_path(self.directory, base_path),
            default_filename=self.default_filename,
        )


@dataclass
class AppConfig:
    """Container for all configuration required by the CLI."""

    templates: TemplateConfig = field(default_factory=TemplateConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    application_name: str = "xlcompose"
    log_level: str = "INFO"

    def resolved(self, base_path: Path) -> "AppConfig":
        return AppConfig(
            templates=self.templates.resolved(base_path),
            database=self.database,
            output=self.output.resolved(base_path),
            application_name=self.application_name,
            log_level=self.log_level,
        )


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load :class:`AppConfig` from a YAML file.

    When ``path`` is ``None`` the defaults are returned, resolved against the
    current working directory.
    """

    if path is None:
        return AppConfig().resolved(Path.cwd())

    config_path = Path(path).expanduser()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file '{config_path}' does not exist")

    with config_path.open("r", encoding="utf-8") as stream:
        raw_config: Mapping[str, Any] = yaml.safe_load(stream) or {}

    if not isinstance(raw_config, Mapping):
        raise ValueError("Configuration root must be a mapping")

    templates = TemplateConfig(**_parse_templates_section(raw_config.get("templates") or {}))
    database = DatabaseConfig(url=_optional_text((raw_config.get("database") or {}).get("url")))
    output = OutputConfig(**_parse_output_section(raw_config.get("output") or {}))

    config = AppConfig(
        templates=templates,
        database=database,
        output=output,
        application_name=str(raw_config.get("application_name") or "xlcompose"),
        log_level=str(raw_config.get("log_level") or "INFO").upper(),
    )
    return config.resolved(config_path.parent)


def _parse_templates_section(section: Mapping[str, Any]) -> Dict[str, Any]:
    parsed: Dict[str, Any] = {}
    if "directory" in section:
        parsed["directory"] = Path(section["directory"])
    if "max_upload_bytes" in section:
        parsed["max_upload_bytes"] = int(section["max_upload_bytes"])
    if "allowed_extensions" in section:
        extensions = section["allowed_extensions"]
        if not isinstance(extensions, list):
            raise ValueError("templates.allowed_extensions must be a list")
        parsed["allowed_extensions"] = [_normalise_extension(ext) for ext in extensions]
    return parsed


def _parse_output_section(section: Mapping[str, Any]) -> Dict[str, Any]:
    parsed: Dict[str, Any] = {}
    if "directory" in section:
        parsed["directory"] = Path(section["directory"])
    if "default_filename" in section:
        parsed["default_filename"] = str(section["default_filename"])
    return parsed


def _normalise_extension(value: Any) -> str:
    text = str(value).strip().lower()
    if not text.startswith("."):
        text = f".{text}"
    return text


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _resolve_path(path: Path, base_path: Path) -> Path:
    expanded = Path(path).expanduser()
    if expanded.is_absolute():
        return expanded
    return (base_path / expanded).resolve()
