from pathlib import Path

import pytest

from xlcompose.config import AppConfig, load_config


def test_load_config_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    config = load_config(None)

    assert isinstance(config, AppConfig)
    assert config.templates.directory == (tmp_path / "templates").resolve()
    assert config.output.directory == (tmp_path / "output").resolve()
    assert config.database.url is None
    assert config.templates.allowed_extensions == [".xlsx", ".xls"]
    assert config.log_level == "INFO"


def test_load_config_resolves_relative_to_file(tmp_path):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    config_path = config_dir / "config.yaml"
    config_path.write_text(
        "\n".join(
            [
                "application_name: reports",
                "log_level: debug",
                "templates:",
                "  directory: ../templates",
                "  max_upload_bytes: 1024",
                "  allowed_extensions: [XLSX]",
                "database:",
                "  url: 'sqlite:reports.db'",
                "output:",
                "  directory: /srv/output",
                "  default_filename: out.xlsx",
            ]
        ),
        encoding="utf-8",
    )

    config = load_config(config_path)

    assert config.application_name == "reports"
    assert config.log_level == "DEBUG"
    assert config.templates.directory == (tmp_path / "templates").resolve()
    assert config.templates.max_upload_bytes == 1024
    assert config.templates.allowed_extensions == [".xlsx"]
    assert config.database.url == "sqlite:reports.db"
    assert config.output.directory == Path("/srv/output")
    assert config.output.default_filename == "out.xlsx"


def test_load_config_empty_file_uses_defaults(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("", encoding="utf-8")

    config = load_config(config_path)

    assert config.templates.directory == (tmp_path / "templates").resolve()
    assert config.application_name == "xlcompose"


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_load_config_rejects_non_mapping_root(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ValueError):
        load_config(config_path)


def test_bundled_config_loads():
    bundled = Path(__file__).resolve().parent.parent / "config" / "config.yaml"

    config = load_config(bundled)

    assert config.templates.directory == (bundled.parent.parent / "templates").resolve()
    assert config.database.url is None
