"""Unit tests for exporter configuration loading."""

from pathlib import Path

import pytest

from atlas_billing.billing.api import InvoiceMode
from atlas_billing.config.loader import ConfigValidationError, load_config
from atlas_billing.config.schema import ExporterConfig


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "exporter.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_without_file(self) -> None:
        """Test that every field has a default."""
        config = load_config()

        assert config.base_url == "https://cloud.mongodb.com/api/atlas/v1.0"
        assert config.timeout_seconds == 60.0
        assert config.poll_interval_seconds == 3600
        assert config.listen_port == 9184
        assert config.mode == InvoiceMode.AUTO

    def test_loads_yaml_file(self, tmp_path: Path) -> None:
        """Test values read from a YAML file."""
        path = _write(
            tmp_path,
            """
base_url: https://atlas.test/api/atlas/v1.0/
timeout_seconds: 15
poll_interval_seconds: 600
listen_port: 9300
mode: last-closed
""",
        )

        config = load_config(path)

        assert config.base_url == "https://atlas.test/api/atlas/v1.0"
        assert config.timeout_seconds == 15.0
        assert config.poll_interval_seconds == 600
        assert config.listen_port == 9300
        assert config.mode == InvoiceMode.LAST_CLOSED

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        """Test that an empty YAML document is accepted."""
        config = load_config(_write(tmp_path, ""))

        assert config == ExporterConfig()

    def test_overrides_take_precedence(self, tmp_path: Path) -> None:
        """Test that non-None overrides replace file values."""
        path = _write(tmp_path, "mode: pending\nlisten_port: 9300\n")

        config = load_config(path, overrides={"mode": "last-closed", "listen_port": None})

        assert config.mode == InvoiceMode.LAST_CLOSED
        assert config.listen_port == 9300

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a path that does not exist."""
        with pytest.raises(ConfigValidationError) as exc_info:
            load_config(tmp_path / "missing.yaml")

        assert exc_info.value.errors[0]["type"] == "file_not_found"

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test a file that is not YAML."""
        with pytest.raises(ConfigValidationError) as exc_info:
            load_config(_write(tmp_path, "mode: [pending\n"))

        assert exc_info.value.errors[0]["type"] == "yaml_error"

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        """Test a YAML list at the top level."""
        with pytest.raises(ConfigValidationError) as exc_info:
            load_config(_write(tmp_path, "- pending\n"))

        assert exc_info.value.errors[0]["type"] == "type_error"

    @pytest.mark.parametrize(
        ("content", "loc"),
        [
            ("poll_interval_seconds: 10\n", "poll_interval_seconds"),
            ("timeout_seconds: 0\n", "timeout_seconds"),
            ("listen_port: 70000\n", "listen_port"),
            ("mode: weekly\n", "mode"),
            ("base_url: ftp://atlas.test\n", "base_url"),
            ("private_key: secret\n", "private_key"),
        ],
    )
    def test_invalid_values(self, tmp_path: Path, content: str, loc: str) -> None:
        """Test field validation errors and their locations."""
        path = _write(tmp_path, content)

        with pytest.raises(ConfigValidationError) as exc_info:
            load_config(path)

        assert [error["loc"] for error in exc_info.value.errors] == [loc]
        assert exc_info.value.file_path == str(path)


class TestExporterConfig:
    """Tests for ExporterConfig."""

    def test_fetch_config(self) -> None:
        """Test derivation of the fetch layer configuration."""
        config = ExporterConfig(
            base_url="https://atlas.test/api/atlas/v1.0",
            timeout_seconds=5.0,
            user_agent="probe/1.0",
        )

        fetch_config = config.fetch_config()

        assert fetch_config.base_url == "https://atlas.test/api/atlas/v1.0"
        assert fetch_config.timeout_seconds == 5.0
        assert fetch_config.user_agent == "probe/1.0"
        assert fetch_config.url_for("orgs/x/invoices/pending") == (
            "https://atlas.test/api/atlas/v1.0/orgs/x/invoices/pending"
        )
