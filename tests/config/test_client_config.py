"""Tests for client configuration loading (dispatch_config)."""

import pytest
import yaml

from dispatch_config import DEFAULT_CONFIG_PATH, get_active_config
from dispatch_config.loader import load_yaml_file, parse_config
from dispatch_config.schema import ClientConfig


class TestClientConfig:

    def test_defaults(self):
        config = ClientConfig.with_defaults()

        assert config.base_url == "http://localhost:8081"
        assert config.timeout_seconds == 30
        assert config.verify_tls is True
        assert config.default_send_email is True
        assert config.factory_user_fallback == "Factory User"
        assert config.surface_side_effect_warnings is False

    def test_trailing_slash_stripped(self):
        assert ClientConfig(base_url="https://erp.example.com/").base_url == (
            "https://erp.example.com"
        )

    @pytest.mark.parametrize("kwargs", [
        {"base_url": ""},
        {"base_url": "ftp://erp.example.com"},
        {"timeout_seconds": 0},
        {"factory_user_fallback": "  "},
    ])
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            ClientConfig(**kwargs)

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="retry_count"):
            ClientConfig.from_dict({"retry_count": 3})

    def test_frozen(self):
        config = ClientConfig.with_defaults()
        with pytest.raises(AttributeError):
            config.base_url = "http://other"


class TestLoader:

    def test_packaged_defaults_match_built_in(self):
        assert get_active_config() == ClientConfig.with_defaults()
        assert DEFAULT_CONFIG_PATH.name == "defaults.yaml"

    def test_load_from_path(self, tmp_path):
        path = tmp_path / "client.yaml"
        path.write_text(
            "base_url: https://erp.example.com\n"
            "timeout_seconds: 10\n"
            "surface_side_effect_warnings: true\n"
        )

        config = get_active_config(path)

        assert config.base_url == "https://erp.example.com"
        assert config.timeout_seconds == 10
        assert config.surface_side_effect_warnings is True
        assert config.default_send_email is True

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert parse_config(load_yaml_file(path)) == ClientConfig.with_defaults()

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_yaml_file(path)

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("base_url: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_yaml_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")
