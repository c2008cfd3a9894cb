"""Tests for the shared application configuration."""

from libs.config import AppConfig, OTELConfig


class TestOTELConfig:
    def test_defaults(self):
        cfg = OTELConfig()

        assert cfg.service_name == "avro-converter"
        assert cfg.export_enabled is True
        assert cfg.resource_attrs() == {"deployment.environment": "local"}
        assert cfg.headers() is None

    def test_resource_attributes_skip_malformed_items(self):
        cfg = OTELConfig(resource_attributes="deployment.environment=prod,broken,team=data")
        assert cfg.resource_attrs() == {"deployment.environment": "prod", "team": "data"}

    def test_headers(self):
        cfg = OTELConfig(otlp_headers="authorization=Bearer x,tenant=a")
        assert cfg.headers() == {"authorization": "Bearer x", "tenant": "a"}


class TestAppConfig:
    def test_nested_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("SERVICE__LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("OTEL__EXPORT_ENABLED", "false")

        config = AppConfig()

        assert config.service.log_level == "DEBUG"
        assert config.otel.export_enabled is False
