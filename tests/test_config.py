from welore_node.config import DEFAULT_SCHEMA_PATH, Settings
from welore_node.logging import redact_payload


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("WELORE_SCHEMA_PATH", raising=False)
        monkeypatch.delenv("WELORE_API_ORIGIN", raising=False)
        settings = Settings()

        assert settings.schema_path() == DEFAULT_SCHEMA_PATH
        assert settings.api_origin() == "https://api-weafinity.madfenix.com"
        assert settings.welore_http_timeout_seconds == 30

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("WELORE_SCHEMA_PATH", str(tmp_path / "schema.yaml"))
        monkeypatch.setenv("WELORE_API_ORIGIN", "https://staging.welore.test/")
        monkeypatch.setenv("WELORE_VERIFY_SSL", "false")
        settings = Settings()

        assert settings.schema_path() == tmp_path / "schema.yaml"
        assert settings.api_origin() == "https://staging.welore.test"
        assert settings.welore_verify_ssl is False


class TestRedactPayload:
    def test_sensitive_keys_are_masked(self):
        payload = {"token": "abc", "name": "Ann", "nested": {"api_key": "k", "page": 2}}
        assert redact_payload(payload) == {
            "token": "***REDACTED***",
            "name": "Ann",
            "nested": {"api_key": "***REDACTED***", "page": 2},
        }
