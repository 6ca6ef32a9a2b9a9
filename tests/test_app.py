"""Tests for startup checks, health checks, metrics and error envelopes."""

import json
import logging

import pytest

from app import main as main_module
from app.errors import ConfigurationError
from app.logging import JsonLogFormatter
from app.services.plans import get_plan_registry


class _Settings:
    subscription_plans = json.dumps(
        [{"id": "a", "name": "A", "slug": "a", "price": 100, "productId": "p_a"}]
    )
    starter_tier = ""
    starter_slug = ""


class TestStartupConfiguration:
    def test_valid_catalog(self, monkeypatch):
        monkeypatch.setattr(main_module, "settings", _Settings())
        registry = main_module.check_startup_configuration()
        assert registry.product_ids() == ["p_a"]

    def test_invalid_catalog_refuses_to_start(self, monkeypatch):
        settings = _Settings()
        settings.subscription_plans = json.dumps([{"id": "a", "price": 0}])
        monkeypatch.setattr(main_module, "settings", settings)
        with pytest.raises(ConfigurationError) as excinfo:
            main_module.check_startup_configuration()
        assert "Plan at index 0 has invalid price" in excinfo.value.errors

    def test_empty_catalog_refuses_to_start(self, monkeypatch):
        settings = _Settings()
        settings.subscription_plans = ""
        monkeypatch.setattr(main_module, "settings", settings)
        with pytest.raises(ConfigurationError):
            main_module.check_startup_configuration()

    def test_settings_errors_are_fatal(self, monkeypatch):
        monkeypatch.setattr(main_module, "settings", _Settings())
        monkeypatch.setattr(
            main_module,
            "validate_settings",
            lambda s: ["POLAR_WEBHOOK_SECRET environment variable is required"],
        )
        with pytest.raises(ConfigurationError) as excinfo:
            main_module.check_startup_configuration()
        assert excinfo.value.errors == [
            "POLAR_WEBHOOK_SECRET environment variable is required"
        ]

    def test_lifespan_installs_registry(self, client):
        assert client.app.state.plan_registry is get_plan_registry()


class TestHealthChecks:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_ready(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["checks"]["database"] == "ok"

    def test_metrics(self, client):
        client.get("/health")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "http_requests_total" in response.text


class TestErrorEnvelope:
    def test_not_found_shape(self, client):
        response = client.get("/api/does-not-exist", headers={"x-request-id": "req-1"})
        assert response.status_code == 404
        body = response.json()
        assert body["code"] == "http_404"
        assert body["request_id"] == "req-1"
        assert response.headers["x-request-id"] == "req-1"


def test_json_log_formatter_includes_extras():
    record = logging.LogRecord(
        "app.test", logging.INFO, __file__, 1, "Upserted %s", ("sub_1",), None
    )
    record.subscription_id = "sub_1"
    payload = json.loads(JsonLogFormatter().format(record))
    assert payload["message"] == "Upserted sub_1"
    assert payload["subscription_id"] == "sub_1"
    assert payload["level"] == "INFO"
