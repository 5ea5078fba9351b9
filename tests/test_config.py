"""
Tests for environment-driven configuration.
"""

import pytest

from artpulse.data.config import (
    DatabaseConfig,
    LLMConfig,
    PipelineConfig,
    Settings,
    get_env,
    get_env_bool,
    get_env_int,
    get_settings,
    reset_settings,
)


class TestEnvHelpers:

    def test_get_env_default(self, monkeypatch):
        monkeypatch.delenv("ARTPULSE_TEST_VALUE", raising=False)
        assert get_env("ARTPULSE_TEST_VALUE", "fallback") == "fallback"

    def test_get_env_required(self, monkeypatch):
        monkeypatch.delenv("ARTPULSE_TEST_VALUE", raising=False)
        with pytest.raises(ValueError):
            get_env("ARTPULSE_TEST_VALUE", required=True)

    def test_get_env_int_invalid(self, monkeypatch):
        monkeypatch.setenv("ARTPULSE_TEST_VALUE", "ten")
        with pytest.raises(ValueError):
            get_env_int("ARTPULSE_TEST_VALUE", 1)

    @pytest.mark.parametrize("raw,expected", [
        ("true", True), ("1", True), ("YES", True), ("on", True),
        ("false", False), ("0", False), ("nope", False),
    ])
    def test_get_env_bool(self, monkeypatch, raw, expected):
        monkeypatch.setenv("ARTPULSE_TEST_VALUE", raw)
        assert get_env_bool("ARTPULSE_TEST_VALUE", not expected) is expected


class TestPipelineConfig:

    def test_defaults(self):
        config = PipelineConfig()
        assert config.publish_top_n == 10
        assert config.min_publish_confidence == 0.6
        assert config.min_evidence_urls == 5
        assert config.run_lock_minutes == 60
        assert config.enable_enrichment is False

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("PIPELINE_PUBLISH_TOP_N", "3")
        monkeypatch.setenv("PIPELINE_ENABLE_VISUAL", "true")
        config = PipelineConfig()
        assert config.publish_top_n == 3
        assert config.enable_visual is True

    def test_invalid_confidence(self):
        with pytest.raises(ValueError):
            PipelineConfig(min_publish_confidence=1.5)

    def test_evidence_bounds(self):
        with pytest.raises(ValueError):
            PipelineConfig(min_evidence_urls=5, max_evidence_urls=3)

    def test_evidence_minimum_cannot_be_lowered(self):
        with pytest.raises(ValueError, match="min_evidence_urls"):
            PipelineConfig(min_evidence_urls=3)

    def test_confidence_minimum_cannot_be_lowered(self):
        with pytest.raises(ValueError, match="min_publish_confidence"):
            PipelineConfig(min_publish_confidence=0.2)

    def test_publishing_limits_can_be_raised(self):
        config = PipelineConfig(min_evidence_urls=8, min_publish_confidence=0.8)
        assert config.min_evidence_urls == 8
        assert config.min_publish_confidence == 0.8

    def test_env_cannot_loosen_limits(self, monkeypatch):
        monkeypatch.setenv("PIPELINE_MIN_EVIDENCE", "2")
        with pytest.raises(ValueError):
            PipelineConfig()


class TestSettings:

    def test_pool_bounds(self):
        with pytest.raises(ValueError):
            DatabaseConfig(pool_min_size=5, pool_max_size=2)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            Settings(store_backend="sqlite")

    def test_unknown_llm_provider(self):
        with pytest.raises(ValueError):
            LLMConfig(provider="local")

    def test_backend_from_env(self, monkeypatch):
        monkeypatch.setenv("STORE_BACKEND", "memory")
        assert Settings().store_backend == "memory"

    def test_production_flag(self):
        assert Settings(store_backend="memory", environment="Production").is_production()
        assert not Settings(store_backend="memory").is_production()

    def test_cached_until_reset(self, monkeypatch):
        monkeypatch.setenv("STORE_BACKEND", "memory")
        reset_settings()
        try:
            first = get_settings()
            assert get_settings() is first
            reset_settings()
            assert get_settings() is not first
        finally:
            reset_settings()
