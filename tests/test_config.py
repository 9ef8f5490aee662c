"""
Tests for configuration loading and platform facts.
"""

import pytest

from carcatalog.core.config import CatalogConfig, get_config, set_config
from carcatalog.utils.logger import get_logger
from carcatalog.utils.platform import PlatformFacts

ENV_VARS = ["CATALOG_API_URL", "CATALOG_API_TOKEN", "CATALOG_PLATFORM", "CATALOG_SNAPSHOT_DIR", "CATALOG_BUILD_MODE", "SSG_TEST"]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_missing_file_yields_defaults(tmp_path):
    config = CatalogConfig.from_yaml(tmp_path / "nope.yaml")
    assert config.page_size == 20
    assert config.chunk_size == 20
    assert config.api_timeout == 15.0
    assert config.platform == "desktop_web"
    assert not config.is_production_build


def test_yaml_sections(tmp_path):
    path = tmp_path / "catalog.yaml"
    path.write_text(
        "api:\n"
        "  base_url: https://api.example.com/api\n"
        "  timeout: 5\n"
        "snapshot:\n"
        "  build_mode: production\n"
        "platform:\n"
        "  name: mobile\n"
        "pagination:\n"
        "  page_size: 10\n"
        "cache:\n"
        "  last_good_max_serves: 2\n",
        encoding="utf-8",
    )
    config = CatalogConfig.from_yaml(path)
    assert config.api_base_url == "https://api.example.com/api"
    assert config.api_timeout == 5.0
    assert config.is_production_build
    assert config.platform == "mobile"
    assert config.page_size == 10
    assert config.last_good_max_serves == 2
    assert config.preload_critical == 3


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("CATALOG_API_URL", "https://env.example.com")
    monkeypatch.setenv("CATALOG_API_TOKEN", "secret")
    monkeypatch.setenv("CATALOG_PLATFORM", "mobile")
    monkeypatch.setenv("SSG_TEST", "1")
    config = CatalogConfig.from_yaml(tmp_path / "nope.yaml")
    assert config.api_base_url == "https://env.example.com"
    assert config.api_token == "secret"
    assert config.platform == "mobile"
    assert config.ssg_test_override is True


def test_default_yaml_matches_dataclass():
    config = CatalogConfig.from_yaml()
    assert config.page_size == CatalogConfig.page_size
    assert config.last_good_max_age == CatalogConfig.last_good_max_age


def test_global_config_roundtrip():
    custom = CatalogConfig(page_size=5)
    set_config(custom)
    try:
        assert get_config() is custom
    finally:
        set_config(None)


def test_platform_facts():
    assert PlatformFacts("mobile").is_constrained_platform()
    assert not PlatformFacts("desktop_web").is_constrained_platform()
    assert PlatformFacts.from_config(CatalogConfig(platform="mobile")).prefers_high_res_images is False


def test_module_loggers_share_the_package_handler():
    package_logger = get_logger()
    assert package_logger.name == "carcatalog"
    assert package_logger.propagate is False
    assert len(package_logger.handlers) == 1
    assert get_logger("data.resolver").name == "carcatalog.data.resolver"
    assert get_logger("data.resolver").parent is package_logger
