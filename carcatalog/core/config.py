"""
Configuration management for the catalog.

Loads settings from a YAML config file, applies environment overrides and
provides typed access.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()


def _project_root() -> Path:
    """Return project root (parent of carcatalog package)."""
    return Path(__file__).resolve().parent.parent.parent


DEFAULT_CONFIG_PATH = _project_root() / "config" / "default.yaml"

PLATFORM_DESKTOP_WEB = "desktop_web"
PLATFORM_MOBILE = "mobile"


@dataclass
class CatalogConfig:
    """Configuration for the catalog browser."""

    # Remote query service
    api_base_url: str = "http://localhost:8000/api"
    api_token: Optional[str] = None
    api_timeout: float = 15.0

    # Static snapshot written by the build step
    snapshot_dir: str = ".ssg-cache/content"
    build_mode: str = "development"     # "production" makes a present snapshot authoritative
    ssg_test_override: bool = False     # SSG_TEST=1 forces authority outside production

    # Running platform: "desktop_web" or "mobile"
    platform: str = PLATFORM_DESKTOP_WEB

    # Pipeline tuning
    chunk_size: int = 20
    image_base_url: Optional[str] = None

    # Paged mode (constrained platforms)
    page_size: int = 20
    advance_delay: float = 0.1          # Seconds before a "load more" moves the page boundary

    # Image preloading tiers
    preload_critical: int = 3
    preload_high: int = 7
    preload_batch_size: int = 3
    preload_batch_delay: float = 0.1
    image_cache_max_entries: int = 256

    # Last-good records fallback (constrained platforms)
    last_good_max_age: float = 300.0    # Seconds
    last_good_max_serves: int = 5

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "CatalogConfig":
        """Load configuration from YAML file, then apply environment overrides."""
        path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        data: Dict[str, Any] = {}
        if path.exists():
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}

        api_config = data.get('api', {})
        snapshot_config = data.get('snapshot', {})
        platform_config = data.get('platform', {})
        pipeline_config = data.get('pipeline', {})
        pagination_config = data.get('pagination', {})
        preload_config = data.get('preload', {})
        cache_config = data.get('cache', {})

        config = cls(
            api_base_url=api_config.get('base_url', cls.api_base_url),
            api_token=api_config.get('token'),
            api_timeout=float(api_config.get('timeout', cls.api_timeout)),
            snapshot_dir=snapshot_config.get('dir', cls.snapshot_dir),
            build_mode=snapshot_config.get('build_mode', cls.build_mode),
            ssg_test_override=bool(snapshot_config.get('ssg_test', False)),
            platform=platform_config.get('name', cls.platform),
            chunk_size=int(pipeline_config.get('chunk_size', cls.chunk_size)),
            image_base_url=pipeline_config.get('image_base_url'),
            page_size=int(pagination_config.get('page_size', cls.page_size)),
            advance_delay=float(pagination_config.get('advance_delay', cls.advance_delay)),
            preload_critical=int(preload_config.get('critical', cls.preload_critical)),
            preload_high=int(preload_config.get('high', cls.preload_high)),
            preload_batch_size=int(preload_config.get('batch_size', cls.preload_batch_size)),
            preload_batch_delay=float(preload_config.get('batch_delay', cls.preload_batch_delay)),
            image_cache_max_entries=int(cache_config.get('image_max_entries', cls.image_cache_max_entries)),
            last_good_max_age=float(cache_config.get('last_good_max_age', cls.last_good_max_age)),
            last_good_max_serves=int(cache_config.get('last_good_max_serves', cls.last_good_max_serves)),
        )
        config.apply_env()
        return config

    def apply_env(self) -> None:
        """Override fields from environment variables when they are set."""
        self.api_base_url = os.getenv("CATALOG_API_URL", self.api_base_url)
        self.api_token = os.getenv("CATALOG_API_TOKEN", self.api_token)
        self.platform = os.getenv("CATALOG_PLATFORM", self.platform)
        self.snapshot_dir = os.getenv("CATALOG_SNAPSHOT_DIR", self.snapshot_dir)
        self.build_mode = os.getenv("CATALOG_BUILD_MODE", self.build_mode)
        if os.getenv("SSG_TEST") == "1":
            self.ssg_test_override = True

    @property
    def is_production_build(self) -> bool:
        return self.build_mode.lower() == "production"


# Global config instance
_config: Optional[CatalogConfig] = None


def get_config() -> CatalogConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = CatalogConfig.from_yaml()
    return _config


def set_config(config: CatalogConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
