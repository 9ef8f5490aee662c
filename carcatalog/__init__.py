"""
carcatalog - Car brand and model catalog browser

Read-only browsing of a car catalog with:
- One acquisition strategy per session (remote API, static snapshot, or both)
- Chunked normalize -> filter -> sort/group pipeline
- Paged "load more" on constrained platforms
- Tiered image preloading
"""

__version__ = '0.1.0'

from carcatalog.core.config import CatalogConfig, get_config, set_config
from carcatalog.core.session import CatalogReadModel, CatalogSession, ViewStatus
from carcatalog.data.resolver import Strategy

__all__ = [
    'CatalogSession',
    'CatalogReadModel',
    'ViewStatus',
    'Strategy',
    'CatalogConfig',
    'get_config',
    'set_config',
]
