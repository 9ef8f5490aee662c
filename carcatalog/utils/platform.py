"""
Platform facts provider.

The running platform decides both the acquisition strategy (constrained
platforms always query the remote service) and the pagination mode.
"""
from dataclasses import dataclass

from carcatalog.core.config import PLATFORM_DESKTOP_WEB, PLATFORM_MOBILE, CatalogConfig

KNOWN_PLATFORMS = (PLATFORM_DESKTOP_WEB, PLATFORM_MOBILE)


@dataclass(frozen=True)
class PlatformFacts:
    """Facts about the platform a session runs on."""
    name: str = PLATFORM_DESKTOP_WEB

    def __post_init__(self) -> None:
        if self.name not in KNOWN_PLATFORMS:
            raise ValueError(f"Unknown platform {self.name!r}; expected one of {KNOWN_PLATFORMS}")

    def is_constrained_platform(self) -> bool:
        """True for every platform except desktop web."""
        return self.name != PLATFORM_DESKTOP_WEB

    @property
    def prefers_high_res_images(self) -> bool:
        return not self.is_constrained_platform()

    @classmethod
    def from_config(cls, config: CatalogConfig) -> "PlatformFacts":
        return cls(name=config.platform)
