"""
Application configuration for the project sync layer.
"""
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class CacheConfig:
    """Local cache configuration."""
    path: str = "projectsync_cache.db"


@dataclass
class RemoteStoreConfig:
    """Remote records API configuration."""
    endpoint: str = "http://localhost:8000"
    api_key: Optional[str] = None
    timeout: float = 30.0
    max_retries: int = 3
    enabled: bool = True


@dataclass
class IdentifierConfig:
    """Structured identifier format."""
    prefix: str = "WV"
    serial_width: int = 4


@dataclass
class AppConfig:
    """Main application configuration."""
    cache: CacheConfig = field(default_factory=CacheConfig)
    remote: RemoteStoreConfig = field(default_factory=RemoteStoreConfig)
    identifiers: IdentifierConfig = field(default_factory=IdentifierConfig)
    surface_create_failures: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'AppConfig':
        """Create configuration from PROJECTSYNC_* environment variables."""
        env = os.environ if environ is None else environ
        cache = CacheConfig(path=env.get("PROJECTSYNC_CACHE_PATH") or CacheConfig.path)
        remote = RemoteStoreConfig(
            endpoint=env.get("PROJECTSYNC_REMOTE_ENDPOINT") or RemoteStoreConfig.endpoint,
            api_key=env.get("PROJECTSYNC_API_KEY") or None,
            timeout=float(env.get("PROJECTSYNC_REMOTE_TIMEOUT") or RemoteStoreConfig.timeout),
            max_retries=int(env.get("PROJECTSYNC_REMOTE_RETRIES") or RemoteStoreConfig.max_retries),
            enabled=_env_bool(env.get("PROJECTSYNC_REMOTE_ENABLED"), True),
        )
        identifiers = IdentifierConfig(
            prefix=env.get("PROJECTSYNC_ID_PREFIX") or IdentifierConfig.prefix,
            serial_width=int(env.get("PROJECTSYNC_ID_WIDTH") or IdentifierConfig.serial_width),
        )
        return cls(
            cache=cache,
            remote=remote,
            identifiers=identifiers,
            surface_create_failures=_env_bool(env.get("PROJECTSYNC_SURFACE_CREATE_FAILURES"), False),
        )
