from .app_config import AppConfig, CacheConfig, IdentifierConfig, RemoteStoreConfig

__all__ = ['AppConfig', 'CacheConfig', 'IdentifierConfig', 'RemoteStoreConfig']
