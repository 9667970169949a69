from .loader import ConfigError, FilterConfig, load_config

__all__ = ["ConfigError", "FilterConfig", "load_config"]
