from .Config import ChainConfig, configure_logging, load_config
from .sentinels import NO_VAL

__all__ = [
    "ChainConfig",
    "configure_logging",
    "load_config",
    "NO_VAL",
]
