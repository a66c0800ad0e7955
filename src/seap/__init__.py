"""
SEAP client.

Session handling, REST access and a command line front end for the SEAP
phishing-awareness simulation platform.
"""

from .config import ClientConfig, load_config
from .context import SEAPContext
from .errors import APIError, ConfigError, SEAPError, TransportError, ValidationError

__version__ = "0.3.0"

__all__ = [
    "ClientConfig",
    "load_config",
    "SEAPContext",
    "SEAPError",
    "APIError",
    "ConfigError",
    "TransportError",
    "ValidationError",
]
