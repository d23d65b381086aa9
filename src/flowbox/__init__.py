from .box import Box, is_box, unpack, unpack_deep
from .classify import Resolution, classify, identity, is_bad_value, is_error, is_nan
from .config import (
    DEFAULT_BAD_VALUES,
    DEFAULT_CONFIG,
    BoxConfig,
    define_default_config,
    get_default_config,
    restore_default_config,
)
from .errors import ConfigurationError, FlowBoxError, UnwrapDepthError
from .resolve import Memoized, resolve, resolve_thunk
from .shapes import Shape

__all__ = [
    # Core
    "Box",
    "is_box",
    # Configuration
    "BoxConfig",
    "DEFAULT_BAD_VALUES",
    "DEFAULT_CONFIG",
    "define_default_config",
    "get_default_config",
    "restore_default_config",
    # Classification
    "Resolution",
    "classify",
    "identity",
    "is_bad_value",
    "is_error",
    "is_nan",
    # Resolution
    "resolve",
    "resolve_thunk",
    "unpack",
    "unpack_deep",
    "Memoized",
    # Collections
    "Shape",
    # Errors
    "FlowBoxError",
    "ConfigurationError",
    "UnwrapDepthError",
]
