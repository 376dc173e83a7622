"""
bamboo - layered template resolution

Resolves template names across ordered base directories, merges automatic
bindings from a variable provider with explicit bindings from the caller,
and renders the result with Jinja2.
"""

from .config import EngineConfig, load_config
from .engine import Engine
from .exceptions import BambooError, ConfigError, RenderDepthError, TemplateNotFoundError
from .functions import FunctionRegistry, load_functions, register_function
from .providers import (
    CallableVariableProvider,
    ChainVariableProvider,
    StaticVariableProvider,
    VariableProvider,
)
from .renderer import Renderer

__version__ = "1.0.0"
__all__ = [
    "__version__",
    "Engine",
    "EngineConfig",
    "load_config",
    "Renderer",
    "VariableProvider",
    "CallableVariableProvider",
    "StaticVariableProvider",
    "ChainVariableProvider",
    "FunctionRegistry",
    "register_function",
    "load_functions",
    "BambooError",
    "TemplateNotFoundError",
    "RenderDepthError",
    "ConfigError",
]
