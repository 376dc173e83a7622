"""Helper function library for templates.

Functions in a ``FunctionRegistry`` are exposed to every rendered template as
Jinja globals:

    {{ h(user.name) }}
    {{ nl2br(h(comment)) }}

Additional libraries are plain Python files loaded from directories with
``load_functions``; every public callable they define is registered. Later
directories override earlier ones.
"""
from __future__ import annotations

import importlib.util
import logging
from pathlib import Path
from types import ModuleType
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Union

from markupsafe import Markup, escape

logger = logging.getLogger(__name__)

FunctionType = Callable[..., Any]


class FunctionRegistry:
    """Registry for template helper functions.

    Functions can be registered using the @register decorator:

        registry = FunctionRegistry()

        @registry.register("greet")
        def greet(name: str) -> str:
            return f"Hello, {name}!"
    """

    def __init__(self) -> None:
        self._functions: Dict[str, FunctionType] = {}

    def register(self, name: str) -> Callable[[FunctionType], FunctionType]:
        """Decorator to register a function under ``name``."""
        def decorator(func: FunctionType) -> FunctionType:
            self._functions[name] = func
            return func
        return decorator

    def add(self, name: str, func: FunctionType) -> None:
        self._functions[name] = func

    def get(self, name: str) -> Optional[FunctionType]:
        return self._functions.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._functions

    def list_functions(self) -> List[str]:
        """List all registered function names."""
        return list(self._functions.keys())

    def as_globals(self) -> Dict[str, FunctionType]:
        """Return a copy suitable for a Jinja globals mapping."""
        return dict(self._functions)

    def copy(self) -> "FunctionRegistry":
        clone = FunctionRegistry()
        clone._functions.update(self._functions)
        return clone


global_registry = FunctionRegistry()


def register_function(name: str) -> Callable[[FunctionType], FunctionType]:
    """Register a function in the global registry.

    Usage:
        @register_function("shout")
        def shout(text: str) -> str:
            return text.upper()
    """
    return global_registry.register(name)


@register_function("h")
def h(value: Any) -> Markup:
    """HTML-escape ``value``; ``None`` renders as an empty string."""
    if value is None:
        return Markup("")
    return escape(value)


@register_function("nl2br")
def nl2br(value: Any) -> Markup:
    """Escape ``value`` and turn newlines into ``<br>`` tags."""
    if value is None:
        return Markup("")
    escaped = escape(value)
    return Markup("<br>\n").join(escaped.split("\n"))


@register_function("join")
def join(items: Iterable[Any], separator: str = ", ") -> str:
    return separator.join(str(item) for item in items)


def iter_python_files(
    dirs: Iterable[Union[str, Path]],
    exclude: Optional[Set[str]] = None,
) -> Iterable[Path]:
    """Yield ``*.py`` files from existing directories, in directory order."""
    if exclude is None:
        exclude = {"__init__.py"}

    for raw in dirs:
        if not raw:
            continue
        d = Path(raw)
        if not d.is_dir():
            logger.debug("Skipping missing function directory %s", d)
            continue
        for path in sorted(d.glob("*.py")):
            if path.is_file() and path.name not in exclude and not path.name.startswith("_"):
                yield path


def load_module_from_path(path: Path, namespace: str = "bamboo.functions.lib") -> Optional[ModuleType]:
    """Load a Python module from file without adding it to sys.modules.

    Returns None (after logging a warning) when the module fails to import.
    """
    module_name = f"{namespace}.{path.stem}"
    try:
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec and spec.loader:
            module = importlib.util.module_from_spec(spec)
            spec.loader.exec_module(module)
            return module
    except Exception as e:
        logger.warning("Failed to load function library %s: %s", path, e)
    return None


def register_callables_from_module(
    module: ModuleType,
    register_fn: Callable[[str, FunctionType], None],
    exclude_prefixes: tuple[str, ...] = ("_",),
) -> int:
    """Register the public callables a module defines (classes excluded).

    Names imported into the module from elsewhere are skipped so that
    ``from os.path import join`` does not shadow a registered helper.
    """
    count = 0
    for name in dir(module):
        if any(name.startswith(p) for p in exclude_prefixes):
            continue
        obj = getattr(module, name)
        if not callable(obj) or isinstance(obj, type):
            continue
        if getattr(obj, "__module__", module.__name__) != module.__name__:
            continue
        register_fn(name, obj)
        count += 1
    return count


def load_functions(
    dirs: Iterable[Union[str, Path]],
    registry: Optional[FunctionRegistry] = None,
) -> int:
    """Load every function library found in ``dirs`` into ``registry``.

    Returns the number of callables registered.
    """
    target = registry if registry is not None else global_registry
    total = 0
    for path in iter_python_files(dirs):
        module = load_module_from_path(path)
        if module is None:
            continue
        count = register_callables_from_module(module, target.add)
        logger.debug("Registered %d function(s) from %s", count, path)
        total += count
    return total


__all__ = [
    "FunctionRegistry",
    "global_registry",
    "register_function",
    "iter_python_files",
    "load_module_from_path",
    "register_callables_from_module",
    "load_functions",
]
