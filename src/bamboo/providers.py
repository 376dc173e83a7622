"""Variable providers: automatic bindings keyed by template name.

A provider is anything with a ``provide_variables(template)`` method. The
engine also accepts plain callables and mappings, which ``as_provider``
wraps into one of the small adapters below.
"""
from __future__ import annotations

from collections.abc import Mapping as MappingABC
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, runtime_checkable


@runtime_checkable
class VariableProvider(Protocol):
    """Capability that yields automatic bindings for a template."""

    def provide_variables(self, template: str) -> Mapping[str, Any]: ...


class CallableVariableProvider:
    """Adapt a ``func(template) -> mapping`` into a provider."""

    def __init__(self, func: Callable[[str], Optional[Mapping[str, Any]]]) -> None:
        self.func = func

    def provide_variables(self, template: str) -> Mapping[str, Any]:
        return self.func(template) or {}

    def __repr__(self) -> str:
        return f"CallableVariableProvider({self.func!r})"


class StaticVariableProvider:
    """Provider backed by fixed per-template bindings.

    ``defaults`` apply to every template; entries in ``variables`` for the
    requested template override them key by key.
    """

    def __init__(
        self,
        variables: Optional[Mapping[str, Mapping[str, Any]]] = None,
        defaults: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.variables: Dict[str, Dict[str, Any]] = {
            str(name): dict(values or {}) for name, values in (variables or {}).items()
        }
        self.defaults: Dict[str, Any] = dict(defaults or {})

    def provide_variables(self, template: str) -> Mapping[str, Any]:
        result = dict(self.defaults)
        result.update(self.variables.get(template, {}))
        return result


class ChainVariableProvider:
    """Merge several providers in order; later providers win on key collision."""

    def __init__(self, *providers: Any) -> None:
        self.providers = tuple(p for p in (as_provider(x) for x in providers) if p is not None)

    def provide_variables(self, template: str) -> Mapping[str, Any]:
        result: Dict[str, Any] = {}
        for provider in self.providers:
            result.update(provider.provide_variables(template) or {})
        return result


def as_provider(obj: Any) -> Optional[VariableProvider]:
    """Normalize ``obj`` into a provider (or ``None`` when nothing is configured)."""
    if obj is None:
        return None
    if isinstance(obj, VariableProvider):
        return obj
    if isinstance(obj, MappingABC):
        return StaticVariableProvider(obj)
    if callable(obj):
        return CallableVariableProvider(obj)
    raise TypeError(
        f"variable provider must define provide_variables(), be callable, or be a mapping; "
        f"got {type(obj).__name__}"
    )


__all__ = [
    "VariableProvider",
    "CallableVariableProvider",
    "StaticVariableProvider",
    "ChainVariableProvider",
    "as_provider",
]
