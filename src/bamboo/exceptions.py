from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional


class BambooError(Exception):
    """Base exception for bamboo."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class TemplateNotFoundError(BambooError, FileNotFoundError):
    """Raised when no base directory holds a file for the template name."""

    def __init__(self, template: str, *, searched: Optional[Iterable[str]] = None) -> None:
        message = f"template not found: {template}"
        self.template = template
        self.searched = list(searched or [])
        BambooError.__init__(
            self, message, context={"template": template, "searched": self.searched}
        )
        FileNotFoundError.__init__(self, message)


class RenderDepthError(BambooError, RecursionError):
    """Raised when nested includes or layouts exceed the renderer's max depth."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        BambooError.__init__(self, message, context=context)
        RecursionError.__init__(self, message)


class ConfigError(BambooError, ValueError):
    """Raised when engine configuration cannot be loaded or is invalid."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        BambooError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


__all__ = [
    "BambooError",
    "TemplateNotFoundError",
    "RenderDepthError",
    "ConfigError",
]
