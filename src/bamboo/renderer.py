"""Jinja2-backed renderer driven by a resolve callback.

The renderer never looks up files itself. For the entry template, for every
``include()`` and for every ``parent()`` layout it calls back into the
resolver, which returns the path to read and the merged bindings to render
with.

Helpers available inside templates:
- ``include(name, **vars)``    render a nested template in place
- ``parent(name, **vars)``     wrap this template's output in a layout
- ``content()``                the wrapped child output (inside a layout)
- ``section(name, default)``   read a named block from the sections store
- ``has_section(name)``
- ``set_section(name, value)`` / ``append_section(name, value)``
- ``{% call capture("name") %}...{% endcall %}``  store a block body
- every function of the configured FunctionRegistry

Bindings shadow helpers of the same name.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, MutableMapping, Optional, Tuple

from jinja2 import Environment, StrictUndefined, Undefined
from markupsafe import Markup

from .exceptions import RenderDepthError
from .functions import FunctionRegistry, global_registry

logger = logging.getLogger(__name__)

ResolveCallback = Callable[[str, Optional[Mapping[str, Any]]], Tuple[str, Dict[str, Any]]]

DEFAULT_MAX_DEPTH = 32


@dataclass
class _Frame:
    """Render state of a single template."""

    template: str
    chain: Tuple[str, ...]
    content: str = ""
    layout: Optional[Tuple[str, Dict[str, Any]]] = None

    @property
    def depth(self) -> int:
        return len(self.chain)


class Renderer:
    """Render templates resolved through ``resolve`` into a string.

    ``sections`` is shared by every template rendered through this instance,
    so a template can deposit a block that its layout (or a later include)
    reads back. The caller owns it; a fresh dict is used when none is given.
    """

    def __init__(
        self,
        resolve: ResolveCallback,
        sections: Optional[MutableMapping[str, str]] = None,
        *,
        functions: Optional[FunctionRegistry] = None,
        autoescape: bool = False,
        strict_undefined: bool = False,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self.resolve = resolve
        self.sections: MutableMapping[str, str] = sections if sections is not None else {}
        self.functions = functions if functions is not None else global_registry
        self.autoescape = autoescape
        self.max_depth = max_depth
        self.environment = Environment(
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            autoescape=autoescape,
            undefined=StrictUndefined if strict_undefined else Undefined,
        )

    def render(self, template: str, variables: Optional[Mapping[str, Any]] = None) -> str:
        """Render ``template`` and any layouts it declares.

        Args:
            template: Template name, ``/``-separated, without suffix
            variables: Explicit bindings for the entry template

        Returns:
            The accumulated output

        Raises:
            TemplateNotFoundError: If this or any nested template is missing
            RenderDepthError: If nesting exceeds ``max_depth``
        """
        return self._render(template, variables, chain=())

    def _render(
        self,
        template: str,
        variables: Optional[Mapping[str, Any]],
        chain: Tuple[str, ...],
    ) -> str:
        frame = self._enter(template, chain, content="")
        output = self._execute(frame, variables)

        while frame.layout is not None:
            name, layout_vars = frame.layout
            frame = self._enter(name, frame.chain, content=output)
            output = self._execute(frame, layout_vars)

        return output

    def _enter(self, template: str, chain: Tuple[str, ...], content: str) -> _Frame:
        new_chain = chain + (template,)
        if len(new_chain) > self.max_depth:
            raise RenderDepthError(
                f"template nesting exceeds max depth {self.max_depth}: " + " -> ".join(new_chain),
                context={"template": template, "chain": list(new_chain)},
            )
        return _Frame(template=template, chain=new_chain, content=content)

    def _execute(self, frame: _Frame, variables: Optional[Mapping[str, Any]]) -> str:
        path, bindings = self.resolve(frame.template, variables)
        logger.debug("Rendering %s from %s (depth %d)", frame.template, path, frame.depth)

        source = Path(path).read_text(encoding="utf-8")
        compiled = self.environment.from_string(source, globals=self._helpers(frame))
        return compiled.render(bindings)

    def _safe(self, text: str) -> str:
        # Output of another template was escaped when it was rendered.
        return Markup(text) if self.autoescape else text

    def _helpers(self, frame: _Frame) -> Dict[str, Any]:
        sections = self.sections

        def _store(value: Any) -> str:
            # Markup only survives where the output will be autoescaped.
            if self.autoescape and isinstance(value, Markup):
                return value
            return str(value)

        def include(name: str, **variables: Any) -> str:
            return self._safe(self._render(name, variables, chain=frame.chain))

        def parent(name: str, **variables: Any) -> str:
            frame.layout = (name, variables)
            return ""

        def content() -> str:
            return self._safe(frame.content)

        def section(name: str, default: str = "") -> str:
            return sections.get(name, default)

        def has_section(name: str) -> bool:
            return name in sections

        def set_section(name: str, value: Any) -> str:
            sections[name] = _store(value)
            return ""

        def append_section(name: str, value: Any) -> str:
            sections[name] = _store(sections.get(name, "")) + _store(value)
            return ""

        def capture(name: str, caller: Optional[Callable[[], str]] = None) -> str:
            sections[name] = _store(caller()) if caller is not None else ""
            return ""

        helpers: Dict[str, Any] = self.functions.as_globals()
        helpers.update(
            include=include,
            parent=parent,
            content=content,
            section=section,
            has_section=has_section,
            set_section=set_section,
            append_section=append_section,
            capture=capture,
        )
        return helpers

    def list_helpers(self) -> List[str]:
        """Names available to every template besides its bindings."""
        return sorted(self._helpers(_Frame(template="", chain=())))


__all__ = ["Renderer", "ResolveCallback", "DEFAULT_MAX_DEPTH"]
