"""Template resolution engine.

Maps a template name to a file across an ordered list of base directories
(earlier directories shadow later ones) and computes the bindings a template
is rendered with:

    automatic bindings (variable provider)  <  explicit bindings (caller)

Rendering itself is delegated to ``Renderer``, which calls back into
``Engine.resolve`` for the entry template and every nested template.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, MutableMapping, Optional, Tuple, Union

from .exceptions import TemplateNotFoundError
from .functions import FunctionRegistry, global_registry, load_functions
from .providers import StaticVariableProvider, VariableProvider, as_provider
from .renderer import DEFAULT_MAX_DEPTH, Renderer

if TYPE_CHECKING:
    from .config import EngineConfig

logger = logging.getLogger(__name__)

BaseDir = Union[str, "os.PathLike[str]"]


def _normalize_basedir(basedir: BaseDir) -> str:
    if isinstance(basedir, str):
        return basedir
    # Path objects never carry a trailing separator; names are appended directly.
    return os.path.join(os.fspath(basedir), "")


class Engine:
    """Resolve template names to files and render them.

    Example:
        engine = Engine(["themes/dark/", "themes/default/"])
        html = engine.render("pages/home", {"title": "Home"})
    """

    SEPARATOR = "/"
    SUFFIX = ".j2"

    def __init__(
        self,
        basedirs: Iterable[BaseDir],
        variable_provider: Any = None,
        *,
        suffix: Optional[str] = None,
        functions: Optional[FunctionRegistry] = None,
        autoescape: bool = False,
        strict_undefined: bool = False,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        if isinstance(basedirs, (str, bytes, os.PathLike)):
            raise TypeError(
                f"basedirs must be a sequence of directories, not a single "
                f"{type(basedirs).__name__}: {basedirs!r}"
            )
        self._basedirs: Tuple[str, ...] = tuple(_normalize_basedir(d) for d in basedirs)
        self._variable_provider: Optional[VariableProvider] = as_provider(variable_provider)
        self._suffix = self.SUFFIX if suffix is None else suffix
        self._functions = functions
        self._autoescape = autoescape
        self._strict_undefined = strict_undefined
        self._max_depth = max_depth

    @classmethod
    def from_config(cls, config: "EngineConfig", variable_provider: Any = None) -> "Engine":
        """Build an engine from a loaded ``EngineConfig``.

        Static ``variables``/``defaults`` from the config back the variable
        provider unless one is passed explicitly. Function directories named
        by the config are loaded into a registry private to this engine.
        """
        if variable_provider is None and (config.variables or config.defaults):
            variable_provider = StaticVariableProvider(config.variables, config.defaults)

        functions: Optional[FunctionRegistry] = None
        if config.function_dirs:
            functions = global_registry.copy()
            load_functions(config.function_dirs, registry=functions)

        return cls(
            config.basedirs,
            variable_provider,
            suffix=config.suffix,
            functions=functions,
            autoescape=config.autoescape,
            strict_undefined=config.strict_undefined,
            max_depth=config.max_depth,
        )

    @staticmethod
    def load_functions(dirs: Iterable[Union[str, Path]] = ()) -> int:
        """Load helper function libraries into the global function registry."""
        return load_functions(dirs, registry=global_registry)

    @property
    def basedirs(self) -> Tuple[str, ...]:
        return self._basedirs

    @property
    def variable_provider(self) -> Optional[VariableProvider]:
        return self._variable_provider

    @property
    def suffix(self) -> str:
        return self._suffix

    def render(
        self,
        template: str,
        variables: Optional[Mapping[str, Any]] = None,
        sections: Optional[MutableMapping[str, str]] = None,
    ) -> str:
        """Render ``template`` with ``variables`` and return the output.

        Args:
            template: Template name using ``/`` separators, without suffix
            variables: Explicit bindings; override automatic ones
            sections: Shared named-block store; a new dict when omitted

        Raises:
            TemplateNotFoundError: If the template, or any template it
                includes or extends, cannot be found
        """
        if sections is None:
            sections = {}
        renderer = Renderer(
            self.resolve,
            sections,
            functions=self._functions,
            autoescape=self._autoescape,
            strict_undefined=self._strict_undefined,
            max_depth=self._max_depth,
        )
        return renderer.render(template, variables)

    def resolve(
        self, template: str, variables: Optional[Mapping[str, Any]] = None
    ) -> Tuple[str, Dict[str, Any]]:
        """Return ``(path, bindings)`` for ``template``."""
        return (
            self.resolve_path(template),
            self.resolve_bindings(template, variables),
        )

    def candidate_paths(self, template: str) -> List[str]:
        """Every path probed for ``template``, in priority order."""
        return [
            (basedir + template + self._suffix).replace(self.SEPARATOR, os.sep)
            for basedir in self._basedirs
        ]

    def resolve_path(self, template: str) -> str:
        """Return the first existing file for ``template`` across base directories.

        Raises:
            ValueError: If ``template`` is empty
            TemplateNotFoundError: If no base directory holds the template
        """
        if not template:
            raise ValueError("template name must not be empty")

        candidates = self.candidate_paths(template)
        for path in candidates:
            if os.path.isfile(path):
                logger.debug("Resolved template %s to %s", template, path)
                return path

        logger.debug("Template %s not found; searched %s", template, candidates)
        raise TemplateNotFoundError(template, searched=candidates)

    def resolve_bindings(
        self, template: str, variables: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        """Merge explicit ``variables`` over the automatic bindings for ``template``.

        Shallow merge: an explicit key replaces the automatic value outright.
        """
        bindings = self.get_auto_bindings(template)
        if variables:
            bindings.update(variables)
        return bindings

    def get_auto_bindings(self, template: str) -> Dict[str, Any]:
        if self._variable_provider is None:
            return {}
        provided = self._variable_provider.provide_variables(template)
        return dict(provided) if provided else {}

    def __repr__(self) -> str:
        return f"Engine(basedirs={list(self._basedirs)!r}, suffix={self._suffix!r})"


__all__ = ["Engine", "BaseDir"]
