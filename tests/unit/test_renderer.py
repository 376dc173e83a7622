"""Tests for the Jinja2 renderer and its template helpers."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pytest
from jinja2 import UndefinedError

from bamboo import Engine, FunctionRegistry, RenderDepthError, Renderer, TemplateNotFoundError


class RecordingResolver:
    """Resolve callback over a flat directory that records every call."""

    def __init__(self, root: Path, auto: Optional[Dict[str, Any]] = None) -> None:
        self.root = root
        self.auto = auto or {}
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    def __call__(self, name: str, variables: Optional[Mapping[str, Any]]) -> Tuple[str, Dict[str, Any]]:
        self.calls.append((name, dict(variables or {})))
        path = self.root / f"{name}.j2"
        if not path.is_file():
            raise TemplateNotFoundError(name, searched=[str(path)])
        return str(path), {**self.auto, **(variables or {})}


@pytest.fixture
def engine(tmp_path: Path) -> Engine:
    return Engine([str(tmp_path / "tpl") + "/"])


class TestRendererCallback:
    def test_resolve_callback_used_for_entry_and_includes(self, tmp_path: Path, write_file) -> None:
        write_file("flat/page.j2", "{{ include('part', n=2) }}|{{ n }}")
        write_file("flat/part.j2", "part {{ n }}")
        resolver = RecordingResolver(tmp_path / "flat")

        output = Renderer(resolver).render("page", {"n": 1})

        assert output == "part 2|1"
        assert resolver.calls == [("page", {"n": 1}), ("part", {"n": 2})]

    def test_nested_template_does_not_inherit_bindings(self, tmp_path: Path, write_file) -> None:
        write_file("flat/page.j2", "{{ include('part') }}")
        write_file("flat/part.j2", "[{{ secret }}]")

        output = Renderer(RecordingResolver(tmp_path / "flat")).render("page", {"secret": "x"})

        assert output == "[]"

    def test_automatic_bindings_reach_nested_templates(self, tmp_path: Path, write_file) -> None:
        write_file("flat/page.j2", "{{ include('part') }}")
        write_file("flat/part.j2", "{{ site }}")

        resolver = RecordingResolver(tmp_path / "flat", auto={"site": "bamboo"})

        assert Renderer(resolver).render("page") == "bamboo"

    def test_default_sections_store_created(self, tmp_path: Path) -> None:
        renderer = Renderer(RecordingResolver(tmp_path))
        assert renderer.sections == {}


class TestLayouts:
    def test_parent_wraps_child_output(self, engine: Engine, write_file) -> None:
        write_file("tpl/layout.j2", "<main>{{ content() }}</main><h1>{{ title }}</h1>")
        write_file("tpl/page.j2", "{{ parent('layout', title=heading) }}Body of {{ heading }}")

        assert engine.render("page", {"heading": "Home"}) == "<main>Body of Home</main><h1>Home</h1>"

    def test_layout_chain(self, engine: Engine, write_file) -> None:
        write_file("tpl/base.j2", "<html>{{ content() }}</html>")
        write_file("tpl/layout.j2", "{{ parent('base') }}<body>{{ content() }}</body>")
        write_file("tpl/page.j2", "{{ parent('layout') }}hi")

        assert engine.render("page") == "<html><body>hi</body></html>"

    def test_last_parent_call_wins(self, engine: Engine, write_file) -> None:
        write_file("tpl/a.j2", "A({{ content() }})")
        write_file("tpl/b.j2", "B({{ content() }})")
        write_file("tpl/page.j2", "{{ parent('a') }}{{ parent('b') }}x")

        assert engine.render("page") == "B(x)"

    def test_content_is_empty_outside_layouts(self, engine: Engine, write_file) -> None:
        write_file("tpl/page.j2", "[{{ content() }}]")

        assert engine.render("page") == "[]"

    def test_missing_layout_aborts_render(self, engine: Engine, write_file) -> None:
        write_file("tpl/page.j2", "{{ parent('nowhere') }}body")

        with pytest.raises(TemplateNotFoundError) as excinfo:
            engine.render("page")

        assert excinfo.value.template == "nowhere"

    def test_included_template_with_its_own_layout(self, engine: Engine, write_file) -> None:
        write_file("tpl/card.j2", "<div>{{ content() }}</div>")
        write_file("tpl/item.j2", "{{ parent('card') }}{{ label }}")
        write_file("tpl/page.j2", "{% for l in labels %}{{ include('item', label=l) }}{% endfor %}")

        assert engine.render("page", {"labels": ["a", "b"]}) == "<div>a</div><div>b</div>"


class TestSections:
    def test_child_deposits_section_for_layout(self, engine: Engine, write_file) -> None:
        write_file("tpl/layout.j2", "<title>{{ section('title', 'Untitled') }}</title>{{ content() }}")
        write_file("tpl/page.j2", "{{ parent('layout') }}{{ set_section('title', 'Docs') }}body")

        assert engine.render("page") == "<title>Docs</title>body"

    def test_section_default_when_missing(self, engine: Engine, write_file) -> None:
        write_file("tpl/layout.j2", "<title>{{ section('title', 'Untitled') }}</title>")
        write_file("tpl/page.j2", "{{ parent('layout') }}")

        assert engine.render("page") == "<title>Untitled</title>"

    def test_capture_block(self, engine: Engine, write_file) -> None:
        write_file(
            "tpl/page.j2",
            "{% call capture('sidebar') %}<ul>{{ item }}</ul>{% endcall %}main",
        )
        sections: dict = {}

        output = engine.render("page", {"item": "one"}, sections)

        assert output == "main"
        assert sections["sidebar"] == "<ul>one</ul>"

    def test_append_and_has_section(self, engine: Engine, write_file) -> None:
        write_file("tpl/part.j2", "{{ append_section('scripts', 'b.js;') }}")
        write_file(
            "tpl/page.j2",
            "{{ has_section('scripts') }}"
            "{{ append_section('scripts', 'a.js;') }}"
            "{{ include('part') }}"
            "{{ has_section('scripts') }}:{{ section('scripts') }}",
        )

        assert engine.render("page") == "FalseTrue:a.js;b.js;"


    def test_append_after_escaped_value_keeps_raw_html(self, engine: Engine, write_file) -> None:
        write_file(
            "tpl/page.j2",
            "{{ set_section('s', h('<')) }}{{ append_section('s', '<b>') }}{{ section('s') }}",
        )
        sections: dict = {}

        assert engine.render("page", sections=sections) == "&lt;<b>"
        assert type(sections["s"]) is str

    def test_append_under_autoescape_escapes_plain_text_once(self, tmp_path: Path, write_file) -> None:
        write_file(
            "tpl/page.j2",
            "{{ set_section('s', h('<')) }}{{ append_section('s', '<b>') }}{{ section('s') }}",
        )
        engine = Engine([str(tmp_path / "tpl") + "/"], autoescape=True)

        assert engine.render("page") == "&lt;&lt;b&gt;"


class TestRendererOptions:
    def test_self_include_hits_depth_limit(self, tmp_path: Path, write_file) -> None:
        write_file("tpl/loop.j2", "{{ include('loop') }}")
        engine = Engine([str(tmp_path / "tpl") + "/"], max_depth=5)

        with pytest.raises(RenderDepthError) as excinfo:
            engine.render("loop")

        assert excinfo.value.context["chain"] == ["loop"] * 6
        assert isinstance(excinfo.value, RecursionError)

    def test_strict_undefined(self, tmp_path: Path, write_file) -> None:
        write_file("tpl/page.j2", "{{ missing }}")
        engine = Engine([str(tmp_path / "tpl") + "/"], strict_undefined=True)

        with pytest.raises(UndefinedError):
            engine.render("page")

    def test_lenient_undefined_by_default(self, engine: Engine, write_file) -> None:
        write_file("tpl/page.j2", "[{{ missing }}]")

        assert engine.render("page") == "[]"

    def test_autoescape_does_not_double_escape_includes(self, tmp_path: Path, write_file) -> None:
        write_file("tpl/part.j2", "<b>{{ v }}</b>")
        write_file("tpl/page.j2", "{{ include('part', v=raw) }}{{ raw }}")
        engine = Engine([str(tmp_path / "tpl") + "/"], autoescape=True)

        assert engine.render("page", {"raw": "<i>"}) == "<b>&lt;i&gt;</b>&lt;i&gt;"

    def test_registry_functions_are_globals(self, tmp_path: Path, write_file) -> None:
        registry = FunctionRegistry()
        registry.add("shout", lambda s: s.upper())
        write_file("tpl/page.j2", "{{ shout(word) }}")
        engine = Engine([str(tmp_path / "tpl") + "/"], functions=registry)

        assert engine.render("page", {"word": "hey"}) == "HEY"

    def test_bindings_shadow_helpers(self, engine: Engine, write_file) -> None:
        write_file("tpl/page.j2", "{{ section }}")

        assert engine.render("page", {"section": "mine"}) == "mine"

    def test_trailing_newline_and_block_trimming(self, engine: Engine, write_file) -> None:
        write_file(
            "tpl/list.j2",
            """\
            {% for x in xs %}
            - {{ x }}
            {% endfor %}
            """,
        )

        assert engine.render("list", {"xs": [1, 2]}) == "- 1\n- 2\n"

    def test_list_helpers(self, tmp_path: Path) -> None:
        helpers = Renderer(RecordingResolver(tmp_path)).list_helpers()

        for name in ("include", "parent", "content", "section", "capture", "h"):
            assert name in helpers
