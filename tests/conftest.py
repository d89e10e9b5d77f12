"""Shared fixtures: small PageGraph GraphML documents built in memory."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple
from xml.sax.saxutils import escape, quoteattr

import pytest

from pagegraph import Graph, ReaderConfig, read_from_reader

NodeEntry = Tuple[str, Mapping[str, Any]]
EdgeEntry = Tuple[str, str, str, Mapping[str, Any]]

GRAPHML_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'
GRAPHML_OPEN = '<graphml xmlns="http://graphml.graphdrawing.org/xmlns">\n'

# GraphML types PageGraph declares, by canonical attribute name. Anything
# not listed is a string unless a test overrides it.
DEFAULT_TYPES = {
    "id": "long",
    "timestamp": "long",
    "sequence": "long",
    "node_id": "long",
    "script_id": "long",
    "request_id": "long",
    "parent": "long",
    "before": "long",
    "size": "long",
    "script_position": "long",
    "event_listener_id": "long",
    "is_deleted": "boolean",
    "is_style": "boolean",
}


def _canonical(name: str) -> str:
    return name.strip().replace(" ", "_")


def _render_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _render_desc(desc: Mapping[str, Any]) -> str:
    parts = []
    for name, value in desc.items():
        if isinstance(value, Mapping):
            inner = "".join(f"<{k}>{escape(_render_value(v))}</{k}>" for k, v in value.items())
            parts.append(f"<{name}>{inner}</{name}>")
        else:
            parts.append(f"<{name}>{escape(_render_value(value))}</{name}>")
    return "  <desc>" + "".join(parts) + "</desc>\n"


def render_graphml(
    nodes: Iterable[NodeEntry] = (),
    edges: Iterable[EdgeEntry] = (),
    *,
    types: Optional[Mapping[str, str]] = None,
    desc: Optional[Mapping[str, Any]] = None,
) -> str:
    """Render a PageGraph-style GraphML document.

    Keys are declared for every attribute name used, per element class, in
    first-use order. Attribute values are written as given; booleans become
    ``true``/``false``.
    """
    nodes = list(nodes)
    edges = list(edges)
    declared_types = dict(DEFAULT_TYPES)
    declared_types.update({_canonical(name): t for name, t in (types or {}).items()})

    keys: Dict[Tuple[str, str], str] = {}
    for domain, entries in (("node", [n[1] for n in nodes]), ("edge", [e[3] for e in edges])):
        for attrs in entries:
            for name in attrs:
                if (domain, name) not in keys:
                    keys[(domain, name)] = f"d{len(keys)}"

    out = [GRAPHML_HEADER, GRAPHML_OPEN]
    for (domain, name), key_id in keys.items():
        attr_type = declared_types.get(_canonical(name), "string")
        out.append(
            f'  <key id="{key_id}" for="{domain}" attr.name={quoteattr(name)} '
            f'attr.type="{attr_type}"/>\n'
        )
    if desc is not None:
        out.append(_render_desc(desc))

    out.append('  <graph id="G" edgedefault="directed">\n')
    for node_id, attrs in nodes:
        out.append(f"    <node id={quoteattr(node_id)}>\n")
        for name, value in attrs.items():
            key_id = keys[("node", name)]
            out.append(f'      <data key="{key_id}">{escape(_render_value(value))}</data>\n')
        out.append("    </node>\n")
    for edge_id, source, target, attrs in edges:
        out.append(
            f"    <edge id={quoteattr(edge_id)} source={quoteattr(source)} "
            f"target={quoteattr(target)}>\n"
        )
        for name, value in attrs.items():
            key_id = keys[("edge", name)]
            out.append(f'      <data key="{key_id}">{escape(_render_value(value))}</data>\n')
        out.append("    </edge>\n")
    out.append("  </graph>\n</graphml>\n")
    return "".join(out)


def html_element(tag: str, *, deleted: bool = False, blink_id: int = 1, **extra: Any) -> Dict[str, Any]:
    attrs: Dict[str, Any] = {
        "node type": "HTML element",
        "tag name": tag,
        "is deleted": deleted,
        "node id": blink_id,
    }
    attrs.update(extra)
    return attrs


@pytest.fixture
def graphml() -> Callable[..., str]:
    """Factory rendering a GraphML document from node/edge tuples."""
    return render_graphml


@pytest.fixture
def build_graph() -> Callable[..., Graph]:
    """Factory that renders a document and reads it into a Graph."""

    def _build(
        nodes: Sequence[NodeEntry] = (),
        edges: Sequence[EdgeEntry] = (),
        *,
        config: Optional[ReaderConfig] = None,
        **kwargs: Any,
    ) -> Graph:
        text = render_graphml(nodes, edges, **kwargs)
        return read_from_reader(io.BytesIO(text.encode("utf-8")), config)

    return _build


@pytest.fixture
def write_graphml(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a rendered (or raw) document under tmp_path."""

    def _write(*args: Any, name: str = "page_graph.graphml", raw: Optional[str] = None, **kwargs: Any) -> Path:
        path = tmp_path / name
        text = raw if raw is not None else render_graphml(*args, **kwargs)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def html_element_attrs() -> Callable[..., Dict[str, Any]]:
    return html_element


@pytest.fixture
def page_load_graph(build_graph) -> Graph:
    """A small but realistic page load.

    The parser creates a ``<script src>`` element, the script it loads runs
    and fetches an image, and then sets ``src`` on an ``<img>``, which
    triggers a second image request. One div is created and later deleted.
    """
    nodes = [
        ("n1", {"node type": "parser"}),
        ("n2", {"node type": "DOM root", "tag name": "html", "is deleted": False,
                "node id": 1, "url": "https://example.com/"}),
        ("n3", html_element("script", blink_id=2)),
        ("n4", {"node type": "resource", "url": "https://cdn.example.com/app.js"}),
        ("n5", {"node type": "script", "script type": "classic", "script id": 11,
                "url": "https://cdn.example.com/app.js"}),
        ("n6", {"node type": "resource", "url": "https://img.example.com/a.png"}),
        ("n7", html_element("img", blink_id=3)),
        ("n8", {"node type": "resource", "url": "https://img.example.com/b.png"}),
        ("n9", html_element("div", deleted=True, blink_id=4)),
    ]
    edges = [
        ("e1", "n1", "n3", {"edge type": "create node", "timestamp": 1}),
        ("e2", "n1", "n3", {"edge type": "insert node", "parent": 1, "timestamp": 2}),
        ("e3", "n3", "n4", {"edge type": "request start", "request type": "Script",
                            "status": "started", "request id": 100, "timestamp": 3}),
        ("e4", "n4", "n3", {"edge type": "request complete", "resource type": "script",
                            "status": "complete", "request id": 100, "headers": "",
                            "size": "2048", "response hash": "abc", "timestamp": 4}),
        ("e5", "n3", "n5", {"edge type": "execute", "timestamp": 5}),
        ("e6", "n5", "n6", {"edge type": "request start", "request type": "Image",
                            "status": "started", "request id": 101, "timestamp": 6}),
        ("e7", "n6", "n5", {"edge type": "request complete", "resource type": "image",
                            "status": "complete", "request id": 101, "headers": "",
                            "size": "512", "timestamp": 7}),
        ("e8", "n5", "n7", {"edge type": "set attribute", "key": "src",
                            "value": "https://img.example.com/b.png", "is style": False,
                            "timestamp": 8}),
        ("e9", "n7", "n8", {"edge type": "request start", "request type": "Image",
                            "status": "started", "request id": 102, "timestamp": 9}),
        ("e10", "n8", "n7", {"edge type": "request error", "status": "failed",
                             "request id": 102, "headers": "", "size": "-1", "timestamp": 10}),
        ("e11", "n1", "n9", {"edge type": "create node", "timestamp": 11}),
        ("e12", "n5", "n9", {"edge type": "delete node", "timestamp": 12}),
        ("e13", "n2", "n3", {"edge type": "structure"}),
    ]
    return build_graph(nodes, edges)
