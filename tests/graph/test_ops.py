"""Tests for the read-only queries and downstream-effect traversal."""

from __future__ import annotations

import pytest

from pagegraph.errors import EdgeNotFoundError, NodeNotFoundError
from pagegraph.graph.models.edges import RequestType
from pagegraph.graph.ops import (
    BlinkIdIndex,
    all_downstream_effects_of,
    all_downstream_requests_nested,
    all_remote_frame_ids,
    direct_downstream_effects_of,
    dom_root_for_edge,
    dom_root_for_html_node,
    html_element_modifications,
    local_context_root_for_id,
    request_info,
    resource_request_types,
    resources_from_script,
    root_url,
    scripts_that_caused_resource,
)

FRAME = "00112233445566778899AABBCCDDEEFF"

SCRIPT = {"node type": "script", "script type": "classic", "script id": 1}


def _ids(items):
    return [item.id for item in items]


def _request_start(request_id, request_type="Image", **extra):
    attrs = {
        "edge type": "request start",
        "request type": request_type,
        "status": "started",
        "request id": request_id,
    }
    attrs.update(extra)
    return attrs


def _request_complete(request_id, resource_type="image", size="10", **extra):
    attrs = {
        "edge type": "request complete",
        "resource type": resource_type,
        "status": "complete",
        "request id": request_id,
        "headers": "",
        "size": size,
    }
    attrs.update(extra)
    return attrs


def _set_src(sequence):
    return {"edge type": "set attribute", "key": "src", "is style": False, "sequence": sequence}


# ----------------------------------------------------------------------
# Queries
# ----------------------------------------------------------------------


def test_html_element_modifications(page_load_graph) -> None:
    assert _ids(html_element_modifications(page_load_graph, "n3")) == ["e1", "e2", "e4"]
    assert _ids(html_element_modifications(page_load_graph, "n9")) == ["e11", "e12"]

    with pytest.raises(TypeError):
        html_element_modifications(page_load_graph, "n4")
    with pytest.raises(NodeNotFoundError):
        html_element_modifications(page_load_graph, "n404")


def test_resources_from_script(page_load_graph) -> None:
    # The <script> element's own request plus those of the script it ran.
    assert _ids(resources_from_script(page_load_graph, "n3")) == ["n4", "n6"]
    assert _ids(resources_from_script(page_load_graph, "n5")) == ["n6"]

    with pytest.raises(TypeError):
        resources_from_script(page_load_graph, "n7")


def test_scripts_that_caused_resource(page_load_graph) -> None:
    assert _ids(scripts_that_caused_resource(page_load_graph, "n6")) == ["n5"]
    with pytest.raises(TypeError):
        scripts_that_caused_resource(page_load_graph, "n5")


def test_resource_request_types(page_load_graph) -> None:
    assert resource_request_types(page_load_graph, "n4") == [("script", 2048)]
    assert resource_request_types(page_load_graph, "n6") == [("image", 512)]
    # Request 102 failed, so there is no completed size.
    assert resource_request_types(page_load_graph, "n8") == [("image", None)]


def test_resource_never_requested_is_other(build_graph) -> None:
    graph = build_graph([("n1", {"node type": "resource", "url": "https://a.test/"})])
    assert resource_request_types(graph, "n1") == [("other", None)]


def test_unknown_size_is_none(build_graph) -> None:
    graph = build_graph(
        [("n1", SCRIPT), ("n2", {"node type": "resource", "url": "https://a.test/v.mp4"})],
        [
            ("e1", "n1", "n2", _request_start(5, "Unknown")),
            ("e2", "n2", "n1", _request_complete(5, "media", size=-1)),
        ],
    )
    assert resource_request_types(graph, "n2") == [("unknown", None)]


def test_all_remote_frame_ids(build_graph) -> None:
    graph = build_graph(
        [
            ("n1", {"node type": "parser"}),
            ("n2", {"node type": "remote frame", "frame id": FRAME.lower()}),
        ]
    )
    assert all_remote_frame_ids(graph) == [FRAME]
    assert all_remote_frame_ids(build_graph([("n1", {"node type": "parser"})])) == []


def test_request_info(page_load_graph) -> None:
    info = request_info(page_load_graph, 100)

    assert info.request_id == 100
    assert info.request_type is RequestType.SCRIPT
    assert info.url == "https://cdn.example.com/app.js"
    assert info.resource_type == "script"
    assert info.size == 2048
    assert info.response_hash == "abc"
    assert info.to_dict()["request_type"] == "script"


def test_request_info_without_completion(page_load_graph) -> None:
    with pytest.raises(LookupError):
        request_info(page_load_graph, 102)
    with pytest.raises(LookupError):
        request_info(page_load_graph, 999)


def _frame_requests_graph(build_graph):
    return build_graph(
        [
            ("n1", SCRIPT),
            ("n2", {"node type": "resource", "url": "https://root.test/a.png"}),
            ("n3", {"node type": "resource", "url": "https://frame.test/a.png"}),
        ],
        [
            ("e1", "n1", "n2", _request_start(7)),
            ("e2", "n2", "n1", _request_complete(7)),
            (f"e3:{FRAME}", "n1", "n3", _request_start(7)),
            (f"e4:{FRAME}", "n3", "n1", _request_complete(7)),
        ],
    )


def test_request_info_is_scoped_to_a_frame(build_graph) -> None:
    graph = _frame_requests_graph(build_graph)

    assert request_info(graph, 7).url == "https://root.test/a.png"
    assert request_info(graph, 7, FRAME.lower()).url == "https://frame.test/a.png"


def test_request_info_mismatched_resources(build_graph) -> None:
    graph = build_graph(
        [
            ("n1", SCRIPT),
            ("n2", {"node type": "resource", "url": "https://a.test/1"}),
            ("n3", {"node type": "resource", "url": "https://a.test/2"}),
        ],
        [
            ("e1", "n1", "n2", _request_start(3)),
            ("e2", "n3", "n1", _request_complete(3)),
        ],
    )
    with pytest.raises(ValueError):
        request_info(graph, 3)


# ----------------------------------------------------------------------
# Downstream effects
# ----------------------------------------------------------------------


def test_direct_effects_of_request_start(page_load_graph) -> None:
    edge = page_load_graph.edge("e3")
    assert _ids(direct_downstream_effects_of(page_load_graph, edge)) == ["e4"]


def test_direct_effects_of_execute(page_load_graph) -> None:
    edge = page_load_graph.edge("e5")
    assert _ids(direct_downstream_effects_of(page_load_graph, edge)) == ["e6", "e8"]


def test_edges_without_modelled_effects(page_load_graph) -> None:
    for edge_id in ("e1", "e12", "e13", "e7"):
        edge = page_load_graph.edge(edge_id)
        assert direct_downstream_effects_of(page_load_graph, edge) == []


def test_all_downstream_effects(page_load_graph) -> None:
    effects = all_downstream_effects_of(page_load_graph, page_load_graph.edge("e3"))

    assert _ids(effects) == ["e4", "e5", "e8", "e9", "e10", "e6", "e7"]
    assert "e3" not in _ids(effects)


def test_downstream_request_starts(page_load_graph) -> None:
    effects = all_downstream_effects_of(page_load_graph, page_load_graph.edge("e3"))
    starts = {
        (e.edge_type.request_id, e.id)
        for e in effects
        if e.kind == "request start"
    }
    assert starts == {(101, "e6"), (102, "e9")}


def test_downstream_requests_nested(page_load_graph) -> None:
    nested = all_downstream_requests_nested(page_load_graph, page_load_graph.edge("e3"))

    assert [(r.request_id, r.edge_id) for r in nested] == [(101, "e6"), (102, "e9")]
    assert nested[0].url == "https://img.example.com/a.png"
    assert nested[0].node_id == "n6"
    assert nested[0].children == []
    assert nested[1].to_dict()["request_type"] == "image"


def test_nested_requests_through_non_request_effects(page_load_graph) -> None:
    # The set attribute on <img> is not reported but its request is.
    nested = all_downstream_requests_nested(page_load_graph, page_load_graph.edge("e5"))
    assert [(r.request_id, r.edge_id) for r in nested] == [(101, "e6"), (102, "e9")]

    insert = page_load_graph.edge("e2")
    assert all_downstream_requests_nested(page_load_graph, insert) == []


def _frames_graph(build_graph):
    nodes = [
        ("n1", SCRIPT),
        ("n2", {"node type": "frame owner", "tag name": "iframe", "is deleted": False,
                "node id": 5}),
        ("n3", {"node type": "DOM root", "tag name": "html", "is deleted": False,
                "node id": 6, "url": "about:blank"}),
        ("n4", {"node type": "DOM root", "tag name": "html", "is deleted": False,
                "node id": 9, "url": "https://frame.test/"}),
        ("n5", {"node type": "remote frame", "frame id": FRAME}),
    ]
    edges = [
        ("e1", "n1", "n2", _set_src(10)),
        ("e2", "n2", "n3", {"edge type": "cross DOM", "sequence": 5}),
        ("e3", "n2", "n4", {"edge type": "cross DOM", "sequence": 12}),
        ("e4", "n1", "n2", _set_src(20)),
        ("e5", "n2", "n5", {"edge type": "cross DOM", "sequence": 25}),
        ("e6", "n5", "n4", {"edge type": "cross DOM", "sequence": 30}),
    ]
    return build_graph(nodes, edges)


def test_src_on_frame_owner_loads_frames_until_next_src(build_graph) -> None:
    graph = _frames_graph(build_graph)

    assert _ids(direct_downstream_effects_of(graph, graph.edge("e1"))) == ["e3"]
    assert _ids(direct_downstream_effects_of(graph, graph.edge("e4"))) == ["e5"]


def test_cross_dom_effects(build_graph) -> None:
    graph = _frames_graph(build_graph)

    # Into a remote frame: the frame's onward cross DOM edges.
    assert _ids(direct_downstream_effects_of(graph, graph.edge("e5"))) == ["e6"]
    # Into a local document: nothing.
    assert direct_downstream_effects_of(graph, graph.edge("e3")) == []


def test_non_src_attribute_has_no_effects(build_graph) -> None:
    graph = build_graph(
        [("n1", SCRIPT), ("n2", {"node type": "HTML element", "tag name": "img",
                                 "is deleted": False, "node id": 3})],
        [("e1", "n1", "n2", {"edge type": "set attribute", "key": "class",
                             "value": "hero", "is style": False})],
    )
    assert direct_downstream_effects_of(graph, graph.edge("e1")) == []


def test_inserting_text_into_script_runs_it(build_graph) -> None:
    graph = build_graph(
        [
            ("n1", SCRIPT),
            ("n2", {"node type": "HTML element", "tag name": "script",
                    "is deleted": False, "node id": 7}),
            ("n3", {"node type": "text node", "text": "run()", "is deleted": False,
                    "node id": 8}),
            ("n4", {"node type": "script", "script type": "inline", "script id": 2}),
        ],
        [
            ("e1", "n1", "n3", {"edge type": "insert node", "parent": 7, "sequence": 40}),
            ("e2", "n2", "n4", {"edge type": "execute", "sequence": 41}),
            ("e3", "n2", "n4", {"edge type": "execute", "sequence": 50}),
        ],
    )
    assert _ids(direct_downstream_effects_of(graph, graph.edge("e1"))) == ["e2"]


def test_edge_from_another_graph_is_rejected(page_load_graph, build_graph) -> None:
    other = build_graph(
        [("n1", {"node type": "parser"}), ("n2", {"node type": "parser"})],
        [("e99", "n1", "n2", {"edge type": "structure"})],
    )
    foreign = other.edge("e99")

    for op in (
        direct_downstream_effects_of,
        all_downstream_effects_of,
        all_downstream_requests_nested,
    ):
        with pytest.raises(EdgeNotFoundError) as excinfo:
            op(page_load_graph, foreign)
        assert excinfo.value.edge_id == "e99"


# ----------------------------------------------------------------------
# Document ownership
# ----------------------------------------------------------------------


def _dom(kind, tag, blink_id, **extra):
    attrs = {"node type": kind, "tag name": tag, "is deleted": False, "node id": blink_id}
    attrs.update(extra)
    return attrs


def _document_graph(build_graph, **kwargs):
    nodes = [
        ("n1", {"node type": "parser"}),
        ("n2", _dom("DOM root", "html", 1, url="https://example.com/")),
        ("n3", _dom("HTML element", "div", 2)),
        ("n4", {"node type": "text node", "text": "hi", "is deleted": False, "node id": 3}),
        ("n5", SCRIPT),
        ("n6", _dom("HTML element", "script", 4)),
        ("n7", _dom("HTML element", "span", 6)),
        ("n8", _dom("frame owner", "iframe", 7)),
        ("n9", _dom("DOM root", "html", 8, url="https://frame.test/")),
        ("n10", {"node type": "resource", "url": "https://img.test/a.png"}),
        ("n11", {"node type": "resource", "url": "https://example.com/style.css"}),
    ]
    edges = [
        ("e1", "n1", "n3", {"edge type": "create node"}),
        ("e2", "n1", "n3", {"edge type": "insert node", "parent": 1}),
        ("e3", "n1", "n4", {"edge type": "create node"}),
        ("e4", "n1", "n4", {"edge type": "insert node", "parent": 2}),
        ("e5", "n1", "n6", {"edge type": "create node"}),
        ("e6", "n1", "n6", {"edge type": "insert node", "parent": 1}),
        ("e7", "n6", "n5", {"edge type": "execute"}),
        ("e8", "n5", "n7", {"edge type": "create node"}),
        ("e9", "n1", "n8", {"edge type": "create node"}),
        ("e10", "n1", "n8", {"edge type": "insert node", "parent": 2}),
        ("e11", "n8", "n9", {"edge type": "cross DOM"}),
        ("e12", "n5", "n10", _request_start(1)),
        ("e13", "n10", "n5", _request_complete(1)),
        ("e14", "n1", "n11", _request_start(2, "CSS")),
        ("e15", "n11", "n1", _request_complete(2, "stylesheet")),
    ]
    return build_graph(nodes, edges, **kwargs)


def test_dom_root_follows_insert_parents(build_graph) -> None:
    graph = _document_graph(build_graph)

    assert dom_root_for_html_node(graph, "n4").id == "n2"
    assert dom_root_for_html_node(graph, "n8").id == "n2"
    assert dom_root_for_html_node(graph, "n2").id == "n2"


def test_dom_root_of_never_inserted_node_is_its_creators(build_graph) -> None:
    graph = _document_graph(build_graph)
    # The span was only created, by a script run from the page's <script>.
    assert dom_root_for_html_node(graph, "n7").id == "n2"


def test_dom_root_for_non_dom_node(build_graph) -> None:
    graph = _document_graph(build_graph)

    with pytest.raises(TypeError):
        dom_root_for_html_node(graph, "n5")
    with pytest.raises(NodeNotFoundError):
        dom_root_for_html_node(graph, "n404")


def test_dom_root_with_missing_parent(build_graph) -> None:
    graph = build_graph(
        [("n1", {"node type": "parser"}), ("n2", _dom("HTML element", "p", 5))],
        [("e1", "n1", "n2", {"edge type": "insert node", "parent": 99})],
    )
    with pytest.raises(LookupError):
        dom_root_for_html_node(graph, "n2")


def test_dom_root_for_edge(build_graph) -> None:
    graph = _document_graph(build_graph)

    assert dom_root_for_edge(graph, graph.edge("e7")).id == "n2"
    assert dom_root_for_edge(graph, graph.edge("e11")).id == "n2"
    assert dom_root_for_edge(graph, graph.edge("e13")).id == "n2"
    # Parser-initiated requests are not attributed to a document.
    assert dom_root_for_edge(graph, graph.edge("e15")) is None

    with pytest.raises(TypeError):
        dom_root_for_edge(graph, graph.edge("e1"))


def test_local_context_root_skips_framed_documents(build_graph) -> None:
    graph = _document_graph(build_graph)

    assert local_context_root_for_id(graph, "n5").id == "n2"
    assert local_context_root_for_id(graph, "e13").id == "n2"
    with pytest.raises(LookupError):
        local_context_root_for_id(graph, f"n1:{FRAME}")


def test_root_url(build_graph) -> None:
    graph = _document_graph(build_graph, desc={"url": "https://example.com/"})
    assert root_url(graph) == "https://example.com/"

    with pytest.raises(LookupError):
        root_url(_document_graph(build_graph))


def test_blink_id_index_is_scoped_to_frames(build_graph) -> None:
    graph = build_graph(
        [
            ("n1", _dom("HTML element", "div", 4)),
            (f"n2:{FRAME}", _dom("HTML element", "p", 4)),
            (f"n3:{FRAME}", _dom("HTML element", "b", 5)),
            (f"n4:{FRAME}", _dom("HTML element", "i", 5)),
        ]
    )
    index = BlinkIdIndex(graph)

    assert index.get(4, None).id == "n1"
    assert index.get(4, FRAME).id == f"n2:{FRAME}"
    assert index.get(6, None) is None
    assert index.get(5, FRAME).id == f"n3:{FRAME}"
    with pytest.raises(ValueError):
        index.get(5, FRAME, unique=True)


def test_blink_id_index_is_built_once(build_graph, monkeypatch) -> None:
    graph = build_graph(
        [
            ("n1", SCRIPT),
            ("n2", _dom("HTML element", "script", 7)),
            ("n3", {"node type": "text node", "is deleted": False, "node id": 8}),
            ("n4", {"node type": "text node", "is deleted": False, "node id": 9}),
            ("n5", {"node type": "script", "script type": "inline", "script id": 2}),
        ],
        [
            ("e1", "n1", "n3", {"edge type": "insert node", "parent": 7, "sequence": 1}),
            ("e2", "n1", "n4", {"edge type": "insert node", "parent": 7, "sequence": 2}),
            ("e3", "n2", "n5", {"edge type": "execute", "sequence": 3}),
        ],
    )
    builds = []
    original = BlinkIdIndex._build

    def counting_build(self):
        builds.append(self)
        return original(self)

    monkeypatch.setattr(BlinkIdIndex, "_build", counting_build)

    index = BlinkIdIndex(graph)
    for edge_id in ("e1", "e2"):
        effects = direct_downstream_effects_of(graph, graph.edge(edge_id), index)
        assert _ids(effects) == ["e3"]
    assert len(builds) == 1
