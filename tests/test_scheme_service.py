from e_estudiantes.services import scheme_service


def test_predefined_templates_cover_every_category():
    templates = scheme_service.list_templates()

    assert [template["id"] for template in templates] == [
        "mindmap-basic",
        "flowchart-basic",
        "comparison-table",
        "timeline-basic",
    ]
    assert {template["category"] for template in templates} == set(scheme_service.TEMPLATE_CATEGORIES)


def test_template_edges_reference_existing_nodes():
    for template in scheme_service.list_templates():
        node_ids = {node["id"] for node in template["nodes"]}
        for edge in template["edges"]:
            assert edge["source"] in node_ids
            assert edge["target"] in node_ids
            assert edge["id"] == f"e{edge['source']}-{edge['target']}"


def test_get_template_by_id_returns_copy():
    template = scheme_service.get_template_by_id("flowchart-basic")
    template["nodes"].clear()

    again = scheme_service.get_template_by_id("flowchart-basic")
    assert len(again["nodes"]) == 4
    assert again["nodes"][3]["type"] == "output"
    assert scheme_service.get_template_by_id("missing") is None


def test_get_templates_by_category():
    assert [t["id"] for t in scheme_service.get_templates_by_category("timeline")] == ["timeline-basic"]
    assert scheme_service.get_templates_by_category("unknown") == []


def test_sanitize_nodes_drops_malformed_and_duplicates():
    nodes = scheme_service.sanitize_nodes([
        {"id": "a", "type": "input", "position": {"x": "10", "y": 20}, "data": {"label": "A", "backgroundColor": "#fff"}},
        {"id": "a", "position": {"x": 1, "y": 1}},
        {"id": "", "position": {}},
        "not-a-node",
        {"id": 7, "type": "weird", "position": {"x": "abc", "y": float("nan")}, "data": {"label": "B", "fontSize": 300}},
    ])

    assert [node["id"] for node in nodes] == ["a", "7"]
    assert nodes[0]["position"] == {"x": 10.0, "y": 20.0}
    assert nodes[0]["data"] == {"label": "A", "background_color": "#fff"}
    assert nodes[1]["type"] == "default"
    assert nodes[1]["position"] == {"x": 0.0, "y": 0.0}
    assert nodes[1]["data"]["font_size"] == 96


def test_sanitize_edges_requires_existing_endpoints():
    nodes = scheme_service.sanitize_nodes([{"id": "1"}, {"id": "2"}])

    edges = scheme_service.sanitize_edges([
        {"source": "1", "target": "2"},
        {"id": "e1-2", "source": "2", "target": "1"},
        {"source": "1", "target": "9"},
        {"id": "x", "source": "2", "target": "1", "label": " une "},
    ], nodes)

    assert edges == [
        {"id": "e1-2", "source": "1", "target": "2", "type": "smoothstep"},
        {"id": "x", "source": "2", "target": "1", "type": "smoothstep", "label": "une"},
    ]


def test_sanitize_nodes_caps_count():
    raw = [{"id": str(i)} for i in range(scheme_service.MAX_NODES + 20)]

    assert len(scheme_service.sanitize_nodes(raw)) == scheme_service.MAX_NODES


def test_sanitize_tags_accepts_csv_and_dedupes():
    assert scheme_service.sanitize_tags("bio, celula ,bio,") == ["bio", "celula"]
    assert scheme_service.sanitize_tags(None) == []
