import plotly.graph_objects as go

from orgmapper.pipeline import aggregate, flatten_hierarchy, project_rows
from orgmapper.plotting import EMPTY_MESSAGE, NO_DATA_MESSAGE, create_treemap

from .conftest import make_row


def _annotation_text(fig):
    return [annotation.text for annotation in fig.layout.annotations]


def test_nothing_loaded_shows_upload_prompt():
    fig = create_treemap(None)

    assert len(fig.data) == 0
    assert _annotation_text(fig) == [NO_DATA_MESSAGE]


def test_empty_hierarchy_shows_filter_message():
    fig = create_treemap([])

    assert len(fig.data) == 0
    assert _annotation_text(fig) == [EMPTY_MESSAGE]


def test_treemap_points_follow_flattened_nodes(employees):
    hierarchy = aggregate(employees, employees)
    nodes = flatten_hierarchy(hierarchy)

    fig = create_treemap(hierarchy)
    trace = fig.data[0]

    assert isinstance(trace, go.Treemap)
    assert list(trace.ids) == [f"{node.kind}:{node.path}" for node in nodes]
    assert list(trace.values) == [node.count for node in nodes]
    assert list(trace.parents) == [
        "",
        "",
        "manager:carol",
        "manager:carol",
        "manager:bob",
        "manager:bob",
    ]
    assert trace.branchvalues == "total"


def test_palette_cycles(employees):
    hierarchy = aggregate(employees, employees)

    fig = create_treemap(hierarchy, colors=["#111111", "#222222"])

    assert list(fig.data[0].marker.colors) == [
        "#111111",  # carol
        "#222222",  # bob
        "#222222",  # carol/SF
        "#111111",  # carol/(Unknown Location)
        "#111111",  # bob/NYC
        "#222222",  # bob/SF
    ]


def test_manager_and_location_with_same_path_get_distinct_ids(mapping):
    rows = [make_row("x", "A", "B"), make_row("y", "A/B", "SF")]
    employees = project_rows(rows, mapping)
    hierarchy = aggregate(employees, employees)

    trace = create_treemap(hierarchy).data[0]

    # location "B" under "A" and manager "A/B" both have the path "A/B"
    assert len(set(trace.ids)) == len(trace.ids)
    assert list(trace.ids) == [
        "manager:A",
        "manager:A/B",
        "location:A/B",
        "location:A/B/SF",
    ]
    assert list(trace.parents) == ["", "", "manager:A", "manager:A/B"]
