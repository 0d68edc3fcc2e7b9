from typing import Optional, Sequence

import plotly.graph_objects as go

from .config import TREEMAP_HEIGHT, TREEMAP_PALETTE
from .pipeline import HierarchyNode, flatten_hierarchy


# ============================================================
# Configuration / constants
# ============================================================

HOVER_TEMPLATE = (
    "<b>%{label}</b><br>"
    "Type: %{customdata[0]}<br>"
    "Employees: %{value:,}<br>"
    "Path: %{customdata[1]}<extra></extra>"
)

EMPTY_MESSAGE = "No data to display. Try adjusting filters or uploading a new CSV."
NO_DATA_MESSAGE = "Upload a CSV file and apply column mappings to get started."


# ============================================================
# Helper functions
# ============================================================


def _build_palette(colors: Sequence[str] | None) -> list[str]:
    return list(colors) if colors else list(TREEMAP_PALETTE)


def _node_id(node: HierarchyNode) -> str:
    """Treemap id, unique across node kinds."""
    return f"{node.kind}:{node.path}"


def _node_colors(hierarchy: Sequence[HierarchyNode], palette: list[str]) -> list[str]:
    """
    Cycle through the palette: managers by position, each location offset
    by one from its manager so it stands out inside the parent tile.
    """
    manager_colors = [palette[i % len(palette)] for i in range(len(hierarchy))]
    location_colors = [
        palette[(i + j + 1) % len(palette)]
        for i, manager in enumerate(hierarchy)
        for j in range(len(manager.children))
    ]
    return manager_colors + location_colors


def _message_figure(message: str) -> go.Figure:
    fig = go.Figure()
    fig.add_annotation(
        text=message,
        x=0.5,
        y=0.5,
        xref="paper",
        yref="paper",
        showarrow=False,
        font=dict(size=16, color="#6b7280"),
    )
    fig.update_layout(
        height=TREEMAP_HEIGHT,
        xaxis=dict(visible=False),
        yaxis=dict(visible=False),
        plot_bgcolor="#ffffff",
    )
    return fig


# ============================================================
# Main plotting function
# ============================================================


def create_treemap(
    hierarchy: Optional[Sequence[HierarchyNode]],
    *,
    title: str = "Organization Treemap",
    colors: Sequence[str] | None = None,
) -> go.Figure:
    """
    Draw the manager -> location hierarchy as a treemap.

    Parameters
    ----------
    hierarchy : Sequence[HierarchyNode] | None
        Output of ``pipeline.aggregate``.  ``None`` means nothing has been
        loaded yet; an empty list means the filters excluded everyone.
    title : str, default "Organization Treemap"
        Figure title.
    colors : Sequence[str] | None, default None
        Palette to cycle through instead of ``TREEMAP_PALETTE``.

    Returns
    -------
    go.Figure
        A single-trace treemap.  Trace point ``i`` is node ``i`` of
        ``pipeline.flatten_hierarchy(hierarchy)``, which is how click events
        are resolved back to nodes.
    """
    if hierarchy is None:
        return _message_figure(NO_DATA_MESSAGE)
    if not hierarchy:
        return _message_figure(EMPTY_MESSAGE)

    nodes = flatten_hierarchy(hierarchy)
    # a manager called "A/B" and location "B" under manager "A" share a path
    parents = {
        _node_id(child): _node_id(manager)
        for manager in hierarchy
        for child in manager.children
    }

    fig = go.Figure(
        go.Treemap(
            ids=[_node_id(node) for node in nodes],
            labels=[node.name for node in nodes],
            parents=[parents.get(_node_id(node), "") for node in nodes],
            values=[node.count for node in nodes],
            customdata=[[node.kind.capitalize(), node.path] for node in nodes],
            branchvalues="total",
            textinfo="label+value",
            hovertemplate=HOVER_TEMPLATE,
            marker=dict(
                colors=_node_colors(hierarchy, _build_palette(colors)),
                line=dict(width=2, color="white"),
            ),
        )
    )
    fig.update_layout(
        title=title,
        height=TREEMAP_HEIGHT,
        margin=dict(t=50, l=10, r=10, b=10),
    )
    return fig
