"""
Graph visualization component for Streamlit UI.

Draws the node/edge projection of a stage artifact (root-cause chain,
competitive landscape, customer journey, ...) using Plotly.
"""

from typing import Optional, List, Dict, Any
import streamlit as st

import networkx as nx
import plotly.graph_objects as go


class GraphVisualizer:
    """
    Stage diagram visualization using Plotly and NetworkX.

    Features:
    - Interactive node hover information
    - Color-coded node types
    - Edge labels at edge midpoints
    - Multiple layout algorithms
    """

    # Node type colors, grouped by the diagram they appear in
    NODE_COLORS = {
        # hubs
        "center": "#6C5CE7",
        "market": "#6C5CE7",
        "group": "#A29BFE",
        # market research
        "competitor": "#FF6B6B",
        "trend": "#4ECDC4",
        "confidence": "#FFE66D",
        # root cause
        "symptom": "#FF7675",
        "why": "#FDCB6E",
        "root": "#D63031",
        # existing solutions
        "solution": "#0984E3",
        "strength": "#00B894",
        "weakness": "#E17055",
        "gap": "#E84393",
        # use case
        "start": "#00B894",
        "step": "#74B9FF",
        "outcome": "#95E1D3",
        "end": "#2D3436",
        # requirements / prioritization
        "requirement": "#81ECEC",
        "feature": "#FD79A8",
        "metric": "#DFE6E9",
        "unknown": "#B2BEC3",
    }

    NODE_SIZE_DEFAULT = 28
    HUB_TYPES = ("center", "market", "symptom", "start")
    EDGE_WIDTH_DEFAULT = 2

    def __init__(self):
        """Initialize graph visualizer."""
        self.layout_algorithms = {
            "Spring": nx.spring_layout,
            "Circular": nx.circular_layout,
            "Shell": nx.shell_layout,
            "Spectral": nx.spectral_layout,
        }

    def render_controls(self, key: str = "graph") -> Dict[str, Any]:
        """
        Render graph controls in an expander.

        Returns:
            Dict with selected options:
                - layout: str (layout algorithm)
                - show_labels: bool
                - show_edge_labels: bool
        """
        with st.expander("Diagram options"):
            layout = st.selectbox(
                "Layout Algorithm",
                options=list(self.layout_algorithms.keys()),
                index=0,
                key=f"{key}_layout",
            )
            show_labels = st.checkbox("Show Node Labels", value=True, key=f"{key}_labels")
            show_edge_labels = st.checkbox(
                "Show Edge Labels", value=False, key=f"{key}_edge_labels"
            )

        return {
            "layout": layout,
            "show_labels": show_labels,
            "show_edge_labels": show_edge_labels,
        }

    def build_graph(self, graph_data: Dict[str, Any]) -> nx.DiGraph:
        """NetworkX graph from the API projection; dangling edges are dropped."""
        G = nx.DiGraph()
        for node in graph_data.get("nodes", []):
            G.add_node(node["id"], **node)

        for edge in graph_data.get("edges", []):
            if edge["source"] in G and edge["target"] in G:
                G.add_edge(edge["source"], edge["target"], label=edge.get("label", ""))
        return G

    def render(
        self,
        graph_data: Optional[Dict[str, Any]],
        controls: Dict[str, Any],
        title: str = "",
    ) -> Optional[go.Figure]:
        """
        Render a stage diagram.

        Args:
            graph_data: Projection from the API with 'nodes' and 'edges'
            controls: Options from render_controls()
            title: Figure title

        Returns:
            Plotly figure object, or None if no data
        """
        if not graph_data or not graph_data.get("nodes"):
            return None

        G = self.build_graph(graph_data)
        layout_func = self.layout_algorithms[controls["layout"]]
        # Spectral layout needs more than two nodes
        pos = layout_func(G) if G.number_of_nodes() > 2 else nx.circular_layout(G)

        fig = self._create_2d_plot(G, pos, controls)
        fig.update_layout(
            title=title or f"{G.number_of_nodes()} nodes, {G.number_of_edges()} edges",
            showlegend=False,
            hovermode="closest",
            margin=dict(b=0, l=0, r=0, t=40),
            height=500,
            xaxis=dict(showgrid=False, zeroline=False, showticklabels=False),
            yaxis=dict(showgrid=False, zeroline=False, showticklabels=False),
        )
        return fig

    def _create_2d_plot(
        self,
        G: nx.DiGraph,
        pos: Dict[str, tuple],
        controls: Dict,
    ) -> go.Figure:
        """Create 2D plotly figure."""
        fig = go.Figure()

        edge_x: List[Optional[float]] = []
        edge_y: List[Optional[float]] = []
        for source, target in G.edges():
            x0, y0 = pos[source]
            x1, y1 = pos[target]
            edge_x.extend([x0, x1, None])
            edge_y.extend([y0, y1, None])

        fig.add_trace(
            go.Scatter(
                x=edge_x,
                y=edge_y,
                line=dict(width=self.EDGE_WIDTH_DEFAULT, color="#888"),
                hoverinfo="none",
                mode="lines",
                name="edges",
            )
        )

        if controls.get("show_edge_labels"):
            for source, target, data in G.edges(data=True):
                if not data.get("label"):
                    continue
                (x0, y0), (x1, y1) = pos[source], pos[target]
                fig.add_annotation(
                    x=(x0 + x1) / 2,
                    y=(y0 + y1) / 2,
                    text=data["label"],
                    showarrow=False,
                    font=dict(size=10, color="#636E72"),
                )

        node_x = []
        node_y = []
        node_text = []
        node_colors = []
        node_sizes = []
        hover_texts = []

        for node_id, node in G.nodes(data=True):
            x, y = pos[node_id]
            node_x.append(x)
            node_y.append(y)

            node_type = node.get("type", "unknown")
            node_colors.append(self.NODE_COLORS.get(node_type, self.NODE_COLORS["unknown"]))
            scale = 1.5 if node_type in self.HUB_TYPES else 1.0
            node_sizes.append(self.NODE_SIZE_DEFAULT * scale)

            label = node.get("label", node_id)
            node_text.append(label)
            hover_texts.append(f"<b>{label}</b><br>Type: {node_type}")

        fig.add_trace(
            go.Scatter(
                x=node_x,
                y=node_y,
                mode="markers+text" if controls["show_labels"] else "markers",
                marker=dict(
                    size=node_sizes,
                    color=node_colors,
                    line=dict(width=2, color="white"),
                ),
                text=node_text if controls["show_labels"] else None,
                textposition="bottom center",
                hovertext=hover_texts,
                hoverinfo="text",
                name="nodes",
            )
        )

        return fig


def render_graph_stats(graph_data: Dict[str, Any]):
    """
    Render node counts by type below a diagram.

    Args:
        graph_data: Graph projection from API
    """
    nodes = graph_data.get("nodes", [])
    edges = graph_data.get("edges", [])

    node_types: Dict[str, int] = {}
    for node in nodes:
        node_type = node.get("type", "unknown")
        node_types[node_type] = node_types.get(node_type, 0) + 1

    col1, col2 = st.columns(2)
    col1.metric("Nodes", len(nodes))
    col2.metric("Edges", len(edges))

    if node_types:
        st.caption(
            " · ".join(f"{node_type}: {count}" for node_type, count in sorted(node_types.items()))
        )
