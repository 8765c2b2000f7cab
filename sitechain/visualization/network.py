import networkx as nx
import matplotlib.pyplot as plt
from matplotlib.lines import Line2D
from matplotlib.patches import Patch


def _layered_positions(G, order):
    """Place each phase one column after its deepest predecessor."""
    depth = {}
    for node in order:
        preds = list(G.predecessors(node))
        depth[node] = max((depth[p] + 1 for p in preds), default=0)

    rows = {}
    pos = {}
    for node in order:
        column = depth[node]
        row = rows.get(column, 0)
        rows[column] = row + 1
        pos[node] = (column, -row)
    return pos


def create_phase_network(phase_model, schedule=None, filename=None, show=True, layout="layered"):
    """
    Visualize the phase dependency network.

    Dependency edges are solid (Finish-to-Start) or dashed (Start-to-Start);
    non-overlap rules are dotted purple. When a schedule is given, only its
    phases are drawn and phases on its critical path are red.

    Args:
        phase_model: The PhaseModel to draw
        schedule: Optional ProjectSchedule to highlight
        filename: Optional filename to save the diagram
        show: Whether to display the diagram (default: True)
        layout: 'layered' (by dependency depth), 'spring', 'circular' or 'shell'

    Returns:
        The matplotlib figure
    """
    G = phase_model.graph
    critical_phases = set()
    if schedule is not None:
        active = {t.phase for t in schedule.summary_tasks()}
        G = G.subgraph(active).copy()
        critical = set(schedule.critical_path)
        critical_phases = {t.phase for t in schedule.summary_tasks() if t.uid in critical}

    order = [p for p in phase_model.sequencing_order if p in G]

    fig = plt.figure(figsize=(16, 9))

    if layout == "spring":
        pos = nx.spring_layout(G, seed=42)
    elif layout == "circular":
        pos = nx.circular_layout(G)
    elif layout == "shell":
        pos = nx.shell_layout(G)
    else:
        pos = _layered_positions(G, order)

    node_colors = ["red" if n in critical_phases else "skyblue" for n in G.nodes()]
    nx.draw_networkx_nodes(G, pos, node_color=node_colors, node_size=600, edgecolors="black")

    styles = {"FS": ("gray", "solid"), "SS": ("gray", "dashed"), "rule": ("purple", "dotted")}
    for key, (color, style) in styles.items():
        edges = []
        for u, v, data in G.edges(data=True):
            kind = data.get("kind")
            relation = data.get("relation")
            if key == "rule" and kind == "overlap":
                edges.append((u, v))
            elif kind == "dependency" and relation == key:
                edges.append((u, v))
        if edges:
            critical_edge = [
                "red" if u in critical_phases and v in critical_phases else color
                for u, v in edges
            ]
            nx.draw_networkx_edges(
                G,
                pos,
                edgelist=edges,
                edge_color=critical_edge,
                style=style,
                arrowsize=15,
                arrowstyle="-|>",
                connectionstyle="arc3,rad=0.1",
            )

    labels = {n: phase_model.display_name(n) for n in G.nodes()}
    bbox_props = dict(boxstyle="round,pad=0.3", fc="white", ec="gray", alpha=0.8)
    for node, label in labels.items():
        x, y = pos[node]
        plt.text(x, y - 0.25, label, horizontalalignment="center", bbox=bbox_props, fontsize=8)

    legend_elements = [
        Patch(facecolor="red", edgecolor="black", label="Critical Phase"),
        Patch(facecolor="skyblue", edgecolor="black", label="Phase"),
        Line2D([0], [0], color="gray", lw=1.5, label="Finish-to-Start"),
        Line2D([0], [0], color="gray", lw=1.5, linestyle="--", label="Start-to-Start"),
        Line2D([0], [0], color="purple", lw=1.5, linestyle=":", label="No Overlap"),
    ]
    plt.legend(handles=legend_elements, loc="best", fontsize=9)

    plt.title("Construction Phase Network", fontsize=14)
    plt.axis("off")
    plt.tight_layout()

    if filename:
        plt.savefig(filename, dpi=300, bbox_inches="tight")

    if show:
        plt.show()

    return fig
