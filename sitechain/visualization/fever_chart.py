import matplotlib.pyplot as plt
import numpy as np
from matplotlib.lines import Line2D

from sitechain.domain.buffer import RED_THRESHOLD, YELLOW_THRESHOLD, BufferZone
from sitechain.visualization.gantt import ZONE_COLORS, chart_buffers


def generate_fever_chart_data(source):
    """
    Generate fever chart data without creating the visualization.

    Args:
        source: A ProjectSchedule, CriticalChainData or list of buffers

    Returns:
        dict: Fever chart series keyed by buffer uid
    """
    return {buffer.uid: buffer.get_fever_chart_data() for buffer in chart_buffers(source)}


def create_fever_chart(source, filename=None, show=True, project_name=None):
    """
    Plot buffer consumption against chain completion on green/yellow/red zones.

    A buffer is green while it consumes less than a third of its size per unit
    of chain completion, yellow below two thirds and red above.

    Args:
        source: A ProjectSchedule, CriticalChainData or list of buffers
        filename: Optional filename to save the chart
        show: Whether to display the chart (default: True)
        project_name: Optional project name for the chart title

    Returns:
        The matplotlib figure, or None when there are no buffers
    """
    data = generate_fever_chart_data(source)
    if not data:
        return None
    if project_name is None:
        project_name = getattr(source, "project_name", None)

    fig, ax = plt.subplots(figsize=(10, 8))

    completion = np.linspace(0, 100, 101)
    # Zone boundaries use the same floor of 1% completion as the classifier
    scale = np.maximum(1.0, completion)
    yellow = np.minimum(100, scale * YELLOW_THRESHOLD)
    red = np.minimum(100, scale * RED_THRESHOLD)

    ax.fill_between(completion, 0, yellow, color="green", alpha=0.2)
    ax.fill_between(completion, yellow, red, color="yellow", alpha=0.2)
    ax.fill_between(completion, red, 100, color="red", alpha=0.2)

    markers = ["o", "s", "^", "D", "v", "<", ">", "p", "*", "h"]
    legend_elements = []
    max_consumption = 0.0

    for i, series in enumerate(data.values()):
        marker = markers[i % len(markers)]
        color = "crimson" if series["buffer_type"] == "project" else "darkorange"
        x = series["completion"]
        y = series["consumption"]
        max_consumption = max(max_consumption, max(y, default=0))

        ax.plot(x, y, color=color, marker=marker, linewidth=2, markersize=7, alpha=0.7)
        ax.scatter(
            [x[-1]],
            [y[-1]],
            s=100,
            color=ZONE_COLORS[BufferZone(series["zone"])],
            edgecolor="black",
            zorder=10,
            marker=marker,
        )
        ax.annotate(
            f"{series['name']}\n{x[-1]:.0f}%, {y[-1]:.0f}%",
            (x[-1], y[-1]),
            xytext=(10, 10),
            textcoords="offset points",
            fontsize=8,
            bbox=dict(boxstyle="round,pad=0.3", fc="white", ec=color, alpha=0.8),
        )
        legend_elements.append(
            Line2D([0], [0], color=color, marker=marker, markersize=7, label=series["name"])
        )

    ax.text(70, 5, "SAFE", fontsize=12, color="green", weight="bold")
    ax.text(70, 35, "WARNING", fontsize=12, color="goldenrod", weight="bold")
    ax.text(20, 80, "CRITICAL", fontsize=12, color="red", weight="bold")

    ax.legend(handles=legend_elements, loc="upper left", fontsize=9)
    ax.set_xlabel("Chain Completion (%)", fontsize=12)
    ax.set_ylabel("Buffer Consumption (%)", fontsize=12)
    title = f"Fever Chart for {project_name}" if project_name else "CCPM Fever Chart"
    ax.set_title(title, fontsize=14, weight="bold")
    ax.set_xlim(0, 105)
    ax.set_ylim(0, max(100, max_consumption * 1.1))
    ax.grid(True, linestyle="--", alpha=0.7)

    plt.tight_layout()

    if filename:
        plt.savefig(filename, dpi=300, bbox_inches="tight")

    if show:
        plt.show()

    return fig
