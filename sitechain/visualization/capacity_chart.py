import matplotlib.pyplot as plt
import matplotlib.dates as mdates
import numpy as np
from matplotlib.lines import Line2D
from matplotlib.patches import Patch


def _series(timeline):
    days = np.array([mdates.date2num(p.day) for p in timeline])
    workers = np.array([p.workers for p in timeline], dtype=float)
    return days, workers


def create_capacity_chart(optimized, filename=None, show=True):
    """
    Plot the daily worker histogram before and after capacity optimization.

    Days above the site capacity are drawn in red. The optimized histogram is
    overlaid as a step line.

    Args:
        optimized: The OptimizedSchedule returned by the capacity optimizer
        filename: Optional filename to save the chart
        show: Whether to display the chart (default: True)

    Returns:
        The matplotlib figure
    """
    fig, ax = plt.subplots(figsize=(14, 6))

    before = optimized.timeline
    after = optimized.optimized_timeline
    capacity = None

    if before:
        days, workers = _series(before)
        capacity = before[0].capacity
        colors = np.where(workers > capacity, "red", "steelblue")
        ax.bar(days, workers, width=0.8, color=colors, alpha=0.6)

    if after:
        days, workers = _series(after)
        capacity = after[0].capacity
        ax.step(days, workers, where="mid", color="darkgreen", linewidth=1.5)

    if capacity is not None:
        ax.axhline(capacity, color="black", linestyle="--", linewidth=1)

    ax.xaxis_date()
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%Y-%m-%d"))
    fig.autofmt_xdate()

    ax.set_ylabel("Workers on site")
    ax.set_title(
        f"Site Capacity: {len(optimized.bottlenecks)} bottlenecks, "
        f"{len(optimized.remaining_bottlenecks)} remaining, "
        f"efficiency gain {optimized.efficiency_gain:.1f}%"
    )
    ax.grid(axis="y", alpha=0.3)

    legend_elements = [
        Patch(facecolor="steelblue", alpha=0.6, label="Workers (original)"),
        Patch(facecolor="red", alpha=0.6, label="Over capacity"),
        Line2D([0], [0], color="darkgreen", lw=1.5, label="Workers (optimized)"),
        Line2D([0], [0], color="black", lw=1, linestyle="--", label="Site capacity"),
    ]
    ax.legend(handles=legend_elements, loc="upper right")

    plt.tight_layout()

    if filename:
        plt.savefig(filename, dpi=300, bbox_inches="tight")

    if show:
        plt.show()

    return fig
