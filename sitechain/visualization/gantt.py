import matplotlib.pyplot as plt
import matplotlib.dates as mdates
import numpy as np
from matplotlib.patches import Patch

from sitechain.domain.buffer import BufferZone


ZONE_COLORS = {
    BufferZone.GREEN: "green",
    BufferZone.YELLOW: "gold",
    BufferZone.RED: "red",
}


def chart_buffers(source):
    """Accept a schedule, critical chain data or a plain list of buffers."""
    if hasattr(source, "critical_chain"):
        source = source.critical_chain
    if source is None:
        return []
    if hasattr(source, "buffers"):
        return list(source.buffers)
    return list(source)


def create_gantt_chart(schedule, filename=None, show=True, include_leaves=True):
    """
    Create a Gantt chart of a project schedule.

    Phase summaries are drawn as dark bars, work tasks as light bars and
    milestones as diamonds. Tasks on the critical path are red. When the
    schedule carries critical chain data its buffers are added at the bottom.

    Args:
        schedule: The ProjectSchedule to draw
        filename: Optional filename to save the chart
        show: Whether to display the chart (default: True)
        include_leaves: Draw work tasks as well as phase summaries

    Returns:
        The matplotlib figure
    """
    critical = set(schedule.critical_path)
    rows = [
        t
        for t in schedule.tasks
        if t.is_summary or t.is_milestone or t.is_procurement or include_leaves
    ]
    buffers = chart_buffers(schedule)

    fig, ax = plt.subplots(figsize=(14, max(4, 0.3 * (len(rows) + len(buffers)) + 2)))

    labels = []
    for i, task in enumerate(rows):
        start = mdates.date2num(task.start_date)
        width = max(1, mdates.date2num(task.finish_date) - start)

        if task.is_milestone:
            ax.scatter(start, i, marker="D", s=60, color="black", zorder=5)
        else:
            if task.uid in critical:
                color = "red"
            elif task.is_procurement:
                color = "gray"
            elif task.is_summary:
                color = "navy"
            else:
                color = "steelblue"
            alpha = 0.9 if task.is_summary else 0.6
            ax.barh(i, width, left=start, height=0.6, color=color, alpha=alpha)

        indent = "" if task.is_summary or task.is_milestone else "  "
        labels.append(f"{indent}{task.uid}: {task.name}")

    for j, buffer in enumerate(buffers):
        row = len(rows) + j
        start = mdates.date2num(buffer.start_date)
        width = max(1, mdates.date2num(buffer.finish_date) - start)
        consumed = width * buffer.consumed_percent / 100
        base = "green" if buffer.buffer_type == "project" else "yellow"

        if consumed > 0:
            ax.barh(row, consumed, left=start, height=0.6, color="red", alpha=0.6, hatch="///")
        ax.barh(row, width - consumed, left=start + consumed, height=0.6, color=base, alpha=0.6)
        labels.append(f"{buffer.name} ({buffer.duration_days}d)")

    ax.set_yticks(np.arange(len(labels)))
    ax.set_yticklabels(labels, fontsize=8)
    ax.invert_yaxis()

    ax.xaxis_date()
    ax.xaxis.set_major_formatter(mdates.DateFormatter("%Y-%m-%d"))
    fig.autofmt_xdate()

    ax.axvline(mdates.date2num(schedule.finish_date), color="black", linestyle="--", linewidth=1)
    ax.set_title(
        f"{schedule.project_name}: {schedule.start_date.isoformat()} to "
        f"{schedule.finish_date.isoformat()} ({schedule.total_duration_days} working days)"
    )
    ax.grid(axis="x", alpha=0.3)

    legend_elements = [
        Patch(facecolor="red", alpha=0.6, label="Critical Path"),
        Patch(facecolor="navy", alpha=0.9, label="Phase"),
        Patch(facecolor="steelblue", alpha=0.6, label="Work Task"),
        Patch(facecolor="gray", alpha=0.6, label="Procurement"),
    ]
    if buffers:
        legend_elements += [
            Patch(facecolor="green", alpha=0.6, label="Project Buffer"),
            Patch(facecolor="yellow", alpha=0.6, label="Feeding Buffer"),
            Patch(facecolor="red", alpha=0.6, hatch="///", label="Consumed Buffer"),
        ]
    ax.legend(handles=legend_elements, loc="upper right", fontsize=8)

    plt.tight_layout()

    if filename:
        plt.savefig(filename, dpi=300, bbox_inches="tight")

    if show:
        plt.show()

    return fig


def create_buffer_chart(source, filename=None, show=True):
    """
    Create a bar chart of buffer consumption.

    Args:
        source: A ProjectSchedule, CriticalChainData or list of buffers
        filename: Optional filename to save the chart
        show: Whether to display the chart (default: True)

    Returns:
        The matplotlib figure, or None when there are no buffers
    """
    buffers = chart_buffers(source)
    if not buffers:
        return None

    fig, ax = plt.subplots(figsize=(10, max(3, 0.6 * len(buffers) + 1.5)))

    positions = np.arange(len(buffers))
    consumption = np.array([b.consumed_percent for b in buffers])
    colors = [ZONE_COLORS[b.zone] for b in buffers]

    ax.barh(positions, consumption, color=colors, alpha=0.7, edgecolor="black")
    for pos, buffer in zip(positions, buffers):
        ax.text(
            buffer.consumed_percent + 2,
            pos,
            f"{buffer.consumed_percent:.1f}% of {buffer.duration_days}d",
            va="center",
        )

    ax.set_yticks(positions)
    ax.set_yticklabels([f"{b.name} ({b.buffer_type})" for b in buffers])
    ax.set_xlim(0, 115)
    ax.set_title("Buffer Consumption")
    ax.set_xlabel("Consumption Percentage")

    legend_elements = [
        Patch(facecolor=ZONE_COLORS[zone], alpha=0.7, label=f"{zone.value.title()} Zone")
        for zone in BufferZone
    ]
    ax.legend(handles=legend_elements, loc="lower right")

    plt.tight_layout()

    if filename:
        plt.savefig(filename, dpi=300, bbox_inches="tight")

    if show:
        plt.show()

    return fig
