from typing import Iterable, List, Optional

import networkx as nx

from sitechain.domain.task import ScheduleTask
from sitechain.utils.graph import build_dependency_graph


class FeedingChain:
    """A non-critical chain of tasks merging into the critical chain."""

    def __init__(self, merge_uid: int, tasks: List[ScheduleTask]):
        self.merge_uid = merge_uid
        self.tasks = list(tasks)

    @property
    def uids(self) -> List[int]:
        return [t.uid for t in self.tasks]

    @property
    def feeding_task(self) -> ScheduleTask:
        """The task whose finish feeds the merge point."""
        return self.tasks[-1]

    def summaries(self) -> List[ScheduleTask]:
        return [t for t in self.tasks if t.is_summary]

    def __repr__(self):
        return f"FeedingChain(merge={self.merge_uid}, tasks={self.uids})"


def trace_feeding_chain(
    task_uid: int, task_graph: nx.DiGraph, critical_uids: Iterable[int]
) -> List[ScheduleTask]:
    """
    Trace a feeding chain backwards from a non-critical task.

    At each step the latest-finishing predecessor that is neither critical
    nor already in the chain is taken; the first one encountered wins ties.

    Returns:
        The chain's tasks from its origin to task_uid
    """
    critical = set(critical_uids)
    chain = [task_graph.nodes[task_uid]["task"]]
    visited = {task_uid}

    current = task_uid
    while True:
        best: Optional[ScheduleTask] = None
        for pred_uid in task_graph.predecessors(current):
            if pred_uid in visited or pred_uid in critical:
                continue
            pred = task_graph.nodes[pred_uid]["task"]
            if best is None or pred.finish_date > best.finish_date:
                best = pred
        if best is None:
            break
        chain.insert(0, best)
        visited.add(best.uid)
        current = best.uid

    return chain


def identify_feeding_chains(
    tasks: List[ScheduleTask],
    critical_path: Iterable[int],
    task_graph: Optional[nx.DiGraph] = None,
) -> List[FeedingChain]:
    """
    Identify feeding chains - paths that merge into critical summary tasks.

    Args:
        tasks: All tasks of a schedule
        critical_path: uids on the critical path
        task_graph: Optional dependency graph (built if not provided)

    Returns:
        list: One FeedingChain per non-critical predecessor of each critical
        summary, in task order
    """
    critical = list(critical_path)
    critical_set = set(critical)
    if task_graph is None:
        task_graph = build_dependency_graph(tasks)

    chains: List[FeedingChain] = []
    for task in tasks:
        if not task.is_summary or task.uid not in critical_set:
            continue
        for pred_uid in task_graph.predecessors(task.uid):
            if pred_uid in critical_set:
                continue
            chain = trace_feeding_chain(pred_uid, task_graph, critical_set)
            chains.append(FeedingChain(task.uid, chain))

    return chains
