from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

import networkx as nx

from sitechain.domain.phase import DependencyType
from sitechain.domain.schedule import ScheduleError
from sitechain.domain.task import ScheduleTask


def index_tasks(tasks: Iterable[ScheduleTask]) -> Dict[int, ScheduleTask]:
    """Map uid to task, rejecting duplicate uids."""
    by_uid: Dict[int, ScheduleTask] = {}
    for task in tasks:
        if task.uid in by_uid:
            raise ScheduleError(f"Duplicate task uid: {task.uid}")
        by_uid[task.uid] = task
    return by_uid


def build_dependency_graph(tasks: List[ScheduleTask], include_rollup: bool = False):
    """
    Build a directed graph of task dependencies.

    Edges run from predecessor uid to successor uid and carry the relation and
    lag. With include_rollup, every child of a summary also gets an edge to
    each task that depends on the summary, so a topological walk visits all
    of a phase's work before anything that waits for the phase.

    Raises:
        ScheduleError: If a predecessor uid does not exist or the dependencies
            contain a cycle
    """
    by_uid = index_tasks(tasks)
    G = nx.DiGraph()

    for task in tasks:
        G.add_node(task.uid, task=task)

    for task in tasks:
        for pred in task.predecessors:
            if pred.uid not in by_uid:
                raise ScheduleError(
                    f"Task {task.uid} references missing predecessor {pred.uid}"
                )
            G.add_edge(
                pred.uid,
                task.uid,
                kind="dependency",
                relation=pred.relation,
                lag=pred.lag_days,
            )

    if include_rollup:
        children: Dict[int, List[int]] = {}
        for task in tasks:
            if task.parent_uid is not None:
                children.setdefault(task.parent_uid, []).append(task.uid)

        for task in tasks:
            for pred in task.predecessors:
                if pred.uid not in children or task.parent_uid == pred.uid:
                    continue
                for child_uid in children[pred.uid]:
                    if child_uid != task.uid and not G.has_edge(child_uid, task.uid):
                        G.add_edge(child_uid, task.uid, kind="rollup")

    if not nx.is_directed_acyclic_graph(G):
        cycle = nx.find_cycle(G)
        path = " -> ".join(str(edge[0]) for edge in cycle)
        raise ScheduleError(f"Task dependencies contain a cycle: {path}")

    return G


def successor_map(tasks: Iterable[ScheduleTask]) -> Dict[int, List[Tuple[ScheduleTask, object]]]:
    """Map each uid to the (successor task, predecessor link) pairs that reference it."""
    successors: Dict[int, List[Tuple[ScheduleTask, object]]] = {}
    for task in tasks:
        for pred in task.predecessors:
            successors.setdefault(pred.uid, []).append((task, pred))
    return successors


def required_start(
    task: ScheduleTask, by_uid: Dict[int, ScheduleTask], calendar
) -> Optional[date]:
    """
    Earliest start allowed by a task's predecessors.

    Finish-to-Start: predecessor finish plus lag working days.
    Start-to-Start: predecessor start plus lag working days.
    Returns None for a task without predecessors.
    """
    earliest = None
    for pred in task.predecessors:
        other = by_uid.get(pred.uid)
        if other is None:
            raise ScheduleError(
                f"Task {task.uid} references missing predecessor {pred.uid}"
            )
        if pred.relation == DependencyType.START_TO_START:
            bound = calendar.add_working_days(other.start_date, pred.lag_days)
        else:
            bound = calendar.add_working_days(other.finish_date, pred.lag_days)
        if earliest is None or bound > earliest:
            earliest = bound
    return earliest


def violates_predecessors(
    task: ScheduleTask,
    by_uid: Dict[int, ScheduleTask],
    calendar,
    start_date: Optional[date] = None,
) -> bool:
    """Check whether task (optionally moved to start_date) starts too early."""
    earliest = required_start(task, by_uid, calendar)
    if earliest is None:
        return False
    return (start_date or task.start_date) < earliest


def enforce_dependencies(tasks: List[ScheduleTask], calendar) -> List[Tuple[ScheduleTask, date, date]]:
    """
    Push tasks forward until every predecessor constraint holds.

    Walks the dependency graph (with summary roll-up edges) in topological
    order, moving any task that starts before its predecessors allow while
    keeping its working-day duration. Summary finishes are rolled up from
    their children before anything that depends on them is checked.
    Tasks are never moved earlier.

    Returns:
        (task, old_start, old_finish) for every task that moved
    """
    by_uid = index_tasks(tasks)
    graph = build_dependency_graph(tasks, include_rollup=True)

    children: Dict[int, List[ScheduleTask]] = {}
    for task in tasks:
        if task.parent_uid is not None:
            children.setdefault(task.parent_uid, []).append(task)

    moved: List[Tuple[ScheduleTask, date, date]] = []
    for uid in nx.topological_sort(graph):
        task = by_uid[uid]
        for pred in task.predecessors:
            if pred.uid in children and task.parent_uid != pred.uid:
                by_uid[pred.uid].roll_up(children[pred.uid], calendar)

        earliest = required_start(task, by_uid, calendar)
        if earliest is not None and task.start_date < earliest:
            old_start, old_finish = task.start_date, task.finish_date
            if task.is_summary:
                task.start_date = earliest
                task.finish_date = max(task.finish_date, earliest)
            else:
                task.reschedule(earliest, calendar)
            moved.append((task, old_start, old_finish))

    for uid, kids in children.items():
        by_uid[uid].roll_up(kids, calendar)

    return moved
