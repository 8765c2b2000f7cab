import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

from sitechain.domain.phase import DependencyType
from sitechain.domain.schedule import ScheduleError
from sitechain.domain.task import ScheduleTask
from sitechain.utils.graph import index_tasks, successor_map

logger = logging.getLogger(__name__)


class TaskFloat:
    """Float of one task in working days."""

    __slots__ = ("uid", "total_float_days", "is_critical")

    def __init__(self, uid: int, total_float_days: int, is_critical: bool):
        self.uid = uid
        self.total_float_days = total_float_days
        self.is_critical = is_critical

    def __repr__(self):
        flag = " critical" if self.is_critical else ""
        return f"TaskFloat({self.uid}, {self.total_float_days}d{flag})"


class DependencyViolation:
    """A task that starts before one of its predecessors allows."""

    __slots__ = ("task_uid", "predecessor_uid", "relation", "required_start", "actual_start")

    def __init__(self, task_uid, predecessor_uid, relation, required_start, actual_start):
        self.task_uid = task_uid
        self.predecessor_uid = predecessor_uid
        self.relation = relation
        self.required_start = required_start
        self.actual_start = actual_start

    def __repr__(self):
        return (
            f"DependencyViolation(task={self.task_uid}, pred={self.predecessor_uid} "
            f"{self.relation.value}, required={self.required_start}, "
            f"actual={self.actual_start})"
        )


def _bottleneck_leaf(summary: ScheduleTask, leaves: List[ScheduleTask]) -> Optional[ScheduleTask]:
    """Latest-finishing leaf that hangs directly off a summary; first one wins ties."""
    best = None
    for leaf in leaves:
        if not leaf.depends_on(summary.uid):
            continue
        if best is None or leaf.finish_date > best.finish_date:
            best = leaf
    return best


def find_critical_path(tasks: List[ScheduleTask]) -> List[int]:
    """
    Find the chain of phases that determines the project end date.

    Starts from the summary task with the latest finish and walks backwards,
    always taking the latest-finishing predecessor summary (the first one
    encountered wins ties). Each summary on the path is followed by its
    bottleneck leaf: the latest-finishing non-milestone leaf among the tasks
    whose predecessors reference that summary.

    Args:
        tasks: All tasks of a schedule

    Returns:
        uids in execution order, each summary followed by its bottleneck leaf

    Raises:
        ScheduleError: If a task references a predecessor that does not exist
    """
    by_uid = index_tasks(tasks)
    summaries = [t for t in tasks if t.is_summary]
    leaves = [t for t in tasks if not t.is_summary and not t.is_milestone]
    if not summaries:
        return []

    current = None
    for task in summaries:
        if current is None or task.finish_date > current.finish_date:
            current = task

    chain: List[ScheduleTask] = []
    visited = set()
    while current is not None and current.uid not in visited:
        chain.append(current)
        visited.add(current.uid)

        best = None
        for pred in current.predecessors:
            other = by_uid.get(pred.uid)
            if other is None:
                raise ScheduleError(
                    f"Task {current.uid} references missing predecessor {pred.uid}"
                )
            if not other.is_summary:
                continue
            if best is None or other.finish_date > best.finish_date:
                best = other
        current = best

    path: List[int] = []
    for summary in reversed(chain):
        path.append(summary.uid)
        leaf = _bottleneck_leaf(summary, leaves)
        if leaf is not None:
            path.append(leaf.uid)

    logger.debug("Critical path: %s", path)
    return path


def compute_task_floats(
    tasks: List[ScheduleTask],
    calendar,
    critical_path: Optional[Iterable[int]] = None,
) -> Dict[int, TaskFloat]:
    """
    Compute the total float of every task in working days.

    A task's latest allowable finish is the tightest of:
    - each Finish-to-Start successor's start, less the lag
    - each Start-to-Start successor's start less the lag, plus the task's
      own duration
    - for a phase's work tasks, the phase summary finish when the phase is
      on the critical path or anything waits for the phase to finish
    - the project end, when nothing else applies

    Tasks on the critical path always report zero float.
    """
    by_uid = index_tasks(tasks)
    successors = successor_map(tasks)
    critical = set(critical_path or [])
    project_end = max((t.finish_date for t in tasks), default=None)

    def gates_finish(summary_uid: int) -> bool:
        return any(
            link.relation == DependencyType.FINISH_TO_START and succ.parent_uid != summary_uid
            for succ, link in successors.get(summary_uid, [])
        )

    floats: Dict[int, TaskFloat] = {}
    for task in tasks:
        latest: Optional[date] = None
        for succ, link in successors.get(task.uid, []):
            if succ.parent_uid == task.uid:
                continue
            if link.relation == DependencyType.START_TO_START:
                start_bound = calendar.subtract_working_days(succ.start_date, link.lag_days)
                bound = calendar.add_working_days(start_bound, task.duration_days)
            else:
                bound = calendar.subtract_working_days(succ.start_date, link.lag_days)
            if latest is None or bound < latest:
                latest = bound

        parent = by_uid.get(task.parent_uid) if task.parent_uid is not None else None
        if parent is not None and (parent.uid in critical or gates_finish(parent.uid)):
            if latest is None or parent.finish_date < latest:
                latest = parent.finish_date

        if latest is None:
            latest = project_end

        slack = max(0, calendar.working_days_between(task.finish_date, latest))
        if task.uid in critical:
            floats[task.uid] = TaskFloat(task.uid, 0, True)
        else:
            floats[task.uid] = TaskFloat(task.uid, slack, slack == 0)

    return floats


def find_dependency_violations(tasks: List[ScheduleTask], calendar) -> List[DependencyViolation]:
    """List every predecessor constraint that a task's start breaks."""
    by_uid = index_tasks(tasks)
    violations: List[DependencyViolation] = []
    for task in tasks:
        for pred in task.predecessors:
            other = by_uid.get(pred.uid)
            if other is None:
                raise ScheduleError(
                    f"Task {task.uid} references missing predecessor {pred.uid}"
                )
            if pred.relation == DependencyType.START_TO_START:
                required = calendar.add_working_days(other.start_date, pred.lag_days)
            else:
                required = calendar.add_working_days(other.finish_date, pred.lag_days)
            if task.start_date < required:
                violations.append(
                    DependencyViolation(task.uid, pred.uid, pred.relation, required, task.start_date)
                )
    return violations
