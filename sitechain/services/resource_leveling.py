import logging
from datetime import date
from math import ceil, floor
from typing import Dict, Iterable, List, Optional, Tuple

from sitechain.domain.calendar import WorkingCalendar
from sitechain.domain.phase import PhaseOverlapRule
from sitechain.domain.task import Predecessor, ResourceKind, ScheduleTask, TaskResource
from sitechain.services.critical_path import compute_task_floats
from sitechain.services.sequencer import daily_workers
from sitechain.utils.graph import enforce_dependencies, index_tasks, violates_predecessors

logger = logging.getLogger(__name__)


class ScheduleAdjustment:
    """A date change made to one task by the capacity optimizer."""

    __slots__ = (
        "task_uid",
        "task_name",
        "old_start",
        "old_finish",
        "new_start",
        "new_finish",
        "reason",
    )

    def __init__(
        self,
        task_uid: int,
        task_name: str,
        old_start: date,
        old_finish: date,
        new_start: date,
        new_finish: date,
        reason: str,
    ):
        self.task_uid = task_uid
        self.task_name = task_name
        self.old_start = old_start
        self.old_finish = old_finish
        self.new_start = new_start
        self.new_finish = new_finish
        self.reason = reason

    @classmethod
    def for_task(cls, task: ScheduleTask, old_start: date, old_finish: date, reason: str):
        return cls(task.uid, task.name, old_start, old_finish, task.start_date, task.finish_date, reason)

    def to_dict(self):
        return {
            "task_uid": self.task_uid,
            "task_name": self.task_name,
            "old_start": self.old_start.isoformat(),
            "old_finish": self.old_finish.isoformat(),
            "new_start": self.new_start.isoformat(),
            "new_finish": self.new_finish.isoformat(),
            "reason": self.reason,
        }

    def __repr__(self):
        return (
            f"ScheduleAdjustment({self.task_uid}, {self.old_start} -> {self.new_start}, "
            f"{self.reason!r})"
        )


def find_worst_overload_day(histogram: Dict[date, float], capacity: float) -> Optional[date]:
    """Day with the largest head count above capacity; the earliest day wins ties."""
    worst = None
    worst_overload = 0
    for day in sorted(histogram):
        overload = histogram[day] - capacity
        if overload > worst_overload:
            worst, worst_overload = day, overload
    return worst


def _repair(
    tasks: List[ScheduleTask], calendar: WorkingCalendar, reason: str
) -> List[ScheduleAdjustment]:
    return [
        ScheduleAdjustment.for_task(task, old_start, old_finish, reason)
        for task, old_start, old_finish in enforce_dependencies(tasks, calendar)
        if not task.is_summary
    ]


def _roll_up_summaries(tasks: List[ScheduleTask], calendar: WorkingCalendar) -> None:
    children: Dict[int, List[ScheduleTask]] = {}
    for task in tasks:
        if task.parent_uid is not None:
            children.setdefault(task.parent_uid, []).append(task)
    for task in tasks:
        if task.is_summary and task.uid in children:
            task.roll_up(children[task.uid], calendar)


def level_resources(
    tasks: List[ScheduleTask],
    critical_path: Iterable[int],
    calendar: WorkingCalendar,
    max_workers: float,
    max_iterations: int = 200,
) -> Tuple[List[ScheduleTask], List[ScheduleAdjustment]]:
    """
    Flatten the daily labor histogram by delaying non-critical work.

    Each step finds the worst overloaded day, takes the work tasks active
    that day which are off the critical path and have at least one day of
    float, and delays the one with the most float by a single working day.
    Float is recomputed after every move. Leveling stops when no overload
    remains, no task can move, or max_iterations is reached.

    Args:
        tasks: Schedule tasks (not modified)
        critical_path: uids that must never move
        calendar: Working calendar
        max_workers: Daily head count the site can hold
        max_iterations: Upper bound on single-day moves

    Returns:
        tuple: (leveled task copies, adjustments in the order they were made)
    """
    current = [t.copy() for t in tasks]
    by_uid = index_tasks(current)
    critical = set(critical_path)
    adjustments: List[ScheduleAdjustment] = []

    floats = compute_task_floats(current, calendar, critical)
    iterations = 0
    while iterations < max_iterations:
        worst_day = find_worst_overload_day(daily_workers(current, calendar), max_workers)
        if worst_day is None:
            break

        candidates = [
            t
            for t in current
            if t.is_work
            and t.uid not in critical
            and t.is_active_on(worst_day)
            and not floats[t.uid].is_critical
            and floats[t.uid].total_float_days >= 1
        ]
        candidates.sort(key=lambda t: floats[t.uid].total_float_days, reverse=True)

        moved = None
        for task in candidates:
            new_start = calendar.add_working_days(task.start_date, 1)
            if not violates_predecessors(task, by_uid, calendar, new_start):
                moved = task
                break
        if moved is None:
            logger.info("Leveling stopped: nothing can move off %s", worst_day)
            break

        old_start, old_finish = moved.start_date, moved.finish_date
        moved.reschedule(new_start, calendar)
        adjustments.append(
            ScheduleAdjustment.for_task(
                moved,
                old_start,
                old_finish,
                f"Resource leveling: delayed 1 day to reduce the peak on {worst_day.isoformat()}",
            )
        )
        floats = compute_task_floats(current, calendar, critical)
        iterations += 1

    if iterations >= max_iterations > 0:
        logger.warning("Leveling reached the iteration cap of %d", max_iterations)

    _roll_up_summaries(current, calendar)
    logger.debug("Leveling moved %d tasks in %d steps", len({a.task_uid for a in adjustments}), iterations)
    return current, adjustments


def _split_resource(resource: TaskResource, ratio: float, first: bool) -> TaskResource:
    if resource.is_crew:
        units = ceil(resource.units / 2) if first else floor(resource.units / 2)
    elif resource.kind == ResourceKind.MATERIAL:
        first_units = resource.units * ratio
        units = first_units if first else resource.units - first_units
    else:
        units = resource.units

    first_hours = resource.hours * ratio
    hours = first_hours if first else resource.hours - first_hours
    return TaskResource(resource.name, resource.kind, units, resource.rate, hours)


def split_large_tasks(
    tasks: List[ScheduleTask], calendar: WorkingCalendar, threshold: int = 8
) -> Tuple[List[ScheduleTask], List[ScheduleAdjustment]]:
    """
    Split crowded work tasks into two sequential halves with half the crew.

    Part 1 keeps the task's uid and takes ceil(d/2) days; part 2 gets a new
    uid, takes the remaining days (at least one) and follows part 1 with a
    Finish-to-Start link. Hours and costs are divided by the day ratio so the
    two halves add up to the original. Tasks that depended on the original
    are remapped to part 2, then successors are pushed out as needed.

    Returns:
        tuple: (task copies with the splits applied, adjustments)
    """
    result: List[ScheduleTask] = []
    adjustments: List[ScheduleAdjustment] = []
    next_uid = max((t.uid for t in tasks), default=0) + 1
    split_map: Dict[int, int] = {}

    for original in tasks:
        if not original.is_work or original.worker_count <= threshold:
            result.append(original.copy())
            continue

        part1_days = ceil(original.duration_days / 2)
        part2_days = max(1, original.duration_days - part1_days)
        ratio = part1_days / (part1_days + part2_days)

        part1 = original.copy()
        part1.name = f"{original.name} (Part 1)"
        part1.duration_days = part1_days
        part1.finish_date = calendar.add_working_days(original.start_date, part1_days)
        part1.duration_hours = original.duration_hours * ratio
        part1.cost = original.cost * ratio
        part1.material_cost = original.material_cost * ratio
        part1.resources = [_split_resource(r, ratio, True) for r in original.resources]

        part2 = original.copy()
        part2.uid = next_uid
        part2.name = f"{original.name} (Part 2)"
        part2.start_date = part1.finish_date
        part2.duration_days = part2_days
        part2.finish_date = calendar.add_working_days(part2.start_date, part2_days)
        part2.duration_hours = original.duration_hours - part1.duration_hours
        part2.cost = original.cost - part1.cost
        part2.material_cost = original.material_cost - part1.material_cost
        part2.resources = [_split_resource(r, ratio, False) for r in original.resources]
        part2.predecessors = list(original.predecessors) + [Predecessor(original.uid)]

        split_map[original.uid] = next_uid
        next_uid += 1
        result.extend([part1, part2])
        adjustments.append(
            ScheduleAdjustment.for_task(
                part1,
                original.start_date,
                original.finish_date,
                f"Split: {original.worker_count:g} workers exceed {threshold}, "
                f"second half is task {part2.uid}",
            )
        )
        logger.debug("Split task %d into %d and %d", original.uid, part1.uid, part2.uid)

    if not split_map:
        return result, adjustments

    for task in result:
        if task.is_summary:
            continue
        task.predecessors = [
            Predecessor(split_map[p.uid], p.relation, p.lag_days)
            if p.uid in split_map and split_map[p.uid] != task.uid
            else p
            for p in task.predecessors
        ]

    adjustments.extend(_repair(result, calendar, "Dependency repair after splitting"))
    logger.info("Split %d crowded tasks", len(split_map))
    return result, adjustments


def sequence_phase_conflicts(
    tasks: List[ScheduleTask], rules: Iterable[PhaseOverlapRule], calendar: WorkingCalendar
) -> Tuple[List[ScheduleTask], List[ScheduleAdjustment]]:
    """
    Push the second phase of every non-overlap rule past the first.

    The work of phase_b may not start before the latest finish of phase_a's
    work plus the rule's gap. Moved tasks keep their working-day durations;
    their successors and phase summaries are repaired afterwards.

    Returns:
        tuple: (adjusted task copies, adjustments)
    """
    current = [t.copy() for t in tasks]
    adjustments: List[ScheduleAdjustment] = []

    for rule in rules:
        if rule.can_overlap:
            continue
        first = [t for t in current if t.phase == rule.phase_a and t.is_work]
        second = [t for t in current if t.phase == rule.phase_b and t.is_work]
        if not first or not second:
            continue

        latest_finish = max(t.finish_date for t in first)
        required = calendar.next_working_day(
            calendar.add_working_days(latest_finish, rule.min_gap_days)
        )

        moved = False
        for task in second:
            if task.start_date < required:
                old_start, old_finish = task.start_date, task.finish_date
                task.reschedule(required, calendar)
                adjustments.append(
                    ScheduleAdjustment.for_task(
                        task, old_start, old_finish, f"Phase sequencing: {rule.reason}"
                    )
                )
                moved = True

        if moved:
            logger.info(
                "Moved %s after %s (%s)", rule.phase_b.value, rule.phase_a.value, rule.reason
            )
            adjustments.extend(
                _repair(current, calendar, f"Dependency repair after sequencing {rule.phase_b.value}")
            )

    return current, adjustments
