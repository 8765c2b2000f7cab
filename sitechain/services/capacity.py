import logging
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sitechain.config import CapacityConstraints
from sitechain.domain.calendar import WorkingCalendar
from sitechain.domain.phase import Phase, PhaseModel, PhaseOverlapRule
from sitechain.domain.schedule import ProjectSchedule
from sitechain.domain.task import ScheduleTask
from sitechain.services.resource_leveling import (
    ScheduleAdjustment,
    level_resources,
    sequence_phase_conflicts,
    split_large_tasks,
)

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class BottleneckKind(str, Enum):
    CAPACITY = "capacity"
    EQUIPMENT = "equipment"
    PHASE_CONFLICT = "phase_conflict"


class CapacityPoint:
    """Site occupation on one working day."""

    def __init__(
        self,
        day: date,
        workers: float,
        capacity: int,
        phase_workers: Dict[Phase, float],
        phase_caps: Dict[Phase, Optional[int]],
        equipment: Dict[str, Tuple[int, int]],
    ):
        self.day = day
        self.workers = workers
        self.capacity = capacity
        self.phase_workers = phase_workers
        self.phase_caps = phase_caps
        # equipment name -> (phases using it, simultaneous limit)
        self.equipment = equipment

    @property
    def utilization_percent(self) -> float:
        return self.workers / self.capacity * 100

    @property
    def is_bottleneck(self) -> bool:
        return self.workers > self.capacity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "workers": self.workers,
            "capacity": self.capacity,
            "utilization_percent": round(self.utilization_percent, 1),
            "phases": [
                {"phase": p.value, "workers": w, "cap": self.phase_caps.get(p)}
                for p, w in self.phase_workers.items()
            ],
            "equipment": [
                {"name": name, "count": count, "max": limit}
                for name, (count, limit) in self.equipment.items()
            ],
            "is_bottleneck": self.is_bottleneck,
        }

    def __repr__(self):
        return f"CapacityPoint({self.day.isoformat()}, {self.workers:g}/{self.capacity})"


class Bottleneck:
    """A capacity, equipment or phase-sequencing problem found on a day."""

    def __init__(
        self,
        day: date,
        kind: BottleneckKind,
        overload: float,
        phases: Sequence[Phase],
        reason: str,
        severity: Severity,
        task_uids: Optional[Iterable[int]] = None,
    ):
        self.day = day
        self.kind = BottleneckKind(kind)
        self.overload = overload
        self.phases = list(phases)
        self.reason = reason
        self.severity = Severity(severity)
        self.task_uids = list(task_uids or [])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "kind": self.kind.value,
            "overload": self.overload,
            "phases": [p.value for p in self.phases],
            "reason": self.reason,
            "severity": self.severity.value,
            "task_uids": list(self.task_uids),
        }

    def __repr__(self):
        return f"Bottleneck({self.day.isoformat()}, {self.kind.value}, {self.severity.value})"


class Suggestion:
    def __init__(
        self,
        kind: str,
        title: str,
        description: str,
        estimated_impact: str,
        affected_task_uids: Optional[Iterable[int]] = None,
    ):
        self.kind = kind
        self.title = title
        self.description = description
        self.estimated_impact = estimated_impact
        self.affected_task_uids = list(affected_task_uids or [])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "title": self.title,
            "description": self.description,
            "estimated_impact": self.estimated_impact,
            "affected_task_uids": list(self.affected_task_uids),
        }

    def __repr__(self):
        return f"Suggestion({self.kind}, {self.title!r})"


class OptimizedSchedule:
    """Outcome of a capacity optimization run; the original schedule is left untouched."""

    def __init__(
        self,
        original: ProjectSchedule,
        tasks: List[ScheduleTask],
        adjustments: List[ScheduleAdjustment],
        timeline: List[CapacityPoint],
        optimized_timeline: List[CapacityPoint],
        bottlenecks: List[Bottleneck],
        remaining_bottlenecks: List[Bottleneck],
        suggestions: List[Suggestion],
        original_duration_days: int,
        optimized_duration_days: int,
        critical_path: List[int],
    ):
        self.original = original
        self.tasks = tasks
        self.adjustments = adjustments
        self.timeline = timeline
        self.optimized_timeline = optimized_timeline
        self.bottlenecks = bottlenecks
        self.remaining_bottlenecks = remaining_bottlenecks
        self.suggestions = suggestions
        self.original_duration_days = original_duration_days
        self.optimized_duration_days = optimized_duration_days
        self.critical_path = list(critical_path)

    @property
    def efficiency_gain(self) -> float:
        """Percentage of the original duration saved (negative when the schedule grew)."""
        if self.original_duration_days <= 0:
            return 0.0
        return (
            (self.original_duration_days - self.optimized_duration_days)
            / self.original_duration_days
            * 100
        )

    def to_schedule(self) -> ProjectSchedule:
        """The optimized tasks as a ProjectSchedule, without critical chain data."""
        schedule = ProjectSchedule(
            project_name=self.original.project_name,
            start_date=self.original.start_date,
            tasks=[t.copy() for t in self.tasks],
            resources=self.original.resources,
            critical_path=self.critical_path,
            team_summary=self.original.team_summary,
            phase_plans=self.original.phase_plans,
            calendar=self.original.calendar,
        )
        return schedule

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tasks": [t.to_dict() for t in self.tasks],
            "adjustments": [a.to_dict() for a in self.adjustments],
            "timeline": [p.to_dict() for p in self.timeline],
            "optimized_timeline": [p.to_dict() for p in self.optimized_timeline],
            "bottlenecks": [b.to_dict() for b in self.bottlenecks],
            "remaining_bottlenecks": [b.to_dict() for b in self.remaining_bottlenecks],
            "suggestions": [s.to_dict() for s in self.suggestions],
            "efficiency_gain": round(self.efficiency_gain, 2),
            "original_duration_days": self.original_duration_days,
            "optimized_duration_days": self.optimized_duration_days,
            "critical_path": list(self.critical_path),
        }


def overload_severity(overload: float) -> Severity:
    if overload > 10:
        return Severity.HIGH
    if overload > 5:
        return Severity.MEDIUM
    return Severity.LOW


def equipment_severity(count: int, limit: int) -> Severity:
    return Severity.HIGH if count > limit + 1 else Severity.MEDIUM


def build_capacity_timeline(
    tasks: Iterable[ScheduleTask],
    phase_model: PhaseModel,
    calendar: WorkingCalendar,
    constraints: CapacityConstraints,
) -> List[CapacityPoint]:
    """
    Daily worker and equipment occupation over every working day with work.

    Workers are summed over work tasks active on the day. Equipment counts
    the distinct active phases that need each equipment type.
    """
    daily_phases: Dict[date, Dict[Phase, float]] = {}
    for task in tasks:
        if not task.is_work:
            continue
        count = task.worker_count
        for day in calendar.iter_working_days(task.start_date, task.finish_date):
            phases = daily_phases.setdefault(day, {})
            phases[task.phase] = phases.get(task.phase, 0) + count

    timeline: List[CapacityPoint] = []
    for day in sorted(daily_phases):
        phases = daily_phases[day]
        equipment: Dict[str, Tuple[int, int]] = {}
        for phase in phases:
            for name in phase_model.get_equipment(phase):
                count = equipment.get(name, (0, 0))[0] + 1
                equipment[name] = (count, constraints.equipment_limit(name))
        timeline.append(
            CapacityPoint(
                day=day,
                workers=sum(phases.values()),
                capacity=constraints.max_workers_per_floor,
                phase_workers=dict(phases),
                phase_caps={p: constraints.phase_worker_caps.get(p) for p in phases},
                equipment=equipment,
            )
        )
    return timeline


def find_phase_conflicts(
    tasks: Iterable[ScheduleTask],
    rules: Iterable[PhaseOverlapRule],
    calendar: WorkingCalendar,
) -> List[Bottleneck]:
    """One bottleneck for every pair of work tasks that breaks a non-overlap rule."""
    work = [t for t in tasks if t.is_work]
    conflicts: List[Bottleneck] = []
    for rule in rules:
        if rule.can_overlap:
            continue
        first = [t for t in work if t.phase == rule.phase_a]
        second = [t for t in work if t.phase == rule.phase_b]
        for t1 in first:
            earliest = calendar.add_working_days(t1.finish_date, rule.min_gap_days)
            for t2 in second:
                if t2.start_date < earliest and t2.finish_date > t1.start_date:
                    conflicts.append(
                        Bottleneck(
                            day=t2.start_date,
                            kind=BottleneckKind.PHASE_CONFLICT,
                            overload=0,
                            phases=[rule.phase_a, rule.phase_b],
                            reason=f"Phase conflict: {rule.reason}",
                            severity=Severity.MEDIUM,
                            task_uids=[t1.uid, t2.uid],
                        )
                    )
    return conflicts


def detect_violations(
    timeline: Iterable[CapacityPoint],
    tasks: Iterable[ScheduleTask],
    rules: Iterable[PhaseOverlapRule],
    calendar: WorkingCalendar,
) -> List[Bottleneck]:
    """
    Find capacity overloads, equipment conflicts and phase conflicts.

    Returns:
        list: Bottlenecks in timeline order, phase conflicts last
    """
    bottlenecks: List[Bottleneck] = []
    for point in timeline:
        phases = list(point.phase_workers)
        if point.is_bottleneck:
            overload = point.workers - point.capacity
            bottlenecks.append(
                Bottleneck(
                    day=point.day,
                    kind=BottleneckKind.CAPACITY,
                    overload=overload,
                    phases=phases,
                    reason=f"Overload of {overload:g} workers ({point.workers:g}/{point.capacity})",
                    severity=overload_severity(overload),
                )
            )
        for name, (count, limit) in point.equipment.items():
            if count > limit:
                bottlenecks.append(
                    Bottleneck(
                        day=point.day,
                        kind=BottleneckKind.EQUIPMENT,
                        overload=count - limit,
                        phases=phases,
                        reason=f"Equipment conflict: {count} phases using {name} (max {limit})",
                        severity=equipment_severity(count, limit),
                    )
                )

    bottlenecks.extend(find_phase_conflicts(tasks, rules, calendar))
    return bottlenecks


def generate_suggestions(bottlenecks: List[Bottleneck]) -> List[Suggestion]:
    if not bottlenecks:
        return [
            Suggestion(
                "resource",
                "Schedule is balanced",
                "No site capacity constraints were detected.",
                "No changes needed",
            )
        ]

    suggestions: List[Suggestion] = []

    high = [b for b in bottlenecks if b.severity == Severity.HIGH]
    if high:
        n = len(high)
        suggestions.append(
            Suggestion(
                "resource",
                f"{n} critical overloads detected",
                "Increase the crew or split the work into separate stages "
                "to avoid congestion on site.",
                f"Reduction of {n * 2}-{n * 3} days",
            )
        )

    conflicts = [b for b in bottlenecks if b.kind == BottleneckKind.PHASE_CONFLICT]
    if conflicts:
        n = len(conflicts)
        affected = sorted({uid for b in conflicts for uid in b.task_uids})
        suggestions.append(
            Suggestion(
                "sequence",
                f"{n} phase conflicts",
                "Some phases cannot run in parallel for technical reasons "
                "(concrete curing, drying, etc.).",
                f"Adjustment of {n}-{n * 2} days",
                affected,
            )
        )

    equipment = [b for b in bottlenecks if b.kind == BottleneckKind.EQUIPMENT]
    if equipment:
        n = len(equipment)
        suggestions.append(
            Suggestion(
                "resource",
                f"{n} equipment conflicts",
                "Concurrent phases need the same equipment (crane, concrete pump, "
                "scaffolding). Resequence them or hire additional equipment.",
                f"Possible delay of {n * 2}-{n * 5} days without intervention",
            )
        )

    return suggestions


class SiteCapacityOptimizer:
    """
    Checks a schedule against site capacity and repairs what it can.

    Repairs run only when violations exist: resource leveling within float,
    then splitting of crowded tasks, then sequencing of phases that must not
    overlap. The input schedule is never modified.
    """

    def __init__(
        self,
        phase_model: Optional[PhaseModel] = None,
        calendar: Optional[WorkingCalendar] = None,
        constraints: Optional[CapacityConstraints] = None,
    ):
        self.phase_model = phase_model or PhaseModel.default()
        self.calendar = calendar or WorkingCalendar()
        self.constraints = constraints or CapacityConstraints()

    @property
    def overlap_rules(self) -> Tuple[PhaseOverlapRule, ...]:
        if self.constraints.overlap_rules is not None:
            return self.constraints.overlap_rules
        return self.phase_model.overlap_rules

    def timeline(self, tasks: Iterable[ScheduleTask]) -> List[CapacityPoint]:
        return build_capacity_timeline(tasks, self.phase_model, self.calendar, self.constraints)

    def detect(self, tasks: List[ScheduleTask]) -> Tuple[List[CapacityPoint], List[Bottleneck]]:
        timeline = self.timeline(tasks)
        return timeline, detect_violations(timeline, tasks, self.overlap_rules, self.calendar)

    def duration_days(self, start: date, tasks: Iterable[ScheduleTask]) -> int:
        finish = max((t.finish_date for t in tasks), default=start)
        return self.calendar.working_days_between(start, finish)

    def optimize(self, schedule: ProjectSchedule) -> OptimizedSchedule:
        """
        Optimize a schedule against the site capacity constraints.

        Args:
            schedule: Baseline schedule with its critical path

        Returns:
            OptimizedSchedule with the adjusted task copies, the adjustments
            made, the before and after timelines and suggestions
        """
        calendar = self.calendar
        constraints = self.constraints
        tasks = [t.copy() for t in schedule.tasks]

        timeline, bottlenecks = self.detect(tasks)
        adjustments: List[ScheduleAdjustment] = []

        if bottlenecks:
            logger.info("Found %d capacity bottlenecks, optimizing", len(bottlenecks))
            tasks, changes = level_resources(
                tasks,
                schedule.critical_path,
                calendar,
                constraints.max_workers_per_floor,
                constraints.max_leveling_iterations,
            )
            adjustments.extend(changes)

            tasks, changes = split_large_tasks(tasks, calendar, constraints.split_threshold)
            adjustments.extend(changes)

            tasks, changes = sequence_phase_conflicts(tasks, self.overlap_rules, calendar)
            adjustments.extend(changes)
        else:
            logger.info("No capacity bottlenecks found")

        optimized_timeline, remaining = self.detect(tasks)
        high = sum(1 for b in remaining if b.severity == Severity.HIGH)
        if high:
            logger.warning("%d high-severity bottlenecks remain after optimization", high)

        result = OptimizedSchedule(
            original=schedule,
            tasks=tasks,
            adjustments=adjustments,
            timeline=timeline,
            optimized_timeline=optimized_timeline,
            bottlenecks=bottlenecks,
            remaining_bottlenecks=remaining,
            suggestions=generate_suggestions(bottlenecks),
            original_duration_days=self.duration_days(schedule.start_date, schedule.tasks),
            optimized_duration_days=self.duration_days(schedule.start_date, tasks),
            critical_path=schedule.critical_path,
        )
        logger.info(
            "Capacity optimization: %d adjustments, %d -> %d working days (%.1f%%)",
            len(adjustments),
            result.original_duration_days,
            result.optimized_duration_days,
            result.efficiency_gain,
        )
        return result


def optimize(
    schedule: ProjectSchedule,
    constraints: Optional[CapacityConstraints] = None,
    phase_model: Optional[PhaseModel] = None,
    calendar: Optional[WorkingCalendar] = None,
) -> OptimizedSchedule:
    """Optimize a schedule with a one-off SiteCapacityOptimizer."""
    calendar = calendar or schedule.calendar
    return SiteCapacityOptimizer(phase_model, calendar, constraints).optimize(schedule)
