import copy
from datetime import date
from typing import Any, Dict, List, Optional

from sitechain.domain.buffer import CriticalChainBuffer
from sitechain.domain.phase import Phase
from sitechain.domain.task import ResourceKind, ScheduleTask


class ScheduleError(Exception):
    """Exception raised when a schedule breaks a structural invariant."""

    pass


class PhasePlan:
    """Phase-level estimate made before leaf tasks are laid out."""

    __slots__ = ("phase", "hours", "workers", "days", "start_date", "finish_date")

    def __init__(
        self,
        phase: Phase,
        hours: float,
        workers: int,
        days: int,
        start_date: date,
        finish_date: date,
    ):
        self.phase = phase
        self.hours = hours
        self.workers = workers
        self.days = days
        self.start_date = start_date
        self.finish_date = finish_date

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "hours": round(self.hours, 2),
            "workers": self.workers,
            "days": self.days,
            "start_date": self.start_date.isoformat(),
            "finish_date": self.finish_date.isoformat(),
        }

    def __repr__(self):
        return (
            f"PhasePlan({self.phase.value}, days={self.days}, workers={self.workers}, "
            f"{self.start_date.isoformat()} -> {self.finish_date.isoformat()})"
        )


class ProjectResource:
    """A resource aggregated over every task that uses it."""

    def __init__(self, name: str, kind: ResourceKind, rate: float):
        self.name = name
        self.kind = ResourceKind(kind)
        self.rate = rate
        self.total_units = 0.0
        self.total_hours = 0.0

    @property
    def key(self) -> str:
        return f"{self.kind.value}:{self.name}"

    @property
    def total_cost(self) -> float:
        if self.kind == ResourceKind.MATERIAL:
            return self.total_units * self.rate
        return self.total_hours * self.rate

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "rate": self.rate,
            "total_units": round(self.total_units, 2),
            "total_hours": round(self.total_hours, 2),
            "total_cost": round(self.total_cost, 2),
        }

    def __repr__(self):
        return f"ProjectResource({self.key!r}, cost={self.total_cost:.2f})"


class TeamSummary:
    __slots__ = ("max_workers", "average_workers", "total_man_hours", "peak_week")

    def __init__(
        self,
        max_workers: float = 0,
        average_workers: float = 0.0,
        total_man_hours: float = 0.0,
        peak_week: str = "",
    ):
        self.max_workers = max_workers
        self.average_workers = average_workers
        self.total_man_hours = total_man_hours
        self.peak_week = peak_week

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_workers": self.max_workers,
            "average_workers": self.average_workers,
            "total_man_hours": round(self.total_man_hours, 2),
            "peak_week": self.peak_week,
        }


class CriticalChainData:
    """Result of applying critical chain buffering to a baseline schedule."""

    def __init__(
        self,
        chain_task_uids: List[int],
        project_buffer: CriticalChainBuffer,
        feeding_buffers: List[CriticalChainBuffer],
        original_duration_days: int,
        aggressive_duration_days: int,
        safety_reduction_percent: float,
        aggressive_phase_plans: Optional[Dict[Phase, PhasePlan]] = None,
    ):
        self.chain_task_uids = list(chain_task_uids)
        self.project_buffer = project_buffer
        self.feeding_buffers = list(feeding_buffers)
        self.original_duration_days = original_duration_days
        self.aggressive_duration_days = aggressive_duration_days
        self.safety_reduction_percent = safety_reduction_percent
        self.aggressive_phase_plans = dict(aggressive_phase_plans or {})

    @property
    def buffers(self) -> List[CriticalChainBuffer]:
        return [self.project_buffer] + self.feeding_buffers

    @property
    def project_buffer_days(self) -> int:
        return self.project_buffer.duration_days

    @property
    def ccpm_duration_days(self) -> int:
        return self.aggressive_duration_days + self.project_buffer.duration_days

    @property
    def buffer_ratio(self) -> float:
        """Project buffer size relative to the aggressive schedule."""
        return self.project_buffer.duration_days / max(1, self.aggressive_duration_days)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chain_task_uids": list(self.chain_task_uids),
            "buffers": [b.to_dict() for b in self.buffers],
            "original_duration_days": self.original_duration_days,
            "aggressive_duration_days": self.aggressive_duration_days,
            "ccpm_duration_days": self.ccpm_duration_days,
            "project_buffer_days": self.project_buffer_days,
            "safety_reduction_percent": self.safety_reduction_percent,
            "buffer_ratio": round(self.buffer_ratio, 3),
        }


class ProjectSchedule:
    """
    Complete schedule for one project: tasks, resources and analysis results.

    finish_date is the latest summary finish, or the latest buffer finish
    once critical chain buffers are attached.
    """

    def __init__(
        self,
        project_name: str,
        start_date: date,
        tasks: List[ScheduleTask],
        resources: Optional[List[ProjectResource]] = None,
        critical_path: Optional[List[int]] = None,
        team_summary: Optional[TeamSummary] = None,
        phase_plans: Optional[Dict[Phase, PhasePlan]] = None,
        calendar=None,
    ):
        self.project_name = project_name
        self.start_date = start_date
        self.tasks = list(tasks)
        self.resources = list(resources or [])
        self.critical_path = list(critical_path or [])
        self.team_summary = team_summary or TeamSummary()
        self.phase_plans = dict(phase_plans or {})
        self.critical_chain: Optional[CriticalChainData] = None
        self.calendar = calendar

        self.finish_date = start_date
        self.total_duration_days = 0
        self.refresh_totals()

    @property
    def total_cost(self) -> float:
        return sum(t.cost for t in self.summary_tasks())

    def summary_tasks(self) -> List[ScheduleTask]:
        return [t for t in self.tasks if t.is_summary]

    def work_tasks(self) -> List[ScheduleTask]:
        return [t for t in self.tasks if t.is_work]

    def get_task(self, uid: int) -> ScheduleTask:
        for task in self.tasks:
            if task.uid == uid:
                return task
        raise ScheduleError(f"Task {uid} not found in schedule")

    def phase_summary(self, phase: Phase) -> Optional[ScheduleTask]:
        for task in self.tasks:
            if task.is_summary and task.phase == phase:
                return task
        return None

    def children_of(self, summary_uid: int) -> List[ScheduleTask]:
        return [t for t in self.tasks if t.parent_uid == summary_uid]

    def attach_critical_chain(self, data: CriticalChainData) -> None:
        self.critical_chain = data
        self.refresh_totals()

    def refresh_totals(self) -> None:
        """Recompute finish_date and total_duration_days from tasks and buffers."""
        if self.critical_chain is not None:
            self.finish_date = max(b.finish_date for b in self.critical_chain.buffers)
            self.total_duration_days = self.critical_chain.ccpm_duration_days
            return

        summaries = self.summary_tasks()
        self.finish_date = max(
            (t.finish_date for t in summaries), default=self.start_date
        )
        if self.calendar is not None:
            self.total_duration_days = self.calendar.working_days_between(
                self.start_date, self.finish_date
            )
        else:
            self.total_duration_days = (self.finish_date - self.start_date).days

    def copy(self) -> "ProjectSchedule":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_name": self.project_name,
            "start_date": self.start_date.isoformat(),
            "finish_date": self.finish_date.isoformat(),
            "total_duration_days": self.total_duration_days,
            "total_cost": round(self.total_cost, 2),
            "tasks": [t.to_dict() for t in self.tasks],
            "resources": [r.to_dict() for r in self.resources],
            "critical_path": list(self.critical_path),
            "team_summary": self.team_summary.to_dict(),
            "critical_chain": self.critical_chain.to_dict()
            if self.critical_chain
            else None,
        }

    def __repr__(self):
        return (
            f"ProjectSchedule({self.project_name!r}, tasks={len(self.tasks)}, "
            f"{self.start_date.isoformat()} -> {self.finish_date.isoformat()})"
        )
