import copy
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from sitechain.domain.phase import DependencyType, Phase


class TaskError(Exception):
    """Exception raised for errors in the ScheduleTask class."""

    pass


class ResourceKind(str, Enum):
    """Kind of resource attached to a task."""

    LABOR = "labor"
    MATERIAL = "material"
    MACHINERY = "machinery"
    SUBCONTRACTOR = "subcontractor"


# Kinds whose units are people on site
CREW_KINDS = (ResourceKind.LABOR, ResourceKind.SUBCONTRACTOR)


class TaskResource:
    """A resource assignment on a task (crew, material, plant or subcontractor)."""

    def __init__(
        self,
        name: str,
        kind: ResourceKind,
        units: float,
        rate: float = 0.0,
        hours: float = 0.0,
    ):
        if not name:
            raise TaskError("Resource name cannot be empty")
        if units < 0:
            raise TaskError(f"Resource units cannot be negative: {name}")
        if hours < 0:
            raise TaskError(f"Resource hours cannot be negative: {name}")
        self.name = name
        self.kind = ResourceKind(kind)
        self.units = units
        self.rate = rate
        self.hours = hours

    @property
    def is_crew(self) -> bool:
        return self.kind in CREW_KINDS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "units": self.units,
            "rate": self.rate,
            "hours": self.hours,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskResource":
        return cls(
            name=data["name"],
            kind=data["kind"],
            units=data.get("units", 0),
            rate=data.get("rate", 0.0),
            hours=data.get("hours", 0.0),
        )

    def __repr__(self):
        return f"TaskResource({self.name!r}, {self.kind.value}, units={self.units})"


class Predecessor:
    """Link from a task to one of its predecessors."""

    __slots__ = ("uid", "relation", "lag_days")

    def __init__(
        self,
        uid: int,
        relation: DependencyType = DependencyType.FINISH_TO_START,
        lag_days: int = 0,
    ):
        if lag_days < 0:
            raise TaskError("Predecessor lag cannot be negative")
        self.uid = uid
        self.relation = DependencyType(relation)
        self.lag_days = lag_days

    def to_dict(self) -> Dict[str, Any]:
        return {"uid": self.uid, "relation": self.relation.value, "lag": self.lag_days}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Predecessor":
        return cls(data["uid"], data.get("relation", "FS"), data.get("lag", 0))

    def __eq__(self, other):
        if not isinstance(other, Predecessor):
            return NotImplemented
        return (self.uid, self.relation, self.lag_days) == (
            other.uid,
            other.relation,
            other.lag_days,
        )

    def __hash__(self):
        return hash((self.uid, self.relation, self.lag_days))

    def __repr__(self):
        lag = f"+{self.lag_days}" if self.lag_days else ""
        return f"Predecessor({self.uid} {self.relation.value}{lag})"


class ScheduleTask:
    """
    The scheduling unit produced by the phase sequencer.

    Each phase yields one summary task (the phase roll-up) plus leaf tasks:
    work tasks for the priced articles, and optionally procurement tasks and
    milestones. Dates are calendar dates. finish_date is exclusive: it is the
    first working day a Finish-to-Start successor may start, so
    finish_date == add_working_days(start_date, duration_days).
    """

    def __init__(
        self,
        uid: int,
        name: str,
        start_date: date,
        finish_date: date,
        duration_days: int,
        phase: Phase,
        wbs_code: str = "",
        duration_hours: float = 0.0,
        is_summary: bool = False,
        is_milestone: bool = False,
        is_procurement: bool = False,
        predecessors: Optional[List[Predecessor]] = None,
        resources: Optional[List[TaskResource]] = None,
        cost: float = 0.0,
        material_cost: float = 0.0,
        outline_level: int = 2,
        percent_complete: float = 0.0,
        parent_uid: Optional[int] = None,
    ):
        """
        Initialize a new ScheduleTask.

        Args:
            uid: Unique identifier, assigned monotonically by the sequencer
            name: Display name
            start_date: First working day of the task
            finish_date: Exclusive finish date
            duration_days: Working days (0 only for milestones and summaries)
            phase: Phase the task belongs to
            wbs_code: WBS code of the article (or phase) the task comes from
            duration_hours: Labor hours
            is_summary: True for a phase roll-up task
            is_milestone: True for a zero-duration marker
            is_procurement: True for a zero-labor lead-time task
            predecessors: Links to predecessor tasks
            resources: Resource assignments
            cost: Total cost in euros
            material_cost: Material part of the cost
            outline_level: Depth in the outline (1 summary, 2 leaf, 3 floor leaf)
            percent_complete: Progress, 0-100
            parent_uid: uid of the phase summary for work tasks

        Raises:
            TaskError: If any input validation fails
        """
        if uid is None:
            raise TaskError("Task uid cannot be None")
        self.uid = uid

        if not name or not isinstance(name, str):
            raise TaskError("Task name must be a non-empty string")
        self.name = name

        if duration_days < 0:
            raise TaskError(f"Task {uid} has a negative duration")
        if duration_hours < 0:
            raise TaskError(f"Task {uid} has negative labor hours")
        if finish_date < start_date:
            raise TaskError(f"Task {uid} finishes before it starts")
        if not 0 <= percent_complete <= 100:
            raise TaskError("Percent complete must be between 0 and 100")

        self.start_date = start_date
        self.finish_date = finish_date
        self.duration_days = duration_days
        self.duration_hours = duration_hours
        self.phase = Phase(phase)
        self.wbs_code = wbs_code
        self.is_summary = is_summary
        self.is_milestone = is_milestone
        self.is_procurement = is_procurement
        self.predecessors = list(predecessors or [])
        self.resources = list(resources or [])
        self.cost = cost
        self.material_cost = material_cost
        self.outline_level = outline_level
        self.percent_complete = percent_complete
        self.parent_uid = parent_uid

    @property
    def is_work(self) -> bool:
        """True for leaf tasks that put a crew on site."""
        return not (self.is_summary or self.is_milestone or self.is_procurement)

    @property
    def worker_count(self) -> float:
        """People on site while the task is active: labor plus subcontractor units."""
        return sum(r.units for r in self.resources if r.is_crew)

    def predecessor_uids(self) -> List[int]:
        return [p.uid for p in self.predecessors]

    def depends_on(self, uid: int) -> bool:
        return any(p.uid == uid for p in self.predecessors)

    def is_active_on(self, day: date) -> bool:
        """Whether day lies in the half-open interval [start, finish)."""
        return self.start_date <= day < self.finish_date

    def reschedule(self, start_date: date, calendar) -> None:
        """Move the task to a new start, keeping its working-day duration."""
        self.start_date = start_date
        self.finish_date = calendar.add_working_days(start_date, self.duration_days)

    def roll_up(self, children: List["ScheduleTask"], calendar) -> None:
        """
        Recompute a summary's dates, duration, hours and cost from its children.

        The start follows the children forward when all of them have moved
        later; it is never pulled earlier than the summary's own start.
        """
        if not self.is_summary:
            raise TaskError(f"Task {self.uid} is not a summary task")
        if not children:
            return
        first_start = min(c.start_date for c in children)
        if first_start > self.start_date:
            self.start_date = first_start
        self.finish_date = max(c.finish_date for c in children)
        self.finish_date = max(self.finish_date, self.start_date)
        self.duration_days = calendar.working_days_between(
            self.start_date, self.finish_date
        )
        self.duration_hours = sum(c.duration_hours for c in children)
        self.cost = sum(c.cost for c in children)
        self.material_cost = sum(c.material_cost for c in children)

    def copy(self) -> "ScheduleTask":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uid": self.uid,
            "wbs_code": self.wbs_code,
            "name": self.name,
            "start_date": self.start_date.isoformat(),
            "finish_date": self.finish_date.isoformat(),
            "duration_days": self.duration_days,
            "duration_hours": round(self.duration_hours, 2),
            "is_summary": self.is_summary,
            "is_milestone": self.is_milestone,
            "is_procurement": self.is_procurement,
            "phase": self.phase.value,
            "predecessors": [p.to_dict() for p in self.predecessors],
            "resources": [r.to_dict() for r in self.resources],
            "cost": round(self.cost, 2),
            "material_cost": round(self.material_cost, 2),
            "outline_level": self.outline_level,
            "percent_complete": self.percent_complete,
            "parent_uid": self.parent_uid,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduleTask":
        return cls(
            uid=data["uid"],
            name=data["name"],
            start_date=date.fromisoformat(data["start_date"]),
            finish_date=date.fromisoformat(data["finish_date"]),
            duration_days=data["duration_days"],
            phase=data["phase"],
            wbs_code=data.get("wbs_code", ""),
            duration_hours=data.get("duration_hours", 0.0),
            is_summary=data.get("is_summary", False),
            is_milestone=data.get("is_milestone", False),
            is_procurement=data.get("is_procurement", False),
            predecessors=[Predecessor.from_dict(p) for p in data.get("predecessors", [])],
            resources=[TaskResource.from_dict(r) for r in data.get("resources", [])],
            cost=data.get("cost", 0.0),
            material_cost=data.get("material_cost", 0.0),
            outline_level=data.get("outline_level", 2),
            percent_complete=data.get("percent_complete", 0.0),
            parent_uid=data.get("parent_uid"),
        )

    def __repr__(self):
        kind = "summary" if self.is_summary else "milestone" if self.is_milestone else "task"
        return (
            f"ScheduleTask(uid={self.uid}, name={self.name!r}, {kind}, "
            f"{self.start_date.isoformat()} -> {self.finish_date.isoformat()})"
        )
