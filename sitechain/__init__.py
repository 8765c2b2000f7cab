"""
sitechain
=========

Construction scheduling engine: turns a priced work breakdown structure into
a phase-sequenced schedule, finds its critical path, protects it with
Critical Chain buffers and checks it against site capacity.

Available modules:
- domain: calendar, phase model, tasks, buffers and schedules
- services: sequencer, critical path, critical chain and capacity optimizer
- visualization: Gantt, buffer, fever, capacity and phase network charts
"""

from sitechain.config import CapacityConstraints, ConfigError, SchedulerOptions
from sitechain.domain.buffer import BufferZone, CriticalChainBuffer, update_buffer_consumption
from sitechain.domain.calendar import WorkingCalendar
from sitechain.domain.phase import DependencyType, Phase, PhaseModel, PhaseModelError
from sitechain.domain.schedule import CriticalChainData, ProjectSchedule, ScheduleError
from sitechain.domain.task import ScheduleTask, TaskError
from sitechain.domain.wbs import PriceMatch, WbsProject
from sitechain.services.capacity import OptimizedSchedule, SiteCapacityOptimizer, optimize
from sitechain.services.critical_chain import CriticalChainOptimizer, apply_critical_chain
from sitechain.services.critical_path import compute_task_floats, find_critical_path
from sitechain.services.sequencer import PhaseSequencer, sequence

__version__ = "0.1.0"

__all__ = [
    "BufferZone",
    "CapacityConstraints",
    "ConfigError",
    "CriticalChainBuffer",
    "CriticalChainData",
    "CriticalChainOptimizer",
    "DependencyType",
    "OptimizedSchedule",
    "Phase",
    "PhaseModel",
    "PhaseModelError",
    "PhaseSequencer",
    "PriceMatch",
    "ProjectSchedule",
    "ScheduleError",
    "ScheduleTask",
    "SchedulerOptions",
    "SiteCapacityOptimizer",
    "TaskError",
    "WbsProject",
    "WorkingCalendar",
    "apply_critical_chain",
    "compute_task_floats",
    "find_critical_path",
    "optimize",
    "sequence",
    "update_buffer_consumption",
]
