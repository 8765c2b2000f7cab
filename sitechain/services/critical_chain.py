import logging
from math import ceil
from typing import Dict, List, Optional

from sitechain.config import SchedulerOptions
from sitechain.domain.buffer import CriticalChainBuffer, update_buffer_consumption
from sitechain.domain.calendar import WorkingCalendar
from sitechain.domain.phase import Phase, PhaseModel
from sitechain.domain.schedule import CriticalChainData, PhasePlan, ProjectSchedule, ScheduleError
from sitechain.services.buffer_strategies import BufferCalculationStrategy, get_strategy
from sitechain.services.feeding_chain import identify_feeding_chains
from sitechain.services.phase_scheduling import schedule_phases

logger = logging.getLogger(__name__)

__all__ = [
    "ChainLink",
    "CriticalChainOptimizer",
    "aggressive_duration",
    "apply_critical_chain",
    "update_buffer_consumption",
]


class ChainLink:
    """A phase on a chain with its original and aggressive durations."""

    __slots__ = ("phase", "uid", "safe_duration", "aggressive_duration")

    def __init__(self, phase: Phase, uid: Optional[int], safe_duration: int, aggressive_duration: int):
        self.phase = phase
        self.uid = uid
        self.safe_duration = safe_duration
        self.aggressive_duration = aggressive_duration

    @property
    def removed_days(self) -> int:
        return self.safe_duration - self.aggressive_duration

    def __repr__(self):
        return (
            f"ChainLink({self.phase.value}, {self.safe_duration}d -> "
            f"{self.aggressive_duration}d)"
        )


def aggressive_duration(original_days: int, safety_reduction: float) -> int:
    """Phase duration with the safety fraction removed, never below one day."""
    return max(1, ceil(original_days * (1 - safety_reduction)))


class CriticalChainOptimizer:
    """
    Applies Critical Chain Project Management to a baseline schedule.

    Safety is stripped from every phase, the phases are rescheduled with the
    aggressive durations, and the removed safety is pooled into a project
    buffer at the end of the critical chain plus a feeding buffer wherever a
    non-critical chain merges into it.
    """

    def __init__(
        self,
        phase_model: Optional[PhaseModel] = None,
        calendar: Optional[WorkingCalendar] = None,
        options: Optional[SchedulerOptions] = None,
        buffer_strategy: Optional[BufferCalculationStrategy] = None,
    ):
        self.phase_model = phase_model or PhaseModel.default()
        self.calendar = calendar or WorkingCalendar()
        self.options = options or SchedulerOptions(use_critical_chain=True)
        self.buffer_strategy = buffer_strategy or get_strategy(self.options.buffer_method)

    def buffer_days(self, links: List[ChainLink], buffer_ratio: float) -> int:
        """Size a buffer with the configured strategy, rounded up, at least one day."""
        raw = self.buffer_strategy.calculate_buffer_size(links, buffer_ratio)
        # Rounding first keeps float noise (2.0000000001) from adding a day
        return max(1, ceil(round(raw, 9)))

    def build_links(self, schedule: ProjectSchedule) -> Dict[Phase, ChainLink]:
        links: Dict[Phase, ChainLink] = {}
        for phase, plan in schedule.phase_plans.items():
            summary = schedule.phase_summary(phase)
            links[phase] = ChainLink(
                phase,
                summary.uid if summary else None,
                plan.days,
                aggressive_duration(plan.days, self.options.safety_reduction),
            )
        return links

    def apply(self, schedule: ProjectSchedule) -> CriticalChainData:
        """
        Compute critical chain buffers for a schedule.

        Args:
            schedule: Baseline schedule with phase plans and a critical path

        Returns:
            CriticalChainData with the aggressive plan and the buffers

        Raises:
            ScheduleError: If the schedule carries no phase plans
        """
        if not schedule.phase_plans:
            raise ScheduleError("Schedule has no phase plans to shorten")

        calendar = self.calendar
        options = self.options
        links = self.build_links(schedule)

        aggressive_dates = schedule_phases(
            {phase: link.aggressive_duration for phase, link in links.items()},
            schedule.start_date,
            self.phase_model,
            calendar,
        )
        aggressive_end = max(finish for _, finish in aggressive_dates.values())
        aggressive_days = calendar.working_days_between(schedule.start_date, aggressive_end)
        original_days = calendar.working_days_between(
            schedule.start_date,
            max((t.finish_date for t in schedule.summary_tasks()), default=schedule.start_date),
        )

        aggressive_plans = {
            phase: PhasePlan(
                phase,
                schedule.phase_plans[phase].hours,
                schedule.phase_plans[phase].workers,
                links[phase].aggressive_duration,
                start,
                finish,
            )
            for phase, (start, finish) in aggressive_dates.items()
        }

        critical = set(schedule.critical_path)
        critical_links = [
            links[t.phase]
            for t in schedule.summary_tasks()
            if t.uid in critical and t.phase in links
        ]

        next_uid = max((t.uid for t in schedule.tasks), default=0) + 1
        strategy_name = self.buffer_strategy.get_name()

        project_days = self.buffer_days(critical_links, options.project_buffer_ratio)
        project_buffer = CriticalChainBuffer(
            uid=next_uid,
            name="Project Buffer",
            buffer_type="project",
            duration_days=project_days,
            start_date=aggressive_end,
            finish_date=calendar.add_working_days(aggressive_end, project_days),
            feeding_chain_uids=list(schedule.critical_path),
            strategy_name=strategy_name,
        )
        next_uid += 1

        feeding_buffers: List[CriticalChainBuffer] = []
        for chain in identify_feeding_chains(schedule.tasks, schedule.critical_path):
            chain_links = [links[t.phase] for t in chain.summaries() if t.phase in links]
            if not any(link.removed_days > 0 for link in chain_links):
                logger.debug("Feeding chain %s has no safety to pool", chain.uids)
                continue

            days = self.buffer_days(chain_links, options.feeding_buffer_ratio)
            merge = schedule.get_task(chain.merge_uid)
            feeding = chain.feeding_task
            merge_start = aggressive_dates[merge.phase][0]
            feed_finish = aggressive_dates.get(feeding.phase, (None, aggressive_end))[1]

            # As late as possible: end at the merge, but never before the feed finishes
            finish = merge_start
            start = calendar.subtract_working_days(finish, days)
            if start < feed_finish:
                start = feed_finish
                finish = calendar.add_working_days(start, days)

            feeding_buffers.append(
                CriticalChainBuffer(
                    uid=next_uid,
                    name=f"Feeding Buffer: {self.phase_model.display_name(feeding.phase)}",
                    buffer_type="feeding",
                    duration_days=days,
                    start_date=start,
                    finish_date=finish,
                    feeding_chain_uids=chain.uids,
                    protects_task_uid=merge.uid,
                    strategy_name=strategy_name,
                )
            )
            next_uid += 1

        data = CriticalChainData(
            chain_task_uids=list(schedule.critical_path),
            project_buffer=project_buffer,
            feeding_buffers=feeding_buffers,
            original_duration_days=original_days,
            aggressive_duration_days=aggressive_days,
            safety_reduction_percent=round(options.safety_reduction * 100),
            aggressive_phase_plans=aggressive_plans,
        )

        logger.info(
            "Critical chain: %d -> %d working days (+%d project buffer, %d feeding buffers)",
            original_days,
            aggressive_days,
            project_days,
            len(feeding_buffers),
        )
        return data


def apply_critical_chain(
    schedule: ProjectSchedule,
    options: Optional[SchedulerOptions] = None,
    phase_model: Optional[PhaseModel] = None,
    calendar: Optional[WorkingCalendar] = None,
) -> CriticalChainData:
    """Compute critical chain buffers for a schedule with a one-off optimizer."""
    calendar = calendar or schedule.calendar
    return CriticalChainOptimizer(phase_model, calendar, options).apply(schedule)
