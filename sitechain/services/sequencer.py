import itertools
import logging
from datetime import date
from math import ceil
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sitechain.config import SchedulerOptions
from sitechain.domain.calendar import WorkingCalendar
from sitechain.domain.phase import DependencyType, Phase, PhaseModel
from sitechain.domain.productivity import ProductivityTable
from sitechain.domain.schedule import (
    PhasePlan,
    ProjectResource,
    ProjectSchedule,
    TeamSummary,
)
from sitechain.domain.task import Predecessor, ResourceKind, ScheduleTask, TaskResource
from sitechain.domain.wbs import PriceMatch, WbsArticle, WbsProject
from sitechain.services.critical_chain import CriticalChainOptimizer
from sitechain.services.critical_path import find_critical_path
from sitechain.services.phase_scheduling import earliest_phase_start

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 8
DAYS_PER_WEEK = 5


class ArticleWork:
    """An article with the phase it belongs to and the labor it needs."""

    __slots__ = ("article", "chapter_code", "phase", "match", "hours")

    def __init__(self, article: WbsArticle, chapter_code: str, phase: Phase,
                 match: Optional[PriceMatch], hours: float):
        self.article = article
        self.chapter_code = chapter_code
        self.phase = phase
        self.match = match
        self.hours = hours


def phase_crew(hours: float, max_workers: int) -> Tuple[int, int]:
    """
    Size a phase crew and its duration from total labor hours.

    Workers are enough to do the work in a five-day week, clamped to
    [1, max_workers]; the duration is what that crew needs at eight hours a
    day, never less than one day.
    """
    workers = max(1, min(max_workers, ceil(hours / (HOURS_PER_DAY * DAYS_PER_WEEK))))
    days = max(1, ceil(hours / (workers * HOURS_PER_DAY)))
    return workers, days


def seasonal_duration(
    days: int, start: date, factors: Sequence[float], calendar: WorkingCalendar
) -> int:
    """
    Stretch a working-day duration for low-productivity months.

    Averages the monthly factor over the working days the task would occupy
    starting at start and divides the duration by it.
    """
    if days <= 0:
        return days
    monthly = []
    current = start
    for _ in range(days):
        monthly.append(factors[current.month - 1])
        current = calendar.add_working_days(current, 1)
    average = sum(monthly) / len(monthly)
    return max(1, ceil(days / average))


class PhaseSequencer:
    """
    Turns a priced WBS into a baseline ProjectSchedule.

    Articles are grouped into phases by chapter, each phase is sized from its
    labor hours, placed after its predecessors, and filled with leaf tasks by
    a worker-budget batcher. Multi-floor phases are staggered floor by floor.
    """

    def __init__(
        self,
        phase_model: Optional[PhaseModel] = None,
        calendar: Optional[WorkingCalendar] = None,
        options: Optional[SchedulerOptions] = None,
        productivity: Optional[ProductivityTable] = None,
    ):
        self.phase_model = phase_model or PhaseModel.default()
        self.calendar = calendar or WorkingCalendar()
        self.options = options or SchedulerOptions()
        self.productivity = productivity or ProductivityTable()

    @property
    def procurement(self):
        if self.options.procurement is not None:
            return self.options.procurement
        return self.phase_model.procurement

    def collect_work(
        self, project: WbsProject, price_matches: Iterable[PriceMatch]
    ) -> Dict[Phase, List[ArticleWork]]:
        """Group articles by phase and compute the labor hours of each one."""
        matches = {m.article_code: m for m in price_matches}
        groups: Dict[Phase, List[ArticleWork]] = {}

        for chapter in project.chapters:
            phase = self.phase_model.chapter_to_phase(chapter.code)
            for sub_chapter in chapter.sub_chapters:
                for article in sub_chapter.articles:
                    match = matches.get(article.code)
                    price_code = match.price_code if match else None
                    if match is None:
                        logger.debug("No price match for article %s", article.code)
                    elif not self.productivity.knows(price_code):
                        logger.debug(
                            "No productivity rate for %s, using default %.1f h/unit",
                            price_code,
                            self.productivity.default_rate,
                        )
                    hours = article.quantity * self.productivity.rate_for(price_code)
                    groups.setdefault(phase, []).append(
                        ArticleWork(article, chapter.code, phase, match, hours)
                    )

        return groups

    def sequence(
        self, project: WbsProject, price_matches: Iterable[PriceMatch]
    ) -> ProjectSchedule:
        """
        Build the baseline schedule for a project.

        Args:
            project: The priced WBS with start date and floor count
            price_matches: Price database matches keyed by article code

        Returns:
            ProjectSchedule with tasks, resources, team summary and critical
            path; critical chain buffers are attached when the options ask
            for them
        """
        calendar = self.calendar
        options = self.options
        project_start = calendar.next_working_day(project.start_date)
        if project_start != project.start_date:
            logger.info(
                "Project start %s is not a working day, moved to %s",
                project.start_date,
                project_start,
            )

        groups = self.collect_work(project, price_matches)
        active = [p for p in self.phase_model.sequencing_order if p in groups]
        skipped = [p.value for p in self.phase_model.phase_order if p not in groups]
        logger.info("Sequencing %d active phases", len(active))
        logger.debug("Phases without articles: %s", ", ".join(skipped))

        next_uid = itertools.count(1)
        tasks: List[ScheduleTask] = []

        procurement_tasks: Dict[Phase, ScheduleTask] = {}
        for phase in active:
            item = self.procurement.get(phase)
            if item is None:
                continue
            task = ScheduleTask(
                uid=next(next_uid),
                name=item.name,
                start_date=project_start,
                finish_date=calendar.add_working_days(project_start, item.lead_days),
                duration_days=item.lead_days,
                phase=phase,
                is_procurement=True,
                outline_level=2,
            )
            procurement_tasks[phase] = task
            tasks.append(task)

        summaries: Dict[Phase, ScheduleTask] = {}
        scheduled: Dict[Phase, Tuple[date, date]] = {}
        plans: Dict[Phase, PhasePlan] = {}

        for phase in active:
            work = groups[phase]
            hours = sum(w.hours for w in work)
            workers, days = phase_crew(hours, options.max_workers)

            start = earliest_phase_start(
                phase, scheduled, project_start, self.phase_model, calendar
            )
            procurement_task = procurement_tasks.get(phase)
            if procurement_task is not None and procurement_task.finish_date > start:
                start = procurement_task.finish_date

            finish = calendar.add_working_days(
                start, seasonal_duration(days, start, options.seasonal_factors, calendar)
            )
            plans[phase] = PhasePlan(phase, hours, workers, days, start, finish)

            summary = ScheduleTask(
                uid=next(next_uid),
                name=self.phase_model.display_name(phase),
                start_date=start,
                finish_date=finish,
                duration_days=days,
                phase=phase,
                wbs_code=work[0].chapter_code,
                duration_hours=hours,
                is_summary=True,
                outline_level=1,
            )
            for dep in self.phase_model.get_phase_dependencies(phase):
                if dep.predecessor in summaries:
                    summary.predecessors.append(
                        Predecessor(summaries[dep.predecessor].uid, dep.relation, dep.lag_days)
                    )
            if procurement_task is not None:
                summary.predecessors.append(Predecessor(procurement_task.uid))
            tasks.append(summary)
            summaries[phase] = summary

            children = self._layout_phase_tasks(
                phase, work, summary, workers, project.number_of_floors, next_uid
            )
            tasks.extend(children)
            summary.roll_up(children, calendar)
            scheduled[phase] = (summary.start_date, summary.finish_date)

            logger.debug(
                "%s: %.0f h, %d workers, %d days, %s -> %s",
                phase.value,
                hours,
                workers,
                days,
                summary.start_date,
                summary.finish_date,
            )

        for phase, name in self.phase_model.milestones.items():
            summary = summaries.get(phase)
            if summary is None:
                continue
            tasks.append(
                ScheduleTask(
                    uid=next(next_uid),
                    name=name,
                    start_date=summary.finish_date,
                    finish_date=summary.finish_date,
                    duration_days=0,
                    phase=phase,
                    is_milestone=True,
                    predecessors=[Predecessor(summary.uid)],
                    outline_level=1,
                )
            )

        schedule = ProjectSchedule(
            project_name=project.name,
            start_date=project_start,
            tasks=tasks,
            resources=aggregate_resources(tasks),
            critical_path=find_critical_path(tasks),
            phase_plans=plans,
            calendar=calendar,
        )
        schedule.team_summary = summarize_team(schedule, calendar)

        logger.info(
            "Baseline schedule: %d tasks, %s -> %s (%d working days)",
            len(tasks),
            schedule.start_date,
            schedule.finish_date,
            schedule.total_duration_days,
        )

        if options.use_critical_chain and summaries:
            optimizer = CriticalChainOptimizer(self.phase_model, calendar, options)
            schedule.attach_critical_chain(optimizer.apply(schedule))

        return schedule

    def _layout_phase_tasks(
        self,
        phase: Phase,
        work: List[ArticleWork],
        summary: ScheduleTask,
        phase_workers: int,
        floors: int,
        next_uid,
    ) -> List[ScheduleTask]:
        """
        Create the leaf tasks of one phase.

        Articles are taken largest first (stable, so ties keep input order).
        The floor-0 task of each article joins the current batch while the
        batch's crew stays within phase_workers; otherwise a new batch starts
        at the latest finish of the previous one. Higher floors follow the
        same article's previous floor with a Start-to-Start lag.
        """
        calendar = self.calendar
        factors = self.options.seasonal_factors
        lag = self.phase_model.floor_stagger_lag
        staggered = floors > 1 and self.phase_model.is_floor_staggered(phase)
        floor_count = floors if staggered else 1
        role = self.phase_model.labor_role(phase)

        batch_start = summary.start_date
        batch_workers = 0
        batch_finish = summary.start_date

        children: List[ScheduleTask] = []
        for item in sorted(work, key=lambda w: w.hours, reverse=True):
            article = item.article
            match = item.match
            floor_hours = item.hours / floor_count
            floor_quantity = article.quantity / floor_count
            workers = max(1, min(phase_workers, ceil(floor_hours / HOURS_PER_DAY)))
            base_days = max(1, ceil(floor_hours / (workers * HOURS_PER_DAY)))

            if match is not None:
                unit_price = match.unit_cost
            elif article.unit_price is not None:
                unit_price = article.unit_price
            else:
                unit_price = 0.0
            breakdown = match.breakdown if match is not None else None
            materials_rate = breakdown.materials if breakdown else 0.0

            previous: Optional[ScheduleTask] = None
            for floor in range(floor_count):
                if previous is None:
                    if batch_workers + workers > phase_workers and batch_workers > 0:
                        batch_start = batch_finish
                        batch_workers = 0
                        batch_finish = batch_start
                    start = batch_start
                    batch_workers += workers
                    predecessor = Predecessor(summary.uid, DependencyType.START_TO_START)
                else:
                    start = calendar.add_working_days(previous.start_date, lag)
                    predecessor = Predecessor(
                        previous.uid, DependencyType.START_TO_START, lag
                    )

                days = seasonal_duration(base_days, start, factors, calendar)
                finish = calendar.add_working_days(start, days)
                if finish > batch_finish:
                    batch_finish = finish

                resources = [
                    TaskResource(role.name, ResourceKind.LABOR, workers, role.hourly_rate, floor_hours)
                ]
                if breakdown is not None and breakdown.materials > 0:
                    resources.append(
                        TaskResource(
                            f"Materials - {match.price_code}",
                            ResourceKind.MATERIAL,
                            floor_quantity,
                            breakdown.materials,
                        )
                    )
                if breakdown is not None and breakdown.machinery > 0:
                    resources.append(
                        TaskResource(
                            f"Equipment - {match.price_code}",
                            ResourceKind.MACHINERY,
                            1,
                            breakdown.machinery * floor_quantity,
                            floor_hours,
                        )
                    )

                label = f" - Floor {floor}" if floor_count > 1 else ""
                task = ScheduleTask(
                    uid=next(next_uid),
                    name=f"{article.description or article.code}{label}",
                    start_date=start,
                    finish_date=finish,
                    duration_days=days,
                    phase=phase,
                    wbs_code=article.code,
                    duration_hours=floor_hours,
                    predecessors=[predecessor],
                    resources=resources,
                    cost=unit_price * floor_quantity,
                    material_cost=materials_rate * floor_quantity,
                    outline_level=3 if floor_count > 1 else 2,
                    parent_uid=summary.uid,
                )
                children.append(task)
                previous = task

        return children


def aggregate_resources(tasks: Iterable[ScheduleTask]) -> List[ProjectResource]:
    """Sum resource usage over all tasks, keyed by kind and name."""
    resources: Dict[str, ProjectResource] = {}
    for task in tasks:
        for res in task.resources:
            key = f"{res.kind.value}:{res.name}"
            if key not in resources:
                resources[key] = ProjectResource(res.name, res.kind, res.rate)
            aggregate = resources[key]
            aggregate.total_units += res.units
            aggregate.total_hours += res.hours
    return list(resources.values())


def daily_workers(tasks: Iterable[ScheduleTask], calendar: WorkingCalendar) -> Dict[date, float]:
    """Crew head count per working day over work tasks."""
    workers: Dict[date, float] = {}
    for task in tasks:
        if not task.is_work:
            continue
        count = task.worker_count
        for day in calendar.iter_working_days(task.start_date, task.finish_date):
            workers[day] = workers.get(day, 0) + count
    return workers


def summarize_team(schedule: ProjectSchedule, calendar: WorkingCalendar) -> TeamSummary:
    work = schedule.work_tasks()
    total_hours = sum(t.duration_hours for t in work)
    duration = schedule.total_duration_days
    average = total_hours / (duration * HOURS_PER_DAY) if duration > 0 else 0.0

    per_day = daily_workers(work, calendar)
    peak = max(per_day.values(), default=0)

    # ISO week of each task start, first week reaching the maximum wins
    per_week: Dict[str, float] = {}
    for task in work:
        year, week, _ = task.start_date.isocalendar()
        key = f"{year}-W{week:02d}"
        per_week[key] = per_week.get(key, 0) + task.worker_count
    peak_week = ""
    peak_count = 0
    for key, count in per_week.items():
        if count > peak_count:
            peak_week, peak_count = key, count

    return TeamSummary(
        max_workers=peak,
        average_workers=round(average, 1),
        total_man_hours=total_hours,
        peak_week=peak_week,
    )


def sequence(
    project: WbsProject,
    price_matches: Iterable[PriceMatch],
    options: Optional[SchedulerOptions] = None,
    phase_model: Optional[PhaseModel] = None,
    calendar: Optional[WorkingCalendar] = None,
) -> ProjectSchedule:
    """Build a schedule with a one-off PhaseSequencer."""
    return PhaseSequencer(phase_model, calendar, options).sequence(project, price_matches)
