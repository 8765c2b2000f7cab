"""Phase-level date arithmetic shared by the sequencer and the CCPM optimizer."""
from datetime import date
from typing import Dict, Mapping, Tuple

from sitechain.domain.calendar import WorkingCalendar
from sitechain.domain.phase import DependencyType, Phase, PhaseModel


def earliest_phase_start(
    phase: Phase,
    scheduled: Mapping[Phase, Tuple[date, date]],
    project_start: date,
    phase_model: PhaseModel,
    calendar: WorkingCalendar,
) -> date:
    """
    Earliest date a phase may start given the phases already scheduled.

    The start is the latest of the project start, every dependency's implied
    date (FS: predecessor finish + lag, SS: predecessor start + lag) and every
    non-overlap rule into the phase (phase_a finish + gap). Constraints on
    phases that are not scheduled are ignored.
    """
    start = project_start
    for dep in phase_model.get_phase_dependencies(phase):
        if dep.predecessor not in scheduled:
            continue
        pred_start, pred_finish = scheduled[dep.predecessor]
        if dep.relation == DependencyType.START_TO_START:
            bound = calendar.add_working_days(pred_start, dep.lag_days)
        else:
            bound = calendar.add_working_days(pred_finish, dep.lag_days)
        if bound > start:
            start = bound

    for rule in phase_model.non_overlap_rules_into(phase):
        if rule.phase_a not in scheduled:
            continue
        bound = calendar.add_working_days(scheduled[rule.phase_a][1], rule.min_gap_days)
        if bound > start:
            start = bound

    return start


def schedule_phases(
    phase_days: Mapping[Phase, int],
    project_start: date,
    phase_model: PhaseModel,
    calendar: WorkingCalendar,
) -> Dict[Phase, Tuple[date, date]]:
    """
    Lay out phases with fixed working-day durations.

    Phases are visited in the model's sequencing order; phases missing from
    phase_days are skipped.
    """
    project_start = calendar.next_working_day(project_start)
    scheduled: Dict[Phase, Tuple[date, date]] = {}
    for phase in phase_model.sequencing_order:
        if phase not in phase_days:
            continue
        start = earliest_phase_start(phase, scheduled, project_start, phase_model, calendar)
        scheduled[phase] = (start, calendar.add_working_days(start, phase_days[phase]))
    return scheduled
