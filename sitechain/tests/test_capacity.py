import unittest
from datetime import date

from sitechain.config import CapacityConstraints
from sitechain.domain.calendar import WorkingCalendar
from sitechain.domain.phase import DependencyType, Phase, PhaseModel, PhaseOverlapRule
from sitechain.domain.schedule import ProjectSchedule
from sitechain.domain.task import Predecessor, ResourceKind, ScheduleTask, TaskResource
from sitechain.services.capacity import (
    Bottleneck,
    BottleneckKind,
    OptimizedSchedule,
    Severity,
    SiteCapacityOptimizer,
    build_capacity_timeline,
    detect_violations,
    equipment_severity,
    find_phase_conflicts,
    generate_suggestions,
    optimize,
    overload_severity,
)
from sitechain.services.critical_path import find_critical_path, find_dependency_violations

SS = DependencyType.START_TO_START
CALENDAR = WorkingCalendar()


def make_task(uid, phase, start, days, predecessors=(), parent=None, workers=0, **kwargs):
    resources = []
    if workers:
        resources.append(TaskResource("Crew", ResourceKind.LABOR, workers, 14, days * 8 * workers))
    return ScheduleTask(
        uid=uid,
        name=f"Task {uid}",
        start_date=start,
        finish_date=CALENDAR.add_working_days(start, days),
        duration_days=days,
        phase=phase,
        predecessors=list(predecessors),
        resources=resources,
        parent_uid=parent,
        **kwargs,
    )


def make_schedule(tasks, critical_path=None):
    if critical_path is None:
        critical_path = find_critical_path(tasks)
    return ProjectSchedule(
        "Capacity Test",
        date(2025, 1, 6),
        tasks,
        critical_path=critical_path,
        calendar=CALENDAR,
    )


DRYING_RULE = PhaseOverlapRule(
    Phase.INTERNAL_FINISHES, Phase.PAINTING, False, 3, "Plaster must dry before painting"
)


def conflicting_tasks():
    jan6, jan8 = date(2025, 1, 6), date(2025, 1, 8)
    return [
        make_task(1, Phase.INTERNAL_FINISHES, jan6, 5, is_summary=True),
        make_task(2, Phase.INTERNAL_FINISHES, jan6, 5, [Predecessor(1, SS)], parent=1, workers=4),
        make_task(3, Phase.PAINTING, jan8, 3, is_summary=True),
        make_task(4, Phase.PAINTING, jan8, 3, [Predecessor(3, SS)], parent=3, workers=2),
    ]


class SeverityTestCase(unittest.TestCase):
    def test_overload_severity(self):
        self.assertEqual(overload_severity(11), Severity.HIGH)
        self.assertEqual(overload_severity(10), Severity.MEDIUM)
        self.assertEqual(overload_severity(6), Severity.MEDIUM)
        self.assertEqual(overload_severity(5), Severity.LOW)

    def test_equipment_severity(self):
        self.assertEqual(equipment_severity(2, 1), Severity.MEDIUM)
        self.assertEqual(equipment_severity(3, 1), Severity.HIGH)


class CapacityTimelineTestCase(unittest.TestCase):
    """Earthworks and foundations share the single crane for two days."""

    def setUp(self):
        jan6 = date(2025, 1, 6)
        self.tasks = [
            make_task(1, Phase.EARTHWORKS, jan6, 2, workers=3),
            make_task(2, Phase.FOUNDATIONS, jan6, 5, workers=5),
            make_task(3, Phase.FOUNDATIONS, jan6, 5, is_summary=True),
        ]
        self.model = PhaseModel.default()

    def test_daily_points(self):
        timeline = build_capacity_timeline(self.tasks, self.model, CALENDAR, CapacityConstraints())
        self.assertEqual([p.day for p in timeline][:3], [date(2025, 1, 6), date(2025, 1, 7), date(2025, 1, 8)])
        self.assertEqual(len(timeline), 5)

        first = timeline[0]
        self.assertEqual(first.workers, 8)
        self.assertEqual(first.capacity, 20)
        self.assertAlmostEqual(first.utilization_percent, 40.0)
        self.assertFalse(first.is_bottleneck)
        self.assertEqual(first.phase_workers, {Phase.EARTHWORKS: 3, Phase.FOUNDATIONS: 5})
        self.assertEqual(first.phase_caps[Phase.FOUNDATIONS], 15)
        self.assertEqual(first.equipment["crane"], (2, 1))
        self.assertEqual(first.equipment["concrete_pump"], (1, 1))

        self.assertEqual(timeline[2].workers, 5)
        self.assertEqual(timeline[2].equipment["crane"], (1, 1))

    def test_point_to_dict(self):
        timeline = build_capacity_timeline(self.tasks, self.model, CALENDAR, CapacityConstraints())
        data = timeline[0].to_dict()
        self.assertEqual(data["date"], "2025-01-06")
        self.assertEqual(data["utilization_percent"], 40.0)
        self.assertIn({"name": "crane", "count": 2, "max": 1}, data["equipment"])

    def test_equipment_conflicts(self):
        timeline = build_capacity_timeline(self.tasks, self.model, CALENDAR, CapacityConstraints())
        bottlenecks = detect_violations(timeline, self.tasks, [], CALENDAR)
        self.assertEqual(len(bottlenecks), 2)
        self.assertTrue(all(b.kind == BottleneckKind.EQUIPMENT for b in bottlenecks))
        self.assertEqual(bottlenecks[0].severity, Severity.MEDIUM)
        self.assertIn("crane", bottlenecks[0].reason)

    def test_capacity_overloads(self):
        constraints = CapacityConstraints(max_workers_per_floor=6, equipment_limits={"crane": 2})
        timeline = build_capacity_timeline(self.tasks, self.model, CALENDAR, constraints)
        bottlenecks = detect_violations(timeline, self.tasks, [], CALENDAR)
        self.assertEqual([b.day for b in bottlenecks], [date(2025, 1, 6), date(2025, 1, 7)])
        self.assertEqual(bottlenecks[0].kind, BottleneckKind.CAPACITY)
        self.assertEqual(bottlenecks[0].overload, 2)
        self.assertEqual(bottlenecks[0].severity, Severity.LOW)


class PhaseConflictTestCase(unittest.TestCase):
    def test_conflict_found(self):
        conflicts = find_phase_conflicts(conflicting_tasks(), [DRYING_RULE], CALENDAR)
        self.assertEqual(len(conflicts), 1)
        conflict = conflicts[0]
        self.assertEqual(conflict.kind, BottleneckKind.PHASE_CONFLICT)
        self.assertEqual(conflict.task_uids, [2, 4])
        self.assertEqual(conflict.day, date(2025, 1, 8))
        self.assertEqual(conflict.phases, [Phase.INTERNAL_FINISHES, Phase.PAINTING])

    def test_gap_respected(self):
        tasks = conflicting_tasks()
        tasks[3].reschedule(date(2025, 1, 16), CALENDAR)
        self.assertEqual(find_phase_conflicts(tasks, [DRYING_RULE], CALENDAR), [])


class SuggestionTestCase(unittest.TestCase):
    def test_balanced(self):
        suggestions = generate_suggestions([])
        self.assertEqual(len(suggestions), 1)
        self.assertEqual(suggestions[0].title, "Schedule is balanced")

    def test_one_per_problem_kind(self):
        day = date(2025, 1, 6)
        bottlenecks = [
            Bottleneck(day, BottleneckKind.CAPACITY, 12, [Phase.STRUCTURE], "Overload", Severity.HIGH),
            Bottleneck(day, BottleneckKind.EQUIPMENT, 1, [Phase.STRUCTURE], "Crane", Severity.MEDIUM),
            Bottleneck(
                day, BottleneckKind.PHASE_CONFLICT, 0, [Phase.STRUCTURE], "Curing", Severity.MEDIUM, [3, 8]
            ),
        ]
        suggestions = generate_suggestions(bottlenecks)
        self.assertEqual(
            [s.title for s in suggestions],
            ["1 critical overloads detected", "1 phase conflicts", "1 equipment conflicts"],
        )
        self.assertEqual(suggestions[1].affected_task_uids, [3, 8])


class SiteCapacityOptimizerTestCase(unittest.TestCase):
    """Test cases for the detect-then-repair capacity optimizer."""

    def setUp(self):
        self.model = PhaseModel.default()

    def test_balanced_schedule_is_unchanged(self):
        schedule = make_schedule(conflicting_tasks()[:2])
        result = optimize(schedule, CapacityConstraints(overlap_rules=[]), self.model)

        self.assertIsInstance(result, OptimizedSchedule)
        self.assertEqual(result.bottlenecks, [])
        self.assertEqual(result.adjustments, [])
        self.assertEqual(result.suggestions[0].title, "Schedule is balanced")
        self.assertEqual(result.original_duration_days, result.optimized_duration_days)
        self.assertEqual(result.efficiency_gain, 0.0)

    def test_phase_conflicts_are_sequenced(self):
        schedule = make_schedule(conflicting_tasks())
        optimizer = SiteCapacityOptimizer(self.model, CALENDAR, CapacityConstraints(overlap_rules=[DRYING_RULE]))
        result = optimizer.optimize(schedule)

        self.assertEqual([b.kind for b in result.bottlenecks], [BottleneckKind.PHASE_CONFLICT])
        self.assertEqual(result.remaining_bottlenecks, [])
        self.assertEqual(result.suggestions[0].title, "1 phase conflicts")

        painting = next(t for t in result.tasks if t.uid == 4)
        self.assertEqual(painting.start_date, date(2025, 1, 16))
        self.assertEqual(result.original_duration_days, 5)
        self.assertEqual(result.optimized_duration_days, 11)
        self.assertLess(result.efficiency_gain, 0)

        # The input schedule is left alone
        self.assertEqual(schedule.get_task(4).start_date, date(2025, 1, 8))

    def test_overload_is_leveled(self):
        jan6, jan20 = date(2025, 1, 6), date(2025, 1, 20)
        tasks = [
            make_task(1, Phase.FOUNDATIONS, jan6, 10, is_summary=True),
            make_task(2, Phase.FOUNDATIONS, jan6, 5, [Predecessor(1, SS)], parent=1, workers=8),
            make_task(3, Phase.FOUNDATIONS, jan6, 2, [Predecessor(1, SS)], parent=1, workers=4),
            make_task(4, Phase.STRUCTURE, jan20, 5, [Predecessor(1)], is_summary=True),
            make_task(5, Phase.STRUCTURE, jan20, 5, [Predecessor(4, SS)], parent=4, workers=5),
            make_task(6, Phase.FOUNDATIONS, jan6, 10, [Predecessor(1, SS)], parent=1, workers=1),
        ]
        schedule = make_schedule(tasks, critical_path=[1, 2, 4, 5])
        constraints = CapacityConstraints(max_workers_per_floor=10, overlap_rules=[])
        result = optimize(schedule, constraints, self.model)

        self.assertEqual(len(result.bottlenecks), 2)
        self.assertEqual(result.remaining_bottlenecks, [])
        self.assertTrue(all(p.workers <= 10 for p in result.optimized_timeline))
        self.assertEqual(result.optimized_duration_days, result.original_duration_days)
        self.assertEqual(result.critical_path, [1, 2, 4, 5])

    def test_crowded_task_is_split(self):
        jan6, jan20 = date(2025, 1, 6), date(2025, 1, 20)
        tasks = [
            make_task(1, Phase.STRUCTURE, jan6, 10, is_summary=True),
            make_task(2, Phase.STRUCTURE, jan6, 10, [Predecessor(1, SS)], parent=1, workers=20),
            make_task(3, Phase.ROOF, jan20, 2, [Predecessor(1)], is_summary=True),
            make_task(4, Phase.ROOF, jan20, 2, [Predecessor(3, SS), Predecessor(2)], parent=3, workers=2),
        ]
        schedule = make_schedule(tasks)
        constraints = CapacityConstraints(max_workers_per_floor=15, overlap_rules=[])
        result = optimize(schedule, constraints, self.model)

        self.assertTrue(all(b.kind == BottleneckKind.CAPACITY for b in result.bottlenecks))
        self.assertEqual(result.remaining_bottlenecks, [])
        self.assertEqual(len(result.tasks), 5)
        self.assertEqual(max(p.workers for p in result.optimized_timeline), 10)
        self.assertEqual(find_dependency_violations(result.tasks, CALENDAR), [])

        optimized = result.to_schedule()
        self.assertEqual(len(optimized.tasks), 5)
        self.assertEqual(optimized.finish_date, schedule.finish_date)

    def test_to_dict(self):
        schedule = make_schedule(conflicting_tasks())
        result = optimize(schedule, CapacityConstraints(overlap_rules=[DRYING_RULE]), self.model)
        data = result.to_dict()
        self.assertEqual(len(data["bottlenecks"]), 1)
        self.assertEqual(data["bottlenecks"][0]["kind"], "phase_conflict")
        self.assertEqual(data["adjustments"][0]["new_start"], "2025-01-16")


if __name__ == "__main__":
    unittest.main()
