import unittest
from datetime import date

from sitechain.config import NEUTRAL_SEASONAL_FACTORS, SchedulerOptions
from sitechain.domain.calendar import WorkingCalendar
from sitechain.domain.phase import Phase
from sitechain.domain.schedule import ProjectSchedule, ScheduleError
from sitechain.domain.wbs import WbsArticle, WbsChapter, WbsProject, WbsSubChapter
from sitechain.services.buffer_strategies import (
    CutAndPasteMethod,
    SumOfSquaresMethod,
    get_strategy,
)
from sitechain.services.critical_chain import (
    ChainLink,
    CriticalChainOptimizer,
    aggressive_duration,
    apply_critical_chain,
)
from sitechain.services.feeding_chain import identify_feeding_chains
from sitechain.services.sequencer import sequence


def make_project(articles, start=date(2025, 1, 6)):
    """Build a project from (chapter code, quantity) pairs of unpriced articles (2 h/unit)."""
    chapters = [
        WbsChapter(
            code,
            f"Chapter {code}",
            [WbsSubChapter(f"{code}.01", "Sub", [WbsArticle(f"{code}.01.001", f"Work {code}", "Ud", qty)])],
        )
        for code, qty in articles
    ]
    return WbsProject("Chain Test", start, chapters)


class BufferStrategyTestCase(unittest.TestCase):
    def setUp(self):
        self.links = [
            ChainLink(Phase.FOUNDATIONS, 1, 8, 5),
            ChainLink(Phase.STRUCTURE, 2, 10, 6),
        ]

    def test_sum_of_squares(self):
        self.assertAlmostEqual(SumOfSquaresMethod().calculate_buffer_size(self.links, 1.0), 5.0)
        self.assertAlmostEqual(SumOfSquaresMethod().calculate_buffer_size(self.links, 0.5), 2.5)

    def test_cut_and_paste(self):
        self.assertAlmostEqual(CutAndPasteMethod().calculate_buffer_size(self.links, 1.0), 7.0)

    def test_get_strategy(self):
        self.assertIsInstance(get_strategy("ssq"), SumOfSquaresMethod)
        self.assertIsInstance(get_strategy("cpm"), CutAndPasteMethod)
        with self.assertRaises(ValueError):
            get_strategy("median")


class AggressiveDurationTestCase(unittest.TestCase):
    def test_aggressive_duration(self):
        self.assertEqual(aggressive_duration(10, 0.5), 5)
        self.assertEqual(aggressive_duration(3, 0.5), 2)
        self.assertEqual(aggressive_duration(1, 0.5), 1)
        self.assertEqual(aggressive_duration(10, 0.0), 10)

    def test_buffer_days_rounding(self):
        optimizer = CriticalChainOptimizer(options=SchedulerOptions(buffer_method="cpm"))
        # 0.1 * 30 is 3.0000000000000004 in floating point
        self.assertEqual(optimizer.buffer_days([ChainLink(Phase.ROOF, 1, 40, 10)], 0.1), 3)
        self.assertEqual(optimizer.buffer_days([ChainLink(Phase.ROOF, 1, 1, 1)], 0.5), 1)
        self.assertEqual(optimizer.buffer_days([], 0.5), 1)


class SinglePhaseChainTestCase(unittest.TestCase):
    """One foundations phase of 160 h with two workers: ten days, five aggressive."""

    def setUp(self):
        self.calendar = WorkingCalendar()
        self.options = SchedulerOptions(
            max_workers=2,
            use_critical_chain=True,
            seasonal_factors=NEUTRAL_SEASONAL_FACTORS,
            procurement={},
        )
        self.project = make_project([("04", 80)])

    def test_baseline_without_buffers(self):
        schedule = sequence(self.project, [], self.options.replace(use_critical_chain=False))
        self.assertIsNone(schedule.critical_chain)
        self.assertEqual(schedule.total_duration_days, 10)
        self.assertEqual(schedule.finish_date, date(2025, 1, 20))

    def test_project_buffer(self):
        schedule = sequence(self.project, [], self.options)
        chain = schedule.critical_chain

        self.assertIsNotNone(chain)
        self.assertEqual(chain.original_duration_days, 10)
        self.assertEqual(chain.aggressive_duration_days, 5)
        # 0.5 * sqrt(5^2) = 2.5, rounded up
        self.assertEqual(chain.project_buffer_days, 3)
        self.assertEqual(chain.ccpm_duration_days, 8)
        self.assertEqual(chain.feeding_buffers, [])
        self.assertEqual(chain.safety_reduction_percent, 50)

        buffer = chain.project_buffer
        self.assertEqual(buffer.buffer_type, "project")
        self.assertEqual(buffer.name, "Project Buffer")
        self.assertEqual(buffer.start_date, date(2025, 1, 13))
        self.assertEqual(buffer.finish_date, date(2025, 1, 16))
        self.assertEqual(buffer.uid, max(t.uid for t in schedule.tasks) + 1)
        self.assertEqual(buffer.feeding_chain_uids, schedule.critical_path)

    def test_schedule_totals_follow_buffers(self):
        schedule = sequence(self.project, [], self.options)
        self.assertEqual(schedule.total_duration_days, 8)
        self.assertEqual(schedule.finish_date, date(2025, 1, 16))
        # Baseline task dates are kept
        self.assertEqual(schedule.phase_summary(Phase.FOUNDATIONS).finish_date, date(2025, 1, 20))

    def test_aggressive_plans(self):
        chain = sequence(self.project, [], self.options).critical_chain
        plan = chain.aggressive_phase_plans[Phase.FOUNDATIONS]
        self.assertEqual(plan.days, 5)
        self.assertEqual(plan.finish_date, date(2025, 1, 13))

    def test_cut_and_paste_with_full_ratio(self):
        options = self.options.replace(buffer_method="cpm", project_buffer_ratio=1.0)
        chain = sequence(self.project, [], options).critical_chain
        self.assertEqual(chain.project_buffer_days, 5)
        self.assertIn("Cut-and-Paste", chain.project_buffer.strategy_name)

    def test_apply_to_existing_schedule(self):
        baseline = sequence(self.project, [], self.options.replace(use_critical_chain=False))
        data = apply_critical_chain(baseline, self.options)
        self.assertEqual(data.ccpm_duration_days, 8)
        # Applying does not attach the result
        self.assertIsNone(baseline.critical_chain)

    def test_schedule_without_plans(self):
        schedule = ProjectSchedule("Empty", date(2025, 1, 6), [])
        with self.assertRaises(ScheduleError):
            CriticalChainOptimizer().apply(schedule)


class FeedingBufferTestCase(unittest.TestCase):
    """
    External walls (5 days) and roof (3 days) both feed insulation (5 days).

    Walls are critical; the roof is a feeding chain merging into insulation.
    """

    def setUp(self):
        self.options = SchedulerOptions(
            use_critical_chain=True,
            seasonal_factors=NEUTRAL_SEASONAL_FACTORS,
            procurement={},
        )
        # 400 h of walls (10 workers), 20 h of roof (1 worker), 80 h of insulation
        project = make_project([("08", 200), ("09", 10), ("28", 40)])
        self.schedule = sequence(project, [], self.options)
        self.walls = self.schedule.phase_summary(Phase.EXTERNAL_WALLS)
        self.roof = self.schedule.phase_summary(Phase.ROOF)
        self.insulation = self.schedule.phase_summary(Phase.INSULATION)

    def test_baseline(self):
        self.assertEqual(self.walls.finish_date, date(2025, 1, 13))
        self.assertEqual(self.roof.finish_date, date(2025, 1, 9))
        self.assertEqual(self.insulation.start_date, date(2025, 1, 13))
        self.assertEqual(self.insulation.finish_date, date(2025, 1, 20))

        path = self.schedule.critical_path
        self.assertIn(self.walls.uid, path)
        self.assertIn(self.insulation.uid, path)
        self.assertNotIn(self.roof.uid, path)

    def test_feeding_chains(self):
        chains = identify_feeding_chains(self.schedule.tasks, self.schedule.critical_path)
        self.assertEqual(len(chains), 1)
        self.assertEqual(chains[0].merge_uid, self.insulation.uid)
        self.assertEqual(chains[0].uids, [self.roof.uid])

    def test_buffers(self):
        chain = self.schedule.critical_chain
        self.assertEqual(chain.aggressive_duration_days, 6)
        # Walls and insulation each lose 2 days: 0.5 * sqrt(8), rounded up
        self.assertEqual(chain.project_buffer_days, 2)
        self.assertEqual(chain.project_buffer.start_date, date(2025, 1, 14))

        self.assertEqual(len(chain.feeding_buffers), 1)
        feeding = chain.feeding_buffers[0]
        self.assertEqual(feeding.name, "Feeding Buffer: Roof")
        self.assertEqual(feeding.protects_task_uid, self.insulation.uid)
        self.assertEqual(feeding.feeding_chain_uids, [self.roof.uid])
        self.assertEqual(feeding.duration_days, 1)
        # Placed as late as possible: ends where insulation starts in the aggressive plan
        self.assertEqual(feeding.start_date, date(2025, 1, 8))
        self.assertEqual(feeding.finish_date, date(2025, 1, 9))

    def test_buffer_uids_follow_task_uids(self):
        chain = self.schedule.critical_chain
        top = max(t.uid for t in self.schedule.tasks)
        self.assertEqual([b.uid for b in chain.buffers], [top + 1, top + 2])

    def test_to_dict(self):
        data = self.schedule.critical_chain.to_dict()
        self.assertEqual(len(data["buffers"]), 2)
        self.assertEqual(data["ccpm_duration_days"], 8)
        self.assertEqual(data["buffers"][1]["type"], "feeding")


if __name__ == "__main__":
    unittest.main()
