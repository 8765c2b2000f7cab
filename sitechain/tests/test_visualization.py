"""
Tests for the chart builders.

Charts are drawn on the Agg backend from the sample residential block.
"""

import io
import os
import tempfile
import unittest
from contextlib import redirect_stdout

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from sitechain.__main__ import main
from sitechain.config import CapacityConstraints, SchedulerOptions
from sitechain.domain.phase import PhaseModel
from sitechain.examples.sample_project import build_sample_project
from sitechain.services.capacity import optimize
from sitechain.services.sequencer import sequence
from sitechain.visualization.capacity_chart import create_capacity_chart
from sitechain.visualization.fever_chart import create_fever_chart, generate_fever_chart_data
from sitechain.visualization.gantt import chart_buffers, create_buffer_chart, create_gantt_chart
from sitechain.visualization.network import create_phase_network


class VisualizationTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        project, matches = build_sample_project()
        cls.phase_model = PhaseModel.default()
        cls.baseline = sequence(project, matches, SchedulerOptions(), cls.phase_model)
        cls.schedule = sequence(
            project, matches, SchedulerOptions(use_critical_chain=True), cls.phase_model
        )

    def tearDown(self):
        plt.close("all")

    def test_gantt_chart(self):
        self.assertIsInstance(create_gantt_chart(self.schedule, show=False), Figure)
        self.assertIsInstance(
            create_gantt_chart(self.baseline, show=False, include_leaves=False), Figure
        )

    def test_gantt_chart_saved(self):
        with tempfile.TemporaryDirectory() as tmp:
            filename = os.path.join(tmp, "gantt.png")
            create_gantt_chart(self.schedule, filename, show=False)
            self.assertTrue(os.path.exists(filename))

    def test_buffer_charts(self):
        self.assertIsInstance(create_buffer_chart(self.schedule, show=False), Figure)
        self.assertIsInstance(create_fever_chart(self.schedule, show=False), Figure)

    def test_no_buffers(self):
        self.assertEqual(chart_buffers(self.baseline), [])
        self.assertIsNone(create_buffer_chart(self.baseline, show=False))
        self.assertIsNone(create_fever_chart(self.baseline, show=False))

    def test_fever_chart_data(self):
        chain = self.schedule.critical_chain
        data = generate_fever_chart_data(chain)
        self.assertEqual(list(data), [b.uid for b in chain.buffers])
        project = data[chain.project_buffer.uid]
        self.assertEqual(project["buffer_type"], "project")
        self.assertEqual(project["zone"], "green")

    def test_capacity_chart(self):
        optimized = optimize(self.baseline, CapacityConstraints(), self.phase_model)
        self.assertIsInstance(create_capacity_chart(optimized, show=False), Figure)

    def test_phase_network(self):
        self.assertIsInstance(create_phase_network(self.phase_model, show=False), Figure)
        self.assertIsInstance(
            create_phase_network(self.phase_model, self.schedule, show=False, layout="spring"),
            Figure,
        )


class CommandLineTestCase(unittest.TestCase):
    def tearDown(self):
        plt.close("all")

    def test_sample_run(self):
        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(main(["--ccpm", "--optimize", "--log-level", "WARNING"]), 0)
        report = out.getvalue()
        self.assertIn("Schedule Report: Residential Block A", report)
        self.assertIn("Phases:", report)


if __name__ == "__main__":
    unittest.main()
