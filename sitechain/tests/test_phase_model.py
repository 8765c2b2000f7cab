import unittest

from sitechain.domain.phase import (
    DEFAULT_DEPENDENCIES,
    DependencyType,
    Phase,
    PhaseDependency,
    PhaseModel,
    PhaseModelError,
    PhaseOverlapRule,
)


class PhaseModelTestCase(unittest.TestCase):
    """Test cases for the default phase model and its validation."""

    def setUp(self):
        self.model = PhaseModel.default()

    def test_sequencing_order_respects_dependencies(self):
        order = self.model.sequencing_order
        self.assertEqual(len(order), len(Phase))
        self.assertEqual(order[0], Phase.SITE_SETUP)

        position = {phase: i for i, phase in enumerate(order)}
        for dep in self.model.dependencies:
            self.assertLess(position[dep.predecessor], position[dep.phase], dep)
        for rule in self.model.non_overlap_rules():
            self.assertLess(position[rule.phase_a], position[rule.phase_b], rule)

    def test_dependency_lookup(self):
        deps = self.model.get_phase_dependencies(Phase.WATERPROOFING)
        self.assertEqual(len(deps), 1)
        self.assertEqual(deps[0].predecessor, Phase.ROOF)
        self.assertEqual(deps[0].relation, DependencyType.START_TO_START)
        self.assertEqual(deps[0].lag_days, 2)

        self.assertEqual(self.model.get_phase_dependencies(Phase.SITE_SETUP), ())

    def test_overlap_rule_lookup_in_either_direction(self):
        rule = self.model.get_overlap_rule(Phase.PAINTING, Phase.INTERNAL_FINISHES)
        self.assertIsNotNone(rule)
        self.assertEqual(rule.phase_a, Phase.INTERNAL_FINISHES)
        self.assertFalse(rule.can_overlap)
        self.assertEqual(rule.min_gap_days, 3)

        self.assertIsNone(self.model.get_overlap_rule(Phase.SITE_SETUP, Phase.CLEANUP))

    def test_non_overlap_rules_into(self):
        sources = {r.phase_a for r in self.model.non_overlap_rules_into(Phase.PAINTING)}
        self.assertEqual(sources, {Phase.INTERNAL_FINISHES, Phase.CEILINGS})

    def test_chapter_to_phase(self):
        self.assertEqual(self.model.chapter_to_phase("06.01.003"), Phase.STRUCTURE)
        self.assertEqual(self.model.chapter_to_phase("6.01.003"), Phase.STRUCTURE)
        self.assertEqual(self.model.chapter_to_phase("04"), Phase.FOUNDATIONS)
        self.assertEqual(self.model.chapter_to_phase("23.02"), Phase.ROUGH_IN_ELECTRICAL)
        # Unknown chapters fall back to site setup
        self.assertEqual(self.model.chapter_to_phase("99.01"), Phase.SITE_SETUP)

    def test_equipment_and_roles(self):
        self.assertEqual(
            self.model.get_equipment(Phase.STRUCTURE), ("crane", "concrete_pump", "scaffolding")
        )
        self.assertEqual(self.model.get_equipment(Phase.PLUMBING_FIXTURES), ())
        self.assertEqual(self.model.equipment_types()[0], "crane")
        self.assertEqual(self.model.labor_role(Phase.PAINTING).name, "Painter")
        self.assertTrue(self.model.is_floor_staggered(Phase.STRUCTURE))
        self.assertFalse(self.model.is_floor_staggered(Phase.ROOF))

    def test_graph_is_a_copy(self):
        graph = self.model.graph
        graph.remove_node(Phase.STRUCTURE)
        self.assertIn(Phase.STRUCTURE, self.model.graph)

    def test_graph_edge_kinds(self):
        graph = self.model.graph
        self.assertEqual(graph.edges[Phase.ROOF, Phase.WATERPROOFING]["relation"], "SS")
        self.assertEqual(graph.edges[Phase.STRUCTURE, Phase.WATERPROOFING]["kind"], "overlap")

    def test_cycle_is_rejected(self):
        dependencies = list(DEFAULT_DEPENDENCIES) + [
            PhaseDependency(Phase.FOUNDATIONS, Phase.STRUCTURE)
        ]
        with self.assertRaises(PhaseModelError):
            PhaseModel(dependencies=dependencies)

    def test_overlap_rule_cycle_is_rejected(self):
        rules = [PhaseOverlapRule(Phase.STRUCTURE, Phase.FOUNDATIONS, False, 1)]
        with self.assertRaises(PhaseModelError):
            PhaseModel(overlap_rules=rules)

    def test_invalid_tables(self):
        small = [Phase.SITE_SETUP, Phase.FOUNDATIONS]
        with self.assertRaises(PhaseModelError):
            PhaseModel(
                phase_order=small,
                dependencies=[PhaseDependency(Phase.STRUCTURE, Phase.FOUNDATIONS)],
                overlap_rules=[],
            )
        with self.assertRaises(PhaseModelError):
            PhaseModel(
                phase_order=small,
                dependencies=[PhaseDependency(Phase.FOUNDATIONS, Phase.SITE_SETUP, lag_days=-1)],
                overlap_rules=[],
            )
        with self.assertRaises(PhaseModelError):
            PhaseModel(phase_order=small + [Phase.SITE_SETUP], dependencies=[], overlap_rules=[])
        with self.assertRaises(PhaseModelError):
            PhaseModel(floor_stagger_lag=-1)

    def test_small_custom_model(self):
        model = PhaseModel(
            phase_order=[Phase.FOUNDATIONS, Phase.SITE_SETUP],
            dependencies=[PhaseDependency(Phase.FOUNDATIONS, Phase.SITE_SETUP)],
            overlap_rules=[],
        )
        self.assertEqual(model.sequencing_order, (Phase.SITE_SETUP, Phase.FOUNDATIONS))


if __name__ == "__main__":
    unittest.main()
