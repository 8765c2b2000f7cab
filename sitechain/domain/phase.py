from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import networkx as nx


class PhaseModelError(Exception):
    """Exception raised for invalid phase model configuration."""

    pass


class Phase(str, Enum):
    """
    Construction activity categories, declared in canonical execution order.
    """

    SITE_SETUP = "site_setup"
    DEMOLITION = "demolition"
    EARTHWORKS = "earthworks"
    FOUNDATIONS = "foundations"
    STRUCTURE = "structure"
    EXTERNAL_WALLS = "external_walls"
    ROOF = "roof"
    WATERPROOFING = "waterproofing"
    EXTERNAL_FRAMES = "external_frames"
    ROUGH_IN_PLUMBING = "rough_in_plumbing"
    ROUGH_IN_ELECTRICAL = "rough_in_electrical"
    ROUGH_IN_GAS = "rough_in_gas"
    ROUGH_IN_TELECOM = "rough_in_telecom"
    ROUGH_IN_HVAC = "rough_in_hvac"
    INTERNAL_WALLS = "internal_walls"
    INSULATION = "insulation"
    EXTERNAL_FINISHES = "external_finishes"
    INTERNAL_FINISHES = "internal_finishes"
    FLOORING = "flooring"
    CEILINGS = "ceilings"
    CARPENTRY = "carpentry"
    PLUMBING_FIXTURES = "plumbing_fixtures"
    ELECTRICAL_FIXTURES = "electrical_fixtures"
    PAINTING = "painting"
    METALWORK = "metalwork"
    FIRE_SAFETY = "fire_safety"
    ELEVATORS = "elevators"
    EXTERNAL_WORKS = "external_works"
    TESTING = "testing"
    CLEANUP = "cleanup"


PHASE_ORDER: Tuple[Phase, ...] = tuple(Phase)

PHASE_DISPLAY_NAMES = {
    Phase.SITE_SETUP: "Site Setup",
    Phase.DEMOLITION: "Demolition",
    Phase.EARTHWORKS: "Earthworks",
    Phase.FOUNDATIONS: "Foundations",
    Phase.STRUCTURE: "Structure",
    Phase.EXTERNAL_WALLS: "External Walls",
    Phase.ROOF: "Roof",
    Phase.WATERPROOFING: "Waterproofing",
    Phase.EXTERNAL_FRAMES: "Window and Door Frames",
    Phase.ROUGH_IN_PLUMBING: "Plumbing Rough-in",
    Phase.ROUGH_IN_ELECTRICAL: "Electrical Rough-in",
    Phase.ROUGH_IN_GAS: "Gas Rough-in",
    Phase.ROUGH_IN_TELECOM: "Telecom Rough-in",
    Phase.ROUGH_IN_HVAC: "HVAC Rough-in",
    Phase.INTERNAL_WALLS: "Internal Walls",
    Phase.INSULATION: "Insulation",
    Phase.EXTERNAL_FINISHES: "External Finishes",
    Phase.INTERNAL_FINISHES: "Internal Finishes",
    Phase.FLOORING: "Flooring",
    Phase.CEILINGS: "Ceilings",
    Phase.CARPENTRY: "Carpentry",
    Phase.PLUMBING_FIXTURES: "Plumbing Fixtures",
    Phase.ELECTRICAL_FIXTURES: "Electrical Fixtures",
    Phase.PAINTING: "Painting",
    Phase.METALWORK: "Metalwork",
    Phase.FIRE_SAFETY: "Fire Safety",
    Phase.ELEVATORS: "Elevators",
    Phase.EXTERNAL_WORKS: "External Works",
    Phase.TESTING: "Testing and Commissioning",
    Phase.CLEANUP: "Final Cleanup",
}


class DependencyType(str, Enum):
    """Relation between a phase (or task) and its predecessor."""

    FINISH_TO_START = "FS"
    START_TO_START = "SS"


FS = DependencyType.FINISH_TO_START
SS = DependencyType.START_TO_START


class PhaseDependency:
    """A phase's dependency on a predecessor phase."""

    __slots__ = ("phase", "predecessor", "relation", "lag_days")

    def __init__(
        self,
        phase: Phase,
        predecessor: Phase,
        relation: DependencyType = FS,
        lag_days: int = 0,
    ):
        self.phase = Phase(phase)
        self.predecessor = Phase(predecessor)
        self.relation = DependencyType(relation)
        self.lag_days = lag_days

    def __eq__(self, other):
        if not isinstance(other, PhaseDependency):
            return NotImplemented
        return (self.phase, self.predecessor, self.relation, self.lag_days) == (
            other.phase,
            other.predecessor,
            other.relation,
            other.lag_days,
        )

    def __hash__(self):
        return hash((self.phase, self.predecessor, self.relation, self.lag_days))

    def __repr__(self):
        lag = f"+{self.lag_days}" if self.lag_days else ""
        return (
            f"PhaseDependency({self.phase.value} <- "
            f"{self.predecessor.value} {self.relation.value}{lag})"
        )


class PhaseOverlapRule:
    """
    Whether two phases may run at the same time.

    When can_overlap is False, phase_b must not start before phase_a has
    finished plus min_gap_days working days.
    """

    __slots__ = ("phase_a", "phase_b", "can_overlap", "min_gap_days", "reason")

    def __init__(
        self,
        phase_a: Phase,
        phase_b: Phase,
        can_overlap: bool,
        min_gap_days: int = 0,
        reason: str = "",
    ):
        self.phase_a = Phase(phase_a)
        self.phase_b = Phase(phase_b)
        self.can_overlap = can_overlap
        self.min_gap_days = min_gap_days
        self.reason = reason

    def involves(self, first: Phase, second: Phase) -> bool:
        return {self.phase_a, self.phase_b} == {first, second}

    def to_dict(self) -> Dict:
        return {
            "phase_a": self.phase_a.value,
            "phase_b": self.phase_b.value,
            "can_overlap": self.can_overlap,
            "min_gap_days": self.min_gap_days,
            "reason": self.reason,
        }

    def __repr__(self):
        mode = "overlap" if self.can_overlap else f"gap={self.min_gap_days}"
        return f"PhaseOverlapRule({self.phase_a.value} -> {self.phase_b.value}, {mode})"


class LaborRole:
    """Trade assigned to a phase's leaf tasks, with its hourly rate in euros."""

    __slots__ = ("name", "hourly_rate")

    def __init__(self, name: str, hourly_rate: float):
        self.name = name
        self.hourly_rate = hourly_rate

    def __repr__(self):
        return f"LaborRole({self.name!r}, {self.hourly_rate})"


class ProcurementItem:
    """Long-lead material that must arrive before a phase can begin."""

    __slots__ = ("name", "lead_days")

    def __init__(self, name: str, lead_days: int):
        self.name = name
        self.lead_days = lead_days

    def __repr__(self):
        return f"ProcurementItem({self.name!r}, {self.lead_days})"


def _dep(phase, predecessor, relation=FS, lag=0):
    return PhaseDependency(phase, predecessor, relation, lag)


DEFAULT_DEPENDENCIES = (
    _dep(Phase.DEMOLITION, Phase.SITE_SETUP),
    _dep(Phase.EARTHWORKS, Phase.SITE_SETUP),
    _dep(Phase.EARTHWORKS, Phase.DEMOLITION),
    _dep(Phase.FOUNDATIONS, Phase.EARTHWORKS),
    _dep(Phase.STRUCTURE, Phase.FOUNDATIONS),
    _dep(Phase.EXTERNAL_WALLS, Phase.STRUCTURE),
    _dep(Phase.ROOF, Phase.STRUCTURE),
    _dep(Phase.WATERPROOFING, Phase.ROOF, SS, 2),
    _dep(Phase.EXTERNAL_FRAMES, Phase.EXTERNAL_WALLS),
    _dep(Phase.ROUGH_IN_PLUMBING, Phase.EXTERNAL_WALLS, SS, 5),
    _dep(Phase.ROUGH_IN_ELECTRICAL, Phase.EXTERNAL_WALLS, SS, 5),
    _dep(Phase.ROUGH_IN_GAS, Phase.EXTERNAL_WALLS, SS, 7),
    _dep(Phase.ROUGH_IN_TELECOM, Phase.ROUGH_IN_ELECTRICAL, SS, 3),
    _dep(Phase.ROUGH_IN_HVAC, Phase.EXTERNAL_WALLS, SS, 5),
    _dep(Phase.INTERNAL_WALLS, Phase.EXTERNAL_WALLS),
    _dep(Phase.INTERNAL_WALLS, Phase.ROUGH_IN_PLUMBING, SS, 3),
    _dep(Phase.INSULATION, Phase.EXTERNAL_WALLS),
    _dep(Phase.INSULATION, Phase.ROOF),
    _dep(Phase.EXTERNAL_FINISHES, Phase.INSULATION),
    _dep(Phase.EXTERNAL_FINISHES, Phase.WATERPROOFING),
    _dep(Phase.INTERNAL_FINISHES, Phase.INTERNAL_WALLS),
    _dep(Phase.INTERNAL_FINISHES, Phase.ROUGH_IN_ELECTRICAL),
    _dep(Phase.FLOORING, Phase.INTERNAL_FINISHES, SS, 5),
    _dep(Phase.CEILINGS, Phase.ROUGH_IN_ELECTRICAL),
    _dep(Phase.CEILINGS, Phase.ROUGH_IN_HVAC),
    _dep(Phase.CARPENTRY, Phase.INTERNAL_FINISHES),
    _dep(Phase.PLUMBING_FIXTURES, Phase.INTERNAL_FINISHES),
    _dep(Phase.PLUMBING_FIXTURES, Phase.FLOORING, SS, 3),
    _dep(Phase.ELECTRICAL_FIXTURES, Phase.INTERNAL_FINISHES),
    _dep(Phase.ELECTRICAL_FIXTURES, Phase.CEILINGS),
    _dep(Phase.PAINTING, Phase.CARPENTRY),
    _dep(Phase.PAINTING, Phase.INTERNAL_FINISHES),
    _dep(Phase.METALWORK, Phase.STRUCTURE),
    _dep(Phase.METALWORK, Phase.EXTERNAL_WALLS),
    _dep(Phase.FIRE_SAFETY, Phase.ROUGH_IN_ELECTRICAL),
    _dep(Phase.FIRE_SAFETY, Phase.CEILINGS),
    _dep(Phase.ELEVATORS, Phase.STRUCTURE),
    _dep(Phase.EXTERNAL_WORKS, Phase.EXTERNAL_FINISHES, SS, 5),
    _dep(Phase.TESTING, Phase.ELECTRICAL_FIXTURES),
    _dep(Phase.TESTING, Phase.PLUMBING_FIXTURES),
    _dep(Phase.TESTING, Phase.FIRE_SAFETY),
    _dep(Phase.CLEANUP, Phase.TESTING),
    _dep(Phase.CLEANUP, Phase.PAINTING),
    _dep(Phase.CLEANUP, Phase.EXTERNAL_WORKS),
)

DEFAULT_OVERLAP_RULES = (
    PhaseOverlapRule(
        Phase.STRUCTURE, Phase.WATERPROOFING, False, 7,
        "Concrete must cure before waterproofing membranes are applied",
    ),
    PhaseOverlapRule(
        Phase.WATERPROOFING, Phase.EXTERNAL_FINISHES, False, 2,
        "Membranes must set before external cladding",
    ),
    PhaseOverlapRule(
        Phase.WATERPROOFING, Phase.INTERNAL_FINISHES, False, 2,
        "Building must be watertight before internal finishes",
    ),
    PhaseOverlapRule(
        Phase.INTERNAL_FINISHES, Phase.PAINTING, False, 3,
        "Plaster must dry before painting",
    ),
    PhaseOverlapRule(
        Phase.INTERNAL_FINISHES, Phase.FLOORING, False, 2,
        "Wet trades must finish before floor coverings",
    ),
    PhaseOverlapRule(
        Phase.PAINTING, Phase.FLOORING, False, 1,
        "Paint splashes damage finished floors",
    ),
    PhaseOverlapRule(
        Phase.CEILINGS, Phase.PAINTING, False, 1,
        "Ceilings are closed before walls are painted",
    ),
    PhaseOverlapRule(
        Phase.FIRE_SAFETY, Phase.TESTING, False, 0,
        "Fire systems must be installed before commissioning",
    ),
    PhaseOverlapRule(
        Phase.ROUGH_IN_PLUMBING, Phase.ROUGH_IN_ELECTRICAL, True, 0,
        "Separate trades, separate routes",
    ),
    PhaseOverlapRule(
        Phase.ROUGH_IN_ELECTRICAL, Phase.ROUGH_IN_HVAC, True, 0,
        "Separate trades, separate routes",
    ),
    PhaseOverlapRule(
        Phase.ROUGH_IN_PLUMBING, Phase.ROUGH_IN_HVAC, True, 0,
        "Separate trades, separate routes",
    ),
    PhaseOverlapRule(
        Phase.EXTERNAL_WALLS, Phase.ROUGH_IN_PLUMBING, True, 0,
        "Rough-in follows the walls floor by floor",
    ),
    PhaseOverlapRule(
        Phase.ROOF, Phase.EXTERNAL_WALLS, True, 0,
        "Roof and facade crews work on different fronts",
    ),
    PhaseOverlapRule(
        Phase.EXTERNAL_FINISHES, Phase.INTERNAL_FINISHES, True, 0,
        "Inside and outside crews do not interfere",
    ),
    PhaseOverlapRule(
        Phase.CARPENTRY, Phase.PLUMBING_FIXTURES, True, 0,
        "Different rooms can be worked in parallel",
    ),
    PhaseOverlapRule(
        Phase.ELECTRICAL_FIXTURES, Phase.PLUMBING_FIXTURES, True, 0,
        "Different rooms can be worked in parallel",
    ),
)

DEFAULT_PHASE_EQUIPMENT = {
    Phase.EARTHWORKS: ("crane",),
    Phase.FOUNDATIONS: ("crane", "concrete_pump"),
    Phase.STRUCTURE: ("crane", "concrete_pump", "scaffolding"),
    Phase.EXTERNAL_WALLS: ("scaffolding",),
    Phase.ROOF: ("crane", "scaffolding"),
    Phase.EXTERNAL_FINISHES: ("scaffolding",),
    Phase.PAINTING: ("scaffolding",),
    Phase.ELEVATORS: ("crane",),
}

DEFAULT_FLOOR_STAGGER_PHASES = frozenset(
    {
        Phase.STRUCTURE,
        Phase.EXTERNAL_WALLS,
        Phase.INTERNAL_WALLS,
        Phase.FLOORING,
        Phase.CEILINGS,
    }
)

# Working days between the same task on consecutive floors
DEFAULT_FLOOR_STAGGER_LAG = 5

DEFAULT_PROCUREMENT = {
    Phase.STRUCTURE: ProcurementItem("Structural steel", 20),
    Phase.EXTERNAL_FRAMES: ProcurementItem("Window and door frames", 35),
    Phase.ELEVATORS: ProcurementItem("Elevator equipment", 75),
    Phase.ROOF: ProcurementItem("Roofing panels", 15),
    Phase.FIRE_SAFETY: ProcurementItem("Fire detection system", 25),
    Phase.ROUGH_IN_HVAC: ProcurementItem("HVAC equipment", 30),
}

DEFAULT_MILESTONES = {
    Phase.SITE_SETUP: "Site mobilized",
    Phase.STRUCTURE: "Structure complete",
    Phase.EXTERNAL_FRAMES: "Building weathertight",
    Phase.TESTING: "Systems commissioned",
    Phase.CLEANUP: "Practical completion",
}

# ProNIC chapter numbers
DEFAULT_CHAPTER_PHASES = {
    "01": Phase.SITE_SETUP,
    "02": Phase.DEMOLITION,
    "03": Phase.EARTHWORKS,
    "04": Phase.FOUNDATIONS,
    "05": Phase.FOUNDATIONS,
    "06": Phase.STRUCTURE,
    "07": Phase.STRUCTURE,
    "08": Phase.EXTERNAL_WALLS,
    "09": Phase.ROOF,
    "10": Phase.WATERPROOFING,
    "11": Phase.EXTERNAL_FINISHES,
    "12": Phase.INTERNAL_FINISHES,
    "13": Phase.FLOORING,
    "14": Phase.CEILINGS,
    "15": Phase.EXTERNAL_FRAMES,
    "16": Phase.METALWORK,
    "17": Phase.CARPENTRY,
    "18": Phase.EXTERNAL_FRAMES,
    "19": Phase.PAINTING,
    "20": Phase.ROUGH_IN_PLUMBING,
    "21": Phase.ROUGH_IN_PLUMBING,
    "22": Phase.ROUGH_IN_GAS,
    "23": Phase.ROUGH_IN_ELECTRICAL,
    "24": Phase.ROUGH_IN_TELECOM,
    "25": Phase.ROUGH_IN_HVAC,
    "26": Phase.ELEVATORS,
    "27": Phase.FIRE_SAFETY,
    "28": Phase.INSULATION,
    "29": Phase.EXTERNAL_WORKS,
    "30": Phase.TESTING,
}

_MASON = LaborRole("Mason", 14)
_LABORER = LaborRole("Laborer", 10)
_ELECTRICIAN = LaborRole("Electrician", 16)
_PLUMBER = LaborRole("Plumber", 16)
_METALWORKER = LaborRole("Metalworker", 15)

DEFAULT_LABOR_ROLES = {
    Phase.SITE_SETUP: _LABORER,
    Phase.DEMOLITION: _LABORER,
    Phase.EARTHWORKS: _LABORER,
    Phase.FOUNDATIONS: _MASON,
    Phase.STRUCTURE: _MASON,
    Phase.EXTERNAL_WALLS: _MASON,
    Phase.ROOF: LaborRole("Carpenter", 15),
    Phase.WATERPROOFING: LaborRole("Waterproofer", 15),
    Phase.EXTERNAL_FRAMES: _METALWORKER,
    Phase.ROUGH_IN_PLUMBING: _PLUMBER,
    Phase.ROUGH_IN_ELECTRICAL: _ELECTRICIAN,
    Phase.ROUGH_IN_GAS: _PLUMBER,
    Phase.ROUGH_IN_TELECOM: _ELECTRICIAN,
    Phase.ROUGH_IN_HVAC: LaborRole("HVAC Technician", 18),
    Phase.INTERNAL_WALLS: _MASON,
    Phase.INSULATION: _MASON,
    Phase.EXTERNAL_FINISHES: _MASON,
    Phase.INTERNAL_FINISHES: _MASON,
    Phase.FLOORING: LaborRole("Tiler", 15),
    Phase.CEILINGS: _MASON,
    Phase.CARPENTRY: LaborRole("Carpenter", 15),
    Phase.PLUMBING_FIXTURES: _PLUMBER,
    Phase.ELECTRICAL_FIXTURES: _ELECTRICIAN,
    Phase.PAINTING: LaborRole("Painter", 13),
    Phase.METALWORK: _METALWORKER,
    Phase.FIRE_SAFETY: _ELECTRICIAN,
    Phase.ELEVATORS: _ELECTRICIAN,
    Phase.EXTERNAL_WORKS: _LABORER,
    Phase.TESTING: _ELECTRICIAN,
    Phase.CLEANUP: _LABORER,
}

DEFAULT_LABOR_ROLE = LaborRole("Worker", 12)


class PhaseModel:
    """
    Immutable phase configuration shared by the sequencer and the optimizers.

    Holds the phase order, the dependency graph, overlap rules and the
    per-phase lookup tables (equipment, procurement, milestones, labor roles,
    chapter mapping). The combined dependency and non-overlap graph is checked
    for cycles when the model is built, so a bad table fails here instead of
    producing misordered dates later.
    """

    def __init__(
        self,
        phase_order: Iterable[Phase] = PHASE_ORDER,
        dependencies: Iterable[PhaseDependency] = DEFAULT_DEPENDENCIES,
        overlap_rules: Iterable[PhaseOverlapRule] = DEFAULT_OVERLAP_RULES,
        equipment: Optional[Mapping[Phase, Tuple[str, ...]]] = None,
        floor_stagger_phases: Optional[Iterable[Phase]] = None,
        floor_stagger_lag: int = DEFAULT_FLOOR_STAGGER_LAG,
        procurement: Optional[Mapping[Phase, ProcurementItem]] = None,
        milestones: Optional[Mapping[Phase, str]] = None,
        chapter_phases: Optional[Mapping[str, Phase]] = None,
        labor_roles: Optional[Mapping[Phase, LaborRole]] = None,
        default_labor_role: LaborRole = DEFAULT_LABOR_ROLE,
        display_names: Optional[Mapping[Phase, str]] = None,
    ):
        """
        Build and validate a phase model.

        Raises:
            PhaseModelError: If a table names an unknown phase, a lag or gap
                is negative, or the phase graph contains a cycle
        """
        self._phase_order = tuple(Phase(p) for p in phase_order)
        if len(set(self._phase_order)) != len(self._phase_order):
            raise PhaseModelError("Phase order contains duplicates")
        known = set(self._phase_order)

        self._dependencies = tuple(dependencies)
        for dep in self._dependencies:
            if dep.phase not in known or dep.predecessor not in known:
                raise PhaseModelError(f"Dependency references unknown phase: {dep}")
            if dep.lag_days < 0:
                raise PhaseModelError(f"Dependency lag cannot be negative: {dep}")
            if dep.phase == dep.predecessor:
                raise PhaseModelError(f"Phase cannot depend on itself: {dep}")

        self._overlap_rules = tuple(overlap_rules)
        for rule in self._overlap_rules:
            if rule.phase_a not in known or rule.phase_b not in known:
                raise PhaseModelError(f"Overlap rule references unknown phase: {rule}")
            if rule.min_gap_days < 0:
                raise PhaseModelError(f"Overlap gap cannot be negative: {rule}")

        if floor_stagger_lag < 0:
            raise PhaseModelError("Floor stagger lag cannot be negative")
        self._floor_stagger_lag = floor_stagger_lag

        self._equipment = MappingProxyType(
            dict(DEFAULT_PHASE_EQUIPMENT if equipment is None else equipment)
        )
        self._floor_stagger_phases = frozenset(
            DEFAULT_FLOOR_STAGGER_PHASES
            if floor_stagger_phases is None
            else floor_stagger_phases
        )
        self._procurement = MappingProxyType(
            dict(DEFAULT_PROCUREMENT if procurement is None else procurement)
        )
        self._milestones = MappingProxyType(
            dict(DEFAULT_MILESTONES if milestones is None else milestones)
        )
        self._chapter_phases = MappingProxyType(
            dict(DEFAULT_CHAPTER_PHASES if chapter_phases is None else chapter_phases)
        )
        self._labor_roles = MappingProxyType(
            dict(DEFAULT_LABOR_ROLES if labor_roles is None else labor_roles)
        )
        self._default_labor_role = default_labor_role
        self._display_names = MappingProxyType(
            dict(PHASE_DISPLAY_NAMES if display_names is None else display_names)
        )

        self._deps_by_phase: Dict[Phase, Tuple[PhaseDependency, ...]] = {}
        for phase in self._phase_order:
            self._deps_by_phase[phase] = tuple(
                d for d in self._dependencies if d.phase == phase
            )

        self._graph = self._build_graph()
        if not nx.is_directed_acyclic_graph(self._graph):
            cycle = nx.find_cycle(self._graph)
            path = " -> ".join(str(edge[0].value) for edge in cycle)
            raise PhaseModelError(f"Phase dependencies contain a cycle: {path}")

        position = {phase: i for i, phase in enumerate(self._phase_order)}
        self._sequencing_order = tuple(
            nx.lexicographical_topological_sort(self._graph, key=position.__getitem__)
        )

    def _build_graph(self) -> nx.DiGraph:
        """
        Build the phase precedence graph.

        Edges run from predecessor to successor. Non-overlap rules add an edge
        from phase_a to phase_b since they also fix an order between phases.
        """
        G = nx.DiGraph()
        for phase in self._phase_order:
            G.add_node(phase, name=self.display_name(phase))

        for dep in self._dependencies:
            G.add_edge(
                dep.predecessor,
                dep.phase,
                kind="dependency",
                relation=dep.relation.value,
                lag=dep.lag_days,
            )

        for rule in self._overlap_rules:
            if rule.can_overlap or G.has_edge(rule.phase_a, rule.phase_b):
                continue
            G.add_edge(rule.phase_a, rule.phase_b, kind="overlap", gap=rule.min_gap_days)

        return G

    @classmethod
    def default(cls) -> "PhaseModel":
        return cls()

    @property
    def phase_order(self) -> Tuple[Phase, ...]:
        return self._phase_order

    @property
    def sequencing_order(self) -> Tuple[Phase, ...]:
        """Topological order of the phase graph, ties broken by phase_order."""
        return self._sequencing_order

    @property
    def dependencies(self) -> Tuple[PhaseDependency, ...]:
        return self._dependencies

    @property
    def overlap_rules(self) -> Tuple[PhaseOverlapRule, ...]:
        return self._overlap_rules

    @property
    def graph(self) -> nx.DiGraph:
        return self._graph.copy()

    @property
    def floor_stagger_phases(self) -> frozenset:
        return self._floor_stagger_phases

    @property
    def floor_stagger_lag(self) -> int:
        return self._floor_stagger_lag

    @property
    def procurement(self) -> Mapping[Phase, ProcurementItem]:
        return self._procurement

    @property
    def milestones(self) -> Mapping[Phase, str]:
        return self._milestones

    def get_phase_dependencies(self, phase: Phase) -> Tuple[PhaseDependency, ...]:
        return self._deps_by_phase.get(Phase(phase), ())

    def get_overlap_rule(
        self, first: Phase, second: Phase
    ) -> Optional[PhaseOverlapRule]:
        """Find the overlap rule between two phases, in either direction."""
        for rule in self._overlap_rules:
            if rule.involves(first, second):
                return rule
        return None

    def non_overlap_rules(self) -> List[PhaseOverlapRule]:
        return [r for r in self._overlap_rules if not r.can_overlap]

    def non_overlap_rules_into(self, phase: Phase) -> List[PhaseOverlapRule]:
        """Non-overlap rules that constrain when phase may start."""
        return [r for r in self.non_overlap_rules() if r.phase_b == phase]

    def get_equipment(self, phase: Phase) -> Tuple[str, ...]:
        return tuple(self._equipment.get(phase, ()))

    def equipment_types(self) -> List[str]:
        types: List[str] = []
        for phase in self._phase_order:
            for item in self.get_equipment(phase):
                if item not in types:
                    types.append(item)
        return types

    def is_floor_staggered(self, phase: Phase) -> bool:
        return phase in self._floor_stagger_phases

    def labor_role(self, phase: Phase) -> LaborRole:
        return self._labor_roles.get(phase, self._default_labor_role)

    def display_name(self, phase: Phase) -> str:
        return self._display_names.get(phase, Phase(phase).value)

    def chapter_to_phase(self, code: str) -> Phase:
        """
        Map a WBS code to its phase by chapter prefix.

        The chapter is the first dotted segment of the code, zero-padded to
        two digits ("6.01.003" and "06.01.003" both map to chapter "06").
        Unknown chapters fall back to site setup.
        """
        head = str(code).strip().split(".")[0]
        if head.isdigit():
            head = head.zfill(2)
        return self._chapter_phases.get(head, Phase.SITE_SETUP)

    def __repr__(self):
        return (
            f"PhaseModel(phases={len(self._phase_order)}, "
            f"dependencies={len(self._dependencies)}, "
            f"overlap_rules={len(self._overlap_rules)})"
        )
