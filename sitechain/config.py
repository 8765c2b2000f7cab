"""
Configuration for the scheduling engine.

Option objects are immutable and passed to the components that use them;
environment settings only control the command line runner.
"""
import os
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from dotenv import load_dotenv

from sitechain.domain.phase import Phase, PhaseOverlapRule, ProcurementItem

# Load environment variables from a .env file in the working directory
env_file = Path.cwd() / ".env"
if env_file.exists():
    load_dotenv(env_file)


class ConfigError(Exception):
    """Exception raised for invalid scheduling options."""

    pass


# Productivity multiplier per calendar month (January first); August holidays
# and winter weather slow sites down.
DEFAULT_SEASONAL_FACTORS = (0.85, 0.85, 0.95, 1.0, 1.0, 1.0, 1.0, 0.7, 1.0, 1.0, 0.9, 0.85)
NEUTRAL_SEASONAL_FACTORS = (1.0,) * 12

BUFFER_METHODS = ("ssq", "cpm")


class SchedulerOptions:
    """Options for the phase sequencer and the critical chain optimizer."""

    def __init__(
        self,
        max_workers: int = 10,
        use_critical_chain: bool = False,
        safety_reduction: float = 0.5,
        project_buffer_ratio: float = 0.5,
        feeding_buffer_ratio: float = 0.5,
        seasonal_factors: Iterable[float] = DEFAULT_SEASONAL_FACTORS,
        procurement: Optional[Mapping[Phase, ProcurementItem]] = None,
        buffer_method: str = "ssq",
    ):
        """
        Initialize scheduler options.

        Args:
            max_workers: Upper bound on the crew size of any phase
            use_critical_chain: Attach CCPM buffers to the schedule
            safety_reduction: Fraction of each phase duration removed as safety
            project_buffer_ratio: Scale applied to the project buffer size
            feeding_buffer_ratio: Scale applied to feeding buffer sizes
            seasonal_factors: Twelve monthly productivity multipliers
            procurement: Long-lead items per phase; None uses the phase model's
                table, an empty mapping disables procurement tasks
            buffer_method: "ssq" (root sum of squares) or "cpm" (cut and paste)

        Raises:
            ConfigError: If any option is out of range
        """
        if not isinstance(max_workers, int) or max_workers < 1:
            raise ConfigError("max_workers must be a positive integer")
        if not 0 <= safety_reduction < 1:
            raise ConfigError("safety_reduction must be in [0, 1)")
        if project_buffer_ratio < 0 or feeding_buffer_ratio < 0:
            raise ConfigError("Buffer ratios cannot be negative")

        factors = tuple(float(f) for f in seasonal_factors)
        if len(factors) != 12:
            raise ConfigError("seasonal_factors must have one entry per month")
        if any(f <= 0 for f in factors):
            raise ConfigError("Seasonal factors must be positive")

        if buffer_method not in BUFFER_METHODS:
            raise ConfigError(f"buffer_method must be one of {BUFFER_METHODS}")

        self._max_workers = max_workers
        self._use_critical_chain = use_critical_chain
        self._safety_reduction = safety_reduction
        self._project_buffer_ratio = project_buffer_ratio
        self._feeding_buffer_ratio = feeding_buffer_ratio
        self._seasonal_factors = factors
        self._procurement = (
            None if procurement is None else MappingProxyType(dict(procurement))
        )
        self._buffer_method = buffer_method

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def use_critical_chain(self) -> bool:
        return self._use_critical_chain

    @property
    def safety_reduction(self) -> float:
        return self._safety_reduction

    @property
    def project_buffer_ratio(self) -> float:
        return self._project_buffer_ratio

    @property
    def feeding_buffer_ratio(self) -> float:
        return self._feeding_buffer_ratio

    @property
    def seasonal_factors(self) -> Tuple[float, ...]:
        return self._seasonal_factors

    @property
    def procurement(self) -> Optional[Mapping[Phase, ProcurementItem]]:
        return self._procurement

    @property
    def buffer_method(self) -> str:
        return self._buffer_method

    def replace(self, **changes) -> "SchedulerOptions":
        """Return a copy with some options changed."""
        values = {
            "max_workers": self._max_workers,
            "use_critical_chain": self._use_critical_chain,
            "safety_reduction": self._safety_reduction,
            "project_buffer_ratio": self._project_buffer_ratio,
            "feeding_buffer_ratio": self._feeding_buffer_ratio,
            "seasonal_factors": self._seasonal_factors,
            "procurement": self._procurement,
            "buffer_method": self._buffer_method,
        }
        values.update(changes)
        return SchedulerOptions(**values)

    def __repr__(self):
        return (
            f"SchedulerOptions(max_workers={self._max_workers}, "
            f"ccpm={self._use_critical_chain}, "
            f"safety_reduction={self._safety_reduction})"
        )


DEFAULT_PHASE_WORKER_CAPS = {
    Phase.SITE_SETUP: 10,
    Phase.DEMOLITION: 15,
    Phase.EARTHWORKS: 20,
    Phase.FOUNDATIONS: 15,
    Phase.STRUCTURE: 20,
    Phase.EXTERNAL_WALLS: 15,
    Phase.ROOF: 12,
    Phase.WATERPROOFING: 8,
    Phase.EXTERNAL_FRAMES: 10,
    Phase.ROUGH_IN_PLUMBING: 6,
    Phase.ROUGH_IN_ELECTRICAL: 6,
    Phase.ROUGH_IN_GAS: 4,
    Phase.ROUGH_IN_TELECOM: 4,
    Phase.ROUGH_IN_HVAC: 6,
    Phase.INTERNAL_WALLS: 12,
    Phase.INSULATION: 8,
    Phase.EXTERNAL_FINISHES: 10,
    Phase.INTERNAL_FINISHES: 12,
    Phase.FLOORING: 8,
    Phase.CEILINGS: 8,
    Phase.CARPENTRY: 6,
    Phase.PLUMBING_FIXTURES: 4,
    Phase.ELECTRICAL_FIXTURES: 4,
    Phase.PAINTING: 8,
    Phase.METALWORK: 6,
    Phase.FIRE_SAFETY: 4,
    Phase.ELEVATORS: 6,
    Phase.EXTERNAL_WORKS: 10,
    Phase.TESTING: 4,
    Phase.CLEANUP: 6,
}

DEFAULT_EQUIPMENT_LIMITS = {"crane": 1, "concrete_pump": 1, "scaffolding": 2}


class CapacityConstraints:
    """Site limits checked by the capacity optimizer."""

    def __init__(
        self,
        max_workers_per_floor: int = 20,
        phase_worker_caps: Optional[Mapping[Phase, int]] = None,
        equipment_limits: Optional[Mapping[str, int]] = None,
        overlap_rules: Optional[Iterable[PhaseOverlapRule]] = None,
        split_threshold: int = 8,
        max_leveling_iterations: int = 200,
    ):
        """
        Initialize capacity constraints.

        Args:
            max_workers_per_floor: Daily head count the site can hold
            phase_worker_caps: Reference crew limits per phase
            equipment_limits: Simultaneous-use limit per equipment type
            overlap_rules: Rules to enforce; None uses the phase model's
            split_threshold: Worker count above which a task is split
            max_leveling_iterations: Cap on resource leveling steps

        Raises:
            ConfigError: If a limit is not positive
        """
        if max_workers_per_floor < 1:
            raise ConfigError("max_workers_per_floor must be positive")
        if split_threshold < 1:
            raise ConfigError("split_threshold must be positive")
        if max_leveling_iterations < 0:
            raise ConfigError("max_leveling_iterations cannot be negative")

        caps = dict(
            DEFAULT_PHASE_WORKER_CAPS if phase_worker_caps is None else phase_worker_caps
        )
        if any(cap < 1 for cap in caps.values()):
            raise ConfigError("Phase worker caps must be positive")

        limits = dict(
            DEFAULT_EQUIPMENT_LIMITS if equipment_limits is None else equipment_limits
        )
        if any(limit < 0 for limit in limits.values()):
            raise ConfigError("Equipment limits cannot be negative")

        self._max_workers_per_floor = max_workers_per_floor
        self._phase_worker_caps = MappingProxyType(caps)
        self._equipment_limits = MappingProxyType(limits)
        self._overlap_rules = None if overlap_rules is None else tuple(overlap_rules)
        self._split_threshold = split_threshold
        self._max_leveling_iterations = max_leveling_iterations

    @property
    def max_workers_per_floor(self) -> int:
        return self._max_workers_per_floor

    @property
    def phase_worker_caps(self) -> Mapping[Phase, int]:
        return self._phase_worker_caps

    @property
    def equipment_limits(self) -> Mapping[str, int]:
        return self._equipment_limits

    @property
    def overlap_rules(self) -> Optional[Tuple[PhaseOverlapRule, ...]]:
        return self._overlap_rules

    @property
    def split_threshold(self) -> int:
        return self._split_threshold

    @property
    def max_leveling_iterations(self) -> int:
        return self._max_leveling_iterations

    def equipment_limit(self, equipment: str) -> int:
        # Unlisted equipment is limited to a single unit
        return self._equipment_limits.get(equipment, 1)

    def __repr__(self):
        return (
            f"CapacityConstraints(max_workers_per_floor={self._max_workers_per_floor}, "
            f"split_threshold={self._split_threshold})"
        )


def infer_max_workers(total_budget: float) -> int:
    """Suggest a crew ceiling from the project budget in euros."""
    if total_budget < 500_000:
        return 6
    if total_budget < 1_500_000:
        return 10
    if total_budget < 5_000_000:
        return 20
    return 40


class Settings:
    """Runtime settings loaded from environment variables."""

    LOG_LEVEL = os.getenv("SITECHAIN_LOG_LEVEL", "INFO")
    MAX_WORKERS = int(os.getenv("SITECHAIN_MAX_WORKERS", "10"))
    OUTPUT_DIR = Path(os.getenv("SITECHAIN_OUTPUT_DIR", "."))

    @classmethod
    def as_dict(cls) -> Dict[str, str]:
        return {
            "LOG_LEVEL": cls.LOG_LEVEL,
            "MAX_WORKERS": str(cls.MAX_WORKERS),
            "OUTPUT_DIR": str(cls.OUTPUT_DIR),
        }


settings = Settings()
