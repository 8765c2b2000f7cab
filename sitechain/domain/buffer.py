import copy
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class BufferError(Exception):
    """Exception raised for errors in the CriticalChainBuffer class."""

    pass


class BufferZone(str, Enum):
    """Fever chart zone of a buffer."""

    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


# Consumption-to-completion ratios at which a buffer leaves green and yellow
YELLOW_THRESHOLD = 1 / 3
RED_THRESHOLD = 2 / 3


def buffer_zone(consumed_percent: float, chain_completion_percent: float) -> BufferZone:
    """
    Classify buffer health from consumption relative to chain progress.

    A buffer consuming a third or more of its size per unit of chain
    completion turns yellow; two thirds or more turns red.
    """
    ratio = consumed_percent / max(1.0, chain_completion_percent)
    if ratio < YELLOW_THRESHOLD:
        return BufferZone.GREEN
    if ratio < RED_THRESHOLD:
        return BufferZone.YELLOW
    return BufferZone.RED


class CriticalChainBuffer:
    """
    A pooled time reserve in a critical chain schedule.

    - Project buffer: sits after the last critical-chain phase and protects
      the completion date.
    - Feeding buffer: sits where a non-critical chain merges into the critical
      chain and protects the merge point (protects_task_uid).

    Buffers are sized at planning time and then only updated through
    update_consumption, which returns a new buffer.
    """

    def __init__(
        self,
        uid: int,
        name: str,
        buffer_type: str,
        duration_days: int,
        start_date: date,
        finish_date: date,
        feeding_chain_uids: Optional[List[int]] = None,
        protects_task_uid: Optional[int] = None,
        strategy_name: Optional[str] = None,
    ):
        """
        Initialize a new CriticalChainBuffer.

        Args:
            uid: Unique identifier, distinct from every task uid
            name: Display name
            buffer_type: "project" or "feeding"
            duration_days: Size in working days (at least 1)
            start_date: First working day of the buffer
            finish_date: Exclusive finish date
            feeding_chain_uids: Summary uids of the chain this buffer absorbs
            protects_task_uid: Critical task the feeding buffer protects
            strategy_name: Name of the sizing strategy used

        Raises:
            BufferError: If any input validation fails
        """
        if uid is None:
            raise BufferError("Buffer uid cannot be None")
        self.uid = uid

        if not name or not isinstance(name, str):
            raise BufferError("Buffer name must be a non-empty string")
        self.name = name

        if buffer_type not in ("project", "feeding"):
            raise BufferError("Buffer type must be either 'project' or 'feeding'")
        self.buffer_type = buffer_type

        if not isinstance(duration_days, int) or duration_days < 1:
            raise BufferError("Buffer duration must be a positive whole number of days")
        self.duration_days = duration_days

        if finish_date < start_date:
            raise BufferError("Buffer finishes before it starts")
        self.start_date = start_date
        self.finish_date = finish_date

        if buffer_type == "feeding" and protects_task_uid is None:
            raise BufferError("Feeding buffers must specify the task they protect")
        self.protects_task_uid = protects_task_uid

        self.feeding_chain_uids = list(feeding_chain_uids or [])
        self.strategy_name = strategy_name

        # Execution tracking
        self.consumed_percent = 0.0
        self.chain_completion_percent = 0.0
        self.zone = BufferZone.GREEN
        self.history: List[Tuple[float, float]] = []

    @property
    def remaining_days(self) -> float:
        return self.duration_days * (1 - self.consumed_percent / 100)

    def update_consumption(
        self, chain_completion_percent: float, chain_delay_days: float
    ) -> "CriticalChainBuffer":
        """
        Report progress on the chain this buffer protects.

        Args:
            chain_completion_percent: Completion of the protected chain, 0-100
            chain_delay_days: Working days the chain is running late

        Returns:
            A new buffer with consumption, zone and history updated

        Raises:
            BufferError: If completion is outside 0-100
        """
        if not 0 <= chain_completion_percent <= 100:
            raise BufferError("Chain completion must be between 0 and 100")

        consumed = chain_delay_days / self.duration_days * 100
        consumed = min(100.0, max(0.0, consumed))

        updated = copy.deepcopy(self)
        updated.consumed_percent = consumed
        updated.chain_completion_percent = chain_completion_percent
        updated.zone = buffer_zone(consumed, chain_completion_percent)
        updated.history.append((chain_completion_percent, consumed))
        return updated

    def get_fever_chart_data(self) -> Dict[str, Any]:
        """
        Get data points for a fever chart.

        Returns:
            dict: Chain completion and consumption series plus the current zone
        """
        points = self.history or [(0.0, 0.0)]
        return {
            "buffer_uid": self.uid,
            "name": self.name,
            "buffer_type": self.buffer_type,
            "completion": [p[0] for p in points],
            "consumption": [p[1] for p in points],
            "zone": self.zone.value,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uid": self.uid,
            "name": self.name,
            "type": self.buffer_type,
            "duration_days": self.duration_days,
            "start_date": self.start_date.isoformat(),
            "finish_date": self.finish_date.isoformat(),
            "consumed_percent": round(self.consumed_percent, 2),
            "chain_completion_percent": self.chain_completion_percent,
            "zone": self.zone.value,
            "feeding_chain_uids": list(self.feeding_chain_uids),
            "protects_task_uid": self.protects_task_uid,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CriticalChainBuffer":
        buffer = cls(
            uid=data["uid"],
            name=data["name"],
            buffer_type=data["type"],
            duration_days=data["duration_days"],
            start_date=date.fromisoformat(data["start_date"]),
            finish_date=date.fromisoformat(data["finish_date"]),
            feeding_chain_uids=data.get("feeding_chain_uids"),
            protects_task_uid=data.get("protects_task_uid"),
        )
        buffer.consumed_percent = data.get("consumed_percent", 0.0)
        buffer.chain_completion_percent = data.get("chain_completion_percent", 0.0)
        buffer.zone = BufferZone(data.get("zone", "green"))
        return buffer

    def __repr__(self):
        return (
            f"CriticalChainBuffer(uid={self.uid}, type={self.buffer_type}, "
            f"days={self.duration_days}, consumed={self.consumed_percent:.1f}%, "
            f"zone={self.zone.value})"
        )


def update_buffer_consumption(
    buffer: CriticalChainBuffer,
    chain_completion_percent: float,
    chain_delay_days: float,
) -> CriticalChainBuffer:
    """Return buffer updated with the latest progress report."""
    return buffer.update_consumption(chain_completion_percent, chain_delay_days)
