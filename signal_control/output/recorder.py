import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List

from signal_control.domain import config
from signal_control.domain.models import ApproachRecord

logger = logging.getLogger(__name__)


class Recorder(ABC):
    """Receives what a controller group pushes out; nothing is ever read back."""

    @abstractmethod
    def record_data(self, sim_time: float, iteration_count: int, heads: Iterable[Any]):
        pass

    @abstractmethod
    def record_phase_boundary(self, sim_time: float, iteration_count: int, phase_count: int,
                              strategy_name: str, heads: Iterable[Any]):
        pass

    @abstractmethod
    def record_time_interval(self, sim_time: float):
        pass

    @abstractmethod
    def record_completed_approach(self, record: ApproachRecord):
        pass

    @abstractmethod
    def record_final_summary(self):
        pass


class NullRecorder(Recorder):
    def record_data(self, sim_time, iteration_count, heads):
        pass

    def record_phase_boundary(self, sim_time, iteration_count, phase_count, strategy_name, heads):
        pass

    def record_time_interval(self, sim_time):
        pass

    def record_completed_approach(self, record):
        pass

    def record_final_summary(self):
        pass


class MemoryRecorder(Recorder):
    """Keeps every record in lists so runs can be inspected or dumped to JSON."""

    def __init__(self, record_every: int = config.DATA_RECORD_EVERY):
        self.record_every = max(1, record_every)
        self.data: List[Dict[str, Any]] = []
        self.phases: List[Dict[str, Any]] = []
        self.intervals: List[float] = []
        self.completed_approaches: List[ApproachRecord] = []
        self.summary: Dict[int, Dict[str, float]] = {}

    def record_data(self, sim_time, iteration_count, heads):
        if iteration_count % self.record_every != 0:
            return
        self.data.append({
            "time": round(sim_time, 3),
            "iteration": iteration_count,
            "signals": [
                {
                    "name": head.name,
                    "status": head.status.value if head.status else None,
                    "position": head.position if head.has_position else None,
                }
                for head in heads
            ],
        })

    def record_phase_boundary(self, sim_time, iteration_count, phase_count, strategy_name, heads):
        heads = list(heads)
        delay_time: Dict[int, float] = {u: 0.0 for u in config.URGENCY_LEVELS}
        counts: Dict[int, int] = {u: 0 for u in config.URGENCY_LEVELS}
        for head in heads:
            for u in config.URGENCY_LEVELS:
                delay_time[u] += head.phase_delay_time_by_urgency[u]
                counts[u] += head.phase_vehicle_count_by_urgency[u]
        self.phases.append({
            "time": round(sim_time, 3),
            "iteration": iteration_count,
            "phaseCount": phase_count,
            "strategy": strategy_name,
            "approaches": sum(len(head.approaches) for head in heads),
            "delayCost": sum(head.delay_cost_for_phase for head in heads),
            "stoppingCost": sum(head.stopping_cost_for_phase for head in heads),
            "averageDelayByUrgency": {
                u: (delay_time[u] / counts[u] if counts[u] else 0.0) for u in config.URGENCY_LEVELS
            },
        })

    def record_time_interval(self, sim_time):
        self.intervals.append(sim_time)

    def record_completed_approach(self, record):
        self.completed_approaches.append(record)

    def record_final_summary(self):
        summary = {}
        for u in config.URGENCY_LEVELS:
            approaches = [a for a in self.completed_approaches if a.urgency == u]
            count = len(approaches)
            summary[u] = {
                "count": count,
                "meanDelayTime": sum(a.delay_time for a in approaches) / count if count else 0.0,
                "meanDelayCost": sum(a.delay_cost() for a in approaches) / count if count else 0.0,
            }
        self.summary = summary
        logger.info("total approaches %d", len(self.completed_approaches))
        return summary
