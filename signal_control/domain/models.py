from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from signal_control.domain import config
from signal_control.domain.vehicles import VehicleClass, delay_cost, stop_cost

class SignalStatus(str, Enum):
    RED = "RED"
    AMBER = "AMBER"
    GREEN = "GREEN"

class TriggerCondition(str, Enum):
    NONE = "NONE"
    REQUEST = "REQUEST"

class StrategyType(str, Enum):
    VEHICLE_ACTUATED = "VehicleActuated"
    PRIORITY_ACTUATED = "PriorityActuated"
    PRIORITY_LOOKAHEAD = "PriorityLookahead"
    SCATS_DATA = "SCATSData"

class PhaseState(str, Enum):
    STEADY = "STEADY"
    INTERGREEN = "INTERGREEN"
    ALL_RED = "ALL_RED"

# Configuration Models

class SignalHeadState(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    status: SignalStatus
    condition: TriggerCondition = TriggerCondition.NONE

class Phase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    states: List[SignalHeadState]
    min_duration: float = 0.0
    max_duration: float = 120.0
    duration: float = 30.0
    intergreen: float = 0.0
    all_red: float = 0.0

    def green_heads(self) -> List[str]:
        return [s.name for s in self.states if s.status == SignalStatus.GREEN]

class StrategyConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: StrategyType = StrategyType.VEHICLE_ACTUATED
    gap_time: float = config.DEFAULT_GAP_TIME
    detection_range: float = config.DEFAULT_DETECTION_RANGE
    lookahead: int = config.LOOKAHEAD_HORIZON

class FeedConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    intersection_id: str
    layout: str = "v1"
    approaches: Dict[str, str] = {}  # feed approach id -> signal name

class SignalPlacement(BaseModel):
    model_config = ConfigDict(frozen=True)

    signal: str
    road: List[str] = Field(min_length=2, max_length=2)  # [from, to]
    position: float

class ControllerGroupConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    phases: List[Phase] = Field(min_length=1)
    strategy: StrategyConfig = StrategyConfig()
    feed: Optional[FeedConfig] = None
    placements: List[SignalPlacement] = []

# Vehicle Approach

class ApproachRecord(BaseModel):
    """Snapshot broadcast by a vehicle nearing a signal head.

    A newer broadcast from the same vehicle replaces the record, it is never edited.
    """
    model_config = ConfigDict(frozen=True)

    vehicle_id: int
    urgency: int = Field(ge=1, le=5)
    mass: float = 1400.0
    acceleration: float = 0.0
    speed: float = 0.0
    delay_time: float = 0.0
    stopping_cost: float = 0.0  # cost of stopping at the time of broadcast
    passengers: int = 1
    distance: float = 0.0  # to the stop line
    vehicle_class: VehicleClass = VehicleClass.CAR
    incurred_stopping_cost: float = 0.0

    @property
    def is_stopped(self) -> bool:
        return self.speed <= config.STOPPED_SPEED

    def delay_cost(self, delay_time: Optional[float] = None) -> float:
        if delay_time is None:
            delay_time = self.delay_time
        return delay_cost(delay_time, self.urgency)

    def estimated_clear_time(self) -> float:
        # time to pass the stop line at the current speed
        if self.is_stopped:
            return float("inf")
        return self.distance / self.speed

    def clears_within(self, seconds: float) -> bool:
        return self.estimated_clear_time() <= seconds

    def estimated_stopping_cost(self, seconds: float) -> float:
        # v = v0 + at
        speed = max(0.0, self.speed + self.acceleration * seconds)
        return stop_cost(self.mass, speed, self.vehicle_class)

    def estimated_delay_cost(self, seconds: float) -> float:
        # only a stopped vehicle accumulates delay
        if not self.is_stopped:
            return 0.0
        return self.delay_cost(self.delay_time + seconds)

    def estimated_total_cost(self, seconds: float, estimated_delay: float) -> float:
        return self.estimated_stopping_cost(seconds) + self.estimated_delay_cost(estimated_delay)

# Adaptive Feed

class CycleTarget(BaseModel):
    model_config = ConfigDict(frozen=True)

    cycle_duration: int = 0
    phase_durations: Dict[str, int] = {}
    approach_inflows: Dict[str, int] = {}

    def inflow_rates(self) -> Dict[str, float]:
        """Vehicles per second for each approach over the cycle."""
        if self.cycle_duration <= 0:
            return {approach: 0.0 for approach in self.approach_inflows}
        return {
            approach: count / float(self.cycle_duration)
            for approach, count in self.approach_inflows.items()
        }

# API/Response Models

class SignalHeadStatus(BaseModel):
    name: str
    groupId: str
    status: Optional[SignalStatus] = None
    position: Optional[float] = None
    lightCount: int
    approachCount: int
    stoppingCost: float
    delayCost: float
    cumulativeStoppingCost: float
    cumulativeDelayCost: float

class GroupStatus(BaseModel):
    groupId: str
    strategy: str
    currentPhaseIndex: int
    currentPhaseId: str
    nextPhaseIndex: Optional[int] = None
    phaseState: PhaseState
    phaseTime: float
    phaseCount: int
    signals: List[SignalHeadStatus]

class CostSummary(BaseModel):
    groupId: str
    totalStoppingCost: float
    totalDelayCost: float
    cumulativeStoppingCost: float
    cumulativeDelayCost: float
    delayCostByUrgency: Dict[int, float]
    averageDelayTimeByUrgency: Dict[int, float]

class GroupSummary(BaseModel):
    id: str
    strategy: str
    phases: int
