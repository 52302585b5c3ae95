import logging
from typing import Dict, List

from signal_control.controllers.adaptive import ScatsDataStrategy
from signal_control.controllers.base import ControlStrategy
from signal_control.controllers.implementations import (
    PriorityActuatedStrategy, PriorityLookaheadStrategy, VehicleActuatedStrategy
)
from signal_control.domain.models import Phase, StrategyConfig, StrategyType
from signal_control.systems.signal_head import SignalHead

logger = logging.getLogger(__name__)

STRATEGIES = {
    StrategyType.VEHICLE_ACTUATED: VehicleActuatedStrategy,
    StrategyType.PRIORITY_ACTUATED: PriorityActuatedStrategy,
    StrategyType.PRIORITY_LOOKAHEAD: PriorityLookaheadStrategy,
}

def create_strategy(strategy: StrategyConfig, phases: List[Phase], heads: Dict[str, SignalHead],
                    feed_reader=None) -> ControlStrategy:
    """Builds the strategy named by the configuration key, once per group."""
    if strategy.type == StrategyType.SCATS_DATA:
        return ScatsDataStrategy(strategy, phases, heads, feed_reader=feed_reader)
    strategy_cls = STRATEGIES[strategy.type]
    logger.debug("creating %s strategy", strategy_cls.name)
    return strategy_cls(strategy, phases, heads)
