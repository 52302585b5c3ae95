import json
import logging
from pathlib import Path
from typing import List, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from signal_control.domain.errors import ConfigurationError
from signal_control.domain.graph import RoadNetwork
from signal_control.domain.models import ControllerGroupConfig

logger = logging.getLogger(__name__)


class RoadConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str
    target: str
    length: float
    lanes: int = 1


class SimulationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    roads: List[RoadConfig] = []
    groups: List[ControllerGroupConfig] = []


def load_simulation_config(path: Union[str, Path]) -> SimulationConfig:
    """Reads a JSON file holding road definitions and controller groups.

    A file containing a single group object is accepted as well.
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"cannot read configuration {path}: {exc}") from exc

    if isinstance(raw, dict) and "phases" in raw:
        raw = {"groups": [raw]}
    try:
        sim_config = SimulationConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid configuration {path}: {exc}") from exc

    ids = [group.id for group in sim_config.groups]
    if len(ids) != len(set(ids)):
        raise ConfigurationError(f"duplicate controller group ids in {path}")
    logger.info("Loaded %d controller group(s) from %s", len(ids), path)
    return sim_config


def build_road_network(sim_config: SimulationConfig) -> RoadNetwork:
    network = RoadNetwork()
    for road in sim_config.roads:
        network.add_road(road.source, road.target, length=road.length, lanes=road.lanes)
    return network


def default_simulation_config() -> SimulationConfig:
    """A two-phase crossroads: north/south against east/west, each approach on request."""
    return SimulationConfig.model_validate({
        "roads": [
            {"source": "north", "target": "centre", "length": 200.0},
            {"source": "south", "target": "centre", "length": 200.0},
            {"source": "east", "target": "centre", "length": 200.0},
            {"source": "west", "target": "centre", "length": 200.0},
        ],
        "groups": [{
            "id": "crossroads",
            "strategy": {"type": "PriorityActuated", "gap_time": 3.0, "detection_range": 30.0},
            "phases": [
                {
                    "id": "A", "min_duration": 5, "max_duration": 60, "duration": 30,
                    "intergreen": 3, "all_red": 2,
                    "states": [
                        {"name": "N", "status": "GREEN"}, {"name": "S", "status": "GREEN"},
                        {"name": "E", "status": "RED", "condition": "REQUEST"},
                        {"name": "W", "status": "RED", "condition": "REQUEST"},
                    ],
                },
                {
                    "id": "B", "min_duration": 5, "max_duration": 60, "duration": 30,
                    "intergreen": 3, "all_red": 2,
                    "states": [
                        {"name": "N", "status": "RED", "condition": "REQUEST"},
                        {"name": "S", "status": "RED", "condition": "REQUEST"},
                        {"name": "E", "status": "GREEN"}, {"name": "W", "status": "GREEN"},
                    ],
                },
            ],
            "placements": [
                {"signal": "N", "road": ["north", "centre"], "position": 190.0},
                {"signal": "S", "road": ["south", "centre"], "position": 190.0},
                {"signal": "E", "road": ["east", "centre"], "position": 190.0},
                {"signal": "W", "road": ["west", "centre"], "position": 190.0},
            ],
        }],
    })
