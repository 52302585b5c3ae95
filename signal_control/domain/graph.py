import networkx as nx
from typing import Any, Dict, List, Tuple

from signal_control.domain.errors import ConfigurationError

class RoadNetwork:
    """Roads leading into signalised intersections, with the signal heads placed on them."""

    def __init__(self):
        self.graph = nx.DiGraph()

    def add_road(self, u: str, v: str, length: float, lanes: int = 1):
        self.graph.add_edge(u, v, length=length, lanes=lanes, signals=[])

    def get_edge_data(self, u: str, v: str) -> Dict[str, Any]:
        return self.graph.get_edge_data(u, v)

    def place_signal(self, head, u: str, v: str, position: float):
        """Fixes `head` at `position` metres along road u->v."""
        edge = self.graph.get_edge_data(u, v)
        if edge is None:
            raise ConfigurationError(f"signal {head.name!r} placed on unknown road {u}->{v}")
        if not 0.0 <= position <= edge["length"]:
            raise ConfigurationError(
                f"signal {head.name!r} position {position} outside road {u}->{v} (length {edge['length']})"
            )
        head.set_position(position, road=(u, v))
        edge["signals"].append(head)

    def signals_on_road(self, u: str, v: str) -> List[Any]:
        edge = self.graph.get_edge_data(u, v)
        if edge is None:
            return []
        return sorted(edge["signals"], key=lambda head: head.position)

    def approach_roads(self, node_id: str) -> List[Tuple[str, str]]:
        return list(self.graph.in_edges(node_id))
