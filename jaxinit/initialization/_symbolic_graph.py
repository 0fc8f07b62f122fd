import collections
import dataclasses
from typing import Dict, FrozenSet, Iterable, List, Tuple

import jaxlie

from ..core import FactorGraph, Key
from ..geometry import BetweenFactor
from ._errors import DisconnectedGraphError, MalformedGraphError
from ._rotation_graph import ANCHOR_KEY


@dataclasses.dataclass(frozen=True)
class SymbolicRotationGraph:
    """Adjacency structure of a relative rotation graph.

    Edge ids are factor indices in the rotation graph. Rebuilt for every
    initialization call.
    """

    adj_edges_map: Dict[Key, List[int]]
    """Ids of the edges incident to each key, in factor order. Includes the anchor."""

    factor_id_to_rot_map: Dict[int, jaxlie.SO3]
    """Measured relative rotation `R_a^-1 R_b` of each edge."""

    factor_id_to_precision: Dict[int, float]
    """Scalar rotation precision of each edge."""

    edge_keys: Dict[int, Tuple[Key, Key]]
    """Endpoints `(a, b)` of each edge."""

    def get_keys(self) -> List[Key]:
        """All keys, in order of first appearance."""
        return list(self.adj_edges_map.keys())


def create_symbolic_graph(pose3_graph: FactorGraph) -> SymbolicRotationGraph:
    """Index a rotation graph, as built by `build_pose3_graph()`.

    Both endpoints of edge `i` get `i` appended to their adjacency lists.
    """
    adj_edges_map: Dict[Key, List[int]] = {}
    factor_id_to_rot_map: Dict[int, jaxlie.SO3] = {}
    factor_id_to_precision: Dict[int, float] = {}
    edge_keys: Dict[int, Tuple[Key, Key]] = {}

    for factor_id, factor in enumerate(pose3_graph):
        if factor is None:
            continue
        if not (
            isinstance(factor, BetweenFactor) and isinstance(factor.T_a_b, jaxlie.SO3)
        ):
            raise MalformedGraphError(
                f"Factor {factor_id} of the rotation graph is a"
                f" {type(factor).__name__}, not an SO3 BetweenFactor."
            )

        key_a, key_b = factor.keys
        adj_edges_map.setdefault(key_a, []).append(factor_id)
        adj_edges_map.setdefault(key_b, []).append(factor_id)
        factor_id_to_rot_map[factor_id] = factor.T_a_b
        # First entry of the rotation precision; rotation noise is treated as
        # isotropic.
        factor_id_to_precision[factor_id] = float(
            factor.noise_model.get_precision_diagonal()[0]
        )
        edge_keys[factor_id] = (key_a, key_b)

    return SymbolicRotationGraph(
        adj_edges_map=adj_edges_map,
        factor_id_to_rot_map=factor_id_to_rot_map,
        factor_id_to_precision=factor_id_to_precision,
        edge_keys=edge_keys,
    )


def find_unreachable_keys(
    keys: Iterable[Key], edges: Iterable[Tuple[Key, Key]], anchor: Key
) -> FrozenSet[Key]:
    """Keys with no path to `anchor` along undirected `edges`."""
    neighbors: Dict[Key, List[Key]] = collections.defaultdict(list)
    for key_a, key_b in edges:
        neighbors[key_a].append(key_b)
        neighbors[key_b].append(key_a)

    visited = {anchor}
    queue = collections.deque([anchor])
    while len(queue) > 0:
        key = queue.popleft()
        for neighbor in neighbors[key]:
            if neighbor not in visited:
                visited.add(neighbor)
                queue.append(neighbor)

    return frozenset(key for key in keys if key not in visited)


def find_disconnected_keys(
    symbolic_graph: SymbolicRotationGraph, anchor: Key = ANCHOR_KEY
) -> FrozenSet[Key]:
    """Keys of a rotation graph with no path to the anchor."""
    return find_unreachable_keys(
        symbolic_graph.get_keys(), symbolic_graph.edge_keys.values(), anchor
    )


def assert_connected(
    symbolic_graph: SymbolicRotationGraph, anchor: Key = ANCHOR_KEY
) -> None:
    """Raises `DisconnectedGraphError` if any key cannot reach the anchor."""
    disconnected = find_disconnected_keys(symbolic_graph, anchor)
    if len(disconnected) > 0:
        raise DisconnectedGraphError(disconnected)
