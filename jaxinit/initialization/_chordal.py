from typing import Dict, List

import numpy as onp

from .. import sparse, utils
from ..core import FactorGraph, Key, Values
from ..geometry import project_to_so3
from ._rotation_graph import ANCHOR_KEY
from ._symbolic_graph import (
    SymbolicRotationGraph,
    assert_connected,
    create_symbolic_graph,
)


def solve_relaxed_rotations(
    symbolic_graph: SymbolicRotationGraph,
    linear_solver: sparse.LinearSolverBase = sparse.SparseDirectSolver(),
) -> Dict[Key, onp.ndarray]:
    """Solve the linear relaxation of rotation averaging.

    Each rotation is treated as a free 3x3 matrix `M_i`, stored as its 9 entries in
    row-major order. An edge with measurement `R_ab` asks for `M_b = M_a R_ab`; row by
    row this reads `R_ab^T m_a^k - m_b^k = 0`, where `m^k` is the k-th row. Rows of
    each edge are weighted by the square root of its rotation precision. The anchor
    is tied to the identity with unit weight.

    Returns:
        Unconstrained 3x3 solutions, one per key (anchor included).
    """
    keys = symbolic_graph.get_keys()
    if ANCHOR_KEY not in symbolic_graph.adj_edges_map:
        keys = [ANCHOR_KEY] + keys
    index_from_key = {key: i for i, key in enumerate(keys)}

    rows: List[int] = []
    cols: List[int] = []
    values: List[float] = []
    b: List[float] = []
    row_offset = 0

    for factor_id, (key_a, key_b) in symbolic_graph.edge_keys.items():
        R_ab = onp.asarray(symbolic_graph.factor_id_to_rot_map[factor_id].as_matrix())
        weight = onp.sqrt(symbolic_graph.factor_id_to_precision[factor_id])
        col_a = 9 * index_from_key[key_a]
        col_b = 9 * index_from_key[key_b]

        for k in range(3):
            for m in range(3):
                row = row_offset + 3 * k + m
                for n in range(3):
                    rows.append(row)
                    cols.append(col_a + 3 * k + n)
                    values.append(weight * R_ab[n, m])
                rows.append(row)
                cols.append(col_b + 3 * k + m)
                values.append(-weight)
                b.append(0.0)
        row_offset += 9

    # Prior on the anchor orientation.
    col_anchor = 9 * index_from_key[ANCHOR_KEY]
    for i, identity_entry in enumerate(onp.eye(3).flatten()):
        rows.append(row_offset + i)
        cols.append(col_anchor + i)
        values.append(1.0)
        b.append(identity_entry)
    row_offset += 9

    A = sparse.SparseCooMatrix.from_triplets(
        rows, cols, values, shape=(row_offset, 9 * len(keys))
    )
    solution = linear_solver.solve_least_squares(A, onp.asarray(b))

    return {
        key: onp.asarray(solution[9 * i : 9 * i + 9]).reshape((3, 3))
        for key, i in index_from_key.items()
    }


def normalize_relaxed_rotations(relaxed_rotations: Dict[Key, onp.ndarray]) -> Values:
    """Project each relaxed 3x3 solution onto SO(3). The anchor is dropped."""
    estimate = Values()
    for key, matrix in relaxed_rotations.items():
        if key == ANCHOR_KEY:
            continue
        estimate.insert(key, project_to_so3(matrix))
    return estimate


def compute_orientations_chordal(
    pose3_graph: FactorGraph,
    linear_solver: sparse.LinearSolverBase = sparse.SparseDirectSolver(),
    verbose: bool = False,
) -> Values:
    """Global orientations from a rotation graph via chordal relaxation.

    Exact for noiseless, consistent measurements (up to projection rounding), and a
    least-squares fit otherwise.

    Raises:
        DisconnectedGraphError: if any key has no path to the anchor.
    """
    symbolic_graph = create_symbolic_graph(pose3_graph)
    assert_connected(symbolic_graph)
    if len(symbolic_graph.adj_edges_map) == 0:
        return Values()

    relaxed_rotations = solve_relaxed_rotations(symbolic_graph, linear_solver)
    if verbose:
        utils.log(
            "Chordal relaxation solved for {num_keys} rotations",
            num_keys=len(relaxed_rotations),
        )
    return normalize_relaxed_rotations(relaxed_rotations)
