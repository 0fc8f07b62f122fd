import contextlib
from typing import ContextManager, Dict, List, Optional, Tuple

import jaxlie
import numpy as onp

from .. import sparse, utils
from ..core import FactorGraph, Key, Values
from ..geometry import BetweenFactor
from ._chordal import compute_orientations_chordal
from ._errors import DisconnectedGraphError
from ._gradient import (
    GradientDescentConfig,
    compute_orientations_gradient,
    get_rotation,
)
from ._rotation_graph import (
    ANCHOR_KEY,
    Pose3Factor,
    build_pose3_graph,
    check_pose3_factor,
)
from ._symbolic_graph import find_unreachable_keys


def _translation_weight(factor: Pose3Factor) -> float:
    # Translation block comes first in jaxlie's SE(3) tangent ordering.
    return float(onp.sqrt(onp.asarray(factor.noise_model.get_precision_diagonal())[0]))


def compute_poses(
    pose_graph: FactorGraph,
    orientations: Values,
    linear_solver: sparse.LinearSolverBase = sparse.SparseDirectSolver(),
) -> Values:
    """Recover translations with orientations held fixed.

    With every `R_i` known, each constraint is linear in the translations:
    a between factor gives `t_b - t_a = R_a t_ab`, and a prior gives `t_k = t_prior`.
    Rows are weighted by the square root of the first translation precision entry.

    Args:
        pose_graph: Original graph of SE(3) between factors and priors.
        orientations: Rotation (or pose) for every key of `pose_graph`.
        linear_solver: Solver for the sparse least-squares problem.

    Returns:
        One `jaxlie.SE3` per key of `pose_graph`, in order of first appearance.

    Raises:
        MalformedGraphError: on factors other than SE(3) between factors and priors.
        DisconnectedGraphError: if a key is not linked to any prior.
        KeyError: if `orientations` is missing a key.
        TypeError: if an orientation is neither SO3 nor SE3.
    """
    factors: List[Pose3Factor] = [
        check_pose3_factor(index, factor)
        for index, factor in enumerate(pose_graph)
        if factor is not None
    ]

    index_from_key: Dict[Key, int] = {}
    edges: List[Tuple[Key, Key]] = []
    for factor in factors:
        for key in factor.keys:
            index_from_key.setdefault(key, len(index_from_key))
        if isinstance(factor, BetweenFactor):
            key_a, key_b = factor.keys
            edges.append((key_a, key_b))
        else:
            edges.append((ANCHOR_KEY, factor.keys[0]))

    # Translations are only pinned down by priors.
    unreachable = find_unreachable_keys(index_from_key.keys(), edges, ANCHOR_KEY)
    if len(unreachable) > 0:
        raise DisconnectedGraphError(unreachable)
    if len(index_from_key) == 0:
        return Values()

    rotation_from_key: Dict[Key, jaxlie.SO3] = {}
    for key in index_from_key.keys():
        if not orientations.exists(key):
            raise KeyError(f"Orientations are missing key {key}!")
        rotation_from_key[key] = get_rotation(orientations.at(key))

    rows: List[int] = []
    cols: List[int] = []
    values: List[float] = []
    b: List[float] = []
    row_offset = 0

    for factor in factors:
        weight = _translation_weight(factor)
        if isinstance(factor, BetweenFactor):
            key_a, key_b = factor.keys
            col_a = 3 * index_from_key[key_a]
            col_b = 3 * index_from_key[key_b]
            R_a = onp.asarray(rotation_from_key[key_a].as_matrix())
            target = R_a @ onp.asarray(factor.T_a_b.translation())
            for i in range(3):
                rows.extend([row_offset + i, row_offset + i])
                cols.extend([col_b + i, col_a + i])
                values.extend([weight, -weight])
                b.append(weight * target[i])
        else:
            (key,) = factor.keys
            col = 3 * index_from_key[key]
            target = onp.asarray(factor.mu.translation())
            for i in range(3):
                rows.append(row_offset + i)
                cols.append(col + i)
                values.append(weight)
                b.append(weight * target[i])
        row_offset += 3

    A = sparse.SparseCooMatrix.from_triplets(
        rows, cols, values, shape=(row_offset, 3 * len(index_from_key))
    )
    translations = linear_solver.solve_least_squares(A, onp.asarray(b))

    poses = Values()
    for key, i in index_from_key.items():
        poses.insert(
            key,
            jaxlie.SE3.from_rotation_and_translation(
                rotation=rotation_from_key[key],
                translation=translations[3 * i : 3 * i + 3],
            ),
        )
    return poses


def initialize(
    graph: FactorGraph,
    given_guess: Optional[Values] = None,
    use_gradient: bool = False,
    config: GradientDescentConfig = GradientDescentConfig(),
    linear_solver: sparse.LinearSolverBase = sparse.SparseDirectSolver(),
    verbose: bool = False,
) -> Values:
    """Initial poses for a graph of SE(3) between factors and priors.

    Orientations come from the chordal relaxation, or, with `use_gradient=True`,
    from gradient descent started at `given_guess` (at the chordal solution when no
    guess is passed). Translations are then solved for with the orientations fixed.
    `given_guess` is only read by the gradient stage.

    Raises:
        MalformedGraphError: on factors other than SE(3) between factors and priors.
        DisconnectedGraphError: if a key has no path to a prior.
    """

    def stage(label: str) -> ContextManager[None]:
        return utils.stopwatch(label) if verbose else contextlib.nullcontext()

    with stage("Building rotation graph"):
        pose3_graph = build_pose3_graph(graph)

    if use_gradient:
        if given_guess is None:
            with stage("Chordal warm start"):
                given_guess = compute_orientations_chordal(
                    pose3_graph, linear_solver=linear_solver, verbose=verbose
                )
        with stage("Rotation gradient descent"):
            orientations = compute_orientations_gradient(
                pose3_graph, given_guess, config=config, verbose=verbose
            )
    else:
        with stage("Chordal relaxation"):
            orientations = compute_orientations_chordal(
                pose3_graph, linear_solver=linear_solver, verbose=verbose
            )

    with stage("Translation recovery"):
        return compute_poses(graph, orientations, linear_solver=linear_solver)
