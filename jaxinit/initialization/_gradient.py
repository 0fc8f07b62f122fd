import math
import warnings
from typing import Literal, Tuple, Union, overload

import jax
import jax_dataclasses as jdc
import jaxlie
import numpy as onp
from jax import numpy as jnp

from .. import hints, utils
from ..core import FactorGraph, Values, symbol_key_formatter
from ._rotation_graph import ANCHOR_KEY
from ._symbolic_graph import assert_connected, create_symbolic_graph


@jdc.pytree_dataclass
class GradientDescentConfig:
    """Settings for `compute_orientations_gradient()`."""

    max_iterations: jdc.Static[int] = 10000
    """Maximum number of iterations."""

    min_iterations: jdc.Static[int] = 20
    """Iterations to run before checking the step tolerance."""

    step_tolerance: float = 1e-8
    """We terminate once every per-key tangent update has norm below this. Loosen it
    when running without `jax_enable_x64`."""

    b: float = 1.0
    """Shape parameter of the robust rotation cost `f(theta)`."""

    def compute_a(self) -> float:
        """Scale of the cost, chosen so that `f(pi) = pi^2 / 2`, where
        `f(theta) = a * (1/b - (1/b + theta) * exp(-b * theta))`."""
        b = float(self.b)
        f0 = 1.0 / b - (1.0 / b + math.pi) * math.exp(-b * math.pi)
        return math.pi**2 / (2.0 * f0)


@jdc.pytree_dataclass
class GradientDescentSummary:
    iterations: int
    max_step: float
    """Largest per-key tangent update in the last iteration."""
    converged: bool


@jdc.pytree_dataclass
class _GradientDescentState:
    iterations: hints.Array
    inverse_rotations: jaxlie.SO3
    """Stacked `R_i^-1`, one per key. Shape of `wxyz` is `(num_keys, 4)`."""
    max_step: hints.Array
    done: hints.Array


@jdc.pytree_dataclass
class _EdgeArrays:
    index_a: hints.Array
    index_b: hints.Array
    R_ab: jaxlie.SO3
    precision: hints.Array


def gradient_tron(
    R1: jaxlie.SO3, R2: jaxlie.SO3, a: hints.Scalar, b: hints.Scalar
) -> jnp.ndarray:
    """Tangent-space descent direction pulling `R1` toward `R2`.

    With `v = log(R1^-1 R2)` and `theta = |v|`, returns `f'(theta) * v / theta`, where
    `f'(theta) = a * b * theta * exp(-b * theta)`. The `theta` factors cancel, so this
    is evaluated as `a * b * exp(-b * theta) * v`, which is smooth and exactly zero
    when `R1 == R2`.
    """
    log_rot = (R1.inverse() @ R2).log()
    theta = jnp.linalg.norm(log_rot)
    return a * b * jnp.exp(-b * theta) * log_rot


def get_rotation(value: hints.GroupValue) -> jaxlie.SO3:
    """Rotation part of an SO(3) or SE(3) value. Raises `TypeError` otherwise."""
    if isinstance(value, jaxlie.SE3):
        return value.rotation()
    if isinstance(value, jaxlie.SO3):
        return value
    raise TypeError(f"Expected an SO3 or SE3 value, but got {type(value).__name__}!")


def _edge_gradients(
    Q_a: jaxlie.SO3, Q_b: jaxlie.SO3, R_ab: jaxlie.SO3, a: float, b: float
) -> Tuple[jnp.ndarray, jnp.ndarray]:
    # With Q = R^-1, the measurement `R_b = R_a R_ab` reads `Q_a = R_ab Q_b`.
    return (
        gradient_tron(Q_a, R_ab @ Q_b, a, b),
        gradient_tron(Q_b, R_ab.inverse() @ Q_a, a, b),
    )


def _run_gradient_descent(
    edges: _EdgeArrays,
    initial_inverse_rotations: jaxlie.SO3,
    free_mask: hints.Array,
    step_size: float,
    a: float,
    config: GradientDescentConfig,
    verbose: bool,
) -> _GradientDescentState:
    num_keys = free_mask.shape[0]

    def step(state: _GradientDescentState) -> _GradientDescentState:
        Q = state.inverse_rotations
        Q_a = jaxlie.SO3(wxyz=Q.wxyz[edges.index_a])
        Q_b = jaxlie.SO3(wxyz=Q.wxyz[edges.index_b])
        gradient_a, gradient_b = jax.vmap(
            _edge_gradients, in_axes=(0, 0, 0, None, None)
        )(Q_a, Q_b, edges.R_ab, a, config.b)

        # Accumulate weighted contributions of all incident edges.
        weights = edges.precision[:, None]
        gradients = (
            jnp.zeros((num_keys, 3), dtype=gradient_a.dtype)
            .at[edges.index_a]
            .add(weights * gradient_a)
            .at[edges.index_b]
            .add(weights * gradient_b)
        )
        steps = step_size * gradients * free_mask[:, None]
        max_step = jnp.max(jnp.linalg.norm(steps, axis=-1))

        if verbose:
            utils.jax_log(
                "Iteration #{i}: max_step={max_step:.3e}",
                i=state.iterations,
                max_step=max_step,
            )

        iterations = state.iterations + 1
        done = jnp.logical_or(
            iterations >= config.max_iterations,
            jnp.logical_and(
                iterations >= config.min_iterations,
                max_step < config.step_tolerance,
            ),
        )
        return _GradientDescentState(
            iterations=iterations,
            inverse_rotations=jax.vmap(jaxlie.manifold.rplus)(Q, steps),
            max_step=max_step,
            done=done,
        )

    initial_state = _GradientDescentState(
        iterations=jnp.array(0),
        inverse_rotations=initial_inverse_rotations,
        max_step=jnp.array(jnp.inf, dtype=initial_inverse_rotations.wxyz.dtype),
        done=jnp.array(config.max_iterations <= 0),
    )
    return jax.jit(
        lambda state: jax.lax.while_loop(
            cond_fun=lambda state: jnp.logical_not(state.done),
            body_fun=step,
            init_val=state,
        )
    )(initial_state)


@overload
def compute_orientations_gradient(
    pose3_graph: FactorGraph,
    given_guess: Values,
    config: GradientDescentConfig = ...,
    verbose: bool = ...,
    return_summary: Literal[False] = ...,
) -> Values:
    ...


@overload
def compute_orientations_gradient(
    pose3_graph: FactorGraph,
    given_guess: Values,
    config: GradientDescentConfig = ...,
    verbose: bool = ...,
    *,
    return_summary: Literal[True],
) -> Tuple[Values, GradientDescentSummary]:
    ...


def compute_orientations_gradient(
    pose3_graph: FactorGraph,
    given_guess: Values,
    config: GradientDescentConfig = GradientDescentConfig(),
    verbose: bool = False,
    return_summary: bool = False,
) -> Union[Values, Tuple[Values, GradientDescentSummary]]:
    """Refine orientations by gradient descent on SO(3).

    Every key except the anchor is updated simultaneously, each with the summed,
    precision-weighted `gradient_tron()` contributions of its incident edges. The
    step size is `1 / (a * b * d)`, where `d` is the largest precision-weighted
    degree. The anchor stays at the identity.

    Not reaching `config.step_tolerance` within `config.max_iterations` is reported
    with a `RuntimeWarning`; the latest estimate is still returned.

    Args:
        pose3_graph: Rotation graph, as built by `build_pose3_graph()`.
        given_guess: Initial rotations or poses for every key of the graph.
        config: Iteration settings.
        verbose: Set to `True` to log progress.
        return_summary: Set to `True` to also return a `GradientDescentSummary`.

    Raises:
        DisconnectedGraphError: if a key has no path to the anchor.
        ValueError: if `given_guess` holds keys that are not in the graph.
        KeyError: if `given_guess` is missing a key of the graph.
        TypeError: if a guess value is neither SO3 nor SE3.
    """
    symbolic_graph = create_symbolic_graph(pose3_graph)
    assert_connected(symbolic_graph)

    keys = [key for key in symbolic_graph.get_keys() if key != ANCHOR_KEY]
    extra_keys = set(given_guess.keys()) - set(keys)
    if len(extra_keys) > 0:
        raise ValueError(
            "Initial guess holds keys that are not in the graph: "
            + ", ".join(symbol_key_formatter(key) for key in sorted(extra_keys))
        )
    if len(keys) == 0:
        empty_summary = GradientDescentSummary(
            iterations=0, max_step=0.0, converged=True
        )
        return (Values(), empty_summary) if return_summary else Values()

    # Initial guess, inverted. Anchor goes first.
    initial_rotations = [jaxlie.SO3.identity()]
    for key in keys:
        if not given_guess.exists(key):
            raise KeyError(f"Initial guess is missing key {key}!")
        initial_rotations.append(get_rotation(given_guess.at(key)))
    all_keys = [ANCHOR_KEY] + keys
    index_from_key = {key: i for i, key in enumerate(all_keys)}

    # Loop carry must keep a fixed dtype.
    dtype = jnp.zeros(()).dtype
    initial_inverse_rotations = jaxlie.SO3(
        wxyz=jnp.stack(
            [rotation.inverse().wxyz for rotation in initial_rotations]
        ).astype(dtype)
    )

    edge_ids = list(symbolic_graph.edge_keys.keys())
    edges = _EdgeArrays(
        index_a=jnp.array(
            [index_from_key[symbolic_graph.edge_keys[i][0]] for i in edge_ids]
        ),
        index_b=jnp.array(
            [index_from_key[symbolic_graph.edge_keys[i][1]] for i in edge_ids]
        ),
        R_ab=jaxlie.SO3(
            wxyz=jnp.stack(
                [symbolic_graph.factor_id_to_rot_map[i].wxyz for i in edge_ids]
            ).astype(dtype)
        ),
        precision=jnp.array(
            [symbolic_graph.factor_id_to_precision[i] for i in edge_ids], dtype=dtype
        ),
    )

    free_mask = onp.ones(len(all_keys))
    free_mask[index_from_key[ANCHOR_KEY]] = 0.0
    free_mask = jnp.asarray(free_mask, dtype=dtype)

    a = config.compute_a()
    max_degree = max(
        sum(symbolic_graph.factor_id_to_precision[i] for i in edge_ids_of_key)
        for key, edge_ids_of_key in symbolic_graph.adj_edges_map.items()
        if key != ANCHOR_KEY
    )
    step_size = 1.0 / (a * float(config.b) * max_degree)

    state = _run_gradient_descent(
        edges=edges,
        initial_inverse_rotations=initial_inverse_rotations,
        free_mask=free_mask,
        step_size=step_size,
        a=a,
        config=config,
        verbose=verbose,
    )

    summary = GradientDescentSummary(
        iterations=int(state.iterations),
        max_step=float(state.max_step),
        converged=bool(state.max_step < config.step_tolerance),
    )
    if verbose:
        utils.log(
            "Terminated @ iteration #{i}: max_step={max_step:.3e}",
            i=summary.iterations,
            max_step=summary.max_step,
        )
    if not summary.converged:
        warnings.warn(
            f"Rotation gradient descent did not converge after {summary.iterations}"
            f" iterations (max step {summary.max_step:.3e}, tolerance"
            f" {config.step_tolerance:.3e}).",
            RuntimeWarning,
            stacklevel=2,
        )

    estimate = Values()
    for key in keys:
        Q = jaxlie.SO3(wxyz=state.inverse_rotations.wxyz[index_from_key[key]])
        estimate.insert(key, Q.inverse())

    if return_summary:
        return estimate, summary
    return estimate
