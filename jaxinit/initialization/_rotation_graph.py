from typing import Optional, Union

import jaxlie
from jax import numpy as jnp

from .. import noises
from ..core import FactorBase, FactorGraph, symbol
from ..geometry import BetweenFactor, PriorFactor
from ._errors import MalformedGraphError

ANCHOR_KEY = symbol("Z", 9999999)
"""Reserved key of the synthetic node that is fixed to the identity rotation."""

Pose3Factor = Union[BetweenFactor, PriorFactor]


def check_pose3_factor(index: int, factor: FactorBase) -> Pose3Factor:
    """Validate that a factor is an SE(3) between factor or SE(3) prior, and that it
    does not touch the anchor key."""
    if ANCHOR_KEY in factor.keys:
        raise MalformedGraphError(
            f"Factor {index} uses the reserved anchor key {ANCHOR_KEY}."
        )
    if isinstance(factor, BetweenFactor) and isinstance(factor.T_a_b, jaxlie.SE3):
        return factor
    if isinstance(factor, PriorFactor) and isinstance(factor.mu, jaxlie.SE3):
        return factor

    measurement = getattr(factor, "T_a_b", getattr(factor, "mu", None))
    raise MalformedGraphError(
        f"Factor {index} has unsupported type {type(factor).__name__}"
        + (
            f"[{type(measurement).__name__}]"
            if isinstance(measurement, jaxlie.MatrixLieGroup)
            else ""
        )
        + "; expected a BetweenFactor or PriorFactor on SE3."
    )


def rotation_noise_model(
    noise_model: noises.NoiseModelBase,
) -> noises.DiagonalGaussian:
    """Rotation-only noise model for an SE(3) noise model.

    jaxlie orders SE(3) tangents as (translation, rotation), so the rotation block is
    the last three entries of the precision diagonal.
    """
    precision_diagonal = jnp.asarray(noise_model.get_precision_diagonal())
    assert precision_diagonal.shape == (6,)
    return noises.DiagonalGaussian.make_from_precision(precision_diagonal[3:])


def build_pose3_graph(graph: FactorGraph) -> FactorGraph[BetweenFactor]:
    """Reduce a pose graph to a graph of relative rotations.

    Each SE(3) between factor becomes an SO(3) between factor over the same keys,
    keeping only the rotation of the measurement. Each SE(3) prior becomes an SO(3)
    between factor from `ANCHOR_KEY` to the prior's key. Factor order is preserved;
    null slots are dropped.

    Raises:
        MalformedGraphError: if any other kind of factor is present.
    """
    pose3_graph: FactorGraph[BetweenFactor] = FactorGraph()

    factor: Optional[FactorBase]
    for index, factor in enumerate(graph):
        if factor is None:
            continue
        factor = check_pose3_factor(index, factor)

        if isinstance(factor, BetweenFactor):
            key_a, key_b = factor.keys
            pose3_graph.push_back(
                BetweenFactor.make(
                    key_a,
                    key_b,
                    T_a_b=factor.T_a_b.rotation(),
                    noise_model=rotation_noise_model(factor.noise_model),
                )
            )
        else:
            (key,) = factor.keys
            pose3_graph.push_back(
                BetweenFactor.make(
                    ANCHOR_KEY,
                    key,
                    T_a_b=factor.mu.rotation(),
                    noise_model=rotation_noise_model(factor.noise_model),
                )
            )

    return pose3_graph
