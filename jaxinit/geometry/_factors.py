from typing import NamedTuple, Tuple

import jax_dataclasses as jdc
import jaxlie
import numpy as onp
from jax import numpy as jnp
from overrides import overrides

from .. import noises
from ..core import (
    FactorBase,
    Key,
    KeyFormatter,
    NonlinearFactorBase,
    default_key_formatter,
)


def _group_values_close(
    a: jaxlie.MatrixLieGroup, b: jaxlie.MatrixLieGroup, tol: float
) -> bool:
    return type(a) is type(b) and onp.allclose(
        onp.asarray(a.as_matrix()), onp.asarray(b.as_matrix()), rtol=0.0, atol=tol
    )


@jdc.pytree_dataclass
class PriorFactor(NonlinearFactorBase):
    """Factor for defining a fixed prior on a frame.

    Residuals are computed as `(variable.inverse() @ mu).log()`.
    """

    mu: jaxlie.MatrixLieGroup

    @staticmethod
    def make(
        key: Key,
        mu: jaxlie.MatrixLieGroup,
        noise_model: noises.NoiseModelBase,
    ) -> "PriorFactor":
        assert noise_model.get_residual_dim() == type(mu).tangent_dim
        return PriorFactor(
            keys=(key,),
            mu=mu,
            noise_model=noise_model,
        )

    @overrides
    def compute_residual_vector(
        self, variable_values: Tuple[jaxlie.MatrixLieGroup, ...]
    ) -> jnp.ndarray:
        T: jaxlie.MatrixLieGroup
        (T,) = variable_values

        # Equivalent to: return (variable_value.inverse() @ self.mu).log()
        return jaxlie.manifold.rminus(T, self.mu)

    @overrides
    def equals(self, other: FactorBase, tol: float = 1e-9) -> bool:
        return (
            isinstance(other, PriorFactor)
            and self.keys == other.keys
            and _group_values_close(self.mu, other.mu, tol)
            and self.noise_model.equals(other.noise_model, tol)
        )

    @overrides
    def to_text(
        self, label: str = "", key_formatter: KeyFormatter = default_key_formatter
    ) -> str:
        return (
            f"{label}PriorFactor({key_formatter(self.keys[0])}, "
            f"mu={type(self.mu).__name__}{onp.asarray(self.mu.parameters())})"
        )


# Between factors connect two variables; a named tuple keeps the residual readable.
class BetweenValueTuple(NamedTuple):
    T_world_a: jaxlie.MatrixLieGroup
    T_world_b: jaxlie.MatrixLieGroup


@jdc.pytree_dataclass
class BetweenFactor(NonlinearFactorBase):
    """Factor for defining a geometric relationship between frames `a` and `b`.

    Residuals are computed as `((T_world_a.inverse() @ T_world_b).inverse() @ T_a_b).log()`.
    """

    T_a_b: jaxlie.MatrixLieGroup

    @staticmethod
    def make(
        key_a: Key,
        key_b: Key,
        T_a_b: jaxlie.MatrixLieGroup,
        noise_model: noises.NoiseModelBase,
    ) -> "BetweenFactor":
        assert noise_model.get_residual_dim() == type(T_a_b).tangent_dim
        return BetweenFactor(
            keys=(key_a, key_b),
            T_a_b=T_a_b,
            noise_model=noise_model,
        )

    @overrides
    def compute_residual_vector(
        self, variable_values: Tuple[jaxlie.MatrixLieGroup, ...]
    ) -> jnp.ndarray:
        values = BetweenValueTuple(*variable_values)
        T_world_a = values.T_world_a
        T_world_b = values.T_world_b

        return jaxlie.manifold.rminus(T_world_a.inverse() @ T_world_b, self.T_a_b)

    @overrides
    def equals(self, other: FactorBase, tol: float = 1e-9) -> bool:
        return (
            isinstance(other, BetweenFactor)
            and self.keys == other.keys
            and _group_values_close(self.T_a_b, other.T_a_b, tol)
            and self.noise_model.equals(other.noise_model, tol)
        )

    @overrides
    def to_text(
        self, label: str = "", key_formatter: KeyFormatter = default_key_formatter
    ) -> str:
        key_a, key_b = self.keys
        return (
            f"{label}BetweenFactor({key_formatter(key_a)}, {key_formatter(key_b)}, "
            f"T_a_b={type(self.T_a_b).__name__}{onp.asarray(self.T_a_b.parameters())})"
        )
