import abc
from typing import TYPE_CHECKING, Tuple

import jax_dataclasses as jdc
from jax import numpy as jnp
from overrides import EnforceOverrides, final

from .. import hints, noises
from ._keys import Key, KeyFormatter, default_key_formatter

if TYPE_CHECKING:
    from ._values import Values


@jdc.pytree_dataclass
class _FactorBase:
    # For why we have two classes:
    # https://github.com/python/mypy/issues/5374#issuecomment-650656381

    keys: jdc.Static[Tuple[Key, ...]]
    """Keys of the variables connected to this factor, in order."""


class FactorBase(_FactorBase, abc.ABC, EnforceOverrides):
    """Immutable constraint over a set of variables.

    Factors are never mutated after construction, so the same factor object can be
    shared between any number of graphs.
    """

    @abc.abstractmethod
    def equals(self, other: "FactorBase", tol: float = 1e-9) -> bool:
        """Approximate equality, within tolerance `tol`."""

    def to_text(
        self, label: str = "", key_formatter: KeyFormatter = default_key_formatter
    ) -> str:
        """Human-readable description of this factor."""
        keys = ", ".join(key_formatter(key) for key in self.keys)
        return f"{label}{type(self).__name__}({keys})"

    @final
    def print(
        self, label: str = "", key_formatter: KeyFormatter = default_key_formatter
    ) -> None:
        print(self.to_text(label, key_formatter))

    @final
    def size(self) -> int:
        """Number of connected variables."""
        return len(self.keys)


@jdc.pytree_dataclass
class _NonlinearFactorBase(FactorBase):
    noise_model: noises.NoiseModelBase
    """Noise model."""


class NonlinearFactorBase(_NonlinearFactorBase, abc.ABC):
    """Factor with a residual defined on values of its variables."""

    @abc.abstractmethod
    def compute_residual_vector(
        self, variable_values: Tuple[hints.GroupValue, ...]
    ) -> jnp.ndarray:
        """Compute factor error.

        Args:
            variable_values: Values of the variables in `self.keys`, in order.
        """

    @final
    def get_residual_dim(self) -> int:
        """Error dimensionality."""
        return self.noise_model.get_residual_dim()

    @final
    def compute_whitened_residual_vector(self, values: "Values") -> jnp.ndarray:
        """Residual evaluated at `values` and whitened by the noise model."""
        residual_vector = self.compute_residual_vector(
            tuple(values.at(key) for key in self.keys)
        )
        return self.noise_model.whiten_residual_vector(residual_vector)
