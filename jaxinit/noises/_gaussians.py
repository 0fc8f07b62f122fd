from typing import Sequence, Union

import jax_dataclasses as jdc
from jax import numpy as jnp
from overrides import overrides

from .. import hints
from ._noise_model_base import NoiseModelBase


@jdc.pytree_dataclass
class Gaussian(NoiseModelBase):
    sqrt_precision_matrix: hints.Array
    """Lower-triangular square root precision matrix."""

    @staticmethod
    def make_from_covariance(covariance: hints.Array) -> "Gaussian":
        covariance = jnp.asarray(covariance)
        assert (
            len(covariance.shape) == 2 and covariance.shape[0] == covariance.shape[1]
        ), "Covariance must be a square matrix!"
        return Gaussian(
            sqrt_precision_matrix=jnp.linalg.inv(jnp.linalg.cholesky(covariance))
        )

    @overrides
    def get_residual_dim(self) -> int:
        return self.sqrt_precision_matrix.shape[-1]

    @overrides
    def whiten_residual_vector(self, residual_vector: hints.Array) -> hints.Array:
        return jnp.einsum("ij,j->i", self.sqrt_precision_matrix, residual_vector)

    @overrides
    def get_precision_diagonal(self) -> hints.Array:
        # diag(L^T L): squared column norms of the square root.
        return jnp.sum(self.sqrt_precision_matrix**2, axis=0)


@jdc.pytree_dataclass
class DiagonalGaussian(NoiseModelBase):
    sqrt_precision_diagonal: hints.Array
    """Diagonal elements of square root precision matrix."""

    @staticmethod
    def make_from_covariance(
        diagonal: Union[hints.Array, Sequence[float]]
    ) -> "DiagonalGaussian":
        return DiagonalGaussian(
            sqrt_precision_diagonal=1.0 / jnp.sqrt(jnp.asarray(diagonal))
        )

    @staticmethod
    def make_from_precision(
        diagonal: Union[hints.Array, Sequence[float]]
    ) -> "DiagonalGaussian":
        return DiagonalGaussian(sqrt_precision_diagonal=jnp.sqrt(jnp.asarray(diagonal)))

    @overrides
    def get_residual_dim(self) -> int:
        return self.sqrt_precision_diagonal.shape[-1]

    @overrides
    def whiten_residual_vector(self, residual_vector: hints.Array) -> hints.Array:
        assert residual_vector.shape == self.sqrt_precision_diagonal.shape
        return self.sqrt_precision_diagonal * residual_vector

    @overrides
    def get_precision_diagonal(self) -> hints.Array:
        return self.sqrt_precision_diagonal**2


class Isotropic:
    """Factory for diagonal Gaussians with a single standard deviation."""

    @staticmethod
    def make_from_sigma(dim: int, sigma: float) -> DiagonalGaussian:
        return DiagonalGaussian(sqrt_precision_diagonal=jnp.full(dim, 1.0 / sigma))
