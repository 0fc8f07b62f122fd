from typing import Sequence, Tuple

import jax_dataclasses as jdc
import numpy as onp
import scipy.sparse
from jax import numpy as jnp

from .. import hints


@jdc.pytree_dataclass
class SparseCooCoordinates:
    rows: hints.Array
    """Row indices of non-zero entries. Shape should be `(N,)`."""
    cols: hints.Array
    """Column indices of non-zero entries. Shape should be `(N,)`."""


@jdc.pytree_dataclass
class SparseCooMatrix:
    """Sparse matrix in COO form. Repeated coordinates are summed."""

    values: hints.Array
    """Non-zero matrix values. Shape should be `(N,)`."""
    coords: SparseCooCoordinates
    """Row and column indices of non-zero entries. Shapes should be `(N,)`."""
    shape: jdc.Static[Tuple[int, int]]
    """Shape of matrix."""

    @staticmethod
    def from_triplets(
        rows: Sequence[int],
        cols: Sequence[int],
        values: Sequence[float],
        shape: Tuple[int, int],
    ) -> "SparseCooMatrix":
        """Build from parallel lists of row indices, column indices, and values."""
        assert len(rows) == len(cols) == len(values)
        return SparseCooMatrix(
            values=onp.asarray(values, dtype=onp.float64),
            coords=SparseCooCoordinates(
                rows=onp.asarray(rows, dtype=onp.int32),
                cols=onp.asarray(cols, dtype=onp.int32),
            ),
            shape=shape,
        )

    def __matmul__(self, other: hints.Array):
        """Compute `Ax`, where `x` is a 1D vector."""
        assert other.shape == (
            self.shape[1],
        ), "Inner product only supported for 1D vectors!"
        return (
            jnp.zeros(self.shape[0], dtype=other.dtype)
            .at[self.coords.rows]
            .add(self.values * other[self.coords.cols])
        )

    def as_scipy_coo_matrix(self) -> scipy.sparse.coo_matrix:
        """Convert to a sparse scipy matrix."""
        return scipy.sparse.coo_matrix(
            (
                onp.asarray(self.values),
                (onp.asarray(self.coords.rows), onp.asarray(self.coords.cols)),
            ),
            shape=self.shape,
        )

    @property
    def T(self):
        """Return transpose of our sparse matrix."""
        return SparseCooMatrix(
            values=self.values,
            coords=SparseCooCoordinates(
                rows=self.coords.cols,
                cols=self.coords.rows,
            ),
            shape=self.shape[::-1],
        )
