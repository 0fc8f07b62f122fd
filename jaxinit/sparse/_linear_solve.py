import abc

import jax
import jax_dataclasses as jdc
import numpy as onp
import scipy.sparse.linalg
from jax import numpy as jnp
from overrides import EnforceOverrides, overrides

from .. import hints
from ._sparse_matrix import SparseCooMatrix


class LinearSolverBase(abc.ABC, EnforceOverrides):
    """Linear least squares solver base class."""

    @abc.abstractmethod
    def solve_least_squares(self, A: SparseCooMatrix, b: hints.Array) -> onp.ndarray:
        """Find `x` minimizing `||Ax - b||^2`. `A` must have full column rank."""


@jdc.pytree_dataclass
class SparseDirectSolver(LinearSolverBase):
    """Direct solver: forms the normal equations `A^T A x = A^T b` and factorizes them
    with scipy's sparse LU (SuperLU). This is the default solver.

    Raises `RuntimeError` if the normal equations are exactly singular.
    """

    @overrides
    def solve_least_squares(self, A: SparseCooMatrix, b: hints.Array) -> onp.ndarray:
        A_scipy = A.as_scipy_coo_matrix().tocsc()
        ATA = (A_scipy.T @ A_scipy).tocsc()
        ATb = A_scipy.T @ onp.asarray(b, dtype=onp.float64)
        return scipy.sparse.linalg.splu(ATA).solve(ATb)


@jdc.pytree_dataclass
class ConjugateGradientSolver(LinearSolverBase):
    """Jacobi-preconditioned conjugate gradient on the normal equations, written in
    vanilla JAX."""

    tolerance: float = 1e-10
    """CG convergence tolerance."""

    @overrides
    def solve_least_squares(self, A: SparseCooMatrix, b: hints.Array) -> onp.ndarray:
        assert len(A.values.shape) == 1, "A.values should be 1D"
        b = jnp.asarray(b)
        assert b.shape == (A.shape[0],), "b should be 1D!"

        ATb = A.T @ b
        initial_x = jnp.zeros(A.shape[1], dtype=ATb.dtype)

        # Get diagonals of ATA, for Jacobi preconditioning
        ATA_diagonals = jnp.zeros_like(initial_x).at[A.coords.cols].add(A.values**2)

        def ATA_function(x: hints.Array):
            return A.T @ (A @ x)

        def jacobi_preconditioner(x):
            return x / ATA_diagonals

        # Solve with conjugate gradient
        solution_values, _unused_info = jax.scipy.sparse.linalg.cg(
            A=ATA_function,
            b=ATb,
            x0=initial_x,
            # Exact in `n` steps without rounding; leave slack for rounding.
            maxiter=10 * len(initial_x),
            tol=self.tolerance,
            M=jacobi_preconditioner,
        )
        return onp.asarray(solution_values)
