from ._linear_solve import (
    ConjugateGradientSolver,
    LinearSolverBase,
    SparseDirectSolver,
)
from ._sparse_matrix import SparseCooCoordinates, SparseCooMatrix

__all__ = [
    "ConjugateGradientSolver",
    "LinearSolverBase",
    "SparseCooCoordinates",
    "SparseCooMatrix",
    "SparseDirectSolver",
]
