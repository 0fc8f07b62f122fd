import abc

import jax
import numpy as onp
from overrides import EnforceOverrides, final

from .. import hints


class NoiseModelBase(abc.ABC, EnforceOverrides):
    @abc.abstractmethod
    def get_residual_dim(self) -> int:
        pass

    @abc.abstractmethod
    def whiten_residual_vector(self, residual_vector: hints.Array) -> hints.Array:
        pass

    @abc.abstractmethod
    def get_precision_diagonal(self) -> hints.Array:
        """Diagonal of the information (inverse covariance) matrix."""

    @final
    def equals(self, other: "NoiseModelBase", tol: float = 1e-9) -> bool:
        """Approximate equality: same noise model type, all parameters within `tol`."""
        if type(self) is not type(other):
            return False
        leaves = jax.tree_util.tree_leaves(self)
        other_leaves = jax.tree_util.tree_leaves(other)
        if len(leaves) != len(other_leaves):
            return False
        for leaf, other_leaf in zip(leaves, other_leaves):
            leaf = onp.asarray(leaf)
            other_leaf = onp.asarray(other_leaf)
            if leaf.shape != other_leaf.shape:
                return False
            if not onp.allclose(leaf, other_leaf, rtol=0.0, atol=tol):
                return False
        return True
