from typing import Generic, Iterable, Iterator, List, Optional, Set, TypeVar

import numpy as onp

from ._bayes_tree import BayesTree, depth_first_forest
from ._factor_base import FactorBase, NonlinearFactorBase
from ._keys import Key, KeyFormatter, default_key_formatter
from ._values import Values

FactorType = TypeVar("FactorType", bound=FactorBase)


class FactorGraph(Generic[FactorType]):
    """Ordered collection of factor slots.

    Slots can be `None`: removing a factor nulls out its slot instead of shifting the
    factors that follow, so factor indices stay valid. Factors are immutable and can
    be shared with other graphs.

    Mutation is not synchronized; concurrent writers need an external lock.
    """

    def __init__(self, factors: Iterable[Optional[FactorType]] = ()):
        self._factors: List[Optional[FactorType]] = list(factors)

    # Sizes.

    def size(self) -> int:
        """Number of slots, including null ones."""
        return len(self._factors)

    def nr_factors(self) -> int:
        """Number of non-null slots."""
        return sum(1 for factor in self._factors if factor is not None)

    def empty(self) -> bool:
        return len(self._factors) == 0

    # Access.

    def at(self, index: int) -> Optional[FactorType]:
        return self._factors[index]

    def exists(self, index: int) -> bool:
        """True if `index` is in range and its slot is non-null."""
        return 0 <= index < len(self._factors) and self._factors[index] is not None

    def keys(self) -> Set[Key]:
        """All keys touched by any non-null factor."""
        all_keys: Set[Key] = set()
        for factor in self._factors:
            if factor is not None:
                all_keys.update(factor.keys)
        return all_keys

    # Mutation.

    def push_back(self, factor: Optional[FactorType]) -> None:
        self._factors.append(factor)

    def push_back_factors(self, factors: Iterable[Optional[FactorType]]) -> None:
        self._factors.extend(factors)

    def push_back_graph(self, graph: "FactorGraph[FactorType]") -> None:
        self._factors.extend(graph)

    def push_back_bayes_tree(self, bayes_tree: BayesTree) -> None:
        """Append the conditional of every clique, in depth-first order."""
        depth_first_forest(
            bayes_tree.roots, lambda clique: self.push_back(clique.conditional)
        )

    def replace(self, index: int, factor: Optional[FactorType]) -> None:
        self._factors[index] = factor

    def remove(self, index: int) -> None:
        """Null out a slot. Indices of the other factors are unchanged."""
        self._factors[index] = None

    # Comparison and output.

    def equals(self, other: "FactorGraph", tol: float = 1e-9) -> bool:
        """Slot-by-slot approximate equality.

        Note that this is sensitive to factor order: two graphs holding the same
        factors inserted in a different order are *not* equal. Null slots only match
        null slots.
        """
        if self.size() != other.size():
            return False

        for f1, f2 in zip(self._factors, other):
            if f1 is None and f2 is None:
                continue
            if f1 is None or f2 is None:
                return False
            if not f1.equals(f2, tol):
                return False
        return True

    def print(
        self, label: str = "", key_formatter: KeyFormatter = default_key_formatter
    ) -> None:
        print(label)
        print(f"size: {self.size()}")
        for i, factor in enumerate(self._factors):
            if factor is not None:
                factor.print(f"factor {i}: ", key_formatter)

    def compute_cost(self, values: Values) -> float:
        """Sum of squared whitened residuals. Factors without residuals (eg symbolic
        ones) are skipped."""
        cost = 0.0
        for factor in self._factors:
            if isinstance(factor, NonlinearFactorBase):
                residual_vector = factor.compute_whitened_residual_vector(values)
                cost += float(onp.sum(onp.asarray(residual_vector) ** 2))
        return cost

    # Python protocols.

    def __getitem__(self, index: int) -> Optional[FactorType]:
        return self._factors[index]

    def __iter__(self) -> Iterator[Optional[FactorType]]:
        return iter(self._factors)

    def __len__(self) -> int:
        return len(self._factors)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(size={self.size()}, "
            f"nr_factors={self.nr_factors()})"
        )
