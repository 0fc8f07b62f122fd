import dataclasses
from typing import Callable, Iterable, List, Optional

from ._factor_base import FactorBase


@dataclasses.dataclass
class Clique:
    """Node of a Bayes tree: a conditional plus child cliques."""

    conditional: Optional[FactorBase]
    children: List["Clique"] = dataclasses.field(default_factory=list)

    def add_child(self, child: "Clique") -> "Clique":
        self.children.append(child)
        return child


@dataclasses.dataclass
class BayesTree:
    """Forest of cliques, as produced by eliminating a factor graph."""

    roots: List[Clique] = dataclasses.field(default_factory=list)

    def add_root(self, root: Clique) -> Clique:
        self.roots.append(root)
        return root

    def cliques(self) -> List[Clique]:
        """All cliques, in depth-first order."""
        out: List[Clique] = []
        depth_first_forest(self.roots, out.append)
        return out

    def size(self) -> int:
        return len(self.cliques())


def depth_first_forest(
    roots: Iterable[Clique], visitor: Callable[[Clique], None]
) -> None:
    """Pre-order walk over a forest of cliques.

    Each clique is visited before its children, and each subtree is finished before
    the next sibling is entered. Siblings are visited in insertion order.
    """
    stack = list(roots)[::-1]
    while len(stack) > 0:
        clique = stack.pop()
        visitor(clique)
        stack.extend(clique.children[::-1])
