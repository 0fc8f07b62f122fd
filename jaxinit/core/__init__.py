from ._bayes_tree import BayesTree, Clique, depth_first_forest
from ._factor_base import FactorBase, NonlinearFactorBase
from ._factor_graph import FactorGraph
from ._keys import (
    Key,
    KeyFormatter,
    default_key_formatter,
    symbol,
    symbol_chr,
    symbol_index,
    symbol_key_formatter,
)
from ._symbolic import SymbolicConditional, SymbolicFactor
from ._values import Values

__all__ = [
    "BayesTree",
    "Clique",
    "FactorBase",
    "FactorGraph",
    "Key",
    "KeyFormatter",
    "NonlinearFactorBase",
    "SymbolicConditional",
    "SymbolicFactor",
    "Values",
    "default_key_formatter",
    "depth_first_forest",
    "symbol",
    "symbol_chr",
    "symbol_index",
    "symbol_key_formatter",
]
