from ._factors import BetweenFactor, BetweenValueTuple, PriorFactor
from ._rotations import project_to_so3

__all__ = [
    "BetweenFactor",
    "BetweenValueTuple",
    "PriorFactor",
    "project_to_so3",
]
