from ._aliases import Array, GroupValue, Scalar

__all__ = [
    "Array",
    "GroupValue",
    "Scalar",
]
