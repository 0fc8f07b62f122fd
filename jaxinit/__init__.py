from . import core, geometry, hints, initialization, noises, sparse, utils

__all__ = [
    "core",
    "geometry",
    "hints",
    "initialization",
    "noises",
    "sparse",
    "utils",
]
