from ._chordal import (
    compute_orientations_chordal,
    normalize_relaxed_rotations,
    solve_relaxed_rotations,
)
from ._errors import DisconnectedGraphError, InitializationError, MalformedGraphError
from ._gradient import (
    GradientDescentConfig,
    GradientDescentSummary,
    compute_orientations_gradient,
    get_rotation,
    gradient_tron,
)
from ._poses import compute_poses, initialize
from ._rotation_graph import (
    ANCHOR_KEY,
    build_pose3_graph,
    check_pose3_factor,
    rotation_noise_model,
)
from ._symbolic_graph import (
    SymbolicRotationGraph,
    assert_connected,
    create_symbolic_graph,
    find_disconnected_keys,
    find_unreachable_keys,
)

__all__ = [
    "ANCHOR_KEY",
    "DisconnectedGraphError",
    "GradientDescentConfig",
    "GradientDescentSummary",
    "InitializationError",
    "MalformedGraphError",
    "SymbolicRotationGraph",
    "assert_connected",
    "build_pose3_graph",
    "check_pose3_factor",
    "compute_orientations_chordal",
    "compute_orientations_gradient",
    "compute_poses",
    "create_symbolic_graph",
    "find_disconnected_keys",
    "find_unreachable_keys",
    "get_rotation",
    "gradient_tron",
    "initialize",
    "normalize_relaxed_rotations",
    "rotation_noise_model",
    "solve_relaxed_rotations",
]
