import jaxlie
import numpy as onp

from .. import hints


def project_to_so3(matrix: hints.Array) -> jaxlie.SO3:
    """Nearest rotation to a 3x3 matrix, in the Frobenius sense.

    Computed from the SVD `M = U S V^T` as `U diag(1, 1, det(U V^T)) V^T`, which
    keeps the determinant at +1 for reflections.
    """
    matrix = onp.asarray(matrix, dtype=onp.float64)
    assert matrix.shape == (3, 3), "Expected a 3x3 matrix!"

    U, _unused_singular_values, Vt = onp.linalg.svd(matrix)
    det = onp.linalg.det(U @ Vt)
    correction = onp.diag([1.0, 1.0, 1.0 if det >= 0.0 else -1.0])
    return jaxlie.SO3.from_matrix(U @ correction @ Vt)
