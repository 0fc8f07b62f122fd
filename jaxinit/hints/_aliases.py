from typing import Union

import jaxlie
import numpy as onp
from jax import numpy as jnp

Array = Union[jnp.ndarray, onp.ndarray]
Scalar = Union[Array, float]

GroupValue = jaxlie.MatrixLieGroup
"""Value type stored for a variable: a rotation (`jaxlie.SO3`) or a pose
(`jaxlie.SE3`)."""
