from ._gaussians import DiagonalGaussian, Gaussian, Isotropic
from ._noise_model_base import NoiseModelBase

__all__ = [
    "DiagonalGaussian",
    "Gaussian",
    "Isotropic",
    "NoiseModelBase",
]
