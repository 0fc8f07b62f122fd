from setuptools import find_packages, setup

setup(
    name="jaxinit",
    version="0.0",
    description="Factor graph containers and Pose3 initialization in Jax",
    license="BSD",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"jaxinit": ["py.typed"]},
    python_requires=">=3.8",
    install_requires=[
        "jax>=0.4.1",
        "jaxlib",
        "jaxlie>=1.3.0",
        "jax_dataclasses>=1.4.0",
        "loguru",
        "numpy",
        "overrides",
        "scipy",
        "termcolor",
    ],
    extras_require={
        "testing": [
            "pytest",
            "pytest-cov",
        ],
        "type-checking": [
            "mypy",
            "types-termcolor",
        ],
    },
)
