import contextlib
import time
from functools import partial
from typing import Generator

import jax
import termcolor
from loguru import logger


@contextlib.contextmanager
def stopwatch(label: str = "unlabeled block") -> Generator[None, None, None]:
    """Context manager for measuring runtime."""
    start_time = time.time()
    log("Running ({label})", label=label)
    yield
    log(
        "{seconds} seconds ({label})",
        seconds=termcolor.colored(f"{time.time() - start_time:.4f}", attrs=["bold"]),
        label=label,
    )


def log(fmt: str, *args, **kwargs) -> None:
    """Emit a loguru info message from host code."""
    logger.bind(function="log").info(fmt, *args, **kwargs)


def jax_log(fmt: str, *args, **kwargs) -> None:
    """Emit a loguru info message from a JITed JAX function."""
    jax.debug.callback(partial(log, fmt), *args, **kwargs)
