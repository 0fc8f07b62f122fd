import jax

# Orientation tests compare against references at 1e-6.
jax.config.update("jax_enable_x64", True)
