"""Fixed-point codec, tolerances, sampling, configuration and logging."""
