"""Circuit breakers and remote error classification."""
