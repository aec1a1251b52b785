"""spine-auth command-line interface."""
