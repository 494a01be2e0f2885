"""Package data: the bundled persona configuration."""
