"""Version resolution against the npm registry."""
