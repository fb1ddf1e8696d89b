"""Configuration: ``infracanvas.toml`` discovery, settings, logging."""
