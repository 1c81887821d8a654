"""Configuration loading (.env, environment variables, YAML)."""
