"""YAML-backed application configuration and typed settings wrappers."""
