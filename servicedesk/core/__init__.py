"""Configuration and logging for the service desk."""
