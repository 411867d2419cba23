"""Configuration, logging and filesystem helpers."""
