"""Configuration, logging, errors and statement execution."""
