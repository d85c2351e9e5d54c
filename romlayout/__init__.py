"""romlayout - describe, validate and discover arrays inside ROM images."""

__version__ = "0.1.0"
