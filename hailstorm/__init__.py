"""Building blocks for distributed load testing: metrics, controller state and agent messaging."""

__version__ = "0.3.0"