"""Decision engine for an intelligent workload autoscaler."""

__version__ = "0.1.0"