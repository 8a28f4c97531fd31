"""OpenStack check exporter: scheduled cloud probes with metrics and history."""

__version__ = "0.1.0"
