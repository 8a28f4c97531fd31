"""HTTP layer: history browsing and Prometheus metrics."""

from .server import create_app
