"""kubealert: Kubernetes lifecycle events classified into alerts."""

__version__ = "0.1.0"
