"""Helm Monitor - Prometheus exporter for Helm chart freshness."""

__version__ = "0.1.0"
