"""Monitored Microservice - random weather forecasts with Loki logging."""

__version__ = "1.0.0"
