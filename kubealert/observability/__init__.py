"""Logging, metrics and error reporting for kubealert."""
