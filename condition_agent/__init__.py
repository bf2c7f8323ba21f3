"""Prometheus condition agent."""
