"""Dependency review toolkit: package models, dependency graphs, package URLs, exception rules and code graphs."""

__version__ = "0.1.0"