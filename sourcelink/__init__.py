"""Uniform access to analytical data sources and their information schemas."""

__version__ = "0.1.0"
