"""Repo Insights: trending repository ranking and reporting pipeline"""

__version__ = "1.0.0"
