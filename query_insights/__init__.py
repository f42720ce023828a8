"""Query insights: cluster and rank search queries into labeled topics."""

__version__ = "0.1.0"
