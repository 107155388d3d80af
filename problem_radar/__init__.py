"""Problem Radar - surface recurring workflow problems from Reddit."""

__version__ = "0.1.0"
