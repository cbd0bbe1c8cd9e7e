"""
Platecam

Camera capture and registration plate recognition pipeline.
"""

__version__ = "0.1.0"
