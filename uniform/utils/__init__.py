"""
Utility helpers shared across routes and services.
"""
