"""
Meter Tracker - photographed meter readings turned into 30-day consumption projections
"""

__version__ = '1.0.0'
