"""
Health Portal – REST backend for patients, doctors and administrators.
"""

__version__ = "1.0.0"
