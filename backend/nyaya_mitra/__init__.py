"""
Nyaya Mitra - citizen legal services API
"""

__version__ = "1.0.0"
