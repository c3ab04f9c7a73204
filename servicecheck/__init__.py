"""service-check Package"""

__version__ = "0.1.0"
