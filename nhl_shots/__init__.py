"""NHL shots-on-goal prediction service"""

__version__ = "1.0.0"
