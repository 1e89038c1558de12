"""Signal-driven pricing and visibility engine for a multi-merchant marketplace"""

__version__ = "1.0.0"
