"""
naascalc - dependency-aware pricing calculation engine for NaaS quotes.
"""

__version__ = "1.0.0"
