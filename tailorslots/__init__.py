"""
tailorslots - appointment scheduling and availability for a tailoring shop.
"""

__version__ = "0.3.0"
