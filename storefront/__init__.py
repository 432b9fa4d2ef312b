"""
Storefront order core: order lifecycle and payment reconciliation.
"""
__version__ = "1.0.0"
