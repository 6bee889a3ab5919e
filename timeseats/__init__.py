"""
TimesEats — event-sales backend.

Sales slots with finite per-product inventory, oversell-safe orders and
one ticket per confirmed order.
"""
__version__ = "1.0.0"
