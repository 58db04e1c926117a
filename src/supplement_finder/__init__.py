"""
Supplement finder.

Search, filter and rank a CSV table of supplements and render the results
as cards, with optional AI coaching text per card.
"""

__version__ = "0.1.0"
