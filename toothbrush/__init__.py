"""
Toothbrush - a terminal front-end for fuzzy note search.

Type a query, watch ranked matches and a preview update as you type, and
open, delete or copy the selected note. Matching and storage are handled by
the toothbrush server running on localhost.
"""

__version__ = "0.1.0"
