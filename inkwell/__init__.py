"""
Inkwell - a personal AI workspace.

Documents and spreadsheets in one small store, with LLM helpers for
grammar, rewriting, chat editing, data manipulation and formulas.
"""

__version__ = "0.1.0"
