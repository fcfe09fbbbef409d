"""
Language processing helpers: forced alignment, recognizer output handling,
lookup tables and entity resolution.
"""

from .alignment import GentleAligner, analyze_words, choose_alignment
from .lookups import EntityLookups
from .resolvers import resolve_all

__all__ = [
    'GentleAligner',
    'analyze_words',
    'choose_alignment',
    'EntityLookups',
    'resolve_all',
]
