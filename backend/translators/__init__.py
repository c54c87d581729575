"""
Deterministic Translator Layer

Converts between n8n node graphs and Make module sequences.
All structural logic is deterministic and free of I/O.
"""

from .n8n_to_make import N8nToMakeTranslator
from .make_to_n8n import MakeToN8nTranslator

__all__ = ['N8nToMakeTranslator', 'MakeToN8nTranslator']
