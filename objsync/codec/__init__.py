"""
Wire and disk codecs.
"""

from .current_coder import CurrentObjectCoder
from .dates import format_date, parse_date
from .decoder import Decoder
from .encoder import Encoder, PointerEncoder

__all__ = [
    "CurrentObjectCoder",
    "Decoder",
    "Encoder",
    "PointerEncoder",
    "format_date",
    "parse_date",
]
