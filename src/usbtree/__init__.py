"""
usbtree - USB interface descriptor decoder, encoder and validator.

Walks the length-prefixed, type-tagged records a device reports after an
interface header, builds a typed tree from them, writes the tree back out
byte for byte, and checks it against the declared lengths, types and counts.
"""

__version__ = "0.1.0"
__author__ = "usbtree Contributors"

from usbtree.config import TreeConfig, load_config

__all__ = ["TreeConfig", "load_config", "__version__"]
