"""
overlayconf - overlay configuration resolution

Determines the precedence order of the known partitions and resolves the
default-enabled, mutability and priority policy of every overlay package
they contain.
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
