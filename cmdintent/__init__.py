"""
cmdintent - maps free-form requests to registered workflow commands.
"""

from .core.config import VERSION

__version__ = VERSION
