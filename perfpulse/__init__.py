"""perfpulse package initialization.

Exports for testing and module access.
"""

# Make lib and models accessible
from perfpulse import lib, models

__all__ = ['lib', 'models']
