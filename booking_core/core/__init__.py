# Core package initialization
# This file makes the core directory a Python package
# and allows importing core modules

from . import exceptions, security

__all__ = [
    "exceptions",
    "security",
]
