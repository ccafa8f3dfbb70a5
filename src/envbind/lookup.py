"""
Environment lookup collaborators.

A lookup is any callable taking a variable name and returning its text,
or None when the variable is absent. The binder treats an empty string
exactly like an absent variable.
"""

import os
from typing import Callable, Mapping, Optional

Lookup = Callable[[str], Optional[str]]


def environ_lookup(name: str) -> Optional[str]:
    """Read a variable from the process environment."""
    return os.environ.get(name)


def mapping_lookup(values: Mapping[str, str]) -> Lookup:
    """
    Build a lookup over a fixed mapping.

    Useful in tests, or to bind from a dict captured earlier:

        unmarshal(config, mapping_lookup({"PORT": "80"}))
    """
    def lookup(name: str) -> Optional[str]:
        return values.get(name)

    return lookup
