"""
Searchable Entity Registry

Maps entity names to searchable model classes so that HTTP routes and the
import script can resolve ``/search/posts`` or ``--model posts`` to a class.

Classes are validated when registered: a class with missing or malformed
declarations never enters the registry.

Thread Safety
-------------
The registry is protected by an RLock and safe to use from concurrent
request handlers.
"""

from __future__ import annotations

from threading import RLock
from typing import Dict, List, Optional, TypeVar

from .core.exceptions import ConfigurationError, EntityNotRegisteredError
from .documents.searchable import validate_searchable

T = TypeVar("T", bound=type)


# ---------------------------------------------------------------------
# Global Registry
# ---------------------------------------------------------------------

_registry: Dict[str, type] = {}
_registry_lock = RLock()


def register_searchable(entity_type: T, name: Optional[str] = None) -> T:
    """
    Register a searchable class. Usable as a class decorator.

    Parameters
    ----------
    entity_type : type
        Class implementing the searchable declarations.

    name : Optional[str]
        Registry key. Defaults to the class's ``search_index``.

    Raises
    ------
    ConfigurationError
        If the declarations are invalid or the name is already taken by a
        different class.
    """
    validate_searchable(entity_type)
    key = name or entity_type.search_index

    with _registry_lock:
        existing = _registry.get(key)
        if existing is not None and existing is not entity_type:
            raise ConfigurationError(
                f"Searchable name {key!r} is already registered to {existing.__name__}"
            )
        _registry[key] = entity_type

    return entity_type


def get_searchable(name: str) -> type:
    """
    Look up a registered class.

    Raises
    ------
    EntityNotRegisteredError
        If nothing is registered under ``name``.
    """
    with _registry_lock:
        try:
            return _registry[name]
        except KeyError:
            raise EntityNotRegisteredError(f"No searchable entity registered as {name!r}") from None


def unregister_searchable(name: str) -> bool:
    """Remove a registration. Returns False if ``name`` was not registered."""
    with _registry_lock:
        return _registry.pop(name, None) is not None


def registered_entities() -> List[str]:
    with _registry_lock:
        return sorted(_registry)
