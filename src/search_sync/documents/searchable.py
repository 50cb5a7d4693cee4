"""
Searchable Capability

A model class becomes searchable by mixing in ``Searchable`` and declaring
three class attributes:

- ``search_index``: name of the index its documents live in
- ``search_fields``: allow-list of attributes copied into documents and
  queried by the search executor
- ``search_properties``: per-field mapping, ``{type, analyzer, search_analyzer}``

Example
-------
    class Post(Base, Searchable):
        __tablename__ = "posts"

        search_index = "posts"
        search_fields = ("title", "body")
        search_properties = {
            "title": {
                "type": "text",
                "analyzer": "autocomplete_index",
                "search_analyzer": "autocomplete_search",
            },
            "body": {"type": "text", "analyzer": "fulltext"},
        }

Declarations are checked by ``validate_searchable`` when a class is
registered or its index is built, never lazily at query time.
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Mapping, Protocol, Sequence, Tuple

from sqlalchemy import inspect as sa_inspect

from ..core.exceptions import ConfigurationError


class SearchableEntity(Protocol):
    """Structural contract the sync layer relies on."""

    search_index: ClassVar[str]
    search_fields: ClassVar[Sequence[str]]
    search_properties: ClassVar[Mapping[str, Mapping[str, Any]]]

    def search_key(self) -> Any: ...

    def search_attributes(self) -> Mapping[str, Any]: ...


class Searchable:
    """
    Mixin implementing ``SearchableEntity`` for SQLAlchemy models.

    Plain Python objects work too: their public instance attributes are used
    as the attribute set and ``id`` as the key.
    """

    search_index: ClassVar[str] = ""
    search_fields: ClassVar[Tuple[str, ...]] = ()
    search_properties: ClassVar[Dict[str, Dict[str, Any]]] = {}

    def search_key(self) -> Any:
        """Primary key value used as the document id."""
        state = sa_inspect(self, raiseerr=False)
        if state is None:
            return getattr(self, "id")

        pk_columns = state.mapper.primary_key
        if len(pk_columns) != 1:
            raise ConfigurationError(
                f"{type(self).__name__} must have exactly one primary key column to be searchable"
            )
        prop = state.mapper.get_property_by_column(pk_columns[0])
        return getattr(self, prop.key)

    def search_attributes(self) -> Dict[str, Any]:
        """
        Currently loaded attribute values.

        Only column attributes already present on the instance are returned,
        so building a document never triggers a lazy load.
        """
        state = sa_inspect(self, raiseerr=False)
        if state is None:
            return {k: v for k, v in vars(self).items() if not k.startswith("_")}

        loaded = state.dict
        return {
            attr.key: loaded[attr.key]
            for attr in state.mapper.column_attrs
            if attr.key in loaded
        }


def validate_searchable(entity_type: type) -> None:
    """
    Check the searchable declarations of ``entity_type``.

    Raises
    ------
    ConfigurationError
        If the index name, field allow-list or field mapping is missing or
        malformed.
    """
    name = getattr(entity_type, "__name__", repr(entity_type))

    index = getattr(entity_type, "search_index", None)
    if not isinstance(index, str) or not index:
        raise ConfigurationError(f"{name} must declare a non-empty search_index")

    fields = getattr(entity_type, "search_fields", None)
    if isinstance(fields, str) or not fields:
        raise ConfigurationError(f"{name} must declare search_fields as a non-empty sequence")
    for field in fields:
        if not isinstance(field, str) or not field:
            raise ConfigurationError(f"{name}.search_fields contains an invalid field name: {field!r}")

    properties = getattr(entity_type, "search_properties", None)
    if not isinstance(properties, Mapping):
        raise ConfigurationError(f"{name} must declare search_properties as a mapping")
    for field, declaration in properties.items():
        if not isinstance(declaration, Mapping) or not declaration.get("type"):
            raise ConfigurationError(f"{name}.search_properties[{field!r}] must declare a type")

    for method in ("search_key", "search_attributes"):
        if not callable(getattr(entity_type, method, None)):
            raise ConfigurationError(f"{name} must implement {method}()")
