"""
Index Schema Builder

Assembles the index configuration of a searchable entity type from:

- the analyzer catalog (``settings.analysis``): tokenizers, filter chains
  and analyzers shared by every index of the process
- the entity type's ``search_properties``: field types and the analyzers
  each field uses at index and search time

Unknown analyzer or filter names are rejected here, when the index is
built, rather than surfacing later as a backend error at query time.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from pydantic import ValidationError

from .models import AnalysisCatalog, FieldDeclaration, IndexDescriptor
from .searchable import validate_searchable
from ..core.exceptions import ConfigurationError

logger = logging.getLogger("search_sync.schema")


# ---------------------------------------------------------------------
# Engine Built-ins
# ---------------------------------------------------------------------

BUILTIN_ANALYZERS = frozenset({
    "standard", "simple", "whitespace", "stop", "keyword", "pattern",
    "fingerprint",
    # language analyzers
    "arabic", "armenian", "basque", "bengali", "brazilian", "bulgarian",
    "catalan", "cjk", "czech", "danish", "dutch", "english", "estonian",
    "finnish", "french", "galician", "german", "greek", "hindi",
    "hungarian", "indonesian", "irish", "italian", "latvian",
    "lithuanian", "norwegian", "persian", "portuguese", "romanian",
    "russian", "serbian", "sorani", "spanish", "swedish", "turkish",
    "thai",
})

BUILTIN_FILTERS = frozenset({
    "apostrophe", "asciifolding", "cjk_bigram", "cjk_width", "classic",
    "common_grams", "condition", "decimal_digit", "delimited_payload",
    "dictionary_decompounder", "edge_ngram", "elision", "fingerprint",
    "flatten_graph", "hunspell", "hyphenation_decompounder", "keep",
    "keep_types", "keyword_marker", "kstem", "length", "limit",
    "lowercase", "min_hash", "multiplexer", "ngram", "pattern_capture",
    "pattern_replace", "porter_stem", "predicate_token_filter",
    "remove_duplicates", "reverse", "shingle", "snowball", "stemmer",
    "stemmer_override", "stop", "synonym", "synonym_graph", "trim",
    "truncate", "unique", "uppercase", "word_delimiter",
    "word_delimiter_graph",
    # normalization filters
    "arabic_normalization", "german_normalization", "hindi_normalization",
    "indic_normalization", "persian_normalization",
    "scandinavian_folding", "scandinavian_normalization",
    "serbian_normalization", "sorani_normalization",
})


# ---------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------

def load_catalog(analysis: Optional[Mapping[str, Any]] = None) -> AnalysisCatalog:
    """
    Build an AnalysisCatalog from raw analysis settings.

    Defaults to the configured ``elasticsearch_analysis``.
    """
    if analysis is None:
        from ..config import settings
        analysis = settings.elasticsearch_analysis

    try:
        catalog = AnalysisCatalog.model_validate(dict(analysis))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid analysis catalog: {exc}") from exc

    _validate_filter_chains(catalog)
    return catalog


def _validate_filter_chains(catalog: AnalysisCatalog) -> None:
    known_filters = BUILTIN_FILTERS | set(catalog.filter)

    for name, analyzer in catalog.analyzer.items():
        chain = analyzer.get("filter", [])
        if isinstance(chain, str):
            chain = [chain]
        for entry in chain:
            # Inline filter definitions are validated by the engine
            if isinstance(entry, Mapping):
                continue
            if entry not in known_filters:
                raise ConfigurationError(
                    f"Analyzer {name!r} references unknown filter {entry!r}"
                )


# ---------------------------------------------------------------------
# Descriptor
# ---------------------------------------------------------------------

def _check_analyzers(
    entity_name: str,
    field: str,
    declaration: FieldDeclaration,
    known: Iterable[str],
) -> None:
    for key in ("analyzer", "search_analyzer"):
        analyzer = getattr(declaration, key)
        if analyzer is not None and analyzer not in known:
            raise ConfigurationError(
                f"{entity_name}.{field} uses unknown {key} {analyzer!r}"
            )


def build_index_descriptor(
    entity_type: type,
    catalog: Optional[AnalysisCatalog] = None,
) -> IndexDescriptor:
    """
    Build the IndexDescriptor for a searchable entity type.

    Parameters
    ----------
    entity_type : type
        A class implementing the searchable declarations.

    catalog : Optional[AnalysisCatalog]
        Analyzer catalog. Defaults to the configured one.

    Returns
    -------
    IndexDescriptor
        Name, analysis settings and field mappings of the index.

    Raises
    ------
    ConfigurationError
        If declarations are malformed or reference unknown analyzers.
    """
    validate_searchable(entity_type)

    if catalog is None:
        catalog = load_catalog()

    known_analyzers = BUILTIN_ANALYZERS | set(catalog.analyzer)
    entity_name = entity_type.__name__

    properties: Dict[str, Dict[str, Any]] = {}
    for field, raw in entity_type.search_properties.items():
        try:
            declaration = FieldDeclaration.model_validate(dict(raw))
        except ValidationError as exc:
            raise ConfigurationError(
                f"Invalid declaration for {entity_name}.{field}: {exc}"
            ) from exc

        _check_analyzers(entity_name, field, declaration, known_analyzers)
        properties[field] = declaration.to_mapping()

    descriptor = IndexDescriptor(
        name=entity_type.search_index,
        analysis=catalog.to_settings(),
        properties=properties,
    )

    logger.debug(
        "Built index descriptor for %s: index=%s fields=%s",
        entity_name,
        descriptor.name,
        sorted(properties),
    )
    return descriptor
