"""Canonical identities and the Redis key scheme for the knowledge graph.

Entity ids are ``TYPE:normalized_name`` and relationship ids are
``source_id--TYPE--target_id``, so re-extracting the same text regenerates
the same keys and overwrites rather than duplicates.
"""

from __future__ import annotations

import re

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

META_KEY = "g:meta"
ALL_ENTITIES_KEY = "g:ents"
ALL_RELATIONSHIPS_KEY = "g:rels"


def normalize_entity_name(name: str) -> str:
    return _NON_ALNUM.sub("_", name.lower()).strip("_")


def entity_id(entity_type: str, name: str) -> str:
    return f"{entity_type}:{normalize_entity_name(name)}"


def relationship_id(source_id: str, relationship_type: str, target_id: str) -> str:
    return f"{source_id}--{relationship_type}--{target_id}"


def entity_key(eid: str) -> str:
    return f"g:ent:{eid}"


def entity_name_index_key(name: str) -> str:
    return f"g:ent:idx:{normalize_entity_name(name)}"


def entity_relationships_key(eid: str) -> str:
    return f"g:ent:{eid}:rels"


def chunk_entities_key(chunk_id: str) -> str:
    return f"g:chunk:{chunk_id}:ents"


def relationship_key(rid: str) -> str:
    return f"g:rel:{rid}"


def split_chunk_ids(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [c.strip() for c in raw.split(",") if c.strip()]


def join_chunk_ids(chunk_ids: list[str]) -> str:
    return ",".join(dict.fromkeys(chunk_ids))
