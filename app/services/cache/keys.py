"""
Deterministic cache key derivation.

Single entities live under ``<entity>:<id>``. Lists live under the entity's
list prefix followed by one ``<field>:<value>`` pair per active filter, in
sorted field order, so every distinct filter combination gets its own key
and no filtered read can see an unfiltered result (or the reverse).
"""

from collections.abc import Mapping
from itertools import product

USER = "user"
ASTROLOGER = "astrologer"
APPOINTMENT = "appointment"

LIST_PREFIXES = {
    USER: "allUsers",
    ASTROLOGER: "allAstrologers",
    APPOINTMENT: "allAppointments",
}

# Boolean filter dimensions each list read accepts
LIST_FILTER_FIELDS: dict[str, tuple[str, ...]] = {
    USER: (),
    ASTROLOGER: ("is_top_astro",),
    APPOINTMENT: (),
}

# Entity types whose cached lists embed a projection of the key entity.
# Only their lists are dropped: single-entity keys that embed a projection
# (e.g. appointment:<id> after its user is deleted) stay until their TTL.
DEPENDENT_LISTS: dict[str, tuple[str, ...]] = {
    USER: (APPOINTMENT,),
    ASTROLOGER: (USER, APPOINTMENT),
    APPOINTMENT: (ASTROLOGER,),
}


def _encode(value: bool) -> str:
    return "true" if value else "false"


def entity_key(entity: str, entity_id: str) -> str:
    """Key of one cached entity, e.g. ``appointment:<id>``."""
    if entity not in LIST_PREFIXES:
        raise ValueError(f"Unknown entity type: {entity}")
    return f"{entity}:{entity_id}"


def list_key(entity: str, filters: Mapping[str, bool | None] | None = None) -> str:
    """Key of one cached list read. ``None`` filter values are ignored."""
    if entity not in LIST_PREFIXES:
        raise ValueError(f"Unknown entity type: {entity}")

    active = {field: value for field, value in (filters or {}).items() if value is not None}
    unknown = set(active) - set(LIST_FILTER_FIELDS[entity])
    if unknown:
        raise ValueError(f"Unsupported {entity} list filters: {sorted(unknown)}")

    parts = [LIST_PREFIXES[entity]]
    for field in sorted(active):
        parts.extend((field, _encode(active[field])))
    return ":".join(parts)


def list_keys(entity: str) -> list[str]:
    """Every list key variant for an entity type: unfiltered plus each filter combination."""
    fields = LIST_FILTER_FIELDS[entity]
    keys = []
    for values in product((None, True, False), repeat=len(fields)):
        keys.append(list_key(entity, dict(zip(fields, values))))
    return keys


def write_invalidation_keys(entity: str, entity_id: str | None = None) -> list[str]:
    """
    Keys a write to ``entity`` must delete: the entity's own key (when an id
    is given), all of its list variants, and the lists that embed it.

    Other entities' single keys are not included, so an embedded projection
    there (a deleted user inside ``appointment:<id>``) can be served until
    the cache TTL expires. That is the bounded staleness the cache accepts.
    """
    keys = [entity_key(entity, entity_id)] if entity_id is not None else []
    keys.extend(list_keys(entity))
    for dependent in DEPENDENT_LISTS[entity]:
        keys.extend(list_keys(dependent))
    return keys
