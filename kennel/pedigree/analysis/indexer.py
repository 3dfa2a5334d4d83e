import dataclasses
import math
from datetime import date
from types import MappingProxyType

import pandas as pd

from ..errors import InvalidDepthError, MalformedPedigreeError
from ..models import (
    AncestorRecord, ParsedDate, MIN_GENERATIONS, MAX_GENERATIONS,
)


def validate_generations(generations):
    """Fails fast on generation depths the traversal does not support."""
    if isinstance(generations, bool) or not isinstance(generations, int):
        raise InvalidDepthError(f"Generations must be an integer, got {generations!r}.")
    if not MIN_GENERATIONS <= generations <= MAX_GENERATIONS:
        raise InvalidDepthError(
            f"Generations must be between {MIN_GENERATIONS} and {MAX_GENERATIONS}, got {generations}."
        )
    return generations


def parse_date_of_birth(raw, today=None):
    """
    Parses a date of birth, substituting today's date when the value is
    missing or cannot be parsed. The returned ParsedDate says which happened.
    """
    if isinstance(raw, date) and not pd.isna(raw):
        value = raw.date() if hasattr(raw, 'date') else raw
        return ParsedDate(value=value, raw=raw)

    if raw is not None and not (isinstance(raw, str) and not raw.strip()):
        parsed = pd.to_datetime(raw, errors='coerce')
        if not isinstance(parsed, pd.Timestamp) or pd.isna(parsed):
            parsed = None
        if parsed is not None:
            return ParsedDate(value=parsed.date(), raw=raw)

    return ParsedDate(value=today or date.today(), defaulted=True, raw=raw)


def _normalize_gender(value, default):
    text = str(value or '').strip().lower()
    if text in ('m', 'male', 'dog', 'sire'):
        return 'male'
    if text in ('f', 'female', 'bitch', 'dam'):
        return 'female'
    return default


def _split_list(value):
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ()
    if isinstance(value, str):
        items = value.split(';')
    else:
        items = list(value)
    return tuple(str(item).strip() for item in items if str(item).strip())


def _own_coi(node, dog_id):
    for key in ('coi', 'own_coi'):
        raw = node.get(key)
        if raw is None:
            continue
        try:
            value = float(raw)
        except (TypeError, ValueError):
            raise MalformedPedigreeError(f"Dog '{dog_id}' has a non-numeric COI: {raw!r}.")
        if math.isnan(value):
            continue
        if not 0 <= value <= 1:
            raise MalformedPedigreeError(f"Dog '{dog_id}' has a COI outside 0-1: {value}.")
        return value
    return 0.0


def _parent_id(node, key):
    parent = node.get(key)
    if not parent:
        return None
    parent_id = parent.get('id')
    return str(parent_id) if parent_id is not None else None


def _make_record(node, dog_id, default_gender, today):
    parsed = parse_date_of_birth(node.get('date_of_birth'), today=today)
    titles = _split_list(node.get('titles'))
    is_champion = bool(node.get('is_champion')) or any('champion' in t.lower() for t in titles)

    record = AncestorRecord(
        id=dog_id,
        name=str(node.get('name') or ''),
        breed_name=str(node.get('breed_name') or node.get('breed') or ''),
        registration_number=str(node.get('registration_number') or ''),
        color=str(node.get('color') or ''),
        gender=_normalize_gender(node.get('gender'), default_gender),
        date_of_birth=parsed.value,
        date_of_birth_defaulted=parsed.defaulted,
        sire_id=_parent_id(node, 'sire'),
        dam_id=_parent_id(node, 'dam'),
        own_coi=_own_coi(node, dog_id),
        is_champion=is_champion,
        health_tested=bool(node.get('health_tested')),
        health_conditions=_split_list(node.get('health_conditions')),
    )
    return record, parsed


def _merge(existing, incoming):
    """Merges two sightings of the same dog reached through different branches."""
    updates = {}
    for key in ('sire_id', 'dam_id'):
        old, new = getattr(existing, key), getattr(incoming, key)
        if old and new and old != new:
            raise MalformedPedigreeError(
                f"Dog '{existing.id}' appears with conflicting {key.split('_')[0]}s: '{old}' and '{new}'."
            )
        if not old and new:
            updates[key] = new
    return dataclasses.replace(existing, **updates) if updates else existing


class AncestorIndex:
    """
    Read-only lookup of every dog in a fetched ancestry, keyed by id. Parent
    links are ids into the same index, so a dog reached through several
    branches is a single entry.
    """

    def __init__(self, root_id, records, warnings=()):
        self.root_id = root_id
        self.records = MappingProxyType(dict(records))
        self.warnings = tuple(warnings)

    def __getitem__(self, dog_id):
        return self.records[dog_id]

    def __contains__(self, dog_id):
        return dog_id in self.records

    def __len__(self):
        return len(self.records)

    def get(self, dog_id):
        return self.records.get(dog_id)

    @property
    def root(self):
        return self.records[self.root_id]

    def parents(self, dog_id):
        """Returns (sire_id, dam_id), with parents missing from the index as None."""
        record = self.records.get(dog_id)
        if record is None:
            return None, None
        sire_id = record.sire_id if record.sire_id in self.records else None
        dam_id = record.dam_id if record.dam_id in self.records else None
        return sire_id, dam_id


def build_ancestor_index(tree, generations=None, today=None):
    """
    Flattens a nested ancestry tree ({'id', 'sire', 'dam', ...}) into an
    AncestorIndex. Nodes deeper than `generations` are ignored when a depth is
    given. A dog that turns out to be its own ancestor is rejected.
    """
    if not tree or tree.get('id') is None:
        raise MalformedPedigreeError("Ancestry tree has no root dog id.")
    if generations is not None:
        validate_generations(generations)

    records = {}
    warnings = []

    def walk(node, depth, lineage, default_gender):
        if node.get('id') is None:
            raise MalformedPedigreeError(f"A parent of '{lineage[-1]}' has no id.")
        dog_id = str(node['id'])
        if dog_id in lineage:
            raise MalformedPedigreeError(f"Dog '{dog_id}' appears as its own ancestor.")

        record, parsed = _make_record(node, dog_id, default_gender, today)
        if generations is not None and depth >= generations:
            record = dataclasses.replace(record, sire_id=None, dam_id=None)

        if dog_id in records:
            records[dog_id] = _merge(records[dog_id], record)
        else:
            records[dog_id] = record
            if parsed.defaulted:
                if parsed.raw is None or (isinstance(parsed.raw, str) and not parsed.raw.strip()):
                    warnings.append(f"Dog '{dog_id}' has no date of birth; using {parsed.value.isoformat()}.")
                else:
                    warnings.append(
                        f"Dog '{dog_id}' has an unparseable date of birth {parsed.raw!r}; "
                        f"using {parsed.value.isoformat()}."
                    )

        if generations is not None and depth >= generations:
            return

        for key, gender in (('sire', 'male'), ('dam', 'female')):
            parent = node.get(key)
            if parent:
                walk(parent, depth + 1, lineage + (dog_id,), gender)

    walk(tree, 0, (), 'male')
    return AncestorIndex(str(tree['id']), records, warnings)
