import pandas as pd

from .analysis.analyzer import calculate_inbreeding_tabular
from .errors import FetchFailure, MalformedPedigreeError

ID_COLUMNS = ['dog_id', 'sire_id', 'dam_id']
DESCRIPTIVE_COLUMNS = [
    'name', 'breed', 'registration_number', 'color', 'gender', 'date_of_birth',
    'titles', 'health_tested', 'health_conditions',
]
TRUE_VALUES = {'1', '1.0', 'true', 'yes', 'y', 't'}


def _clean_id(value):
    if pd.isna(value):
        return None
    text = str(value).strip()
    # Numeric ids read by pandas come back as floats when a column has blanks
    if text.endswith('.0') and text[:-2].isdigit():
        text = text[:-2]
    return text or None


def _clean_value(value):
    if value is None:
        return None
    if not isinstance(value, (list, tuple)) and pd.isna(value):
        return None
    return value


def standardize_pedigree(df):
    """
    Normalises an uploaded pedigree table: snake_case column names, string
    ids with None for unknown parents.
    """
    df = df.rename(columns=lambda x: str(x).strip().lower().replace(' ', '_'))
    if 'animal_id' in df.columns and 'dog_id' not in df.columns:
        df = df.rename(columns={'animal_id': 'dog_id'})
    df = df.copy()
    for col in ID_COLUMNS:
        if col in df.columns:
            cleaned = df[col].map(_clean_id).astype(object)
            df[col] = cleaned.where(cleaned.notna(), None)
    return df


class DataFramePedigreeSource:
    """
    Serves ancestry trees out of an in-memory pedigree table. Each dog's own
    COI is taken from the `coi` column when present, otherwise computed once
    with the tabular method when the source is created.
    """

    def __init__(self, df):
        self.df = standardize_pedigree(df)
        missing = [col for col in ID_COLUMNS if col not in self.df.columns]
        if missing:
            raise ValueError(f"Missing required columns: {', '.join(missing)}")

        self.df = self.df[self.df['dog_id'].notna()].drop_duplicates(subset=['dog_id'])
        tabular = calculate_inbreeding_tabular(self.df[ID_COLUMNS])

        self._rows = {}
        for row in self.df.to_dict(orient='records'):
            dog_id = row['dog_id']
            coi = _clean_value(row.get('coi'))
            self._rows[dog_id] = {
                'sire_id': row['sire_id'],
                'dam_id': row['dam_id'],
                'coi': float(coi) if coi is not None else tabular.get(dog_id, 0.0),
                **{col: _clean_value(row.get(col)) for col in DESCRIPTIVE_COLUMNS},
            }

    def __contains__(self, dog_id):
        return str(dog_id) in self._rows

    @property
    def dog_ids(self):
        return list(self._rows)

    def own_coi(self, dog_id):
        row = self._rows.get(str(dog_id))
        return row['coi'] if row else 0.0

    def gender_of(self, dog_id):
        row = self._rows.get(str(dog_id))
        return str(row.get('gender') or '').strip().upper()[:1] if row else ''

    def _node(self, dog_id, generations, lineage):
        row = self._rows[dog_id]
        node = {
            'id': dog_id,
            'name': row['name'],
            'breed_name': row['breed'],
            'registration_number': row['registration_number'],
            'color': row['color'],
            'gender': row['gender'],
            'date_of_birth': row['date_of_birth'],
            'titles': row['titles'],
            'health_tested': str(row['health_tested']).strip().lower() in TRUE_VALUES,
            'health_conditions': row['health_conditions'],
            'coi': row['coi'],
        }
        if generations <= 0:
            return node
        for key in ('sire', 'dam'):
            parent_id = row[f'{key}_id']
            if parent_id is None or parent_id not in self._rows:
                continue
            if parent_id in lineage or parent_id == dog_id:
                raise MalformedPedigreeError(f"Dog '{parent_id}' appears as its own ancestor.")
            node[key] = self._node(parent_id, generations - 1, lineage + (dog_id,))
        return node

    def fetch_pedigree(self, dog_id, generations):
        dog_id = str(dog_id)
        if dog_id not in self._rows:
            raise FetchFailure(f"Dog '{dog_id}' was not found in the pedigree.")
        return self._node(dog_id, generations, ())

    __call__ = fetch_pedigree
