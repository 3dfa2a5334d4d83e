import pandas as pd

from ..analysis.analyzer import parents_first_order
from ..errors import MalformedPedigreeError
from ..source import standardize_pedigree


def validate_pedigree(data):
    """
    Validates a dog pedigree table using vectorized operations.

    Args:
        data (pd.DataFrame): The raw pedigree data from the CSV or JSON rows.

    Returns:
        list: A list of validation errors.
    """
    errors = []
    df = standardize_pedigree(data)

    # 1. Check for required columns
    required_columns = ['dog_id', 'sire_id', 'dam_id']
    for col in required_columns:
        if col not in df.columns:
            errors.append(f'Missing required column: {col}')
    if errors:
        return errors

    # 2. Every row needs a dog id
    if df['dog_id'].isnull().any():
        for idx in df[df['dog_id'].isnull()].index.tolist():
            errors.append(f"Row {idx + 2}: 'dog_id' is required.")
        return errors

    # 3. Check for unique dog_id
    if not df['dog_id'].is_unique:
        duplicates = df[df.duplicated('dog_id', keep=False)]['dog_id'].unique().tolist()
        errors.append(f"The following 'dog_id' values are duplicated: {duplicates}.")

    # 4. Check for self-references
    if (df['dog_id'] == df['dam_id']).any():
        errors.append("A dog cannot be its own dam.")
    if (df['dog_id'] == df['sire_id']).any():
        errors.append("A dog cannot be its own sire.")

    # 5. Check if dam and sire are the same
    if (df['dam_id'].notna() & (df['dam_id'] == df['sire_id'])).any():
        errors.append("A dog's dam and sire cannot be the same.")

    # 6. Vectorized check for parent existence
    valid_dog_ids = set(df['dog_id'])

    invalid_dams = df[df['dam_id'].notna() & ~df['dam_id'].isin(valid_dog_ids)]
    for index, row in invalid_dams.iterrows():
        errors.append(f"Row {index + 2}: dam_id '{row['dam_id']}' is not a valid dog_id.")

    invalid_sires = df[df['sire_id'].notna() & ~df['sire_id'].isin(valid_dog_ids)]
    for index, row in invalid_sires.iterrows():
        errors.append(f"Row {index + 2}: sire_id '{row['sire_id']}' is not a valid dog_id.")

    # 7. Parents must match their recorded gender
    if 'gender' in df.columns:
        genders = df.set_index('dog_id')['gender'].astype(str).str.strip().str.upper().str[:1]
        genders = genders[~genders.index.duplicated()]
        sire_genders = df['sire_id'].dropna().map(genders)
        dam_genders = df['dam_id'].dropna().map(genders)
        for sire_id in df.loc[sire_genders[sire_genders == 'F'].index, 'sire_id'].unique():
            errors.append(f"Dog '{sire_id}' is recorded as female but listed as a sire.")
        for dam_id in df.loc[dam_genders[dam_genders == 'M'].index, 'dam_id'].unique():
            errors.append(f"Dog '{dam_id}' is recorded as male but listed as a dam.")

    # 8. Own COI values must be probabilities
    if 'coi' in df.columns:
        coi = pd.to_numeric(df['coi'], errors='coerce')
        bad = df['coi'].notna() & (coi.isna() | (coi < 0) | (coi > 1))
        for idx in df[bad].index.tolist():
            errors.append(f"Row {idx + 2}: 'coi' must be a number between 0 and 1.")

    # 9. No dog may be its own ancestor
    if not errors:
        df_map = {
            row.dog_id: (row.sire_id, row.dam_id)
            for row in df.itertuples()
        }
        try:
            parents_first_order(df_map)
        except MalformedPedigreeError as e:
            errors.append(str(e))

    return errors
