import pandas as pd

from generate_pedigree import generate_kennel_pedigree
from kennel.pedigree.validation.validator import validate_pedigree


def test_generated_pedigree_is_valid():
    rows = generate_kennel_pedigree(num_dogs=50, seed=3)

    assert len(rows) == 50
    assert validate_pedigree(pd.DataFrame(rows)) == []


def test_generation_is_reproducible_with_a_seed():
    assert generate_kennel_pedigree(num_dogs=20, seed=11) == generate_kennel_pedigree(num_dogs=20, seed=11)


def test_offspring_are_born_after_their_parents():
    rows = generate_kennel_pedigree(num_dogs=30, seed=5)
    born = {row['dog_id']: row['date_of_birth'] for row in rows}

    for row in rows:
        for parent in (row['sire_id'], row['dam_id']):
            if parent:
                assert born[parent] < row['date_of_birth']
