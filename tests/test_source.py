import io

import pandas as pd
import pytest

from kennel.pedigree.errors import FetchFailure
from kennel.pedigree.source import DataFramePedigreeSource, standardize_pedigree


def test_standardize_renames_and_cleans_ids():
    df = pd.DataFrame({
        'Animal ID': [1, 2, 3],
        'Sire ID': [None, None, 1],
        'Dam ID': [None, None, 2],
    })

    clean = standardize_pedigree(df)

    assert list(clean.columns) == ['dog_id', 'sire_id', 'dam_id']
    assert clean['dog_id'].tolist() == ['1', '2', '3']
    assert clean['sire_id'].tolist() == [None, None, '1']


def test_standardize_keeps_none_for_blank_csv_parents():
    df = pd.read_csv(io.StringIO("dog_id,sire_id,dam_id\n1,,\n2,1,\n"))

    clean = standardize_pedigree(df)

    assert clean['sire_id'].tolist() == [None, '1']
    assert clean['dam_id'].tolist() == [None, None]
    assert all(value is None for value in clean['dam_id'])


def test_missing_columns_are_rejected():
    with pytest.raises(ValueError):
        DataFramePedigreeSource(pd.DataFrame({'dog_id': ['a']}))


def test_fetch_builds_nested_tree(half_sibling_rows):
    source = DataFramePedigreeSource(pd.DataFrame(half_sibling_rows))

    tree = source.fetch_pedigree('pup', 2)

    assert tree['id'] == 'pup'
    assert tree['sire']['id'] == 'sire'
    assert tree['sire']['sire']['id'] == 'grandsire'
    assert tree['dam']['sire']['id'] == 'grandsire'
    assert tree['dam']['dam']['name'] == 'Dam_Dam'


def test_fetch_respects_generations(half_sibling_rows):
    source = DataFramePedigreeSource(pd.DataFrame(half_sibling_rows))

    tree = source.fetch_pedigree('pup', 1)

    assert 'sire' not in tree['sire']
    assert 'sire' not in source.fetch_pedigree('pup', 0)


def test_fetch_unknown_dog():
    source = DataFramePedigreeSource(pd.DataFrame([{'dog_id': 'a', 'sire_id': None, 'dam_id': None}]))
    with pytest.raises(FetchFailure):
        source.fetch_pedigree('b', 3)


def test_own_coi_computed_when_not_supplied(half_sibling_rows):
    source = DataFramePedigreeSource(pd.DataFrame(half_sibling_rows))

    assert source.own_coi('grandsire') == 0
    assert source.own_coi('pup') == pytest.approx(0.0625)
    assert source.fetch_pedigree('pup', 1)['coi'] == pytest.approx(0.0625)


def test_supplied_coi_wins_over_computed(half_sibling_rows):
    rows = [dict(r, coi=0.3) if r['dog_id'] == 'pup' else r for r in half_sibling_rows]
    source = DataFramePedigreeSource(pd.DataFrame(rows))

    assert source.own_coi('pup') == 0.3
    assert source.own_coi('sire') == 0


def test_descriptive_fields_flow_into_the_tree():
    source = DataFramePedigreeSource(pd.DataFrame([{
        'dog_id': 'duke', 'sire_id': None, 'dam_id': None, 'name': 'Champion Duke',
        'breed': 'Labrador Retriever', 'health_tested': 'yes',
        'health_conditions': 'Hip Dysplasia; Progressive Retinal Atrophy',
        'titles': 'CH;GCH Champion',
    }]))

    node = source.fetch_pedigree('duke', 3)

    assert node['breed_name'] == 'Labrador Retriever'
    assert node['health_tested'] is True
    assert node['health_conditions'] == 'Hip Dysplasia; Progressive Retinal Atrophy'
    assert source.gender_of('duke') == ''
