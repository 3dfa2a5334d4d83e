import pytest

from kennel import create_app
from pedigrees import dog


@pytest.fixture
def half_sibling_rows():
    """Pup whose sire and dam share their sire (the grandsire)."""
    return [
        dog('grandsire'),
        dog('sire_dam', gender='F'),
        dog('dam_dam', gender='F'),
        dog('sire', 'grandsire', 'sire_dam'),
        dog('dam', 'grandsire', 'dam_dam', gender='F'),
        dog('pup', 'sire', 'dam'),
    ]


@pytest.fixture
def three_ancestor_rows():
    """
    Sire and dam sharing three ancestors at increasing depth:
    their sire A, their dams' sire B, and their dams' dams' sire C.
    """
    return [
        dog('a'), dog('b'), dog('c'),
        dog('m2', 'c', None, gender='F'),
        dog('n2', 'c', None, gender='F'),
        dog('m1', 'b', 'm2', gender='F'),
        dog('n1', 'b', 'n2', gender='F'),
        dog('sire', 'a', 'm1'),
        dog('dam', 'a', 'n1', gender='F'),
        dog('pup', 'sire', 'dam'),
    ]


@pytest.fixture
def unrelated_rows():
    return [
        dog('sire'),
        dog('dam', gender='F'),
        dog('pup', 'sire', 'dam'),
    ]


@pytest.fixture
def app():
    app = create_app({'TESTING': True, 'SECRET_KEY': 'test', 'PEDIGREE_GENERATIONS': 5})
    yield app


@pytest.fixture
def client(app):
    return app.test_client()
