from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional, Tuple

SIRE = 'Sire'
DAM = 'Dam'

MIN_GENERATIONS = 0
MAX_GENERATIONS = 8
DEFAULT_GENERATIONS = 5


@dataclass(frozen=True)
class ParsedDate:
    """
    Result of parsing a date of birth. `defaulted` is True when the raw value
    was missing or unparseable and `value` holds the substituted date.
    """
    value: date
    defaulted: bool = False
    raw: Any = None


@dataclass(frozen=True)
class AncestorRecord:
    id: str
    name: str = ''
    breed_name: str = ''
    registration_number: str = ''
    color: str = ''
    gender: str = 'male'
    date_of_birth: date = field(default_factory=date.today)
    date_of_birth_defaulted: bool = False
    sire_id: Optional[str] = None
    dam_id: Optional[str] = None
    own_coi: float = 0.0
    is_champion: bool = False
    health_tested: bool = False
    health_conditions: Tuple[str, ...] = ()

    @property
    def display_name(self):
        return self.name or self.id


@dataclass(frozen=True)
class CommonAncestor:
    dog: AncestorRecord
    occurrences: int
    pathways: Tuple[Tuple[str, ...], ...]
    genetic_contribution: float

    def to_dict(self):
        return {
            'dog_id': self.dog.id,
            'name': self.dog.name,
            'occurrences': self.occurrences,
            'pathways': [list(p) for p in self.pathways],
            'genetic_contribution': self.genetic_contribution,
            'own_coi': self.dog.own_coi,
        }


@dataclass(frozen=True)
class LineageResult:
    """
    Value of a lineage computation together with the reason it could not be
    computed, if any. A failed result carries a zero/empty value, so callers
    must check `ok` before presenting the value as a real answer.
    """
    value: Any
    error: Optional[str] = None
    warnings: Tuple[str, ...] = ()

    @property
    def ok(self):
        return self.error is None

    @property
    def status(self):
        return 'computed' if self.ok else 'unavailable'


@dataclass
class BreedingCompatibilityReport:
    compatibility_score: float
    breeding_coi: float
    common_ancestors: list
    risks: list
    recommendations: list
    coi_risk_level: str = 'Low'
    error: Optional[str] = None
    warnings: list = field(default_factory=list)

    @property
    def ok(self):
        return self.error is None

    @classmethod
    def failed(cls, message):
        return cls(
            compatibility_score=0.0,
            breeding_coi=0.0,
            common_ancestors=[],
            risks=[f'Breeding compatibility analysis failed: {message}'],
            recommendations=[],
            coi_risk_level='Unknown',
            error=message,
        )

    def to_dict(self):
        return {
            'compatibility_score': self.compatibility_score,
            'breeding_coi': self.breeding_coi,
            'coi_risk_level': self.coi_risk_level,
            'status': 'computed' if self.ok else 'unavailable',
            'common_ancestors': [a.to_dict() for a in self.common_ancestors],
            'risks': list(self.risks),
            'recommendations': list(self.recommendations),
            'error': self.error,
            'warnings': list(self.warnings),
        }
