import json
import math
from collections import namedtuple

from ..models import BreedingCompatibilityReport
from .analyzer import classify_coi

DEFAULT_COI_SENSITIVITY = 8.0
HEALTH_TESTING_THRESHOLD = 0.2

RiskRule = namedtuple('RiskRule', ['condition', 'breeds', 'weight', 'recommendation'])

# Heritable conditions and the breeds they are commonly screened for.
# Replaced wholesale by PEDIGREE_RISK_RULES_FILE when configured.
DEFAULT_RISK_RULES = [
    {
        'condition': 'Hip Dysplasia',
        'breeds': ['Labrador Retriever', 'German Shepherd', 'Golden Retriever', 'Rottweiler'],
        'weight': 0.15,
        'recommendation': 'Consider genetic testing for hip dysplasia before breeding',
    },
    {
        'condition': 'Elbow Dysplasia',
        'breeds': ['Labrador Retriever', 'Rottweiler', 'Bernese Mountain Dog'],
        'weight': 0.1,
        'recommendation': 'Have both dogs elbow-scored before breeding',
    },
    {
        'condition': 'Progressive Retinal Atrophy',
        'breeds': ['Labrador Retriever', 'Poodle', 'English Cocker Spaniel'],
        'weight': 0.1,
        'recommendation': 'Monitor resulting puppies for signs of progressive retinal atrophy',
    },
    {
        'condition': 'Degenerative Myelopathy',
        'breeds': ['German Shepherd', 'Pembroke Welsh Corgi', 'Boxer'],
        'weight': 0.1,
        'recommendation': 'DNA-test both dogs for degenerative myelopathy',
    },
    {
        'condition': 'Exercise-Induced Collapse',
        'breeds': ['Labrador Retriever', 'Chesapeake Bay Retriever'],
        'weight': 0.05,
        'recommendation': 'DNA-test both dogs for exercise-induced collapse',
    },
]

COI_RECOMMENDATIONS = {
    'Moderate': 'Moderate inbreeding is acceptable for linebreeding, but monitor carefully.',
    'High': 'High inbreeding suggests close relative breeding. Consider outbreeding for future matings.',
    'Very High': 'Very high inbreeding indicates significant genetic risk. Outbreeding is strongly recommended.',
}


def parse_risk_rules(entries):
    """Turns plain dicts (JSON/config) into RiskRules, rejecting incomplete entries."""
    rules = []
    for i, entry in enumerate(entries):
        try:
            weight = float(entry['weight'])
            condition = str(entry['condition']).strip()
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Risk rule {i} is invalid: {e}")
        if not condition or weight < 0:
            raise ValueError(f"Risk rule {i} needs a condition and a non-negative weight.")
        rules.append(RiskRule(
            condition=condition,
            breeds=tuple(b.strip().lower() for b in entry.get('breeds', ())),
            weight=weight,
            recommendation=entry.get('recommendation') or f'Consider genetic testing for {condition.lower()}',
        ))
    return rules


def load_risk_rules(path=None):
    if not path:
        return parse_risk_rules(DEFAULT_RISK_RULES)
    with open(path, encoding='utf-8') as f:
        return parse_risk_rules(json.load(f))


def compatibility_score(breeding_coi, risk_weight, sensitivity=DEFAULT_COI_SENSITIVITY):
    """exp(-(sensitivity * COI + risk weight)), within [0, 1] and falling as COI rises."""
    score = math.exp(-(sensitivity * breeding_coi + risk_weight))
    return min(max(score, 0.0), 1.0)


def _risk_level(weight):
    if weight >= HEALTH_TESTING_THRESHOLD:
        return 'High'
    if weight >= 0.1:
        return 'Moderate'
    return 'Low'


def assess_risks(common_ancestors, rules):
    """
    Matches common ancestors against the heritable-condition rules. An
    ancestor recorded with the condition carries the rule's full weight, an
    untested ancestor of an associated breed carries half of it.
    Returns (risks, recommendations, accumulated weight).
    """
    risks, recommendations = [], []
    total_weight = 0.0

    for ancestor in common_ancestors:
        dog = ancestor.dog
        conditions = {c.lower() for c in dog.health_conditions}
        breed = dog.breed_name.strip().lower()
        for rule in rules:
            if rule.condition.lower() in conditions:
                weight = rule.weight
                reason = f'due to common ancestor {dog.display_name}'
            elif breed and breed in rule.breeds and not dog.health_tested:
                weight = rule.weight / 2
                reason = f'through untested common ancestor {dog.display_name} ({dog.breed_name})'
            else:
                continue
            total_weight += weight
            risks.append(f'{_risk_level(weight)} risk of {rule.condition.lower()} {reason}')
            if rule.recommendation not in recommendations:
                recommendations.append(rule.recommendation)

    return risks, recommendations, total_weight


def evaluate_compatibility(breeding_coi, common_ancestors, rules,
                           sensitivity=DEFAULT_COI_SENSITIVITY, generations=None):
    """Builds the compatibility report for an already analysed mating."""
    risks, recommendations, risk_weight = assess_risks(common_ancestors, rules)

    level = classify_coi(breeding_coi)
    if level != 'Low':
        risks.insert(0, f'{level} inbreeding (COI {breeding_coi:.2%}) in the resulting litter')
        recommendations.insert(0, COI_RECOMMENDATIONS[level])
    if risk_weight >= HEALTH_TESTING_THRESHOLD:
        recommendations.append('Health-test both the sire and the dam before confirming this mating')
    if not common_ancestors:
        window = f' within {generations} generations' if generations is not None else ''
        recommendations.append(f'No common ancestors found{window}; this pairing supports genetic diversity')

    return BreedingCompatibilityReport(
        compatibility_score=compatibility_score(breeding_coi, risk_weight, sensitivity),
        breeding_coi=breeding_coi,
        common_ancestors=list(common_ancestors),
        risks=risks,
        recommendations=recommendations,
        coi_risk_level=level,
    )
