import json

import pytest

from kennel.pedigree.analysis.compatibility import (
    DEFAULT_RISK_RULES, assess_risks, compatibility_score, evaluate_compatibility,
    load_risk_rules, parse_risk_rules,
)
from kennel.pedigree.models import AncestorRecord, CommonAncestor


def ancestor(name, breed='Labrador Retriever', conditions=(), tested=True, contribution=0.25):
    dog = AncestorRecord(
        id=name.lower(), name=name, breed_name=breed,
        health_tested=tested, health_conditions=tuple(conditions),
    )
    return CommonAncestor(dog=dog, occurrences=2, pathways=(('Sire', 'Sire'), ('Dam', 'Sire')),
                          genetic_contribution=contribution)


@pytest.fixture
def rules():
    return parse_risk_rules(DEFAULT_RISK_RULES)


def test_score_is_bounded_and_falls_with_coi():
    assert compatibility_score(0.0, 0.0) == 1.0
    scores = [compatibility_score(coi, 0.3) for coi in (0.0, 0.05, 0.125, 0.5, 1.0)]
    assert all(0.0 <= s <= 1.0 for s in scores)
    assert scores == sorted(scores, reverse=True)
    assert len(set(scores)) == len(scores)


def test_score_falls_with_risk_weight():
    assert compatibility_score(0.1, 0.0) > compatibility_score(0.1, 0.5)


def test_carrier_ancestor_carries_full_weight(rules):
    risks, recommendations, weight = assess_risks(
        [ancestor('Duke', conditions=['Hip Dysplasia'])], rules,
    )

    assert risks == ['Moderate risk of hip dysplasia due to common ancestor Duke']
    assert recommendations == ['Consider genetic testing for hip dysplasia before breeding']
    assert weight == pytest.approx(0.15)


def test_untested_ancestor_of_listed_breed_carries_half_weight(rules):
    risks, recommendations, weight = assess_risks([ancestor('Belle', tested=False)], rules)

    # Labradors are listed for hip, elbow, PRA and EIC
    assert len(risks) == 4
    assert all(r.startswith('Low risk of') for r in risks)
    assert 'through untested common ancestor Belle (Labrador Retriever)' in risks[0]
    assert weight == pytest.approx((0.15 + 0.1 + 0.1 + 0.05) / 2)
    assert len(recommendations) == 4


def test_tested_ancestor_without_conditions_is_not_a_risk(rules):
    assert assess_risks([ancestor('Max')], rules) == ([], [], 0.0)


def test_report_flags_coi_level_and_health_testing(rules):
    common = [
        ancestor('Duke', conditions=['Hip Dysplasia', 'Elbow Dysplasia'], contribution=0.5),
    ]

    report = evaluate_compatibility(0.1, common, rules, generations=5)

    assert report.ok
    assert report.coi_risk_level == 'Moderate'
    assert report.risks[0] == 'Moderate inbreeding (COI 10.00%) in the resulting litter'
    assert report.recommendations[0].startswith('Moderate inbreeding is acceptable')
    assert report.recommendations[-1] == 'Health-test both the sire and the dam before confirming this mating'
    assert report.compatibility_score == pytest.approx(compatibility_score(0.1, 0.25))


def test_report_without_common_ancestors(rules):
    report = evaluate_compatibility(0.0, [], rules, generations=4)

    assert report.compatibility_score == 1.0
    assert report.risks == []
    assert report.recommendations == [
        'No common ancestors found within 4 generations; this pairing supports genetic diversity'
    ]


def test_custom_sensitivity_changes_the_curve(rules):
    gentle = evaluate_compatibility(0.1, [], rules, sensitivity=1.0)
    harsh = evaluate_compatibility(0.1, [], rules, sensitivity=20.0)
    assert gentle.compatibility_score > harsh.compatibility_score


def test_rules_load_from_json(tmp_path):
    path = tmp_path / 'rules.json'
    path.write_text(json.dumps([
        {'condition': 'Collie Eye Anomaly', 'breeds': ['Border Collie'], 'weight': 0.3},
    ]))

    rules = load_risk_rules(str(path))

    assert len(rules) == 1
    assert rules[0].breeds == ('border collie',)
    assert rules[0].recommendation == 'Consider genetic testing for collie eye anomaly'


def test_default_rules_when_no_file_configured():
    assert [r.condition for r in load_risk_rules(None)] == [r['condition'] for r in DEFAULT_RISK_RULES]


@pytest.mark.parametrize('entry', [
    {'breeds': ['Boxer'], 'weight': 0.1},
    {'condition': 'Deafness', 'weight': 'heavy'},
    {'condition': 'Deafness', 'weight': -1},
])
def test_invalid_rules_are_rejected(entry):
    with pytest.raises(ValueError):
        parse_risk_rules([entry])
