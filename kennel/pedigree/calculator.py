import logging
from datetime import date

from .analysis import analyzer
from .analysis.compatibility import (
    DEFAULT_COI_SENSITIVITY, evaluate_compatibility, load_risk_rules,
)
from .analysis.indexer import build_ancestor_index, validate_generations
from .errors import FetchFailure, LineageError
from .models import BreedingCompatibilityReport, LineageResult, DEFAULT_GENERATIONS

logger = logging.getLogger(__name__)

PROSPECTIVE_LITTER_ID = '__prospective_litter__'


class LineageCalculator:
    def __init__(self, fetch_pedigree, generations=DEFAULT_GENERATIONS, risk_rules=None,
                 coi_sensitivity=DEFAULT_COI_SENSITIVITY):
        """
        Initializes the calculator around an ancestry fetcher: any callable
        taking (dog_id, generations) and returning a nested sire/dam tree.
        Every computation fetches its own snapshot, nothing is cached here.
        """
        self.fetch_pedigree = fetch_pedigree
        self.generations = validate_generations(generations)
        self.risk_rules = risk_rules if risk_rules is not None else load_risk_rules()
        self.coi_sensitivity = coi_sensitivity

    def _fetch(self, dog_id, generations):
        try:
            tree = self.fetch_pedigree(dog_id, generations)
        except FetchFailure:
            raise
        except Exception as e:
            raise FetchFailure(f"Could not fetch the pedigree of '{dog_id}': {e}") from e
        if not tree:
            raise FetchFailure(f"No pedigree was returned for '{dog_id}'.")
        return tree

    def load_index(self, dog_id, generations=None):
        """Fetches and indexes the ancestry of one dog. Raises FetchFailure."""
        generations = self.generations if generations is None else validate_generations(generations)
        tree = self._fetch(dog_id, generations)
        index = build_ancestor_index(tree, generations)
        for warning in index.warnings:
            logger.warning(warning)
        return index, generations

    def load_mating_index(self, sire_id, dam_id, generations=None):
        """
        Indexes the pedigree of a litter that does not exist yet: a virtual
        root with the candidate sire and dam as its parents.
        """
        generations = self.generations if generations is None else validate_generations(generations)
        if str(sire_id) == str(dam_id):
            raise LineageError("A dog cannot be mated with itself.")
        litter = {'id': PROSPECTIVE_LITTER_ID, 'name': 'Prospective litter', 'date_of_birth': date.today()}
        if generations > 0:
            litter['sire'] = self._fetch(sire_id, generations - 1)
            litter['dam'] = self._fetch(dam_id, generations - 1)
        index = build_ancestor_index(litter, generations)
        for warning in index.warnings:
            logger.warning(warning)
        return index, generations

    def calculate_coefficient_of_inbreeding(self, dog_id, generations=None):
        """
        Wright's path-method COI of a dog. A failed fetch gives a value of 0
        with `error` set, never a bare 0.
        """
        try:
            index, generations = self.load_index(dog_id, generations)
            coi = analyzer.calculate_inbreeding_path_based(index, generations)
        except FetchFailure as e:
            logger.error(f"COI for '{dog_id}' unavailable: {e}")
            return LineageResult(value=0.0, error=str(e))
        return LineageResult(value=coi, warnings=index.warnings)

    def find_common_ancestors(self, dog_id, generations=None):
        try:
            index, generations = self.load_index(dog_id, generations)
            ancestors = analyzer.find_common_ancestors(index, generations)
        except FetchFailure as e:
            logger.error(f"Common ancestors of '{dog_id}' unavailable: {e}")
            return LineageResult(value=[], error=str(e))
        return LineageResult(value=ancestors, warnings=index.warnings)

    def calculate_bloodline_percentages(self, dog_id, generations=None):
        try:
            index, generations = self.load_index(dog_id, generations)
        except FetchFailure as e:
            logger.error(f"Bloodlines of '{dog_id}' unavailable: {e}")
            return LineageResult(value={}, error=str(e))
        return LineageResult(
            value=analyzer.calculate_bloodline_percentages(index, generations),
            warnings=index.warnings,
        )

    def calculate_breeding_coi(self, sire_id, dam_id, generations=None):
        """COI expected in a litter of the given sire and dam."""
        try:
            index, generations = self.load_mating_index(sire_id, dam_id, generations)
            coi = analyzer.calculate_inbreeding_path_based(index, generations)
        except FetchFailure as e:
            logger.error(f"Breeding COI for '{sire_id}' x '{dam_id}' unavailable: {e}")
            return LineageResult(value=0.0, error=str(e))
        return LineageResult(value=coi, warnings=index.warnings)

    def calculate_breeding_compatibility(self, sire_id, dam_id, generations=None):
        """
        Compatibility report for a prospective mating. Never raises: any
        failure comes back as a report with a zero score and `error` set.
        """
        try:
            index, generations = self.load_mating_index(sire_id, dam_id, generations)
            breeding_coi = analyzer.calculate_inbreeding_path_based(index, generations)
            common_ancestors = analyzer.find_shared_ancestors(index, generations)
            report = evaluate_compatibility(
                breeding_coi, common_ancestors, self.risk_rules,
                sensitivity=self.coi_sensitivity, generations=generations,
            )
        except Exception as e:
            logger.error(f"Breeding compatibility for '{sire_id}' x '{dam_id}' failed: {e}", exc_info=True)
            return BreedingCompatibilityReport.failed(str(e) or e.__class__.__name__)
        report.warnings = list(index.warnings)
        return report

    def calculate_mating_matrix(self, sire_ids, dam_ids, generations=None):
        """Compatibility of every sire with every dam, in the order given."""
        results = []
        for sire_id in sire_ids:
            for dam_id in dam_ids:
                report = self.calculate_breeding_compatibility(sire_id, dam_id, generations)
                results.append({'sire_id': sire_id, 'dam_id': dam_id, 'report': report})
        return results
