from collections import namedtuple

import numpy as np
import pandas as pd

from ..errors import MalformedPedigreeError
from ..models import CommonAncestor, SIRE, DAM

UNKNOWN_LINE = 'Unknown'

# Each path is one step longer on both sides than in the classical form
PATH_SCALE = 0.25

# COI guidance bands, upper bounds exclusive
COI_RISK_LEVELS = (
    (0.0625, 'Low'),
    (0.125, 'Moderate'),
    (0.25, 'High'),
)

# One route from a start dog to an ancestor: the Sire/Dam steps taken and the
# ids of the dogs passed through on the way (start and ancestor excluded).
PathTrace = namedtuple('PathTrace', ['steps', 'lineage'])


def classify_coi(value):
    for upper, level in COI_RISK_LEVELS:
        if value < upper:
            return level
    return 'Very High'


# --- ALGORITHM 1: Tabular Method (Meuwissen-Luo) ---

def parents_first_order(df_map):
    """Orders dogs so that every parent comes before its offspring."""
    def known_parents(dog_id):
        return [p for p in df_map[dog_id] if p is not None and p in df_map]

    order, state = [], {}
    for start in df_map:
        if start in state:
            continue
        state[start] = 'visiting'
        stack = [(start, iter(known_parents(start)))]
        while stack:
            dog_id, pending = stack[-1]
            parent_id = next(pending, None)
            if parent_id is None:
                stack.pop()
                state[dog_id] = 'done'
                order.append(dog_id)
            elif state.get(parent_id) == 'visiting':
                raise MalformedPedigreeError(f"Dog '{parent_id}' appears as its own ancestor.")
            elif parent_id not in state:
                state[parent_id] = 'visiting'
                stack.append((parent_id, iter(known_parents(parent_id))))
    return order


def calculate_inbreeding_tabular(df):
    """
    Calculates inbreeding coefficients for every dog in the dataframe using
    the tabular method (Meuwissen-Luo). Expects string `dog_id`, `sire_id`
    and `dam_id` columns, with None for unknown parents.

    Coefficients are on the same scale as calculate_inbreeding_path_based,
    where path lengths count from the dog itself: F = a(sire, dam) / 4 and
    a(x, x) = 1 + F(x), rather than the classical a(sire, dam) / 2.
    """
    df = df.drop_duplicates(subset=['dog_id'])
    df_map = {
        row.dog_id: (
            row.sire_id if pd.notna(row.sire_id) else None,
            row.dam_id if pd.notna(row.dam_id) else None,
        )
        for row in df.itertuples()
    }
    order = parents_first_order(df_map)

    dog_pos = {dog_id: i for i, dog_id in enumerate(order)}
    n = len(order)
    A = np.zeros((n, n))

    for i, dog_id in enumerate(order):
        sire_id, dam_id = df_map[dog_id]
        # Parents outside the table count as unknown
        sire_pos = dog_pos.get(sire_id, -1)
        dam_pos = dog_pos.get(dam_id, -1)

        if sire_pos != -1 and dam_pos != -1:
            A[i, i] = 1 + PATH_SCALE * A[sire_pos, dam_pos]
            row = 0.5 * (A[sire_pos, :i] + A[dam_pos, :i])
        elif sire_pos != -1 or dam_pos != -1:
            parent_pos = sire_pos if sire_pos != -1 else dam_pos
            A[i, i] = 1.0
            row = 0.5 * A[parent_pos, :i]
        else:
            A[i, i] = 1.0
            continue
        A[i, :i] = row
        A[:i, i] = row

    return {dog_id: float(A[i, i] - 1) for i, dog_id in enumerate(order)}


# --- ALGORITHM 2: Path-finding Method ---

def trace_paths(index, generations, start_id=None):
    """
    Depth-first enumeration of every route from `start_id` (the index root by
    default) to each ancestor no more than `generations` steps away. Sires are
    followed before dams, so the result is in a stable discovery order:
    {ancestor_id: [PathTrace, ...]}.
    """
    start_id = start_id or index.root_id
    traces = {}

    def visit(dog_id, steps, lineage):
        if len(steps) >= generations:
            return
        for label, parent_id in zip((SIRE, DAM), index.parents(dog_id)):
            if parent_id is None:
                continue
            if parent_id == start_id or parent_id == dog_id or parent_id in lineage:
                raise MalformedPedigreeError(f"Dog '{parent_id}' appears as its own ancestor.")
            path = steps + (label,)
            traces.setdefault(parent_id, []).append(PathTrace(path, lineage))
            visit(parent_id, path, lineage + (parent_id,))

    visit(start_id, (), ())
    return traces


def calculate_genetic_influence(pathways):
    """
    Fraction of a dog's genome expected to come from one ancestor: every
    pathway halves the material once per generation, and independent
    pathways add up.
    """
    influence = 0.0
    for path in pathways:
        influence += 0.5 ** len(path)
    return min(influence, 1.0)


def _common_ancestor(index, dog_id, dog_traces):
    pathways = tuple(t.steps for t in dog_traces)
    return CommonAncestor(
        dog=index[dog_id],
        occurrences=len(pathways),
        pathways=pathways,
        genetic_contribution=calculate_genetic_influence(pathways),
    )


def find_common_ancestors(index, generations):
    """Ancestors reached by two or more distinct paths from the index root."""
    traces = trace_paths(index, generations)
    found = [
        _common_ancestor(index, dog_id, dog_traces)
        for dog_id, dog_traces in traces.items()
        if len(dog_traces) >= 2
    ]
    return sorted(found, key=lambda a: a.genetic_contribution, reverse=True)


def _split_by_side(traces):
    for dog_id, dog_traces in traces.items():
        sire_side = [t for t in dog_traces if t.steps[0] == SIRE]
        dam_side = [t for t in dog_traces if t.steps[0] == DAM]
        if sire_side and dam_side:
            yield dog_id, sire_side, dam_side


def find_shared_ancestors(index, generations):
    """
    Ancestors reachable through both the sire and the dam of the index root,
    which is the intersection of the two parents' ancestor sets.
    """
    traces = trace_paths(index, generations)
    found = [
        _common_ancestor(index, dog_id, sire_side + dam_side)
        for dog_id, sire_side, dam_side in _split_by_side(traces)
    ]
    return sorted(found, key=lambda a: a.genetic_contribution, reverse=True)


def calculate_inbreeding_path_based(index, generations):
    """
    Wright's path method for the index root: for each ancestor shared by the
    sire and dam sides, every sire-path/dam-path pair that meets only at that
    ancestor adds 0.5^(n + m) * (1 + F_ancestor), n and m being the path
    lengths counted from the root.
    """
    traces = trace_paths(index, generations)

    total_inbreeding = 0.0
    for ancestor_id, sire_side, dam_side in _split_by_side(traces):
        ancestor_inbreeding = index[ancestor_id].own_coi
        for p in sire_side:
            for q in dam_side:
                if set(p.lineage) & set(q.lineage):
                    continue
                total_inbreeding += 0.5 ** (len(p.steps) + len(q.steps)) * (1 + ancestor_inbreeding)

    return min(max(total_inbreeding, 0.0), 1.0)


def calculate_bloodline_percentages(index, generations):
    """
    Splits the root's pedigree among its founder lines: dogs with no known
    parents inside the window, or sitting at the last generation considered.
    Missing parents are credited to the Unknown line. Percentages of a
    pedigree sum to 100, highest first.
    """
    if generations == 0 or index.parents(index.root_id) == (None, None):
        return {}

    shares = {}

    def credit(line, amount):
        shares[line] = shares.get(line, 0.0) + amount

    def visit(dog_id, depth):
        for parent_id in index.parents(dog_id):
            share = 0.5 ** (depth + 1)
            if parent_id is None:
                credit(UNKNOWN_LINE, share)
            elif depth + 1 >= generations or index.parents(parent_id) == (None, None):
                credit(f'{index[parent_id].display_name} Line', share)
            else:
                visit(parent_id, depth + 1)

    visit(index.root_id, 0)
    ranked = sorted(shares.items(), key=lambda item: item[1], reverse=True)
    return {line: share * 100 for line, share in ranked}
