"""
Summary statistics of pairwise distances within and between groups of sequences.

Given a ``DistanceMatrix`` and a ``GroupAssignment``, ``summarize`` visits every
unordered pair of groups (each group paired with itself included) and reports
the number of distances, mean, sample standard deviation, min and max for the
block of the matrix that pair covers.
"""
from dataclasses import dataclass, asdict, fields
from multiprocessing import Pool

import numpy as np
import pandas as pd
from tqdm import tqdm

from .errors import InvalidInputKind, MissingIdentifier
from .inputs import DistanceMatrix, GroupAssignment

INTRA_GROUP = "intra-group"
INTER_GROUP = "inter-group"

OUTPUT_COLUMNS = ["group1", "group2", "comparison_type", "comparison", "n", "mean", "sd", "min", "max"]


@dataclass(frozen=True)
class ComparisonRecord:
    group1: str
    group2: str
    comparison_type: str
    comparison_label: str
    n: int
    mean: float
    stddev: float
    min: float
    max: float

    @property
    def is_intra(self):
        return self.comparison_type == INTRA_GROUP

    def as_dict(self):
        return asdict(self)


def describe(values):
    """
    Return ``(n, mean, stddev, min, max)`` for a set of distances.

    The standard deviation is the sample one (ddof=1). It is 0 when there is
    a single value or when all values are equal.
    """
    values = np.asarray(values, dtype=float).ravel()
    n = values.size
    if n == 0:
        raise ValueError("cannot describe an empty set of distances")

    lo = float(values.min())
    hi = float(values.max())
    # Summation rounding can push the mean just outside [min, max]
    mean = float(np.clip(values.mean(), lo, hi))
    if n > 1 and hi > lo:
        sd = float(values.std(ddof=1))
    else:
        sd = 0.0
    return n, mean, sd, lo, hi


def _reduce_block(block, self_pair):
    # A group against itself: keep each distance once, drop the self-distances.
    # A singleton group keeps its single self-distance.
    if self_pair and block.shape[0] > 1:
        return block[np.tril_indices_from(block, k=-1)]
    return block.ravel()


def pair_distances(distance_matrix, group_assignment, group1, group2):
    """Distances contributing to the comparison of ``group1`` with ``group2``, as a 1-D array."""
    block = distance_matrix.block(group_assignment.members(group1), group_assignment.members(group2))
    return _reduce_block(block, group1 == group2)


def _summarize_pair(values, group1, group2, sep):
    n, mean, sd, lo, hi = describe(values)
    if group1 == group2:
        comparison_type = INTRA_GROUP
        label = group1
    else:
        comparison_type = INTER_GROUP
        label = f"{group1}{sep}{group2}"
    return ComparisonRecord(group1, group2, comparison_type, label, n, mean, sd, lo, hi)


def _display_order(record):
    return (0 if record.is_intra else 1, record.comparison_label, record.group1, record.group2)


def _check_inputs(distance_matrix, group_assignment):
    if not isinstance(distance_matrix, DistanceMatrix):
        raise InvalidInputKind(
            f"distance input must be a DistanceMatrix, got {type(distance_matrix).__name__}"
        )
    if isinstance(group_assignment, pd.DataFrame):
        group_assignment = GroupAssignment.from_table(group_assignment)
    elif not isinstance(group_assignment, GroupAssignment):
        raise InvalidInputKind(
            f"grouping input must be a GroupAssignment or a table, got {type(group_assignment).__name__}"
        )

    missing = distance_matrix.missing(group_assignment.identifiers)
    if missing:
        raise MissingIdentifier(missing)
    return group_assignment


def summarize(distance_matrix, group_assignment, sep="_", processes=None, progress=False):
    """
    Summarize distances for every unordered pair of groups.

    :param distance_matrix: DistanceMatrix covering every grouped sequence
    :param group_assignment: GroupAssignment, or a two-column table (sequence_id, group)
    :param sep: separator joining the two group names of an inter-group label
    :param processes: number of worker processes; None or 1 computes in-process
    :param progress: show a progress bar over group pairs
    :return: tuple of ComparisonRecord, intra-group rows first, each type sorted by label
    """
    # 1. Validate everything before computing anything
    group_assignment = _check_inputs(distance_matrix, group_assignment)

    # 2. Every unordered pair of groups, self-pairs included: k*(k+1)/2 pairs
    taxa = group_assignment.groups
    pairs = [(taxa[i], taxa[j]) for i in range(len(taxa)) for j in range(i, len(taxa))]
    if progress:
        pairs = tqdm(pairs, desc="Group pairs", unit="pair")

    tasks = (
        (pair_distances(distance_matrix, group_assignment, g1, g2), g1, g2, sep)
        for g1, g2 in pairs
    )

    # 3. Pairs are independent, so they can be spread over workers
    if processes is not None and processes > 1:
        with Pool(processes) as pool:
            records = pool.starmap(_summarize_pair, tasks)
    else:
        records = [_summarize_pair(*task) for task in tasks]

    # 4. Display order: intra-group first, then inter-group, by label
    return tuple(sorted(records, key=_display_order))


def records_to_frame(records):
    """Tabulate ComparisonRecords with the output column names."""
    frame = pd.DataFrame([r.as_dict() for r in records], columns=[f.name for f in fields(ComparisonRecord)])
    return frame.rename(columns={"comparison_label": "comparison", "stddev": "sd"})[OUTPUT_COLUMNS]


def format_stats(frame, precision=2):
    """Round the statistics for display and add a ``mean +/- sd`` column."""
    frame = frame.copy()
    frame["mean_sd"] = [f"{m:.{precision}f} +/- {s:.{precision}f}" for m, s in zip(frame["mean"], frame["sd"])]
    stat_cols = ["mean", "sd", "min", "max"]
    frame[stat_cols] = frame[stat_cols].round(precision)
    return frame
