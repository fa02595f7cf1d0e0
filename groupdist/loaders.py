"""Readers that turn distance and grouping files into the tagged input types."""
import os

import pandas as pd

from .errors import InvalidInputKind
from .inputs import DistanceMatrix, GroupAssignment


def _guess_sep(path):
    # Decide from the header line: tab, then comma, else any run of whitespace
    with open(path, "r") as f:
        header_line = f.readline()
    if "\t" in header_line:
        return "\t"
    if "," in header_line:
        return ","
    return r"\s+"


def _spacing(sep):
    # Whitespace-delimited reads already ignore padding
    if sep == r"\s+":
        return {}
    return {"skipinitialspace": True}


def normalize_name(name):
    """File path style identifiers (``reads/S1.fasta``) become the bare sample name (``S1``)."""
    return os.path.splitext(os.path.basename(str(name)))[0]


def read_distance_matrix(path, sep=None):
    """
    Read a square distance matrix with a header row and the sequence
    identifiers in the first column, e.g. the output of snp-dists or a
    pairwise-difference table.
    """
    if sep is None:
        sep = _guess_sep(path)
    # Read as text so identifiers like "007" keep their leading zeros.
    # A blank corner cell in a whitespace layout leaves the header one field
    # short and pandas then takes the first column as the index on its own.
    df = pd.read_csv(path, sep=sep, dtype=str, index_col=0, **_spacing(sep))
    try:
        df = df.apply(pd.to_numeric)
    except ValueError as e:
        raise InvalidInputKind(f"{path}: distance matrix has a non-numeric entry ({e})") from e
    return DistanceMatrix(df)


def read_pairwise_table(path, sep="\t", columns=(0, 1, 2), header=None, normalize=False):
    """
    Read a long table with one pair of sequences per row (id1, id2, distance),
    such as Mash tabular output.
    """
    df = pd.read_csv(path, sep=sep, header=header, dtype=str)
    id1, id2, value = [df.columns[c] if isinstance(c, int) else c for c in columns]
    if normalize:
        df[id1] = df[id1].map(normalize_name)
        df[id2] = df[id2].map(normalize_name)
    return DistanceMatrix.from_pairs(df, id1, id2, value)


def read_groups(path, sep=None):
    """Read a grouping table with a header row: sequence identifier, then group label."""
    if sep is None:
        sep = _guess_sep(path)
    df = pd.read_csv(path, sep=sep, dtype=str, **_spacing(sep))
    return GroupAssignment.from_table(df)


def read_id_list(path):
    """One identifier per line; blank lines and ``#`` comments are skipped."""
    ids = []
    with open(path, "r") as f:
        for line in f:
            line = line.split("#", 1)[0].strip()
            if line:
                ids.append(line)
    return ids


def drop_missing(group_assignment, distance_matrix):
    """
    Remove grouped identifiers that the matrix does not cover.

    Returns the reduced assignment and the identifiers that were dropped.
    """
    missing = distance_matrix.missing(group_assignment.identifiers)
    if not missing:
        return group_assignment, []
    return group_assignment.without(missing), missing
