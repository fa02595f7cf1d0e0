"""
Tagged input types for the group distance summary.

``DistanceMatrix`` and ``GroupAssignment`` are built once by the loaders (or by
the caller) and validated on construction, so ``summarize`` only has to check
that it was handed the right kinds.
"""
import warnings

import numpy as np
import pandas as pd
from scipy.linalg import issymmetric

from .errors import InvalidInputKind, GroupingColumnsWarning

SEQUENCE_ID_NAMES = {
    "sequence_id", "seq_id", "seqid", "sequence", "id", "sample", "sample_id",
    "taxa", "taxon", "isolate", "strain", "name",
}
GROUP_NAMES = {
    "group", "groups", "clade", "category", "cluster", "lineage", "mlst", "st", "type",
}


def as_label(value):
    """Sequence identifiers are compared as strings; integral floats (1.0) read as their int form (1)."""
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        value = int(value)
    return str(value)


def _column_role(name):
    key = str(name).strip().lstrip("#").strip().lower()
    if key in SEQUENCE_ID_NAMES:
        return "sequence_id"
    if key in GROUP_NAMES:
        return "group"
    return None


class DistanceMatrix:
    """Square, symmetric, non-negative matrix of pairwise distances indexed by sequence id."""

    def __init__(self, frame, atol=1e-8):
        if not isinstance(frame, pd.DataFrame):
            raise InvalidInputKind(
                f"distance matrix must be a pandas DataFrame, got {type(frame).__name__}"
            )
        n_rows, n_cols = frame.shape
        if n_rows == 0:
            raise InvalidInputKind("distance matrix is empty")
        if n_rows != n_cols:
            raise InvalidInputKind(f"distance matrix is not square: {n_rows} rows x {n_cols} columns")

        # Labels are compared as strings on both axes
        index = pd.Index([as_label(i) for i in frame.index])
        columns = pd.Index([as_label(c) for c in frame.columns])
        if index.has_duplicates or columns.has_duplicates:
            dups = sorted(set(index[index.duplicated()]) | set(columns[columns.duplicated()]))
            raise InvalidInputKind(f"distance matrix has duplicate labels: {', '.join(dups)}")
        if set(index) != set(columns):
            only_rows = sorted(set(index) - set(columns))
            only_cols = sorted(set(columns) - set(index))
            raise InvalidInputKind(
                "distance matrix row and column labels differ "
                f"(rows only: {only_rows}, columns only: {only_cols})"
            )

        frame = frame.copy()
        frame.index = index
        frame.columns = columns
        frame = frame.loc[:, list(index)]

        non_numeric = [c for c, t in frame.dtypes.items() if not pd.api.types.is_numeric_dtype(t)]
        if non_numeric:
            raise InvalidInputKind(f"distance matrix has non-numeric columns: {', '.join(non_numeric)}")
        values = frame.to_numpy(dtype=float)
        if np.isnan(values).any():
            raise InvalidInputKind("distance matrix contains missing values")
        if (values < 0).any():
            raise InvalidInputKind("distance matrix contains negative distances")
        if not issymmetric(values, atol=atol):
            raise InvalidInputKind("distance matrix is not symmetric")

        self._labels = tuple(index)
        self._values = values
        self._values.setflags(write=False)
        self._position = {label: i for i, label in enumerate(self._labels)}

    @classmethod
    def from_array(cls, values, labels, atol=1e-8):
        values = np.asarray(values)
        if values.ndim != 2:
            raise InvalidInputKind(f"distance array must be 2-dimensional, got {values.ndim} dimension(s)")
        labels = [as_label(label) for label in labels]
        if len(labels) != values.shape[0]:
            raise InvalidInputKind(f"{len(labels)} labels given for a {values.shape[0]}-row matrix")
        return cls(pd.DataFrame(values, index=labels, columns=labels), atol=atol)

    @classmethod
    def from_pairs(cls, frame, id1=0, id2=1, value=2, atol=1e-8):
        """
        Build a matrix from a long table with one row per pair of sequences.

        Columns may be given by name or position. A pair listed in only one
        orientation is mirrored and missing self-distances are set to 0.
        """
        if not isinstance(frame, pd.DataFrame):
            raise InvalidInputKind(
                f"pairwise table must be a pandas DataFrame, got {type(frame).__name__}"
            )
        cols = [frame.columns[c] if isinstance(c, int) else c for c in (id1, id2, value)]
        missing_cols = [c for c in cols if c not in frame.columns]
        if missing_cols:
            raise InvalidInputKind(f"pairwise table has no column(s): {missing_cols}")

        a = frame[cols[0]].map(as_label)
        b = frame[cols[1]].map(as_label)
        try:
            dist = pd.to_numeric(frame[cols[2]]).to_numpy(dtype=float)
        except (TypeError, ValueError) as e:
            raise InvalidInputKind(f"pairwise table has non-numeric distances: {e}") from e

        # First sighting row by row: id1 then id2 of each pair
        labels = list(dict.fromkeys(label for pair in zip(a, b) for label in pair))
        position = {label: i for i, label in enumerate(labels)}
        rows = a.map(position).to_numpy()
        cols_idx = b.map(position).to_numpy()

        mat = np.full((len(labels), len(labels)), np.nan)
        mat[rows, cols_idx] = dist
        # Mirror one-sided pairs, then fill absent self-distances
        mat = np.where(np.isnan(mat), mat.T, mat)
        diag = np.diag(mat)
        mat[np.diag_indices_from(mat)] = np.where(np.isnan(diag), 0.0, diag)

        if np.isnan(mat).any():
            i, j = np.argwhere(np.isnan(mat))[0]
            raise InvalidInputKind(
                f"pairwise table has no distance for {labels[i]} vs {labels[j]} "
                f"({int(np.isnan(mat).sum() // 2)} pair(s) missing)"
            )
        return cls(pd.DataFrame(mat, index=labels, columns=labels), atol=atol)

    @property
    def labels(self):
        return self._labels

    @property
    def values(self):
        return self._values

    @property
    def frame(self):
        return pd.DataFrame(self._values.copy(), index=list(self._labels), columns=list(self._labels))

    def __len__(self):
        return len(self._labels)

    def __contains__(self, label):
        return label in self._position

    def __repr__(self):
        return f"DistanceMatrix({len(self)} sequences)"

    def missing(self, identifiers):
        """Identifiers not present in the matrix, in the order given."""
        return [i for i in identifiers if i not in self._position]

    def block(self, rows, cols):
        """Sub-matrix of distances between the ``rows`` and ``cols`` identifiers."""
        r = [self._position[i] for i in rows]
        c = [self._position[i] for i in cols]
        return self._values[np.ix_(r, c)]


class GroupAssignment:
    """Ordered mapping of sequence identifier to group label."""

    def __init__(self, mapping):
        pairs = mapping.items() if isinstance(mapping, dict) else mapping
        ids = []
        groups = {}
        for seq_id, group in pairs:
            if pd.isna(seq_id) or str(seq_id).strip() == "":
                raise InvalidInputKind("grouping table has an empty sequence identifier")
            seq_id = as_label(seq_id)
            if pd.isna(group) or str(group).strip() == "":
                raise InvalidInputKind(f"sequence {seq_id} has no group label")
            if seq_id in groups:
                raise InvalidInputKind(f"sequence {seq_id} appears more than once in the grouping table")
            ids.append(seq_id)
            groups[seq_id] = as_label(group)

        self._ids = tuple(ids)
        self._group_of = groups
        self._members = {}
        for seq_id in self._ids:
            self._members.setdefault(groups[seq_id], []).append(seq_id)

    @classmethod
    def from_table(cls, frame):
        """
        Build the assignment from a table whose first two columns hold the
        sequence identifier and the group label.

        Extra columns are dropped and unrecognized or swapped column names are
        reinterpreted, each with a ``GroupingColumnsWarning``.
        """
        if not isinstance(frame, pd.DataFrame):
            raise InvalidInputKind(
                f"grouping table must be a pandas DataFrame, got {type(frame).__name__}"
            )
        if frame.shape[1] < 2:
            raise InvalidInputKind(
                f"grouping table needs two columns (sequence_id, group), got {frame.shape[1]}"
            )
        if frame.shape[1] > 2:
            warnings.warn(
                f"grouping table has {frame.shape[1]} columns; only the first two "
                f"({frame.columns[0]!r}, {frame.columns[1]!r}) are used",
                GroupingColumnsWarning,
                stacklevel=2,
            )
            frame = frame.iloc[:, :2]

        first, second = frame.columns
        roles = (_column_role(first), _column_role(second))
        if roles == ("sequence_id", "group"):
            seq_pos, group_pos = 0, 1
        elif roles == ("group", "sequence_id"):
            warnings.warn(
                f"grouping table columns ({first!r}, {second!r}) look swapped; "
                f"using {second!r} as sequence_id and {first!r} as group",
                GroupingColumnsWarning,
                stacklevel=2,
            )
            seq_pos, group_pos = 1, 0
        else:
            warnings.warn(
                f"grouping table columns ({first!r}, {second!r}) are not recognized; "
                "reading them as (sequence_id, group)",
                GroupingColumnsWarning,
                stacklevel=2,
            )
            seq_pos, group_pos = 0, 1

        return cls(zip(frame.iloc[:, seq_pos], frame.iloc[:, group_pos]))

    @property
    def identifiers(self):
        return self._ids

    @property
    def groups(self):
        """Distinct group labels in the order first encountered."""
        return tuple(self._members)

    def group_of(self, seq_id):
        return self._group_of[seq_id]

    def members(self, group):
        return list(self._members[group])

    def without(self, identifiers):
        drop = {as_label(i) for i in identifiers}
        return GroupAssignment((i, self._group_of[i]) for i in self._ids if i not in drop)

    def as_frame(self):
        return pd.DataFrame(
            {"sequence_id": list(self._ids), "group": [self._group_of[i] for i in self._ids]}
        )

    def __iter__(self):
        return ((i, self._group_of[i]) for i in self._ids)

    def __len__(self):
        return len(self._ids)

    def __repr__(self):
        return f"GroupAssignment({len(self)} sequences in {len(self._members)} groups)"
