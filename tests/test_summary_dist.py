import numpy as np
import pandas as pd
import pytest
from scipy.spatial.distance import pdist, squareform

from groupdist import (
    DistanceMatrix,
    GroupAssignment,
    GroupingColumnsWarning,
    InvalidInputKind,
    MissingIdentifier,
    INTRA_GROUP,
    INTER_GROUP,
    summarize,
    pair_distances,
    describe,
    records_to_frame,
    format_stats,
)


@pytest.fixture
def two_clades():
    # s1-s2 and s3-s4 are 1 apart, everything across clades is 3 apart
    labels = ["s1", "s2", "s3", "s4"]
    values = [
        [0, 1, 3, 3],
        [1, 0, 3, 3],
        [3, 3, 0, 1],
        [3, 3, 1, 0],
    ]
    matrix = DistanceMatrix.from_array(values, labels)
    groups = GroupAssignment({"s1": "A", "s2": "A", "s3": "B", "s4": "B"})
    return matrix, groups


@pytest.fixture
def random_case():
    rng = np.random.default_rng(7)
    points = rng.normal(size=(20, 3))
    labels = [f"seq{i}" for i in range(20)]
    matrix = DistanceMatrix.from_array(squareform(pdist(points)), labels)
    names = ["ST1", "ST22", "ST3", "ST4", "ST5"]
    groups = GroupAssignment((label, names[i % 5]) for i, label in enumerate(labels))
    return matrix, groups


def test_two_clades_scenario(two_clades):
    matrix, groups = two_clades
    records = summarize(matrix, groups)
    assert [(r.group1, r.group2) for r in records] == [("A", "A"), ("B", "B"), ("A", "B")]

    a, b, ab = records
    assert a.comparison_type == INTRA_GROUP
    assert a.comparison_label == "A"
    assert (a.n, a.mean, a.stddev) == (1, 1.0, 0.0)
    assert (b.n, b.mean, b.stddev) == (1, 1.0, 0.0)
    assert ab.comparison_type == INTER_GROUP
    assert ab.comparison_label == "A_B"
    assert (ab.n, ab.mean, ab.stddev, ab.min, ab.max) == (4, 3.0, 0.0, 3.0, 3.0)


def test_three_member_group_uses_lower_triangle():
    matrix = DistanceMatrix.from_array([[0, 1, 2], [1, 0, 3], [2, 3, 0]], ["x", "y", "z"])
    groups = GroupAssignment({"x": "G", "y": "G", "z": "G"})
    (record,) = summarize(matrix, groups)
    assert record.n == 3
    assert record.mean == pytest.approx(2.0)
    assert record.stddev == pytest.approx(1.0)
    assert (record.min, record.max) == (1.0, 3.0)


def test_singleton_group_keeps_self_distance():
    matrix = DistanceMatrix.from_array([[0, 4, 5], [4, 0, 6], [5, 6, 0]], ["a", "b", "c"])
    groups = GroupAssignment({"a": "big", "b": "big", "c": "solo"})
    records = {r.comparison_label: r for r in summarize(matrix, groups)}
    solo = records["solo"]
    assert (solo.n, solo.mean, solo.stddev, solo.min, solo.max) == (1, 0.0, 0.0, 0.0, 0.0)
    cross = records["big_solo"]
    assert cross.n == 2
    assert cross.mean == pytest.approx(5.5)


def test_identical_sequences_have_zero_spread():
    matrix = DistanceMatrix.from_array(np.zeros((4, 4)), ["a", "b", "c", "d"])
    groups = GroupAssignment({"a": "G", "b": "G", "c": "G", "d": "H"})
    g = summarize(matrix, groups)[0]
    assert g.comparison_label == "G"
    assert g.n == 3
    assert g.stddev == 0.0
    assert g.min == g.max == g.mean == 0.0


def test_row_count_and_row_invariants(random_case):
    matrix, groups = random_case
    records = summarize(matrix, groups)
    k = len(groups.groups)
    assert len(records) == k * (k + 1) // 2
    pairs = {frozenset((r.group1, r.group2)) for r in records}
    assert len(pairs) == len(records)
    for r in records:
        assert r.n >= 1
        assert r.min <= r.mean <= r.max
        assert r.stddev >= 0


def test_intra_group_counts_each_pair_once(random_case):
    matrix, groups = random_case
    for r in summarize(matrix, groups):
        size1 = len(groups.members(r.group1))
        size2 = len(groups.members(r.group2))
        expected = size1 * (size1 - 1) // 2 if r.group1 == r.group2 else size1 * size2
        assert r.n == expected


def test_output_order(random_case):
    matrix, groups = random_case
    records = summarize(matrix, groups)
    types = [r.comparison_type for r in records]
    n_intra = types.count(INTRA_GROUP)
    assert types == [INTRA_GROUP] * n_intra + [INTER_GROUP] * (len(types) - n_intra)
    intra_labels = [r.comparison_label for r in records[:n_intra]]
    inter_labels = [r.comparison_label for r in records[n_intra:]]
    assert intra_labels == sorted(intra_labels)
    assert inter_labels == sorted(inter_labels)


def test_summarize_is_idempotent(random_case):
    matrix, groups = random_case
    assert summarize(matrix, groups) == summarize(matrix, groups)


def test_group_order_does_not_change_statistics(two_clades):
    matrix, _ = two_clades
    forward = GroupAssignment([("s1", "A"), ("s2", "A"), ("s3", "B"), ("s4", "B")])
    reverse = GroupAssignment([("s3", "B"), ("s4", "B"), ("s1", "A"), ("s2", "A")])
    fwd = [r for r in summarize(matrix, forward) if r.comparison_type == INTER_GROUP][0]
    rev = [r for r in summarize(matrix, reverse) if r.comparison_type == INTER_GROUP][0]
    assert fwd.comparison_label == "A_B"
    assert rev.comparison_label == "B_A"
    assert (fwd.n, fwd.mean, fwd.stddev, fwd.min, fwd.max) == (rev.n, rev.mean, rev.stddev, rev.min, rev.max)


def test_custom_label_separator(two_clades):
    matrix, groups = two_clades
    labels = [r.comparison_label for r in summarize(matrix, groups, sep=" vs ")]
    assert labels == ["A", "B", "A vs B"]


def test_parallel_matches_serial(random_case):
    matrix, groups = random_case
    assert summarize(matrix, groups, processes=2) == summarize(matrix, groups)


def test_progress_bar_does_not_change_result(random_case):
    matrix, groups = random_case
    assert summarize(matrix, groups, progress=True) == summarize(matrix, groups)


def test_missing_identifier_fails_without_output(two_clades):
    matrix, _ = two_clades
    groups = GroupAssignment({"s1": "A", "s9": "A", "s3": "B", "s8": "C"})
    with pytest.raises(MissingIdentifier) as excinfo:
        summarize(matrix, groups)
    assert excinfo.value.identifiers == ("s9", "s8")
    assert "s9" in str(excinfo.value)
    assert isinstance(excinfo.value, LookupError)


def test_raw_frame_is_not_a_distance_matrix(two_clades):
    matrix, groups = two_clades
    with pytest.raises(InvalidInputKind):
        summarize(matrix.frame, groups)


@pytest.mark.parametrize("grouping", [{"s1": "A"}, [("s1", "A")], "groups.csv", None])
def test_grouping_must_be_table_like(two_clades, grouping):
    matrix, _ = two_clades
    with pytest.raises(InvalidInputKind):
        summarize(matrix, grouping)


def test_grouping_table_is_accepted(two_clades):
    matrix, groups = two_clades
    table = pd.DataFrame({"seq_id": ["s1", "s2", "s3", "s4"], "clade": ["A", "A", "B", "B"]})
    assert summarize(matrix, table) == summarize(matrix, groups)


def test_grouping_table_with_extra_columns_warns(two_clades):
    matrix, groups = two_clades
    table = pd.DataFrame({
        "sequence_id": ["s1", "s2", "s3", "s4"],
        "group": ["A", "A", "B", "B"],
        "country": ["NZ", "NZ", "AU", "AU"],
    })
    with pytest.warns(GroupingColumnsWarning, match="3 columns"):
        records = summarize(matrix, table)
    assert records == summarize(matrix, groups)


def test_pair_distances(two_clades):
    matrix, groups = two_clades
    np.testing.assert_array_equal(pair_distances(matrix, groups, "A", "A"), [1.0])
    np.testing.assert_array_equal(pair_distances(matrix, groups, "A", "B"), [3.0, 3.0, 3.0, 3.0])


def test_describe():
    assert describe([2.0]) == (1, 2.0, 0.0, 2.0, 2.0)
    assert describe([0.1, 0.1, 0.1]) == (3, pytest.approx(0.1), 0.0, 0.1, 0.1)
    n, mean, sd, lo, hi = describe(np.array([[1.0, 2.0], [3.0, 4.0]]))
    assert (n, lo, hi) == (4, 1.0, 4.0)
    assert mean == pytest.approx(2.5)
    assert sd == pytest.approx(np.std([1, 2, 3, 4], ddof=1))
    with pytest.raises(ValueError):
        describe([])


def test_records_to_frame_and_format(two_clades):
    matrix, groups = two_clades
    df = records_to_frame(summarize(matrix, groups))
    assert list(df.columns) == ["group1", "group2", "comparison_type", "comparison",
                                "n", "mean", "sd", "min", "max"]
    assert df["comparison"].tolist() == ["A", "B", "A_B"]
    assert df["n"].tolist() == [1, 1, 4]

    formatted = format_stats(df, precision=1)
    assert formatted["mean_sd"].tolist() == ["1.0 +/- 0.0", "1.0 +/- 0.0", "3.0 +/- 0.0"]
    assert "mean_sd" not in df.columns


def test_record_as_dict(two_clades):
    matrix, groups = two_clades
    row = summarize(matrix, groups)[-1].as_dict()
    assert row == {
        "group1": "A", "group2": "B", "comparison_type": INTER_GROUP, "comparison_label": "A_B",
        "n": 4, "mean": 3.0, "stddev": 0.0, "min": 3.0, "max": 3.0,
    }
