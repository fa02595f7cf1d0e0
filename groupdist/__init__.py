__version__ = "0.1.0"

from .errors import GroupDistanceError, InvalidInputKind, MissingIdentifier, GroupingColumnsWarning
from .inputs import DistanceMatrix, GroupAssignment
from .summary_dist import (
    ComparisonRecord,
    INTRA_GROUP,
    INTER_GROUP,
    summarize,
    pair_distances,
    describe,
    records_to_frame,
    format_stats,
)
