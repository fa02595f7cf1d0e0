class GroupDistanceError(Exception):
    """Base class for failures raised while summarizing group distances."""


class InvalidInputKind(GroupDistanceError, TypeError):
    """The distance or grouping input is not the expected structure."""


class MissingIdentifier(GroupDistanceError, LookupError):
    """Grouped sequence identifiers that have no row/column in the matrix."""

    def __init__(self, identifiers):
        self.identifiers = tuple(identifiers)
        shown = ", ".join(self.identifiers[:10])
        if len(self.identifiers) > 10:
            shown += f", ... ({len(self.identifiers) - 10} more)"
        super().__init__(
            f"{len(self.identifiers)} sequence identifier(s) from the grouping table "
            f"are not in the distance matrix: {shown}"
        )


class GroupingColumnsWarning(UserWarning):
    """The grouping table columns were truncated or reinterpreted."""
