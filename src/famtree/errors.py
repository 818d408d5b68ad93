"""Exceptions raised by famtree."""


class FamilyTreeError(Exception):
    """Base class for famtree errors."""


class TreeNotFoundError(FamilyTreeError, LookupError):
    def __init__(self, tree_id: int):
        super().__init__(f"Tree ID {tree_id} not found")
        self.tree_id = tree_id


class DataLoadError(FamilyTreeError):
    """Fetching one of the tree collections failed; the previous view state is kept."""


class ExportError(FamilyTreeError):
    """Rasterizing or saving an export failed; the view state has been restored."""
