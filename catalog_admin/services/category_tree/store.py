import logging
from typing import Optional

from catalog_admin.schemas.category_schemas import CategoryTree
from catalog_admin.schemas.drag_schemas import parse_drag_item
from catalog_admin.services.category_tree.moves import apply_move

log = logging.getLogger(__name__)


class CategoryTreeStore:
    """
    Holds the category tree for one editing session in two layers:

    * `confirmed` - the last tree the server acknowledged (fetched or reordered);
    * `working` - what is rendered, possibly ahead of the server.

    Rolling back an optimistic edit is `working = confirmed`.
    """

    def __init__(self, snapshot: Optional[CategoryTree] = None):
        self._confirmed = CategoryTree()
        self._working = CategoryTree()
        self._stale = True
        if snapshot is not None:
            self.load(snapshot)

    def load(self, snapshot: CategoryTree) -> None:
        """Replaces both layers with a freshly fetched tree. No merging."""
        self._confirmed = snapshot.copy_tree()
        self._working = snapshot.copy_tree()
        self._stale = False
        log.debug("Loaded tree with %d categories", len(snapshot.categories))

    def move_item(self, active, over) -> CategoryTree:
        """
        Computes the tree after dropping `active` onto `over` without adopting it.
        Raises MoveError subclasses for unknown ids or unsupported drops.
        """
        active = parse_drag_item(active)
        over = parse_drag_item(over)
        return apply_move(self._working, active, over).copy_tree()

    def adopt(self, tree: CategoryTree) -> None:
        self._working = tree.copy_tree()

    def commit(
        self, tree: Optional[CategoryTree] = None, version: Optional[str] = None
    ) -> None:
        """
        Marks `tree` (default: the working tree) as acknowledged by the server.
        Gestures adopted after `tree` was submitted stay pending in `working`.
        """
        self._confirmed = (tree if tree is not None else self._working).copy_tree()
        if version is not None:
            self._confirmed.version = version
            self._working.version = version

    def rollback(self) -> None:
        self._working = self._confirmed.copy_tree()

    def invalidate(self) -> None:
        self._stale = True

    @property
    def is_stale(self) -> bool:
        return self._stale

    @property
    def version(self) -> Optional[str]:
        return self._confirmed.version

    @property
    def has_pending_changes(self) -> bool:
        return self._working.shape() != self._confirmed.shape()

    def current_snapshot(self) -> CategoryTree:
        return self._working.copy_tree()

    def confirmed_snapshot(self) -> CategoryTree:
        return self._confirmed.copy_tree()
