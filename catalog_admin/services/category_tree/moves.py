"""
Pure tree edits behind drag-and-drop reordering.

Every function takes a tree and returns a new one; the input is never mutated.
"""

from typing import List, TypeVar, Union

from catalog_admin.core.exceptions import ItemNotFoundError, UnsupportedMoveError
from catalog_admin.schemas.category_schemas import CategoryTree
from catalog_admin.schemas.drag_schemas import CategoryDragItem, SubcategoryDragItem

T = TypeVar("T")

DragTarget = Union[CategoryDragItem, SubcategoryDragItem]


def array_move(items: List[T], old_index: int, new_index: int) -> List[T]:
    """Removes the item at `old_index` and reinserts it at `new_index`."""
    moved = list(items)
    item = moved.pop(old_index)
    moved.insert(new_index, item)
    return moved


def _require_category_index(tree: CategoryTree, category_id: str) -> int:
    index = tree.category_index(category_id)
    if index is None:
        raise ItemNotFoundError(category_id, kind="category")
    return index


def _locate_subcategory(tree: CategoryTree, item: SubcategoryDragItem):
    found = tree.find_subcategory(item.id)
    if found is None:
        raise ItemNotFoundError(item.id, kind="subcategory")
    owner, index = found
    if item.parent_id is not None and item.parent_id != owner.id:
        raise UnsupportedMoveError(
            f"Subcategory '{item.id}' belongs to '{owner.id}', not '{item.parent_id}'"
        )
    return tree.category_index(owner.id), index


def move_category(tree: CategoryTree, active_id: str, over_id: str) -> CategoryTree:
    old_index = _require_category_index(tree, active_id)
    new_index = _require_category_index(tree, over_id)
    moved = tree.copy_tree()
    moved.categories = array_move(moved.categories, old_index, new_index)
    return moved


def move_subcategory(
    tree: CategoryTree, active: SubcategoryDragItem, over: SubcategoryDragItem
) -> CategoryTree:
    source_cat, source_index = _locate_subcategory(tree, active)
    target_cat, target_index = _locate_subcategory(tree, over)

    moved = tree.copy_tree()
    source = moved.categories[source_cat]
    if source_cat == target_cat:
        source.subcategories = array_move(
            source.subcategories, source_index, target_index
        )
        return moved

    target = moved.categories[target_cat]
    sub = source.subcategories.pop(source_index)
    sub.category_id = target.id
    target.subcategories.insert(target_index, sub)
    return moved


def move_subcategory_to_category(
    tree: CategoryTree, active: SubcategoryDragItem, category_id: str
) -> CategoryTree:
    """A subcategory dropped on a category header goes to the end of that category."""
    source_cat, source_index = _locate_subcategory(tree, active)
    target_cat = _require_category_index(tree, category_id)

    moved = tree.copy_tree()
    sub = moved.categories[source_cat].subcategories.pop(source_index)
    sub.category_id = category_id
    moved.categories[target_cat].subcategories.append(sub)
    return moved


def apply_move(tree: CategoryTree, active: DragTarget, over: DragTarget) -> CategoryTree:
    """Dispatches a drop of `active` onto `over` by the kinds of both items."""
    if active.id == over.id and active.kind == over.kind:
        return tree

    if isinstance(active, CategoryDragItem):
        if isinstance(over, CategoryDragItem):
            return move_category(tree, active.id, over.id)
        raise UnsupportedMoveError(
            f"Category '{active.id}' cannot be dropped onto subcategory '{over.id}'"
        )

    if isinstance(over, SubcategoryDragItem):
        return move_subcategory(tree, active, over)
    return move_subcategory_to_category(tree, active, over.id)
