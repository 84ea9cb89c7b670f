from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


class CategoryDragItem(BaseModel):
    kind: Literal["category"] = "category"
    id: str


class SubcategoryDragItem(BaseModel):
    kind: Literal["subcategory"] = "subcategory"
    id: str
    parent_id: Optional[str] = Field(
        None, description="Owning category at drag start, if the caller knows it."
    )


DragItem = Annotated[
    Union[CategoryDragItem, SubcategoryDragItem], Field(discriminator="kind")
]

drag_item_adapter = TypeAdapter(DragItem)


def parse_drag_item(payload) -> Union[CategoryDragItem, SubcategoryDragItem]:
    """Accepts an already-built drag item or a `{"kind": ..., "id": ...}` dict."""
    if isinstance(payload, (CategoryDragItem, SubcategoryDragItem)):
        return payload
    return drag_item_adapter.validate_python(payload)
