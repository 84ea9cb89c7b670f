import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")


def slugify(name: str) -> str:
    """Derives a URL-safe slug (lowercase letters, digits, hyphens) from a display name."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.strip().lower())
    return slug.strip("-")


def _validate_slug(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    if not SLUG_PATTERN.match(value):
        raise ValueError(
            "Slug can only contain lowercase letters, numbers, and hyphens."
        )
    return value


class WireModel(BaseModel):
    """
    Base for everything exchanged with the admin API.
    Attributes are snake_case, the wire is camelCase; both are accepted on input.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self, **kwargs) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", **kwargs)


# --- Tree ---


class Subcategory(WireModel):
    id: str
    name: str
    slug: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = Field(True, alias="isActive")
    category_id: Optional[str] = Field(None, alias="categoryId")


class Category(WireModel):
    id: str
    name: str
    slug: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, alias="imageUrl")
    is_active: bool = Field(True, alias="isActive")
    subcategories: List[Subcategory] = []

    @model_validator(mode="after")
    def _attach_subcategories(self) -> "Category":
        # a subcategory always points at the category whose list holds it
        for sub in self.subcategories:
            sub.category_id = self.id
        return self

    def subcategory_ids(self) -> List[str]:
        return [sub.id for sub in self.subcategories]


class CategoryTree(BaseModel):
    """
    The full ordered collection of categories with their ordered subcategories.
    Position is the list index; `sortOrder` values sent by the server are dropped.
    `version` is the ETag of the fetch the tree came from, if the server sent one.
    """

    categories: List[Category] = []
    version: Optional[str] = None

    @classmethod
    def from_wire(cls, payload: Any, version: Optional[str] = None) -> "CategoryTree":
        if isinstance(payload, dict):
            payload = payload.get("categories", [])
        return cls(categories=payload or [], version=version)

    def to_reorder_payload(self) -> Dict[str, Any]:
        return {"categories": [c.to_wire() for c in self.categories]}

    def copy_tree(self) -> "CategoryTree":
        return self.model_copy(deep=True)

    def category_ids(self) -> List[str]:
        return [c.id for c in self.categories]

    def category_index(self, category_id: str) -> Optional[int]:
        for index, category in enumerate(self.categories):
            if category.id == category_id:
                return index
        return None

    def find_category(self, category_id: str) -> Optional[Category]:
        index = self.category_index(category_id)
        return None if index is None else self.categories[index]

    def find_subcategory(
        self, subcategory_id: str
    ) -> Optional[Tuple[Category, int]]:
        """Linear scan: subcategories are nested, not indexed on their own."""
        for category in self.categories:
            for index, sub in enumerate(category.subcategories):
                if sub.id == subcategory_id:
                    return category, index
        return None

    def owner_of(self, subcategory_id: str) -> Optional[Category]:
        found = self.find_subcategory(subcategory_id)
        return found[0] if found else None

    def shape(self) -> List[Tuple[str, List[str]]]:
        """Ids only, in order. Handy for comparing two trees' ordering."""
        return [(c.id, c.subcategory_ids()) for c in self.categories]

    def active_only(self) -> "CategoryTree":
        categories = []
        for category in self.categories:
            if not category.is_active:
                continue
            kept = category.model_copy(deep=True)
            kept.subcategories = [s for s in kept.subcategories if s.is_active]
            categories.append(kept)
        return CategoryTree(categories=categories, version=self.version)


# --- Forms ---


class CategoryCreate(WireModel):
    name: str = Field("", validate_default=True)
    slug: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, alias="imageUrl")
    is_active: bool = Field(True, alias="isActive")

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Category name is required.")
        return value.strip()

    @field_validator("slug")
    @classmethod
    def _slug_format(cls, value: Optional[str]) -> Optional[str]:
        return _validate_slug(value)

    @model_validator(mode="after")
    def _default_slug(self) -> "CategoryCreate":
        if not self.slug:
            self.slug = slugify(self.name) or None
        return self


class CategoryUpdate(WireModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, alias="imageUrl")
    is_active: Optional[bool] = Field(None, alias="isActive")

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("Category name is required.")
        return value.strip() if value is not None else None

    @field_validator("slug")
    @classmethod
    def _slug_format(cls, value: Optional[str]) -> Optional[str]:
        return _validate_slug(value)


class SubcategoryCreate(WireModel):
    name: str = Field("", validate_default=True)
    slug: Optional[str] = None
    description: Optional[str] = None
    category_id: str = Field("", alias="categoryId", validate_default=True)
    is_active: bool = Field(True, alias="isActive")

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Subcategory name is required.")
        return value.strip()

    @field_validator("category_id")
    @classmethod
    def _category_required(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Parent category ID is required.")
        return value

    @field_validator("slug")
    @classmethod
    def _slug_format(cls, value: Optional[str]) -> Optional[str]:
        return _validate_slug(value)

    @model_validator(mode="after")
    def _default_slug(self) -> "SubcategoryCreate":
        if not self.slug:
            self.slug = slugify(self.name) or None
        return self


class SubcategoryUpdate(WireModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = Field(None, alias="isActive")

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("Subcategory name is required.")
        return value.strip() if value is not None else None

    @field_validator("slug")
    @classmethod
    def _slug_format(cls, value: Optional[str]) -> Optional[str]:
        return _validate_slug(value)
