# catalog_admin/services/category_gateway.py

import logging
from typing import Optional, Union
from urllib.parse import quote

from catalog_admin.core.exceptions import CategoryConflictError, StaleTreeError
from catalog_admin.schemas.category_schemas import (
    Category,
    CategoryCreate,
    CategoryTree,
    CategoryUpdate,
    Subcategory,
    SubcategoryCreate,
    SubcategoryUpdate,
)
from catalog_admin.services.api_client import AsyncAPIClient
from catalog_admin.services.category_tree.store import CategoryTreeStore

log = logging.getLogger(__name__)

CATEGORIES_PATH = "/api/admin/categories"
ACTIVE_CATEGORIES_PATH = f"{CATEGORIES_PATH}/all"
REORDER_PATH = f"{CATEGORIES_PATH}/reorder"
SUBCATEGORY_PATH = f"{CATEGORIES_PATH}/subcategory"


def _item_path(collection: str, item_id: str) -> str:
    """Ids are a single path segment; `/`, `?` and `#` are escaped."""
    return f"{collection}/{quote(str(item_id), safe='')}"


class CategoryGateway:
    """
    The only way the editor talks to the admin API about categories.

    Successful create/update/deactivate calls invalidate the attached store so the
    next render refetches; `reorder` leaves the store alone because the caller
    already holds the optimistic tree it sent.
    """

    def __init__(
        self,
        api_client: Optional[AsyncAPIClient] = None,
        store: Optional[CategoryTreeStore] = None,
    ):
        self.api_client = api_client or AsyncAPIClient()
        self.store = store

    def _invalidate(self) -> None:
        if self.store is not None:
            self.store.invalidate()

    # --- Tree ---

    async def fetch_tree(self) -> CategoryTree:
        response = await self.api_client.make_request(CATEGORIES_PATH)
        return CategoryTree.from_wire(response.json(), version=response.headers.get("ETag"))

    async def fetch_active_tree(self) -> CategoryTree:
        response = await self.api_client.make_request(ACTIVE_CATEGORIES_PATH)
        return CategoryTree.from_wire(response.json(), version=response.headers.get("ETag"))

    async def reorder(self, tree: CategoryTree, version: Optional[str] = None) -> Optional[str]:
        """
        Persists the complete ordering as one unit. Returns the server's new tree
        version when it sends one. A 409/412 on a versioned write means the tree
        changed on the server since `version` was fetched.
        """
        headers = {"If-Match": version} if version else None
        log.info(
            "Submitting reorder of %d categories (version=%s)",
            len(tree.categories),
            version,
        )
        try:
            response = await self.api_client.make_request(
                REORDER_PATH,
                method="PUT",
                json=tree.to_reorder_payload(),
                headers=headers,
            )
        except StaleTreeError:
            raise
        except CategoryConflictError as e:
            if version and e.status_code == 409:
                raise StaleTreeError(e.message, e.status_code) from e
            raise
        return response.headers.get("ETag")

    # --- Categories ---

    async def create_category(self, fields: Union[CategoryCreate, dict]) -> Category:
        if isinstance(fields, dict):
            fields = CategoryCreate(**fields)
        response = await self.api_client.make_request(
            CATEGORIES_PATH, method="POST", json=fields.to_wire(exclude_none=True)
        )
        self._invalidate()
        return Category.model_validate(response.json())

    async def update_category(
        self, category_id: str, fields: Union[CategoryUpdate, dict]
    ) -> Category:
        if isinstance(fields, dict):
            fields = CategoryUpdate(**fields)
        response = await self.api_client.make_request(
            _item_path(CATEGORIES_PATH, category_id),
            method="PUT",
            json=fields.to_wire(exclude_unset=True),
        )
        self._invalidate()
        return Category.model_validate(response.json())

    async def deactivate_category(self, category_id: str) -> None:
        await self.api_client.make_request(
            _item_path(CATEGORIES_PATH, category_id), method="DELETE"
        )
        self._invalidate()

    # --- Subcategories ---

    async def create_subcategory(
        self, fields: Union[SubcategoryCreate, dict]
    ) -> Subcategory:
        if isinstance(fields, dict):
            fields = SubcategoryCreate(**fields)
        response = await self.api_client.make_request(
            SUBCATEGORY_PATH, method="POST", json=fields.to_wire(exclude_none=True)
        )
        self._invalidate()
        return Subcategory.model_validate(response.json())

    async def update_subcategory(
        self, subcategory_id: str, fields: Union[SubcategoryUpdate, dict]
    ) -> Subcategory:
        if isinstance(fields, dict):
            fields = SubcategoryUpdate(**fields)
        response = await self.api_client.make_request(
            _item_path(SUBCATEGORY_PATH, subcategory_id),
            method="PUT",
            json=fields.to_wire(exclude_unset=True),
        )
        self._invalidate()
        return Subcategory.model_validate(response.json())

    async def deactivate_subcategory(self, subcategory_id: str) -> None:
        await self.api_client.make_request(
            _item_path(SUBCATEGORY_PATH, subcategory_id), method="DELETE"
        )
        self._invalidate()

    async def close(self):
        await self.api_client.close()
