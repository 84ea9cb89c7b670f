# catalog_admin/controllers/category_editor.py

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Type

from pydantic import BaseModel, ValidationError

from catalog_admin.core.exceptions import CategoryGatewayError, CategoryValidationError
from catalog_admin.schemas.category_schemas import (
    CategoryCreate,
    CategoryTree,
    CategoryUpdate,
    SubcategoryCreate,
    SubcategoryUpdate,
)
from catalog_admin.services.category_gateway import CategoryGateway
from catalog_admin.services.category_tree.reconciler import (
    ReorderOutcome,
    ReorderReconciler,
    ReorderStatus,
)
from catalog_admin.services.category_tree.store import CategoryTreeStore
from catalog_admin.services.notifications import LoggingNotifier, Notifier

log = logging.getLogger(__name__)

CREATED_MESSAGE = "Successfully created!"
UPDATED_MESSAGE = "Successfully updated!"
DEACTIVATED_MESSAGE = "Deactivated successfully."
DEACTIVATE_FAILED_MESSAGE = "Failed to deactivate."
STALE_TREE_MESSAGE = "Categories could not be reloaded. Reorder not sent."


@dataclass
class FormResult:
    ok: bool
    item: Optional[BaseModel] = None
    message: Optional[str] = None
    field_errors: Dict[str, str] = field(default_factory=dict)


def _field_errors(exc: ValidationError, model: Type[BaseModel]) -> Dict[str, str]:
    """Flattens pydantic errors to {field: message}, keyed by wire name."""
    aliases = {
        name: info.alias or name for name, info in model.model_fields.items()
    }
    errors: Dict[str, str] = {}
    for err in exc.errors():
        name = str(err["loc"][0]) if err["loc"] else "non_field"
        ctx_error = (err.get("ctx") or {}).get("error")
        errors.setdefault(aliases.get(name, name), str(ctx_error or err["msg"]))
    return errors


class CategoryEditorController:
    """
    Entry point of the admin category page: owns the store, the gateway, and the
    reconciler for one editing session and converts every failure into a toast.
    """

    def __init__(
        self,
        gateway: Optional[CategoryGateway] = None,
        store: Optional[CategoryTreeStore] = None,
        notifier: Optional[Notifier] = None,
        reconciler: Optional[ReorderReconciler] = None,
    ):
        self.store = store or CategoryTreeStore()
        self.gateway = gateway or CategoryGateway()
        self.gateway.store = self.store
        self.notifier = notifier or LoggingNotifier()
        self.reconciler = reconciler or ReorderReconciler(
            self.store, self.gateway, self.notifier
        )

    async def refresh(self, force: bool = False) -> bool:
        """Refetches the tree when the store was invalidated. Returns False on failure."""
        if not force and not self.store.is_stale:
            return True
        try:
            self.store.load(await self.gateway.fetch_tree())
        except CategoryGatewayError as e:
            self.notifier.error(e.message)
            return False
        return True

    async def tree(self) -> CategoryTree:
        await self.refresh()
        return self.store.current_snapshot()

    async def move(self, active, over) -> ReorderOutcome:
        # a reorder sends the whole tree, so it must not be built on a stale one
        if not await self.refresh():
            return ReorderOutcome(
                ReorderStatus.rejected, self.store.current_snapshot(), STALE_TREE_MESSAGE
            )
        return await self.reconciler.handle_drag_end(active, over)

    # --- Forms ---

    async def _submit_form(
        self,
        model: Type[BaseModel],
        fields: Dict[str, Any],
        call: Callable[[BaseModel], Awaitable[Any]],
        success_message: str,
    ) -> FormResult:
        try:
            payload = model(**fields)
        except ValidationError as e:
            errors = _field_errors(e, model)
            return FormResult(
                ok=False, message=next(iter(errors.values())), field_errors=errors
            )

        try:
            item = await call(payload)
        except CategoryValidationError as e:
            self.notifier.error(e.message)
            return FormResult(ok=False, message=e.message, field_errors=e.field_errors)
        except CategoryGatewayError as e:
            self.notifier.error(e.message)
            return FormResult(ok=False, message=e.message)

        self.notifier.success(success_message)
        return FormResult(ok=True, item=item, message=success_message)

    async def create_category(self, **fields) -> FormResult:
        return await self._submit_form(
            CategoryCreate, fields, self.gateway.create_category, CREATED_MESSAGE
        )

    async def update_category(self, category_id: str, **fields) -> FormResult:
        return await self._submit_form(
            CategoryUpdate,
            fields,
            lambda payload: self.gateway.update_category(category_id, payload),
            UPDATED_MESSAGE,
        )

    async def create_subcategory(self, **fields) -> FormResult:
        return await self._submit_form(
            SubcategoryCreate, fields, self.gateway.create_subcategory, CREATED_MESSAGE
        )

    async def update_subcategory(self, subcategory_id: str, **fields) -> FormResult:
        return await self._submit_form(
            SubcategoryUpdate,
            fields,
            lambda payload: self.gateway.update_subcategory(subcategory_id, payload),
            UPDATED_MESSAGE,
        )

    # --- Deactivation ---

    async def _deactivate(self, call: Callable[[str], Awaitable[None]], item_id: str) -> FormResult:
        try:
            await call(item_id)
        except CategoryGatewayError as e:
            log.warning("Deactivation of %s failed: %s", item_id, e.message)
            self.notifier.error(DEACTIVATE_FAILED_MESSAGE)
            return FormResult(ok=False, message=e.message)
        self.notifier.success(DEACTIVATED_MESSAGE)
        return FormResult(ok=True, message=DEACTIVATED_MESSAGE)

    async def deactivate_category(self, category_id: str) -> FormResult:
        return await self._deactivate(self.gateway.deactivate_category, category_id)

    async def deactivate_subcategory(self, subcategory_id: str) -> FormResult:
        return await self._deactivate(self.gateway.deactivate_subcategory, subcategory_id)

    async def close(self):
        await self.gateway.close()
