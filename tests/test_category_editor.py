import json

from catalog_admin.controllers.category_editor import (
    CREATED_MESSAGE,
    DEACTIVATE_FAILED_MESSAGE,
    DEACTIVATED_MESSAGE,
    STALE_TREE_MESSAGE,
    UPDATED_MESSAGE,
)
from catalog_admin.schemas.drag_schemas import CategoryDragItem
from catalog_admin.services.category_tree.reconciler import ReorderStatus
from catalog_admin.services.notifications import NotificationLevel
from tests.conftest import PREFIX


async def test_tree_fetches_once_until_invalidated(controller, fake_api):
    first = await controller.tree()
    second = await controller.tree()

    assert first.shape() == fake_api.shape()
    assert second == first
    assert len(fake_api.calls("GET", PREFIX)) == 1


async def test_create_category_refetches_on_next_render(controller, fake_api, notifier):
    await controller.tree()

    result = await controller.create_category(name="Cold & Flu")

    assert result.ok
    assert result.item.id == "cat-1"
    assert notifier.last.message == CREATED_MESSAGE
    assert controller.store.is_stale

    tree = await controller.tree()
    assert tree.category_ids() == ["pain", "vitamins", "baby", "cat-1"]
    assert len(fake_api.calls("GET", PREFIX)) == 2


async def test_client_side_validation_skips_the_request(controller, fake_api, notifier):
    result = await controller.create_category(name="  ", slug="Not A Slug")

    assert not result.ok
    assert result.field_errors == {
        "name": "Category name is required.",
        "slug": "Slug can only contain lowercase letters, numbers, and hyphens.",
    }
    assert fake_api.calls("POST", PREFIX) == []
    assert notifier.history == []


async def test_subcategory_form_reports_missing_parent(controller, fake_api):
    result = await controller.create_subcategory(name="Zinc")

    assert not result.ok
    assert result.field_errors == {"categoryId": "Parent category ID is required."}
    assert fake_api.requests == []


async def test_server_validation_error_is_attached_to_field(controller, fake_api, notifier):
    result = await controller.create_subcategory(name="Zinc", category_id="ghost")

    assert not result.ok
    assert result.field_errors == {"categoryId": "Parent category ID is required."}
    assert notifier.last.level == NotificationLevel.error


async def test_update_of_missing_item_becomes_a_toast(controller, notifier):
    result = await controller.update_category("ghost", name="Ghost")

    assert not result.ok
    assert result.message == "Category not found."
    assert notifier.last.level == NotificationLevel.error
    assert notifier.last.message == "Category not found."


async def test_update_subcategory(controller, fake_api, notifier):
    result = await controller.update_subcategory("vit-c", is_active=False)

    assert result.ok
    assert notifier.last.message == UPDATED_MESSAGE
    body = json.loads(fake_api.calls("PUT", f"{PREFIX}/subcategory/vit-c")[0].content)
    assert body == {"isActive": False}


async def test_deactivation_keeps_position(controller, fake_api, notifier):
    await controller.tree()

    result = await controller.deactivate_category("pain")

    assert result.ok
    assert notifier.last.message == DEACTIVATED_MESSAGE
    tree = await controller.tree()
    assert tree.category_ids() == ["pain", "vitamins", "baby"]
    assert [c.is_active for c in tree.categories] == [False, True, False]


async def test_failed_deactivation(controller, notifier):
    result = await controller.deactivate_subcategory("ghost")

    assert not result.ok
    assert notifier.last.message == DEACTIVATE_FAILED_MESSAGE


async def test_refresh_failure_is_reported(controller, fake_api, notifier):
    fake_api.fetch_status = 500

    assert await controller.refresh() is False
    assert notifier.last.message == "Failed to fetch categories."
    assert controller.store.is_stale


async def test_move_loads_tree_before_reordering(controller, fake_api):
    outcome = await controller.move(CategoryDragItem(id="baby"), CategoryDragItem(id="pain"))

    assert outcome.status == ReorderStatus.saved
    assert [c for c, _ in fake_api.shape()] == ["baby", "pain", "vitamins"]
    assert not controller.store.is_stale


async def test_move_is_not_sent_when_the_stale_tree_cannot_be_reloaded(controller, fake_api, notifier):
    await controller.tree()
    await controller.create_category(name="Cold")
    fake_api.fetch_status = 500

    outcome = await controller.move(CategoryDragItem(id="baby"), CategoryDragItem(id="pain"))

    assert outcome.status == ReorderStatus.rejected
    assert outcome.message == STALE_TREE_MESSAGE
    assert fake_api.calls("PUT", f"{PREFIX}/reorder") == []
    assert [c for c, _ in fake_api.shape()] == ["pain", "vitamins", "baby", "cat-1"]
    assert controller.store.is_stale
    assert notifier.last.level == NotificationLevel.error
