import asyncio
import logging
from typing import Optional

import click

from catalog_admin.controllers.category_editor import CategoryEditorController
from catalog_admin.core.config import settings
from catalog_admin.core.exceptions import CategoryGatewayError
from catalog_admin.schemas.category_schemas import CategoryTree
from catalog_admin.schemas.drag_schemas import CategoryDragItem, SubcategoryDragItem


def _controller(ctx: click.Context) -> CategoryEditorController:
    return ctx.obj["controller_factory"]()


def _run(ctx: click.Context, action):
    """Runs `action(controller)` on a fresh editor session and closes it afterwards."""

    async def runner():
        controller = _controller(ctx)
        try:
            return await action(controller)
        finally:
            await controller.close()

    return asyncio.run(runner())


def _echo_tree(tree: CategoryTree) -> None:
    if not tree.categories:
        click.echo("No categories.")
        return
    for position, category in enumerate(tree.categories):
        marker = "" if category.is_active else " (inactive)"
        click.echo(f"{position}. {category.name} [{category.id}]{marker}")
        for sub_position, sub in enumerate(category.subcategories):
            sub_marker = "" if sub.is_active else " (inactive)"
            click.echo(f"    {sub_position}. {sub.name} [{sub.id}]{sub_marker}")


def _echo_result(result) -> None:
    if result.ok:
        click.echo(result.message)
        return
    click.echo(f"Error: {result.message}")
    for field, message in result.field_errors.items():
        click.echo(f"  {field}: {message}")


def _optional_fields(**fields) -> dict:
    return {key: value for key, value in fields.items() if value is not None}


@click.group()
@click.option("--log-level", default=None, help="Overrides LOG_LEVEL.")
@click.pass_context
def cli(ctx, log_level: Optional[str]):
    """Pharmacy catalog category management script."""
    logging.basicConfig(
        level=(log_level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj.setdefault("controller_factory", CategoryEditorController)


@cli.command()
@click.option("--active-only", is_flag=True, default=False, help="Hide inactive items.")
@click.pass_context
def show_tree(ctx, active_only):
    """Prints the category tree in display order."""

    async def action(controller):
        if active_only:
            try:
                return await controller.gateway.fetch_active_tree()
            except CategoryGatewayError as e:
                controller.notifier.error(e.message)
                return None
        if not await controller.refresh():
            return None
        return controller.store.current_snapshot()

    tree = _run(ctx, action)
    if tree is None:
        click.echo("Error: failed to fetch categories.")
        return
    _echo_tree(tree)


def _move(ctx, active, over):
    async def action(controller):
        outcome = await controller.move(active, over)
        last = controller.notifier.last
        return outcome, last

    outcome, last = _run(ctx, action)
    if last is not None:
        click.echo(last.message)
    _echo_tree(outcome.tree)


@cli.command()
@click.argument("active_id")
@click.argument("over_id")
@click.pass_context
def move_category(ctx, active_id, over_id):
    """Moves category ACTIVE_ID to the position of category OVER_ID."""
    _move(ctx, CategoryDragItem(id=active_id), CategoryDragItem(id=over_id))


@cli.command()
@click.argument("active_id")
@click.argument("over_id")
@click.pass_context
def move_subcategory(ctx, active_id, over_id):
    """Moves subcategory ACTIVE_ID to the position of subcategory OVER_ID."""
    _move(ctx, SubcategoryDragItem(id=active_id), SubcategoryDragItem(id=over_id))


@cli.command()
@click.argument("subcategory_id")
@click.argument("category_id")
@click.pass_context
def move_subcategory_to_category(ctx, subcategory_id, category_id):
    """Moves subcategory SUBCATEGORY_ID to the end of category CATEGORY_ID."""
    _move(ctx, SubcategoryDragItem(id=subcategory_id), CategoryDragItem(id=category_id))


@cli.command()
@click.option("--name", prompt=True, help="Display name.")
@click.option("--slug", default=None, help="URL slug. Derived from the name if omitted.")
@click.option("--description", default=None)
@click.option("--inactive", is_flag=True, default=False, help="Create as inactive.")
@click.pass_context
def create_category(ctx, name, slug, description, inactive):
    """Creates a new category."""
    fields = _optional_fields(name=name, slug=slug, description=description)
    result = _run(
        ctx, lambda c: c.create_category(is_active=not inactive, **fields)
    )
    _echo_result(result)


@cli.command()
@click.argument("category_id")
@click.option("--name", default=None)
@click.option("--slug", default=None)
@click.option("--description", default=None)
@click.option("--active/--inactive", default=None)
@click.pass_context
def update_category(ctx, category_id, name, slug, description, active):
    """Updates fields of an existing category."""
    fields = _optional_fields(
        name=name, slug=slug, description=description, is_active=active
    )
    result = _run(ctx, lambda c: c.update_category(category_id, **fields))
    _echo_result(result)


@cli.command()
@click.argument("category_id")
@click.confirmation_option(prompt="Are you sure you want to deactivate this category?")
@click.pass_context
def deactivate_category(ctx, category_id):
    """Deactivates a category. It keeps its position."""
    result = _run(ctx, lambda c: c.deactivate_category(category_id))
    _echo_result(result)


@cli.command()
@click.option("--category-id", prompt=True, help="Parent category id.")
@click.option("--name", prompt=True, help="Display name.")
@click.option("--slug", default=None, help="URL slug. Derived from the name if omitted.")
@click.option("--description", default=None)
@click.option("--inactive", is_flag=True, default=False, help="Create as inactive.")
@click.pass_context
def create_subcategory(ctx, category_id, name, slug, description, inactive):
    """Creates a new subcategory under an existing category."""
    fields = _optional_fields(name=name, slug=slug, description=description)
    result = _run(
        ctx,
        lambda c: c.create_subcategory(
            category_id=category_id, is_active=not inactive, **fields
        ),
    )
    _echo_result(result)


@cli.command()
@click.argument("subcategory_id")
@click.option("--name", default=None)
@click.option("--slug", default=None)
@click.option("--description", default=None)
@click.option("--active/--inactive", default=None)
@click.pass_context
def update_subcategory(ctx, subcategory_id, name, slug, description, active):
    """Updates fields of an existing subcategory."""
    fields = _optional_fields(
        name=name, slug=slug, description=description, is_active=active
    )
    result = _run(ctx, lambda c: c.update_subcategory(subcategory_id, **fields))
    _echo_result(result)


@cli.command()
@click.argument("subcategory_id")
@click.confirmation_option(prompt="Are you sure you want to deactivate this subcategory?")
@click.pass_context
def deactivate_subcategory(ctx, subcategory_id):
    """Deactivates a subcategory. It keeps its position."""
    result = _run(ctx, lambda c: c.deactivate_subcategory(subcategory_id))
    _echo_result(result)


if __name__ == "__main__":
    cli()
