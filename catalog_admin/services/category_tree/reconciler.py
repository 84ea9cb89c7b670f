import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import ValidationError

from catalog_admin.core.config import settings
from catalog_admin.core.exceptions import CategoryGatewayError, MoveError, StaleTreeError
from catalog_admin.schemas.category_schemas import CategoryTree
from catalog_admin.schemas.drag_schemas import parse_drag_item
from catalog_admin.services.category_gateway import CategoryGateway
from catalog_admin.services.category_tree.store import CategoryTreeStore
from catalog_admin.services.notifications import Notifier

log = logging.getLogger(__name__)

ORDER_UPDATED_MESSAGE = "Order updated!"
ORDER_FAILED_MESSAGE = "Failed to update order."
ORDER_DISCARDED_MESSAGE = "Reorder discarded after an earlier failure."
INVALID_DRAG_MESSAGE = "Unrecognized drag item."


class RollbackPolicy(str, Enum):
    rollback = "rollback"
    refetch = "refetch"


class ReorderStatus(str, Enum):
    noop = "noop"
    saved = "saved"
    failed = "failed"
    rejected = "rejected"


@dataclass
class ReorderOutcome:
    status: ReorderStatus
    tree: CategoryTree
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in (ReorderStatus.noop, ReorderStatus.saved)


class ReorderReconciler:
    """
    Turns a finished drag gesture into an optimistic tree and a persisted reorder.

    The new tree is adopted before the request is sent. Submissions go out one at
    a time, in gesture order. When one fails, the working tree is restored
    (rollback) or reloaded from the server (refetch), and gestures queued behind
    it are dropped since they were computed on top of the failed one.
    """

    def __init__(
        self,
        store: CategoryTreeStore,
        gateway: CategoryGateway,
        notifier: Notifier,
        rollback_policy: Optional[RollbackPolicy] = None,
    ):
        self.store = store
        self.gateway = gateway
        self.notifier = notifier
        self.rollback_policy = RollbackPolicy(
            rollback_policy or settings.REORDER_ROLLBACK_POLICY
        )
        self._submit_lock = asyncio.Lock()
        # bumped whenever the working tree is reset under queued gestures
        self._epoch = 0

    async def handle_drag_end(self, active, over) -> ReorderOutcome:
        if over is None:
            return ReorderOutcome(ReorderStatus.noop, self.store.current_snapshot())
        try:
            active = parse_drag_item(active)
            over = parse_drag_item(over)
        except ValidationError as e:
            log.warning("Ignoring malformed drag payload: %s", e)
            self.notifier.warning(INVALID_DRAG_MESSAGE)
            return ReorderOutcome(
                ReorderStatus.rejected, self.store.current_snapshot(), INVALID_DRAG_MESSAGE
            )
        if active.kind == over.kind and active.id == over.id:
            return ReorderOutcome(ReorderStatus.noop, self.store.current_snapshot())

        try:
            new_tree = self.store.move_item(active, over)
        except MoveError as e:
            self.notifier.warning(str(e))
            return ReorderOutcome(
                ReorderStatus.rejected, self.store.current_snapshot(), str(e)
            )

        self.store.adopt(new_tree)
        epoch = self._epoch

        async with self._submit_lock:
            if epoch != self._epoch:
                log.info("Dropping reorder of %s: tree was reset", active.id)
                self.notifier.error(ORDER_DISCARDED_MESSAGE)
                return ReorderOutcome(
                    ReorderStatus.failed,
                    self.store.current_snapshot(),
                    ORDER_DISCARDED_MESSAGE,
                )
            return await self._submit(new_tree, active, over)

    async def _submit(self, tree: CategoryTree, active, over) -> ReorderOutcome:
        try:
            try:
                version = await self.gateway.reorder(tree, self.store.version)
            except StaleTreeError:
                log.info("Tree version %s is stale, refetching", self.store.version)
                tree = await self._reapply_on_fresh_tree(active, over)
                version = await self.gateway.reorder(tree, self.store.version)
        except (CategoryGatewayError, MoveError) as e:
            await self._recover()
            self.notifier.error(ORDER_FAILED_MESSAGE)
            return ReorderOutcome(
                ReorderStatus.failed, self.store.current_snapshot(), str(e)
            )

        self.store.commit(tree, version=version)
        self.notifier.success(ORDER_UPDATED_MESSAGE)
        return ReorderOutcome(ReorderStatus.saved, self.store.current_snapshot())

    async def _reapply_on_fresh_tree(self, active, over) -> CategoryTree:
        fresh = await self.gateway.fetch_tree()
        self.store.load(fresh)
        self._epoch += 1
        tree = self.store.move_item(active, over)
        self.store.adopt(tree)
        return tree

    async def _recover(self) -> None:
        self._epoch += 1
        if self.rollback_policy == RollbackPolicy.refetch:
            try:
                self.store.load(await self.gateway.fetch_tree())
                return
            except CategoryGatewayError as e:
                log.warning("Refetch after failed reorder failed too: %s", e)
        self.store.rollback()
