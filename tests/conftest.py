import asyncio
import copy
import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from catalog_admin.controllers.category_editor import CategoryEditorController
from catalog_admin.schemas.category_schemas import CategoryTree
from catalog_admin.services.api_client import AsyncAPIClient
from catalog_admin.services.category_gateway import CategoryGateway
from catalog_admin.services.category_tree.reconciler import ReorderReconciler
from catalog_admin.services.category_tree.store import CategoryTreeStore
from catalog_admin.services.notifications import LoggingNotifier

BASE_URL = "http://admin.test"
PREFIX = "/api/admin/categories"


def sample_categories() -> List[Dict[str, Any]]:
    return [
        {
            "id": "pain",
            "name": "Pain Relief",
            "slug": "pain-relief",
            "isActive": True,
            "sortOrder": 0,
            "subcategories": [
                {"id": "headache", "name": "Headache", "slug": "headache", "isActive": True, "categoryId": "pain", "sortOrder": 0},
                {"id": "muscle", "name": "Muscle Pain", "slug": "muscle-pain", "isActive": True, "categoryId": "pain", "sortOrder": 1},
                {"id": "fever", "name": "Fever", "slug": "fever", "isActive": False, "categoryId": "pain", "sortOrder": 2},
            ],
        },
        {
            "id": "vitamins",
            "name": "Vitamins",
            "slug": "vitamins",
            "isActive": True,
            "sortOrder": 1,
            "subcategories": [
                {"id": "vit-c", "name": "Vitamin C", "slug": "vitamin-c", "isActive": True, "categoryId": "vitamins", "sortOrder": 0},
                {"id": "vit-d", "name": "Vitamin D", "slug": "vitamin-d", "isActive": True, "categoryId": "vitamins", "sortOrder": 1},
            ],
        },
        {
            "id": "baby",
            "name": "Baby Care",
            "slug": "baby-care",
            "isActive": False,
            "sortOrder": 2,
            "subcategories": [],
        },
    ]


class FakeAdminAPI:
    """
    In-memory stand-in for the storefront admin category routes, served through
    httpx.MockTransport. Keeps a version counter exposed as an ETag.
    """

    def __init__(self, categories: Optional[List[Dict[str, Any]]] = None):
        self.categories = copy.deepcopy(
            categories if categories is not None else sample_categories()
        )
        self.version = 1
        self.requests: List[httpx.Request] = []
        self.reorder_status: Optional[int] = None
        self.fetch_status: Optional[int] = None
        self.enforce_version = False
        self.reorder_gate: Optional[asyncio.Event] = None
        self.reorder_started = asyncio.Event()
        self._next_id = 1

    # --- helpers ---

    @property
    def etag(self) -> str:
        return f'"v{self.version}"'

    def shape(self):
        return [(c["id"], [s["id"] for s in c["subcategories"]]) for c in self.categories]

    def _bump(self) -> None:
        self.version += 1

    def _find_category(self, category_id: str):
        return next((c for c in self.categories if c["id"] == category_id), None)

    def _find_subcategory(self, subcategory_id: str):
        for category in self.categories:
            for sub in category["subcategories"]:
                if sub["id"] == subcategory_id:
                    return sub
        return None

    def _new_id(self, prefix: str) -> str:
        new_id = f"{prefix}-{self._next_id}"
        self._next_id += 1
        return new_id

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    # --- routes ---

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        body = json.loads(request.content) if request.content else None

        if request.method == "GET" and path == PREFIX:
            if self.fetch_status:
                return httpx.Response(self.fetch_status, json={"error": "Failed to fetch categories."})
            return httpx.Response(200, json=self.categories, headers={"ETag": self.etag})

        if request.method == "GET" and path == f"{PREFIX}/all":
            active = [
                dict(c, subcategories=[s for s in c["subcategories"] if s["isActive"]])
                for c in self.categories
                if c["isActive"]
            ]
            return httpx.Response(200, json=active)

        if request.method == "PUT" and path == f"{PREFIX}/reorder":
            return await self._reorder(request, body)

        if path.startswith(f"{PREFIX}/subcategory"):
            return self._subcategory_route(request, path, body)

        if request.method == "POST" and path == PREFIX:
            if not (body or {}).get("name"):
                return httpx.Response(
                    400,
                    json={"errors": [{"path": "name", "msg": "Category name is required."}]},
                )
            category = dict(body, id=self._new_id("cat"), subcategories=[])
            category.setdefault("isActive", True)
            self.categories.append(category)
            self._bump()
            return httpx.Response(201, json=category)

        if path.startswith(f"{PREFIX}/"):
            category = self._find_category(path.rsplit("/", 1)[1])
            if category is None:
                return httpx.Response(404, json={"error": "Category not found."})
            if request.method == "PUT":
                category.update(body or {})
                self._bump()
                return httpx.Response(200, json=category)
            if request.method == "DELETE":
                category["isActive"] = False
                self._bump()
                return httpx.Response(204)

        return httpx.Response(404, json={"error": "Not found"})

    async def _reorder(self, request: httpx.Request, body) -> httpx.Response:
        self.reorder_started.set()
        if self.reorder_gate is not None:
            await self.reorder_gate.wait()
        if self.reorder_status:
            return httpx.Response(self.reorder_status, json={"error": "Failed to reorder categories."})
        if self.enforce_version and request.headers.get("If-Match") != self.etag:
            return httpx.Response(412, json={"error": "Categories changed, reload."})

        by_id = {c["id"]: c for c in self.categories}
        subs = {s["id"]: s for c in self.categories for s in c["subcategories"]}
        reordered = []
        for index, wire_cat in enumerate(body["categories"]):
            category = by_id[wire_cat["id"]]
            category["sortOrder"] = index
            category["subcategories"] = []
            for sub_index, wire_sub in enumerate(wire_cat["subcategories"]):
                sub = subs[wire_sub["id"]]
                sub.update(sortOrder=sub_index, categoryId=category["id"])
                category["subcategories"].append(sub)
            reordered.append(category)
        self.categories = reordered
        self._bump()
        return httpx.Response(
            200, json={"message": "Reordering successful."}, headers={"ETag": self.etag}
        )

    def _subcategory_route(self, request: httpx.Request, path: str, body) -> httpx.Response:
        if request.method == "POST":
            category = self._find_category((body or {}).get("categoryId", ""))
            if category is None:
                return httpx.Response(
                    400,
                    json={"errors": [{"path": "categoryId", "msg": "Parent category ID is required."}]},
                )
            sub = dict(body, id=self._new_id("sub"))
            category["subcategories"].append(sub)
            self._bump()
            return httpx.Response(201, json=sub)

        sub = self._find_subcategory(path.rsplit("/", 1)[1])
        if sub is None:
            return httpx.Response(404, json={"error": "Subcategory not found."})
        if request.method == "PUT":
            sub.update(body or {})
            self._bump()
            return httpx.Response(200, json=sub)
        sub["isActive"] = False
        self._bump()
        return httpx.Response(204)


@pytest.fixture
def fake_api():
    return FakeAdminAPI()


@pytest.fixture
def api_client(fake_api):
    return AsyncAPIClient(
        base_url=BASE_URL, token="admin-token", transport=httpx.MockTransport(fake_api.handler)
    )


@pytest.fixture
def tree():
    return CategoryTree.from_wire(sample_categories(), version='"v1"')


@pytest.fixture
def store(tree):
    return CategoryTreeStore(tree)


@pytest.fixture
def notifier():
    return LoggingNotifier(history_size=20)


@pytest.fixture
async def gateway(api_client, store):
    gateway = CategoryGateway(api_client, store=store)
    yield gateway
    await gateway.close()


@pytest.fixture
def reconciler(store, gateway, notifier):
    return ReorderReconciler(store, gateway, notifier, rollback_policy="rollback")


@pytest.fixture
async def controller(api_client, notifier):
    controller = CategoryEditorController(
        gateway=CategoryGateway(api_client), notifier=notifier
    )
    yield controller
    await controller.close()
