# This file exposes the catalog tables (categories and widgets) as REST resources.
# Both resources reuse the generic controller; only identity resolution differs per entity.

from __future__ import annotations

from entity_rest.api.controller import ResourceController
from entity_rest.api.dependencies import get_category_repository, get_widget_repository
from entity_rest.api.routing import resource_router
from entity_rest.api.schemas.catalog_schemas import Category, Widget


class CategoryController(ResourceController[Category]):
    def resolve_id(self, entity: Category) -> int:
        return entity.id or 0


class WidgetController(ResourceController[Widget]):
    def resolve_id(self, entity: Widget) -> int:
        return entity.id or 0


category_router = resource_router("/categories", CategoryController, get_category_repository)
widget_router = resource_router("/widgets", WidgetController, get_widget_repository)
