"""
Catalog API - FastAPI router for catalog management, quotes and tax lookups.
"""
from typing import Optional

import pandas as pd
from fastapi import APIRouter
from fastapi.encoders import jsonable_encoder

from ..engine.errors import CatalogError
from ..engine.models import Item
from .schemas import (
    AddonGroupCreate,
    AddonGroupUpdate,
    AddonIn,
    AddonUpdate,
    CategoryCreate,
    CategoryUpdate,
    ItemCreate,
    ItemUpdate,
    QuoteRequest,
    SubcategoryCreate,
    SubcategoryUpdate,
)
from .state import get_state, http_error

router = APIRouter(tags=["catalog"])


def item_payload(item: Item) -> dict:
    """Item as JSON with its pricing type spelled out."""
    data = jsonable_encoder(item)
    data['pricing']['pricing_type'] = item.pricing.pricing_type.value
    return data


def deleted(kind: str, entity_id: str, hard: bool) -> dict:
    action = "deleted" if hard else "deactivated"
    return {"success": True, "message": f"{kind} '{entity_id}' {action}"}


# -- Catalog listing --

@router.get("/catalog")
async def get_catalog(search: Optional[str] = None, limit: int = 100, include_inactive: bool = False):
    """Flat item listing with effective tax; search matches name, description and tags."""
    try:
        service = get_state().catalog
        if search:
            df = service.search_items(search, limit=limit)
        else:
            df = service.catalog_frame(include_inactive=include_inactive).head(limit)

        # Basic JSON cleaning
        df = df.astype(object).where(pd.notna(df), None)
        return jsonable_encoder(df.to_dict(orient="index"))
    except CatalogError as e:
        raise http_error(e)


@router.get("/catalog/stats")
async def get_catalog_stats():
    return get_state().catalog.get_stats()


# -- Categories --

@router.get("/categories")
async def list_categories(include_inactive: bool = True):
    return jsonable_encoder(get_state().catalog.list_categories(include_inactive=include_inactive))


@router.post("/categories")
async def create_category(data: CategoryCreate):
    try:
        return jsonable_encoder(get_state().catalog.create_category(data.to_domain()))
    except CatalogError as e:
        raise http_error(e)


@router.get("/categories/{category_id}")
async def get_category(category_id: str):
    try:
        return jsonable_encoder(get_state().catalog.get_category(category_id))
    except CatalogError as e:
        raise http_error(e)


@router.put("/categories/{category_id}")
async def update_category(category_id: str, updates: CategoryUpdate):
    try:
        return jsonable_encoder(get_state().catalog.update_category(category_id, updates.to_updates()))
    except CatalogError as e:
        raise http_error(e)


@router.delete("/categories/{category_id}")
async def delete_category(category_id: str, hard: bool = False):
    """Soft delete (cascading to subcategories and items) unless hard=true."""
    try:
        service = get_state().catalog
        if hard:
            service.hard_delete_category(category_id)
        else:
            service.delete_category(category_id)
        return deleted("Category", category_id, hard)
    except CatalogError as e:
        raise http_error(e)


@router.post("/categories/{category_id}/restore")
async def restore_category(category_id: str):
    try:
        return jsonable_encoder(get_state().catalog.restore_category(category_id))
    except CatalogError as e:
        raise http_error(e)


# -- Subcategories --

@router.get("/subcategories")
async def list_subcategories(category_id: Optional[str] = None, include_inactive: bool = True):
    subs = get_state().catalog.list_subcategories(category_id, include_inactive=include_inactive)
    return jsonable_encoder(subs)


@router.post("/subcategories")
async def create_subcategory(data: SubcategoryCreate):
    try:
        return jsonable_encoder(get_state().catalog.create_subcategory(data.to_domain()))
    except CatalogError as e:
        raise http_error(e)


@router.get("/subcategories/{subcategory_id}")
async def get_subcategory(subcategory_id: str):
    try:
        return jsonable_encoder(get_state().catalog.get_subcategory(subcategory_id))
    except CatalogError as e:
        raise http_error(e)


@router.put("/subcategories/{subcategory_id}")
async def update_subcategory(subcategory_id: str, updates: SubcategoryUpdate):
    try:
        return jsonable_encoder(get_state().catalog.update_subcategory(subcategory_id, updates.to_updates()))
    except CatalogError as e:
        raise http_error(e)


@router.delete("/subcategories/{subcategory_id}")
async def delete_subcategory(subcategory_id: str, hard: bool = False):
    try:
        service = get_state().catalog
        if hard:
            service.hard_delete_subcategory(subcategory_id)
        else:
            service.delete_subcategory(subcategory_id)
        return deleted("Subcategory", subcategory_id, hard)
    except CatalogError as e:
        raise http_error(e)


@router.post("/subcategories/{subcategory_id}/restore")
async def restore_subcategory(subcategory_id: str):
    try:
        return jsonable_encoder(get_state().catalog.restore_subcategory(subcategory_id))
    except CatalogError as e:
        raise http_error(e)


# -- Items --

@router.get("/items")
async def list_items(
    include_inactive: bool = True,
    category_id: Optional[str] = None,
    subcategory_id: Optional[str] = None,
):
    items = get_state().catalog.list_items(include_inactive, category_id, subcategory_id)
    return [item_payload(item) for item in items]


@router.post("/items")
async def create_item(data: ItemCreate):
    try:
        return item_payload(get_state().catalog.create_item(data.to_domain()))
    except CatalogError as e:
        raise http_error(e)


@router.get("/items/{item_id}")
async def get_item(item_id: str):
    """Item plus its effective tax."""
    try:
        item, tax = get_state().catalog.get_item_with_tax(item_id)
        payload = item_payload(item)
        payload['effective_tax'] = jsonable_encoder(tax)
        return payload
    except CatalogError as e:
        raise http_error(e)


@router.put("/items/{item_id}")
async def update_item(item_id: str, updates: ItemUpdate):
    try:
        return item_payload(get_state().catalog.update_item(item_id, updates.to_updates()))
    except CatalogError as e:
        raise http_error(e)


@router.delete("/items/{item_id}")
async def delete_item(item_id: str, hard: bool = False):
    try:
        service = get_state().catalog
        if hard:
            service.hard_delete_item(item_id)
        else:
            service.delete_item(item_id)
        return deleted("Item", item_id, hard)
    except CatalogError as e:
        raise http_error(e)


@router.post("/items/{item_id}/restore")
async def restore_item(item_id: str):
    try:
        return item_payload(get_state().catalog.restore_item(item_id))
    except CatalogError as e:
        raise http_error(e)


@router.post("/items/{item_id}/quote")
async def quote_item(item_id: str, req: QuoteRequest):
    """Full price quote with trace."""
    try:
        quote = get_state().quotes.quote(
            item_id,
            quantity=req.quantity,
            as_of=req.as_of,
            addons=[a.to_domain() for a in req.addons],
        )
        result = jsonable_encoder(quote)
        result['trace_text'] = quote.get_trace_text()
        return result
    except CatalogError as e:
        raise http_error(e)


# -- Tax lookups --

@router.get("/{kind}/{entity_id}/tax")
async def get_effective_tax(kind: str, entity_id: str):
    """Effective tax for items, subcategories or categories."""
    kinds = {"items": "item", "subcategories": "subcategory", "categories": "category"}
    try:
        if kind not in kinds:
            raise CatalogError(f"Tax lookup is not supported for '{kind}'")
        return jsonable_encoder(get_state().quotes.resolve_tax(kinds[kind], entity_id))
    except CatalogError as e:
        raise http_error(e)


# -- Add-on groups --

@router.get("/addon-groups")
async def list_addon_groups(include_inactive: bool = True):
    return jsonable_encoder(get_state().catalog.list_addon_groups(include_inactive=include_inactive))


@router.post("/addon-groups")
async def create_addon_group(data: AddonGroupCreate):
    try:
        return jsonable_encoder(get_state().catalog.create_addon_group(data.to_domain()))
    except CatalogError as e:
        raise http_error(e)


@router.get("/addon-groups/{group_id}")
async def get_addon_group(group_id: str):
    try:
        return jsonable_encoder(get_state().catalog.get_addon_group(group_id))
    except CatalogError as e:
        raise http_error(e)


@router.put("/addon-groups/{group_id}")
async def update_addon_group(group_id: str, updates: AddonGroupUpdate):
    try:
        return jsonable_encoder(get_state().catalog.update_addon_group(group_id, updates.to_updates()))
    except CatalogError as e:
        raise http_error(e)


@router.delete("/addon-groups/{group_id}")
async def delete_addon_group(group_id: str, hard: bool = False):
    try:
        service = get_state().catalog
        if hard:
            service.hard_delete_addon_group(group_id)
        else:
            service.delete_addon_group(group_id)
        return deleted("Add-on group", group_id, hard)
    except CatalogError as e:
        raise http_error(e)


@router.post("/addon-groups/{group_id}/restore")
async def restore_addon_group(group_id: str):
    try:
        return jsonable_encoder(get_state().catalog.restore_addon_group(group_id))
    except CatalogError as e:
        raise http_error(e)


@router.post("/addon-groups/{group_id}/addons")
async def add_addon(group_id: str, data: AddonIn):
    try:
        return jsonable_encoder(get_state().catalog.add_addon(group_id, data.to_domain()))
    except CatalogError as e:
        raise http_error(e)


@router.put("/addon-groups/{group_id}/addons/{addon_id}")
async def update_addon(group_id: str, addon_id: str, updates: AddonUpdate):
    try:
        group = get_state().catalog.update_addon(group_id, addon_id, updates.model_dump(exclude_unset=True))
        return jsonable_encoder(group)
    except CatalogError as e:
        raise http_error(e)


@router.delete("/addon-groups/{group_id}/addons/{addon_id}")
async def remove_addon(group_id: str, addon_id: str):
    try:
        return jsonable_encoder(get_state().catalog.remove_addon(group_id, addon_id))
    except CatalogError as e:
        raise http_error(e)
