# backend/routes/cart.py
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status

from dependencies import get_synchronizer
from utils.tokenJWT import get_identity
from services.cart_sync import CommerceSynchronizer
from services.errors import SyncErrorCode, SyncResult
from services.identity import Identity
from schemas.cart import CartAddItem, CartUpdateItem, CartUpdateOptions, CartOut, CartItemOut, CartCount, CartLine

router = APIRouter(prefix="/cart", tags=["Cart"])

def _ensure_ok(result: SyncResult):
    # Only validation errors block the shopper; degradations travel as notices
    if not result.ok:
        raise HTTPException(status_code=400, detail={"code": result.error.value, "message": result.message})

def _cart_to_out(lines: List[CartLine], notices: List[SyncErrorCode]) -> CartOut:
    items_out = []
    total = 0.0

    for line in lines:
        total += line.line_total
        items_out.append(CartItemOut(
            line_id=line.line_id,
            product_id=line.product_id,
            name=line.snapshot.name,
            quantity=line.quantity,
            selected_options=line.selected_options,
            options_pricing=line.options_pricing,
            attachments=line.attachments.model_dump(exclude_none=True) if line.attachments else None,
            image=line.snapshot.image,
            unit_price=round(line.unit_price, 2),
            line_total=round(line.line_total, 2),
        ))

    # Deduplicate notices from the mutation and the follow-up read
    seen = list(dict.fromkeys(n.value for n in notices))
    return CartOut(
        items=items_out,
        items_count=sum(line.quantity for line in lines),
        total=round(total, 2),
        notices=seen,
    )

async def _current_cart(sync: CommerceSynchronizer, identity: Identity, result: SyncResult = None) -> CartOut:
    lines, notices = await sync.read_cart(identity)
    return _cart_to_out(lines, (result.notices if result else []) + notices)

@router.get("", response_model=CartOut)
async def get_cart(
    identity: Identity = Depends(get_identity),
    sync: CommerceSynchronizer = Depends(get_synchronizer),
):
    return await _current_cart(sync, identity)

@router.get("/count", response_model=CartCount)
async def get_cart_count(
    identity: Identity = Depends(get_identity),
    sync: CommerceSynchronizer = Depends(get_synchronizer),
):
    return CartCount(count=await sync.cart_count(identity))

@router.post("/add", response_model=CartOut, status_code=status.HTTP_200_OK)
async def add_to_cart(
    payload: CartAddItem,
    identity: Identity = Depends(get_identity),
    sync: CommerceSynchronizer = Depends(get_synchronizer),
):
    result = await sync.add_to_cart(
        identity,
        payload.product_id,
        payload.name,
        payload.quantity,
        selected_options=payload.selected_options,
        attachments=payload.attachments,
        price_hint=payload.price_hint,
        image_hint=payload.image_hint,
        options_pricing=payload.options_pricing,
    )
    _ensure_ok(result)
    return await _current_cart(sync, identity, result)

@router.put("/items/{line_id}", response_model=CartOut)
async def update_cart_item(
    line_id: str,
    payload: CartUpdateItem,
    identity: Identity = Depends(get_identity),
    sync: CommerceSynchronizer = Depends(get_synchronizer),
):
    result = await sync.update_quantity(identity, line_id, payload.quantity)
    _ensure_ok(result)
    return await _current_cart(sync, identity, result)

@router.put("/items/{line_id}/options", response_model=CartOut)
async def update_cart_item_options(
    line_id: str,
    payload: CartUpdateOptions,
    identity: Identity = Depends(get_identity),
    sync: CommerceSynchronizer = Depends(get_synchronizer),
):
    result = await sync.update_options(identity, line_id, payload.selected_options, payload.options_pricing)
    _ensure_ok(result)
    return await _current_cart(sync, identity, result)

@router.delete("/items/{line_id}", response_model=CartOut)
async def delete_cart_item(
    line_id: str,
    identity: Identity = Depends(get_identity),
    sync: CommerceSynchronizer = Depends(get_synchronizer),
):
    result = await sync.remove_from_cart(identity, line_id)
    _ensure_ok(result)
    return await _current_cart(sync, identity, result)

@router.delete("", response_model=CartOut)
async def clear_cart(
    identity: Identity = Depends(get_identity),
    sync: CommerceSynchronizer = Depends(get_synchronizer),
):
    result = await sync.clear_cart(identity)
    _ensure_ok(result)
    return await _current_cart(sync, identity, result)
