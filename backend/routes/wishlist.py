# backend/routes/wishlist.py
from fastapi import APIRouter, Depends

from dependencies import get_synchronizer
from utils.tokenJWT import get_identity
from services.cart_sync import CommerceSynchronizer
from services.errors import SyncResult
from services.identity import Identity
from schemas.wishlist import WishlistOut, WishlistCheck

router = APIRouter(prefix="/wishlist", tags=["Wishlist"])

async def _current_wishlist(sync: CommerceSynchronizer, identity: Identity, result: SyncResult = None) -> WishlistOut:
    ids, notices = await sync.read_wishlist(identity)
    all_notices = (result.notices if result else []) + notices
    return WishlistOut(items=ids, count=len(ids), notices=list(dict.fromkeys(n.value for n in all_notices)))

@router.get("", response_model=WishlistOut)
async def get_wishlist(
    identity: Identity = Depends(get_identity),
    sync: CommerceSynchronizer = Depends(get_synchronizer),
):
    return await _current_wishlist(sync, identity)

# Synchronous membership check against the local tier
@router.get("/check/{product_id}", response_model=WishlistCheck)
def check_wishlist(
    product_id: int,
    identity: Identity = Depends(get_identity),
    sync: CommerceSynchronizer = Depends(get_synchronizer),
):
    return WishlistCheck(product_id=product_id, in_wishlist=sync.is_in_wishlist(identity, product_id))

@router.post("/{product_id}", response_model=WishlistOut)
async def add_to_wishlist(
    product_id: int,
    identity: Identity = Depends(get_identity),
    sync: CommerceSynchronizer = Depends(get_synchronizer),
):
    result = await sync.add_to_wishlist(identity, product_id)
    return await _current_wishlist(sync, identity, result)

@router.delete("/{product_id}", response_model=WishlistOut)
async def remove_from_wishlist(
    product_id: int,
    identity: Identity = Depends(get_identity),
    sync: CommerceSynchronizer = Depends(get_synchronizer),
):
    result = await sync.remove_from_wishlist(identity, product_id)
    return await _current_wishlist(sync, identity, result)

@router.delete("", response_model=WishlistOut)
async def clear_wishlist(
    identity: Identity = Depends(get_identity),
    sync: CommerceSynchronizer = Depends(get_synchronizer),
):
    result = await sync.clear_wishlist(identity)
    return await _current_wishlist(sync, identity, result)
