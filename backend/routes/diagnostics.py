# backend/routes/diagnostics.py
from fastapi import APIRouter, Depends

from dependencies import get_synchronizer
from utils.tokenJWT import get_identity
from services.cart_sync import CommerceSynchronizer
from services.identity import Identity

router = APIRouter(prefix="/diagnostics", tags=["Diagnostics"])

# Snapshot of the local cache as seen by the synchronizer
@router.get("")
def diagnose(
    identity: Identity = Depends(get_identity),
    sync: CommerceSynchronizer = Depends(get_synchronizer),
):
    return sync.diagnose(identity)

# Drop local cart/wishlist snapshots for a fresh start
@router.post("/reset")
async def reset(
    identity: Identity = Depends(get_identity),
    sync: CommerceSynchronizer = Depends(get_synchronizer),
):
    removed = await sync.reset_local(identity)
    return {"removed": removed}
