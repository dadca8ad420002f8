# backend/services/cart_sync.py
"""
Commerce state synchronizer.

Keeps the shopper's cart and wishlist consistent across the authoritative
remote store and the persistent local cache. Every mutation walks the same
ladder: remote write (signed-in shoppers only), then the local cache, then an
invalidation signal. Remote failures are never surfaced as errors: the local
cache satisfies the request and the failure is reported as a notice. For a
signed-in shopper the unconfirmed change is also queued in an outbox and
replayed before the next remote call, so a later remote read neither drops
lines added offline nor brings back a cleared cart.

Local cache writes happen in one synchronous slice (no await between reading
the cached array and writing it back), so independent operations scheduled on
the same event loop cannot interleave inside a read-modify-write.
"""
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple

from pydantic import ValidationError

from schemas.cart import Attachments, CartLine, CartOp, ProductSnapshot
from schemas.wishlist import WishlistOp
from services.catalog import CatalogReader
from services.errors import (
    InvalidQuantity, RemoteUnreachable, SyncError, SyncErrorCode, SyncResult,
)
from services.identity import Identity
from utils.audit import write_log
from utils.bus import InvalidationBus, Topic, bus as default_bus
from utils.local_store import CART_KEY, CART_OUTBOX_KEY, WISHLIST_KEY, WISHLIST_OUTBOX_KEY, LocalStore
from utils.remote_client import Endpoints, RemoteClient

logger = logging.getLogger(__name__)


# ---- LOCAL TIER ----

def load_cart_lines(store: LocalStore) -> Tuple[List[CartLine], bool]:
    """
    Reads the cached cart. Returns (lines, malformed).

    A missing key is an empty cart. Corrupt JSON, a non-array value or
    unreadable lines are dropped and flagged as malformed.
    """
    raw = store.get(CART_KEY)
    if raw is None:
        return [], False
    try:
        data = json.loads(raw)
    except ValueError:
        return [], True
    if not isinstance(data, list):
        return [], True

    lines: List[CartLine] = []
    malformed = False
    for item in data:
        try:
            lines.append(CartLine.model_validate(item))
        except ValidationError:
            malformed = True
    # Legacy data may hold duplicates; fold them back into one line per variant
    merged: List[CartLine] = []
    for line in lines:
        merged = merge_cart_line(merged, line)
    return merged, malformed


def save_cart_lines(store: LocalStore, lines: List[CartLine]) -> None:
    payload = [line.model_dump(mode="json", by_alias=True) for line in lines]
    store.set(CART_KEY, json.dumps(payload, ensure_ascii=False))


def merge_cart_line(lines: List[CartLine], line: CartLine) -> List[CartLine]:
    """Adds `line` to `lines`, summing quantities when the variant is already present."""
    key = line.variant_key
    result = []
    merged = False
    for existing in lines:
        if not merged and existing.variant_key == key:
            existing = existing.model_copy(update={"quantity": existing.quantity + line.quantity})
            merged = True
        result.append(existing)
    if not merged:
        result.append(line)
    return result


def load_wishlist(store: LocalStore) -> Tuple[List[int], bool]:
    raw = store.get(WISHLIST_KEY)
    if raw is None:
        return [], False
    try:
        data = json.loads(raw)
    except ValueError:
        return [], True
    if not isinstance(data, list):
        return [], True

    ids: List[int] = []
    malformed = False
    for item in data:
        if isinstance(item, bool) or not isinstance(item, int):
            malformed = True
            continue
        if item not in ids:
            ids.append(item)
    return ids, malformed


def save_wishlist(store: LocalStore, product_ids: List[int]) -> None:
    store.set(WISHLIST_KEY, json.dumps(product_ids))


# ---- REMOTE PAYLOAD MAPPING ----

def line_from_remote(item: Dict[str, Any]) -> Optional[CartLine]:
    # Remote shape: {id, productId, quantity, selectedOptions, optionsPricing, attachments, product: {...}}
    if not isinstance(item, dict):
        return None
    product = item.get("product") or {}
    try:
        return CartLine(
            line_id=str(item.get("id") or item.get("lineId") or uuid.uuid4().hex),
            product_id=item.get("productId") or product.get("id"),
            quantity=item.get("quantity", 1),
            selected_options=item.get("selectedOptions") or {},
            options_pricing=item.get("optionsPricing") or {},
            attachments=item.get("attachments") or None,
            snapshot=ProductSnapshot(
                name=product.get("name") or "",
                price=product.get("price"),
                image=product.get("mainImage"),
            ),
        )
    except (ValidationError, TypeError):
        logger.warning(f"Skipping unreadable remote cart line: {item!r}")
        return None


def lines_from_remote(data: Any) -> Optional[List[CartLine]]:
    """Parses a remote cart array. Returns None when the response is not a cart array."""
    if not isinstance(data, list):
        return None
    lines: List[CartLine] = []
    for item in data:
        line = line_from_remote(item)
        if line is not None:
            lines = merge_cart_line(lines, line)
    return lines


def wishlist_from_remote(data: Any) -> Optional[List[int]]:
    if not isinstance(data, list):
        return None
    ids: List[int] = []
    for item in data:
        pid = item
        if isinstance(item, dict):
            pid = item.get("productId") or (item.get("product") or {}).get("id") or item.get("id")
        if isinstance(pid, int) and not isinstance(pid, bool) and pid not in ids:
            ids.append(pid)
    return ids


def upsert_payload(line: CartLine) -> Dict[str, Any]:
    body: Dict[str, Any] = {"productId": line.product_id, "quantity": line.quantity}
    if line.selected_options:
        body["selectedOptions"] = line.selected_options
    if line.options_pricing:
        body["optionsPricing"] = line.options_pricing
    if line.attachments is not None:
        body["attachments"] = line.attachments.model_dump(mode="json", exclude_none=True)
    if line.snapshot.price is not None:
        body["price"] = line.snapshot.price
    if line.snapshot.image:
        body["image"] = line.snapshot.image
    return body


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidQuantity(f"quantity must be an integer >= 1, got {quantity!r}")
    return quantity


def options_payload(line_id: str, selected_options: Optional[Dict[str, Any]],
                    options_pricing: Optional[Dict[str, float]]) -> Dict[str, Any]:
    body: Dict[str, Any] = {"itemId": line_id, "selectedOptions": dict(selected_options or {})}
    if options_pricing is not None:
        body["optionsPricing"] = options_pricing
    return body


# ---- OUTBOX ----
# Changes of a signed-in shopper that the remote store has not acknowledged.
# They are replayed in order before the next remote call and overlaid on every
# remote snapshot until then.

def _load_ops(store: LocalStore, key: str, model):
    raw = store.get(key)
    if raw is None:
        return []
    try:
        data = json.loads(raw)
    except ValueError:
        data = None
    if not isinstance(data, list):
        logger.warning(f"Outbox {key} was malformed, pending changes dropped")
        return []
    ops = []
    for item in data:
        try:
            ops.append(model.model_validate(item))
        except ValidationError:
            logger.warning(f"Skipping unreadable {key} entry: {item!r}")
    return ops


def _save_ops(store: LocalStore, key: str, ops) -> None:
    if ops:
        store.set(key, json.dumps([op.model_dump(mode="json", by_alias=True) for op in ops]))
    else:
        store.remove(key)


def load_cart_ops(store: LocalStore) -> List[CartOp]:
    return _load_ops(store, CART_OUTBOX_KEY, CartOp)


def save_cart_ops(store: LocalStore, ops: List[CartOp]) -> None:
    _save_ops(store, CART_OUTBOX_KEY, ops)


def load_wishlist_ops(store: LocalStore) -> List[WishlistOp]:
    return _load_ops(store, WISHLIST_OUTBOX_KEY, WishlistOp)


def save_wishlist_ops(store: LocalStore, ops: List[WishlistOp]) -> None:
    _save_ops(store, WISHLIST_OUTBOX_KEY, ops)


def apply_cart_op(lines: List[CartLine], op: CartOp) -> List[CartLine]:
    """Applies one change to a cart snapshot. Unknown line ids are a no-op."""
    if op.kind == "clear":
        return []
    if op.kind == "add":
        return merge_cart_line(lines, op.line)
    if op.kind == "remove":
        return [line for line in lines if line.line_id != op.line_id]
    if op.kind == "quantity":
        return [
            line.model_copy(update={"quantity": op.quantity}) if line.line_id == op.line_id else line
            for line in lines
        ]

    target = next((line for line in lines if line.line_id == op.line_id), None)
    if target is None:
        return lines
    update: Dict[str, Any] = {"selected_options": dict(op.selected_options or {})}
    if op.options_pricing is not None:
        update["options_pricing"] = dict(op.options_pricing)
    rest = [line for line in lines if line.line_id != op.line_id]
    # New variant may collide with an existing line: fold it in
    return merge_cart_line(rest, target.model_copy(update=update))


def apply_cart_ops(lines: List[CartLine], ops: List[CartOp]) -> List[CartLine]:
    for op in ops:
        lines = apply_cart_op(lines, op)
    return lines


def apply_wishlist_op(product_ids: List[int], op: WishlistOp) -> List[int]:
    if op.kind == "clear":
        return []
    if op.kind == "add":
        return product_ids if op.product_id in product_ids else product_ids + [op.product_id]
    return [pid for pid in product_ids if pid != op.product_id]


def apply_wishlist_ops(product_ids: List[int], ops: List[WishlistOp]) -> List[int]:
    for op in ops:
        product_ids = apply_wishlist_op(product_ids, op)
    return product_ids


def cart_op_request(user_id: int, op: CartOp) -> Tuple[str, str, Optional[Dict[str, Any]]]:
    if op.kind == "clear":
        return Endpoints.user_cart(user_id), "DELETE", None
    if op.kind == "add":
        return Endpoints.user_cart(user_id), "POST", upsert_payload(op.line)
    if op.kind == "remove":
        return Endpoints.cart_line(user_id, op.line_id), "DELETE", None
    if op.kind == "quantity":
        return Endpoints.cart_line(user_id, op.line_id), "PUT", {"quantity": op.quantity}
    return (
        Endpoints.cart_update_options(user_id), "PUT",
        options_payload(op.line_id, op.selected_options, op.options_pricing),
    )


def wishlist_op_request(user_id: int, op: WishlistOp) -> Tuple[str, str, Optional[Dict[str, Any]]]:
    if op.kind == "clear":
        return Endpoints.user_wishlist(user_id), "DELETE", None
    if op.kind == "add":
        return Endpoints.user_wishlist(user_id), "POST", {"productId": op.product_id}
    return Endpoints.wishlist_product(user_id, op.product_id), "DELETE", None


# Outboxes being replayed, and the entries currently on the wire. Checked and
# updated without an await in between, so one replay runs per outbox.
_replaying: Set[str] = set()
_in_flight: Set[str] = set()


def _pending_add(ops: List[CartOp], line_id: Optional[str]) -> Optional[int]:
    """Index of the queued add that created `line_id`, i.e. a line the remote has never seen."""
    for i, op in enumerate(ops):
        if op.kind == "add" and op.line.line_id == line_id and op.op_id not in _in_flight:
            return i
    return None


class CommerceSynchronizer:
    def __init__(
        self,
        store: LocalStore,
        remote: Optional[RemoteClient] = None,
        catalog: Optional[CatalogReader] = None,
        bus: Optional[InvalidationBus] = None,
    ):
        self.store = store
        self.remote = remote
        self.catalog = catalog
        self.bus = bus or default_bus

    # ---- HELPERS ----

    def _audit(self, identity: Identity, action: str, resource: str, notices: List[SyncErrorCode], meta=None):
        status = "DEGRADED" if notices else "SUCCESS"
        write_log(
            self.store.db,
            user_id=identity.user_id,
            action=action,
            resource=resource,
            status=status,
            meta={**(meta or {}), "notices": [n.value for n in notices]},
        )

    def _tracks_remote(self, identity: Identity) -> bool:
        return identity.is_authenticated and self.remote is not None

    def _note_unreachable(self, identity: Identity, error: RemoteUnreachable, notices: List[SyncErrorCode]):
        logger.warning(f"Remote store unreachable for {identity}, using local cache: {error.message}")
        if SyncErrorCode.REMOTE_UNREACHABLE not in notices:
            notices.append(SyncErrorCode.REMOTE_UNREACHABLE)

    async def _remote(self, identity: Identity, endpoint: str, method: str, notices: List[SyncErrorCode], body=None):
        """
        Remote tier. Returns (reached, body).

        Anonymous shoppers and a missing client skip the tier entirely.
        """
        if not self._tracks_remote(identity):
            return False, None
        try:
            return True, await self.remote.call(endpoint, method=method, json=body)
        except RemoteUnreachable as e:
            self._note_unreachable(identity, e, notices)
            return False, None

    async def _replay(self, identity: Identity, notices: List[SyncErrorCode], key: str,
                      load, save, request, on_sent=None) -> bool:
        """
        Sends the outbox under `key` to the remote store, oldest change first.
        Returns True once the outbox is empty.

        A change the store refuses (4xx) is dropped. Any other failure stops the
        replay and keeps the remaining changes queued.
        """
        if not self._tracks_remote(identity):
            return True
        if key in _replaying:
            return False
        _replaying.add(key)
        try:
            while True:
                ops = load(self.store)
                if not ops:
                    return True
                op = ops[0]
                endpoint, method, body = request(identity.user_id, op)
                _in_flight.add(op.op_id)
                try:
                    response = await self.remote.call(endpoint, method=method, json=body)
                except RemoteUnreachable as e:
                    if not e.rejected:
                        self._note_unreachable(identity, e, notices)
                        return False
                    logger.warning(f"Remote store refused queued {op.kind} for {identity}, dropped: {e.message}")
                    response = None
                finally:
                    _in_flight.discard(op.op_id)

                # Re-read: other operations may have queued changes meanwhile
                save(self.store, [o for o in load(self.store) if o.op_id != op.op_id])
                if on_sent is not None:
                    on_sent(op, response)
                logger.info(f"Replayed queued {op.kind} for {identity}")
        finally:
            _replaying.discard(key)

    # ---- CART TIERS ----

    def _load_cart(self, notices: List[SyncErrorCode]) -> List[CartLine]:
        lines, malformed = load_cart_lines(self.store)
        if malformed:
            logger.warning("Local cart cache was malformed, unreadable data dropped")
            notices.append(SyncErrorCode.MALFORMED_CACHE)
        return lines

    def _mirror_cart(self, remote_lines: List[CartLine]) -> List[CartLine]:
        # Changes still queued are laid over the remote snapshot
        lines = apply_cart_ops(remote_lines, load_cart_ops(self.store))
        save_cart_lines(self.store, lines)
        return lines

    def _adopt_line_id(self, op: CartOp, response: Any) -> None:
        """Renames a line created offline to the id the remote store gave it."""
        if op.kind != "add" or not isinstance(response, dict) or response.get("id") is None:
            return
        old, new = op.line.line_id, str(response["id"])
        lines, _ = load_cart_lines(self.store)
        if any(line.line_id == old for line in lines):
            save_cart_lines(self.store, [
                line.model_copy(update={"line_id": new}) if line.line_id == old else line for line in lines
            ])
        ops = load_cart_ops(self.store)
        if any(o.line_id == old for o in ops):
            save_cart_ops(self.store, [o.model_copy(update={"line_id": new}) if o.line_id == old else o for o in ops])

    async def _replay_cart(self, identity: Identity, notices: List[SyncErrorCode]) -> bool:
        return await self._replay(
            identity, notices, CART_OUTBOX_KEY, load_cart_ops, save_cart_ops, cart_op_request, self._adopt_line_id
        )

    def _record_cart_op(self, op: CartOp, lines: List[CartLine]) -> None:
        ops = load_cart_ops(self.store)
        if op.kind == "clear":
            # Nothing queued before a clear matters any more
            save_cart_ops(self.store, [op])
            return
        idx = None
        if op.kind == "add":
            existing = next((line for line in lines if line.variant_key == op.line.variant_key), None)
            idx = _pending_add(ops, existing.line_id) if existing else None
        if idx is not None:
            pending = ops[idx].line
            ops[idx] = ops[idx].model_copy(update={
                "line": pending.model_copy(update={"quantity": pending.quantity + op.line.quantity}),
            })
        else:
            ops.append(op)
        save_cart_ops(self.store, ops)

    def _fold_into_pending_add(self, op: CartOp, notices: List[SyncErrorCode]) -> bool:
        """
        Changes to a line the remote store has never seen are folded into the
        queued add that created it. Returns False when `op` targets a known line.
        """
        if op.kind not in ("remove", "quantity", "options"):
            return False
        ops = load_cart_ops(self.store)
        idx = _pending_add(ops, op.line_id)
        if idx is None:
            return False
        if op.kind == "remove":
            del ops[idx]
        else:
            folded = apply_cart_op([ops[idx].line], op)
            ops[idx] = ops[idx].model_copy(update={"line": folded[0]})
        save_cart_ops(self.store, ops)
        save_cart_lines(self.store, apply_cart_op(self._load_cart(notices), op))
        return True

    async def _write_cart(self, identity: Identity, op: CartOp, notices: List[SyncErrorCode]) -> None:
        """
        Runs one cart change down the ladder: remote store, then local mirror.

        A change the remote store did not confirm is applied locally and, for a
        signed-in shopper, queued for replay. Queued changes are replayed before
        any new remote write, so the store always sees them in order.
        """
        if self._tracks_remote(identity) and self._fold_into_pending_add(op, notices):
            await self._replay_cart(identity, notices)
            return

        reached, response = False, None
        if await self._replay_cart(identity, notices):
            endpoint, method, body = cart_op_request(identity.user_id, op)
            reached, response = await self._remote(identity, endpoint, method, notices, body=body)

        mirrored = lines_from_remote(response) if reached else None
        if mirrored is not None:
            self._mirror_cart(mirrored)
            return
        if reached and op.kind == "add" and isinstance(response, dict) and response.get("id") is not None:
            op = op.model_copy(update={"line": op.line.model_copy(update={"line_id": str(response["id"])})})

        # Read-modify-write of the local mirror: no await from here on
        lines = self._load_cart(notices)
        if not reached and self._tracks_remote(identity):
            self._record_cart_op(op, lines)
        save_cart_lines(self.store, apply_cart_op(lines, op))

    # ---- WISHLIST TIERS ----

    def _load_wishlist(self, notices: List[SyncErrorCode]) -> List[int]:
        ids, malformed = load_wishlist(self.store)
        if malformed:
            logger.warning("Local wishlist cache was malformed, unreadable data dropped")
            notices.append(SyncErrorCode.MALFORMED_CACHE)
        return ids

    async def _replay_wishlist(self, identity: Identity, notices: List[SyncErrorCode]) -> bool:
        return await self._replay(
            identity, notices, WISHLIST_OUTBOX_KEY, load_wishlist_ops, save_wishlist_ops, wishlist_op_request
        )

    async def _write_wishlist(self, identity: Identity, op: WishlistOp, notices: List[SyncErrorCode]) -> None:
        reached = False
        if await self._replay_wishlist(identity, notices):
            endpoint, method, body = wishlist_op_request(identity.user_id, op)
            reached, _ = await self._remote(identity, endpoint, method, notices, body=body)

        ids = self._load_wishlist(notices)
        if not reached and self._tracks_remote(identity):
            ops = [op] if op.kind == "clear" else load_wishlist_ops(self.store) + [op]
            save_wishlist_ops(self.store, ops)
        save_wishlist(self.store, apply_wishlist_op(ids, op))

    async def _product_hints(self, product_id: int, notices: List[SyncErrorCode]):
        if self.catalog is None:
            return None
        try:
            product = await self.catalog.get_product(product_id)
        except (SyncError, ValidationError) as e:
            logger.info(f"No product hints for {product_id}: {e}")
            return None
        if product.out_of_stock:
            notices.append(SyncErrorCode.PRODUCT_UNAVAILABLE)
        return product

    # ---- CART ----

    async def add_to_cart(
        self,
        identity: Identity,
        product_id: int,
        name: str,
        quantity: int,
        selected_options: Optional[Dict[str, Any]] = None,
        attachments: Optional[Any] = None,
        price_hint: Optional[float] = None,
        image_hint: Optional[str] = None,
        options_pricing: Optional[Dict[str, float]] = None,
    ) -> SyncResult:
        try:
            _validate_quantity(quantity)
        except InvalidQuantity as e:
            logger.info(f"Rejected add_to_cart for product {product_id}: {e.message}")
            return SyncResult.failure(e)

        notices: List[SyncErrorCode] = []

        # 1. Best-effort display data
        price, image = price_hint, image_hint
        if price is None or image is None:
            product = await self._product_hints(product_id, notices)
            if product is not None:
                price = price if price is not None else product.price
                image = image or product.main_image
                name = name or product.name or ""

        line = CartLine(
            line_id=uuid.uuid4().hex,
            product_id=product_id,
            quantity=quantity,
            selected_options=dict(selected_options or {}),
            options_pricing=dict(options_pricing or {}),
            attachments=Attachments.model_validate(attachments) if attachments is not None else None,
            snapshot=ProductSnapshot(name=name or "", price=price, image=image),
        )

        # 2. Remote store, then local mirror
        await self._write_cart(identity, CartOp(kind="add", line=line), notices)

        # 3. Signal
        await self.bus.publish(Topic.CART_CHANGED)

        self._audit(identity, "CART_ADD", "cart", notices, {
            "product_id": product_id, "qty": quantity, "variant": line.variant_key,
        })
        logger.info(f"Added {quantity} x product {product_id} to cart of {identity}")
        return SyncResult.success(notices)

    async def update_quantity(self, identity: Identity, line_id: str, quantity: int) -> SyncResult:
        try:
            _validate_quantity(quantity)
        except InvalidQuantity as e:
            return SyncResult.failure(e)

        notices: List[SyncErrorCode] = []
        await self._write_cart(identity, CartOp(kind="quantity", line_id=line_id, quantity=quantity), notices)

        await self.bus.publish(Topic.CART_CHANGED)
        self._audit(identity, "CART_UPDATE", "cart", notices, {"line_id": line_id, "qty": quantity})
        return SyncResult.success(notices)

    async def update_options(
        self,
        identity: Identity,
        line_id: str,
        selected_options: Dict[str, Any],
        options_pricing: Optional[Dict[str, float]] = None,
    ) -> SyncResult:
        notices: List[SyncErrorCode] = []
        op = CartOp(
            kind="options",
            line_id=line_id,
            selected_options=dict(selected_options or {}),
            options_pricing=dict(options_pricing) if options_pricing is not None else None,
        )
        await self._write_cart(identity, op, notices)

        await self.bus.publish(Topic.CART_CHANGED)
        self._audit(identity, "CART_OPTIONS", "cart", notices, {"line_id": line_id})
        return SyncResult.success(notices)

    async def remove_from_cart(self, identity: Identity, line_id: str) -> SyncResult:
        notices: List[SyncErrorCode] = []
        await self._write_cart(identity, CartOp(kind="remove", line_id=line_id), notices)

        await self.bus.publish(Topic.CART_CHANGED)
        self._audit(identity, "CART_DELETE", "cart", notices, {"line_id": line_id})
        return SyncResult.success(notices)

    async def clear_cart(self, identity: Identity) -> SyncResult:
        """
        Empties the cart after checkout.

        Remote first, then the local mirror. The signal is published even when
        the remote clear failed: the order is already committed server-side.
        An unconfirmed clear stays queued, and until the remote store accepts
        it no remote snapshot is mirrored back.
        """
        notices: List[SyncErrorCode] = []
        await self._write_cart(identity, CartOp(kind="clear"), notices)
        await self.bus.publish(Topic.CART_CHANGED)
        self._audit(identity, "CART_CLEAR", "cart", notices)
        return SyncResult.success(notices)

    async def read_cart(self, identity: Identity) -> Tuple[List[CartLine], List[SyncErrorCode]]:
        notices: List[SyncErrorCode] = []
        # While changes are still queued the remote snapshot is stale
        if await self._replay_cart(identity, notices):
            reached, body = await self._remote(identity, Endpoints.user_cart(identity.user_id), "GET", notices)
            mirrored = lines_from_remote(body) if reached else None
            if mirrored is not None:
                return self._mirror_cart(mirrored), notices
        return self._load_cart(notices), notices

    async def get_cart(self, identity: Identity) -> List[CartLine]:
        lines, _ = await self.read_cart(identity)
        return lines

    async def cart_count(self, identity: Identity) -> int:
        return sum(line.quantity for line in await self.get_cart(identity))

    async def cart_total(self, identity: Identity) -> float:
        return round(sum(line.line_total for line in await self.get_cart(identity)), 2)

    # ---- WISHLIST ----

    async def add_to_wishlist(self, identity: Identity, product_id: int) -> SyncResult:
        notices: List[SyncErrorCode] = []
        await self._write_wishlist(identity, WishlistOp(kind="add", product_id=product_id), notices)

        await self.bus.publish(Topic.WISHLIST_CHANGED)
        self._audit(identity, "WISHLIST_ADD", "wishlist", notices, {"product_id": product_id})
        return SyncResult.success(notices)

    async def remove_from_wishlist(self, identity: Identity, product_id: int) -> SyncResult:
        notices: List[SyncErrorCode] = []
        await self._write_wishlist(identity, WishlistOp(kind="remove", product_id=product_id), notices)

        await self.bus.publish(Topic.WISHLIST_CHANGED)
        self._audit(identity, "WISHLIST_DELETE", "wishlist", notices, {"product_id": product_id})
        return SyncResult.success(notices)

    async def clear_wishlist(self, identity: Identity) -> SyncResult:
        notices: List[SyncErrorCode] = []
        await self._write_wishlist(identity, WishlistOp(kind="clear"), notices)
        await self.bus.publish(Topic.WISHLIST_CHANGED)
        self._audit(identity, "WISHLIST_CLEAR", "wishlist", notices)
        return SyncResult.success(notices)

    async def read_wishlist(self, identity: Identity) -> Tuple[List[int], List[SyncErrorCode]]:
        notices: List[SyncErrorCode] = []
        if await self._replay_wishlist(identity, notices):
            reached, body = await self._remote(identity, Endpoints.user_wishlist(identity.user_id), "GET", notices)
            mirrored = wishlist_from_remote(body) if reached else None
            if mirrored is not None:
                ids = apply_wishlist_ops(mirrored, load_wishlist_ops(self.store))
                save_wishlist(self.store, ids)
                return ids, notices
        return self._load_wishlist(notices), notices

    async def get_wishlist(self, identity: Identity) -> List[int]:
        ids, _ = await self.read_wishlist(identity)
        return ids

    async def wishlist_count(self, identity: Identity) -> int:
        return len(await self.get_wishlist(identity))

    def is_in_wishlist(self, identity: Identity, product_id: int) -> bool:
        # Local tier: the ledger for anonymous shoppers, a mirror refreshed by every
        # remote read and mutation for signed-in ones
        ids, _ = load_wishlist(self.store)
        return product_id in ids

    # ---- DIAGNOSTICS ----

    def diagnose(self, identity: Identity) -> Dict[str, Any]:
        lines, cart_malformed = load_cart_lines(self.store)
        ids, wishlist_malformed = load_wishlist(self.store)
        return {
            "identity": str(identity),
            "has_cart": self.store.get(CART_KEY) is not None,
            "cart_lines": len(lines),
            "cart_items_count": sum(line.quantity for line in lines),
            "cart_malformed": cart_malformed,
            "wishlist_count": len(ids),
            "wishlist_malformed": wishlist_malformed,
            "pending_cart_changes": len(load_cart_ops(self.store)),
            "pending_wishlist_changes": len(load_wishlist_ops(self.store)),
            "cache_keys": self.store.keys(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def reset_local(self, identity: Identity) -> List[str]:
        """
        Drops the local cart/wishlist snapshots and any changes still queued for
        the remote store. The remote store itself is not touched.
        """
        keys = (CART_KEY, WISHLIST_KEY, CART_OUTBOX_KEY, WISHLIST_OUTBOX_KEY)
        removed = [key for key in keys if self.store.remove(key)]
        await self.bus.publish(Topic.CART_CHANGED)
        await self.bus.publish(Topic.WISHLIST_CHANGED)
        self._audit(identity, "CACHE_RESET", "cache", [], {"removed": removed})
        logger.info(f"Local cache reset for {identity}: {removed}")
        return removed
