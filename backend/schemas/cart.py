from pydantic import BaseModel, Field, ConfigDict, model_validator
from pydantic.alias_generators import to_camel
import uuid
from typing import Any, Dict, List, Literal, Optional

from utils.variant_key import resolve


# Stored/wire models use camelCase keys, matching the remote store payloads
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Opaque attachment blob (note text, uploaded image references). Never interpreted here;
# the shape is owned by the UI component that produced it.
class Attachments(CamelModel):
    model_config = ConfigDict(extra="allow")

    text: Optional[Any] = None
    images: Optional[Any] = None


# Denormalized product data captured when the line was added
class ProductSnapshot(CamelModel):
    name: str = ""
    price: Optional[float] = None
    image: Optional[str] = None


# A single cart line as held in the local cache
class CartLine(CamelModel):
    line_id: str
    product_id: int
    quantity: int = Field(ge=1)
    selected_options: Dict[str, Any] = Field(default_factory=dict)
    options_pricing: Dict[str, float] = Field(default_factory=dict)
    attachments: Optional[Attachments] = None
    snapshot: ProductSnapshot = Field(default_factory=ProductSnapshot)

    @property
    def variant_key(self) -> str:
        return resolve(self.product_id, self.selected_options)

    @property
    def unit_price(self) -> float:
        base = self.snapshot.price or 0.0
        return base + sum(self.options_pricing.values())

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity


# Request schema for adding an item to the cart
# quantity is validated by the synchronizer so the caller gets INVALID_QUANTITY, not a 422
class CartAddItem(BaseModel):
    product_id: int
    name: str = ""
    quantity: int = 1
    selected_options: Optional[Dict[str, Any]] = None
    options_pricing: Optional[Dict[str, float]] = None
    attachments: Optional[Dict[str, Any]] = None
    price_hint: Optional[float] = None
    image_hint: Optional[str] = None

# Request schema for updating cart line quantity
class CartUpdateItem(BaseModel):
    quantity: int

# Request schema for changing the variant of a cart line
class CartUpdateOptions(BaseModel):
    selected_options: Dict[str, Any] = Field(default_factory=dict)
    options_pricing: Optional[Dict[str, float]] = None

# Response schema for a single cart line
class CartItemOut(BaseModel):
    line_id: str
    product_id: int
    name: str
    quantity: int
    selected_options: Dict[str, Any]
    options_pricing: Dict[str, float]
    attachments: Optional[Dict[str, Any]] = None
    image: Optional[str] = None
    unit_price: float
    line_total: float

# Response schema for the entire cart summary
class CartOut(BaseModel):
    items: List[CartItemOut]
    items_count: int
    total: float
    notices: List[str] = Field(default_factory=list)

class CartCount(BaseModel):
    count: int

# A cart change the remote store has not acknowledged yet.
# `line` is set for "add"; `line_id` for "remove", "quantity" and "options".
class CartOp(CamelModel):
    op_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    kind: Literal["add", "remove", "quantity", "options", "clear"]
    line_id: Optional[str] = None
    line: Optional[CartLine] = None
    quantity: Optional[int] = None
    selected_options: Optional[Dict[str, Any]] = None
    options_pricing: Optional[Dict[str, float]] = None

    @model_validator(mode="after")
    def _check_target(self):
        if self.kind == "add" and self.line is None:
            raise ValueError("add needs a line")
        if self.kind in ("remove", "quantity", "options") and not self.line_id:
            raise ValueError(f"{self.kind} needs a line id")
        return self
