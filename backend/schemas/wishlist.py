import uuid
from pydantic import BaseModel, Field, model_validator
from typing import List, Literal, Optional

from schemas.cart import CamelModel


# Response schema for the wishlist membership set
class WishlistOut(BaseModel):
    items: List[int]
    count: int
    notices: List[str] = Field(default_factory=list)

# Response schema for a single membership check
class WishlistCheck(BaseModel):
    product_id: int
    in_wishlist: bool

# A wishlist change the remote store has not acknowledged yet
class WishlistOp(CamelModel):
    op_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    kind: Literal["add", "remove", "clear"]
    product_id: Optional[int] = None

    @model_validator(mode="after")
    def _check_target(self):
        if self.kind != "clear" and self.product_id is None:
            raise ValueError(f"{self.kind} needs a product id")
        return self
