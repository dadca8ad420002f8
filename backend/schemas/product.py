# backend/schemas/product.py
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional


# Product record as returned by the remote catalog. Only the fields used for
# cart snapshots are typed; everything else is kept as extra data.
class CatalogProduct(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: Optional[int] = None
    name: Optional[str] = None
    price: Optional[float] = None
    main_image: Optional[str] = None
    product_type: Optional[str] = None
    stock: Optional[int] = None

    @property
    def out_of_stock(self) -> bool:
        return self.stock is not None and self.stock <= 0
