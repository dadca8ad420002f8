# backend/utils/variant_key.py
import json
from typing import Any, Mapping, Optional

# Key used by every line that has no option selections
NO_VARIANT = "-"

def resolve(product_id: int, selected_options: Optional[Mapping[str, Any]] = None) -> str:
    """
    Maps a product and its selected options to a stable line identity.

    Option order does not matter: options are sorted by name before
    serialization. An empty mapping and None both give the no-variant key.
    """
    if not selected_options:
        return f"{int(product_id)}:{NO_VARIANT}"
    canonical = json.dumps(
        dict(selected_options),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return f"{int(product_id)}:{canonical}"
