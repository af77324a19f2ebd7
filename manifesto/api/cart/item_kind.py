"""
Cart item kinds
Each purchasable line is one of three kinds, each with a stable type key
"""

from dataclasses import dataclass
from typing import Any, Dict, Union

BLANK_PREFIX = "blank-"
CATALOG_PREFIX = "console-"


@dataclass(frozen=True)
class BlankApparel:
    """Undecorated t-shirt in a given colour"""
    color: str

    @property
    def type_key(self) -> str:
        return f"blank-tshirt-{self.color}"

    def describe(self) -> Dict[str, Any]:
        return {"kind": "blank", "product": "tshirt", "color": self.color}


@dataclass(frozen=True)
class CatalogProduct:
    """Fixed product from the catalogue, identified by its product code"""
    code: str

    @property
    def type_key(self) -> str:
        return self.code

    def describe(self) -> Dict[str, Any]:
        return {"kind": "catalog", "code": self.code}


@dataclass(frozen=True)
class CustomDesign:
    """Product printed from one of the user's saved drafts"""
    draft_id: str

    @property
    def type_key(self) -> str:
        return f"draft-{self.draft_id}"

    def describe(self) -> Dict[str, Any]:
        return {"kind": "custom", "draftId": self.draft_id}


CartItemKind = Union[BlankApparel, CatalogProduct, CustomDesign]


def parse_item_kind(draft_id: str) -> CartItemKind:
    """
    Parse the client's item reference.
    "blank-<color>" is blank apparel, "console-..." a catalogue code,
    anything else the id of a saved draft.
    """
    reference = (draft_id or "").strip()
    if not reference:
        raise ValueError("Item reference must not be empty")

    if reference.startswith(BLANK_PREFIX):
        color = reference[len(BLANK_PREFIX):]
        if not color:
            raise ValueError("Blank apparel needs a colour")
        return BlankApparel(color=color)
    if reference.startswith(CATALOG_PREFIX):
        return CatalogProduct(code=reference)
    return CustomDesign(draft_id=reference)
