"""Local cart projection held by a storefront client.

The projection is a cache of the server's cart. Optimistic changes are
applied immediately and then either confirmed with the authoritative value
the server returned or rolled back to the value captured before the change.
"""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class LocalLine:
    item_id: str
    product_id: str
    variant_id: str | None
    quantity: int

    @classmethod
    def from_payload(cls, payload: dict) -> "LocalLine":
        return cls(
            item_id=str(payload["item_id"]),
            product_id=str(payload["product_id"]),
            variant_id=str(payload["variant_id"]) if payload.get("variant_id") else None,
            quantity=int(payload["quantity"]),
        )


@dataclass(frozen=True)
class Pending:
    """Snapshot of a line taken before an optimistic change."""

    item_id: str
    before: LocalLine | None


class LocalCart:
    def __init__(self):
        self.cart_id: str | None = None
        self._lines: dict[str, LocalLine] = {}

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def line(self, item_id) -> LocalLine | None:
        return self._lines.get(str(item_id))

    def quantity_of(self, item_id) -> int | None:
        line = self.line(item_id)
        return line.quantity if line else None

    @property
    def lines(self) -> list[LocalLine]:
        return list(self._lines.values())

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    # -------------------------------------------------------------------
    # Server reconciliation
    # -------------------------------------------------------------------
    def replace(self, cart_payload: dict):
        """Adopt the server's view of the whole cart."""
        self.cart_id = cart_payload.get("cart_id")
        self._lines = {}
        for item in cart_payload.get("items", []):
            line = LocalLine.from_payload(item)
            self._lines[line.item_id] = line

    def upsert(self, item_payload: dict) -> LocalLine:
        line = LocalLine.from_payload(item_payload)
        self._lines[line.item_id] = line
        return line

    def confirm(self, item_id, quantity: int):
        """Replace the local quantity with the server's authoritative one."""
        line = self.line(item_id)
        if line is not None:
            self._lines[line.item_id] = replace(line, quantity=int(quantity))

    # -------------------------------------------------------------------
    # Optimistic changes
    # -------------------------------------------------------------------
    def apply_delta(self, item_id, delta: int) -> Pending:
        before = self.line(item_id)
        if before is not None:
            self._lines[before.item_id] = replace(before, quantity=before.quantity + delta)
        return Pending(item_id=str(item_id), before=before)

    def apply_quantity(self, item_id, quantity: int) -> Pending:
        before = self.line(item_id)
        if before is not None:
            self._lines[before.item_id] = replace(before, quantity=quantity)
        return Pending(item_id=str(item_id), before=before)

    def apply_removal(self, item_id) -> Pending:
        before = self._lines.pop(str(item_id), None)
        return Pending(item_id=str(item_id), before=before)

    def rollback(self, pending: Pending):
        """Restore the line exactly as it was before the optimistic change."""
        if pending.before is None:
            self._lines.pop(pending.item_id, None)
        else:
            self._lines[pending.item_id] = pending.before
