"""Variant inventory ledger: one stock count per generated combination.

The ledger is keyed by canonical variant key rather than variant identity,
so counts the merchant typed survive a regeneration (reordered or extended
selections) as long as the combination itself survives.
"""

from typing import Any, Iterable, Iterator

from storefront.catalogue.matrix import (
    MatrixEntry,
    VariantKey,
    canonical_key,
    generate_combinations,
    reconcile,
)
from storefront.errors import InvalidInput, InvalidInventory, NotFound


def validate_inventory(count: Any, variant_key: str | None = None) -> int:
    """Return `count` as an int, rejecting negative or non-integral values."""
    field_name = f"inventory[{variant_key}]" if variant_key else "inventory"

    if isinstance(count, bool) or not isinstance(count, int | float):
        raise InvalidInventory({field_name: [f"Inventory must be a whole number, got {count!r}"]})
    if isinstance(count, float) and not count.is_integer():
        raise InvalidInventory({field_name: [f"Inventory must be a whole number, got {count!r}"]})
    if count < 0:
        raise InvalidInventory({field_name: [f"Inventory cannot be negative, got {count!r}"]})

    return int(count)


class InventoryLedger:
    """Stock counts for the current variant matrix of one product edit."""

    def __init__(self, entries: Iterable[MatrixEntry] = ()):
        self._entries: dict[str, MatrixEntry] = {}
        for entry in entries:
            self._entries[entry.key.canonical] = entry

    @classmethod
    def for_selection(
        cls,
        sizes=None,
        colors=None,
        materials=None,
        persisted: Iterable[Any] = (),
        previous: "InventoryLedger | None" = None,
    ) -> "InventoryLedger":
        """Build a ledger for a selection.

        Counts come from `previous` for keys it already holds, otherwise from
        the matching persisted variant, otherwise 0.
        """
        generated = generate_combinations(sizes, colors, materials)
        ledger = cls(reconcile(generated, persisted).entries)

        if previous is not None:
            for key, entry in ledger._entries.items():
                if key in previous:
                    entry.inventory = previous.get_inventory(key)

        return ledger

    def regenerate(self, sizes=None, colors=None, materials=None, persisted: Iterable[Any] = ()) -> "InventoryLedger":
        """Ledger for a changed selection, carrying over counts of surviving keys."""
        return InventoryLedger.for_selection(sizes, colors, materials, persisted=persisted, previous=self)

    def set_inventory(self, variant_key: VariantKey | str, count: Any) -> int:
        key = canonical_key(variant_key)
        value = validate_inventory(count, key)
        self._entry(key).inventory = value
        return value

    def get_inventory(self, variant_key: VariantKey | str) -> int:
        return self._entry(canonical_key(variant_key)).inventory

    def entry(self, variant_key: VariantKey | str) -> MatrixEntry:
        return self._entry(canonical_key(variant_key))

    def _entry(self, key: str) -> MatrixEntry:
        try:
            return self._entries[key]
        except KeyError:
            raise NotFound({"variant_key": [f"'{key}' is not part of the current variant matrix"]}) from None

    def keys(self) -> list[str]:
        return list(self._entries)

    def entries(self) -> list[MatrixEntry]:
        return list(self._entries.values())

    def as_payload(self) -> dict[str, int]:
        """Mapping submitted with the product save: canonical key → count."""
        return {key: entry.inventory for key, entry in self._entries.items()}

    def __contains__(self, variant_key) -> bool:
        try:
            return canonical_key(variant_key) in self._entries
        except InvalidInput:
            return False

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
