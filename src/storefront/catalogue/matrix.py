"""Variant matrix: attribute extraction, combination generation, reconciliation.

A product varies along up to three axes (size, color, material). The
merchant picks values per axis; every combination of the non-empty axes
becomes a purchasable variant identified by its canonical key, the
fixed-order concatenation ``size|color|material`` with an empty slot for an
axis the product does not vary on (``S||Cotton``).

Everything here is pure: no repositories, no domain context.
"""

from dataclasses import dataclass, field
from itertools import product as cartesian_product
from typing import Any, Iterable, NamedTuple

from storefront.errors import InvalidInput

AXES = ("size", "color", "material")
KEY_SEPARATOR = "|"


class VariantKey(NamedTuple):
    """Natural key of a variant: one optional value per axis, in axis order."""

    size: str | None = None
    color: str | None = None
    material: str | None = None

    @property
    def canonical(self) -> str:
        return KEY_SEPARATOR.join(value or "" for value in self)

    @property
    def label(self) -> str:
        """Human-readable form, e.g. ``S / Cotton``."""
        return " / ".join(value for value in self if value)

    @classmethod
    def parse(cls, raw: Any) -> "VariantKey":
        """Parse a canonical key string, normalising whitespace in each slot."""
        if not isinstance(raw, str):
            raise InvalidInput({"variant_key": [f"Variant key must be a string, got {type(raw).__name__}"]})

        parts = raw.split(KEY_SEPARATOR)
        if len(parts) != len(AXES):
            raise InvalidInput(
                {"variant_key": [f"Variant key '{raw}' must have exactly {len(AXES)} '{KEY_SEPARATOR}'-separated slots"]}
            )

        values = [part.strip() or None for part in parts]
        if not any(values):
            raise InvalidInput({"variant_key": ["Variant key must name at least one attribute value"]})

        return cls(*values)

    @classmethod
    def of(cls, variant: Any) -> "VariantKey":
        """Build the key of an existing variant (entity, mapping or plain object)."""
        return cls(*(_axis_value(variant, axis) for axis in AXES))


def _axis_value(variant: Any, axis: str) -> str | None:
    value = variant.get(axis) if isinstance(variant, dict) else getattr(variant, axis, None)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def canonical_key(key: "VariantKey | str") -> str:
    """Canonical string for either a VariantKey or a raw key string."""
    if isinstance(key, VariantKey):
        return key.canonical
    return VariantKey.parse(key).canonical


def normalize_selection(values: Iterable[Any] | None, axis: str = "values") -> list[str]:
    """Trim values, drop blanks and collapse duplicates keeping first position."""
    selected: list[str] = []
    for value in values or ():
        if value is None:
            continue
        text = str(value).strip()
        if not text:
            continue
        if KEY_SEPARATOR in text:
            raise InvalidInput({axis: [f"Value '{text}' must not contain '{KEY_SEPARATOR}'"]})
        if text not in selected:
            selected.append(text)
    return selected


# ---------------------------------------------------------------------------
# Attribute Set Extractor
# ---------------------------------------------------------------------------
class AttributeSets(NamedTuple):
    """Distinct axis values, each paired with itself as its selection key."""

    sizes: list[dict]
    colors: list[dict]
    materials: list[dict]

    def values(self) -> tuple[list[str], list[str], list[str]]:
        return tuple([option["value"] for option in options] for options in self)

    def to_dict(self) -> dict:
        return {"sizes": self.sizes, "colors": self.colors, "materials": self.materials}


def extract_attribute_sets(variants: Iterable[Any]) -> AttributeSets:
    """Collect the distinct size/color/material values present in `variants`.

    Values come out in order of first appearance. The result only seeds the
    merchant's editing form; it is never the source of truth once the
    merchant changes a selection.
    """
    seen: dict[str, list[str]] = {axis: [] for axis in AXES}
    for variant in variants or ():
        for axis in AXES:
            value = _axis_value(variant, axis)
            if value and value not in seen[axis]:
                seen[axis].append(value)

    return AttributeSets(*([{"id": value, "value": value} for value in seen[axis]] for axis in AXES))


def selection_from_keys(keys: Iterable[VariantKey]) -> tuple[list[str], list[str], list[str]]:
    """Recover per-axis selections from a collection of variant keys."""
    return extract_attribute_sets(key._asdict() for key in keys).values()


# ---------------------------------------------------------------------------
# Variant Combination Generator
# ---------------------------------------------------------------------------
def generate_combinations(sizes=None, colors=None, materials=None) -> list[VariantKey]:
    """Cartesian product of the non-empty axes.

    An empty axis does not vary and contributes no dimension; a single-value
    axis still participates. All three axes empty yields no variants.
    """
    axes = [
        normalize_selection(sizes, "sizes"),
        normalize_selection(colors, "colors"),
        normalize_selection(materials, "materials"),
    ]
    if not any(axes):
        return []

    dimensions = [values if values else [None] for values in axes]
    return [VariantKey(*combination) for combination in cartesian_product(*dimensions)]


@dataclass
class MatrixEntry:
    """One generated combination, carrying the persisted identity when reused."""

    key: VariantKey
    variant_id: str | None = None
    inventory: int = 0
    is_new: bool = True  # stays set after the save assigns a variant id

    def to_dict(self) -> dict:
        return {
            "variant_key": self.key.canonical,
            "variant_id": self.variant_id,
            "size": self.key.size,
            "color": self.key.color,
            "material": self.key.material,
            "inventory": self.inventory,
        }


@dataclass
class Reconciliation:
    """Outcome of matching generated keys against persisted variants.

    `removed` lists persisted variants whose key is no longer generated;
    they are only candidates until the save checks live cart references.
    """

    entries: list[MatrixEntry] = field(default_factory=list)
    removed: list[Any] = field(default_factory=list)

    @property
    def removed_ids(self) -> list[str]:
        return [str(variant.id) for variant in self.removed]

    @property
    def removed_keys(self) -> list[str]:
        return [_persisted_key(variant) for variant in self.removed]

    @property
    def added_keys(self) -> list[str]:
        return [entry.key.canonical for entry in self.entries if entry.is_new]


def _persisted_key(variant: Any) -> str:
    stored = variant.get("variant_key") if isinstance(variant, dict) else getattr(variant, "variant_key", None)
    return stored or VariantKey.of(variant).canonical


def reconcile(generated: Iterable[VariantKey], persisted: Iterable[Any]) -> Reconciliation:
    """Reuse identity and inventory for surviving keys; new keys start at 0."""
    persisted_by_key = {_persisted_key(variant): variant for variant in persisted or ()}

    entries = []
    generated_keys = set()
    for key in generated:
        generated_keys.add(key.canonical)
        existing = persisted_by_key.get(key.canonical)
        if existing is not None:
            entries.append(
                MatrixEntry(
                    key=key,
                    variant_id=str(existing.id),
                    inventory=existing.inventory or 0,
                    is_new=False,
                )
            )
        else:
            entries.append(MatrixEntry(key=key))

    removed = [variant for key, variant in persisted_by_key.items() if key not in generated_keys]
    return Reconciliation(entries=entries, removed=removed)
