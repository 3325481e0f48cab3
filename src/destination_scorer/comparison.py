"""Comparison Engine - aligned, highlighted side-by-side rows and matrices.

Stateless functions that turn values for N entities into renderable rows,
plus the ComparisonSet membership list that selects which entities are
compared.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Optional, Union
from urllib.parse import parse_qs, urlencode

from pydantic import ValidationError

from .config import ScorerConfig, get_config
from .schema import (
    Availability,
    AvailabilityMatrix,
    ComparisonItem,
    Entity,
    HighlightMode,
    MalformedInputError,
    MatrixCell,
    MatrixRow,
    OfferingSet,
    RenderCell,
    RenderRow,
    ValueKind,
)
from .stats import is_number


# =============================================================================
# Tagged Cell Values
# =============================================================================


@dataclass(frozen=True)
class NumericValue:
    value: float
    kind: ValueKind = ValueKind.NUMERIC


@dataclass(frozen=True)
class BooleanValue:
    value: bool
    kind: ValueKind = ValueKind.BOOLEAN


@dataclass(frozen=True)
class ArrayValue:
    items: tuple = ()
    kind: ValueKind = ValueKind.ARRAY


@dataclass(frozen=True)
class TextValue:
    text: str
    kind: ValueKind = ValueKind.TEXT


@dataclass(frozen=True)
class EmptyValue:
    kind: ValueKind = ValueKind.EMPTY


CellValue = Union[NumericValue, BooleanValue, ArrayValue, TextValue, EmptyValue]


def classify_value(raw: Any) -> CellValue:
    """Tag a raw value with its comparison type.

    bool is checked before numbers (True is not numeric) and NaN is empty.
    """
    if raw is None:
        return EmptyValue()
    if isinstance(raw, bool):
        return BooleanValue(raw)
    if isinstance(raw, (int, float)):
        return NumericValue(raw) if is_number(raw) else EmptyValue()
    if isinstance(raw, (list, tuple, set, frozenset)):
        items = sorted(raw, key=str) if isinstance(raw, (set, frozenset)) else raw
        return ArrayValue(tuple(items))
    return TextValue(str(raw))


def format_number(value: float) -> str:
    """Render integral floats without a trailing .0 (90.0 -> '90')."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# =============================================================================
# Comparison Rows
# =============================================================================


def _parse_highlight(highlight: Union[str, HighlightMode]) -> HighlightMode:
    if isinstance(highlight, HighlightMode):
        return highlight
    try:
        return HighlightMode(highlight)
    except ValueError:
        raise MalformedInputError(
            f"Highlight mode must be one of {[m.value for m in HighlightMode]}, got {highlight!r}"
        ) from None


def _check_count(name: str, value: Any, minimum: int = 0) -> int:
    """Reject bools, non-ints and values below minimum."""
    if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
        raise MalformedInputError(f"{name} must be an int >= {minimum}, got {value!r}")
    return value


def highlighted_indexes(values: Sequence[CellValue], highlight: HighlightMode) -> list[int]:
    """Indexes of every numeric value equal to the row's max (or min).

    Ties are all highlighted. Non-numeric values never take part.
    """
    if highlight == HighlightMode.NONE:
        return []

    numeric = [(i, v.value) for i, v in enumerate(values) if isinstance(v, NumericValue)]
    if not numeric:
        return []

    pick = max if highlight == HighlightMode.HIGHEST else min
    target = pick(value for _, value in numeric)
    return [i for i, value in numeric if value == target]


def render_cell(
    value: CellValue,
    highlighted: bool,
    placeholder: str,
    present_indicator: str,
    array_limit: int,
) -> RenderCell:
    """Render one tagged value."""
    if isinstance(value, EmptyValue):
        return RenderCell(display=placeholder, kind=value.kind, placeholder=True)

    if isinstance(value, BooleanValue):
        # False shows the absent indicator; it is known data, not a placeholder.
        return RenderCell(
            display=present_indicator if value.value else placeholder,
            kind=value.kind,
            highlighted=highlighted,
        )

    if isinstance(value, ArrayValue):
        if not value.items:
            return RenderCell(display=placeholder, kind=value.kind, placeholder=True)
        shown = [str(item) for item in value.items[:array_limit]]
        overflow = max(0, len(value.items) - array_limit)
        display = ", ".join(shown)
        if overflow:
            display += f" +{overflow}"
        return RenderCell(
            display=display,
            kind=value.kind,
            highlighted=highlighted,
            items=shown,
            overflow=overflow,
        )

    if isinstance(value, NumericValue):
        return RenderCell(display=format_number(value.value), kind=value.kind, highlighted=highlighted)

    return RenderCell(display=value.text, kind=value.kind, highlighted=highlighted)


def build_comparison_row(
    label: str,
    values: Sequence[Any],
    highlight: Union[str, HighlightMode] = HighlightMode.NONE,
    pad_count: int = 0,
    tooltip: Optional[str] = None,
    placeholder: Optional[str] = None,
    array_limit: Optional[int] = None,
    config: Optional[ScorerConfig] = None,
) -> RenderRow:
    """Build one comparison row with best/worst highlighting.

    Args:
        label: Row label.
        values: One raw value per entity, in column order.
        highlight: "highest", "lowest" or "none".
        pad_count: Trailing empty slots so the table keeps a fixed width.
        tooltip: Optional help text for the label.
        placeholder: Text for missing values (defaults to config).
        array_limit: List items shown before the +N counter (defaults to config).
        config: Configuration for defaults.

    In a highlighted row (highest/lowest) only numeric values are data;
    text, booleans, lists and missing values all render as the placeholder.

    Returns:
        RenderRow with one cell per value followed by pad_count padded cells.

    Raises:
        MalformedInputError: If values is not a list/tuple, the highlight
            mode is unknown, or pad_count or array_limit is out of range.
    """
    if not isinstance(values, (list, tuple)):
        raise MalformedInputError(
            f"Row values must be a list or tuple, got {type(values).__name__}"
        )
    _check_count("pad_count", pad_count)
    mode = _parse_highlight(highlight)

    cfg = (config or get_config()).comparison
    placeholder = cfg.placeholder if placeholder is None else placeholder
    array_limit = cfg.array_display_limit if array_limit is None else array_limit
    _check_count("array_limit", array_limit, minimum=1)

    tagged = [classify_value(v) for v in values]
    indexes = highlighted_indexes(tagged, mode)
    highlighted = set(indexes)

    cells = []
    for i, v in enumerate(tagged):
        if mode != HighlightMode.NONE and not isinstance(v, NumericValue):
            # A ranked row only has numeric data; anything else reads as no data.
            cells.append(RenderCell(display=placeholder, kind=v.kind, placeholder=True))
        else:
            cells.append(render_cell(v, i in highlighted, placeholder, cfg.present_indicator, array_limit))
    cells.extend(
        RenderCell(display=placeholder, kind=ValueKind.EMPTY, placeholder=True, padding=True)
        for _ in range(pad_count)
    )

    return RenderRow(
        label=label,
        tooltip=tooltip,
        highlight=mode,
        cells=cells,
        highlighted_indexes=indexes,
    )


# =============================================================================
# Attribute Availability Matrix
# =============================================================================


def _offering_sets(entities: Sequence[Any]) -> list[OfferingSet]:
    if not isinstance(entities, (list, tuple)):
        raise MalformedInputError(
            f"Entities must be a list or tuple, got {type(entities).__name__}"
        )

    sets = []
    for i, entity in enumerate(entities):
        if isinstance(entity, OfferingSet):
            sets.append(entity)
        elif isinstance(entity, Entity):
            sets.append(OfferingSet(id=entity.id, offerings=entity.offerings))
        elif isinstance(entity, Mapping):
            try:
                sets.append(OfferingSet.model_validate(entity))
            except ValidationError as e:
                raise MalformedInputError(f"Entity {i} is invalid: {e}") from e
        else:
            raise MalformedInputError(
                f"Entity {i} must be an Entity or mapping, got {type(entity).__name__}"
            )
    return sets


def build_attribute_availability_matrix(
    entities: Sequence[Any],
    display_limit: Optional[int] = None,
    show_all: bool = False,
    pad_count: int = 0,
    config: Optional[ScorerConfig] = None,
) -> AvailabilityMatrix:
    """Build the offering availability matrix across entities.

    The union of offerings is deduplicated by key. A union row is signature
    if any entity marks it signature. Rows sort signature first, then by
    label. The display limit only slices what is shown.

    Args:
        entities: Entity objects or mappings with id and offerings.
        display_limit: Rows shown before "show all" (defaults to config).
        show_all: Show every row regardless of the limit.
        pad_count: Trailing padded cells per row.
        config: Configuration for defaults.

    Returns:
        AvailabilityMatrix with all rows and the displayed slice.
    """
    _check_count("pad_count", pad_count)
    sets = _offering_sets(entities)
    if display_limit is None:
        display_limit = (config or get_config()).comparison.matrix_display_limit
    _check_count("display_limit", display_limit)

    # Union by key; first label seen wins, signature is OR-reduced
    union: dict[str, dict] = {}
    per_entity: list[dict[str, bool]] = []
    for offering_set in sets:
        offered: dict[str, bool] = {}
        for offering in offering_set.offerings:
            offered[offering.key] = offered.get(offering.key, False) or offering.signature
            row = union.setdefault(offering.key, {"label": offering.label, "signature": False})
            row["signature"] = row["signature"] or offering.signature
        per_entity.append(offered)

    ordered_keys = sorted(
        union,
        key=lambda k: (not union[k]["signature"], union[k]["label"].casefold(), k),
    )

    rows = []
    for key in ordered_keys:
        cells = []
        for offering_set, offered in zip(sets, per_entity):
            if key not in offered:
                status = Availability.UNAVAILABLE
            elif offered[key]:
                status = Availability.SIGNATURE
            else:
                status = Availability.AVAILABLE
            cells.append(MatrixCell(entity_id=offering_set.id, status=status))
        cells.extend(MatrixCell(padding=True) for _ in range(pad_count))
        rows.append(MatrixRow(
            key=key,
            label=union[key]["label"],
            signature=union[key]["signature"],
            cells=cells,
        ))

    displayed = rows if show_all else rows[:display_limit]
    return AvailabilityMatrix(
        entity_ids=[s.id for s in sets],
        rows=rows,
        displayed_rows=displayed,
        total_rows=len(rows),
        hidden_count=len(rows) - len(displayed),
        has_more=len(rows) > display_limit,
        show_all=show_all,
    )


# =============================================================================
# Comparison Set
# =============================================================================


class ComparisonSet:
    """Client-scoped, size-bounded selection of entities to compare.

    Adding beyond max_items, or adding an entity already present, is a
    no-op rather than an error.
    """

    QUERY_KEY = "properties"

    def __init__(self, max_items: Optional[int] = None, config: Optional[ScorerConfig] = None):
        if max_items is None:
            max_items = (config or get_config()).comparison.max_items
        self.max_items = _check_count("max_items", max_items, minimum=1)
        self._items: list[ComparisonItem] = []

    @property
    def items(self) -> list[ComparisonItem]:
        return list(self._items)

    @property
    def entity_ids(self) -> list[str]:
        return [item.entity_id for item in self._items]

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, entity_id: str) -> bool:
        return self.contains(entity_id)

    def count(self) -> int:
        return len(self._items)

    def contains(self, entity_id: str) -> bool:
        return any(item.entity_id == entity_id for item in self._items)

    def is_full(self) -> bool:
        return len(self._items) >= self.max_items

    def pad_count(self) -> int:
        """Empty columns needed to render a fixed-width table."""
        return max(0, self.max_items - len(self._items))

    def add(self, entity_id: str, slug: Optional[str] = None, name: Optional[str] = None) -> bool:
        """Add an entity. Returns False if it was already present or the set is full."""
        if self.contains(entity_id) or self.is_full():
            return False
        self._items.append(ComparisonItem(entity_id=entity_id, slug=slug, name=name))
        return True

    def remove(self, entity_id: str) -> bool:
        """Remove an entity. Returns False if it was not present."""
        before = len(self._items)
        self._items = [item for item in self._items if item.entity_id != entity_id]
        return len(self._items) != before

    def clear(self) -> None:
        self._items = []

    def to_query(self) -> str:
        """Shareable query string, e.g. 'properties=a%2Cb'."""
        slugs = ",".join(item.slug or item.entity_id for item in self._items)
        return urlencode({self.QUERY_KEY: slugs})

    @classmethod
    def from_query(
        cls,
        query: str,
        max_items: Optional[int] = None,
        config: Optional[ScorerConfig] = None,
    ) -> "ComparisonSet":
        """Rebuild a set from a share query. Extra or duplicate slugs are dropped."""
        comparison = cls(max_items=max_items, config=config)
        values = parse_qs(query.lstrip("?")).get(cls.QUERY_KEY, [])
        for value in values:
            for slug in value.split(","):
                slug = slug.strip()
                if slug:
                    comparison.add(slug, slug=slug)
        return comparison
