"""
kardex_engines.identity -- Scanned code parsing and resolution.

Responsibility:
    Turn a scanned ``PREFIX:COMPANY_ID:ENTITY_ID`` code into a resolved
    ``ScanReference`` (item, and lot when the code names a lot), scoped to the
    active company.

Architecture position:
    Engines -- pure calculation layer.  Catalog lookups go through the
    ``ReferenceCatalog`` protocol supplied by the caller; this module performs
    no I/O of its own.

Invariants enforced:
    - Exactly three colon-separated segments; prefix ITEM or LOT, compared
      after trimming and upper-casing; company and entity segments non-empty.
    - A code naming another company is refused before any lookup happens.

Failure modes:
    - MalformedCodeError: wrong shape, unknown prefix, empty segment.
    - CrossTenantCodeError: company segment differs from the active company.
    - ItemNotFoundError / LotNotFoundError: entity unknown to the catalog.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from kardex_engines.tracer import traced_engine
from kardex_kernel.domain.inventory import Item, Lot, ScanKind, ScanReference
from kardex_kernel.exceptions import (
    CrossTenantCodeError,
    ItemNotFoundError,
    LotNotFoundError,
    MalformedCodeError,
)

CODE_SEPARATOR = ":"


class ReferenceCatalog(Protocol):
    """Lookup of catalog entities, already scoped to the active company."""

    def get_item(self, item_id: str) -> Item | None: ...

    def get_lot(self, lot_id: str) -> Lot | None: ...


@dataclass(frozen=True, slots=True)
class ParsedCode:
    """Syntactic content of a scanned code, before any lookup."""

    kind: ScanKind
    company_id: str
    entity_id: str


def parse_scan_code(code: str) -> ParsedCode:
    """Split and validate the shape of a scanned code."""
    if code is None:
        raise MalformedCodeError("", "empty code")

    parts = code.split(CODE_SEPARATOR)
    if len(parts) != 3:
        raise MalformedCodeError(
            code, "expected ITEM:<company_id>:<item_id> or LOT:<company_id>:<lot_id>"
        )

    prefix = parts[0].strip().upper()
    company_id = parts[1].strip()
    entity_id = parts[2].strip()

    if not company_id or not entity_id:
        raise MalformedCodeError(code, "empty company or entity segment")

    try:
        kind = ScanKind(prefix)
    except ValueError:
        raise MalformedCodeError(code, f"unsupported prefix {prefix!r}") from None

    return ParsedCode(kind=kind, company_id=company_id, entity_id=entity_id)


@traced_engine("identity", "1.0", fingerprint_fields=("code", "company_id"))
def resolve_scan_code(
    code: str,
    company_id: str,
    catalog: ReferenceCatalog,
) -> ScanReference:
    """
    Resolve a scanned code for the active company.

    A LOT code resolves the lot and its owning item; an ITEM code resolves
    the item only.
    """
    parsed = parse_scan_code(code)

    if parsed.company_id != company_id:
        raise CrossTenantCodeError(code, parsed.company_id, company_id)

    if parsed.kind == ScanKind.LOT:
        lot = catalog.get_lot(parsed.entity_id)
        if lot is None:
            raise LotNotFoundError(parsed.entity_id)
        if catalog.get_item(lot.item_id) is None:
            raise ItemNotFoundError(lot.item_id)
        return ScanReference(
            kind=ScanKind.LOT,
            company_id=company_id,
            item_id=lot.item_id,
            lot_id=lot.lot_id,
        )

    item = catalog.get_item(parsed.entity_id)
    if item is None:
        raise ItemNotFoundError(parsed.entity_id)
    return ScanReference(kind=ScanKind.ITEM, company_id=company_id, item_id=item.item_id)
