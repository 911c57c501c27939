"""Product/lottery cross-reference repair over the local cache.

Products list the lotteries they enter buyers into (``linkedLotteries``)
and lotteries list the products that grant tickets (``linkedProducts``).
The two sides are edited independently, so the cached tables drift: ids of
deleted records linger, and a link recorded on one side goes missing on
the other.  ``sync_product_lottery_links`` drops dangling ids and makes
every remaining link bidirectional, writing back only the tables it
changed so subscribers see one change event per table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..notifications import Notifier
    from .cache import LocalCacheStore

logger = logging.getLogger(__name__)

PRODUCT_LINKS = "linkedLotteries"
LOTTERY_LINKS = "linkedProducts"

# Underscore spellings left behind by older cache writers.
_LEGACY_KEYS = {
    PRODUCT_LINKS: "linked_lotteries",
    LOTTERY_LINKS: "linked_products",
}


@dataclass(frozen=True)
class LinkSyncResult:
    ok: bool
    updated: tuple[str, ...] = ()


def _is_id(value: Any) -> bool:
    return isinstance(value, (int, str)) and not isinstance(value, bool)


def _ids(records: list[dict]) -> set[int | str]:
    return {r["id"] for r in records if _is_id(r.get("id"))}


def _normalize(records: list[dict], key: str, valid_ids: set) -> bool:
    """Make *key* a list of known ids on every record; True if any changed."""
    legacy_key = _LEGACY_KEYS[key]
    changed = False
    for record in records:
        links = record.get(key)
        if legacy_key in record:
            legacy = record.pop(legacy_key)
            if not isinstance(links, list) and isinstance(legacy, list):
                links = legacy
            changed = True
        if not isinstance(links, list):
            links = []
        kept = list(
            dict.fromkeys(i for i in links if _is_id(i) and i in valid_ids)
        )
        if kept != record.get(key):
            record[key] = kept
            changed = True
    return changed


def _mirror(
    sources: list[dict], source_key: str, targets: list[dict], target_key: str
) -> bool:
    """Add each source id to the targets it links to; True if any changed."""
    by_id = {t["id"]: t for t in targets if _is_id(t.get("id"))}
    changed = False
    for source in sources:
        source_id = source.get("id")
        if not _is_id(source_id):
            continue
        for target_id in source[source_key]:
            target = by_id.get(target_id)
            if target is not None and source_id not in target[target_key]:
                target[target_key].append(source_id)
                changed = True
    return changed


def sync_product_lottery_links(
    cache: LocalCacheStore, notifier: Notifier | None = None
) -> LinkSyncResult:
    """Repair the product/lottery links held in *cache*.

    Both tables must be cached; otherwise nothing is touched and the
    result is not ok.  A refused cache write also yields a failed result
    (the store has already reported it).
    """
    products = cache.read("products")
    lotteries = cache.read("lotteries")
    if not products or not lotteries:
        logger.error("Products or lotteries not cached, links left as is")
        return LinkSyncResult(ok=False)

    products_changed = _normalize(products, PRODUCT_LINKS, _ids(lotteries))
    lotteries_changed = _normalize(lotteries, LOTTERY_LINKS, _ids(products))
    lotteries_changed |= _mirror(
        products, PRODUCT_LINKS, lotteries, LOTTERY_LINKS
    )
    products_changed |= _mirror(
        lotteries, LOTTERY_LINKS, products, PRODUCT_LINKS
    )

    updated: list[str] = []
    for table, records, changed in (
        ("products", products, products_changed),
        ("lotteries", lotteries, lotteries_changed),
    ):
        if not changed:
            continue
        if not cache.write(table, records):
            return LinkSyncResult(ok=False, updated=tuple(updated))
        logger.info("Synchronized links in cached %s", table)
        updated.append(table)

    if updated and notifier is not None:
        notifier.info("Product and lottery links synchronized")
    return LinkSyncResult(ok=True, updated=tuple(updated))


def linked_lotteries_for_product(
    cache: LocalCacheStore, product_id: int | str
) -> list[dict]:
    """Return the active cached lotteries that *product_id* links to."""
    product = next(
        (p for p in cache.read("products") if p.get("id") == product_id),
        None,
    )
    if product is None:
        logger.warning("Product %s not found in cache", product_id)
        return []
    links = product.get(PRODUCT_LINKS)
    if not isinstance(links, list):
        links = product.get(_LEGACY_KEYS[PRODUCT_LINKS]) or []
    return [
        lottery
        for lottery in cache.read("lotteries")
        if lottery.get("id") in links and lottery.get("status") == "active"
    ]
