"""Static registry of the tables the sync layer manages.

Tables are declared parents-before-children so that pushing them in
registry order never references a row the remote store has not seen yet.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..errors import UnknownTableError


@dataclass(frozen=True)
class TableDescriptor:
    """Immutable description of one registered table.

    Attributes:
        name: Table name, identical on both sides of the boundary.
        required_fields: camelCase fields a record must carry (besides
            ``id``) before it may be written remotely.
        single_record: Upsert records one at a time instead of in
            batches.  Used for tables whose rows carry large payloads.
    """

    name: str
    required_fields: frozenset[str] = field(default_factory=frozenset)
    single_record: bool = False


TABLES: tuple[TableDescriptor, ...] = (
    TableDescriptor("visual_categories", frozenset({"name"})),
    TableDescriptor(
        "visuals", frozenset({"name"}), single_record=True
    ),
    TableDescriptor(
        "clients", frozenset({"email"}), single_record=True
    ),
    TableDescriptor("lotteries", frozenset({"title"})),
    TableDescriptor("products", frozenset({"name", "price"})),
    TableDescriptor(
        "lottery_participants", frozenset({"lotteryId"})
    ),
    TableDescriptor("lottery_winners", frozenset({"lotteryId"})),
    TableDescriptor("orders", frozenset({"clientId"})),
    TableDescriptor("order_items", frozenset({"orderId"})),
    TableDescriptor("site_settings"),
    TableDescriptor("user_roles", frozenset({"userId", "role"})),
)

_BY_NAME = {table.name: table for table in TABLES}

TABLE_NAMES: tuple[str, ...] = tuple(_BY_NAME)

# Cache keys that are not tables.
DEV_MODE_KEY = "dev_mode"
REMOTE_CONNECTED_KEY = "remote_connected"
AUTH_SESSION_KEY = "auth_session"
SYNC_STATUS_KEY = "sync_status"

SETTING_KEYS = frozenset(
    {DEV_MODE_KEY, REMOTE_CONNECTED_KEY, AUTH_SESSION_KEY, SYNC_STATUS_KEY}
)


def get_table(name: str) -> TableDescriptor:
    """Return the descriptor for *name*.

    Raises:
        UnknownTableError: If *name* is not registered.
    """
    try:
        return _BY_NAME[name]
    except KeyError:
        raise UnknownTableError(name) from None


def is_table(name: str) -> bool:
    return name in _BY_NAME
