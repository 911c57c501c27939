"""
Record validation for the sync layer.

Checks the shape of cached (camelCase) records before they are written to
the remote store, so that one malformed record fails on its own instead of
taking its whole batch down with it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .sync.registry import TableDescriptor

# ---------------------------------------------------------------------------
# Error message formatting helpers
# ---------------------------------------------------------------------------


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Record id")
        reason: Description of validation failure (e.g., "is missing")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_record_id(record: Any) -> tuple[bool, str]:
    """
    Validate that *record* is an object carrying a usable ``id``.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if not isinstance(record, dict):
        return (
            False,
            format_validation_error("Record", "must be an object"),
        )

    record_id = record.get("id")
    if _is_blank(record_id) or isinstance(record_id, bool):
        return (False, format_validation_error("Record id", "is missing"))

    if not isinstance(record_id, (int, str)):
        return (
            False,
            format_validation_error(
                "Record id", "must be an integer or a string"
            ),
        )

    return (True, "")


def validate_record(
    table: TableDescriptor, record: Any
) -> tuple[bool, str]:
    """
    Validate a cached record against its table's requirements.

    Args:
        table: Descriptor of the table the record belongs to
        record: camelCase record read from the local cache

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Must be an object with a non-empty integer or string ``id``
        - Every required field must be present and non-blank
        - Products: ``price`` must be a non-negative number
        - Visuals: ``image`` or ``imageUrl`` must be set
    """
    ok, message = validate_record_id(record)
    if not ok:
        return (ok, message)

    for name in sorted(table.required_fields):
        if _is_blank(record.get(name)):
            return (
                False,
                format_validation_error(
                    f"Field '{name}'", "is required"
                ),
            )

    match table.name:
        case "products":
            price = record.get("price")
            if (
                isinstance(price, bool)
                or not isinstance(price, (int, float))
                or price < 0
            ):
                return (
                    False,
                    format_validation_error(
                        "Field 'price'", "must be a non-negative number"
                    ),
                )
        case "visuals":
            if _is_blank(record.get("image")) and _is_blank(
                record.get("imageUrl")
            ):
                return (
                    False,
                    format_validation_error(
                        "Field 'image' or 'imageUrl'", "is required"
                    ),
                )

    return (True, "")
