"""Field reconciliation for archived bookings.

A transition snapshot carries the latest flattened state of the booking and,
optionally, the pre-transition document under ``_originalBooking``. The two
producers fill different subsets of fields, so columns are extracted from a
single merged view:

* a key present on the current record wins, even when its value is None;
* a key absent from the current record falls back to the original document.
"""

from collections.abc import Mapping
from typing import Any, Optional

from ...shared.coercion import first_present

ORIGINAL_BOOKING_KEY = "_originalBooking"

# selected* keys with a dedicated column
KNOWN_SELECTED_KEYS = frozenset(
    {
        "selectedMovies",
        "selectedCakes",
        "selectedDecorItems",
        "selectedGifts",
        "selectedExtraAddOns",
        "selectedExtraAddOnsItems",
        "selectedFood",
    }
)
OTHER_ITEMS_KEY = "selectedOtherItems"


def merge_defined(base: Optional[Mapping], overlay: Optional[Mapping]) -> dict:
    """Copy of base updated with every key present in overlay"""
    merged = dict(base or {})
    if isinstance(overlay, Mapping):
        merged.update(overlay)
    return merged


def split_original(record: Mapping) -> tuple[dict, Optional[dict]]:
    """Separate the current record from its nested original document"""
    current = dict(record)
    original = current.pop(ORIGINAL_BOOKING_KEY, None)
    if not isinstance(original, Mapping):
        original = None
    return current, dict(original) if original is not None else None


def reconcile_booking(record: Mapping) -> dict:
    """One flat view of a booking snapshot; the current state wins over the original"""
    current, original = split_original(record)
    if original is not None:
        # Deeply nested originals are flattened one level at a time
        original = reconcile_booking(original)
    return merge_defined(original, current)


def _scalar_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, tuple, set)):
        return None
    text = str(value).strip()
    return text or None


def extract_occasion_fields(record: Mapping) -> dict:
    """
    First two occasion label/value pairs.

    Structured ``occasionData`` ({label: value}) is preferred; older bookings
    stored pairs as ``<field>_label`` / ``<field>`` keys on the booking itself.
    """
    pairs: list[tuple[str, str]] = []

    occasion_data = record.get("occasionData")
    if isinstance(occasion_data, Mapping):
        for label, value in occasion_data.items():
            value_text = "" if value is None else str(value).strip()
            if value_text:
                pairs.append((str(label), value_text))

    if not pairs:
        for key, label_raw in record.items():
            if not isinstance(key, str) or not key.endswith("_label"):
                continue
            label = str(label_raw or "").strip()
            if not label:
                continue
            value_text = _scalar_text(record.get(key[: -len("_label")]))
            if value_text:
                pairs.append((label, value_text))

    fields = {}
    for index in (1, 2):
        label, value = pairs[index - 1] if len(pairs) >= index else (None, None)
        fields[f"occasion_field{index}_label"] = label
        fields[f"occasion_field{index}_value"] = value
    return fields


def normalize_payment_method(raw: Any) -> str:
    value = str(raw or "").strip().lower()
    if value in ("cash", "cash_payment"):
        return "Cash"
    if value == "upi":
        return "UPI"
    if value == "online":
        return "Online"
    return value.upper()


def resolve_receiver_name(record: Mapping) -> str:
    """Who collected the venue payment: named staff/admin first, then the generic paidBy role"""
    for candidate in (
        record.get("staffName"),
        record.get("adminName"),
        record.get("paidByName"),
        record.get("paidBy"),
    ):
        if isinstance(candidate, str) and candidate.strip():
            trimmed = candidate.strip()
            lowered = trimmed.lower()
            if lowered in ("admin", "administrator"):
                return "Admin"
            if lowered == "staff":
                return "Staff"
            return trimmed
    return ""


def resolve_payment_received(record: Mapping) -> Optional[str]:
    """Composite label such as "Cash - Riya"; either half alone when only one resolves"""
    method = normalize_payment_method(
        first_present(
            record.get("venuePaymentMethod"),
            record.get("paymentMethod"),
            record.get("paymentMode"),
        )
    )
    receiver = resolve_receiver_name(record)
    if method and receiver:
        return f"{method} - {receiver}"
    return method or receiver or None


def split_selected_items(record: Mapping) -> tuple[dict[str, Any], dict[str, list]]:
    """
    Item collections by category.

    Returns the known categories and a catch-all map holding every other
    ``selected*`` key whose value is a non-empty list, so new upstream
    categories are stored without a schema change.
    """
    known = {
        "selected_movies": record.get("selectedMovies") or [],
        "selected_cakes": record.get("selectedCakes") or [],
        "selected_decor_items": record.get("selectedDecorItems") or [],
        "selected_gifts": record.get("selectedGifts") or [],
        "selected_extra_add_ons": (
            record.get("selectedExtraAddOns") or record.get("selectedExtraAddOnsItems") or []
        ),
        "selected_food": record.get("selectedFood") or [],
    }

    other: dict[str, list] = {}
    explicit_other = record.get(OTHER_ITEMS_KEY)
    if isinstance(explicit_other, Mapping):
        for key, value in explicit_other.items():
            if isinstance(value, list) and value:
                other[str(key)] = value

    for key, value in record.items():
        if not isinstance(key, str) or not key.startswith("selected"):
            continue
        if key in KNOWN_SELECTED_KEYS or key == OTHER_ITEMS_KEY:
            continue
        if isinstance(value, list) and value:
            other[key] = value

    return known, other


def resolve_created_by(record: Mapping) -> tuple[Optional[str], Optional[str]]:
    """(type, display name) of whoever created the booking"""
    created_by = record.get("createdBy")
    if isinstance(created_by, str):
        return (created_by.strip().lower() or None), None
    if not isinstance(created_by, Mapping):
        return None, None

    created_type = created_by.get("type")
    created_type = created_type.strip().lower() if isinstance(created_type, str) else None
    if created_type in ("admin", "administrator"):
        return created_type, created_by.get("adminName") or "Administrator"
    if created_type == "staff":
        return created_type, created_by.get("staffName") or "Staff"
    name = created_by.get("name")
    return created_type, name if isinstance(name, str) and name else None
