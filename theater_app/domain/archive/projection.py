"""Column projection for archived booking rows"""

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional

from ... import config
from ...shared.coercion import (
    first_present,
    first_truthy,
    json_string_or_none,
    normalize_mongo_id,
    optional_str,
    parse_date,
    parse_datetime,
    to_int_or_none,
    to_number_or_none,
)
from .reconcile import (
    extract_occasion_fields,
    resolve_created_by,
    resolve_payment_received,
    split_selected_items,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def resolve_booking_id(record: Mapping) -> Optional[str]:
    raw = first_truthy(record.get("bookingId"), record.get("id"), record.get("_id"))
    if raw is None:
        return None
    booking_id = normalize_mongo_id(raw) if isinstance(raw, Mapping) else str(raw).strip()
    return booking_id or None


def fallback_name(record: Mapping) -> str:
    return str(record.get("name") or "").strip() or "Unknown"


def fallback_email(record: Mapping, booking_id: Optional[str]) -> str:
    email = str(record.get("email") or "").strip()
    if email:
        return email
    return f"noemail+{booking_id or 'unknown'}@{config.ARCHIVE_FALLBACK_EMAIL_DOMAIN}"


def project_common_columns(record: Mapping, booking_id: str) -> dict[str, Any]:
    """Columns shared by both archive tables, from an already reconciled record"""
    pricing = record.get("pricingData")
    pricing = pricing if isinstance(pricing, Mapping) else {}
    discount_summary = record.get("discountSummary")
    discount_summary = discount_summary if isinstance(discount_summary, Mapping) else {}

    total_amount = to_number_or_none(first_present(record.get("totalAmount"), record.get("amount")))
    advance_payment = to_number_or_none(
        first_present(record.get("advancePayment"), pricing.get("slotBookingFee"))
    )
    venue_payment = to_number_or_none(record.get("venuePayment"))
    if venue_payment is not None:
        payable_amount = venue_payment
    elif total_amount is not None and advance_payment is not None:
        payable_amount = total_amount - advance_payment
    else:
        payable_amount = None

    known_items, other_items = split_selected_items(record)
    created_by_type, created_by_name = resolve_created_by(record)

    columns = {
        "booking_id": booking_id,
        "mongo_id": normalize_mongo_id(record.get("_id")),
        "name": fallback_name(record),
        "email": fallback_email(record, booking_id),
        "phone": optional_str(record.get("phone")),
        "theater_name": record.get("theaterName"),
        "booking_date": parse_date(
            first_truthy(record.get("date"), record.get("bookingDate"), record.get("booking_date"))
        ),
        "booking_time": first_truthy(
            record.get("time"), record.get("bookingTime"), record.get("booking_time")
        ),
        "occasion": record.get("occasion"),
        "occasion_person_name": record.get("occasionPersonName") or None,
        "booking_type": record.get("bookingType") or None,
        "number_of_people": to_int_or_none(record.get("numberOfPeople")),
        "total_amount": total_amount,
        "advance_payment": advance_payment,
        "venue_payment": venue_payment,
        "payable_amount": payable_amount,
        "total_before_discount": to_number_or_none(
            first_present(
                record.get("totalAmountBeforeDiscount"),
                record.get("totalBeforeDiscount"),
                record.get("total_before_discount"),
            )
        ),
        "total_after_discount": to_number_or_none(
            first_present(
                record.get("totalAmountAfterDiscount"),
                record.get("totalAfterDiscount"),
                record.get("total_after_discount"),
                record.get("totalAmount"),
                record.get("amount"),
            )
        ),
        "decoration_fee": to_number_or_none(
            first_present(
                record.get("decorationFee"),
                record.get("appliedDecorationFee"),
                record.get("decorationAppliedFee"),
                pricing.get("decorationAppliedFee"),
                pricing.get("decorationFees"),
            )
        ),
        "admin_discount": to_number_or_none(
            first_present(record.get("adminDiscount"), pricing.get("adminDiscount"))
        ),
        # Admin discounts are reported as special discounts
        "special_discount": to_number_or_none(
            first_present(
                record.get("specialDiscount"),
                record.get("adminDiscount"),
                pricing.get("specialDiscount"),
                pricing.get("adminDiscount"),
            )
        ),
        "generic_discount": to_number_or_none(
            first_present(record.get("Discount"), record.get("genericDiscount"), pricing.get("discount"))
        ),
        "coupon_discount": to_number_or_none(
            first_present(record.get("discountAmount"), record.get("couponDiscount"))
        ),
        "coupon_code": first_present(
            record.get("appliedCouponCode"), record.get("couponCode"), discount_summary.get("code")
        ),
        "discount_by_coupon": to_number_or_none(
            first_present(
                record.get("DiscountByCoupon"),
                record.get("DiscountByCouponAmount"),
                record.get("DiscountByCouponValue"),
                record.get("discountByCoupon"),
            )
        ),
        "applied_decoration_fee": to_number_or_none(
            first_present(
                record.get("appliedDecorationFee"),
                record.get("decorationAppliedFee"),
                pricing.get("decorationAppliedFee"),
            )
        ),
        "payment_status": record.get("paymentStatus") or None,
        "payment_method": record.get("paymentMethod") or None,
        "venue_payment_method": record.get("venuePaymentMethod") or None,
        "paid_by": record.get("paidBy") or None,
        "paid_at": parse_datetime(record.get("paidAt")),
        "payment_received": resolve_payment_received(record),
        "notes": record.get("notes") or None,
        "created_by_type": created_by_type,
        "created_by_name": created_by_name,
        "staff_id": optional_str(record.get("staffId")),
        "staff_name": record.get("staffName") or None,
        "created_at_source": parse_datetime(record.get("createdAt")),
        "pricing_data": json_string_or_none(
            first_truthy(record.get("pricingData"), record.get("pricing_data"))
        ),
        "occasion_data": json_string_or_none(
            first_truthy(record.get("occasionData"), record.get("occasion_data"))
        ),
        "selected_other_items": json_string_or_none(other_items) if other_items else None,
    }
    columns.update(extract_occasion_fields(record))
    for column, items in known_items.items():
        columns[column] = json_string_or_none(items)
    return columns


def project_cancelled_columns(record: Mapping, booking_id: str) -> dict[str, Any]:
    columns = project_common_columns(record, booking_id)
    columns.update(
        {
            "cancelled_at": parse_datetime(record.get("cancelledAt")) or _utcnow(),
            "cancellation_reason": first_truthy(
                record.get("cancellationReason"), record.get("cancelReason")
            ),
            "refund_amount": to_number_or_none(record.get("refundAmount")),
            "refund_status": record.get("refundStatus"),
        }
    )
    return columns


def project_completed_columns(record: Mapping, booking_id: str) -> dict[str, Any]:
    pricing = record.get("pricingData")
    pricing = pricing if isinstance(pricing, Mapping) else {}
    discount_summary = record.get("discountSummary")
    discount_summary = discount_summary if isinstance(discount_summary, Mapping) else {}
    capacity = record.get("theaterCapacity")
    capacity = capacity if isinstance(capacity, Mapping) else {}
    is_manual = record.get("isManualBooking")

    columns = project_common_columns(record, booking_id)
    columns["payment_status"] = record.get("paymentStatus") or "paid"
    columns.update(
        {
            "completed_at": parse_datetime(record.get("completedAt")) or _utcnow(),
            "booking_status": record.get("status") or "completed",
            "ticket_number": optional_str(record.get("ticketNumber")),
            "payment_mode": record.get("paymentMode") or None,
            "advance_payment_method": record.get("advancePaymentMethod") or None,
            "user_id": optional_str(record.get("userId")),
            "admin_name": record.get("adminName") or None,
            "is_manual_booking": is_manual if isinstance(is_manual, bool) else None,
            "base_capacity": to_int_or_none(
                first_present(record.get("baseCapacity"), capacity.get("baseCapacity"))
            ),
            "theater_capacity_min": to_int_or_none(capacity.get("min")),
            "theater_capacity_max": to_int_or_none(capacity.get("max")),
            "theater_base_price": to_number_or_none(pricing.get("theaterBasePrice")),
            "extra_guest_fee": to_number_or_none(
                first_present(record.get("extraGuestFee"), pricing.get("extraGuestFee"))
            ),
            "extra_guests_count": to_int_or_none(record.get("extraGuestsCount")),
            "extra_guest_charges": to_number_or_none(record.get("extraGuestCharges")),
            "slot_booking_fee": to_number_or_none(
                first_present(record.get("slotBookingFee"), pricing.get("slotBookingFee"))
            ),
            "penalty_charges": to_number_or_none(
                first_present(
                    record.get("penaltyCharges"),
                    record.get("penaltyCharge"),
                    pricing.get("penaltyCharges"),
                    pricing.get("penaltyCharge"),
                )
            ),
            "penalty_reason": record.get("penaltyReason") or None,
            "penalty_charge": to_number_or_none(record.get("penaltyCharge")),
            "coupon_type": first_present(record.get("couponType"), discount_summary.get("type")),
            "coupon_value": to_number_or_none(
                first_present(record.get("couponValue"), discount_summary.get("value"))
            ),
        }
    )
    return columns


def legacy_columns(model, columns: Mapping[str, Any]) -> dict[str, Any]:
    """Restrict a full projection to the table's first-version column set"""
    baseline = set(model.__baseline_columns__)
    return {key: value for key, value in columns.items() if key in baseline}
