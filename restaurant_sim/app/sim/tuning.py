from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SimulationTuning:
    """
    Every probability and range used by the day loop.

    Ranges are inclusive (low, high). Times of day are minutes after midnight.
    """

    # staffing
    staffing_fraction: tuple[float, float] = (0.6, 0.8)
    morning_start_minute: int = 8 * 60
    shift_change_minute: int = 16 * 60
    evening_end_minute: int = 23 * 60 + 59
    shift_jitter_minutes: int = 60

    # reservations
    reservations_per_day: tuple[int, int] = (5, 14)
    reservation_first_minute: int = 11 * 60
    reservation_last_minute: int = 21 * 60
    reservation_slot_minutes: int = 15
    no_show_probability: float = 0.0

    # walk-ins
    walk_ins_per_day: tuple[int, int] = (15, 24)
    walk_in_hours: tuple[int, int] = (11, 22)
    walk_in_items: tuple[int, int] = (1, 9)
    walk_in_quantity: tuple[int, int] = (1, 3)
    customer_probability: float = 0.7
    walk_in_modifier_probability: float = 0.3
    note_probability: float = 0.2
    discount_probability: float = 0.25

    # reservation orders
    reservation_order_delay_minutes: int = 15
    items_per_guest: float = 1.5
    reservation_modifier_probability: float = 0.4
    auto_gratuity_percent: int = 18
    auto_gratuity_party_size: int = 6

    # settlement
    card_probability: float = 0.9
    tip_probability: float = 0.8
    tip_percent: tuple[int, int] = (15, 24)

    # refunds
    refunds_per_day: tuple[int, int] = (1, 3)
    full_refund_probability: float = 0.7
    partial_refund_percent: tuple[int, int] = (25, 74)


DEFAULT_TUNING = SimulationTuning()
