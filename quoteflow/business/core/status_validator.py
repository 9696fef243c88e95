from __future__ import annotations

from quoteflow.errors import InvalidTransition


class OrderStatusValidator:
    """
    Order lifecycle adjacency table.

    A transition to the current status is always allowed; callers treat it
    as a no-op.
    """

    STATUSES = (
        "pending",
        "confirmed",
        "in_production",
        "ready_for_dispatch",
        "dispatched",
        "delivered",
        "cancelled",
    )
    TERMINAL = {"delivered", "cancelled"}

    _NEXT = {
        "pending": {"confirmed", "cancelled"},
        "confirmed": {"in_production", "cancelled"},
        "in_production": {"ready_for_dispatch", "cancelled"},
        "ready_for_dispatch": {"dispatched", "cancelled"},
        "dispatched": {"delivered"},
        "delivered": set(),
        "cancelled": set(),
    }

    @classmethod
    def can_transition(cls, current_status: str, new_status: str) -> bool:
        if current_status == new_status:
            return True
        return new_status in cls._NEXT.get(current_status, set())

    @classmethod
    def allowed_next(cls, current_status: str) -> set[str]:
        return set(cls._NEXT.get(current_status, set()))

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return status in cls.TERMINAL


class QuotationStatusValidator:
    """Quotation moves are driven by named events rather than free-form targets."""

    PRE_ACCEPTANCE = {"draft", "created", "uploaded", "sent"}

    # event -> (allowed source statuses, target status)
    _EVENTS = {
        "send": (PRE_ACCEPTANCE, "sent"),
        "accept": ({"sent"}, "accepted"),
        "reject": (PRE_ACCEPTANCE, "rejected"),
        "create_order": ({"accepted"}, "order_created"),
    }

    @classmethod
    def target_for(cls, event: str, current_status: str) -> str:
        sources, target = cls._EVENTS[event]
        if current_status not in sources:
            raise InvalidTransition("quotation", current_status, target)
        return target


class InquiryStatusValidator:
    _NEXT = {
        "pending": {"reviewed", "quoted"},
        "reviewed": {"quoted"},
        "quoted": {"accepted", "rejected"},
        "accepted": set(),
        "rejected": set(),
    }

    @classmethod
    def can_transition(cls, current_status: str, new_status: str) -> bool:
        if current_status == new_status:
            return True
        return new_status in cls._NEXT.get(current_status, set())

    @classmethod
    def check(cls, current_status: str, new_status: str) -> None:
        if not cls.can_transition(current_status, new_status):
            raise InvalidTransition("inquiry", current_status, new_status)
