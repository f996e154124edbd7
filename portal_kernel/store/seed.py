"""Demonstration obligations used when no obligations were ever stored."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from portal_kernel.domain.entities import ObligationStatus, TaxObligationRecord

# Placeholder owner; the first CLIENT to register claims these obligations.
DEMO_CLIENT_USER_ID = "demo-client"


def demo_obligations(
    owner_user_id: str = DEMO_CLIENT_USER_ID,
) -> dict[str, TaxObligationRecord]:
    """The three sample obligations shown on a fresh client dashboard."""
    deadline = date(2024, 6, 20)
    obligations = (
        TaxObligationRecord(
            id="t1",
            owner_user_id=owner_user_id,
            name="IVA - Declaração Periódica",
            deadline=deadline,
            amount=Decimal("1450.00"),
            status=ObligationStatus.PENDING,
        ),
        TaxObligationRecord(
            id="t2",
            owner_user_id=owner_user_id,
            name="TSU - Segurança Social",
            deadline=deadline,
            amount=Decimal("320.50"),
            status=ObligationStatus.PENDING,
        ),
        TaxObligationRecord(
            id="t3",
            owner_user_id=owner_user_id,
            name="Retenção na Fonte IRS",
            deadline=deadline,
            amount=Decimal("150.00"),
            status=ObligationStatus.PAID,
        ),
    )
    return {o.id: o for o in obligations}
