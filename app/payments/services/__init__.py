"""
Payment services.

- EscrowService: Holds, releases and refunds contract funds
- EarningService: Performance earnings and earnings summaries
- PayeeService: Creator payee account onboarding
- fees: Platform fee arithmetic shared by all of the above

Usage:
    from payments.services import EscrowService

    service = EscrowService(gateway)
    result = service.create_escrow_payment(brand_user, contract_id, Decimal("500"))
"""

from payments.services.earning_service import EarningResult, EarningService
from payments.services.escrow_service import EscrowCreationResult, EscrowService
from payments.services.fees import (
    FeeSplit,
    calculate_creator_amount,
    calculate_platform_fee,
    split_amount,
)
from payments.services.payee_service import PayeeService

__all__ = [
    "EarningResult",
    "EarningService",
    "EscrowCreationResult",
    "EscrowService",
    "FeeSplit",
    "PayeeService",
    "calculate_creator_amount",
    "calculate_platform_fee",
    "split_amount",
]
