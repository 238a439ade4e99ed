"""
Payments app: escrow, creator earnings and payee onboarding.

This app handles:
- Escrow holds, releases and refunds against the payment gateway
- The append-only CreatorEarning ledger
- Creator payee account onboarding
- Gateway webhook intake and reconciliation

Related apps:
    - contracts: Contract and Milestone that escrow payments belong to
    - marketplace: Brand, Creator and content performance metrics

Usage:
    from payments.services import EscrowService
    from payments.adapters import get_payment_gateway

    service = EscrowService(get_payment_gateway())
    result = service.create_escrow_payment(brand_user, contract_id, amount)
    service.release_escrow_payment(brand_user, result.escrow_payment.id)
"""
