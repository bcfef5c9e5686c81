"""
Payment gateway adapters.

Each supported PaymentMethod has one gateway that knows where to send the
student to pay and how to confirm settlement. The real provider APIs are not
integrated yet, so both gateways approve every settlement.
"""

from typing import Dict, Optional

from gollisconnect.core.config import settings
from gollisconnect.core.exceptions import ValidationError
from gollisconnect.core.logging_config import logger
from gollisconnect.models.payment import Payment, PaymentMethod


class PaymentGateway:
    """Base class for settlement providers"""

    method: PaymentMethod
    name: str = "gateway"

    def __init__(self, payment_url: str):
        self.payment_url = payment_url.rstrip("/")

    def build_payment_url(self, transaction_id: str) -> str:
        return f"{self.payment_url}/{transaction_id}"

    async def verify(self, payment: Payment) -> bool:
        """
        Ask the provider whether ``payment`` has settled.

        Returns True when approved and False when rejected. Transport or
        provider failures raise UpstreamServiceError.
        """
        raise NotImplementedError


class TelesomZaadGateway(PaymentGateway):
    """Telesom ZAAD mobile money"""

    method = PaymentMethod.TELESOM_ZAAD
    name = "Telesom ZAAD"

    def __init__(self, payment_url: Optional[str] = None):
        super().__init__(payment_url or settings.TELESOM_ZAAD_PAYMENT_URL)

    async def verify(self, payment: Payment) -> bool:
        # TODO: call the ZAAD merchant status API once merchant credentials are issued
        logger.info(f"[Payment] {self.name} settlement approved for {payment.transaction_id}")
        return True


class DahabshiilGateway(PaymentGateway):
    """Dahabshiil eDahab transfers"""

    method = PaymentMethod.DAHABSHIIL
    name = "Dahabshiil"

    def __init__(self, payment_url: Optional[str] = None):
        super().__init__(payment_url or settings.DAHABSHIIL_PAYMENT_URL)

    async def verify(self, payment: Payment) -> bool:
        logger.info(f"[Payment] {self.name} settlement approved for {payment.transaction_id}")
        return True


class GatewayRegistry:
    """Maps a payment method to its gateway"""

    def __init__(self, gateways: Optional[Dict[PaymentMethod, PaymentGateway]] = None):
        self._gateways: Dict[PaymentMethod, PaymentGateway] = dict(gateways or {})

    def register(self, gateway: PaymentGateway) -> None:
        self._gateways[gateway.method] = gateway

    def get(self, method: PaymentMethod) -> PaymentGateway:
        gateway = self._gateways.get(method)
        if gateway is None:
            raise ValidationError(f"Unsupported payment method: {getattr(method, 'value', method)}", field="paymentMethod")
        return gateway

    @property
    def methods(self):
        return list(self._gateways)


def build_default_registry() -> GatewayRegistry:
    registry = GatewayRegistry()
    registry.register(TelesomZaadGateway())
    registry.register(DahabshiilGateway())
    return registry


gateway_registry = build_default_registry()
