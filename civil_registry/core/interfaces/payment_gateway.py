"""
Contract: Payment Gateway

Creates hosted checkout sessions and reports their completion.
Any processor (Stripe, a mobile-money aggregator...) must honour
this contract.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class CheckoutSession:
    """A checkout session opened at the processor."""
    session_id: str
    url: str | None = None


@dataclass
class CheckoutStatus:
    """Processor-side view of a checkout session."""
    session_id: str
    paid: bool
    amount_total: int | None = None          # minor units, as reported by the processor
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class PaymentEvent:
    """A verified push notification from the processor."""
    event_type: str                          # e.g. "checkout.session.completed"
    session_id: str | None
    paid: bool
    metadata: dict[str, str] = field(default_factory=dict)


class IPaymentGateway(ABC):
    """
    Port: Payment Gateway

    The workflow core never talks to the processor directly; it opens
    sessions and polls or receives their outcome through this port.
    """

    @abstractmethod
    def create_checkout_session(
        self,
        amount: float,
        currency: str,
        description: str,
        metadata: dict[str, str],
    ) -> CheckoutSession:
        """
        Open a checkout session.

        Args:
            amount: Amount in major units (converted to minor units by the adapter).
            currency: ISO currency code.
            description: Line item label shown to the payer.
            metadata: Correlation data echoed back by the processor.

        Returns:
            CheckoutSession with the processor session id.
        """
        ...

    @abstractmethod
    def retrieve_checkout_session(self, session_id: str) -> CheckoutStatus:
        """
        Fetch the current state of a session.

        Args:
            session_id: Identifier returned by `create_checkout_session`.

        Returns:
            CheckoutStatus telling whether the session is paid.
        """
        ...

    @abstractmethod
    def parse_event(self, payload: bytes, signature: str | None) -> PaymentEvent:
        """
        Verify and decode a webhook delivery.

        Args:
            payload: Raw request body.
            signature: Signature header sent by the processor.

        Returns:
            PaymentEvent. Raises ValueError if the signature does not verify.
        """
        ...
