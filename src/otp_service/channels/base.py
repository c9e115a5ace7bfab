"""Base delivery channel — abstract interface every transport must implement."""

from abc import ABC, abstractmethod


class DeliveryChannel(ABC):
    """Transmits a passcode out-of-band to the owner of an identifier.

    The OTP core knows nothing about providers; it only awaits
    :meth:`send` and treats anything other than ``True`` as a failed
    delivery.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short channel name (``"sms"``, ``"email"``) used in routing and logs."""

    @abstractmethod
    async def send(self, identifier: str, code: str) -> bool:
        """Deliver *code* to *identifier*.

        Parameters
        ----------
        identifier:
            Normalised phone number or email address.
        code:
            The passcode to transmit.

        Returns ``True`` once the provider has accepted the message.
        """

    async def close(self) -> None:
        """Release any transport resources (HTTP clients, connections)."""
