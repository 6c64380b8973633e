"""Abstract base class defining the balance oracle interface."""

from abc import ABC, abstractmethod

from wallet_registry.models import BalancePair

__all__ = ["BalanceGetter"]


class BalanceGetter(ABC):
    """Looks up balances of addresses against a ledger.

    The registry only consults a balance getter while scanning ahead
    during wallet creation, to find how many derived addresses have
    ever been used.
    """

    @abstractmethod
    def get_balance_of_addrs(self, addrs: list[str]) -> list[BalancePair]:
        """Return the balance of each address.

        Args:
            addrs: Addresses to look up.

        Returns:
            One BalancePair per address, in the same order.

        Raises:
            Exception: Any lookup failure is propagated to the caller
                unchanged and aborts wallet creation.
        """
        raise NotImplementedError
