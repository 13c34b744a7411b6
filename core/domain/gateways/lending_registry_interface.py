from __future__ import annotations

from abc import ABC, abstractmethod


class LendingRegistry(ABC):
    """
    The external lending registry the factory resolves pools through.

    `address` is what gets bound into every strategy instance.
    """

    address: str

    @abstractmethod
    def is_live(self) -> bool:
        """
        Liveness / identity probe. False (or an exception) means the handle
        does not point at a working registry.
        """
        raise NotImplementedError

    @abstractmethod
    def get_silo(self, collateral_asset: str) -> str:
        """
        Silo (pool) managing `collateral_asset`, or the zero address.
        """
        raise NotImplementedError

    @abstractmethod
    def get_share_token(self, silo: str, asset: str) -> str:
        """
        Collateral share token of `asset` inside `silo`, or the zero address
        when the asset is not part of that silo.
        """
        raise NotImplementedError
