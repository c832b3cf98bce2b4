"""
Module to contain base class for Delivery channels
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from core.entities import Digest


class DeliveryChannel(ABC):
    """
    Base interface for all delivery channels.
    """

    name: str

    @abstractmethod
    async def deliver(self, *, user_id: str, digest: Digest) -> Optional[Path]:
        """
        Deliver the digest.
        Must raise exceptions on failure (handled upstream).
        """
        raise NotImplementedError
