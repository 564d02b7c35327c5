"""Evidence data models."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class EvidenceMethod(str, Enum):
    """Off-chain evidence sources a controller claim can be checked against."""
    DNS_TXT = "dns-txt"
    DID_JSON = "did-json"

    @classmethod
    def values(cls) -> tuple:
        return tuple(m.value for m in cls)


@dataclass(frozen=True)
class EvidenceResult:
    """Result of a single evidence lookup.

    Attributes:
        found: True if the evidence names the expected controller.
        details: Human-readable detail for logging / error messages.
        matched_controller: The controller value as written in the evidence.
    """
    found: bool
    details: Optional[str] = None
    matched_controller: Optional[str] = None


class EvidenceChecker(ABC):
    """One implementation per EvidenceMethod variant.

    Checkers never raise for missing evidence or transport failures; they
    report them through EvidenceResult so the caller decides how to fail.
    """

    method: EvidenceMethod

    @abstractmethod
    async def find(self, domain: str, expected_controller: str) -> EvidenceResult:
        """Look for the expected controller in this source for a domain."""
