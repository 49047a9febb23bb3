"""
Core Abstractions

Interfaces for the collaborators the refinement loop consumes. The loop
depends on these, never on a concrete provider (Dependency Inversion).
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from pydantic import BaseModel


class OracleResponse(BaseModel):
    """Normalized result of one oracle call."""

    text: str = ""
    ok: bool = False

    @classmethod
    def failure(cls) -> "OracleResponse":
        return cls(text="", ok=False)


# ============================================================================
# Oracle (Dependency Inversion Principle)
# ============================================================================

class IOracle(ABC):
    """
    Abstract black-box text generator.

    Implementations wrap provider SDKs or LangChain chat models. A call
    never raises for transport problems; it reports ``ok=False`` instead.
    """

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        style_hint: Optional[str] = None,
        model_hint: Optional[str] = None,
    ) -> OracleResponse:
        """
        Generate text for a prompt.

        Args:
            prompt: Full prompt text
            style_hint: Generation style name (see core.styles)
            model_hint: Preferred model identifier

        Returns:
            OracleResponse with the text and an ok flag
        """
        pass


# ============================================================================
# Section Extraction
# ============================================================================

class ISectionExtractor(ABC):
    """Pulls a named, tag-delimited section out of raw oracle output."""

    @abstractmethod
    def extract_section(self, raw_text: str, section_name: str) -> str:
        """
        Args:
            raw_text: Raw oracle output
            section_name: Tag name, e.g. "answer"

        Returns:
            Section content, or "" if the section cannot be found
        """
        pass


# ============================================================================
# Checklist Extraction
# ============================================================================

class IChecklistExtractor(ABC):
    """
    Exhaustive itemized listing of the facts/requirements in a text.

    Used by the gap analyzer to compare two artifact versions.
    """

    @abstractmethod
    async def extract_checklist(self, source_text: str, instructions: str) -> List[str]:
        """
        Args:
            source_text: Text to list items from
            instructions: What kind of items to extract

        Returns:
            List of item strings (may be empty)
        """
        pass
