"""
Similarity oracles - the fuzzy last resort of the product matcher.

The matcher doesn't know or care what answers the question; it only
needs "given this text and these labels, which label (if any)?".
Production wiring uses the Claude client in backend.core.llm.
"""

from abc import ABC, abstractmethod
from typing import Optional

ORACLE_PROMPT = (
    "주문서 상품명 '{raw}'와 가장 일치하는 품목을 골라줘. 품목 리스트:\n"
    "{names}\n"
    "정확한 이름만 답변해줘."
)


def build_prompt(raw_text: str, candidates: list[str]) -> str:
    return ORACLE_PROMPT.format(raw=raw_text, names="\n".join(candidates))


class SimilarityOracle(ABC):
    """
    Abstract interface for the external text-similarity service.

    Implementations may raise on transport errors; the matcher treats
    any exception as "no opinion".
    """

    @abstractmethod
    def choose(self, raw_text: str, candidates: list[str]) -> Optional[str]:
        """
        Pick the candidate label that best matches raw_text.

        Args:
            raw_text: Product text from the order line
            candidates: Display names to choose from

        Returns:
            The service's raw answer (expected to echo one candidate), or None
        """
        pass


class StaticOracle(SimilarityOracle):
    """
    In-memory oracle for tests and offline runs.

    Answers from a fixed raw-text -> label mapping and records every call.
    """

    def __init__(self, answers: Optional[dict[str, str]] = None, default: Optional[str] = None):
        self.answers = dict(answers or {})
        self.default = default
        self.calls: list[tuple[str, list[str]]] = []

    def choose(self, raw_text: str, candidates: list[str]) -> Optional[str]:
        self.calls.append((raw_text, list(candidates)))
        return self.answers.get(raw_text, self.default)
