"""
Product Matcher - resolves order-line text to a catalog entry.

Layers, first hit wins:
1. Vendor pre-filter (e.g. A-grade vs regular apples)
2. Single remaining candidate
3. Site product name substring (longest)
4. Legacy alias substring (longest)
5. Normalized display-name substring (longest)
6. Similarity oracle (only with 2+ candidates)
7. Deterministic catalog cascade (find_product_config)

Results are memoized per (company, text) for one run. The cache object
belongs to the caller and is thrown away with the run.
"""

import logging
from typing import Optional

from .catalog import find_product_config, normalize_product_text, resolve_match
from .models import CatalogMatch, MatchMethod, PricingConfig, ProductPricing
from .oracle import SimilarityOracle
from .vendors import get_vendor_profile

logger = logging.getLogger(__name__)

Candidate = tuple[str, ProductPricing]


class MatchCache:
    """Per-run memo of (company, raw text) -> match (None included)."""

    def __init__(self):
        self._entries: dict[tuple[str, str], Optional[CatalogMatch]] = {}
        self.hits = 0

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: tuple[str, str]) -> Optional[CatalogMatch]:
        self.hits += 1
        return self._entries[key]

    def put(self, key: tuple[str, str], match: Optional[CatalogMatch]) -> Optional[CatalogMatch]:
        self._entries[key] = match
        return match


def _longest(
    candidates: list[Candidate],
    text: str,
    keywords_of,
) -> Optional[Candidate]:
    """Candidate whose keyword is the longest substring of text."""
    best: Optional[Candidate] = None
    best_len = -1
    for candidate in candidates:
        for keyword in keywords_of(candidate[1]):
            if keyword and keyword.lower() in text and len(keyword) > best_len:
                best = candidate
                best_len = len(keyword)
    return best


class ProductMatcher:
    """
    Oracle-backed matcher for one classification run.

    Args:
        config: Catalog snapshot (read-only)
        oracle: Optional similarity service; None skips that layer
        cache: Memo to share across calls; a fresh one by default
    """

    def __init__(
        self,
        config: PricingConfig,
        oracle: Optional[SimilarityOracle] = None,
        cache: Optional[MatchCache] = None,
    ):
        self.config = config
        self.oracle = oracle
        self.cache = cache if cache is not None else MatchCache()
        self.oracle_calls = 0

    def match(self, company_name: str, raw_text: str) -> Optional[CatalogMatch]:
        cache_key = (company_name, raw_text)
        if cache_key in self.cache:
            return self.cache.get(cache_key)
        return self.cache.put(cache_key, self._match_uncached(company_name, raw_text))

    def _match_uncached(self, company_name: str, raw_text: str) -> Optional[CatalogMatch]:
        company = self.config.get(company_name)
        if company is None or not company.products:
            return None

        candidates: list[Candidate] = list(company.products.items())
        profile = get_vendor_profile(company_name)
        if profile.candidate_filter is not None:
            candidates = profile.candidate_filter(raw_text, candidates)

        if len(candidates) == 1:
            key, product = candidates[0]
            return resolve_match(key, product, MatchMethod.SINGLE_PRODUCT)

        lower_text = raw_text.lower()

        hit = _longest(candidates, lower_text, lambda p: [p.site_product_name] if p.site_product_name else [])
        if hit:
            return resolve_match(hit[0], hit[1], MatchMethod.SITE_NAME)

        hit = _longest(candidates, lower_text, lambda p: p.aliases or [])
        if hit:
            return resolve_match(hit[0], hit[1], MatchMethod.ALIAS)

        hit = self._normalized_match(candidates, raw_text)
        if hit:
            return resolve_match(hit[0], hit[1], MatchMethod.NORMALIZED)

        if len(candidates) > 1:
            hit = self._ask_oracle(company_name, raw_text, candidates)
            if hit:
                return resolve_match(hit[0], hit[1], MatchMethod.ORACLE)

        return find_product_config(self.config, company_name, raw_text)

    def _normalized_match(self, candidates: list[Candidate], raw_text: str) -> Optional[Candidate]:
        normalized_text = normalize_product_text(raw_text)
        best: Optional[Candidate] = None
        best_len = -1
        for candidate in candidates:
            norm_display = normalize_product_text(candidate[1].display_name)
            if norm_display and norm_display in normalized_text and len(norm_display) > best_len:
                best = candidate
                best_len = len(norm_display)
        return best

    def _ask_oracle(self, company_name: str, raw_text: str, candidates: list[Candidate]) -> Optional[Candidate]:
        """
        One oracle round trip. Any failure (transport, empty answer, a name
        that is not a candidate) is logged and returns None.
        """
        if self.oracle is None:
            return None

        names = [product.display_name for _, product in candidates]
        self.oracle_calls += 1
        try:
            answer = self.oracle.choose(raw_text, names)
        except Exception as e:
            logger.warning(f"Oracle unavailable for [{company_name}] '{raw_text}': {e}")
            return None

        chosen = (answer or "").strip()
        for candidate in candidates:
            if candidate[1].display_name == chosen:
                logger.debug(f"Oracle matched [{company_name}] '{raw_text}' -> '{chosen}'")
                return candidate

        logger.info(f"Oracle gave no usable answer for [{company_name}] '{raw_text}': {chosen!r}")
        return None
