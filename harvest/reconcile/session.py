"""
Workstation - one vendor round (company x round number) of the day.

Holds the round's conversion result, invoice merge and adjustments, and
exposes them to the aggregator as a SessionSnapshot.
"""

import logging
import uuid
from datetime import date
from typing import Iterable, Optional

from .converter import ConversionResult, convert_company
from .errors import ProcessingInProgress, ReconcileError
from .invoices import MergeResult, build_invoice_map, merge_invoices
from .matcher import ProductMatcher
from .models import ExcludedOrder, ManualOrder, PricingConfig, SessionAdjustment
from .report import apply_adjustments_to_summary
from .settlement import SessionSnapshot, make_adjustment, session_total
from .sheets import Grid

logger = logging.getLogger(__name__)


def new_session_id(company_name: str, round_no: int) -> str:
    return f"{company_name}-{round_no}-{uuid.uuid4().hex[:8]}"


class Workstation:
    """
    One vendor round.

    Runs never overlap: a run started while another is in flight raises
    ProcessingInProgress instead of queueing. The guard covers one
    instance only, such as a matcher or oracle callback re-entering the
    same workstation. The API builds a fresh Workstation per request, so
    separate requests never contend.
    """

    def __init__(self, config: PricingConfig, company_name: str, round_no: int = 1):
        self.config = config
        self.company_name = company_name
        self.round = round_no
        self.session_id = new_session_id(company_name, round_no)
        self.master_grid: Optional[Grid] = None
        self.result: Optional[ConversionResult] = None
        self.merge_result: Optional[MergeResult] = None
        self.adjustments: list[SessionAdjustment] = []
        self._processing = False

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def excluded(self) -> list[ExcludedOrder]:
        return self.result.excluded if self.result else []

    def _begin(self) -> None:
        if self._processing:
            raise ProcessingInProgress(f"{self.company_name} {self.round}차 is already processing")
        self._processing = True

    def run(
        self,
        grid: Optional[Grid],
        fake_orders: Optional[set[str]] = None,
        manual_orders: Optional[Iterable[ManualOrder]] = None,
        matcher: Optional[ProductMatcher] = None,
        today: Optional[date] = None,
    ) -> Optional[ConversionResult]:
        """
        Convert the master sheet for this vendor.

        A new run discards the previous merge, which was made against the
        old rows.
        """
        self._begin()
        try:
            self.master_grid = grid
            self.result = convert_company(
                self.config, grid, self.company_name,
                fake_orders=fake_orders,
                manual_orders=manual_orders,
                matcher=matcher,
                today=today,
            )
            self.merge_result = None
            return self.result
        finally:
            self._processing = False

    def merge(self, invoice_grid: Grid, today: Optional[date] = None) -> MergeResult:
        """Stamp tracking numbers onto this vendor's master-sheet rows."""
        if self.master_grid is None:
            raise ReconcileError(f"{self.company_name} {self.round}차 has no order sheet to merge")
        self._begin()
        try:
            invoice_map = build_invoice_map(invoice_grid, self.company_name)
            self.merge_result = merge_invoices(
                self.master_grid, invoice_map, self.company_name,
                skip_group_check=False,
                today=today,
            )
            return self.merge_result
        finally:
            self._processing = False

    def add_adjustment(self, amount: int, label: Optional[str] = None) -> SessionAdjustment:
        adjustment = make_adjustment(amount, label)
        self.adjustments.append(adjustment)
        return adjustment

    def remove_adjustment(self, adjustment_id: str) -> None:
        self.adjustments = [a for a in self.adjustments if a.id != adjustment_id]

    @property
    def order_total(self) -> int:
        return self.result.order_total if self.result else 0

    @property
    def total(self) -> int:
        summary = self.result.summary if self.result else {}
        return session_total(summary, self.adjustments)

    def deposit_summary(self) -> str:
        """Deposit text with this round's adjustments folded in."""
        if self.result is None or self.result.is_empty:
            return ""
        return apply_adjustments_to_summary(self.result.deposit_summary, self.order_total, self.adjustments)

    def snapshot(self) -> SessionSnapshot:
        result = self.result if self.result and not self.result.is_empty else None
        return SessionSnapshot(
            id=self.session_id,
            company=self.company_name,
            round=self.round,
            total=self.total,
            summary_excel=result.deposit_summary_excel if result else "",
            order_rows=list(result.rows) if result else [],
            invoice_rows=list(self.merge_result.rows) if self.merge_result else [],
            upload_rows=list(self.merge_result.upload_rows) if self.merge_result else [],
            invoice_header=list(self.merge_result.header) if self.merge_result else None,
        )

    def reset(self) -> str:
        """Discard every output of this round and mint a fresh session id."""
        self.master_grid = None
        self.result = None
        self.merge_result = None
        self.adjustments = []
        self._processing = False
        self.session_id = new_session_id(self.company_name, self.round)
        logger.info(f"[{self.company_name}] round {self.round} reset -> {self.session_id}")
        return self.session_id
