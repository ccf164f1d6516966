"""Low stock report — variants at or below the threshold, for the dashboard's alert panel."""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from inventory.stock.events import LowStockDetected, StockAdjusted, StockRestored
from inventory.stock.stock import StockRecord
from shared.domain import shopcore


@shopcore.projection
class LowStockReport:
    stock_record_id = Identifier(identifier=True, required=True)
    product_id = Identifier(required=True)
    size = String(required=True)
    current_quantity = Integer(default=0)
    threshold = Integer(default=10)
    is_critical = Boolean(default=False)  # nothing left
    detected_at = DateTime()


@shopcore.projector(projector_for=LowStockReport, aggregates=[StockRecord])
class LowStockReportProjector:
    @on(LowStockDetected)
    def on_low_stock_detected(self, event):
        repo = current_domain.repository_for(LowStockReport)
        try:
            report = repo.get(event.stock_record_id)
            report.current_quantity = event.current_quantity
            report.threshold = event.threshold
            report.is_critical = event.current_quantity == 0
            report.detected_at = event.detected_at
        except ObjectNotFoundError:
            report = LowStockReport(
                stock_record_id=event.stock_record_id,
                product_id=event.product_id,
                size=event.size,
                current_quantity=event.current_quantity,
                threshold=event.threshold,
                is_critical=event.current_quantity == 0,
                detected_at=event.detected_at,
            )
        repo.add(report)

    @on(StockAdjusted)
    def on_stock_adjusted(self, event):
        self._refresh(event.stock_record_id, event.new_quantity)

    @on(StockRestored)
    def on_stock_restored(self, event):
        self._refresh(event.stock_record_id, event.new_quantity)

    def _refresh(self, stock_record_id, new_quantity):
        """Drop the variant from the report once it is restocked above its threshold."""
        repo = current_domain.repository_for(LowStockReport)
        try:
            report = repo.get(stock_record_id)
        except ObjectNotFoundError:
            return  # Not in the report

        if new_quantity > report.threshold:
            repo._dao.delete(report)
        else:
            report.current_quantity = new_quantity
            report.is_critical = new_quantity == 0
            repo.add(report)
