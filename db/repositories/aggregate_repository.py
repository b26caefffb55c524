"""
Recomputation of derived aggregates after an import.

Both recomputes rebuild their values from the underlying rows, so running
one twice against the same rows yields the same result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.bulk_import import WriteOp
from db.models.inventory import CurrentInventory, TransactionHistory
from db.repositories.errors import RecordWriteError
from db.repositories.estate_record_repository import build_write_statement

logger = logging.getLogger(__name__)

_RESTOCK_TYPES = {"restock", "restocking"}
_DEFAULT_UNIT = "kg"

_PROCESSING_TOTALS_SQL = text(
    """
    WITH ordered AS (
        SELECT
            id,
            ROUND(COALESCE(dry_parch, 0) / NULLIF(CAST(:bag_weight AS numeric), 0), 2) AS dry_p_bags,
            ROUND(COALESCE(dry_cherry, 0) / NULLIF(CAST(:bag_weight AS numeric), 0), 2) AS dry_cherry_bags,
            SUM(COALESCE(crop_today, 0)) OVER w AS crop_todate,
            SUM(COALESCE(ripe_today, 0)) OVER w AS ripe_todate,
            SUM(COALESCE(green_today, 0)) OVER w AS green_todate,
            SUM(COALESCE(float_today, 0)) OVER w AS float_todate,
            SUM(COALESCE(dry_parch, 0)) OVER w AS dry_p_todate,
            SUM(COALESCE(dry_cherry, 0)) OVER w AS dry_cherry_todate,
            SUM(COALESCE(ROUND(COALESCE(dry_parch, 0) / NULLIF(CAST(:bag_weight AS numeric), 0), 2), 0)) OVER w
                AS dry_p_bags_todate,
            SUM(COALESCE(ROUND(COALESCE(dry_cherry, 0) / NULLIF(CAST(:bag_weight AS numeric), 0), 2), 0)) OVER w
                AS dry_cherry_bags_todate,
            CASE WHEN COALESCE(crop_today, 0) > 0
                THEN ROUND(COALESCE(ripe_today, 0) / crop_today * 100, 2) ELSE 0 END AS ripe_percent,
            CASE WHEN COALESCE(crop_today, 0) > 0
                THEN ROUND(COALESCE(green_today, 0) / crop_today * 100, 2) ELSE 0 END AS green_percent,
            CASE WHEN COALESCE(crop_today, 0) > 0
                THEN ROUND(COALESCE(float_today, 0) / crop_today * 100, 2) ELSE 0 END AS float_percent,
            CASE WHEN COALESCE(ripe_today, 0) > 0
                THEN ROUND(COALESCE(wet_parchment, 0) / ripe_today * 100, 2) ELSE 0 END AS fr_wp_percent,
            CASE WHEN COALESCE(wet_parchment, 0) > 0
                THEN ROUND(COALESCE(dry_parch, 0) / wet_parchment * 100, 2) ELSE 0 END AS wp_dp_percent,
            CASE WHEN COALESCE(green_today, 0) + COALESCE(float_today, 0) > 0
                THEN ROUND(
                    COALESCE(dry_cherry, 0) / (COALESCE(green_today, 0) + COALESCE(float_today, 0)) * 100,
                    2
                ) ELSE 0 END AS dry_cherry_percent
        FROM processing_records
        WHERE tenant_id = :tenant_id
          AND location_id = CAST(:location_id AS uuid)
          AND coffee_type = :coffee_type
        WINDOW w AS (PARTITION BY tenant_id, location_id, coffee_type ORDER BY process_date, id)
    )
    UPDATE processing_records AS pr
    SET
        crop_todate = ordered.crop_todate,
        ripe_todate = ordered.ripe_todate,
        green_todate = ordered.green_todate,
        float_todate = ordered.float_todate,
        dry_p_todate = ordered.dry_p_todate,
        dry_cherry_todate = ordered.dry_cherry_todate,
        dry_p_bags = COALESCE(ordered.dry_p_bags, 0),
        dry_cherry_bags = COALESCE(ordered.dry_cherry_bags, 0),
        dry_p_bags_todate = ordered.dry_p_bags_todate,
        dry_cherry_bags_todate = ordered.dry_cherry_bags_todate,
        ripe_percent = ordered.ripe_percent,
        green_percent = ordered.green_percent,
        float_percent = ordered.float_percent,
        fr_wp_percent = ordered.fr_wp_percent,
        wp_dp_percent = ordered.wp_dp_percent,
        dry_cherry_percent = ordered.dry_cherry_percent
    FROM ordered
    WHERE pr.id = ordered.id
    """
)


@dataclass(frozen=True)
class StockBalance:
    quantity: float
    total_cost: float
    avg_price: float


def replay_stock(movements: list[tuple[str, float, float]]) -> StockBalance:
    """
    Fold (transaction_type, quantity, total_cost) movements in order.

    Restocks add quantity and cost. Depletions remove quantity at the running
    average cost; neither total goes below zero.
    """

    quantity = 0.0
    cost = 0.0
    for transaction_type, moved_quantity, moved_cost in movements:
        if transaction_type.lower() in _RESTOCK_TYPES:
            quantity += moved_quantity
            cost += moved_cost
            continue
        average = cost / quantity if quantity > 0 else 0.0
        quantity = max(0.0, quantity - moved_quantity)
        cost = max(0.0, cost - average * moved_quantity)

    avg_price = cost / quantity if quantity > 0 else 0.0
    return StockBalance(quantity=quantity, total_cost=cost, avg_price=avg_price)


class AggregateRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def recalculate_inventory(self, tenant_id: str, item_type: str, location_id: str | None) -> StockBalance:
        history_stmt = (
            select(
                TransactionHistory.transaction_type,
                TransactionHistory.quantity,
                TransactionHistory.total_cost,
            )
            .where(TransactionHistory.tenant_id == tenant_id)
            .where(TransactionHistory.item_type == item_type)
            .where(TransactionHistory.location_id.is_not_distinct_from(location_id))
            .order_by(TransactionHistory.transaction_date.asc(), TransactionHistory.id.asc())
        )
        unit_stmt = (
            select(CurrentInventory.unit)
            .where(CurrentInventory.tenant_id == tenant_id)
            .where(CurrentInventory.item_type == item_type)
            .where(CurrentInventory.location_id.is_not_distinct_from(location_id))
            .limit(1)
        )

        try:
            movements = [
                (str(row.transaction_type or ""), float(row.quantity or 0), float(row.total_cost or 0))
                for row in self._session.execute(history_stmt)
            ]
            unit = self._session.scalar(unit_stmt) or _DEFAULT_UNIT
            balance = replay_stock(movements)
            self._session.execute(
                build_write_statement(
                    WriteOp(
                        table=CurrentInventory.__tablename__,
                        values={
                            "item_type": item_type,
                            "quantity": balance.quantity,
                            "unit": unit,
                            "avg_price": balance.avg_price,
                            "total_cost": balance.total_cost,
                            "tenant_id": tenant_id,
                            "location_id": location_id,
                        },
                        conflict_columns=("item_type", "tenant_id", "location_id"),
                        update_columns=("quantity", "unit", "avg_price", "total_cost"),
                    )
                )
            )
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise RecordWriteError(
                f"Inventory recalculation failed item_type={item_type!r} location_id={location_id!r}"
            ) from exc

        logger.debug(
            "Recalculated inventory tenant_id=%s item_type=%r location_id=%s quantity=%.2f",
            tenant_id,
            item_type,
            location_id,
            balance.quantity,
        )
        return balance

    def recompute_processing_totals(
        self,
        tenant_id: str,
        location_id: str,
        coffee_type: str,
        bag_weight_kg: float,
    ) -> None:
        params = {
            "tenant_id": tenant_id,
            "location_id": location_id,
            "coffee_type": coffee_type,
            "bag_weight": bag_weight_kg,
        }
        try:
            self._session.execute(_PROCESSING_TOTALS_SQL, params)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise RecordWriteError(
                f"Processing totals recompute failed location_id={location_id} coffee_type={coffee_type!r}"
            ) from exc
