"""Order item repository: match inputs and match records"""

from typing import List, Optional, Sequence

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.order import Order as OrderModel, OrderItem as OrderItemModel
from matching.ports import (
    OrderItemStorePort,
    OrderItemRecord,
    MatchInput,
    MatchRecordUpdate,
    PersistenceError,
    NotFound,
)
from matching.status import MatchStatus


def to_item_record(row: OrderItemModel) -> OrderItemRecord:
    """Map an order_items row onto an OrderItemRecord."""
    return OrderItemRecord(
        id=row.id,
        order_id=row.order_id,
        position=row.position,
        input=MatchInput(
            item_code=row.item_number,
            description=row.description,
            quantity=row.quantity,
            image_url=row.image_url,
        ),
        matched_product_id=row.matched_product_id,
        confidence=row.match_confidence,
        status=MatchStatus(row.match_status),
        resolved_price=row.final_price,
        updated_at=row.updated_at,
    )


class OrderItemRepository(OrderItemStorePort):
    """Repository for order_items reads and match record writes.

    Every write runs in its own transaction: a match record is either fully
    replaced or left untouched.
    """

    def __init__(self, db: Session):
        """Initialize repository with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def read_item(self, item_id: str) -> Optional[OrderItemRecord]:
        """Read an order item with its current match record.

        Raises:
            PersistenceError: If the query fails
        """
        try:
            row = self.db.get(OrderItemModel, item_id)
            if row is not None:
                self.db.refresh(row)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to read order item {item_id}: {e}") from e
        return to_item_record(row) if row is not None else None

    def write_match(self, item_id: str, update: MatchRecordUpdate) -> None:
        """Overwrite the match record columns of an order item.

        Raises:
            NotFound: If the order item does not exist
            PersistenceError: If the update or commit fails
        """
        try:
            row = self.db.get(OrderItemModel, item_id)
            if row is None:
                raise NotFound(f"Order item {item_id} not found")

            row.matched_product_id = update.matched_product_id
            row.match_confidence = update.confidence
            row.match_status = update.status.value
            row.final_price = update.resolved_price
            row.updated_at = update.updated_at
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to write match for order item {item_id}: {e}") from e

    def list_item_ids(self, order_id: str) -> List[str]:
        """List item ids of an order in position order.

        Raises:
            PersistenceError: If the query fails
        """
        query = (
            select(OrderItemModel.id)
            .where(OrderItemModel.order_id == order_id)
            .order_by(OrderItemModel.position)
        )
        try:
            return list(self.db.execute(query).scalars().all())
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to list items of order {order_id}: {e}") from e

    def create_items(self, order_id: str, inputs: Sequence[MatchInput]) -> List[str]:
        """Create pending order items after the order's last position.

        Returns the generated ids in position order, so callers can match the
        items without reading them back one by one.

        Raises:
            NotFound: If the order does not exist
            PersistenceError: If the insert or commit fails
        """
        try:
            if self.db.get(OrderModel, order_id) is None:
                raise NotFound(f"Order {order_id} not found")

            last_position = self.db.execute(
                select(func.coalesce(func.max(OrderItemModel.position), 0))
                .where(OrderItemModel.order_id == order_id)
            ).scalar_one()

            rows = [
                OrderItemModel(
                    order_id=order_id,
                    position=last_position + offset,
                    item_number=input_data.item_code,
                    description=input_data.description,
                    image_url=input_data.image_url,
                    quantity=input_data.quantity,
                    match_status=MatchStatus.PENDING.value,
                )
                for offset, input_data in enumerate(inputs, start=1)
            ]
            self.db.add_all(rows)
            self.db.flush()
            item_ids = [row.id for row in rows]
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to create items for order {order_id}: {e}") from e
        return item_ids
