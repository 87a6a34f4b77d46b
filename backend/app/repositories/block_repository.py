# backend/app/repositories/block_repository.py
from __future__ import annotations

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.domain.models.block import Block


class BlockRepository:
    """
    Block(호스트 수동 차단) 레포지토리.
    """

    def __init__(self, session: Session):
        self.session = session

    def get(self, block_id: str) -> Block | None:
        return self.session.get(Block, block_id)

    def list_by_properties(self, property_ids: Sequence[str]) -> Sequence[Block]:
        if not property_ids:
            return []
        stmt = (
            select(Block)
            .where(Block.property_id.in_(property_ids))
            .order_by(Block.start_date.asc())
        )
        return self.session.execute(stmt).scalars().all()

    def list_for_property(self, property_id: str) -> Sequence[Block]:
        return self.list_by_properties([property_id])

    def create(self, data: dict) -> Block:
        block = Block(**data)
        self.session.add(block)
        self.session.flush()
        return block

    def delete(self, block: Block) -> None:
        self.session.delete(block)
        self.session.flush()
