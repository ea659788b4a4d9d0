"""
Ordered Collection Service

Maintains dense 0..n-1 `position` sequences for parent-scoped lists:
tasks in a column, columns in a board, boards and priorities in a workspace.

Every operation:
- locks the parent row first (SELECT ... FOR UPDATE; SQLite relies on BEGIN IMMEDIATE)
- re-reads stored positions under that lock
- shifts siblings with set-based UPDATE statements before touching the moved item
- flushes but never commits; callers wrap it in utils.db.atomic()
"""

import logging
from dataclasses import dataclass, asdict
from typing import List, Optional, Sequence, Tuple, Union

from sqlalchemy import select, update, func, inspect

from models import db, Workspace, Board, BoardColumn, Task, Priority
from services.errors import NotFoundError, InvalidPositionError, ConcurrencyConflictError

logger = logging.getLogger(__name__)

ItemId = Union[str, int]


@dataclass
class PositionChange:
    """Where an item was and where it ended up."""
    item_id: ItemId
    from_scope: ItemId
    to_scope: ItemId
    from_position: int
    to_position: int

    @property
    def moved(self) -> bool:
        return self.from_scope != self.to_scope or self.from_position != self.to_position

    def to_dict(self):
        return asdict(self)


class OrderedCollection:
    """
    Position protocol over one model scoped by one foreign key.

    Args:
        model: mapped class with `id` and `position` columns
        scope_attr: name of the column holding the parent id
        parent_model: mapped class whose row is locked for the scope
        label: human name used in logs and error messages
    """

    def __init__(self, model, scope_attr: str, parent_model, label: str):
        self.model = model
        self.scope_attr = scope_attr
        self.parent_model = parent_model
        self.label = label

    def __repr__(self):
        return f'<OrderedCollection {self.model.__name__}.{self.scope_attr}>'

    @property
    def scope_column(self):
        return getattr(self.model, self.scope_attr)

    @property
    def parent_label(self) -> str:
        return self.parent_model.__name__

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def count(self, parent_id: ItemId, session=None) -> int:
        session = session or db.session
        stmt = select(func.count()).select_from(self.model).where(self.scope_column == parent_id)
        return session.execute(stmt).scalar_one()

    def positions(self, parent_id: ItemId, session=None) -> List[Tuple[ItemId, int]]:
        """(id, position) pairs of the scope in display order."""
        session = session or db.session
        stmt = (
            select(self.model.id, self.model.position)
            .where(self.scope_column == parent_id)
            .order_by(self.model.position, self.model.id)
        )
        return [(row.id, row.position) for row in session.execute(stmt)]

    def lock_scope(self, parent_id: ItemId, session=None):
        """Take the scope lock for the rest of the transaction."""
        session = session or db.session
        stmt = select(self.parent_model.id).where(self.parent_model.id == parent_id).with_for_update()
        if session.execute(stmt).scalar_one_or_none() is None:
            raise NotFoundError(
                f"{self.parent_label} not found",
                details={'parent_id': parent_id},
            )

    def _stored_position(self, item_id: ItemId, parent_id: ItemId, session) -> int:
        stmt = select(self.model.position).where(
            self.model.id == item_id,
            self.scope_column == parent_id,
        )
        position = session.execute(stmt).scalar_one_or_none()
        if position is None:
            raise NotFoundError(
                f"{self.label.capitalize()} not found in {self.parent_label.lower()}",
                details={'id': item_id, 'parent_id': parent_id},
            )
        return position

    @staticmethod
    def _check_range(position, upper: int):
        if not isinstance(position, int) or isinstance(position, bool) or position < 0 or position > upper:
            raise InvalidPositionError(
                f"Position must be an integer between 0 and {upper}",
                details={'position': position, 'max': upper},
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _shift(self, parent_id: ItemId, delta: int, session, lower: Optional[int] = None, upper: Optional[int] = None):
        stmt = update(self.model).where(self.scope_column == parent_id)
        if lower is not None:
            stmt = stmt.where(self.model.position >= lower)
        if upper is not None:
            stmt = stmt.where(self.model.position <= upper)
        stmt = stmt.values(position=self.model.position + delta).execution_options(synchronize_session="fetch")
        session.execute(stmt)

    def _place(self, item_id: ItemId, parent_id: ItemId, position: int, session):
        stmt = (
            update(self.model)
            .where(self.model.id == item_id)
            .values({self.scope_attr: parent_id, 'position': position})
            .execution_options(synchronize_session="fetch")
        )
        session.execute(stmt)

    def _check_current(self, current_position: Optional[int], stored: int):
        if current_position is not None and current_position != stored:
            raise ConcurrencyConflictError(
                f"{self.label.capitalize()} position changed since it was read",
                details={'expected': current_position, 'actual': stored},
                retryable=False,
            )

    def reorder_within_parent(self, item_id: ItemId, target_position: int, parent_id: ItemId,
                              current_position: Optional[int] = None, session=None) -> PositionChange:
        """
        Move an item to `target_position` inside its scope.

        Moving down decrements siblings in (current, target]; moving up
        increments siblings in [target, current). Equal positions write nothing.
        A `current_position` that disagrees with the stored one means the
        caller acted on a stale view and raises a non-retryable conflict.
        """
        session = session or db.session
        self.lock_scope(parent_id, session)
        stored = self._stored_position(item_id, parent_id, session)
        self._check_range(target_position, self.count(parent_id, session) - 1)

        self._check_current(current_position, stored)

        change = PositionChange(item_id, parent_id, parent_id, stored, target_position)
        if stored == target_position:
            logger.debug(f"[REORDER] {self.label} {item_id} already at {stored}, nothing to do")
            return change

        if target_position > stored:
            self._shift(parent_id, -1, session, lower=stored + 1, upper=target_position)
        else:
            self._shift(parent_id, +1, session, lower=target_position, upper=stored - 1)
        self._place(item_id, parent_id, target_position, session)
        session.flush()

        logger.info(f"[REORDER] {self.label} {item_id} in {parent_id}: {stored} -> {target_position}")
        return change

    def insert_at(self, item, parent_id: ItemId, position: int, session=None):
        """Insert a new (transient) item at `position`, shifting the rest down."""
        session = session or db.session
        if not inspect(item).transient:
            raise ValueError(f"{self.label} must be a new object to be inserted")

        self.lock_scope(parent_id, session)
        self._check_range(position, self.count(parent_id, session))

        # siblings move before the new row exists, so autoflush cannot shift it too
        self._shift(parent_id, +1, session, lower=position)
        setattr(item, self.scope_attr, parent_id)
        item.position = position
        session.add(item)
        session.flush()

        logger.info(f"[REORDER] Inserted {self.label} {item.id} into {parent_id} at {position}")
        return item

    def insert_at_top(self, item, parent_id: ItemId, session=None):
        return self.insert_at(item, parent_id, 0, session=session)

    def insert_at_end(self, item, parent_id: ItemId, session=None):
        """Append a new item; the count is read under the scope lock."""
        session = session or db.session
        if not inspect(item).transient:
            raise ValueError(f"{self.label} must be a new object to be inserted")

        self.lock_scope(parent_id, session)
        position = self.count(parent_id, session)
        setattr(item, self.scope_attr, parent_id)
        item.position = position
        session.add(item)
        session.flush()

        logger.info(f"[REORDER] Appended {self.label} {item.id} to {parent_id} at {position}")
        return item

    def _detach(self, item_id: ItemId, parent_id: ItemId, session) -> int:
        stored = self._stored_position(item_id, parent_id, session)
        self._shift(parent_id, -1, session, lower=stored + 1)
        return stored

    def detach(self, item_id: ItemId, parent_id: ItemId, session=None) -> int:
        """
        Close the gap an item leaves in its scope and return its old position.

        The item keeps its stale position, so the caller must delete or
        re-parent it in the same transaction.
        """
        session = session or db.session
        self.lock_scope(parent_id, session)
        stored = self._detach(item_id, parent_id, session)
        session.flush()
        return stored

    def move_across_parent(self, item_id: ItemId, from_parent_id: ItemId, to_parent_id: ItemId,
                           target_position: int = 0, current_position: Optional[int] = None,
                           session=None) -> PositionChange:
        """
        Re-parent an item, closing the gap in the source scope and opening
        one at `target_position` in the destination.
        """
        session = session or db.session
        if from_parent_id == to_parent_id:
            return self.reorder_within_parent(item_id, target_position, from_parent_id,
                                              current_position=current_position, session=session)

        # fixed lock order so two opposite moves cannot deadlock
        for parent_id in sorted((from_parent_id, to_parent_id), key=str):
            self.lock_scope(parent_id, session)

        stored = self._stored_position(item_id, from_parent_id, session)
        self._check_range(target_position, self.count(to_parent_id, session))
        self._check_current(current_position, stored)

        self._detach(item_id, from_parent_id, session)
        self._shift(to_parent_id, +1, session, lower=target_position)
        self._place(item_id, to_parent_id, target_position, session)
        session.flush()

        logger.info(
            f"[MOVE] {self.label} {item_id}: {from_parent_id}@{stored} -> {to_parent_id}@{target_position}"
        )
        return PositionChange(item_id, from_parent_id, to_parent_id, stored, target_position)

    def delete_item(self, item_id: ItemId, parent_id: ItemId, session=None) -> int:
        """Delete an item (ORM cascades apply) and decrement every trailing sibling."""
        session = session or db.session
        self.lock_scope(parent_id, session)
        stored = self._stored_position(item_id, parent_id, session)

        item = session.get(self.model, item_id)
        session.delete(item)
        session.flush()
        self._shift(parent_id, -1, session, lower=stored + 1)
        session.flush()

        logger.info(f"[REORDER] Deleted {self.label} {item_id} from {parent_id} at {stored}")
        return stored

    def renumber(self, parent_id: ItemId, session=None) -> int:
        """Reassign 0..n-1 in (position, id) order. Returns how many rows changed."""
        session = session or db.session
        self.lock_scope(parent_id, session)

        changed = 0
        for index, (item_id, position) in enumerate(self.positions(parent_id, session)):
            if position != index:
                self._place(item_id, parent_id, index, session)
                changed += 1
        session.flush()

        if changed:
            logger.info(f"[REORDER] Renumbered {changed} {self.label}(s) in {parent_id}")
        return changed

    def reorder_all(self, parent_id: ItemId, ordered_ids: Sequence[ItemId], session=None) -> List[PositionChange]:
        """Apply an explicit full ordering; `ordered_ids` must be a permutation of the scope."""
        session = session or db.session
        self.lock_scope(parent_id, session)

        current = dict(self.positions(parent_id, session))
        ordered_ids = list(ordered_ids)
        if len(ordered_ids) != len(set(ordered_ids)) or set(ordered_ids) != set(current):
            raise InvalidPositionError(
                f"Ordering must list every {self.label} in the scope exactly once",
                details={'expected': len(current), 'received': len(ordered_ids)},
            )

        changes = []
        for index, item_id in enumerate(ordered_ids):
            if current[item_id] != index:
                self._place(item_id, parent_id, index, session)
                changes.append(PositionChange(item_id, parent_id, parent_id, current[item_id], index))
        session.flush()

        logger.info(f"[REORDER] Applied full ordering to {parent_id}: {len(changes)} {self.label}(s) moved")
        return changes


TASKS_IN_COLUMN = OrderedCollection(Task, "column_id", BoardColumn, "task")
COLUMNS_IN_BOARD = OrderedCollection(BoardColumn, "board_id", Board, "column")
BOARDS_IN_WORKSPACE = OrderedCollection(Board, "workspace_id", Workspace, "board")
PRIORITIES_IN_WORKSPACE = OrderedCollection(Priority, "workspace_id", Workspace, "priority")
