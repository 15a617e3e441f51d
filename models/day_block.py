"""
Facility day block model.
Force-majeure closures: a whole facility is unavailable for a calendar day.
"""

import logging
import sqlite3
from datetime import date
from typing import Optional

from flask import current_app

from database import get_db, immediate_transaction
from utils.datetime_helpers import get_now, parse_date
from utils.messages import get_message
from .events import day_blocked, day_unblocked
from .exceptions import ValidationError, NotFoundError, ConflictError

logger = logging.getLogger(__name__)

DEFAULT_MIN_REASON_LENGTH = 8


# =============================================================================
# QUERIES
# =============================================================================

def _find_block(db, facility_id: str, block_date: date) -> Optional[dict]:
    row = db.execute('''
        SELECT * FROM facility_day_blocks
        WHERE facility_id = ? AND block_date = ?
    ''', (facility_id, block_date)).fetchone()
    return dict(row) if row else None


def get_day_block(block_id: int) -> dict:
    """
    Get a day block by ID.

    Raises:
        NotFoundError: If the block does not exist
    """
    row = get_db().execute(
        'SELECT * FROM facility_day_blocks WHERE id = ?', (block_id,)
    ).fetchone()
    if not row:
        raise NotFoundError(get_message('day_block_not_found'), entity='day_block', id=block_id)
    return dict(row)


def list_day_blocks(facility_id: str, date_from: date = None, date_to: date = None) -> list:
    """
    List the blocks of a facility ordered by date.

    Args:
        facility_id: Facility ID
        date_from: First date (inclusive), optional
        date_to: Last date (inclusive), optional

    Returns:
        List of block dicts
    """
    if date_from and date_to and date_to < date_from:
        raise ValidationError(get_message('invalid_date_range'), field='to')

    query = 'SELECT * FROM facility_day_blocks WHERE facility_id = ?'
    params = [facility_id]

    if date_from:
        query += ' AND block_date >= ?'
        params.append(date_from)
    if date_to:
        query += ' AND block_date <= ?'
        params.append(date_to)

    query += ' ORDER BY block_date, id'
    rows = get_db().execute(query, params).fetchall()
    return [dict(row) for row in rows]


# =============================================================================
# CREATE / DELETE
# =============================================================================

def block_day(facility_id: str, block_date, reason: str, created_by: str = None) -> dict:
    """
    Block a facility for one calendar day.

    Args:
        facility_id: Facility ID
        block_date: date or 'YYYY-MM-DD'
        reason: Mandatory reason (minimum length DAY_BLOCK_MIN_REASON_LENGTH)
        created_by: Acting user

    Returns:
        Created block dict

    Raises:
        ValidationError: If the date is invalid or the reason too short
        ConflictError: If the day is already blocked for this facility
    """
    if not facility_id:
        raise ValidationError(get_message('field_required', field='facility_id'), field='facility_id')

    block_date = parse_date(block_date)

    minimum = current_app.config.get('DAY_BLOCK_MIN_REASON_LENGTH', DEFAULT_MIN_REASON_LENGTH)
    reason = (reason or '').strip()
    if len(reason) < minimum:
        raise ValidationError(
            get_message('reason_too_short', minimum=minimum),
            field='reason', minimum=minimum
        )

    try:
        with immediate_transaction() as db:
            existing = _find_block(db, facility_id, block_date)
            if existing:
                raise ConflictError(
                    get_message('day_already_blocked'),
                    code='day_already_blocked',
                    existing_id=existing['id']
                )

            cursor = db.execute('''
                INSERT INTO facility_day_blocks (facility_id, block_date, reason, created_by, created_at)
                VALUES (?, ?, ?, ?, ?)
            ''', (facility_id, block_date, reason, created_by, get_now()))
            block = get_day_block(cursor.lastrowid)
    except sqlite3.IntegrityError:
        # UNIQUE(facility_id, block_date) raced past the check
        existing = _find_block(get_db(), facility_id, block_date)
        raise ConflictError(
            get_message('day_already_blocked'),
            code='day_already_blocked',
            existing_id=existing['id'] if existing else None
        ) from None

    logger.info('Facility %s blocked on %s by %s', facility_id, block_date, created_by)
    day_blocked.send('day_block', block=block, actor=created_by)
    return block


def unblock_day(block_id: int, removed_by: str = None) -> bool:
    """
    Remove a day block. Idempotent.

    Args:
        block_id: Block ID
        removed_by: Acting user

    Returns:
        bool: True if a block was removed, False if it was already gone
    """
    with immediate_transaction() as db:
        row = db.execute(
            'SELECT * FROM facility_day_blocks WHERE id = ?', (block_id,)
        ).fetchone()
        if not row:
            return False
        block = dict(row)
        db.execute('DELETE FROM facility_day_blocks WHERE id = ?', (block_id,))

    logger.info('Day block %s (%s on %s) removed by %s',
                block_id, block['facility_id'], block['block_date'], removed_by)
    day_unblocked.send('day_block', block=block, actor=removed_by)
    return True
