"""
Tests for the reservation store.
Covers non-overlap, lifecycle transitions, rescheduling and listing.
"""

import random
import threading
import pytest
from datetime import date, datetime, timedelta

from conftest import FACILITY_ID, OTHER_FACILITY_ID


def _dt(text):
    return datetime.fromisoformat(text)


class TestCreateReservation:
    """Tests for booking a cell."""

    def test_booking_success(self, cell):
        from models.reservation import create_reservation

        reservation = create_reservation(
            cell['id'], FACILITY_ID, 'DOS-1', '2025-01-10T08:00', '2025-01-10T16:00',
            created_by='medewerker-1'
        )

        assert reservation['status'] == 'PENDING'
        assert reservation['start_at'] == _dt('2025-01-10 08:00')
        assert reservation['end_at'] == _dt('2025-01-10 16:00')
        assert reservation['created_by'] == 'medewerker-1'

    def test_booking_conflict(self, cell):
        from models.exceptions import ConflictError
        from models.reservation import create_reservation, list_reservations_for_cell

        first = create_reservation(cell['id'], FACILITY_ID, 'DOS-1',
                                   '2025-01-10T08:00', '2025-01-10T16:00')

        with pytest.raises(ConflictError) as exc_info:
            create_reservation(cell['id'], FACILITY_ID, 'DOS-2',
                               '2025-01-10T12:00', '2025-01-10T20:00')

        assert exc_info.value.details['conflicting_ids'] == [first['id']]
        assert len(list_reservations_for_cell(cell['id'])) == 1

    def test_back_to_back_is_allowed(self, cell):
        from models.reservation import create_reservation

        create_reservation(cell['id'], FACILITY_ID, 'DOS-1', '2025-01-10T08:00', '2025-01-10T16:00')
        create_reservation(cell['id'], FACILITY_ID, 'DOS-2', '2025-01-10T16:00', '2025-01-11T08:00')

    def test_other_cell_does_not_conflict(self, make_cell):
        from models.reservation import create_reservation

        first = make_cell('Koelcel 1')
        second = make_cell('Koelcel 2')
        create_reservation(first['id'], FACILITY_ID, 'DOS-1', '2025-01-10T08:00', '2025-01-10T16:00')
        create_reservation(second['id'], FACILITY_ID, 'DOS-2', '2025-01-10T08:00', '2025-01-10T16:00')

    def test_cancelled_reservation_releases_interval(self, cell):
        from models.reservation import create_reservation, cancel_reservation

        first = create_reservation(cell['id'], FACILITY_ID, 'DOS-1',
                                   '2025-01-10T08:00', '2025-01-10T16:00')
        cancel_reservation(first['id'])

        create_reservation(cell['id'], FACILITY_ID, 'DOS-2', '2025-01-10T08:00', '2025-01-10T16:00')

    @pytest.mark.parametrize('start,end', [
        ('2025-01-10T16:00', '2025-01-10T08:00'),
        ('2025-01-10T08:00', '2025-01-10T08:00'),
    ])
    def test_invalid_interval(self, cell, start, end):
        from models.exceptions import ValidationError
        from models.reservation import create_reservation

        with pytest.raises(ValidationError):
            create_reservation(cell['id'], FACILITY_ID, 'DOS-1', start, end)

    def test_unparseable_timestamp(self, cell):
        from models.exceptions import ValidationError
        from models.reservation import create_reservation

        with pytest.raises(ValidationError):
            create_reservation(cell['id'], FACILITY_ID, 'DOS-1', 'gisteren', '2025-01-10T08:00')

    def test_empty_case_ref(self, cell):
        from models.exceptions import ValidationError
        from models.reservation import create_reservation

        with pytest.raises(ValidationError):
            create_reservation(cell['id'], FACILITY_ID, '  ', '2025-01-10T08:00', '2025-01-10T16:00')

    def test_facility_mismatch(self, cell):
        from models.exceptions import ValidationError
        from models.reservation import create_reservation

        with pytest.raises(ValidationError):
            create_reservation(cell['id'], OTHER_FACILITY_ID, 'DOS-1',
                               '2025-01-10T08:00', '2025-01-10T16:00')

    def test_unknown_cell(self, app_context):
        from models.exceptions import NotFoundError
        from models.reservation import create_reservation

        with pytest.raises(NotFoundError):
            create_reservation(9999, FACILITY_ID, 'DOS-1', '2025-01-10T08:00', '2025-01-10T16:00')

    def test_aware_timestamps_are_converted_to_facility_time(self, cell):
        from models.reservation import create_reservation

        reservation = create_reservation(cell['id'], FACILITY_ID, 'DOS-1',
                                         '2025-01-10T07:00:00Z', '2025-01-10T15:00:00+00:00')

        # Europe/Brussels is UTC+1 in January
        assert reservation['start_at'] == _dt('2025-01-10 08:00')
        assert reservation['end_at'] == _dt('2025-01-10 16:00')

    def test_creation_is_recorded_in_history(self, cell):
        from models.reservation import create_reservation, get_status_history

        reservation = create_reservation(cell['id'], FACILITY_ID, 'DOS-1',
                                         '2025-01-10T08:00', '2025-01-10T16:00',
                                         created_by='medewerker-1')

        history = get_status_history(reservation['id'])
        assert [(h['old_status'], h['new_status']) for h in history] == [(None, 'PENDING')]
        assert history[0]['changed_by'] == 'medewerker-1'


class TestBookability:
    """Blocked days and out-of-service cells cannot be booked."""

    REASON = 'Stroomstoring in gebouw'

    def test_blocked_day_rejected(self, cell):
        from models.day_block import block_day
        from models.exceptions import ConflictError
        from models.reservation import create_reservation, list_reservations_for_cell

        block = block_day(FACILITY_ID, date(2025, 1, 10), self.REASON)

        with pytest.raises(ConflictError) as exc_info:
            create_reservation(cell['id'], FACILITY_ID, 'DOS-1', '2025-01-10T08:00', '2025-01-10T16:00')

        assert exc_info.value.code == 'day_blocked'
        assert exc_info.value.details['block_id'] == block['id']
        assert exc_info.value.details['block_date'] == date(2025, 1, 10)
        assert list_reservations_for_cell(cell['id']) == []

    def test_interval_spanning_blocked_day_rejected(self, cell):
        from models.day_block import block_day
        from models.exceptions import ConflictError
        from models.reservation import create_reservation

        block_day(FACILITY_ID, date(2025, 1, 11), self.REASON)

        with pytest.raises(ConflictError) as exc_info:
            create_reservation(cell['id'], FACILITY_ID, 'DOS-1', '2025-01-10T08:00', '2025-01-12T08:00')
        assert exc_info.value.code == 'day_blocked'

    def test_interval_ending_at_midnight_before_block_allowed(self, cell):
        from models.day_block import block_day
        from models.reservation import create_reservation

        block_day(FACILITY_ID, date(2025, 1, 10), self.REASON)

        reservation = create_reservation(cell['id'], FACILITY_ID, 'DOS-1',
                                         '2025-01-09T08:00', '2025-01-10T00:00')
        assert reservation['status'] == 'PENDING'

    def test_block_of_other_facility_ignored(self, cell):
        from models.day_block import block_day
        from models.reservation import create_reservation

        block_day(OTHER_FACILITY_ID, date(2025, 1, 10), self.REASON)

        create_reservation(cell['id'], FACILITY_ID, 'DOS-1', '2025-01-10T08:00', '2025-01-10T16:00')

    def test_out_of_service_cell_rejected(self, cell):
        from models.cool_cell import set_cool_cell_status
        from models.exceptions import ConflictError
        from models.reservation import create_reservation

        set_cool_cell_status(cell['id'], 'OUT_OF_SERVICE', note='Deur defect')

        with pytest.raises(ConflictError) as exc_info:
            create_reservation(cell['id'], FACILITY_ID, 'DOS-1', '2025-01-10T08:00', '2025-01-10T16:00')
        assert exc_info.value.code == 'cell_out_of_service'

    def test_manually_occupied_cell_still_bookable(self, cell):
        from models.cool_cell import set_cool_cell_status
        from models.reservation import create_reservation

        set_cool_cell_status(cell['id'], 'OCCUPIED')

        reservation = create_reservation(cell['id'], FACILITY_ID, 'DOS-1',
                                         '2025-01-10T08:00', '2025-01-10T16:00')
        assert reservation['status'] == 'PENDING'

    def test_reschedule_into_blocked_day_rejected(self, cell):
        from models.day_block import block_day
        from models.exceptions import ConflictError
        from models.reservation import create_reservation, get_reservation, reschedule_reservation

        reservation = create_reservation(cell['id'], FACILITY_ID, 'DOS-1',
                                         '2025-01-10T08:00', '2025-01-10T16:00')
        block_day(FACILITY_ID, date(2025, 1, 11), self.REASON)

        with pytest.raises(ConflictError) as exc_info:
            reschedule_reservation(reservation['id'], '2025-01-11T08:00', '2025-01-11T16:00')

        assert exc_info.value.code == 'day_blocked'
        assert get_reservation(reservation['id'])['start_at'] == _dt('2025-01-10 08:00')


class TestOverlapGuard:
    """The database refuses overlaps even when the application check is bypassed."""

    def test_trigger_rejects_direct_insert(self, cell):
        import sqlite3
        from database import get_db
        from models.reservation import create_reservation

        create_reservation(cell['id'], FACILITY_ID, 'DOS-1', '2025-01-10T08:00', '2025-01-10T16:00')

        db = get_db()
        with pytest.raises(sqlite3.IntegrityError, match='cool_cell_reservation_overlap'):
            db.execute('''
                INSERT INTO cool_cell_reservations
                (cool_cell_id, facility_id, case_ref, start_at, end_at, status)
                VALUES (?, ?, 'DOS-2', ?, ?, 'PENDING')
            ''', (cell['id'], FACILITY_ID, _dt('2025-01-10 10:00'), _dt('2025-01-10 12:00')))
        db.rollback()

    def test_trigger_rejects_reactivating_overlap(self, cell):
        import sqlite3
        from database import get_db
        from models.reservation import create_reservation, cancel_reservation

        first = create_reservation(cell['id'], FACILITY_ID, 'DOS-1',
                                   '2025-01-10T08:00', '2025-01-10T16:00')
        cancel_reservation(first['id'])
        create_reservation(cell['id'], FACILITY_ID, 'DOS-2', '2025-01-10T10:00', '2025-01-10T12:00')

        db = get_db()
        with pytest.raises(sqlite3.IntegrityError):
            db.execute("UPDATE cool_cell_reservations SET status = 'PENDING' WHERE id = ?",
                       (first['id'],))
        db.rollback()

    def test_check_constraint_rejects_inverted_interval(self, cell):
        import sqlite3
        from database import get_db

        db = get_db()
        with pytest.raises(sqlite3.IntegrityError):
            db.execute('''
                INSERT INTO cool_cell_reservations
                (cool_cell_id, facility_id, case_ref, start_at, end_at)
                VALUES (?, ?, 'DOS-1', ?, ?)
            ''', (cell['id'], FACILITY_ID, _dt('2025-01-10 16:00'), _dt('2025-01-10 08:00')))
        db.rollback()


class TestNonOverlapProperty:
    """Random create/cancel sequences accept exactly the non-overlapping candidates."""

    @pytest.mark.parametrize('seed', [1, 7, 42])
    def test_random_sequences(self, make_cell, seed):
        from models.exceptions import ConflictError
        from models.reservation import (
            create_reservation, cancel_reservation, list_reservations_for_facility
        )

        rng = random.Random(seed)
        cell_ids = [make_cell(f'Koelcel {i}')['id'] for i in range(1, 4)]
        base = datetime(2025, 1, 6)
        # reservation id -> (cell id, start, end) of every active reservation
        active = {}
        rejected = 0

        for step in range(120):
            if active and rng.random() < 0.15:
                reservation_id = rng.choice(sorted(active))
                cancel_reservation(reservation_id)
                del active[reservation_id]
                continue

            cell_id = rng.choice(cell_ids)
            start = base + timedelta(hours=rng.randrange(0, 7 * 24))
            end = start + timedelta(hours=rng.randint(1, 36))
            expected = sorted(
                rid for rid, (other_cell, other_start, other_end) in active.items()
                if other_cell == cell_id and other_start < end and start < other_end
            )

            try:
                reservation = create_reservation(cell_id, FACILITY_ID, f'DOS-{step}', start, end)
            except ConflictError as e:
                assert expected, f'step {step}: free interval [{start}, {end}) was rejected'
                assert sorted(e.details['conflicting_ids']) == expected
                rejected += 1
                continue

            assert not expected, f'step {step}: overlap with {expected} was accepted'
            active[reservation['id']] = (cell_id, start, end)

        stored = list_reservations_for_facility(FACILITY_ID, include_cancelled=False)
        assert {r['id'] for r in stored} == set(active)
        assert active and rejected
        for a in stored:
            for b in stored:
                if a['id'] < b['id'] and a['cool_cell_id'] == b['cool_cell_id']:
                    assert not (a['start_at'] < b['end_at'] and b['start_at'] < a['end_at'])


class TestConcurrentCreate:
    """Two concurrent overlapping creates cannot both succeed."""

    def test_only_one_overlapping_create_wins(self, app, make_cell):
        from models.exceptions import ConflictError
        from models.reservation import create_reservation, list_reservations_for_cell

        cell_id = make_cell()['id']
        barrier = threading.Barrier(4)
        successes = []
        conflicts = []
        errors = []

        def worker(index):
            with app.app_context():
                barrier.wait()
                try:
                    reservation = create_reservation(
                        cell_id, FACILITY_ID, f'DOS-{index}',
                        datetime(2025, 1, 10, 8 + index), datetime(2025, 1, 10, 18)
                    )
                    successes.append(reservation['id'])
                except ConflictError:
                    conflicts.append(index)
                except Exception as e:
                    errors.append(e)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(successes) == 1
        assert len(conflicts) == 3
        assert [r['id'] for r in list_reservations_for_cell(cell_id)] == successes

    def test_cell_delete_waits_for_create(self, app, cell, monkeypatch):
        import sqlite3
        import models.reservation
        from models.cool_cell import delete_cool_cell, get_cool_cell
        from models.reservation import create_reservation

        app.config['DATABASE_TIMEOUT'] = 0.1
        outcome = []

        def lookup_then_delete(cell_id):
            found = get_cool_cell(cell_id)
            # Second connection tries to delete the cell right after the lookup
            with app.app_context():
                try:
                    delete_cool_cell(cell_id)
                    outcome.append('deleted')
                except sqlite3.OperationalError:
                    outcome.append('locked')
            return found

        monkeypatch.setattr(models.reservation, 'get_cool_cell', lookup_then_delete)

        reservation = create_reservation(cell['id'], FACILITY_ID, 'DOS-1',
                                         '2025-01-10T08:00', '2025-01-10T16:00')

        assert outcome == ['locked']
        assert reservation['status'] == 'PENDING'
        assert get_cool_cell(cell['id'])['active'] == 1


class TestStatusTransitions:
    """Tests for the reservation lifecycle."""

    @pytest.fixture
    def reservation(self, cell):
        from models.reservation import create_reservation

        return create_reservation(cell['id'], FACILITY_ID, 'DOS-1',
                                  '2025-01-10T08:00', '2025-01-10T16:00')

    def test_full_lifecycle(self, reservation):
        from models.reservation import advance_reservation_status, get_status_history

        advance_reservation_status(reservation['id'], 'CONFIRMED', 'medewerker-1')
        result = advance_reservation_status(reservation['id'], 'OCCUPIED', 'medewerker-1')

        assert result['status'] == 'OCCUPIED'
        history = [h['new_status'] for h in get_status_history(reservation['id'])]
        assert history == ['PENDING', 'CONFIRMED', 'OCCUPIED']

    @pytest.mark.parametrize('path', [
        ['CANCELLED'],
        ['CONFIRMED', 'CANCELLED'],
    ])
    def test_cancel_paths(self, reservation, path):
        from models.reservation import advance_reservation_status

        for status in path:
            result = advance_reservation_status(reservation['id'], status)
        assert result['status'] == 'CANCELLED'

    @pytest.mark.parametrize('path,illegal', [
        ([], 'PENDING'),
        ([], 'OCCUPIED'),
        (['CONFIRMED'], 'PENDING'),
        (['CONFIRMED'], 'CONFIRMED'),
        (['CONFIRMED', 'OCCUPIED'], 'CANCELLED'),
        (['CONFIRMED', 'OCCUPIED'], 'CONFIRMED'),
        (['CANCELLED'], 'PENDING'),
        (['CANCELLED'], 'CONFIRMED'),
    ])
    def test_illegal_transitions(self, reservation, path, illegal):
        from models.exceptions import InvalidStateTransitionError
        from models.reservation import advance_reservation_status, get_reservation
        from models.reservation_state import get_allowed_transitions

        for status in path:
            advance_reservation_status(reservation['id'], status)
        before = get_reservation(reservation['id'])

        with pytest.raises(InvalidStateTransitionError) as exc_info:
            advance_reservation_status(reservation['id'], illegal)

        assert exc_info.value.details['current'] == before['status']
        assert exc_info.value.details['allowed'] == get_allowed_transitions(before['status'])
        assert get_reservation(reservation['id'])['status'] == before['status']

    def test_unknown_status_name(self, reservation):
        from models.exceptions import ValidationError
        from models.reservation import advance_reservation_status

        with pytest.raises(ValidationError):
            advance_reservation_status(reservation['id'], 'ARCHIVED')

    def test_missing_reservation(self, app_context):
        from models.exceptions import NotFoundError
        from models.reservation import advance_reservation_status

        with pytest.raises(NotFoundError):
            advance_reservation_status(9999, 'CONFIRMED')

    def test_random_walks_are_monotonic(self, reservation):
        """Every accepted move follows the matrix; terminal statuses never change."""
        from models.exceptions import InvalidStateTransitionError
        from models.reservation import advance_reservation_status, get_reservation
        from models.reservation_state import RESERVATION_STATUSES, VALID_TRANSITIONS

        rng = random.Random(3)
        for _ in range(30):
            current = get_reservation(reservation['id'])['status']
            target = rng.choice(RESERVATION_STATUSES)
            try:
                advance_reservation_status(reservation['id'], target)
            except InvalidStateTransitionError:
                assert target not in VALID_TRANSITIONS[current]
            else:
                assert target in VALID_TRANSITIONS[current]


class TestReschedule:
    """Tests for changing the interval of a pending reservation."""

    def test_reschedule_pending(self, cell):
        from models.reservation import create_reservation, reschedule_reservation

        reservation = create_reservation(cell['id'], FACILITY_ID, 'DOS-1',
                                         '2025-01-10T08:00', '2025-01-10T16:00')
        moved = reschedule_reservation(reservation['id'], '2025-01-10T10:00', '2025-01-10T20:00')

        assert moved['start_at'] == _dt('2025-01-10 10:00')
        assert moved['end_at'] == _dt('2025-01-10 20:00')

    def test_reschedule_conflict(self, cell):
        from models.exceptions import ConflictError
        from models.reservation import create_reservation, reschedule_reservation

        first = create_reservation(cell['id'], FACILITY_ID, 'DOS-1',
                                   '2025-01-10T08:00', '2025-01-10T16:00')
        second = create_reservation(cell['id'], FACILITY_ID, 'DOS-2',
                                    '2025-01-11T08:00', '2025-01-11T16:00')

        with pytest.raises(ConflictError) as exc_info:
            reschedule_reservation(second['id'], '2025-01-10T12:00', '2025-01-11T12:00')
        assert exc_info.value.details['conflicting_ids'] == [first['id']]

    def test_confirmed_interval_is_locked(self, cell):
        from models.exceptions import InvalidStateTransitionError
        from models.reservation import (
            create_reservation, advance_reservation_status, reschedule_reservation
        )

        reservation = create_reservation(cell['id'], FACILITY_ID, 'DOS-1',
                                         '2025-01-10T08:00', '2025-01-10T16:00')
        advance_reservation_status(reservation['id'], 'CONFIRMED')

        with pytest.raises(InvalidStateTransitionError):
            reschedule_reservation(reservation['id'], '2025-01-10T10:00', '2025-01-10T20:00')


class TestListReservations:
    """Tests for range listing."""

    @pytest.fixture
    def booked(self, make_cell):
        from models.reservation import create_reservation

        first = make_cell('Koelcel 1')
        second = make_cell('Koelcel 2')
        return {
            'cell': first,
            'spanning': create_reservation(first['id'], FACILITY_ID, 'DOS-1',
                                           '2025-01-09T20:00', '2025-01-10T08:00'),
            'inside': create_reservation(first['id'], FACILITY_ID, 'DOS-2',
                                         '2025-01-10T10:00', '2025-01-10T12:00'),
            'later': create_reservation(first['id'], FACILITY_ID, 'DOS-3',
                                        '2025-01-12T10:00', '2025-01-12T12:00'),
            'other_cell': create_reservation(second['id'], FACILITY_ID, 'DOS-2',
                                             '2025-01-10T10:00', '2025-01-10T12:00'),
        }

    def test_cell_range_uses_overlap(self, booked):
        from models.reservation import list_reservations_for_cell

        result = list_reservations_for_cell(booked['cell']['id'], date(2025, 1, 10), date(2025, 1, 10))
        assert [r['id'] for r in result] == [booked['spanning']['id'], booked['inside']['id']]

    def test_facility_listing_ordered_by_start_then_id(self, booked):
        from models.reservation import list_reservations_for_facility

        result = list_reservations_for_facility(FACILITY_ID, date(2025, 1, 10), date(2025, 1, 10))
        assert [r['id'] for r in result] == [
            booked['spanning']['id'], booked['inside']['id'], booked['other_cell']['id']
        ]

    def test_facility_listing_can_hide_cancelled(self, booked):
        from models.reservation import cancel_reservation, list_reservations_for_facility

        cancel_reservation(booked['later']['id'])

        all_ids = [r['id'] for r in list_reservations_for_facility(FACILITY_ID)]
        active_ids = [r['id'] for r in list_reservations_for_facility(FACILITY_ID, include_cancelled=False)]
        assert booked['later']['id'] in all_ids
        assert booked['later']['id'] not in active_ids

    def test_list_for_case(self, booked):
        from models.reservation import list_reservations_for_case

        result = list_reservations_for_case('DOS-2')
        assert {r['id'] for r in result} == {booked['inside']['id'], booked['other_cell']['id']}
