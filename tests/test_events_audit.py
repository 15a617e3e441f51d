"""
Tests for domain events and the audit subscriber.
"""

from datetime import date, datetime

from conftest import FACILITY_ID


class TestDomainEvents:
    """Signals are sent after each successful write."""

    def test_reservation_events(self, cell):
        from models.events import reservation_created, reservation_status_changed, reservation_cancelled
        from models.reservation import create_reservation, cancel_reservation

        received = []

        def record(name):
            def receiver(sender, **kwargs):
                received.append((name, kwargs['reservation']['status'], kwargs.get('actor')))
            return receiver

        on_created = record('created')
        on_changed = record('changed')
        on_cancelled = record('cancelled')

        with reservation_created.connected_to(on_created), \
                reservation_status_changed.connected_to(on_changed), \
                reservation_cancelled.connected_to(on_cancelled):
            reservation = create_reservation(cell['id'], FACILITY_ID, 'DOS-1',
                                             '2025-01-10T08:00', '2025-01-10T16:00',
                                             created_by='medewerker-1')
            cancel_reservation(reservation['id'], cancelled_by='medewerker-2')

        assert received == [
            ('created', 'PENDING', 'medewerker-1'),
            ('changed', 'CANCELLED', 'medewerker-2'),
            ('cancelled', 'CANCELLED', 'medewerker-2'),
        ]

    def test_reschedule_event_carries_previous_interval(self, cell):
        from models.events import reservation_rescheduled
        from models.reservation import create_reservation, reschedule_reservation

        reservation = create_reservation(cell['id'], FACILITY_ID, 'DOS-1',
                                         '2025-01-10T08:00', '2025-01-10T16:00')
        received = []

        def on_rescheduled(sender, **kwargs):
            received.append((kwargs['old_start_at'], kwargs['reservation']['start_at'], kwargs['actor']))

        with reservation_rescheduled.connected_to(on_rescheduled):
            reschedule_reservation(reservation['id'], '2025-01-10T10:00', '2025-01-10T18:00',
                                   changed_by='medewerker-1')

        assert received == [
            (datetime(2025, 1, 10, 8), datetime(2025, 1, 10, 10), 'medewerker-1')
        ]

    def test_no_event_on_rejected_write(self, cell):
        import pytest
        from models.events import reservation_created
        from models.exceptions import ConflictError
        from models.reservation import create_reservation

        create_reservation(cell['id'], FACILITY_ID, 'DOS-1', '2025-01-10T08:00', '2025-01-10T16:00')
        received = []

        def on_created(sender, **kwargs):
            received.append(kwargs['reservation']['id'])

        with reservation_created.connected_to(on_created):
            with pytest.raises(ConflictError):
                create_reservation(cell['id'], FACILITY_ID, 'DOS-2',
                                   '2025-01-10T09:00', '2025-01-10T10:00')

        assert received == []

    def test_unblock_event_only_when_removed(self, app_context):
        from models.day_block import block_day, unblock_day
        from models.events import day_unblocked

        block = block_day(FACILITY_ID, date(2025, 1, 10), 'Stroomstoring in gebouw', 'medewerker-1')
        received = []

        def on_unblocked(sender, **kwargs):
            received.append(kwargs['block']['id'])

        with day_unblocked.connected_to(on_unblocked):
            unblock_day(block['id'])
            unblock_day(block['id'])

        assert received == [block['id']]


class TestAuditSubscriber:
    """The audit subscriber writes one row per event."""

    def test_cell_status_change_audited(self, cell):
        from models.audit_log import get_audit_logs
        from models.cool_cell import set_cool_cell_status

        set_cool_cell_status(cell['id'], 'OUT_OF_SERVICE', note='Deur defect', changed_by='medewerker-1')

        logs = get_audit_logs(entity_type='cool_cell', entity_id=cell['id'], action='STATUS_CHANGE')
        assert len(logs) == 1
        assert logs[0]['actor'] == 'medewerker-1'
        assert logs[0]['facility_id'] == FACILITY_ID
        assert logs[0]['changes']['before'] == {'status': 'FREE'}
        assert logs[0]['changes']['after']['status'] == 'OUT_OF_SERVICE'

    def test_reservation_creation_audited(self, cell):
        from models.audit_log import get_audit_logs
        from models.reservation import create_reservation

        reservation = create_reservation(cell['id'], FACILITY_ID, 'DOS-1',
                                         '2025-01-10T08:00', '2025-01-10T16:00',
                                         created_by='medewerker-1')

        logs = get_audit_logs(entity_type='reservation', entity_id=reservation['id'])
        assert [log['action'] for log in logs] == ['CREATE']
        assert logs[0]['changes']['after']['start_at'] == '2025-01-10 08:00:00'

    def test_reservation_reschedule_audited(self, cell):
        from models.audit_log import get_audit_logs
        from models.reservation import create_reservation, reschedule_reservation

        reservation = create_reservation(cell['id'], FACILITY_ID, 'DOS-1',
                                         '2025-01-10T08:00', '2025-01-10T16:00')
        reschedule_reservation(reservation['id'], '2025-01-11T08:00', '2025-01-11T12:00',
                               changed_by='medewerker-2')

        logs = get_audit_logs(entity_type='reservation', entity_id=reservation['id'], action='UPDATE')
        assert len(logs) == 1
        assert logs[0]['actor'] == 'medewerker-2'
        assert logs[0]['changes']['before'] == {
            'start_at': '2025-01-10 08:00:00', 'end_at': '2025-01-10 16:00:00'
        }
        assert logs[0]['changes']['after'] == {
            'start_at': '2025-01-11 08:00:00', 'end_at': '2025-01-11 12:00:00'
        }

    def test_audit_failure_does_not_fail_write(self, cell, monkeypatch):
        import models.audit_log
        from models.cool_cell import get_cool_cell, set_cool_cell_status

        def broken(**kwargs):
            raise RuntimeError('audit store unavailable')

        monkeypatch.setattr(models.audit_log, 'create_audit_log', broken)

        set_cool_cell_status(cell['id'], 'OCCUPIED')
        assert get_cool_cell(cell['id'])['status'] == 'OCCUPIED'

    def test_api_actor_recorded(self, app, client, auth_headers):
        from models.audit_log import get_audit_logs

        response = client.post('/api/cells', json={'facility_id': FACILITY_ID, 'label': 'Koelcel 1'},
                               headers=auth_headers)
        cell_id = response.get_json()['data']['id']

        with app.app_context():
            logs = get_audit_logs(entity_type='cool_cell', entity_id=cell_id)
        assert logs[0]['actor'] == 'medewerker-1'
