"""
Domain events emitted after successful writes.

The scheduler does not deliver notifications itself; audit and notification
subsystems subscribe to these signals. Every signal is sent after the write
has been committed, with the affected entity as keyword arguments.

Usage:
    from models.events import reservation_created

    @reservation_created.connect
    def on_reservation_created(sender, reservation, actor):
        ...
"""

from blinker import Namespace

coolcell_signals = Namespace()

# Cells
cell_created = coolcell_signals.signal('cell-created')
cell_status_changed = coolcell_signals.signal('cell-status-changed')
cell_deleted = coolcell_signals.signal('cell-deleted')

# Reservations
reservation_created = coolcell_signals.signal('reservation-created')
reservation_status_changed = coolcell_signals.signal('reservation-status-changed')
reservation_cancelled = coolcell_signals.signal('reservation-cancelled')
reservation_rescheduled = coolcell_signals.signal('reservation-rescheduled')

# Facility day blocks
day_blocked = coolcell_signals.signal('day-blocked')
day_unblocked = coolcell_signals.signal('day-unblocked')