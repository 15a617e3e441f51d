"""
Centralized Dutch UI messages.
All user-facing text in Dutch for consistency with the case-management portal.
"""

MESSAGES = {
    # Success messages
    'cell_created': 'Koelcel {label} toegevoegd',
    'cells_created': '{count} koelcellen toegevoegd',
    'cell_updated': 'Koelcel {label} bijgewerkt',
    'cell_status_updated': 'Status van {label} gewijzigd naar {status}',
    'cell_deleted': 'Koelcel verwijderd',
    'reservation_created': 'Reservering aangemaakt',
    'reservation_updated': 'Reservering bijgewerkt',
    'reservation_status_updated': 'Reservering gewijzigd naar {status}',
    'day_blocked': 'Sluitingsdag {date} toegevoegd',
    'day_unblocked': 'Sluitingsdag verwijderd',
    'day_already_unblocked': 'Sluitingsdag was al verwijderd',

    # Validation messages
    'data_required': 'Gegevens vereist',
    'field_required': 'Veld {field} is verplicht',
    'label_required': 'Label is verplicht',
    'prefix_required': 'Voorvoegsel is verplicht',
    'batch_count_invalid': 'Aantal koelcellen moet tussen 1 en {maximum} liggen',
    'invalid_cell_status': 'Ongeldige koelcelstatus: {status}',
    'invalid_reservation_status': 'Ongeldige reserveringsstatus: {status}',
    'invalid_date': 'Ongeldige datum: {value}',
    'invalid_datetime': 'Ongeldig tijdstip: {value}',
    'invalid_integer': 'Ongeldig getal voor {field}: {value}',
    'invalid_text': 'Ongeldige tekst voor {field}',
    'invalid_interval': 'Het einde moet na het begin liggen',
    'invalid_date_range': 'De einddatum mag niet voor de begindatum liggen',
    'invalid_window': 'Ongeldig tijdvenster: {start}:00 - {end}:00',
    'case_ref_required': 'Dossierreferentie is verplicht',
    'facility_mismatch': 'Koelcel {cell_id} hoort niet bij mortuarium {facility_id}',
    'reason_too_short': 'Reden moet minstens {minimum} tekens bevatten',
    'filter_required': 'Filter op koelcel, mortuarium of dossier is verplicht',

    # Not found messages
    'cell_not_found': 'Koelcel niet gevonden',
    'reservation_not_found': 'Reservering niet gevonden',
    'day_block_not_found': 'Sluitingsdag niet gevonden',

    # Conflict messages
    'reservation_overlap': 'Koelcel is al gereserveerd in deze periode',
    'day_already_blocked': 'Deze dag is al geblokkeerd voor dit mortuarium',
    'cell_has_reservations': 'Koelcel heeft nog lopende of toekomstige reserveringen',
    'day_blocked_for_booking': 'Mortuarium is gesloten op {date}; reserveren is niet mogelijk',
    'cell_out_of_service': 'Koelcel {label} is buiten gebruik en kan niet gereserveerd worden',

    # State transition messages
    'invalid_transition': 'Kan status niet wijzigen van {current} naar {target}. Toegestane overgangen: {allowed}',
    'interval_locked': 'Periode kan niet meer gewijzigd worden in status {status}; annuleer en maak een nieuwe reservering',

    # Auth
    'login_required': 'Gebruiker niet geïdentificeerd',

    # Cell statuses
    'status_FREE': 'Vrij',
    'status_RESERVED': 'Gereserveerd',
    'status_OCCUPIED': 'Bezet',
    'status_OUT_OF_SERVICE': 'Buiten gebruik',
    'status_BLOCKED': 'Geblokkeerd',

    # Reservation statuses
    'status_PENDING': 'In afwachting',
    'status_CONFIRMED': 'Bevestigd',
    'status_CANCELLED': 'Geannuleerd',
}


def get_message(key: str, **kwargs) -> str:
    """
    Get message with optional formatting.

    Args:
        key: Message key
        **kwargs: Format parameters

    Returns:
        Formatted message or key if not found
    """
    message = MESSAGES.get(key, key)
    if kwargs:
        return message.format(**kwargs)
    return message
