"""
User-visible notices shown by the screens after an action, in German
(the default) and English.
"""

DEFAULT_LANGUAGE = "de"

MESSAGES = {
    "de": {
        "name_required": "Bitte geben Sie Ihren Namen ein",
        "check_in_success": "Erfolgreich angemeldet!",
        "check_in_failed": "Fehler bei der Anmeldung",
        "check_out_success": "Erfolgreich abgemeldet!",
        "check_out_failed": "Fehler bei der Abmeldung",
        "already_checked_out": "Besucher ist bereits abgemeldet",
        "auto_checkout_done": "Automatische Abmeldung ausgeführt",
        "load_visitors_failed": "Fehler beim Laden der Besucher",
        "load_dashboard_failed": "Fehler beim Laden der Dashboard-Daten",
        "load_slides_failed": "Fehler beim Laden der Slides",
        "slide_created": "Slide erfolgreich erstellt",
        "slide_updated": "Slide erfolgreich aktualisiert",
        "slide_deleted": "Slide erfolgreich gelöscht",
        "slide_activated": "Slide aktiviert",
        "slide_deactivated": "Slide deaktiviert",
        "slide_moved": "Reihenfolge geändert",
        "toggle_failed": "Fehler beim Ändern des Status",
        "move_failed": "Fehler beim Verschieben",
        "delete_failed": "Fehler beim Löschen",
        "save_failed": "Fehler beim Speichern",
        "load_layout_failed": "Fehler beim Laden des Layouts",
        "layout_saved": "Layout erfolgreich gespeichert",
        "load_settings_failed": "Fehler beim Laden der Einstellungen",
        "settings_saved": "Einstellungen erfolgreich gespeichert",
        "not_found": "Eintrag nicht gefunden",
        "invalid_record": "Ungültige Daten",
        "store_error": "Fehler bei der Datenbankverbindung",
        "generic_error": "Ein Fehler ist aufgetreten",
    },
    "en": {
        "name_required": "Please enter your name",
        "check_in_success": "Checked in successfully!",
        "check_in_failed": "Check-in failed",
        "check_out_success": "Checked out successfully!",
        "check_out_failed": "Check-out failed",
        "already_checked_out": "Visitor is already checked out",
        "auto_checkout_done": "Automatic checkout completed",
        "load_visitors_failed": "Could not load visitors",
        "load_dashboard_failed": "Could not load dashboard data",
        "load_slides_failed": "Could not load slides",
        "slide_created": "Slide created",
        "slide_updated": "Slide updated",
        "slide_deleted": "Slide deleted",
        "slide_activated": "Slide activated",
        "slide_deactivated": "Slide deactivated",
        "slide_moved": "Order changed",
        "toggle_failed": "Could not change the status",
        "move_failed": "Could not move the slide",
        "delete_failed": "Could not delete",
        "save_failed": "Could not save",
        "load_layout_failed": "Could not load the layout",
        "layout_saved": "Layout saved",
        "load_settings_failed": "Could not load the settings",
        "settings_saved": "Settings saved",
        "not_found": "Record not found",
        "invalid_record": "Invalid data",
        "store_error": "Database connection error",
        "generic_error": "Something went wrong",
    },
}


# PUBLIC_INTERFACE
def notice(key: str, language: str = DEFAULT_LANGUAGE) -> str:
    """
    Look up a notice in the given language.
    Unknown languages fall back to German, unknown keys to the generic error.
    """
    messages = MESSAGES.get(language, MESSAGES[DEFAULT_LANGUAGE])
    return messages.get(key, messages["generic_error"])
