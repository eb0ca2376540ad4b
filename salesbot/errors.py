class SalesBotError(Exception):
    """Base error for collaborator failures surfaced to the message handler."""


class SheetsError(SalesBotError):
    """Catalog fetch or order append against Google Sheets failed."""


class LineApiError(SalesBotError):
    """LINE Messaging API rejected a request or could not be reached."""
