"""formdesk — details dialogs of the admin dashboard served over HTTP."""

__version__ = "0.1.0"
