from media_audit.ui.reporter import ConsoleReporter, Presenter

__all__ = [
    "ConsoleReporter",
    "Presenter",
]
