import logging

from rich.logging import RichHandler


def setup_logging(level: int = logging.WARNING) -> None:
    """
    Call once at app start. Routes log records through rich.
    """
    root = logging.getLogger()
    if root.handlers:
        # already configured (avoid duplicates)
        root.setLevel(level)
        return

    root.setLevel(level)
    h = RichHandler(show_path=False, rich_tracebacks=True)
    h.setFormatter(logging.Formatter("%(name)s: %(message)s", datefmt="%H:%M:%S"))
    root.addHandler(h)
