"""Open pull request URLs in the user's browser (best effort)."""

import webbrowser

from prwatch.paths import configure_logger

_log = configure_logger("prwatch.browser")


def open_url(url: str) -> bool:
    """Open ``url`` in the default browser.

    Fire-and-forget: failures are logged and reported as False, never raised.
    """
    _log.info("open: %s", url)
    try:
        opened = webbrowser.open(url)
    except (webbrowser.Error, OSError) as e:
        _log.warning("failed to open %s: %s", url, e)
        return False
    if not opened:
        _log.warning("no browser available to open %s", url)
    return opened
