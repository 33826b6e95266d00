"""Centralised selectors for the Google Maps result feed."""

# ==== RESULT FEED ====
RESULT_CARD = ".hfpxzc"
RESULTS_PANEL = ".m6QErb"

# ==== DETAIL PANE ====
DETAIL_NAME = ".DUwDvf"
DETAIL_INFO_LINES = ".Io6YTe"
BACK_BUTTON = "button[jsaction='pane.back']"

# ==== CONSENT ====
CONSENT_REJECT_BUTTON = "button[aria-label='Tout refuser']"
CONSENT_FORM = f"form:has({CONSENT_REJECT_BUTTON})"

SCROLL_RESULTS_SCRIPT = f"""
() => {{
    const panel = document.querySelector('{RESULTS_PANEL}');
    if (panel) panel.scrollTop = panel.scrollHeight;
    return Boolean(panel);
}}
"""
