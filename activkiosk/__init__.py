"""Kiosk automation for the NSW RFS ACTIV portal.

Logs in through the portal's two-step form, opens the dashboard and keeps
it fresh with periodic reloads on a persistent browser profile.
"""

from activkiosk.retry import PhaseExhaustedError, PhaseResult, run_phase
from activkiosk.session import ensure_authenticated, ensure_on_dashboard

__all__ = [
    "PhaseExhaustedError",
    "PhaseResult",
    "ensure_authenticated",
    "ensure_on_dashboard",
    "run_phase",
]
