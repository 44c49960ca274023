"""Adapters layer for cwa-quicktest.

Adapters implement the Port interfaces defined in the domain layer and talk
to external systems; here, the result API.
"""

from cwa_quicktest.adapters.result_client import QuicktestResultClient

__all__ = ["QuicktestResultClient"]
