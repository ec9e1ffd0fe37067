"""Google Sheets CSV export fetch: lowest level, returns text only. No parsing."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ptc_dashboard import constants
from ptc_dashboard.errors import UpstreamFetchError

logger = logging.getLogger("ptc_dashboard.sheets")


def sheet_export_url(sheet_id: str) -> str:
    return constants.SHEET_EXPORT_URL.format(sheet_id=sheet_id)


class SheetFetcher:
    """Downloads the sign-up sheet as CSV. Holds no locks; call it before any import transaction."""

    def __init__(
        self,
        sheet_id: str = constants.GOOGLE_SHEET_ID,
        *,
        timeout: float = constants.FETCH_TIMEOUT_SECONDS,
        max_redirects: int = constants.MAX_REDIRECTS,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.sheet_id = sheet_id
        self.timeout = timeout
        self.max_redirects = max_redirects
        self._transport = transport

    @property
    def url(self) -> str:
        return sheet_export_url(self.sheet_id)

    def fetch_csv(self) -> str:
        """
        Fetch the export, following up to max_redirects redirects.

        Raises:
            UpstreamFetchError: On transport errors, too many redirects or a non-200 response
        """
        try:
            with httpx.Client(
                timeout=self.timeout,
                follow_redirects=True,
                max_redirects=self.max_redirects,
                transport=self._transport,
            ) as c:
                r = c.get(self.url)
        except httpx.TooManyRedirects as e:
            raise UpstreamFetchError(f"Too many redirects fetching sheet export: {e}") from e
        except httpx.HTTPError as e:
            raise UpstreamFetchError(f"Failed to fetch sheet export: {e}") from e

        if r.status_code != 200:
            raise UpstreamFetchError(
                f"Google Sheets returned status {r.status_code}. Make sure the sheet is "
                f'shared as "Anyone with the link can view".',
                status_code=r.status_code,
            )
        logger.info(f"Fetched {len(r.content)} bytes from sheet {self.sheet_id}")
        return r.text
