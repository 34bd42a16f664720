"""
Affiliation Refresh Package.

Exports:
- AffiliationFetcher: typed ESI lookups (affiliation, corporation, alliance)
- refresh_affiliations: update stored affiliations for characters
- ESIEntityResolver: store-then-ESI existence checks for filter validation

Usage:
    from groupgate.services.affiliation import refresh_affiliations

    async with GroupDatabase() as db:
        snapshot = await refresh_affiliations(db, [2118500443])
"""

from __future__ import annotations

from .fetcher import (
    AFFILIATION_BATCH_SIZE,
    AffiliationFetcher,
    ESIEntityResolver,
    refresh_affiliations,
)

__all__ = [
    "AFFILIATION_BATCH_SIZE",
    "AffiliationFetcher",
    "ESIEntityResolver",
    "refresh_affiliations",
]
