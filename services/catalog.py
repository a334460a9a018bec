# services/catalog.py

import json
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from config import CERTIFICATE_CATALOG_PATH, CERTIFICATE_PRICE

logger = logging.getLogger("services.catalog")


@dataclass(frozen=True)
class CertificateEntry:
    id: int
    media_asset_ref: str
    is_free: bool
    price: Optional[int] = None  # smallest currency unit, None when free


# --------------------
# Default catalog (Cloudinary public ids)
# --------------------
CERTIFICATE_ASSETS = {
    1: "bestfriend_aamfqh",
    2: "malgof_egqihg",
    3: "kfoo_ncybxx",
    4: "lazy_vndi9i",
    5: "Mokaf7_vetjxx",
    6: "donothing_nvdhcx",
    7: "knoweverything_vppbsa",
    8: "friendly_e7szzo",
    9: "kingnegative_ak81hp",
    10: "lier_hyuisy",
}

FREE_CERTIFICATES = {1, 5}


class CertificateCatalog:
    """Read-only lookup of certificate id -> entry."""

    def __init__(self, entries):
        self._entries: Dict[int, CertificateEntry] = {e.id: e for e in entries}

        for entry in self._entries.values():
            if not entry.is_free and not entry.price:
                raise ValueError(f"Paid certificate {entry.id} has no price")

    def get(self, certificate_id) -> Optional[CertificateEntry]:
        return self._entries.get(certificate_id)

    def parse(self, text) -> Optional[CertificateEntry]:
        """Resolves a user reply such as "3" to an entry."""
        value = (text or "").strip()
        if not value.isascii() or not value.isdigit():
            return None
        return self.get(int(value))

    def __contains__(self, certificate_id):
        return certificate_id in self._entries

    def __len__(self):
        return len(self._entries)

    def ids(self):
        return sorted(self._entries)


def default_catalog(price=CERTIFICATE_PRICE):
    return CertificateCatalog(
        CertificateEntry(
            id=cert_id,
            media_asset_ref=asset,
            is_free=cert_id in FREE_CERTIFICATES,
            price=None if cert_id in FREE_CERTIFICATES else price,
        )
        for cert_id, asset in CERTIFICATE_ASSETS.items()
    )


def load_catalog(path=CERTIFICATE_CATALOG_PATH):
    """
    Loads the catalog from a JSON list of
    {"id": 1, "asset": "...", "free": true, "price": 9900}
    or falls back to the built-in one when no path is configured.
    """
    if not path:
        return default_catalog()

    with open(path, encoding="utf-8") as f:
        rows = json.load(f)

    catalog = CertificateCatalog(
        CertificateEntry(
            id=int(row["id"]),
            media_asset_ref=row["asset"],
            is_free=bool(row.get("free", False)),
            price=row.get("price"),
        )
        for row in rows
    )
    logger.info("Loaded %s certificates from %s", len(catalog), path)
    return catalog
