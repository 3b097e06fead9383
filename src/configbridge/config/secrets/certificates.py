"""
User-scoped certificate store.

Certificates are PEM files (certificate plus private key) kept in a
per-user directory, by default ``~/.configbridge/certs``. Lookup is by
SHA-1 thumbprint, the identifier Azure AD shows for uploaded service
principal certificates.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import structlog
from cryptography import x509
from cryptography.hazmat.primitives import hashes

from configbridge.core.errors import CertificateResolutionError

logger = structlog.get_logger()

CERTIFICATE_SUFFIXES = (".pem", ".crt", ".cer")

# Left-to-right mark that sneaks in when a thumbprint is copied from a
# certificate viewer.
_INVISIBLE_CHARS = "\u200e\u200f\ufeff"


def normalize_thumbprint(thumbprint: str) -> str:
    cleaned = "".join(
        ch for ch in thumbprint if not ch.isspace() and ch != ":" and ch not in _INVISIBLE_CHARS
    )
    return cleaned.upper()


def thumbprint_of(certificate: x509.Certificate) -> str:
    return certificate.fingerprint(hashes.SHA1()).hex().upper()


@dataclass(frozen=True)
class StoredCertificate:
    """A certificate found in the store."""

    path: Path
    thumbprint: str
    subject: str
    data: bytes


class CertificateStore:
    """Read-only view over a directory of PEM certificates.

    Usage:
        with CertificateStore(path) as store:
            cert = store.find_single(thumbprint)
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._certificates: list[StoredCertificate] | None = None

    def open(self) -> "CertificateStore":
        self._certificates = list(self._scan())
        logger.debug(
            "certificate_store_opened",
            path=str(self.path),
            certificates=len(self._certificates),
        )
        return self

    def close(self) -> None:
        self._certificates = None

    def __enter__(self) -> "CertificateStore":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def certificates(self) -> list[StoredCertificate]:
        if self._certificates is None:
            self.open()
        return list(self._certificates or [])

    def _scan(self):
        if not self.path.is_dir():
            return
        for file in sorted(self.path.iterdir()):
            if file.suffix.lower() not in CERTIFICATE_SUFFIXES or not file.is_file():
                continue
            try:
                data = file.read_bytes()
                certificate = x509.load_pem_x509_certificate(data)
            except (OSError, ValueError) as e:
                logger.debug("certificate_skipped", path=str(file), error=type(e).__name__)
                continue
            yield StoredCertificate(
                path=file,
                thumbprint=thumbprint_of(certificate),
                subject=certificate.subject.rfc4514_string(),
                data=data,
            )

    def find_by_thumbprint(self, thumbprint: str) -> list[StoredCertificate]:
        wanted = normalize_thumbprint(thumbprint)
        return [cert for cert in self.certificates if cert.thumbprint == wanted]

    def find_single(self, thumbprint: str) -> StoredCertificate:
        """Return the only certificate matching the thumbprint.

        Raises:
            CertificateResolutionError: zero or several certificates match
        """
        matches = self.find_by_thumbprint(thumbprint)
        if len(matches) != 1:
            raise CertificateResolutionError(normalize_thumbprint(thumbprint), len(matches))
        return matches[0]
