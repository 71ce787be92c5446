"""Hostname canonicalization and classification.

A prospect's identity is its registrable domain (eTLD+1), so that
``www.example.com`` and ``app.example.com`` collapse into one lead. Hosts on
multi-tenant platforms (``*.vercel.app``, ``*.github.io``) keep their full
hostname because every subdomain is a different customer.
"""

import logging

import tldextract

from leadharvest.config import DomainConfig
from leadharvest.models import HostClass

logger = logging.getLogger(__name__)

# Bundled public suffix snapshot only; never fetch the list at runtime.
_extract = tldextract.TLDExtract(suffix_list_urls=())


def normalize_hostname(hostname: str) -> str:
    """Lowercase a hostname and strip any port and trailing dot."""
    host = (hostname or "").strip().lower()
    if "@" in host:
        host = host.rsplit("@", 1)[1]
    if host.count(":") == 1:
        host = host.split(":", 1)[0]
    return host.rstrip(".")


def _matches_domain(hostname: str, domain: str) -> bool:
    """Whether hostname equals domain or is a subdomain of it."""
    return hostname == domain or hostname.endswith("." + domain)


class IdentityResolver:
    """Resolve hostnames to prospect identities using static domain tables."""

    def __init__(self, domains: DomainConfig):
        """Initialize with the static domain tables."""
        self.domains = domains

    def registrable_domain(self, hostname: str) -> str:
        """Return the eTLD+1 of a hostname, or the hostname itself if unknown."""
        host = normalize_hostname(hostname)
        if not host:
            return host
        try:
            ext = _extract(host)
        except Exception as e:
            logger.debug("Domain parse failed for %r: %s", host, e)
            return host
        if not ext.domain or not ext.suffix:
            return host
        return f"{ext.domain}.{ext.suffix}"

    def is_multi_tenant(self, hostname: str) -> bool:
        """Whether the host sits under a multi-tenant platform suffix."""
        host = normalize_hostname(hostname)
        return any(_matches_domain(host, s) for s in self.domains.multi_tenant_suffixes)

    def canonicalize(self, hostname: str) -> str:
        """Return the dedupe identity for a hostname."""
        host = normalize_hostname(hostname)
        if self.is_multi_tenant(host):
            return host
        return self.registrable_domain(host)

    def classify(self, hostname: str) -> HostClass:
        """Classify a hostname as skip (aggregator), builder or ordinary."""
        host = normalize_hostname(hostname)
        reg_domain = self.registrable_domain(host)
        if reg_domain in self.domains.skip or any(
            _matches_domain(host, d) for d in self.domains.skip
        ):
            return HostClass.SKIP
        if reg_domain in self.domains.builder:
            return HostClass.BUILDER
        return HostClass.ORDINARY

    def is_repository_host(self, hostname: str) -> bool:
        """Whether the host belongs to a code-repository site."""
        return self.registrable_domain(hostname) in self.domains.repository_hosts

    def is_resolution_target(self, hostname: str) -> bool:
        """Whether an outbound link host may be taken as a repository's product site."""
        host = normalize_hostname(hostname)
        if not host or host.startswith("www.google."):
            return False
        reg_domain = self.registrable_domain(host)
        if reg_domain in self.domains.repository_hosts:
            return False
        return reg_domain not in self.domains.resolution_exclude
