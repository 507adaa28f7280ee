import logging
import dns.asyncresolver
import dns.exception
import dns.resolver

logger = logging.getLogger(__name__)


class EmailDomainError(Exception):
    def __init__(self, domain: str, message: str):
        super().__init__(message)
        self.domain = domain
        self.message = message


class MXChecker:
    """Checks that an email's domain publishes at least one MX record."""

    def __init__(self, resolver: dns.asyncresolver.Resolver | None = None, lifetime: float = 5.0):
        self._resolver = resolver
        self.lifetime = lifetime

    def _get_resolver(self) -> dns.asyncresolver.Resolver:
        # Built on first use so a host without resolv.conf can still start
        if self._resolver is None:
            self._resolver = dns.asyncresolver.Resolver()
            self._resolver.lifetime = self.lifetime
        return self._resolver

    async def verify_email_domain(self, email: str) -> None:
        domain = email.rpartition("@")[2]
        if not domain:
            raise EmailDomainError(domain, "Invalid email format: domain missing")

        try:
            answers = await self._get_resolver().resolve(domain, "MX")
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer) as e:
            logger.warning(f"⚠️ DNS lookup for {domain} failed: {type(e).__name__}")
            raise EmailDomainError(domain, "Email domain does not exist or has no mail servers") from e
        except dns.exception.DNSException as e:
            logger.warning(f"⚠️ DNS lookup for {domain} failed: {e}")
            raise EmailDomainError(domain, "Could not verify email domain") from e

        if len(answers) == 0:
            raise EmailDomainError(domain, "Email domain does not accept emails")
