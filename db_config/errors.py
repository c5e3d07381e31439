"""
Error taxonomy for the MCP DB Server

Configuration and connectivity errors are fatal and abort startup.
Certificate errors are absorbed by the resolver, which degrades the
TLS mode instead of failing.
"""


class DBServerError(Exception):
    """Base exception for MCP DB Server errors"""
    pass


class ConfigurationError(DBServerError):
    """Malformed config.json or DATABASE_URL"""
    pass


class ConnectivityError(DBServerError):
    """Database connection attempts exhausted"""
    pass


class CertificateAcquisitionError(DBServerError):
    """Network or filesystem failure while fetching the trust bundle"""
    pass


class CertificateCorruptionError(DBServerError):
    """Cached trust bundle failed structural validation"""
    pass
