from .static import (
    StaticBackendSecurityGroupProvider,
    StaticCertificateDiscovery,
    StaticSecretResolver,
    StaticSecurityGroupLookup,
    StaticSubnetLookup,
    StaticTrustStoreResolver,
)

__all__ = [
    "StaticBackendSecurityGroupProvider",
    "StaticCertificateDiscovery",
    "StaticSecretResolver",
    "StaticSecurityGroupLookup",
    "StaticSubnetLookup",
    "StaticTrustStoreResolver",
]
