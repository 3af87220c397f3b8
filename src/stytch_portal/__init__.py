__version__ = "0.1.0"

from stytch_portal.config import PortalConfig, StytchSettings, load_portal_config  # noqa: E402
from stytch_portal.identity import (  # noqa: E402
    AuthIdentity,
    FlatUser,
    MemberSession,
    UnknownIdentity,
    classify_identity,
)

__all__ = [
    "AuthIdentity",
    "FlatUser",
    "MemberSession",
    "PortalConfig",
    "StytchSettings",
    "UnknownIdentity",
    "__version__",
    "classify_identity",
    "load_portal_config",
]
